"""Session-expiry handling for 401/403 responses."""

import asyncio
import inspect
from typing import Callable, List
from urllib.parse import urlparse

import structlog

from fieldvisit.exceptions import ApiError, AuthFailure

logger = structlog.get_logger(__name__)

SessionExpiredListener = Callable[[], object]


class SessionGuard:
    """Notifies listeners once when the backend rejects the session.

    Several calls failing together with 401/403 produce one notification;
    the guard re-arms after the listeners ran. Failures of the logout
    endpoint itself are ignored so logging out cannot trigger itself.
    """

    def __init__(self, logout_path: str = "/logout", delay: float = 0.1):
        self.logout_path = logout_path.rstrip("/")
        self.delay = delay
        self._listeners: List[SessionExpiredListener] = []
        self._pending = False

    def subscribe(self, listener: SessionExpiredListener) -> Callable[[], None]:
        """Register a listener; returns a function that removes it again."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    @property
    def pending(self) -> bool:
        return self._pending

    def is_logout_endpoint(self, url: str) -> bool:
        path = urlparse(url).path.rstrip("/")
        return path.endswith(self.logout_path)

    def inspect(self, url: str, error: ApiError, label: str = "API") -> None:
        """Schedule the session-expired notification for auth failures."""
        if not isinstance(error, AuthFailure):
            return
        if self.is_logout_endpoint(url) or label == "LOGOUT":
            logger.debug("Auth failure on logout endpoint ignored", url=url)
            return
        if self._pending:
            return
        if not self._listeners:
            logger.warning("Auth failure with no session listener", url=url)
            return

        self._pending = True
        logger.info(
            "Auto logout triggered",
            label=label,
            http_status=error.http_status,
            delay=self.delay,
        )
        asyncio.get_running_loop().call_later(self.delay, self._notify)

    def _notify(self) -> None:
        self._pending = False
        for listener in list(self._listeners):
            result = listener()
            if inspect.isawaitable(result):
                asyncio.ensure_future(result)
