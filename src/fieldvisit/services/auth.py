"""Login, logout and the bearer token consumed by every service"""
from typing import Any, Callable, Dict, List, Optional

import structlog

from fieldvisit.api.client import ApiClient
from fieldvisit.exceptions import ApiError
from fieldvisit.models import ResponseEnvelope

logger = structlog.get_logger(__name__)

CLIENT_VERSION = "2.0.0"


class AuthSession:
    """Holds the current bearer token; storage of it is left to the platform."""

    def __init__(self, token: Optional[str] = None):
        self._token = token
        self._listeners: List[Callable[[], None]] = []

    @property
    def token(self) -> Optional[str]:
        return self._token

    @property
    def is_authenticated(self) -> bool:
        return self._token is not None

    def set_token(self, token: Optional[str]) -> None:
        self._token = token

    def on_logout(self, listener: Callable[[], None]) -> None:
        self._listeners.append(listener)

    def clear(self) -> None:
        """Forget the token and tell listeners (screens, storage) about it."""
        had_token = self._token is not None
        self._token = None
        if had_token:
            logger.info("Session cleared")
            for listener in list(self._listeners):
                listener()


class AuthService:
    """Calls to ``/login``, ``/logout`` and ``/profile``"""

    def __init__(self, api: ApiClient, session: AuthSession):
        self.api = api
        self.session = session

    async def login(self, username: str, password: str, notif_id: str = "") -> ResponseEnvelope:
        envelope = await self.api.request(
            "/login",
            "POST",
            {
                "version": CLIENT_VERSION,
                "username": username,
                "password": password,
                "notif_id": notif_id,
            },
            None,
            retry=False,
            label="LOGIN",
        )
        data: Dict[str, Any] = envelope.data if isinstance(envelope.data, dict) else {}
        token = data.get("access_token") or data.get("token")
        if token:
            self.session.set_token(token)
            logger.info("Logged in", username=username)
        else:
            logger.warning("Login response without token", username=username)
        return envelope

    async def logout(self) -> None:
        """Invalidate the token server side; the local session is cleared regardless."""
        token = self.session.token
        try:
            if token:
                await self.api.request(
                    "/logout", "POST", None, token, retry=False, label="LOGOUT"
                )
        except ApiError as e:
            logger.warning("Logout request failed", error=str(e))
        finally:
            self.session.clear()

    async def get_profile(self) -> Dict[str, Any]:
        envelope = await self.api.request(
            "/profile", "GET", token=self.session.token, label="GET_PROFILE"
        )
        return envelope.data or {}
