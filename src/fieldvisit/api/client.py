"""Single entry point for every call to the visit backend."""

from typing import Any, Callable, Optional

import httpx
import structlog

from fieldvisit.api.dedup import DedupCache, cache_key
from fieldvisit.api.executor import RequestExecutor
from fieldvisit.api.retry import RetryCoordinator
from fieldvisit.api.session import SessionGuard
from fieldvisit.config import Settings
from fieldvisit.exceptions import ApiError
from fieldvisit.models import MultipartForm, ResponseEnvelope

logger = structlog.get_logger(__name__)


class ApiClient:
    """Async client for the visit backend.

    Composes the request executor, retry coordinator, GET de-duplication and
    session guard. One instance is created at startup and shared by every
    service; the de-duplication map and the session listeners live on it.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the API client.

        Args:
            settings: Client settings, defaults are read from the environment
            transport: Optional httpx transport, used by tests
        """
        self.settings = settings or Settings()
        self.base_url = self.settings.api_base_url.rstrip("/")
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

        self.dedup = DedupCache(ttl=self.settings.dedup_ttl)
        self.retry = RetryCoordinator(
            max_attempts=self.settings.retry_max_attempts,
            base_delay=self.settings.retry_base_delay,
            retryable_statuses=self.settings.retry_statuses,
        )
        self.session_guard = SessionGuard(
            logout_path=self.settings.logout_path,
            delay=self.settings.logout_delay,
        )

        logger.info("API client initialized", base_url=self.base_url)

    async def __aenter__(self):
        await self._ensure_client()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                transport=self._transport,
                # Timeouts are enforced per call by the executor
                timeout=httpx.Timeout(None),
                limits=httpx.Limits(max_keepalive_connections=5, max_connections=10),
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
        self._client = None
        self.dedup.clear()

    def on_session_expired(self, listener: Callable[[], object]) -> Callable[[], None]:
        """Subscribe to 401/403 session expiry; returns the unsubscribe function."""
        return self.session_guard.subscribe(listener)

    def resolve_url(self, url: str) -> str:
        if url.startswith(("http://", "https://")):
            return url
        return f"{self.base_url}/{url.lstrip('/')}"

    async def request(
        self,
        url: str,
        method: str = "GET",
        body: Any = None,
        token: Optional[str] = None,
        *,
        timeout: Optional[float] = None,
        skip_cache: bool = False,
        retry: bool = True,
        label: Optional[str] = None,
    ) -> ResponseEnvelope:
        """Call the backend and return the validated envelope.

        Args:
            url: Path relative to the base URL, or an absolute URL
            method: HTTP method
            body: JSON payload or MultipartForm
            token: Bearer token, None for anonymous calls
            timeout: Per-call timeout, defaults to the configured API timeout
            skip_cache: Bypass GET de-duplication
            retry: Retry transient failures with backoff
            label: Tag used in log records

        Raises:
            ApiError: classified terminal failure
        """
        method = method.upper()
        full_url = self.resolve_url(url)
        label = label or f"{method} {url}"
        timeout = self.settings.api_timeout if timeout is None else timeout

        async def attempt() -> ResponseEnvelope:
            executor = RequestExecutor(await self._ensure_client(), timeout)
            try:
                return await executor.execute(
                    method, full_url, body=body, token=token, label=label
                )
            except ApiError as e:
                self.session_guard.inspect(full_url, e, label=label)
                raise

        async def call() -> ResponseEnvelope:
            if retry:
                return await self.retry.run(attempt, label=label)
            return await attempt()

        if method == "GET" and not skip_cache:
            return await self.dedup.run(cache_key(method, full_url, body), call)
        return await call()

    async def upload(
        self,
        url: str,
        form: MultipartForm,
        token: Optional[str] = None,
        *,
        method: str = "POST",
        timeout: Optional[float] = None,
        label: Optional[str] = None,
    ) -> ResponseEnvelope:
        """Send a multipart form; uploads use the longer timeout and are never retried."""
        return await self.request(
            url,
            method,
            form,
            token,
            timeout=self.settings.upload_timeout if timeout is None else timeout,
            retry=False,
            label=label,
        )
