"""Bounded exponential-backoff retry for transient API failures."""

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Iterable, Optional, TypeVar

import structlog

from fieldvisit.exceptions import ApiError, RequestTimeout, TransportFailure

logger = structlog.get_logger(__name__)

T = TypeVar("T")

RETRYABLE_STATUSES = frozenset({408, 429, 500, 502, 503, 504})
TRANSIENT_MARKERS = ("network", "timeout", "connection")


@dataclass
class RetryAttempt:
    attempt_number: int
    last_error: Optional[BaseException]
    next_delay: float


class RetryCoordinator:
    """Re-runs an operation while its failures look transient."""

    def __init__(
        self,
        max_attempts: int = 3,
        base_delay: float = 1.0,
        retryable_statuses: Iterable[int] = RETRYABLE_STATUSES,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.retryable_statuses = frozenset(retryable_statuses)

    def is_retryable(self, error: BaseException) -> bool:
        if isinstance(error, (TransportFailure, RequestTimeout)):
            return True
        if isinstance(error, ApiError) and error.http_status in self.retryable_statuses:
            return True
        if isinstance(error, ApiError) and error.http_status is not None:
            return False
        message = str(error).lower()
        return any(marker in message for marker in TRANSIENT_MARKERS)

    def delay_for(self, attempts_used: int) -> float:
        return self.base_delay * (2 ** attempts_used)

    async def run(self, operation: Callable[[], Awaitable[T]], label: str = "API") -> T:
        """Await ``operation`` until it succeeds, fails permanently or the budget runs out."""
        attempt = 1
        while True:
            try:
                return await operation()
            except ApiError as e:
                if attempt >= self.max_attempts or not self.is_retryable(e):
                    raise
                retry = RetryAttempt(
                    attempt_number=attempt,
                    last_error=e,
                    next_delay=self.delay_for(attempt - 1),
                )
                logger.warning(
                    "API call failed, retrying",
                    label=label,
                    attempt=retry.attempt_number,
                    max_attempts=self.max_attempts,
                    delay=retry.next_delay,
                    error=str(retry.last_error),
                )
                await asyncio.sleep(retry.next_delay)
                attempt += 1
