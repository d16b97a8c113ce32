"""Sharing of in-flight GET calls between identical concurrent callers."""

import asyncio
import json
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict

import structlog

logger = structlog.get_logger(__name__)


def body_signature(body: Any) -> str:
    if body is None:
        return ""
    try:
        return json.dumps(body, sort_keys=True, default=str)
    except TypeError:
        return repr(body)


def cache_key(method: str, url: str, body: Any = None) -> str:
    return f"{method.upper()}:{url}:{body_signature(body)}"


@dataclass
class ApiCallRecord:
    key: str
    future: "asyncio.Future[Any]"


class DedupCache:
    """Keeps the future of each GET until ``ttl`` seconds after it settles."""

    def __init__(self, ttl: float = 1.0):
        self.ttl = ttl
        self._records: Dict[str, ApiCallRecord] = {}

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, key: str) -> bool:
        return key in self._records

    async def run(self, key: str, factory: Callable[[], Awaitable[Any]]) -> Any:
        record = self._records.get(key)
        if record is None:
            record = ApiCallRecord(key=key, future=asyncio.ensure_future(factory()))
            self._records[key] = record
            record.future.add_done_callback(lambda _: self._schedule_expiry(record))
        else:
            logger.debug("Reusing in-flight request", key=key)
        # Callers going away must not cancel the shared call
        return await asyncio.shield(record.future)

    def _schedule_expiry(self, record: ApiCallRecord) -> None:
        if not record.future.cancelled():
            # Retrieved here so a failure nobody awaited is not logged at GC
            record.future.exception()
        loop = asyncio.get_running_loop()
        loop.call_later(self.ttl, self._expire, record)

    def _expire(self, record: ApiCallRecord) -> None:
        # A newer record for the same key stays untouched
        if self._records.get(record.key) is record:
            del self._records[record.key]

    def clear(self) -> None:
        self._records.clear()
