"""Resilient request layer for the visit backend"""

from fieldvisit.api.client import ApiClient
from fieldvisit.api.dedup import DedupCache, cache_key
from fieldvisit.api.executor import RequestExecutor, error_from_response
from fieldvisit.api.retry import RetryCoordinator
from fieldvisit.api.session import SessionGuard

__all__ = [
    "ApiClient",
    "DedupCache",
    "RequestExecutor",
    "RetryCoordinator",
    "SessionGuard",
    "cache_key",
    "error_from_response",
]
