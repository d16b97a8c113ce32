"""Tests for retry with exponential backoff."""

from unittest.mock import AsyncMock, patch

import pytest

from fieldvisit.api.client import ApiClient
from fieldvisit.api.retry import RetryCoordinator
from fieldvisit.exceptions import (
    AuthFailure,
    BusinessRejection,
    RequestTimeout,
    TransportFailure,
    UnknownServerFailure,
    ValidationFailure,
)

from ..test_helpers import FakeBackend, make_envelope

SERVICE_UNAVAILABLE = (503, make_envelope(code=503, status="error", message="Service Unavailable"))


class TestIsRetryable:
    @pytest.fixture
    def coordinator(self):
        return RetryCoordinator()

    @pytest.mark.parametrize("status", [408, 429, 500, 502, 503, 504])
    def test_retryable_statuses(self, coordinator, status):
        assert coordinator.is_retryable(UnknownServerFailure("x", http_status=status))

    def test_transport_and_timeout(self, coordinator):
        assert coordinator.is_retryable(TransportFailure("Network error: reset"))
        assert coordinator.is_retryable(RequestTimeout("Request timeout"))

    def test_message_markers(self, coordinator):
        assert coordinator.is_retryable(UnknownServerFailure("Connection reset by peer"))

    @pytest.mark.parametrize(
        "error",
        [
            ValidationFailure("invalid", http_status=422),
            AuthFailure("expired", http_status=401),
            BusinessRejection("sudah pernah visit", http_status=200),
            UnknownServerFailure("not found", http_status=404),
        ],
    )
    def test_permanent_failures(self, coordinator, error):
        assert not coordinator.is_retryable(error)

    def test_delays_double(self):
        coordinator = RetryCoordinator(base_delay=1.0)
        assert [coordinator.delay_for(n) for n in range(3)] == [1.0, 2.0, 4.0]

    def test_rejects_zero_attempts(self):
        with pytest.raises(ValueError):
            RetryCoordinator(max_attempts=0)


class TestRetryCoordinator:
    async def test_stops_after_success(self):
        operation = AsyncMock(side_effect=[TransportFailure("Network error"), "ok"])
        coordinator = RetryCoordinator(base_delay=0)

        assert await coordinator.run(operation) == "ok"
        assert operation.await_count == 2

    async def test_gives_up_after_max_attempts(self):
        operation = AsyncMock(side_effect=RequestTimeout("Request timeout"))
        coordinator = RetryCoordinator(max_attempts=3, base_delay=0)

        with pytest.raises(RequestTimeout):
            await coordinator.run(operation)

        assert operation.await_count == 3

    async def test_other_exceptions_propagate(self):
        operation = AsyncMock(side_effect=KeyError("boom"))

        with pytest.raises(KeyError):
            await RetryCoordinator(base_delay=0).run(operation)

        assert operation.await_count == 1


class TestClientRetry:
    async def test_503_twice_then_success(self, api_client: ApiClient, backend: FakeBackend):
        """Test two 503 responses are retried with growing delays before the 200."""
        backend.add(
            "GET",
            "/outlets",
            SERVICE_UNAVAILABLE,
            SERVICE_UNAVAILABLE,
            (200, make_envelope([{"id": 1}])),
        )

        with patch("fieldvisit.api.retry.asyncio.sleep", new_callable=AsyncMock) as sleep:
            envelope = await api_client.request("/outlets", token="t")

        assert envelope.data == [{"id": 1}]
        assert len(backend.calls("GET", "/outlets")) == 3
        delays = [call.args[0] for call in sleep.await_args_list]
        assert len(delays) == 2
        assert delays[0] < delays[1]

    async def test_422_is_not_retried(self, api_client: ApiClient, backend: FakeBackend):
        backend.add(
            "POST",
            "/visit",
            (422, make_envelope(code=422, status="error", message="Invalid", errors={"type": ["salah"]})),
        )

        with pytest.raises(ValidationFailure) as exc_info:
            await api_client.request("/visit", "POST", {"type": "X"}, "t")

        assert len(backend.calls("POST", "/visit")) == 1
        assert exc_info.value.message == "Invalid: salah"

    async def test_retry_disabled(self, api_client: ApiClient, backend: FakeBackend):
        backend.add("POST", "/login", SERVICE_UNAVAILABLE)

        with pytest.raises(UnknownServerFailure):
            await api_client.request("/login", "POST", {}, retry=False)

        assert len(backend.calls("POST", "/login")) == 1

    async def test_exhausted_retries_surface_last_error(self, api_client: ApiClient, backend: FakeBackend):
        backend.add("GET", "/profile", SERVICE_UNAVAILABLE)

        with pytest.raises(UnknownServerFailure) as exc_info:
            await api_client.request("/profile", token="t")

        assert exc_info.value.http_status == 503
        assert len(backend.calls("GET", "/profile")) == 3
