"""Tests for the composed API client."""

from unittest.mock import AsyncMock, patch

import httpx
import pytest

from fieldvisit.api.client import ApiClient
from fieldvisit.api.executor import RequestExecutor
from fieldvisit.config import Settings
from fieldvisit.exceptions import TransportFailure
from fieldvisit.models import MultipartForm, UploadFile

from ..test_helpers import BASE_URL, FakeBackend, make_envelope


class TestApiClient:
    def test_init(self, test_settings):
        """Test ApiClient initialization from settings."""
        client = ApiClient(test_settings)

        assert client.base_url == BASE_URL
        assert client.retry.max_attempts == 3
        assert client.dedup.ttl == test_settings.dedup_ttl
        assert client.session_guard.delay == test_settings.logout_delay

    def test_resolve_url(self, test_settings):
        client = ApiClient(test_settings)

        assert client.resolve_url("/outlets") == f"{BASE_URL}/outlets"
        assert client.resolve_url("outlets") == f"{BASE_URL}/outlets"
        assert client.resolve_url("https://cdn.test/x") == "https://cdn.test/x"

    async def test_context_manager_closes_client(self, test_settings, backend: FakeBackend):
        backend.add("GET", "/profile", (200, make_envelope({"name": "Sales"})))

        async with ApiClient(test_settings, transport=httpx.MockTransport(backend.handle)) as client:
            envelope = await client.request("/profile", token="t")
            http_client = client._client

        assert envelope.data == {"name": "Sales"}
        assert http_client.is_closed
        assert client._client is None

    async def test_default_timeout(self, api_client: ApiClient, backend: FakeBackend):
        backend.add("GET", "/profile", (200, make_envelope()))

        with patch("fieldvisit.api.client.RequestExecutor") as executor_class:
            executor_class.return_value.execute = AsyncMock(return_value="envelope")
            await api_client.request("/profile", token="t")

        assert executor_class.call_args.args[1] == 10.0

    async def test_upload_uses_upload_timeout_without_retry(self, api_client: ApiClient, backend: FakeBackend):
        """Test uploads use the longer timeout and are never retried."""
        backend.add("POST", "/visit", httpx.ConnectError("reset"))
        form = MultipartForm().add_file("checkin_photo", UploadFile("c.jpg", b"jpeg"))

        with patch("fieldvisit.api.client.RequestExecutor", wraps=RequestExecutor) as executor_class:
            with pytest.raises(TransportFailure):
                await api_client.upload("/visit", form, "t")

        assert executor_class.call_args.args[1] == 30.0
        assert len(backend.calls("POST", "/visit")) == 1

    async def test_transport_failure_is_retried(self, api_client: ApiClient, backend: FakeBackend):
        backend.add(
            "GET",
            "/outlets",
            httpx.ConnectError("refused"),
            (200, make_envelope([])),
        )

        envelope = await api_client.request("/outlets", token="t")

        assert envelope.data == []
        assert len(backend.calls("GET", "/outlets")) == 2

    def test_settings_from_environment(self, monkeypatch):
        monkeypatch.setenv("FIELDVISIT_API_BASE_URL", "https://sales.example.com/api/")
        client = ApiClient(Settings(_env_file=None))
        assert client.base_url == "https://sales.example.com/api"
