"""Test configuration and fixtures for the fieldvisit client."""

from io import BytesIO
from typing import Callable
from unittest.mock import AsyncMock

import httpx
import pytest
from PIL import Image

from fieldvisit.api.client import ApiClient
from fieldvisit.config import Settings
from fieldvisit.models import Outlet
from fieldvisit.services import OutletService, VisitService

from .test_helpers import BASE_URL, NEAR_OUTLET, OUTLET_LOCATION, FakeBackend


@pytest.fixture
def test_settings() -> Settings:
    """Create test settings with short delays."""
    return Settings(
        _env_file=None,
        environment="test",
        log_level="DEBUG",
        api_base_url=BASE_URL,
        retry_base_delay=0.01,
        dedup_ttl=0.05,
        logout_delay=0.01,
    )


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
async def api_client(test_settings, backend):
    """ApiClient talking to the fake backend."""
    client = ApiClient(test_settings, transport=httpx.MockTransport(backend.handle))
    yield client
    await client.close()


@pytest.fixture
def token_provider() -> Callable[[], str]:
    return lambda: "test-token"


@pytest.fixture
def visit_service(api_client, token_provider) -> VisitService:
    return VisitService(api_client, token_provider)


@pytest.fixture
def outlet_service(api_client, token_provider) -> OutletService:
    return OutletService(api_client, token_provider)


@pytest.fixture
def outlet() -> Outlet:
    return Outlet(id=7, name="Toko Monas", code="OUT-007", location=OUTLET_LOCATION, radius=100)


@pytest.fixture
def sample_photo() -> bytes:
    """Create a landscape JPEG larger than the upload width."""
    image = Image.new("RGB", (960, 640), color="blue")
    image.paste((255, 0, 0), (0, 0, 480, 640))
    buffer = BytesIO()
    image.save(buffer, format="JPEG")
    return buffer.getvalue()


@pytest.fixture
def location_provider() -> AsyncMock:
    """Create mock location provider positioned next to the outlet."""
    provider = AsyncMock()
    provider.current_position.return_value = NEAR_OUTLET
    return provider


@pytest.fixture
def camera(sample_photo) -> AsyncMock:
    """Create mock camera returning the sample photo."""
    mock = AsyncMock()
    mock.capture.return_value = sample_photo
    return mock
