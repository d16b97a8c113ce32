"""Composition root wiring settings, logging, the API client and the workflows."""

from typing import Optional

import httpx
import structlog

from fieldvisit.api.client import ApiClient
from fieldvisit.config import Settings
from fieldvisit.device import Camera, LocationProvider
from fieldvisit.geo.geofence import GeofencePolicy
from fieldvisit.logging import setup_logging
from fieldvisit.services import AuthService, AuthSession, OutletService, VisitService
from fieldvisit.workflows import CheckInWorkflow, CheckOutWorkflow

logger = structlog.get_logger(__name__)


class FieldVisitApp:
    """One instance per running app; owns the shared ApiClient."""

    def __init__(
        self,
        location_provider: LocationProvider,
        camera: Camera,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        token: Optional[str] = None,
        configure_logging: bool = True,
    ):
        self.settings = settings or Settings()
        if configure_logging:
            setup_logging(settings=self.settings)

        self.location_provider = location_provider
        self.camera = camera

        self.api = ApiClient(self.settings, transport=transport)
        self.session = AuthSession(token)
        self._unsubscribe = self.api.on_session_expired(self._on_session_expired)

        self.auth = AuthService(self.api, self.session)
        self.outlets = OutletService(self.api, self._token)
        self.visits = VisitService(self.api, self._token)
        self.geofence = GeofencePolicy(self.settings.geofence_fallback_radius)

    async def __aenter__(self):
        await self.api.__aenter__()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self) -> None:
        self._unsubscribe()
        await self.api.close()
        logger.info("Field visit app closed")

    def _token(self) -> Optional[str]:
        return self.session.token

    def _on_session_expired(self) -> None:
        logger.warning("Session expired, clearing token")
        self.session.clear()

    def check_in(self) -> CheckInWorkflow:
        """New check-in screen state."""
        return CheckInWorkflow(
            self.visits,
            self.outlets,
            self.location_provider,
            self.camera,
            policy=self.geofence,
            settings=self.settings,
        )

    def check_out(self) -> CheckOutWorkflow:
        """New check-out screen state."""
        return CheckOutWorkflow(
            self.visits,
            self.location_provider,
            self.camera,
            settings=self.settings,
        )
