"""Tests for the application wiring."""

import asyncio

import httpx

from fieldvisit.app import FieldVisitApp
from fieldvisit.workflows import CheckInStep, CheckInWorkflow, CheckOutWorkflow

from ..test_helpers import NEAR_OUTLET, OUTLET_LOCATION, FakeBackend, make_envelope


def _app(test_settings, backend, location_provider, camera, token=None) -> FieldVisitApp:
    return FieldVisitApp(
        location_provider,
        camera,
        settings=test_settings,
        transport=httpx.MockTransport(backend.handle),
        token=token,
        configure_logging=False,
    )


class TestFieldVisitApp:
    async def test_services_share_token(self, test_settings, backend: FakeBackend, location_provider, camera):
        backend.add("POST", "/login", (200, make_envelope({"access_token": "abc"})))
        backend.add("GET", "/outlets/7", (200, make_envelope({"id": 7, "location": OUTLET_LOCATION, "radius": 100})))

        async with _app(test_settings, backend, location_provider, camera) as app:
            await app.auth.login("sales01", "secret")
            await app.outlets.get_outlet(7)

        assert backend.calls("GET", "/outlets/7")[0].headers["Authorization"] == "Bearer abc"

    async def test_session_expiry_clears_token(self, test_settings, backend: FakeBackend, location_provider, camera):
        """Test a 401 on any call logs the user out once."""
        backend.add("GET", "/visits", (401, make_envelope(code=401, status="error", message="Unauthenticated.")))
        logged_out = []

        async with _app(test_settings, backend, location_provider, camera, token="old") as app:
            app.session.on_logout(lambda: logged_out.append(True))
            await asyncio.gather(
                app.visits.list_visits(), app.visits.list_visits({"page": 2}), return_exceptions=True
            )
            await asyncio.sleep(0.05)

            assert app.session.token is None
            assert logged_out == [True]

    async def test_workflow_factories(self, test_settings, backend: FakeBackend, location_provider, camera):
        async with _app(test_settings, backend, location_provider, camera, token="t") as app:
            check_in = app.check_in()
            check_out = app.check_out()

            assert isinstance(check_in, CheckInWorkflow)
            assert isinstance(check_out, CheckOutWorkflow)
            assert check_in.policy is app.geofence
            assert check_in is not app.check_in()

            check_in.update_location(NEAR_OUTLET)
            assert check_in.step is CheckInStep.SELECTING_OUTLET
