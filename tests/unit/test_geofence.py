"""Tests for the outlet geofence policy."""

from unittest.mock import patch

import pytest
from pydantic import ValidationError

from fieldvisit.exceptions import GeofenceViolation
from fieldvisit.geo import GeofencePolicy, GeofenceResult, GeofenceStatus
from fieldvisit.models import Coordinate, Outlet

from ..test_helpers import FAR_FROM_OUTLET, NEAR_OUTLET, OUTLET_LOCATION


@pytest.fixture
def policy():
    return GeofencePolicy(fallback_radius=100)


class TestCoordinateParsing:
    @pytest.mark.parametrize(
        "latlong",
        [None, "", "-6.2", "-6.2,106.8,0", "abc,106.8", "-6.2,", "nan,106.8", "inf,1"],
    )
    def test_invalid_locations(self, latlong):
        """Test anything but exactly two finite numbers is rejected."""
        assert Coordinate.parse(latlong) is None

    def test_valid_location(self):
        coord = Coordinate.parse(" -6.2088, 106.8456")
        assert coord == Coordinate(latitude=-6.2088, longitude=106.8456)

    def test_location_string(self):
        assert Coordinate(latitude=-6.5, longitude=106.25).to_location_string() == "-6.5,106.25"


class TestGeofencePolicy:
    def test_near_outlet_is_valid(self, policy):
        """Test a position 30 m away is inside a 100 m radius."""
        outlet = Outlet(id=1, location=OUTLET_LOCATION, radius=100)

        result = policy.evaluate(outlet, NEAR_OUTLET)

        assert result.status is GeofenceStatus.VALID
        assert result.distance_meters == pytest.approx(30, abs=1)
        assert result.effective_radius == 100

    def test_far_from_outlet(self, policy):
        """Test a position 500 m away is too far for a 100 m radius."""
        outlet = Outlet(id=1, location=OUTLET_LOCATION, radius=100)

        result = policy.evaluate(outlet, FAR_FROM_OUTLET)

        assert result.status is GeofenceStatus.TOO_FAR
        assert result.distance_meters == pytest.approx(500, abs=2)
        assert not result.is_valid

    def test_radius_zero_is_unrestricted(self, policy):
        """Test radius 0 validates any distance."""
        outlet = Outlet(id=1, location=OUTLET_LOCATION, radius=0)
        antipode = Coordinate(latitude=6.175392, longitude=-73.172847)

        result = policy.evaluate(outlet, antipode)

        assert result.status is GeofenceStatus.VALID
        assert result.effective_radius is None
        assert result.distance_meters > 10_000_000

    def test_missing_radius_uses_fallback(self, policy):
        outlet = Outlet(id=1, location=OUTLET_LOCATION, radius=None)
        assert policy.effective_radius(outlet) == 100
        assert policy.evaluate(outlet, FAR_FROM_OUTLET).status is GeofenceStatus.TOO_FAR

    def test_negative_radius_rejected_on_parse(self):
        with pytest.raises(ValidationError):
            Outlet.model_validate({"id": 1, "location": OUTLET_LOCATION, "radius": -5})

    def test_fallback_override(self, policy):
        outlet = Outlet(id=1, location=OUTLET_LOCATION)

        result = policy.evaluate(outlet, FAR_FROM_OUTLET, fallback_radius=1000)

        assert result.status is GeofenceStatus.VALID
        assert result.effective_radius == 1000

    def test_boundary_is_inclusive(self):
        outlet = Outlet(id=1, location=OUTLET_LOCATION, radius=30)
        with patch("fieldvisit.geo.geofence.distance_meters", return_value=30.0):
            result = GeofencePolicy().evaluate(outlet, NEAR_OUTLET)
        assert result.status is GeofenceStatus.VALID

    @pytest.mark.parametrize("location", [None, "", "-6.175392", "abc,def", "1,2,3"])
    def test_blocked_never_computes_distance(self, policy, location):
        """Test unparseable outlet locations block before any distance computation."""
        outlet = Outlet(id=1, location=location, radius=0)

        with patch("fieldvisit.geo.geofence.distance_meters") as distance:
            result = policy.evaluate(outlet, NEAR_OUTLET)

        distance.assert_not_called()
        assert result.status is GeofenceStatus.BLOCKED
        assert result.distance_meters is None

    def test_negative_fallback_rejected(self):
        with pytest.raises(ValueError):
            GeofencePolicy(fallback_radius=-1)


class TestRequireValid:
    def test_valid_passes(self):
        GeofencePolicy.require_valid(
            GeofenceResult(status=GeofenceStatus.VALID, distance_meters=3.0, effective_radius=100)
        )

    def test_too_far_message(self):
        """Test too-far violations carry the rounded distance and allowed radius."""
        result = GeofenceResult(
            status=GeofenceStatus.TOO_FAR, distance_meters=499.6, effective_radius=100
        )

        with pytest.raises(GeofenceViolation) as exc_info:
            GeofencePolicy.require_valid(result)

        error = exc_info.value
        assert not error.blocked
        assert error.allowed_radius == 100
        assert "500m" in error.message
        assert "100m" in error.message

    def test_blocked(self):
        with pytest.raises(GeofenceViolation) as exc_info:
            GeofencePolicy.require_valid(GeofenceResult(status=GeofenceStatus.BLOCKED))
        assert exc_info.value.blocked
        assert "update data outlet" in exc_info.value.message
