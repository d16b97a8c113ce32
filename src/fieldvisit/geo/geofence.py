"""Geofence policy for outlet check-ins"""
from enum import Enum
from typing import Optional

import structlog
from pydantic import BaseModel

from fieldvisit.exceptions import GeofenceViolation
from fieldvisit.geo.distance import distance_meters
from fieldvisit.models import Coordinate, Outlet

logger = structlog.get_logger(__name__)


class GeofenceStatus(str, Enum):
    VALID = "valid"
    TOO_FAR = "too_far"
    BLOCKED = "blocked"


class GeofenceResult(BaseModel):
    """Outcome of one geofence evaluation"""

    status: GeofenceStatus
    distance_meters: Optional[float] = None
    # None when the outlet is unrestricted or blocked
    effective_radius: Optional[int] = None

    @property
    def is_valid(self) -> bool:
        return self.status is GeofenceStatus.VALID


class GeofencePolicy:
    """Decides whether a device position may check in at an outlet.

    An outlet radius of 0 disables the geofence for that outlet. A missing
    radius falls back to ``fallback_radius`` and a negative one is rejected
    when the outlet is parsed. An outlet whose location does not parse as
    "lat,lon" is blocked until its data is fixed.
    """

    def __init__(self, fallback_radius: int = 100):
        if fallback_radius < 0:
            raise ValueError("Fallback radius must be >= 0")
        self.fallback_radius = fallback_radius

    def effective_radius(self, outlet: Outlet, fallback_radius: Optional[int] = None) -> Optional[int]:
        """Radius actually enforced for the outlet, None when unrestricted"""
        if outlet.radius == 0:
            return None
        if outlet.radius is not None and outlet.radius > 0:
            return outlet.radius
        return self.fallback_radius if fallback_radius is None else fallback_radius

    def evaluate(
        self,
        outlet: Outlet,
        current: Coordinate,
        fallback_radius: Optional[int] = None,
    ) -> GeofenceResult:
        outlet_coords = Coordinate.parse(outlet.location)
        if outlet_coords is None:
            logger.warning("Outlet location missing or invalid",
                           outlet_id=outlet.id, location=outlet.location)
            return GeofenceResult(status=GeofenceStatus.BLOCKED)

        distance = distance_meters(current, outlet_coords)
        radius = self.effective_radius(outlet, fallback_radius)

        if radius is None:
            status = GeofenceStatus.VALID
        elif distance <= radius:
            status = GeofenceStatus.VALID
        else:
            status = GeofenceStatus.TOO_FAR

        logger.debug("Evaluated outlet geofence",
                     outlet_id=outlet.id,
                     distance=round(distance, 2),
                     radius=radius,
                     status=status.value)

        return GeofenceResult(
            status=status, distance_meters=distance, effective_radius=radius
        )

    @staticmethod
    def require_valid(result: GeofenceResult) -> None:
        """Raise GeofenceViolation unless the result allows a check-in"""
        if result.status is GeofenceStatus.BLOCKED:
            raise GeofenceViolation(
                "Silakan update data outlet terlebih dahulu sebelum check-in.",
                blocked=True,
            )
        if result.status is GeofenceStatus.TOO_FAR:
            distance = round(result.distance_meters or 0)
            raise GeofenceViolation(
                f"Anda berada {distance}m dari outlet, sedangkan maksimal jarak "
                f"adalah {result.effective_radius}m. Apakah Anda ingin "
                f"memperbarui lokasi outlet?",
                distance_meters=result.distance_meters,
                allowed_radius=result.effective_radius,
            )
