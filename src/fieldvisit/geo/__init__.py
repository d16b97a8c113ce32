"""Distance and geofence decisions for outlet check-ins"""

from fieldvisit.geo.distance import EARTH_RADIUS_METERS, distance_meters
from fieldvisit.geo.geofence import GeofencePolicy, GeofenceResult, GeofenceStatus

__all__ = [
    "EARTH_RADIUS_METERS",
    "distance_meters",
    "GeofencePolicy",
    "GeofenceResult",
    "GeofenceStatus",
]
