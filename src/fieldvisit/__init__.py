"""Field sales visit client: geofenced check-in/check-out over a resilient API client"""

from fieldvisit.api import ApiClient
from fieldvisit.app import FieldVisitApp
from fieldvisit.config import Settings
from fieldvisit.geo import GeofencePolicy, GeofenceResult, GeofenceStatus, distance_meters
from fieldvisit.models import Coordinate, LocationSample, Outlet, PlanVisit, VisitType
from fieldvisit.workflows import CheckInStep, CheckInWorkflow, CheckOutWorkflow

__version__ = "0.1.0"

__all__ = [
    "ApiClient",
    "CheckInStep",
    "CheckInWorkflow",
    "CheckOutWorkflow",
    "Coordinate",
    "FieldVisitApp",
    "GeofencePolicy",
    "GeofenceResult",
    "GeofenceStatus",
    "LocationSample",
    "Outlet",
    "PlanVisit",
    "Settings",
    "VisitType",
    "distance_meters",
]
