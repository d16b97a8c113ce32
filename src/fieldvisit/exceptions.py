"""Error taxonomy for API calls and client-side visit checks."""
from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(str, Enum):
    TRANSPORT = "transport_failure"
    TIMEOUT = "timeout"
    AUTH = "auth_failure"
    VALIDATION = "validation_failure"
    BUSINESS = "business_rejection"
    GEOFENCE = "geofence_violation"
    UNKNOWN = "unknown_server_failure"


class FieldVisitError(Exception):
    """Base exception for the fieldvisit client."""

    kind: ErrorKind = ErrorKind.UNKNOWN


class ApiError(FieldVisitError):
    """Terminal failure of an API call."""

    def __init__(
        self,
        message: str,
        *,
        code: Optional[int] = None,
        status: str = "error",
        errors: Optional[Dict[str, Any]] = None,
        http_status: Optional[int] = None,
        data: Any = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code if code is not None else (http_status or 0)
        self.status = status
        self.errors = errors
        self.http_status = http_status
        self.data = data

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(message={self.message!r}, code={self.code}, "
            f"http_status={self.http_status})"
        )


class TransportFailure(ApiError):
    """DNS, connect or read failure before a response arrived."""

    kind = ErrorKind.TRANSPORT


class RequestTimeout(ApiError):
    """The call did not finish within its timeout."""

    kind = ErrorKind.TIMEOUT


class AuthFailure(ApiError):
    """401/403; the session is no longer usable."""

    kind = ErrorKind.AUTH


class ValidationFailure(ApiError):
    """422 with field level errors attached."""

    kind = ErrorKind.VALIDATION


class BusinessRejection(ApiError):
    """The backend answered but refused the operation by a domain rule."""

    kind = ErrorKind.BUSINESS


class UnknownServerFailure(ApiError):
    kind = ErrorKind.UNKNOWN


class GeofenceViolation(FieldVisitError):
    """Client-side decision that the device is not allowed to check in here."""

    kind = ErrorKind.GEOFENCE

    def __init__(
        self,
        message: str,
        *,
        blocked: bool = False,
        distance_meters: Optional[float] = None,
        allowed_radius: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.blocked = blocked
        self.distance_meters = distance_meters
        self.allowed_radius = allowed_radius


class LocationUnavailable(FieldVisitError):
    """The device could not produce a position fix."""


class LocationPermissionDenied(LocationUnavailable):
    """Location permission was not granted."""


class CameraUnavailable(FieldVisitError):
    """The camera is missing, not ready or failed to capture."""


__all__ = [
    "ErrorKind",
    "FieldVisitError",
    "ApiError",
    "TransportFailure",
    "RequestTimeout",
    "AuthFailure",
    "ValidationFailure",
    "BusinessRejection",
    "UnknownServerFailure",
    "GeofenceViolation",
    "LocationUnavailable",
    "LocationPermissionDenied",
    "CameraUnavailable",
]
