"""Device collaborators used by the visit workflows.

Platform code provides the implementations (GPS, camera). The workflows
only depend on these protocols.
"""

from typing import Protocol, runtime_checkable

from fieldvisit.models import Coordinate


@runtime_checkable
class LocationProvider(Protocol):
    async def current_position(self) -> Coordinate:
        """Return a fresh fix.

        Raises:
            LocationPermissionDenied: permission is not granted
            LocationUnavailable: no fix could be obtained
        """
        ...


@runtime_checkable
class Camera(Protocol):
    async def capture(self, front: bool = True) -> bytes:
        """Take a picture and return the encoded image bytes.

        Raises:
            CameraUnavailable: the camera is missing or not ready
        """
        ...
