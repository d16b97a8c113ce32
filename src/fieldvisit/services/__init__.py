"""Endpoint services for the visit backend"""

from fieldvisit.services.auth import AuthService, AuthSession
from fieldvisit.services.outlets import OutletService
from fieldvisit.services.visits import VisitService

__all__ = ["AuthService", "AuthSession", "OutletService", "VisitService"]
