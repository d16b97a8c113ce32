"""
Configuration for the fieldvisit client
"""

from fieldvisit.config.settings import Settings

__all__ = ["Settings"]
