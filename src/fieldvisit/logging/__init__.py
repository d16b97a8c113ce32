"""
Structured logging setup for the fieldvisit client
"""

from fieldvisit.logging.setup import get_logger, setup_logging

__all__ = ["setup_logging", "get_logger"]
