"""
Client settings loaded from FIELDVISIT_* environment variables
"""

from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from fieldvisit.models import VisitType


class Settings(BaseSettings):
    """Configuration for the field visit client"""

    model_config = SettingsConfigDict(
        env_prefix="FIELDVISIT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Service identification
    service_name: str = Field(
        default="fieldvisit",
        description="Name used to tag log records",
    )
    environment: str = Field(
        default="development",
        description="Deployment environment",
    )

    # Logging configuration
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(
        default="json", description="Log format: json or text"
    )

    # API configuration
    api_base_url: str = Field(
        default="http://localhost:8000/api",
        description="Base URL of the visit backend",
    )
    api_timeout: float = Field(
        default=10.0, description="Timeout for regular API calls in seconds"
    )
    upload_timeout: float = Field(
        default=30.0, description="Timeout for multipart uploads in seconds"
    )

    # Retry configuration
    retry_max_attempts: int = Field(
        default=3, description="Total attempts per call, first one included"
    )
    retry_base_delay: float = Field(
        default=1.0, description="Backoff base delay in seconds"
    )
    retry_statuses: List[int] = Field(
        default=[408, 429, 500, 502, 503, 504],
        description="HTTP statuses that are retried",
    )

    # GET de-duplication
    dedup_ttl: float = Field(
        default=1.0,
        description="Seconds a settled GET stays shared before it is dropped",
    )

    # Session handling
    logout_path: str = Field(
        default="/logout", description="Endpoint that never triggers auto logout"
    )
    logout_delay: float = Field(
        default=0.1,
        description="Delay before session-expired listeners are notified",
    )

    # Visit workflow configuration
    geofence_fallback_radius: int = Field(
        default=100,
        description="Radius in metres used when an outlet has none configured",
    )
    checkin_visit_type: VisitType = Field(
        default=VisitType.EXTRACALL,
        description="Visit type a new check-in starts with: PLANNED or EXTRACALL",
    )
    photo_max_width: int = Field(default=480, description="Max photo width")
    photo_quality: int = Field(default=50, description="JPEG quality 1-95")

    @field_validator("api_timeout", "upload_timeout", "logout_delay", "dedup_ttl")
    @classmethod
    def _non_negative(cls, value: float) -> float:
        if value < 0:
            raise ValueError(f"must not be negative, got: {value}")
        return value

    @field_validator("retry_max_attempts")
    @classmethod
    def _at_least_one_attempt(cls, value: int) -> int:
        if value < 1:
            raise ValueError("retry_max_attempts must be >= 1")
        return value

    @field_validator("photo_quality")
    @classmethod
    def _jpeg_quality(cls, value: int) -> int:
        if not (1 <= value <= 95):
            raise ValueError("photo_quality must be between 1 and 95")
        return value

    @field_validator("api_base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")
