"""Data models shared by the API layer and the visit workflows"""
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class Coordinate(BaseModel):
    """Immutable latitude/longitude pair"""

    model_config = ConfigDict(frozen=True)

    latitude: float
    longitude: float
    accuracy: Optional[float] = None

    @classmethod
    def parse(cls, latlong: Optional[str]) -> Optional["Coordinate"]:
        """Parse a strict "lat,lon" string; None when it is not exactly two finite numbers"""
        if not latlong:
            return None
        parts = latlong.split(",")
        if len(parts) != 2:
            return None
        try:
            lat, lon = float(parts[0]), float(parts[1])
        except ValueError:
            return None
        if not (math.isfinite(lat) and math.isfinite(lon)):
            return None
        return cls(latitude=lat, longitude=lon)

    def to_location_string(self) -> str:
        return f"{self.latitude},{self.longitude}"


class LocationSample(BaseModel):
    """A coordinate captured by the device at a point in time"""

    model_config = ConfigDict(frozen=True)

    coordinate: Coordinate
    captured_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )


class Outlet(BaseModel):
    """Outlet fields consumed by the check-in workflow"""

    model_config = ConfigDict(extra="ignore")

    id: Union[int, str]
    name: str = ""
    code: Optional[str] = None
    location: Optional[str] = None
    # 0 means unrestricted, None falls back to the configured radius
    radius: Optional[int] = Field(default=None, ge=0)


class VisitOutlet(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Union[int, str]
    code: Optional[str] = None
    name: str = ""
    address: Optional[str] = None


class Visit(BaseModel):
    """Visit record as returned by the backend"""

    model_config = ConfigDict(extra="ignore")

    id: Union[int, str]
    visit_date: Optional[str] = None
    checkin_time: Optional[str] = None
    checkout_time: Optional[str] = None
    checkin_location: Optional[str] = None
    checkout_location: Optional[str] = None
    type: Optional[str] = None
    transaction: Optional[str] = None
    report: Optional[str] = None
    outlet: Optional[VisitOutlet] = None


class VisitType(str, Enum):
    """Whether a check-in follows a scheduled plan visit or is ad hoc"""

    PLANNED = "PLANNED"
    EXTRACALL = "EXTRACALL"


class PlanVisit(BaseModel):
    """A visit scheduled ahead for one outlet and date"""

    model_config = ConfigDict(extra="ignore")

    id: Union[int, str]
    outlet_id: Optional[Union[int, str]] = None
    visit_date: Optional[str] = None
    type: Optional[str] = None
    outlet: Optional[Outlet] = None


class Transaction(str, Enum):
    """Check-out transaction outcome"""

    YES = "YES"
    NO = "NO"


class Meta(BaseModel):
    """Envelope metadata, pagination fields included when present"""

    model_config = ConfigDict(extra="allow")

    code: int
    status: str
    message: str = ""
    current_page: Optional[int] = None
    last_page: Optional[int] = None
    total: Optional[int] = None
    per_page: Optional[int] = None


class ResponseEnvelope(BaseModel):
    """The {meta, data, errors} wrapper every backend response uses"""

    meta: Meta
    data: Any = None
    errors: Optional[Dict[str, Any]] = None

    @property
    def is_success(self) -> bool:
        return self.meta.status == "success" and self.meta.code == 200


@dataclass(frozen=True)
class UploadFile:
    filename: str
    content: bytes
    content_type: str = "image/jpeg"


@dataclass
class MultipartForm:
    """Multipart payload; sent without an explicit Content-Type header"""

    fields: Dict[str, str] = field(default_factory=dict)
    files: Dict[str, UploadFile] = field(default_factory=dict)

    def add_field(self, name: str, value: str) -> "MultipartForm":
        self.fields[name] = value
        return self

    def add_file(self, name: str, upload: UploadFile) -> "MultipartForm":
        self.files[name] = upload
        return self
