from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from ..core.enums import ShiftStatus


@dataclass(frozen=True)
class GeoPoint:
    lat: float
    lng: float

    def to_dict(self) -> dict:
        return {"lat": self.lat, "lng": self.lng}


@dataclass(frozen=True)
class EvidenceFile:
    """An evidence photo waiting to be uploaded."""

    data: bytes
    filename: str


@dataclass(frozen=True)
class ShiftRecord:
    """Domain entity: one (possibly paused) work period at one site.

    ``end_time is None`` means the session is still open.
    """

    id: str
    worker_id: str
    location_name: str
    start_time: datetime
    address: str = ""
    date: Optional[str] = None
    end_time: Optional[datetime] = None
    safety_checklist: dict[str, bool] = field(default_factory=dict)
    checklist_version: int = 3
    start_location: Optional[GeoPoint] = None
    end_location: Optional[GeoPoint] = None
    start_photo_ref: Optional[str] = None
    end_photo_ref: Optional[str] = None
    total_paused_ms: int = 0
    is_paused: bool = False
    paused_at: Optional[datetime] = None
    notes: Optional[str] = None

    @property
    def is_open(self) -> bool:
        return self.end_time is None

    @property
    def status(self) -> ShiftStatus:
        if not self.is_open:
            return ShiftStatus.CLOSED
        return ShiftStatus.PAUSED if self.is_paused else ShiftStatus.OPEN
