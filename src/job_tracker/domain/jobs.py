"""Domain models for job sessions."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Literal

SessionStatus = Literal["in_progress", "completed"]
PhotoKind = Literal["before", "after", "unsorted"]
UploadKind = Literal["before", "after"]
ClockDirection = Literal["in", "out"]

STATUS_IN_PROGRESS: SessionStatus = "in_progress"
STATUS_COMPLETED: SessionStatus = "completed"
UPLOAD_KINDS: tuple[UploadKind, ...] = ("before", "after")

JOB_TYPES = (
    "Service Call",
    "Installation",
    "Preventative Maintenance",
    "Consultation",
)
DEFAULT_JOB_TYPE = "Service Call"


@dataclass(frozen=True)
class GeoPoint:
    """Best-effort device position captured at clock-in or clock-out."""

    lat: float
    lng: float
    accuracy_m: float | None
    captured_at: datetime

    def to_document(self) -> dict[str, object]:
        """Serialize into the stored document shape."""
        return {
            "lat": self.lat,
            "lng": self.lng,
            "accuracy_m": self.accuracy_m,
            "captured_at": self.captured_at.isoformat(),
        }


@dataclass(frozen=True)
class JobPhoto:
    """Photo attached to a job session."""

    url: str
    kind: PhotoKind
    uploaded_at: datetime | None = None

    def to_document(self) -> dict[str, object]:
        """Serialize into the stored document shape."""
        return {
            "url": self.url,
            "kind": self.kind,
            "uploaded_at": self.uploaded_at.isoformat() if self.uploaded_at else None,
        }


@dataclass(frozen=True)
class JobDetails:
    """Editable job metadata."""

    site_name: str = ""
    address: str = ""
    contact_name: str = ""
    contact_phone: str = ""
    notes: str = ""

    def to_document(self) -> dict[str, object]:
        """Serialize into a partial document update."""
        return {
            "site_name": self.site_name,
            "address": self.address,
            "contact_name": self.contact_name,
            "contact_phone": self.contact_phone,
            "notes": self.notes,
        }


@dataclass(frozen=True)
class JobSession:
    """One work session, as observed from the store."""

    id: str
    user_id: str
    status: SessionStatus
    start_time: datetime | None
    end_time: datetime | None = None
    job_type: str = ""
    details: JobDetails = field(default_factory=JobDetails)
    start_location: GeoPoint | None = None
    end_location: GeoPoint | None = None
    photos: tuple[JobPhoto, ...] = ()
    client_token: str | None = None

    @property
    def is_open(self) -> bool:
        return self.status == STATUS_IN_PROGRESS

    def photos_of_kind(self, kind: PhotoKind) -> list[JobPhoto]:
        """Return photos of a single kind in stored order."""
        return [photo for photo in self.photos if photo.kind == kind]


@dataclass(frozen=True)
class RecentJob:
    """Completed session summary for the recent activity list."""

    id: str
    job_type: str
    start_time: datetime | None
    end_time: datetime | None
    photo_count: int

    @property
    def duration(self) -> str:
        if self.start_time is None or self.end_time is None:
            return "N/A"
        return format_duration(self.end_time - self.start_time)


def format_duration(delta: timedelta) -> str:
    """Format a duration as HH:MM:SS, clamping negatives to zero."""
    total = max(int(delta.total_seconds()), 0)
    hours, remainder = divmod(total, 3600)
    minutes, seconds = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"
