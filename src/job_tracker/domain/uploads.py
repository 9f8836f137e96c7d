"""Local-only models for clock actions and pending photo uploads."""

from dataclasses import dataclass, field
from pathlib import Path

from job_tracker.domain.jobs import ClockDirection, UploadKind


@dataclass(frozen=True)
class PhotoFile:
    """A file picked by the technician."""

    name: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass
class PreviewHandle:
    """Locally renderable preview of a pending photo."""

    path: Path | None
    released: bool = False


@dataclass
class PendingUpload:
    """A validated file waiting to be uploaded."""

    file: PhotoFile
    preview: PreviewHandle
    kind: UploadKind


@dataclass(frozen=True)
class ClockActionIntent:
    """A dispatched clock action awaiting confirmation from the subscription."""

    direction: ClockDirection
    deadline: float
    token: str
    session_id: str | None = None


@dataclass
class UploadReport:
    """Outcome of uploading one queue."""

    kind: UploadKind
    total: int
    uploaded: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
