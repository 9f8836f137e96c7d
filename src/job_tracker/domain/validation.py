"""Boundary validation for job log documents read from the store.

Remote documents may be partially written, written by older clients, or edited
by hand. Decoding never raises: it yields either a typed ``JobSession`` or the
list of issues found, and ``salvage_job_session`` extracts whatever is usable
from a document that failed to decode.
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Literal

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    ValidatorFunctionWrapHandler,
    field_validator,
    model_validator,
)

from job_tracker.domain.jobs import (
    STATUS_COMPLETED,
    STATUS_IN_PROGRESS,
    GeoPoint,
    JobDetails,
    JobPhoto,
    JobSession,
    PhotoKind,
)


def _coerce_timestamp(value: object) -> object:
    """Accept ISO strings, epoch numbers, datetimes and ``{"seconds": n}`` maps."""
    if isinstance(value, dict) and isinstance(value.get("seconds"), int | float):
        return datetime.fromtimestamp(value["seconds"], tz=UTC)
    return value


def _ensure_aware(value: datetime | None) -> datetime | None:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


class GeoPointDocument(BaseModel):
    """Stored shape of a captured position."""

    model_config = ConfigDict(extra="ignore")

    lat: float
    lng: float
    accuracy_m: float | None = None
    captured_at: datetime | None = None

    @model_validator(mode="before")
    @classmethod
    def _legacy_accuracy(cls, data: object) -> object:
        if isinstance(data, dict) and "accuracy_m" not in data and "accuracyM" in data:
            return {**data, "accuracy_m": data["accuracyM"]}
        return data

    @field_validator("captured_at", mode="before")
    @classmethod
    def _timestamp(cls, value: object) -> object:
        return _coerce_timestamp(value)

    @field_validator("captured_at")
    @classmethod
    def _aware(cls, value: datetime | None) -> datetime | None:
        return _ensure_aware(value)


class JobPhotoDocument(BaseModel):
    """Stored shape of a photo entry."""

    model_config = ConfigDict(extra="ignore")

    url: str = Field(min_length=1)
    kind: PhotoKind = "unsorted"
    uploaded_at: datetime | None = None

    @field_validator("kind", mode="wrap")
    @classmethod
    def _kind_or_unsorted(
        cls, value: object, handler: ValidatorFunctionWrapHandler
    ) -> PhotoKind:
        try:
            return handler(value)
        except ValidationError:
            return "unsorted"

    @field_validator("uploaded_at", mode="wrap")
    @classmethod
    def _uploaded_at_or_none(
        cls, value: object, handler: ValidatorFunctionWrapHandler
    ) -> datetime | None:
        try:
            return _ensure_aware(handler(_coerce_timestamp(value)))
        except ValidationError:
            return None


class JobLogDocument(BaseModel):
    """Stored shape of a job log document."""

    model_config = ConfigDict(extra="ignore")

    user_id: str = Field(min_length=1)
    status: Literal["in_progress", "completed"] | None = None
    start_time: datetime | None = None
    end_time: datetime | None = None
    job_type: str | None = None
    site_name: str | None = None
    address: str | None = None
    contact_name: str | None = None
    contact_phone: str | None = None
    notes: str | None = None
    start_location: GeoPointDocument | None = None
    end_location: GeoPointDocument | None = None
    photos: list[JobPhotoDocument] = Field(default_factory=list)
    client_token: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _legacy_type(cls, data: object) -> object:
        if isinstance(data, dict) and not data.get("job_type") and data.get("type"):
            return {**data, "job_type": data["type"]}
        return data

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def _timestamps(cls, value: object) -> object:
        return _coerce_timestamp(value)

    @field_validator("start_time", "end_time")
    @classmethod
    def _aware(cls, value: datetime | None) -> datetime | None:
        return _ensure_aware(value)

    @field_validator("photos", mode="before")
    @classmethod
    def _normalize_photos(cls, value: object) -> object:
        if value is None:
            return []
        if not isinstance(value, list):
            return value
        return [entry for entry in map(_photo_entry, value) if entry is not None]


@dataclass(frozen=True)
class Decoded:
    """Successful decode."""

    value: JobSession
    ok: Literal[True] = True


@dataclass(frozen=True)
class DecodeFailure:
    """Failed decode with human-readable issues."""

    issues: list[str]
    ok: Literal[False] = False


DecodeResult = Decoded | DecodeFailure


def decode_job_session(doc_id: str, raw: object) -> DecodeResult:
    """Decode a stored document into a ``JobSession`` or a list of issues."""
    if not isinstance(raw, dict):
        return DecodeFailure(issues=["(root): expected an object"])
    try:
        document = JobLogDocument.model_validate(raw)
    except ValidationError as exc:
        return DecodeFailure(issues=format_issues(exc))
    return Decoded(value=_to_session(doc_id, document))


def format_issues(exc: ValidationError) -> list[str]:
    """Render pydantic errors as ``path: message`` strings."""
    issues = []
    for error in exc.errors():
        path = ".".join(str(part) for part in error["loc"]) or "(root)"
        issues.append(f"{path}: {error['msg']}")
    return issues


def salvage_job_session(doc_id: str, raw: object) -> JobSession:
    """Extract every usable field from a document that failed to decode."""
    data = raw if isinstance(raw, dict) else {}
    start_time = _read_timestamp(data.get("start_time"))
    end_time = _read_timestamp(data.get("end_time"))
    status = data.get("status")
    if status not in {STATUS_IN_PROGRESS, STATUS_COMPLETED}:
        status = STATUS_COMPLETED if end_time else STATUS_IN_PROGRESS
    photos = []
    raw_photos = data.get("photos")
    for entry in raw_photos if isinstance(raw_photos, list) else []:
        normalized = _photo_entry(entry)
        if normalized is None:
            continue
        try:
            photos.append(_to_photo(JobPhotoDocument.model_validate(normalized)))
        except ValidationError:
            continue
    return JobSession(
        id=doc_id,
        user_id=_read_str(data, "user_id"),
        status=status,
        start_time=start_time,
        end_time=end_time,
        job_type=_read_str(data, "job_type") or _read_str(data, "type"),
        details=JobDetails(
            site_name=_read_str(data, "site_name"),
            address=_read_str(data, "address"),
            contact_name=_read_str(data, "contact_name"),
            contact_phone=_read_str(data, "contact_phone"),
            notes=_read_str(data, "notes"),
        ),
        start_location=_read_location(data.get("start_location")),
        end_location=_read_location(data.get("end_location")),
        photos=tuple(photos),
        client_token=_read_str(data, "client_token") or None,
    )


def _photo_entry(entry: object) -> dict[str, object] | None:
    """Bare strings are legacy URL-only photos; entries without a URL are unusable."""
    if isinstance(entry, str):
        return {"url": entry, "kind": "unsorted"} if entry else None
    if isinstance(entry, dict) and isinstance(entry.get("url"), str) and entry["url"]:
        return entry
    return None


def _to_session(doc_id: str, document: JobLogDocument) -> JobSession:
    status = document.status
    if status is None:
        status = STATUS_COMPLETED if document.end_time else STATUS_IN_PROGRESS
    return JobSession(
        id=doc_id,
        user_id=document.user_id,
        status=status,
        start_time=document.start_time,
        end_time=document.end_time,
        job_type=document.job_type or "",
        details=JobDetails(
            site_name=document.site_name or "",
            address=document.address or "",
            contact_name=document.contact_name or "",
            contact_phone=document.contact_phone or "",
            notes=document.notes or "",
        ),
        start_location=_to_location(document.start_location),
        end_location=_to_location(document.end_location),
        photos=tuple(_to_photo(photo) for photo in document.photos),
        client_token=document.client_token,
    )


def _to_photo(document: JobPhotoDocument) -> JobPhoto:
    return JobPhoto(
        url=document.url, kind=document.kind, uploaded_at=document.uploaded_at
    )


def _to_location(document: GeoPointDocument | None) -> GeoPoint | None:
    if document is None:
        return None
    return GeoPoint(
        lat=document.lat,
        lng=document.lng,
        accuracy_m=document.accuracy_m,
        captured_at=document.captured_at or datetime.fromtimestamp(0, tz=UTC),
    )


def _read_str(data: dict, key: str) -> str:
    value = data.get(key)
    return value if isinstance(value, str) else ""


def _read_timestamp(value: object) -> datetime | None:
    value = _coerce_timestamp(value)
    if isinstance(value, datetime):
        return _ensure_aware(value)
    if isinstance(value, str) and value:
        try:
            return _ensure_aware(datetime.fromisoformat(value))
        except ValueError:
            return None
    return None


def _read_location(value: object) -> GeoPoint | None:
    if not isinstance(value, dict):
        return None
    try:
        return _to_location(GeoPointDocument.model_validate(value))
    except ValidationError:
        return None
