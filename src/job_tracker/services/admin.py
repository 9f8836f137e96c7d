"""Admin overview of job sessions across technicians."""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime

from job_tracker.domain.jobs import (
    STATUS_COMPLETED,
    STATUS_IN_PROGRESS,
    JobSession,
    format_duration,
)
from job_tracker.domain.validation import decode_job_session, salvage_job_session
from job_tracker.services.job_logs import JobLogQuery, JobLogRepository, StoredDocument

logger = logging.getLogger(__name__)

_EPOCH = datetime.min.replace(tzinfo=UTC)


@dataclass
class AdminService:
    """Service for the admin dashboard.

    Queries filter by status only and are sorted here, so they need no
    composite index.
    """

    repository: JobLogRepository

    async def list_active_jobs(
        self, search: str | None = None
    ) -> list[dict[str, object]]:
        """Return open sessions, most recently started first."""
        sessions = await self._load(STATUS_IN_PROGRESS, search)
        sessions.sort(key=lambda session: session.start_time or _EPOCH, reverse=True)
        now = datetime.now(tz=UTC)
        return [_serialize(session, now) for session in sessions]

    async def list_completed_jobs(
        self, search: str | None = None, limit: int = 100
    ) -> list[dict[str, object]]:
        """Return completed sessions, most recently finished first."""
        sessions = await self._load(STATUS_COMPLETED, search)
        sessions.sort(key=lambda session: session.end_time or _EPOCH, reverse=True)
        now = datetime.now(tz=UTC)
        return [_serialize(session, now) for session in sessions[:limit]]

    async def _load(self, status: str, search: str | None) -> list[JobSession]:
        documents = await self.repository.fetch(JobLogQuery(status=status))
        sessions = [_decode(document) for document in documents]
        if search and search.strip():
            needle = search.strip().lower()
            sessions = [session for session in sessions if _matches(session, needle)]
        return sessions


def _decode(document: StoredDocument) -> JobSession:
    result = decode_job_session(document.id, document.data)
    if result.ok:
        return result.value
    logger.warning("Invalid job log shape for %s: %s", document.id, result.issues)
    return salvage_job_session(document.id, document.data)


def _matches(session: JobSession, needle: str) -> bool:
    haystack = (
        session.user_id,
        session.job_type,
        session.details.site_name,
        session.details.address,
        session.details.contact_name,
    )
    return any(needle in value.lower() for value in haystack)


def _serialize(session: JobSession, now: datetime) -> dict[str, object]:
    end = session.end_time or now
    duration = (
        format_duration(end - session.start_time) if session.start_time else None
    )
    return {
        "id": session.id,
        "user_id": session.user_id,
        "status": session.status,
        "job_type": session.job_type or "General",
        "start_time": session.start_time.isoformat() if session.start_time else None,
        "end_time": session.end_time.isoformat() if session.end_time else None,
        "duration": duration,
        "site_name": session.details.site_name,
        "address": session.details.address,
        "contact_name": session.details.contact_name,
        "contact_phone": session.details.contact_phone,
        "notes": session.details.notes,
        "photos": {
            kind: len(session.photos_of_kind(kind))
            for kind in ("before", "after", "unsorted")
        },
    }
