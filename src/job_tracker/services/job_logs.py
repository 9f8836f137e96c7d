"""Persistence interface for job log documents."""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

from job_tracker.domain.jobs import STATUS_COMPLETED, STATUS_IN_PROGRESS

JOB_LOGS_TABLE = "job_logs"


@dataclass(frozen=True)
class StoredDocument:
    """A raw document as returned by the store, before validation."""

    id: str
    data: dict[str, object]


@dataclass(frozen=True)
class JobLogQuery:
    """Filtered, optionally ordered query over job logs."""

    status: str
    user_id: str | None = None
    order_by: str | None = None
    descending: bool = True
    limit: int | None = None


class Subscription(Protocol):
    """Handle for a live query."""

    def cancel(self) -> None:
        """Stop receiving updates."""


DocumentsCallback = Callable[[list[StoredDocument]], None]
ErrorCallback = Callable[[Exception], None]


class JobLogRepository(Protocol):
    """Realtime document store holding job sessions."""

    async def create(self, document: dict[str, object]) -> str:
        """Create a document and return its id."""

    async def update(self, job_id: str, changes: dict[str, object]) -> None:
        """Apply a partial update to a document."""

    async def append_photo(self, job_id: str, photo: dict[str, object]) -> None:
        """Add a photo to a document without rewriting the photo list."""

    async def fetch(self, query: JobLogQuery) -> list[StoredDocument]:
        """Run a query once."""

    def subscribe(
        self,
        query: JobLogQuery,
        on_change: DocumentsCallback,
        on_error: ErrorCallback,
    ) -> Subscription:
        """Deliver the query's document set now and after every change.

        After ``on_error`` is called the subscription delivers nothing more.
        """


def active_session_query(user_id: str) -> JobLogQuery:
    """The user's open session, newest first."""
    return JobLogQuery(
        status=STATUS_IN_PROGRESS,
        user_id=user_id,
        order_by="start_time",
        limit=1,
    )


def recent_completed_query(user_id: str, limit: int) -> JobLogQuery:
    """Completed sessions ordered server-side by end time."""
    return JobLogQuery(
        status=STATUS_COMPLETED,
        user_id=user_id,
        order_by="end_time",
        limit=limit,
    )


def completed_fallback_query(user_id: str, limit: int) -> JobLogQuery:
    """Unordered sample of completed sessions, sorted by the caller."""
    return JobLogQuery(status=STATUS_COMPLETED, user_id=user_id, limit=limit)
