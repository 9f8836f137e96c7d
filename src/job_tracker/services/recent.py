"""Recent completed sessions with query degradation."""

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime

from job_tracker.domain.jobs import RecentJob
from job_tracker.domain.validation import decode_job_session, salvage_job_session
from job_tracker.services.job_logs import (
    JobLogQuery,
    JobLogRepository,
    StoredDocument,
    Subscription,
    completed_fallback_query,
    recent_completed_query,
)

logger = logging.getLogger(__name__)

_EPOCH = datetime.min.replace(tzinfo=UTC)


@dataclass
class RecentActivityFeed:
    """Live list of the user's most recently completed sessions.

    The preferred query is ordered server-side. If it fails, the feed switches
    once to an unordered, larger query and sorts client-side; callers only see
    ``degraded`` flip, never an error.
    """

    user_id: str
    repository: JobLogRepository
    limit: int = 5
    fetch_limit: int = 10
    fallback_limit: int = 200
    jobs: list[RecentJob] = field(default_factory=list, init=False)
    degraded: bool = field(default=False, init=False)
    _subscription: Subscription | None = field(default=None, init=False)
    _generation: int = field(default=0, init=False)

    def start(self) -> None:
        """Subscribe with the preferred ordered query."""
        if self._subscription is not None:
            return
        self._open(recent_completed_query(self.user_id, self.fetch_limit), False)

    def stop(self) -> None:
        """Cancel the live subscription."""
        self._generation += 1
        if self._subscription is not None:
            self._subscription.cancel()
            self._subscription = None

    def _open(self, query: JobLogQuery, fallback: bool) -> None:
        self._generation += 1
        generation = self._generation

        def on_change(documents: list[StoredDocument]) -> None:
            if generation == self._generation:
                self._on_documents(documents)

        def on_error(exc: Exception) -> None:
            self._on_query_error(exc, generation, fallback)

        try:
            subscription = self.repository.subscribe(query, on_change, on_error)
        except Exception as exc:  # noqa: BLE001
            self._on_query_error(exc, generation, fallback)
            return
        if generation == self._generation:
            self._subscription = subscription
        else:
            subscription.cancel()

    def _on_query_error(self, exc: Exception, generation: int, fallback: bool) -> None:
        if generation != self._generation:
            return
        if fallback:
            logger.warning("Recent activity fallback query failed: %s", exc)
            return
        logger.warning("Recent activity query failed, using fallback: %s", exc)
        self.degraded = True
        if self._subscription is not None:
            self._subscription.cancel()
            self._subscription = None
        self._open(completed_fallback_query(self.user_id, self.fallback_limit), True)

    def _on_documents(self, documents: list[StoredDocument]) -> None:
        jobs = [_to_recent_job(document) for document in documents]
        jobs.sort(key=lambda job: job.end_time or _EPOCH, reverse=True)
        self.jobs = jobs[: self.limit]


def _to_recent_job(document: StoredDocument) -> RecentJob:
    result = decode_job_session(document.id, document.data)
    if result.ok:
        session = result.value
    else:
        logger.debug("Salvaging recent job %s: %s", document.id, result.issues)
        session = salvage_job_session(document.id, document.data)
    return RecentJob(
        id=session.id,
        job_type=session.job_type or "General",
        start_time=session.start_time,
        end_time=session.end_time,
        photo_count=len(session.photos),
    )
