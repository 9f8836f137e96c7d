"""Live view of the technician's open job session."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

from job_tracker.domain.jobs import JobPhoto, JobSession, PhotoKind, format_duration
from job_tracker.domain.validation import decode_job_session, salvage_job_session
from job_tracker.services.job_logs import (
    JobLogRepository,
    StoredDocument,
    Subscription,
    active_session_query,
)

logger = logging.getLogger(__name__)

SessionListener = Callable[[JobSession | None], None]


@dataclass
class SessionStore:
    """Subscribes to the user's in-progress session and publishes it.

    This is the only writer of the active session. Other components read
    ``active_session`` when they need it and register listeners to reset their
    own local state when the session changes or disappears.
    """

    user_id: str
    repository: JobLogRepository
    _session: JobSession | None = field(default=None, init=False)
    _loaded: bool = field(default=False, init=False)
    _listeners: list[SessionListener] = field(default_factory=list, init=False)
    _subscription: Subscription | None = field(default=None, init=False)
    _elapsed_floor: timedelta = field(default=timedelta(0), init=False)

    @property
    def active_session(self) -> JobSession | None:
        return self._session

    @property
    def active_session_id(self) -> str | None:
        return self._session.id if self._session else None

    @property
    def is_loaded(self) -> bool:
        """Whether the subscription has delivered at least once."""
        return self._loaded

    def add_listener(self, listener: SessionListener) -> None:
        """Register a callback invoked on every published session value."""
        self._listeners.append(listener)

    def start(self) -> None:
        """Open the live subscription."""
        if self._subscription is not None:
            return
        self._subscription = self.repository.subscribe(
            active_session_query(self.user_id),
            self._on_documents,
            self._on_error,
        )

    def stop(self) -> None:
        """Cancel the live subscription."""
        if self._subscription is not None:
            self._subscription.cancel()
            self._subscription = None

    def photos_by_kind(self) -> dict[PhotoKind, list[JobPhoto]]:
        """Split the open session's photos by kind."""
        grouped: dict[PhotoKind, list[JobPhoto]] = {
            "before": [],
            "after": [],
            "unsorted": [],
        }
        if self._session is not None:
            for photo in self._session.photos:
                grouped[photo.kind].append(photo)
        return grouped

    def elapsed(self, now: datetime | None = None) -> timedelta:
        """Time since clock-in; never decreases while the session stays open."""
        session = self._session
        if session is None or session.start_time is None:
            return timedelta(0)
        current = (now or datetime.now(tz=UTC)) - session.start_time
        self._elapsed_floor = max(self._elapsed_floor, current)
        return self._elapsed_floor

    def elapsed_display(self, now: datetime | None = None) -> str:
        """Elapsed time formatted as HH:MM:SS."""
        return format_duration(self.elapsed(now))

    def _on_documents(self, documents: list[StoredDocument]) -> None:
        self._loaded = True
        if not documents:
            self._publish(None)
            return
        document = documents[0]
        result = decode_job_session(document.id, document.data)
        if result.ok:
            session = result.value
        else:
            logger.warning(
                "Invalid job log shape for %s: %s",
                document.id,
                " | ".join(result.issues),
            )
            session = salvage_job_session(document.id, document.data)
        if not session.is_open:
            logger.warning("Ignoring closed session %s on active query", session.id)
            self._publish(None)
            return
        self._publish(session)

    def _on_error(self, exc: Exception) -> None:
        logger.warning("Active session subscription failed: %s", exc)

    def _publish(self, session: JobSession | None) -> None:
        if session is None or session.id != self.active_session_id:
            self._elapsed_floor = timedelta(0)
        self._session = session
        for listener in list(self._listeners):
            listener(session)
