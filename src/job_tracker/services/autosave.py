"""Debounced persistence of editable job details."""

import asyncio
import logging
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime

from job_tracker.domain.jobs import JobDetails, JobSession
from job_tracker.services.job_logs import JobLogRepository
from job_tracker.services.notifications import Notifier
from job_tracker.services.session_store import SessionStore

logger = logging.getLogger(__name__)


@dataclass
class DetailsAutosaver:
    """Coalesces rapid edits into one write after a quiet period."""

    store: SessionStore
    repository: JobLogRepository
    notifier: Notifier
    quiet_period_s: float = 1.0
    details: JobDetails = field(default_factory=JobDetails, init=False)
    dirty: bool = field(default=False, init=False)
    is_saving: bool = field(default=False, init=False)
    last_saved_at: datetime | None = field(default=None, init=False)
    last_error: str | None = field(default=None, init=False)
    _timer: asyncio.TimerHandle | None = field(default=None, init=False)
    _task: asyncio.Task[bool] | None = field(default=None, init=False)
    _session_id: str | None = field(default=None, init=False)

    def __post_init__(self) -> None:
        self.store.add_listener(self._on_session)

    def edit(self, **changes: str) -> None:
        """Apply field edits locally and restart the quiet period."""
        self.details = replace(self.details, **changes)
        self.dirty = True
        self._schedule()

    async def save(self, silent: bool = False) -> bool:
        """Write the current details to the open session."""
        session_id = self.store.active_session_id
        if session_id is None or self.is_saving:
            return False
        self.is_saving = True
        self.last_error = None
        snapshot = self.details
        try:
            await self.repository.update(session_id, snapshot.to_document())
        except Exception:
            logger.exception("Error saving job details for %s", session_id)
            self.last_error = "Failed to save"
            if not silent:
                self.notifier.notify("error", "Failed to save details")
            return False
        finally:
            self.is_saving = False

        self.last_saved_at = datetime.now(tz=UTC)
        if self.details == snapshot:
            self.dirty = False
        elif self.store.active_session_id == session_id:
            self._schedule()
        if not silent:
            self.notifier.notify("success", "Job details saved")
        return True

    def close(self) -> None:
        """Cancel the pending autosave and any in-flight write."""
        self._cancel_timer()
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    def _schedule(self) -> None:
        self._cancel_timer()
        if self.store.active_session_id is None:
            return
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self.quiet_period_s, self._on_quiet_period)

    def _on_quiet_period(self) -> None:
        self._timer = None
        if self.is_saving:
            logger.debug("Skipping autosave while a save is in flight")
            return
        self._task = asyncio.get_running_loop().create_task(self.save(silent=True))

    def _on_session(self, session: JobSession | None) -> None:
        if session is None:
            self._cancel_timer()
            self.details = JobDetails()
            self.dirty = False
            self.last_error = None
            self.last_saved_at = None
            self._session_id = None
            return
        if session.id != self._session_id:
            self._cancel_timer()
            self._session_id = session.id
            self.details = session.details
            self.dirty = False
            self.last_saved_at = None
            self.last_error = None
            return
        if not self.dirty:
            self.details = session.details

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
