"""Clock-in/clock-out state machine.

A clock action is confirmed by the active-session subscription, not by the
write's acknowledgement. Two timers keep the control from staying disabled
when the subscription is slow or silent: the confirmation deadline resolves
the action with a connectivity warning, and the safety deadline clears the
submitting flag no matter what.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from uuid import uuid4

from job_tracker.domain.jobs import (
    STATUS_COMPLETED,
    STATUS_IN_PROGRESS,
    ClockDirection,
    JobDetails,
    JobSession,
)
from job_tracker.domain.uploads import ClockActionIntent
from job_tracker.services.geolocation import Geolocator, capture_location
from job_tracker.services.job_logs import JobLogRepository
from job_tracker.services.notifications import Notifier
from job_tracker.services.session_store import SessionStore

logger = logging.getLogger(__name__)

SYNC_TIMEOUT_MESSAGE = "Sync is taking too long. Check your connection and try again."


class ClockPhase(StrEnum):
    """Lifecycle of a clock action."""

    IDLE = "idle"
    PENDING = "pending"
    RESOLVED = "resolved"


@dataclass
class ClockActionCoordinator:
    """Drives clock-in and clock-out intents to confirmation or timeout."""

    store: SessionStore
    repository: JobLogRepository
    geolocator: Geolocator
    notifier: Notifier
    confirm_timeout_s: float = 15.0
    safety_timeout_s: float = 20.0
    geolocation_timeout_s: float = 8.0
    phase: ClockPhase = field(default=ClockPhase.IDLE, init=False)
    intent: ClockActionIntent | None = field(default=None, init=False)
    submitting: bool = field(default=False, init=False)
    _confirm_timer: asyncio.TimerHandle | None = field(default=None, init=False)
    _safety_timer: asyncio.TimerHandle | None = field(default=None, init=False)
    _closed_session_ids: set[str] = field(default_factory=set, init=False)
    _latest_intent: ClockActionIntent | None = field(default=None, init=False)

    def __post_init__(self) -> None:
        self.store.add_listener(self._on_session)

    @property
    def can_clock_in(self) -> bool:
        return not self.submitting and self._open_session() is None

    @property
    def can_clock_out(self) -> bool:
        return not self.submitting and self._open_session() is not None

    async def clock_in(self, job_type: str, details: JobDetails | None = None) -> bool:
        """Create a new in-progress session. Returns False if nothing was written."""
        if self.submitting:
            return False
        if self._open_session() is not None:
            self.notifier.notify("warning", "You are already clocked in.")
            return False
        intent = self._begin("in", session_id=None)
        location = await capture_location(self.geolocator, self.geolocation_timeout_s)
        if self.intent is not intent:
            return False
        if self._open_session() is not None:
            self._resolve()
            self.notifier.notify("warning", "You are already clocked in.")
            return False

        document: dict[str, object] = {
            "user_id": self.store.user_id,
            "status": STATUS_IN_PROGRESS,
            "start_time": datetime.now(tz=UTC).isoformat(),
            "job_type": job_type,
            **(details or JobDetails()).to_document(),
            "start_location": location.to_document() if location else None,
            "photos": [],
            "client_token": intent.token,
        }
        try:
            job_id = await self.repository.create(document)
        except Exception:
            logger.exception("Error clocking in")
            self._fail(intent, "Failed to clock in. Please try again.")
            return False
        logger.info("Clock-in written as %s", job_id)
        return True

    async def clock_out(self) -> bool:
        """Complete the open session. Returns False if nothing was written."""
        if self.submitting:
            return False
        session = self._open_session()
        if session is None:
            self.notifier.notify("warning", "There is no active job to clock out of.")
            return False
        intent = self._begin("out", session_id=session.id)
        location = await capture_location(self.geolocator, self.geolocation_timeout_s)
        if self.intent is not intent:
            return False

        end_time = datetime.now(tz=UTC)
        if session.start_time is not None:
            end_time = max(end_time, session.start_time)
        changes: dict[str, object] = {
            "status": STATUS_COMPLETED,
            "end_time": end_time.isoformat(),
            "end_location": location.to_document() if location else None,
        }
        try:
            await self.repository.update(session.id, changes)
        except Exception:
            logger.exception("Error clocking out of %s", session.id)
            self._fail(intent, "Failed to clock out. Please try again.")
            return False
        self._closed_session_ids.add(session.id)
        return True

    def close(self) -> None:
        """Cancel timers and drop any pending intent."""
        self._cancel_timers()
        self.intent = None
        self._latest_intent = None
        self.submitting = False
        self.phase = ClockPhase.IDLE

    def _open_session(self) -> JobSession | None:
        """The observed open session, ignoring ones this device already closed."""
        session = self.store.active_session
        if session is None or session.id in self._closed_session_ids:
            return None
        return session

    def _begin(
        self, direction: ClockDirection, session_id: str | None
    ) -> ClockActionIntent:
        loop = asyncio.get_running_loop()
        intent = ClockActionIntent(
            direction=direction,
            deadline=loop.time() + self.confirm_timeout_s,
            token=uuid4().hex,
            session_id=session_id,
        )
        self._cancel_timers()
        self.intent = intent
        self._latest_intent = intent
        self.phase = ClockPhase.PENDING
        self.submitting = True
        self._confirm_timer = loop.call_later(
            self.confirm_timeout_s, self._on_confirm_timeout, intent
        )
        self._safety_timer = loop.call_later(
            self.safety_timeout_s, self._on_safety_timeout
        )
        return intent

    def _on_session(self, session: JobSession | None) -> None:
        if session is None:
            self._closed_session_ids.clear()
        intent = self.intent
        if intent is None:
            return
        if intent.direction == "in":
            if session is not None and session.client_token == intent.token:
                self._resolve()
                self.notifier.notify("success", "Successfully clocked in!")
        elif session is None or session.id != intent.session_id:
            self._resolve()
            self.notifier.notify("success", "Successfully clocked out!")

    def _on_confirm_timeout(self, intent: ClockActionIntent) -> None:
        self._confirm_timer = None
        if self.intent is not intent:
            return
        logger.warning("Clock-%s not confirmed before deadline", intent.direction)
        self._resolve()
        self.notifier.notify("warning", SYNC_TIMEOUT_MESSAGE)

    def _on_safety_timeout(self) -> None:
        self._safety_timer = None
        if not self.submitting:
            return
        logger.warning("Clearing stuck clock action")
        if self._confirm_timer is not None:
            self._confirm_timer.cancel()
            self._confirm_timer = None
        self.intent = None
        self.submitting = False
        self.phase = ClockPhase.RESOLVED

    def _fail(self, intent: ClockActionIntent, message: str) -> None:
        if self._latest_intent is not intent:
            logger.warning(
                "Clock-%s write failed after a newer action", intent.direction
            )
            return
        if self.intent is intent:
            self._resolve()
        self.notifier.notify("error", message)

    def _resolve(self) -> None:
        self._cancel_timers()
        self.intent = None
        self.submitting = False
        self.phase = ClockPhase.RESOLVED

    def _cancel_timers(self) -> None:
        for timer in (self._confirm_timer, self._safety_timer):
            if timer is not None:
                timer.cancel()
        self._confirm_timer = None
        self._safety_timer = None
