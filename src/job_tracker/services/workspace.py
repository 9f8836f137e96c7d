"""Per-technician context wiring the synchronization components."""

from dataclasses import dataclass, field

from job_tracker.config import Settings
from job_tracker.domain.jobs import DEFAULT_JOB_TYPE, JOB_TYPES
from job_tracker.services.autosave import DetailsAutosaver
from job_tracker.services.clock import ClockActionCoordinator
from job_tracker.services.geolocation import Geolocator
from job_tracker.services.job_logs import JobLogRepository
from job_tracker.services.notifications import NotificationCenter
from job_tracker.services.photos import BlobStore, PhotoUploadPipeline, PreviewFactory
from job_tracker.services.recent import RecentActivityFeed
from job_tracker.services.session_store import SessionStore


@dataclass
class JobWorkspace:
    """Everything scoped to one signed-in technician.

    ``close`` is the single teardown path: it stops every subscription,
    cancels every timer and releases every preview.
    """

    user_id: str
    store: SessionStore
    clock: ClockActionCoordinator
    autosaver: DetailsAutosaver
    photos: PhotoUploadPipeline
    recent: RecentActivityFeed
    notifications: NotificationCenter
    job_type: str = field(default=DEFAULT_JOB_TYPE)

    @classmethod
    def create(  # noqa: PLR0913
        cls,
        user_id: str,
        settings: Settings,
        repository: JobLogRepository,
        blob_store: BlobStore,
        geolocator: Geolocator,
        previews: PreviewFactory,
    ) -> "JobWorkspace":
        """Build the components for ``user_id`` around one session store."""
        notifications = NotificationCenter()
        store = SessionStore(user_id=user_id, repository=repository)
        return cls(
            user_id=user_id,
            store=store,
            clock=ClockActionCoordinator(
                store=store,
                repository=repository,
                geolocator=geolocator,
                notifier=notifications,
                confirm_timeout_s=settings.clock_confirm_timeout_s,
                safety_timeout_s=settings.clock_safety_timeout_s,
                geolocation_timeout_s=settings.geolocation_timeout_s,
            ),
            autosaver=DetailsAutosaver(
                store=store,
                repository=repository,
                notifier=notifications,
                quiet_period_s=settings.autosave_quiet_period_s,
            ),
            photos=PhotoUploadPipeline(
                store=store,
                repository=repository,
                blob_store=blob_store,
                previews=previews,
                notifier=notifications,
                max_photo_bytes=settings.max_photo_bytes,
            ),
            recent=RecentActivityFeed(
                user_id=user_id,
                repository=repository,
                limit=settings.recent_limit,
                fetch_limit=settings.recent_fetch_limit,
                fallback_limit=settings.recent_fallback_limit,
            ),
            notifications=notifications,
        )

    def select_job_type(self, job_type: str) -> bool:
        """Choose the job type for the next clock-in."""
        if job_type not in JOB_TYPES:
            self.notifications.notify("warning", f"Unknown job type: {job_type}")
            return False
        self.job_type = job_type
        return True

    def start(self) -> None:
        """Open the live subscriptions."""
        self.store.start()
        self.recent.start()

    async def clock_in(self) -> bool:
        """Clock in with the selected job type and the current detail drafts."""
        return await self.clock.clock_in(self.job_type, self.autosaver.details)

    async def clock_out(self) -> bool:
        """Clock out of the open session."""
        return await self.clock.clock_out()

    def close(self) -> None:
        """Tear down subscriptions, timers and previews."""
        self.store.stop()
        self.recent.stop()
        self.clock.close()
        self.autosaver.close()
        self.photos.close()
