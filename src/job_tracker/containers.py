"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from job_tracker.adapters.geolocation_client import HttpxGeolocator
from job_tracker.adapters.pillow_preview_factory import PillowPreviewFactory
from job_tracker.adapters.storage_client import HttpxBlobStore
from job_tracker.adapters.supabase_identity_provider import SupabaseIdentityProvider
from job_tracker.adapters.supabase_job_log_repository import (
    SupabaseJobLogRepository,
)
from job_tracker.config import Settings
from job_tracker.services.admin import AdminService
from job_tracker.services.geolocation import CachedGeolocator, Geolocator
from job_tracker.services.identity import IdentityProvider
from job_tracker.services.job_logs import JobLogRepository
from job_tracker.services.photos import BlobStore, PreviewFactory
from job_tracker.services.workspace import JobWorkspace


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    job_log_repository: JobLogRepository
    blob_store: BlobStore
    geolocator: Geolocator
    preview_factory: PreviewFactory
    identity_provider: IdentityProvider
    admin_service: AdminService
    close_resources: Callable[[], Awaitable[None]]

    def open_workspace(self, user_id: str) -> JobWorkspace:
        """Build the synchronization components for a signed-in technician."""
        return JobWorkspace.create(
            user_id=user_id,
            settings=self.settings,
            repository=self.job_log_repository,
            blob_store=self.blob_store,
            geolocator=self.geolocator,
            previews=self.preview_factory,
        )


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    auth_client = create_client(
        resolved_settings.supabase_url,
        resolved_settings.supabase_anon_key or resolved_settings.supabase_service_key,
    )
    job_log_repository = SupabaseJobLogRepository(
        supabase_client,
        poll_interval_s=resolved_settings.subscription_poll_interval_s,
    )
    blob_store = HttpxBlobStore.create(
        base_url=resolved_settings.supabase_url,
        service_key=resolved_settings.supabase_service_key,
        bucket=resolved_settings.photo_bucket,
    )
    geolocation_client = HttpxGeolocator.create(resolved_settings.geolocation_url)
    preview_factory = PillowPreviewFactory.create_temporary(
        resolved_settings.preview_size
    )

    async def close_resources() -> None:
        await blob_store.close()
        await geolocation_client.close()
        preview_factory.close()

    return AppContainer(
        settings=resolved_settings,
        job_log_repository=job_log_repository,
        blob_store=blob_store,
        geolocator=CachedGeolocator(
            geolocation_client, max_age_s=resolved_settings.geolocation_max_age_s
        ),
        preview_factory=preview_factory,
        identity_provider=SupabaseIdentityProvider(auth_client),
        admin_service=AdminService(job_log_repository),
        close_resources=close_resources,
    )
