"""Tests for container wiring."""

import asyncio

from job_tracker.adapters.supabase_job_log_repository import SupabaseJobLogRepository
from job_tracker.containers import build_container
from job_tracker.services.geolocation import CachedGeolocator


def test_build_container_creates_services(settings) -> None:
    container = build_container(settings)
    assert isinstance(container.job_log_repository, SupabaseJobLogRepository)
    assert isinstance(container.geolocator, CachedGeolocator)
    assert container.admin_service is not None
    asyncio.run(container.close_resources())


def test_open_workspace_shares_one_session_store(container) -> None:
    workspace = container.open_workspace("tech-7")

    assert workspace.user_id == "tech-7"
    assert workspace.clock.store is workspace.store
    assert workspace.autosaver.store is workspace.store
    assert workspace.photos.store is workspace.store
    assert workspace.recent.repository is container.job_log_repository
