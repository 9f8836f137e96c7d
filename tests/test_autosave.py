"""Tests for debounced job detail saving."""

import asyncio

from job_tracker.domain.jobs import JobDetails
from job_tracker.services.autosave import DetailsAutosaver
from job_tracker.services.notifications import NotificationCenter
from job_tracker.services.session_store import SessionStore
from tests.conftest import USER_ID, InMemoryJobLogRepository, drain, job_document


class SlowJobLogRepository(InMemoryJobLogRepository):
    """Repository whose updates take a little while."""

    async def update(self, job_id: str, changes: dict[str, object]) -> None:
        await asyncio.sleep(0.05)
        await super().update(job_id, changes)


def _updates(repository: InMemoryJobLogRepository) -> list[dict[str, object]]:
    return [payload[1] for action, payload in repository.writes if action == "update"]


def test_rapid_edits_coalesce_into_one_write(workspace, repository) -> None:
    repository.documents["job-1"] = job_document()
    autosaver = workspace.autosaver

    async def run() -> None:
        workspace.start()
        await drain()
        autosaver.edit(site_name="N")
        autosaver.edit(site_name="North")
        autosaver.edit(notes="Bring ladder")
        assert autosaver.dirty
        await asyncio.sleep(0.15)
        await drain()

    asyncio.run(run())

    updates = _updates(repository)
    assert len(updates) == 1
    assert updates[0]["site_name"] == "North"
    assert updates[0]["notes"] == "Bring ladder"
    assert updates[0]["address"] == "1 Main St"
    assert not autosaver.dirty
    assert autosaver.last_saved_at is not None
    assert workspace.notifications.messages() == []


def test_details_load_from_session_until_edited(workspace, repository) -> None:
    repository.documents["job-1"] = job_document()
    autosaver = workspace.autosaver

    async def run() -> None:
        workspace.start()
        await drain()
        assert autosaver.details.site_name == "Main St Depot"
        await repository.update("job-1", {"contact_name": "Robin"})
        await drain()
        assert autosaver.details.contact_name == "Robin"
        autosaver.edit(contact_name="Sam")
        await repository.update("job-1", {"notes": "remote"})
        await drain()
        autosaver.close()

    asyncio.run(run())

    assert autosaver.details.contact_name == "Sam"
    assert autosaver.details.notes == "Gate code 1234"


def test_save_skipped_while_another_is_in_flight() -> None:
    repository = SlowJobLogRepository()
    repository.documents["job-1"] = job_document()

    store = SessionStore(user_id=USER_ID, repository=repository)
    notifications = NotificationCenter()
    autosaver = DetailsAutosaver(
        store=store,
        repository=repository,
        notifier=notifications,
        quiet_period_s=0.05,
    )

    async def run() -> tuple[bool, bool]:
        store.start()
        await drain()
        first = asyncio.get_running_loop().create_task(autosaver.save())
        await asyncio.sleep(0)
        assert autosaver.is_saving
        second = await autosaver.save()
        autosaver.edit(notes="later")
        saved = await first
        await asyncio.sleep(0.2)
        await drain()
        autosaver.close()
        store.stop()
        return saved, second

    saved, second = asyncio.run(run())

    assert (saved, second) == (True, False)
    updates = _updates(repository)
    assert len(updates) == 2
    assert updates[-1]["notes"] == "later"
    assert notifications.messages("success") == ["Job details saved"]


def test_failed_save_records_error(workspace, repository) -> None:
    repository.documents["job-1"] = job_document()
    repository.failing_writes.add("update")
    autosaver = workspace.autosaver

    async def run() -> tuple[bool, bool]:
        workspace.start()
        await drain()
        autosaver.details = JobDetails(site_name="Depot")
        silent = await autosaver.save(silent=True)
        loud = await autosaver.save()
        return silent, loud

    silent, loud = asyncio.run(run())

    assert (silent, loud) == (False, False)
    assert autosaver.last_error == "Failed to save"
    assert workspace.notifications.messages("error") == ["Failed to save details"]


def test_edits_without_session_are_not_written(workspace, repository) -> None:
    async def run() -> bool:
        workspace.start()
        await drain()
        workspace.autosaver.edit(site_name="Draft site")
        await asyncio.sleep(0.1)
        return await workspace.autosaver.save()

    assert not asyncio.run(run())
    assert repository.writes == []
    assert workspace.autosaver.details.site_name == "Draft site"


def test_state_resets_when_session_ends(workspace, repository) -> None:
    repository.documents["job-1"] = job_document()
    autosaver = workspace.autosaver

    async def run() -> None:
        workspace.start()
        await drain()
        autosaver.edit(notes="unsaved")
        await workspace.clock_out()
        await drain()
        await asyncio.sleep(0.1)

    asyncio.run(run())

    assert autosaver.details == JobDetails()
    assert not autosaver.dirty
    assert autosaver.last_error is None
    updates = _updates(repository)
    assert len(updates) == 1
    assert updates[0]["status"] == "completed"
