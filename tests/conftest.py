"""Shared test fixtures."""

import asyncio
import copy
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path

import pytest

from job_tracker.config import Settings
from job_tracker.containers import AppContainer
from job_tracker.domain.jobs import GeoPoint
from job_tracker.domain.uploads import PhotoFile, PreviewHandle
from job_tracker.services.admin import AdminService
from job_tracker.services.geolocation import Geolocator
from job_tracker.services.job_logs import (
    DocumentsCallback,
    ErrorCallback,
    JobLogQuery,
    JobLogRepository,
    StoredDocument,
)
from job_tracker.services.photos import BlobStore, PreviewFactory, ProgressCallback
from job_tracker.services.workspace import JobWorkspace

USER_ID = "tech-1"


async def drain(rounds: int = 5) -> None:
    """Let scheduled subscription deliveries run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@dataclass
class FakeSubscription:
    """Subscription handle returned by the in-memory repository."""

    query: JobLogQuery
    on_change: DocumentsCallback
    on_error: ErrorCallback
    active: bool = True

    def cancel(self) -> None:
        self.active = False


@dataclass
class InMemoryJobLogRepository(JobLogRepository):
    """In-memory realtime store; deliveries run on the next loop iteration."""

    documents: dict[str, dict[str, object]] = field(default_factory=dict)
    subscriptions: list[FakeSubscription] = field(default_factory=list)
    writes: list[tuple[str, object]] = field(default_factory=list)
    failing_writes: set[str] = field(default_factory=set)
    failing_orders: set[str | None] = field(default_factory=set)
    paused: bool = False
    _counter: int = 0

    async def create(self, document: dict[str, object]) -> str:
        self.writes.append(("create", copy.deepcopy(document)))
        if "create" in self.failing_writes:
            raise RuntimeError("create rejected")
        self._counter += 1
        while f"job-{self._counter}" in self.documents:
            self._counter += 1
        job_id = f"job-{self._counter}"
        self.documents[job_id] = copy.deepcopy(document)
        self.notify_subscribers()
        return job_id

    async def update(self, job_id: str, changes: dict[str, object]) -> None:
        self.writes.append(("update", (job_id, copy.deepcopy(changes))))
        if "update" in self.failing_writes:
            raise RuntimeError("update rejected")
        if job_id not in self.documents:
            raise RuntimeError(f"missing {job_id}")
        self.documents[job_id].update(copy.deepcopy(changes))
        self.notify_subscribers()

    async def append_photo(self, job_id: str, photo: dict[str, object]) -> None:
        self.writes.append(("append_photo", (job_id, copy.deepcopy(photo))))
        if "append_photo" in self.failing_writes:
            raise RuntimeError("append rejected")
        photos = self.documents[job_id].setdefault("photos", [])
        if all(entry.get("url") != photo["url"] for entry in photos):
            photos.append(copy.deepcopy(photo))
        self.notify_subscribers()

    async def fetch(self, query: JobLogQuery) -> list[StoredDocument]:
        return self.run_query(query)

    def subscribe(
        self,
        query: JobLogQuery,
        on_change: DocumentsCallback,
        on_error: ErrorCallback,
    ) -> FakeSubscription:
        subscription = FakeSubscription(query, on_change, on_error)
        self.subscriptions.append(subscription)
        asyncio.get_running_loop().call_soon(self._deliver, subscription)
        return subscription

    def run_query(self, query: JobLogQuery) -> list[StoredDocument]:
        if query.order_by in self.failing_orders:
            raise RuntimeError("The query requires an index")
        rows = [
            (job_id, data)
            for job_id, data in self.documents.items()
            if data.get("status") == query.status
            and (query.user_id is None or data.get("user_id") == query.user_id)
        ]
        if query.order_by is not None:
            rows.sort(
                key=lambda row: str(row[1].get(query.order_by) or ""),
                reverse=query.descending,
            )
        if query.limit is not None:
            rows = rows[: query.limit]
        return [
            StoredDocument(id=job_id, data=copy.deepcopy(data)) for job_id, data in rows
        ]

    def notify_subscribers(self) -> None:
        loop = asyncio.get_running_loop()
        for subscription in list(self.subscriptions):
            loop.call_soon(self._deliver, subscription)

    def resume(self) -> None:
        self.paused = False
        self.notify_subscribers()

    def active_subscriptions(self) -> list[FakeSubscription]:
        return [sub for sub in self.subscriptions if sub.active]

    def _deliver(self, subscription: FakeSubscription) -> None:
        if not subscription.active or self.paused:
            return
        try:
            documents = self.run_query(subscription.query)
        except RuntimeError as exc:
            subscription.active = False
            subscription.on_error(exc)
            return
        subscription.on_change(documents)


@dataclass
class FakeBlobStore(BlobStore):
    """Blob store that records uploads and can fail per file name."""

    uploads: dict[str, bytes] = field(default_factory=dict)
    failing_names: set[str] = field(default_factory=set)
    progress: list[float] = field(default_factory=list)

    async def upload(
        self,
        path: str,
        data: bytes,
        content_type: str,
        on_progress: ProgressCallback | None = None,
    ) -> str:
        if any(path.endswith(f"_{name}") for name in self.failing_names):
            raise RuntimeError("storage unavailable")
        for fraction in (0.5, 1.0):
            if on_progress is not None:
                on_progress(fraction)
            await asyncio.sleep(0)
        self.uploads[path] = data
        return f"https://blobs.test/{path}"


@dataclass
class FakePreviewFactory(PreviewFactory):
    """Preview factory that tracks live handles."""

    created: list[PreviewHandle] = field(default_factory=list)
    released: list[PreviewHandle] = field(default_factory=list)

    def create(self, file: PhotoFile) -> PreviewHandle:
        handle = PreviewHandle(path=Path("/previews") / file.name)
        self.created.append(handle)
        return handle

    def release(self, handle: PreviewHandle) -> None:
        self.released.append(handle)

    @property
    def live(self) -> list[PreviewHandle]:
        return [
            handle
            for handle in self.created
            if all(handle is not released for released in self.released)
        ]


@dataclass
class FakeGeolocator(Geolocator):
    """Geolocator returning a fixed position, failing, or hanging."""

    position: GeoPoint | None = field(
        default_factory=lambda: GeoPoint(
            lat=40.7128,
            lng=-74.006,
            accuracy_m=12.0,
            captured_at=datetime.now(tz=UTC),
        )
    )
    error: Exception | None = None
    delay_s: float = 0.0
    calls: int = 0

    async def current_position(self, high_accuracy: bool = True) -> GeoPoint | None:
        self.calls += 1
        if self.delay_s:
            await asyncio.sleep(self.delay_s)
        if self.error is not None:
            raise self.error
        return self.position


def image_file(
    name: str, size: int = 1024, content_type: str = "image/jpeg"
) -> PhotoFile:
    data = b"\xff\xd8\xff" + b"0" * size
    return PhotoFile(name=name, content_type=content_type, data=data)


def job_document(**overrides: object) -> dict[str, object]:
    document: dict[str, object] = {
        "user_id": USER_ID,
        "status": "in_progress",
        "start_time": "2026-10-18T08:00:00+00:00",
        "job_type": "Installation",
        "site_name": "Main St Depot",
        "address": "1 Main St",
        "contact_name": "Dana",
        "contact_phone": "555-0100",
        "notes": "Gate code 1234",
        "photos": [],
    }
    document.update(overrides)
    return document


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_service_key="service-key",
        admin_token="admin-token",
        clock_confirm_timeout_s=0.2,
        clock_safety_timeout_s=0.3,
        autosave_quiet_period_s=0.05,
        geolocation_timeout_s=0.05,
    )


@pytest.fixture
def repository() -> InMemoryJobLogRepository:
    return InMemoryJobLogRepository()


@pytest.fixture
def blob_store() -> FakeBlobStore:
    return FakeBlobStore()


@pytest.fixture
def previews() -> FakePreviewFactory:
    return FakePreviewFactory()


@pytest.fixture
def geolocator() -> FakeGeolocator:
    return FakeGeolocator()


@pytest.fixture
def workspace(
    settings: Settings,
    repository: InMemoryJobLogRepository,
    blob_store: FakeBlobStore,
    geolocator: FakeGeolocator,
    previews: FakePreviewFactory,
) -> JobWorkspace:
    return JobWorkspace.create(
        user_id=USER_ID,
        settings=settings,
        repository=repository,
        blob_store=blob_store,
        geolocator=geolocator,
        previews=previews,
    )


@dataclass
class FakeIdentityProvider:
    """Identity provider with a fixed account."""

    user_id: str | None = None

    def sign_in(self, email: str, password: str) -> str:
        if password != "secret":
            raise RuntimeError("Invalid email or password")
        self.user_id = USER_ID
        return USER_ID

    def sign_out(self) -> None:
        self.user_id = None

    def current_user_id(self) -> str | None:
        return self.user_id


@pytest.fixture
def container(
    settings: Settings,
    repository: InMemoryJobLogRepository,
    blob_store: FakeBlobStore,
    geolocator: FakeGeolocator,
    previews: FakePreviewFactory,
) -> AppContainer:
    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        job_log_repository=repository,
        blob_store=blob_store,
        geolocator=geolocator,
        preview_factory=previews,
        identity_provider=FakeIdentityProvider(),
        admin_service=AdminService(repository),
        close_resources=close_resources,
    )
