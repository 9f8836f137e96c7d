"""Photo selection and upload pipeline."""

import logging
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Protocol

from job_tracker.domain.jobs import UPLOAD_KINDS, JobPhoto, JobSession, UploadKind
from job_tracker.domain.uploads import (
    PendingUpload,
    PhotoFile,
    PreviewHandle,
    UploadReport,
)
from job_tracker.services.job_logs import JobLogRepository
from job_tracker.services.notifications import Notifier
from job_tracker.services.session_store import SessionStore

logger = logging.getLogger(__name__)

MAX_PHOTO_BYTES = 10 * 1024 * 1024
PHOTO_ROOT = "job-photos"

ProgressCallback = Callable[[float], None]


class BlobStore(Protocol):
    """Interface for durable binary storage."""

    async def upload(
        self,
        path: str,
        data: bytes,
        content_type: str,
        on_progress: ProgressCallback | None = None,
    ) -> str:
        """Upload bytes to ``path`` and return a durable URL."""


class PreviewFactory(Protocol):
    """Interface for locally renderable previews."""

    def create(self, file: PhotoFile) -> PreviewHandle:
        """Create a preview for a selected file."""

    def release(self, handle: PreviewHandle) -> None:
        """Free the resources held by a preview."""


def validate_photo_file(
    file: PhotoFile, max_bytes: int = MAX_PHOTO_BYTES
) -> str | None:
    """Return a rejection message, or None when the file is acceptable."""
    if file.size > max_bytes:
        return f"{file.name} is too large. Max {max_bytes // (1024 * 1024)}MB."
    if not file.content_type.startswith("image/"):
        return f"{file.name} is an invalid file type. Images only."
    return None


def photo_path(session_id: str, kind: UploadKind, filename: str, epoch_ms: int) -> str:
    """Blob path for an uploaded photo."""
    safe_name = filename.replace("/", "_").replace("\\", "_")
    return f"{PHOTO_ROOT}/{session_id}/{kind}/{epoch_ms}_{safe_name}"


@dataclass
class PhotoUploadPipeline:
    """Queues validated photos per kind and uploads them one at a time.

    Uploaded photos are not inserted into local state: the session store
    subscription is the only path by which a new photo becomes visible.
    """

    store: SessionStore
    repository: JobLogRepository
    blob_store: BlobStore
    previews: PreviewFactory
    notifier: Notifier
    max_photo_bytes: int = MAX_PHOTO_BYTES
    queues: dict[UploadKind, list[PendingUpload]] = field(
        default_factory=lambda: {kind: [] for kind in UPLOAD_KINDS}, init=False
    )
    uploading: bool = field(default=False, init=False)
    progress: float = field(default=0.0, init=False)
    _last_stamp: int = field(default=0, init=False)
    _session_id: str | None = field(default=None, init=False)

    def __post_init__(self) -> None:
        self.store.add_listener(self._on_session)

    def select(
        self, files: Iterable[PhotoFile], kind: UploadKind
    ) -> list[PendingUpload]:
        """Validate files and queue the acceptable ones."""
        if self.store.active_session_id is None:
            self.notifier.notify("warning", "Clock in before adding photos.")
            return []
        accepted = []
        for file in files:
            problem = validate_photo_file(file, self.max_photo_bytes)
            if problem:
                self.notifier.notify("error", problem)
                continue
            accepted.append(
                PendingUpload(file=file, preview=self.previews.create(file), kind=kind)
            )
        self.queues[kind].extend(accepted)
        return accepted

    def remove(self, kind: UploadKind, index: int) -> PendingUpload | None:
        """Drop one queued photo and release its preview."""
        queue = self.queues[kind]
        if not 0 <= index < len(queue):
            return None
        item = queue.pop(index)
        self._release(item)
        return item

    def clear(self, kind: UploadKind) -> None:
        """Drop every queued photo of a kind."""
        items, self.queues[kind] = self.queues[kind], []
        for item in items:
            self._release(item)

    async def upload(self, kind: UploadKind) -> UploadReport | None:
        """Upload the queue for ``kind`` sequentially, skipping failed files."""
        if self.uploading:
            return None
        pending = list(self.queues[kind])
        report = UploadReport(kind=kind, total=len(pending))
        if not pending:
            return report
        batch_session_id = self.store.active_session_id
        if batch_session_id is None:
            self.notifier.notify("error", "There is no active job for these photos.")
            return None

        self.uploading = True
        self.progress = 0.0
        try:
            for index, item in enumerate(pending):
                if self.store.active_session_id != batch_session_id:
                    self.notifier.notify(
                        "warning", "The job was closed before all photos were uploaded."
                    )
                    report.failed.extend(rest.file.name for rest in pending[index:])
                    break
                if item.preview.released:
                    continue
                url = await self._upload_one(
                    batch_session_id, item, index, len(pending)
                )
                if url is None:
                    report.failed.append(item.file.name)
                else:
                    report.uploaded.append(url)
                self.progress = (index + 1) / len(pending)
        finally:
            self._discard(kind, pending)
            self.uploading = False
            self.progress = 0.0

        if report.uploaded:
            self.notifier.notify(
                "success",
                f"Uploaded {len(report.uploaded)} photos!"
                if len(report.uploaded) > 1
                else "Photo uploaded!",
            )
        if report.failed:
            self.notifier.notify(
                "warning",
                f"{len(report.failed)} of {report.total} photos were not uploaded.",
            )
        return report

    def close(self) -> None:
        """Release every preview."""
        for kind in UPLOAD_KINDS:
            self.clear(kind)

    async def _upload_one(
        self, session_id: str, item: PendingUpload, index: int, total: int
    ) -> str | None:
        path = photo_path(session_id, item.kind, item.file.name, self._next_stamp())

        def on_progress(fraction: float) -> None:
            self.progress = (index + min(max(fraction, 0.0), 1.0)) / total

        try:
            url = await self.blob_store.upload(
                path, item.file.data, item.file.content_type, on_progress
            )
        except Exception:
            logger.exception("Error uploading %s", item.file.name)
            self.notifier.notify("error", f"Upload failed for {item.file.name}.")
            return None

        photo = JobPhoto(url=url, kind=item.kind, uploaded_at=datetime.now(tz=UTC))
        try:
            await self.repository.append_photo(session_id, photo.to_document())
        except Exception:
            logger.exception("Error saving photo link for %s", item.file.name)
            self.notifier.notify("error", f"Failed to save link for {item.file.name}.")
            return None
        return url

    def _next_stamp(self) -> int:
        """Millisecond timestamp, strictly increasing within this pipeline."""
        self._last_stamp = max(time.time_ns() // 1_000_000, self._last_stamp + 1)
        return self._last_stamp

    def _discard(self, kind: UploadKind, items: list[PendingUpload]) -> None:
        processed = {id(item) for item in items}
        self.queues[kind] = [
            item for item in self.queues[kind] if id(item) not in processed
        ]
        for item in items:
            self._release(item)

    def _release(self, item: PendingUpload) -> None:
        if not item.preview.released:
            self.previews.release(item.preview)
            item.preview.released = True

    def _on_session(self, session: JobSession | None) -> None:
        session_id = session.id if session else None
        if session_id != self._session_id:
            self._session_id = session_id
            self.close()
