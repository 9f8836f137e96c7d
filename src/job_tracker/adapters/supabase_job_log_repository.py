"""Supabase-backed job log repository."""

import asyncio
from dataclasses import dataclass
from datetime import UTC, datetime

from supabase import Client

from job_tracker.adapters.polling_subscription import PollingSubscription
from job_tracker.services.job_logs import (
    JOB_LOGS_TABLE,
    DocumentsCallback,
    ErrorCallback,
    JobLogQuery,
    JobLogRepository,
    StoredDocument,
    Subscription,
)

APPEND_PHOTO_RPC = "append_job_photo"


@dataclass
class SupabaseJobLogRepository(JobLogRepository):
    """Supabase implementation for job log documents.

    The Supabase client is synchronous, so every call runs in a worker thread.
    """

    client: Client
    poll_interval_s: float = 2.0

    async def create(self, document: dict[str, object]) -> str:
        """Insert a job log row and return its id."""
        return await asyncio.to_thread(self._insert, document)

    async def update(self, job_id: str, changes: dict[str, object]) -> None:
        """Update columns on a job log row."""
        await asyncio.to_thread(self._update, job_id, changes)

    async def append_photo(self, job_id: str, photo: dict[str, object]) -> None:
        """Append a photo through the ``append_job_photo`` function."""
        await asyncio.to_thread(self._append_photo, job_id, photo)

    async def fetch(self, query: JobLogQuery) -> list[StoredDocument]:
        """Run a query and return raw documents."""
        return await asyncio.to_thread(self._select, query)

    def subscribe(
        self,
        query: JobLogQuery,
        on_change: DocumentsCallback,
        on_error: ErrorCallback,
    ) -> Subscription:
        """Poll ``query`` and deliver changed result sets."""
        subscription = PollingSubscription(
            fetch=lambda: self.fetch(query),
            on_change=on_change,
            on_error=on_error,
            interval_s=self.poll_interval_s,
        )
        subscription.start()
        return subscription

    def _insert(self, document: dict[str, object]) -> str:
        response = self.client.table(JOB_LOGS_TABLE).insert(document).execute()
        if not response.data:
            raise RuntimeError("Failed to create job log")
        return str(response.data[0]["id"])

    def _update(self, job_id: str, changes: dict[str, object]) -> None:
        response = (
            self.client.table(JOB_LOGS_TABLE)
            .update({**changes, "updated_at": datetime.now(tz=UTC).isoformat()})
            .eq("id", job_id)
            .execute()
        )
        if not response.data:
            raise RuntimeError(f"Job log {job_id} was not updated")

    def _append_photo(self, job_id: str, photo: dict[str, object]) -> None:
        self.client.rpc(APPEND_PHOTO_RPC, {"job_id": job_id, "photo": photo}).execute()

    def _select(self, query: JobLogQuery) -> list[StoredDocument]:
        builder = (
            self.client.table(JOB_LOGS_TABLE).select("*").eq("status", query.status)
        )
        if query.user_id is not None:
            builder = builder.eq("user_id", query.user_id)
        if query.order_by is not None:
            builder = builder.order(query.order_by, desc=query.descending)
        if query.limit is not None:
            builder = builder.limit(query.limit)
        response = builder.execute()
        return [_to_document(row) for row in response.data or []]


def _to_document(row: dict[str, object]) -> StoredDocument:
    data = dict(row)
    return StoredDocument(id=str(data.pop("id")), data=data)
