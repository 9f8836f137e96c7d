"""Supabase Storage upload client."""

from collections.abc import AsyncIterator
from dataclasses import dataclass
from urllib.parse import quote

import httpx

from job_tracker.services.photos import BlobStore, ProgressCallback

_CHUNK_SIZE = 256 * 1024


@dataclass
class HttpxBlobStore(BlobStore):
    """Uploads objects to Supabase Storage, reporting per-chunk progress."""

    base_url: str
    service_key: str
    bucket: str
    http_client: httpx.AsyncClient
    chunk_size: int = _CHUNK_SIZE

    @classmethod
    def create(cls, base_url: str, service_key: str, bucket: str) -> "HttpxBlobStore":
        """Create a blob store with a managed httpx session."""
        return cls(
            base_url=base_url.rstrip("/"),
            service_key=service_key,
            bucket=bucket,
            http_client=httpx.AsyncClient(),
        )

    async def upload(
        self,
        path: str,
        data: bytes,
        content_type: str,
        on_progress: ProgressCallback | None = None,
    ) -> str:
        """Upload bytes to the bucket and return the object's public URL."""
        total = len(data)

        async def body() -> AsyncIterator[bytes]:
            sent = 0
            for start in range(0, total, self.chunk_size):
                chunk = data[start : start + self.chunk_size]
                yield chunk
                sent += len(chunk)
                if on_progress is not None:
                    on_progress(sent / total)

        response = await self.http_client.post(
            f"{self.base_url}/storage/v1/object/{self.bucket}/{quote(path)}",
            content=body(),
            headers={
                "Authorization": f"Bearer {self.service_key}",
                "apikey": self.service_key,
                "Content-Type": content_type,
                "Content-Length": str(total),
                "x-upsert": "false",
            },
            timeout=60,
        )
        response.raise_for_status()
        if on_progress is not None:
            on_progress(1.0)
        return self.public_url(path)

    def public_url(self, path: str) -> str:
        """Durable URL for an uploaded object."""
        return f"{self.base_url}/storage/v1/object/public/{self.bucket}/{quote(path)}"

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()
