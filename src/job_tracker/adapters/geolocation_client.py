"""IP-based geolocation client."""

from dataclasses import dataclass
from datetime import UTC, datetime

import httpx

from job_tracker.domain.jobs import GeoPoint
from job_tracker.services.geolocation import Geolocator


@dataclass
class HttpxGeolocator(Geolocator):
    """Looks up an approximate position from an IP geolocation endpoint."""

    url: str
    http_client: httpx.AsyncClient

    @classmethod
    def create(cls, url: str) -> "HttpxGeolocator":
        """Create a geolocator with a managed httpx session."""
        return cls(url=url, http_client=httpx.AsyncClient())

    async def current_position(self, high_accuracy: bool = True) -> GeoPoint | None:
        """Return the approximate position; IP lookups carry no accuracy radius."""
        response = await self.http_client.get(self.url, timeout=8)
        response.raise_for_status()
        payload = response.json()
        lat = payload.get("latitude", payload.get("lat"))
        lng = payload.get("longitude", payload.get("lon", payload.get("lng")))
        if not isinstance(lat, int | float) or not isinstance(lng, int | float):
            return None
        accuracy = payload.get("accuracy")
        return GeoPoint(
            lat=float(lat),
            lng=float(lng),
            accuracy_m=float(accuracy) if isinstance(accuracy, int | float) else None,
            captured_at=datetime.now(tz=UTC),
        )

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()
