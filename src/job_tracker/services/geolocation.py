"""Best-effort position capture."""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Protocol

from job_tracker.domain.jobs import GeoPoint

logger = logging.getLogger(__name__)


class Geolocator(Protocol):
    """Interface for a single-shot position fetch."""

    async def current_position(self, high_accuracy: bool = True) -> GeoPoint | None:
        """Return the current position, or None when unknown."""


@dataclass
class CachedGeolocator(Geolocator):
    """Reuses a recent position instead of fetching a new one."""

    inner: Geolocator
    max_age_s: float = 60.0
    _last: GeoPoint | None = field(default=None, init=False)

    async def current_position(self, high_accuracy: bool = True) -> GeoPoint | None:
        """Return a cached position younger than ``max_age_s`` or fetch one."""
        now = datetime.now(tz=UTC)
        if self._last is not None and now - self._last.captured_at <= timedelta(
            seconds=self.max_age_s
        ):
            return self._last
        position = await self.inner.current_position(high_accuracy=high_accuracy)
        if position is not None:
            self._last = position
        return position


async def capture_location(geolocator: Geolocator, timeout_s: float) -> GeoPoint | None:
    """Fetch a position within ``timeout_s``; any failure yields None."""
    try:
        return await asyncio.wait_for(
            geolocator.current_position(high_accuracy=True), timeout=timeout_s
        )
    except TimeoutError:
        logger.info("Geolocation timed out after %ss", timeout_s)
    except Exception as exc:  # noqa: BLE001
        logger.info("Geolocation unavailable: %s", exc)
    return None
