"""Live query emulation by periodic re-fetching."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

import httpx

from job_tracker.services.job_logs import (
    DocumentsCallback,
    ErrorCallback,
    StoredDocument,
    Subscription,
)

logger = logging.getLogger(__name__)


@dataclass
class PollingSubscription(Subscription):
    """Re-runs a query and delivers the result whenever it changes.

    Transport errors are retried on the next tick; any other error ends the
    subscription through ``on_error``.
    """

    fetch: Callable[[], Awaitable[list[StoredDocument]]]
    on_change: DocumentsCallback
    on_error: ErrorCallback
    interval_s: float = 2.0
    _task: asyncio.Task[None] | None = field(default=None, init=False)
    _last: list[StoredDocument] | None = field(default=None, init=False)

    def start(self) -> None:
        """Begin polling on the running loop."""
        self._task = asyncio.get_running_loop().create_task(self._run())

    def cancel(self) -> None:
        """Stop polling."""
        if self._task is not None:
            self._task.cancel()
            self._task = None

    async def _run(self) -> None:
        while True:
            try:
                documents = await self.fetch()
            except httpx.TransportError as exc:
                logger.info("Polling query failed, retrying: %s", exc)
            except Exception as exc:  # noqa: BLE001
                self._task = None
                self.on_error(exc)
                return
            else:
                if documents != self._last:
                    self._last = documents
                    self.on_change(documents)
            await asyncio.sleep(self.interval_s)
