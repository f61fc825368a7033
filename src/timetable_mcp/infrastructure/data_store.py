from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable

from timetable_mcp.domain.entities import Network
from timetable_mcp.domain.exceptions import DataUnavailableError
from timetable_mcp.domain.timetable import Timetables

logger = logging.getLogger(__name__)

DEFAULT_REFRESH_INTERVAL = 60 * 60  # seconds


@dataclass(frozen=True)
class DataSnapshot:
    """A network and its timetables from a single data release."""

    network: Network
    timetables: Timetables
    hash: str


SnapshotLoader = Callable[[], Awaitable[DataSnapshot]]


class DataStore:
    """Holds the active snapshot.

    Snapshots are immutable and replaced by reference, so a query that reads
    current once sees one consistent release even if a refresh lands midway.
    """

    def __init__(self) -> None:
        self._snapshot: DataSnapshot | None = None
        self._refresh_task: asyncio.Task[None] | None = None
        self._start_lock = asyncio.Lock()

    @property
    def current(self) -> DataSnapshot:
        if self._snapshot is None:
            raise DataUnavailableError(
                "Timetable data has not been loaded yet. Please try again shortly."
            )
        return self._snapshot

    @property
    def is_loaded(self) -> bool:
        return self._snapshot is not None

    def replace(self, snapshot: DataSnapshot) -> None:
        previous = self._snapshot
        self._snapshot = snapshot
        if previous is None:
            logger.info("Loaded timetable data %s", snapshot.hash)
        elif previous.hash != snapshot.hash:
            logger.info("Replaced timetable data %s with %s", previous.hash, snapshot.hash)

    async def refresh(self, loader: SnapshotLoader) -> bool:
        """Load a new snapshot, keeping the current one if loading fails.

        Returns True when the snapshot was replaced.
        """
        try:
            snapshot = await loader()
        except Exception:
            logger.exception("Failed to refresh timetable data, keeping the previous snapshot")
            return False
        self.replace(snapshot)
        return True

    async def run_refresh_loop(
        self, loader: SnapshotLoader, interval_sec: float = DEFAULT_REFRESH_INTERVAL
    ) -> None:
        """Refresh every interval_sec seconds until cancelled."""
        while True:
            await asyncio.sleep(interval_sec)
            await self.refresh(loader)

    async def start(
        self, loader: SnapshotLoader, interval_sec: float = DEFAULT_REFRESH_INTERVAL
    ) -> None:
        """Load the first snapshot and start the refresh loop.

        Only the first call does anything. A failed first load leaves the store
        empty until the loop succeeds.
        """
        async with self._start_lock:
            if self._refresh_task is not None:
                return
            await self.refresh(loader)
            self._refresh_task = asyncio.create_task(self.run_refresh_loop(loader, interval_sec))

    async def stop(self) -> None:
        """Cancel the refresh loop started by start()."""
        task, self._refresh_task = self._refresh_task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
