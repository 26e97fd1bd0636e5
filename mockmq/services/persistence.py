"""Snapshot persistence for the queue store.

Snapshots are whole-state documents. Inside a running event loop, snapshot
requests are coalesced: the first request schedules a write after the debounce
delay and later requests ride along, so a burst of puts costs one write.
Outside an event loop the write happens immediately. Durability is best
effort: a crash inside the debounce window loses the mutations made in it.
"""

import asyncio
import logging
import time
from typing import Optional

from ..exceptions import StorageBackendError
from ..storage.base import StateBackend
from ..utils.logging import log_service_operation


logger = logging.getLogger(__name__)


class SnapshotPersistence:
    """Writes queue store snapshots to a state backend and restores them."""

    def __init__(self, backend: StateBackend, debounce_ms: int = 50, enabled: bool = True):
        """Initialize snapshot persistence.

        Args:
            backend: Where snapshots are stored
            debounce_ms: Delay used to coalesce snapshot requests in the event loop
            enabled: When False, snapshot requests are ignored
        """
        self.backend = backend
        self.debounce_ms = debounce_ms
        self.enabled = enabled
        self.store = None
        self.snapshots_written = 0
        self.snapshot_failures = 0
        self._pending: Optional[asyncio.Task] = None
        self._write_lock = asyncio.Lock()

    def attach(self, store) -> None:
        """Bind to a queue store so its mutations request snapshots."""
        self.store = store
        store.persistence = self

    def request_snapshot(self) -> None:
        """Schedule a snapshot of the attached store."""
        if not self.enabled or self.store is None:
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._write_sync()
            return

        if self._pending is None or self._pending.done():
            self._pending = loop.create_task(self._debounced_write())

    async def flush(self) -> None:
        """Cancel any pending snapshot and write the current state now."""
        if not self.enabled or self.store is None:
            return

        pending, self._pending = self._pending, None
        if pending is not None and not pending.done():
            pending.cancel()
            try:
                await pending
            except asyncio.CancelledError:
                pass
        await self._write()

    async def restore(self) -> bool:
        """Replace the attached store's state with the stored snapshot.

        Returns:
            True if a snapshot was loaded
        """
        if self.store is None:
            return False

        state = await self.backend.load()
        if state is None:
            return False

        try:
            self.store.load_state(state)
        except (ValueError, TypeError) as e:
            logger.warning(f"Ignoring unusable snapshot: {e}")
            return False
        return True

    async def _debounced_write(self) -> None:
        await asyncio.sleep(self.debounce_ms / 1000)
        # Cleared before the write so requests made during it schedule another
        self._pending = None
        await self._write()

    async def _write(self) -> None:
        async with self._write_lock:
            start_time = time.time()
            try:
                await self.backend.save(self.store.export_state())
            except StorageBackendError as e:
                self._record_failure(e, start_time)
                return
            self._record_success(start_time)

    def _write_sync(self) -> None:
        start_time = time.time()
        try:
            self.backend.save_sync(self.store.export_state())
        except StorageBackendError as e:
            self._record_failure(e, start_time)
            return
        self._record_success(start_time)

    def _record_success(self, start_time: float) -> None:
        self.snapshots_written += 1
        log_service_operation(
            "persistence", "snapshot", True, (time.time() - start_time) * 1000
        )

    def _record_failure(self, error: StorageBackendError, start_time: float) -> None:
        self.snapshot_failures += 1
        log_service_operation(
            "persistence", "snapshot", False, (time.time() - start_time) * 1000,
            error=str(error)
        )
