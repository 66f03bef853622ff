# src/pomoquest/persistence/reconciler.py

"""
Reconciliation engine.

Keeps three places consistent:
- the live state (TaskStore + ProgressionEngine),
- the local cache (always available),
- an optional external JSON file (one per session, picked by the user).

Write-through: every StateChanged event schedules a flush. Inside a running
event loop the flush is deferred by one loop iteration, so a burst of
mutations coalesces into one physical write; flushes are serialized and
always compose the snapshot at write time, so the last write reflects the
latest state. Without a running loop the cache is written immediately and
the file write waits for the next flush().

Failure policy:
- picker cancelled -> CANCELLED, nothing changes;
- read/write error -> IO_ERROR, connection kept;
- malformed file -> MALFORMED, nothing applied (decode is all-or-nothing);
- remembered file missing at startup -> NOT_FOUND, remembered connection cleared;
- cache errors are logged by CacheStore and never surface here.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from ..core.events import EventBus, StateChanged
from ..core.ports import CacheRepo, Clock, FileBackend
from ..errors import FileAccessError, SnapshotError
from ..progression.engine import ProgressionEngine
from ..tasks.task_store import TaskStore
from .cache import EXTERNAL_FILE_KEY, SNAPSHOT_KEY
from .merge import MergeReport, smart_merge
from .snapshot import SnapshotPatch, build_snapshot, decode_snapshot, encode_snapshot

logger = logging.getLogger(__name__)


class SyncStatus(StrEnum):
    OK = "ok"
    CANCELLED = "cancelled"
    IO_ERROR = "io_error"
    MALFORMED = "malformed"
    NOT_FOUND = "not_found"
    NOT_CONNECTED = "not_connected"


@dataclass(frozen=True, slots=True)
class SyncResult:
    status: SyncStatus
    message: str = ""
    report: MergeReport | None = None

    @property
    def ok(self) -> bool:
        return self.status == SyncStatus.OK


class ReconciliationEngine:
    def __init__(
        self,
        *,
        tasks: TaskStore,
        progression: ProgressionEngine,
        cache: CacheRepo,
        backend: FileBackend,
        bus: EventBus,
        clock: Clock,
    ) -> None:
        self._tasks = tasks
        self._progression = progression
        self._cache = cache
        self._backend = backend
        self._clock = clock

        # The single external-file slot. Only this class assigns or clears it.
        self._target: Any | None = None
        self._file_dirty = False
        self._pending: asyncio.Task[SyncResult] | None = None
        self._write_lock = asyncio.Lock()

        self.cache_writes = 0
        self.file_writes = 0

        self._unsubscribe = bus.subscribe(StateChanged, self.notify_changed)

    # ---- state ----

    @property
    def connected(self) -> bool:
        return self._target is not None

    @property
    def target_label(self) -> str | None:
        return self._backend.describe(self._target) if self._target is not None else None

    def close(self) -> None:
        self._unsubscribe()
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()

    # ---- snapshot composition ----

    def compose(self) -> str:
        data = build_snapshot(
            self._tasks.export_state(),
            self._progression.export_profile(),
            saved_at=self._clock.now(),
        )
        return encode_snapshot(data)

    def _apply(self, patch: SnapshotPatch) -> None:
        """Bulk load of an already fully decoded snapshot (replace, no merge)."""
        self._tasks.load_state(
            tasks=patch.tasks,
            categories=patch.categories,
            timer=patch.timer,
            daily=patch.daily,
            session_cycle=patch.session_cycle,
        )
        if patch.progression is not None:
            self._progression.import_profile(patch.progression)

    def merge(self, patch: SnapshotPatch) -> MergeReport:
        """Smart-merge a decoded file into the live state (in-memory wins on conflict)."""
        merged, report = smart_merge(self._tasks.export_state(), patch)
        self._tasks.load_state(
            tasks=merged.tasks,
            categories=merged.categories,
            timer=merged.timer,
            daily=merged.daily,
            session_cycle=merged.session_cycle,
        )
        if patch.progression is not None:
            self._progression.import_profile(patch.progression)
        return report

    # ---- cache ----

    def restore_from_cache(self) -> bool:
        """Startup: load the cached snapshot, if any. A broken cache is ignored."""
        text = self._cache.get(SNAPSHOT_KEY)
        if not text:
            logger.info("No cached snapshot; starting fresh")
            return False
        try:
            patch = decode_snapshot(text)
        except SnapshotError as e:
            logger.warning("Cached snapshot ignored: %s", e)
            return False
        self._apply(patch)
        logger.info("Restored %d tasks from cache", len(self._tasks.tasks))
        return True

    def _write_cache(self, text: str) -> None:
        if self._cache.set(SNAPSHOT_KEY, text) is not False:
            self.cache_writes += 1

    # ---- write-through ----

    def notify_changed(self, event: StateChanged | None = None) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None

        if loop is None:
            self._write_cache(self.compose())
            if self._target is not None:
                self._file_dirty = True
            return

        if self._pending is None or self._pending.done():
            self._pending = loop.create_task(self._flush_soon())

    async def _flush_soon(self) -> SyncResult:
        # Let the rest of the current burst of mutations run first.
        await asyncio.sleep(0)
        self._pending = None
        return await self.flush()

    async def flush(self) -> SyncResult:
        """Write the full snapshot to the cache and, if connected, the external file."""
        async with self._write_lock:
            text = self.compose()
            self._write_cache(text)
            if self._target is None:
                return SyncResult(SyncStatus.OK, "saved to cache")
            try:
                await self._backend.write_file(self._target, text)
            except FileAccessError as e:
                self._file_dirty = True
                logger.warning("External file write failed: %s", e)
                return SyncResult(SyncStatus.IO_ERROR, str(e))
            self._file_dirty = False
            self.file_writes += 1
            return SyncResult(SyncStatus.OK, f"saved to {self.target_label}")

    async def drain(self) -> None:
        """Wait for a scheduled flush (shutdown, tests)."""
        pending = self._pending
        if pending is not None:
            await pending
        if self._file_dirty:
            await self.flush()

    # ---- external file ----

    def _remember(self, target: Any) -> None:
        self._target = target
        self._cache.set(EXTERNAL_FILE_KEY, self._backend.describe(target))

    async def _read_and_merge(self, target: Any) -> SyncResult:
        try:
            text = await self._backend.read_file(target)
        except FileAccessError as e:
            logger.warning("External file read failed: %s", e)
            return SyncResult(SyncStatus.IO_ERROR, str(e))

        try:
            patch = decode_snapshot(text)
        except SnapshotError as e:
            logger.warning("External file rejected: %s", e)
            return SyncResult(SyncStatus.MALFORMED, str(e))

        report = self.merge(patch)
        return SyncResult(SyncStatus.OK, "merged", report)

    async def open_file(self) -> SyncResult:
        """Pick a file, merge it into the live state, connect, persist the union."""
        target = await self._backend.pick_open_target()
        if target is None:
            return SyncResult(SyncStatus.CANCELLED, "no file selected")

        result = await self._read_and_merge(target)
        if not result.ok:
            return result

        self._remember(target)
        written = await self.flush()
        if not written.ok:
            return SyncResult(written.status, f"merged, but saving failed: {written.message}", result.report)
        logger.info("Connected to %s", self.target_label)
        return SyncResult(SyncStatus.OK, f"connected to {self.target_label}", result.report)

    async def save_as(self) -> SyncResult:
        """Pick a destination, write the current snapshot there and connect to it."""
        target = await self._backend.pick_save_target()
        if target is None:
            return SyncResult(SyncStatus.CANCELLED, "no file selected")

        text = self.compose()
        try:
            await self._backend.write_file(target, text)
        except FileAccessError as e:
            logger.warning("Save as failed: %s", e)
            return SyncResult(SyncStatus.IO_ERROR, str(e))

        self.file_writes += 1
        self._remember(target)
        self._write_cache(text)
        logger.info("Connected to %s", self.target_label)
        return SyncResult(SyncStatus.OK, f"saved to {self.target_label}")

    def disconnect(self) -> None:
        if self._target is not None:
            logger.info("Disconnected from %s", self.target_label)
        self._target = None
        self._file_dirty = False
        self._cache.delete(EXTERNAL_FILE_KEY)

    async def auto_reconnect(self) -> SyncResult:
        """Startup: reopen the remembered file and merge it, when the backend allows it."""
        record = self._cache.get(EXTERNAL_FILE_KEY)
        if not record:
            return SyncResult(SyncStatus.NOT_CONNECTED, "no remembered file")
        if not self._backend.supports_reconnect:
            return SyncResult(SyncStatus.NOT_CONNECTED, "file must be reopened manually")

        target = self._backend.target_from_record(record)
        if target is None:
            return SyncResult(SyncStatus.NOT_CONNECTED, "file must be reopened manually")

        if not await self._backend.exists(target):
            logger.warning("Remembered file is gone: %s", record)
            self._cache.delete(EXTERNAL_FILE_KEY)
            return SyncResult(SyncStatus.NOT_FOUND, f"file not found: {record}")

        result = await self._read_and_merge(target)
        if not result.ok:
            return result

        self._target = target
        written = await self.flush()
        if not written.ok:
            return SyncResult(written.status, f"merged, but saving failed: {written.message}", result.report)
        logger.info("Reconnected to %s", self.target_label)
        return SyncResult(SyncStatus.OK, f"reconnected to {self.target_label}", result.report)

    async def startup(self, *, auto_reconnect: bool = True) -> SyncResult:
        self.restore_from_cache()
        if not auto_reconnect:
            return SyncResult(SyncStatus.NOT_CONNECTED, "auto-reconnect disabled")
        return await self.auto_reconnect()
