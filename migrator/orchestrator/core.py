"""Migration driver - enumerates, batches, uploads and checkpoints."""
import logging
import time
from enum import Enum
from typing import Callable, List, Optional, Sequence

from ..models import ItemResult, MigrationConfig, MigrationSummary, ProgressRecord, RunStatistics
from ..protocols import IProgressStore, IRemoteStorage
from ..reporter import Reporter
from ..services.enumerator import WorkEnumerator, prefix_predicate
from ..services.progress_store import ProgressStore
from ..utils.events import EventEmitter, ProgressSnapshot
from .pool import UploadWorkerPool
from .shutdown import ShutdownCoordinator

logger = logging.getLogger(__name__)


class MigrationPhase(Enum):
    """Phase of a migration run."""
    INIT = "init"
    ENUMERATING = "enumerating"
    BATCH_RUNNING = "batch_running"
    CHECKPOINTING = "checkpointing"
    REPORTING = "reporting"
    SHUTTING_DOWN = "shutting_down"
    DONE = "done"


def partition(names: Sequence[str], size: int) -> List[List[str]]:
    """Split names into order-preserving batches of at most ``size``."""
    if size < 1:
        raise ValueError("batch size must be at least 1")
    return [list(names[i:i + size]) for i in range(0, len(names), size)]


class MigrationDriver:
    """
    Drives one migration run.

    Batches run strictly one after another; only the items of a batch
    upload concurrently. Progress is saved after every batch, so a crash
    loses at most the in-flight batch.

    Events:
        phase(MigrationPhase)
        enumerated(total, skipped, remaining)
        batch_start(index, count, size)
        item_complete(ItemResult)
        progress(ProgressSnapshot)
        batch_complete(index, count)
        finish(MigrationSummary)

    Usage:
        driver = MigrationDriver(config, remote)
        driver.on("item_complete", display.on_item_complete)
        summary = await driver.run()
    """

    def __init__(
        self,
        config: MigrationConfig,
        remote: IRemoteStorage,
        store: Optional[IProgressStore] = None,
        enumerator: Optional[WorkEnumerator] = None,
        reporter: Optional[Reporter] = None,
        shutdown: Optional[ShutdownCoordinator] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._config = config
        self._remote = remote
        self._store = store
        self._enumerator = enumerator
        self._reporter = reporter or Reporter(config.error_log_file)
        self._shutdown = shutdown or ShutdownCoordinator()
        self._clock = clock
        self._events = EventEmitter()
        self._phase = MigrationPhase.INIT

        self._stats = RunStatistics()
        self._record: Optional[ProgressRecord] = None
        self._started_at = 0.0
        self._processed = 0
        self._pending_total = 0

    @property
    def phase(self) -> MigrationPhase:
        return self._phase

    @property
    def stats(self) -> RunStatistics:
        return self._stats

    @property
    def record(self) -> Optional[ProgressRecord]:
        return self._record

    def on(self, event_name: str, callback: Callable):
        """Subscribe to a driver event."""
        self._events.on(event_name, callback)

    async def run(self) -> MigrationSummary:
        """
        Run the migration to completion or to a requested shutdown.

        Raises:
            ConfigurationError: required configuration missing
            CorruptState: progress file unreadable
            SourceUnavailable: source directory cannot be listed
        """
        await self._set_phase(MigrationPhase.INIT)
        self._config.validate()
        store = self._store or ProgressStore(self._config.progress_file)
        enumerator = self._enumerator or WorkEnumerator(
            self._config.source_path, prefix_predicate(self._config.piece_prefix)
        )
        self._started_at = self._clock()

        record = await store.load()
        self._record = record

        await self._set_phase(MigrationPhase.ENUMERATING)
        candidates = enumerator.list_candidates()
        remaining = enumerator.remaining(candidates, record)
        self._stats.total = len(candidates)
        self._stats.skipped = len(candidates) - len(remaining)
        self._pending_total = len(remaining)
        record.total_files = len(candidates)
        logger.info(
            f"Found {len(candidates)} pieces, {self._stats.skipped} already migrated, "
            f"{len(remaining)} remaining"
        )
        await self._events.emit("enumerated", len(candidates), self._stats.skipped, len(remaining))

        interrupted = False
        batches = partition(remaining, self._config.effective_batch_size)
        pool = UploadWorkerPool(self._remote, self._config.concurrency)

        for index, names in enumerate(batches, 1):
            if self._shutdown.requested:
                interrupted = True
                break

            await self._set_phase(MigrationPhase.BATCH_RUNNING)
            await self._events.emit("batch_start", index, len(batches), len(names))
            results = await pool.run_batch(
                enumerator.build_items(names), on_result=self._on_item_complete
            )
            self._fold(results, record)

            await self._set_phase(MigrationPhase.CHECKPOINTING)
            await self._checkpoint(store, record)
            await self._events.emit("batch_complete", index, len(batches))

        if interrupted:
            logger.warning("Shutting down before remaining batches, saving progress")
            await self._set_phase(MigrationPhase.SHUTTING_DOWN)
        else:
            await self._set_phase(MigrationPhase.REPORTING)

        await self._checkpoint(store, record)
        error_log = self._reporter.write_failure_log(self._stats.errors)
        summary = self._reporter.summarize(
            self._stats,
            record,
            duration=self._clock() - self._started_at,
            interrupted=interrupted,
            error_log=error_log,
        )

        await self._set_phase(MigrationPhase.DONE)
        await self._events.emit("finish", summary)
        return summary

    def _fold(self, results: Sequence[ItemResult], record: ProgressRecord) -> None:
        for result in results:
            self._stats.fold(result)
            if result.outcome.marks_handled:
                record.mark(result.name)

    async def _checkpoint(self, store: IProgressStore, record: ProgressRecord) -> None:
        record.touch()
        await store.save(record)
        logger.debug(f"Checkpoint saved: {record.migrated_count} migrated")

    async def _on_item_complete(self, result: ItemResult) -> None:
        self._processed += 1
        await self._events.emit("item_complete", result)
        if self._processed % self._config.log_interval == 0:
            await self._events.emit("progress", self._snapshot())

    def _snapshot(self) -> ProgressSnapshot:
        return ProgressSnapshot(
            processed=self._processed,
            pending_total=self._pending_total,
            elapsed=self._clock() - self._started_at,
        )

    async def _set_phase(self, phase: MigrationPhase) -> None:
        self._phase = phase
        await self._events.emit("phase", phase)
