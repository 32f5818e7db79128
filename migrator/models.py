"""
Models for the migration engine.

Items and per-item results are immutable; the progress record and run
statistics are mutated only by the driver.
"""
import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Set

from .errors import ConfigurationError

TOO_LARGE_PREFIX = "FILE_TOO_LARGE: "


def utc_now() -> str:
    """Current time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


class Outcome(Enum):
    """Terminal classification of a single upload."""
    SUCCESS = "success"
    DUPLICATE = "duplicate"
    PERMANENT_SKIP = "permanent_skip"
    TRANSIENT_FAILURE = "transient_failure"

    @property
    def marks_handled(self) -> bool:
        """Item goes into the progress record and is never retried."""
        return self is not Outcome.TRANSIENT_FAILURE

    @property
    def counts_as_completed(self) -> bool:
        return self in (Outcome.SUCCESS, Outcome.DUPLICATE)


@dataclass(frozen=True)
class Item:
    """A named piece file. Payload is read lazily at upload time."""
    name: str
    path: Path
    metadata: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_source(cls, source: Path, name: str) -> "Item":
        path = Path(source) / name
        return cls(
            name=name,
            path=path,
            metadata={"originalFilename": name, "originalPath": str(path)},
        )

    async def read_payload(self) -> bytes:
        return await asyncio.to_thread(self.path.read_bytes)


@dataclass(frozen=True)
class ItemResult:
    """Immutable outcome of one item's upload."""
    name: str
    outcome: Outcome
    piece_cid: Optional[str] = None
    error: Optional[str] = None
    reason: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.outcome.counts_as_completed

    @classmethod
    def ok(cls, name: str, piece_cid: str):
        return cls(name=name, outcome=Outcome.SUCCESS, piece_cid=piece_cid)

    @classmethod
    def duplicate(cls, name: str, reason: str):
        return cls(name=name, outcome=Outcome.DUPLICATE, reason=reason)

    @classmethod
    def skip(cls, name: str, error: str):
        return cls(name=name, outcome=Outcome.PERMANENT_SKIP, error=error)

    @classmethod
    def fail(cls, name: str, error: str):
        return cls(name=name, outcome=Outcome.TRANSIENT_FAILURE, error=error)


@dataclass
class ProgressRecord:
    """Persistent state of a migration run."""
    total_files: int = 0
    migrated_names: Set[str] = field(default_factory=set)
    last_updated: str = field(default_factory=utc_now)

    @property
    def migrated_count(self) -> int:
        return len(self.migrated_names)

    def mark(self, name: str) -> None:
        self.migrated_names.add(name)

    def touch(self) -> None:
        self.last_updated = utc_now()


@dataclass(frozen=True)
class ErrorRecord:
    """One failed item, as written to the failure log."""
    file: str
    error: str
    timestamp: str = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, str]:
        return {"file": self.file, "error": self.error, "timestamp": self.timestamp}


@dataclass
class RunStatistics:
    """Run-scoped counters, folded by the driver after each batch."""
    total: int = 0
    completed: int = 0
    failed: int = 0
    skipped: int = 0
    duplicates: int = 0
    permanent_skips: int = 0
    errors: List[ErrorRecord] = field(default_factory=list)

    @property
    def processed(self) -> int:
        return self.completed + self.failed

    @property
    def has_transient_failures(self) -> bool:
        return self.failed > self.permanent_skips

    def fold(self, result: ItemResult) -> None:
        """Account for one item result."""
        if result.outcome.counts_as_completed:
            self.completed += 1
            if result.outcome is Outcome.DUPLICATE:
                self.duplicates += 1
            return

        self.failed += 1
        error = result.error or "unknown error"
        if result.outcome is Outcome.PERMANENT_SKIP:
            self.permanent_skips += 1
            error = f"{TOO_LARGE_PREFIX}{error}"
        self.errors.append(ErrorRecord(file=result.name, error=error))


@dataclass(frozen=True)
class MigrationConfig:
    """Immutable run configuration, resolved once at start."""
    source_path: Optional[Path]
    private_key: Optional[str]
    provider_id: int = 0
    rpc_url: str = ""
    storage_url: str = ""
    is_local_node: bool = False
    piece_prefix: str = "s-t00-"
    concurrency: int = 10
    batch_size: int = 100
    max_batch_size: int = 100
    log_interval: int = 50
    progress_file: Path = Path("migration-progress.json")
    error_log_file: Path = Path("migration-errors.json")
    max_piece_size: int = 200 * 1024 * 1024
    upload_timeout: float = 300.0

    @property
    def effective_batch_size(self) -> int:
        """Batch size capped to the remote per-request ceiling."""
        return min(self.batch_size, self.max_batch_size)

    def problems(self) -> List[str]:
        errors = []
        if not self.source_path:
            errors.append("SOURCE_PATH is required")
        if not self.private_key:
            errors.append("PRIVATE_KEY environment variable is required")
        if not self.provider_id:
            errors.append("PROVIDER_ID environment variable is required")
        if not self.storage_url:
            errors.append("STORAGE_URL environment variable is required")
        if self.concurrency < 1:
            errors.append("CONCURRENCY must be at least 1")
        if self.batch_size < 1:
            errors.append("BATCH_SIZE must be at least 1")
        if self.max_batch_size < 1:
            errors.append("MAX_BATCH_SIZE must be at least 1")
        if self.log_interval < 1:
            errors.append("LOG_INTERVAL must be at least 1")
        return errors

    def validate(self) -> None:
        """Raise ConfigurationError listing every problem found."""
        errors = self.problems()
        if errors:
            raise ConfigurationError("; ".join(errors))


@dataclass(frozen=True)
class MigrationSummary:
    """Final accounting of a run."""
    total: int
    skipped: int
    completed: int
    failed: int
    duplicates: int
    migrated_count: int
    duration: float
    interrupted: bool = False
    retryable: bool = False
    error_log: Optional[Path] = None

    @property
    def throughput(self) -> float:
        if self.duration <= 0:
            return 0.0
        return self.completed / self.duration

    @property
    def all_migrated(self) -> bool:
        return self.failed == 0 and self.migrated_count >= self.total

