"""
Run reporting: progress lines, final summary and the failure log.

Everything except write_failure_log is pure formatting over the run's
statistics and progress record.
"""
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import List, Optional, Sequence

from .models import ErrorRecord, MigrationSummary, ProgressRecord, RunStatistics
from .utils.events import ProgressSnapshot

logger = logging.getLogger(__name__)

DEFAULT_ERROR_LOG = "migration-errors.json"


def format_duration(seconds: float) -> str:
    seconds = max(seconds, 0.0)
    return f"{int(seconds // 60)}m {int(seconds % 60)}s"


def progress_line(snapshot: ProgressSnapshot) -> str:
    return (
        f"Progress: {snapshot.processed}/{snapshot.pending_total} "
        f"({snapshot.percent:.1f}%) | "
        f"Rate: {snapshot.rate:.1f}/s | "
        f"ETA: {format_duration(snapshot.eta_seconds)}"
    )


class Reporter:
    """Builds the final summary and writes the failure artifact."""

    def __init__(self, error_log_path: Path = Path(DEFAULT_ERROR_LOG)):
        self._error_log_path = Path(error_log_path)

    @property
    def error_log_path(self) -> Path:
        return self._error_log_path

    def summarize(
        self,
        stats: RunStatistics,
        record: ProgressRecord,
        duration: float,
        interrupted: bool = False,
        error_log: Optional[Path] = None,
    ) -> MigrationSummary:
        return MigrationSummary(
            total=stats.total,
            skipped=stats.skipped,
            completed=stats.completed,
            failed=stats.failed,
            duplicates=stats.duplicates,
            migrated_count=record.migrated_count,
            duration=duration,
            interrupted=interrupted,
            retryable=stats.has_transient_failures,
            error_log=error_log,
        )

    def write_failure_log(self, errors: Sequence[ErrorRecord]) -> Optional[Path]:
        """
        Write failed items as a JSON list of {file, error, timestamp}.

        Returns:
            Path written, or None when there is nothing to report. A
            failure log left by an earlier run is removed in that case.
        """
        path = self._error_log_path
        if not errors:
            if path.exists():
                path.unlink()
                logger.info(f"No failures this run, removed previous {path}")
            return None

        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump([e.to_dict() for e in errors], f, indent=2)
            os.replace(tmp_name, path)
        except BaseException:
            try:
                os.unlink(tmp_name)
            except OSError:
                pass
            raise

        logger.info(f"Wrote {len(errors)} failure record(s) to {path}")
        return path

    @staticmethod
    def summary_lines(summary: MigrationSummary) -> List[str]:
        """Human readable summary, one line per entry."""
        lines = [
            f"Total files: {summary.total}",
            f"Already migrated (skipped): {summary.skipped}",
            f"Newly migrated: {summary.completed}",
        ]
        if summary.duplicates:
            lines.append(f"  of which already stored remotely: {summary.duplicates}")
        lines += [
            f"Failed: {summary.failed}",
            f"Total now migrated: {summary.migrated_count} / {summary.total}",
            f"Duration: {format_duration(summary.duration)}",
        ]
        if summary.completed > 0:
            lines.append(f"Throughput: {summary.throughput:.1f} pieces/sec")
        return lines

    @staticmethod
    def verdict(summary: MigrationSummary) -> str:
        if summary.interrupted:
            return "Migration interrupted. Progress saved; re-run to continue."
        if summary.all_migrated:
            return "All files successfully migrated!"
        if summary.retryable:
            return "Migration completed with errors. Re-run to retry failed files."
        if summary.failed > 0:
            return "Migration completed. Oversized files were skipped; see the error log."
        return "Migration batch finished!"
