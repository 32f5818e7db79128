"""
ProgressStore - Durable record of pieces already handled.

The record is a single JSON document rewritten on every checkpoint:

    {
      "lastUpdated": "...",
      "totalFiles": 1200,
      "migratedCount": 340,
      "migratedFiles": ["s-t00-...", ...]
    }

Writes go to a temp file in the same directory followed by os.replace,
so a crash leaves either the old or the new document on disk.
"""
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict

from ..errors import CorruptState
from ..models import ProgressRecord

logger = logging.getLogger(__name__)

DEFAULT_PROGRESS_FILE = "migration-progress.json"


class ProgressStore:
    """
    JSON file backed progress store.

    Usage:
        store = ProgressStore(Path("migration-progress.json"))
        record = await store.load()
        record.mark("s-t00-abc")
        await store.save(record)
    """

    def __init__(self, path: Path = Path(DEFAULT_PROGRESS_FILE)):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    async def load(self) -> ProgressRecord:
        """
        Load progress from disk.

        Returns:
            The persisted record, or an empty record if no file exists

        Raises:
            CorruptState: file exists but is not a valid progress document
        """
        if not self._path.exists():
            logger.debug("ProgressStore: No progress file at %s, starting fresh", self._path)
            return ProgressRecord()

        try:
            with open(self._path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise CorruptState(f"cannot parse progress file {self._path}: {e}") from e
        except OSError as e:
            raise CorruptState(f"cannot read progress file {self._path}: {e}") from e

        record = self._from_document(data)
        logger.info(
            "ProgressStore: Loaded %d migrated entries from %s",
            record.migrated_count, self._path
        )
        return record

    async def save(self, record: ProgressRecord) -> None:
        """Atomically replace the progress file with the given record."""
        document = self._to_document(record)
        directory = self._path.parent
        directory.mkdir(parents=True, exist_ok=True)

        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self._path.name}.", suffix=".tmp", dir=directory
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(document, f, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self._path)
        except BaseException:
            try:
                os.unlink(tmp_name)
            except OSError:
                pass
            raise

        logger.debug(
            "ProgressStore: Saved %d entries to %s", record.migrated_count, self._path
        )

    def _to_document(self, record: ProgressRecord) -> Dict[str, Any]:
        return {
            "lastUpdated": record.last_updated,
            "totalFiles": record.total_files,
            "migratedCount": record.migrated_count,
            "migratedFiles": sorted(record.migrated_names),
        }

    def _from_document(self, data: Any) -> ProgressRecord:
        if not isinstance(data, dict):
            raise CorruptState(f"progress file {self._path} is not a JSON object")

        names = data.get("migratedFiles", [])
        if not isinstance(names, list) or not all(isinstance(n, str) for n in names):
            raise CorruptState(f"progress file {self._path} has an invalid migratedFiles list")

        total = data.get("totalFiles", 0)
        if not isinstance(total, int) or isinstance(total, bool):
            raise CorruptState(f"progress file {self._path} has an invalid totalFiles value")

        record = ProgressRecord(
            total_files=total,
            migrated_names=set(names),
            last_updated=str(data.get("lastUpdated") or ""),
        )
        stored_count = data.get("migratedCount")
        if stored_count is not None and stored_count != record.migrated_count:
            logger.warning(
                "ProgressStore: migratedCount %s disagrees with %d names, using names",
                stored_count, record.migrated_count
            )
        return record
