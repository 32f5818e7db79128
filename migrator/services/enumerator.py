"""Work enumeration: list candidate pieces and subtract handled ones."""
import logging
import os
from pathlib import Path
from typing import Callable, Iterable, List

from ..errors import SourceUnavailable
from ..models import Item, ProgressRecord

logger = logging.getLogger(__name__)

NamePredicate = Callable[[str], bool]

DEFAULT_PIECE_PREFIX = "s-t00-"


def prefix_predicate(prefix: str = DEFAULT_PIECE_PREFIX) -> NamePredicate:
    """Accept names starting with the given prefix."""
    def _matches(name: str) -> bool:
        return name.startswith(prefix)
    return _matches


class WorkEnumerator:
    """Lists piece files in a flat source directory."""

    def __init__(self, source: Path, predicate: NamePredicate = None):
        self._source = Path(source)
        self._predicate = predicate or prefix_predicate()

    @property
    def source(self) -> Path:
        return self._source

    def list_candidates(self) -> List[str]:
        """
        List candidate piece names.

        Returns:
            Sorted names of regular files accepted by the predicate

        Raises:
            SourceUnavailable: source directory cannot be listed
        """
        try:
            with os.scandir(self._source) as entries:
                names = [
                    entry.name
                    for entry in entries
                    if self._predicate(entry.name) and entry.is_file()
                ]
        except OSError as e:
            raise SourceUnavailable(f"cannot list source {self._source}: {e}") from e

        return sorted(names)

    @staticmethod
    def remaining(candidates: Iterable[str], record: ProgressRecord) -> List[str]:
        """Candidates not yet handled, in candidate order."""
        handled = record.migrated_names
        return [name for name in candidates if name not in handled]

    def build_items(self, names: Iterable[str]) -> List[Item]:
        return [Item.from_source(self._source, name) for name in names]
