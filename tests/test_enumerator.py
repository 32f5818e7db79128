"""Tests for WorkEnumerator."""
import pytest

from migrator.errors import SourceUnavailable
from migrator.models import ProgressRecord
from migrator.services.enumerator import WorkEnumerator, prefix_predicate


class TestWorkEnumerator:
    def test_lists_only_prefixed_files(self, source_dir):
        (source_dir / "s-t00-dir").mkdir()
        enumerator = WorkEnumerator(source_dir)

        names = enumerator.list_candidates()

        assert names == ["s-t00-a", "s-t00-b", "s-t00-c", "s-t00-d"]

    def test_custom_prefix(self, source_dir):
        (source_dir / "piece-1").write_bytes(b"x")
        enumerator = WorkEnumerator(source_dir, prefix_predicate("piece-"))
        assert enumerator.list_candidates() == ["piece-1"]

    def test_missing_source_raises(self, tmp_path):
        enumerator = WorkEnumerator(tmp_path / "missing")
        with pytest.raises(SourceUnavailable):
            enumerator.list_candidates()

    def test_remaining_preserves_order(self):
        record = ProgressRecord(migrated_names={"b", "d"})
        remaining = WorkEnumerator.remaining(["d", "c", "b", "a"], record)
        assert remaining == ["c", "a"]

    def test_build_items(self, source_dir):
        enumerator = WorkEnumerator(source_dir)
        items = enumerator.build_items(["s-t00-a"])
        assert items[0].name == "s-t00-a"
        assert items[0].path == source_dir / "s-t00-a"
