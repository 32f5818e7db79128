"""Tests for ProgressStore."""
import json
import pytest
from unittest.mock import patch

from migrator.errors import CorruptState
from migrator.models import ProgressRecord
from migrator.services.progress_store import ProgressStore


class TestProgressStore:
    @pytest.fixture
    def store(self, tmp_path):
        return ProgressStore(tmp_path / "migration-progress.json")

    @pytest.mark.asyncio
    async def test_load_missing_returns_empty(self, store):
        record = await store.load()
        assert record.total_files == 0
        assert record.migrated_count == 0
        assert record.migrated_names == set()

    @pytest.mark.asyncio
    async def test_save_writes_document(self, store):
        record = ProgressRecord(total_files=3, migrated_names={"s-t00-b", "s-t00-a"})
        await store.save(record)

        data = json.loads(store.path.read_text(encoding="utf-8"))
        assert data["totalFiles"] == 3
        assert data["migratedCount"] == 2
        assert sorted(data["migratedFiles"]) == ["s-t00-a", "s-t00-b"]
        assert data["lastUpdated"] == record.last_updated

    @pytest.mark.asyncio
    async def test_save_then_load(self, store):
        await store.save(ProgressRecord(total_files=5, migrated_names={"x", "y"}))
        record = await store.load()
        assert record.total_files == 5
        assert record.migrated_names == {"x", "y"}
        assert record.migrated_count == 2

    @pytest.mark.asyncio
    async def test_count_recomputed_from_names(self, store):
        store.path.write_text(json.dumps({
            "lastUpdated": "2024-01-01T00:00:00Z",
            "totalFiles": 4,
            "migratedCount": 1,
            "migratedFiles": ["a", "b", "c"],
        }))
        record = await store.load()
        assert record.migrated_count == 3

    @pytest.mark.asyncio
    async def test_unparsable_file_is_corrupt(self, store):
        store.path.write_text('{"migratedFiles": ["a", ')
        with pytest.raises(CorruptState):
            await store.load()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("document", [
        [],
        {"migratedFiles": "a,b"},
        {"migratedFiles": [1, 2]},
        {"migratedFiles": [], "totalFiles": "many"},
    ])
    async def test_wrong_shape_is_corrupt(self, store, document):
        store.path.write_text(json.dumps(document))
        with pytest.raises(CorruptState):
            await store.load()

    @pytest.mark.asyncio
    async def test_crash_during_save_keeps_previous_version(self, store, tmp_path):
        await store.save(ProgressRecord(total_files=2, migrated_names={"a"}))

        with patch(
            "migrator.services.progress_store.os.replace",
            side_effect=OSError("disk pulled"),
        ):
            with pytest.raises(OSError):
                await store.save(ProgressRecord(total_files=2, migrated_names={"a", "b"}))

        record = await store.load()
        assert record.migrated_names == {"a"}
        assert list(tmp_path.glob(".migration-progress.json.*")) == []

    @pytest.mark.asyncio
    async def test_save_creates_parent_directory(self, tmp_path):
        store = ProgressStore(tmp_path / "state" / "progress.json")
        await store.save(ProgressRecord(migrated_names={"a"}))
        assert (tmp_path / "state" / "progress.json").exists()
