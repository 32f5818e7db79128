"""Shared fixtures: a scripted in-memory remote and a populated source dir."""
import asyncio
from pathlib import Path
from typing import Dict, List, Optional

import pytest

from migrator.models import MigrationConfig


class FakeRemote:
    """
    In-memory IRemoteStorage.

    ``failures`` maps a piece name to the exception its upload raises.
    Records every call plus start/end events for ordering checks.
    """

    def __init__(self, failures: Optional[Dict[str, Exception]] = None, delay: float = 0.0):
        self.failures = dict(failures or {})
        self.delay = delay
        self.calls: List[str] = []
        self.events: List[tuple] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        return None

    async def upload(self, data: bytes, metadata=None) -> str:
        name = metadata["originalFilename"]
        self.calls.append(name)
        self.events.append(("start", name))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            else:
                await asyncio.sleep(0)
            if name in self.failures:
                raise self.failures[name]
            return f"baga-{name}"
        finally:
            self.in_flight -= 1
            self.events.append(("end", name))


PIECES = ["s-t00-a", "s-t00-b", "s-t00-c", "s-t00-d"]


@pytest.fixture
def source_dir(tmp_path) -> Path:
    source = tmp_path / "pieces"
    source.mkdir()
    for name in PIECES:
        (source / name).write_bytes(f"payload {name}".encode())
    (source / "README.txt").write_text("not a piece")
    return source


@pytest.fixture
def config(tmp_path, source_dir) -> MigrationConfig:
    return MigrationConfig(
        source_path=source_dir,
        private_key="0xdeadbeef",
        provider_id=7,
        rpc_url="http://storage.test/rpc/v1",
        storage_url="http://storage.test",
        concurrency=2,
        batch_size=2,
        log_interval=1,
        progress_file=tmp_path / "migration-progress.json",
        error_log_file=tmp_path / "migration-errors.json",
    )
