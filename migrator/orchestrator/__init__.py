"""Orchestrator package - batches, worker pool and shutdown."""
from .core import MigrationDriver, MigrationPhase, partition
from .pool import UploadWorkerPool
from .shutdown import ShutdownCoordinator

__all__ = [
    "MigrationDriver",
    "MigrationPhase",
    "partition",
    "UploadWorkerPool",
    "ShutdownCoordinator",
]
