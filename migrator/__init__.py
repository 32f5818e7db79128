"""
Migrator - Resumable bulk migration of piece files to remote storage.

Usage:
    from migrator import MigrationDriver, HTTPStorageClient, load_config

    config = await load_config()
    async with HTTPStorageClient(config.storage_url, config.provider_id, config.private_key) as remote:
        summary = await MigrationDriver(config, remote).run()

    # Command line
    $ piece-migrate migrate
"""
__version__ = "0.1.0"

from .config import load_config
from .errors import (
    ConfigurationError,
    CorruptState,
    MigrationError,
    RemoteUploadError,
    SourceUnavailable,
)
from .models import (
    ErrorRecord,
    Item,
    ItemResult,
    MigrationConfig,
    MigrationSummary,
    Outcome,
    ProgressRecord,
    RunStatistics,
)
from .orchestrator import MigrationDriver, MigrationPhase, ShutdownCoordinator, UploadWorkerPool
from .reporter import Reporter
from .services import HTTPStorageClient, ProgressStore, WorkEnumerator, classify

__all__ = [
    # Main
    "MigrationDriver",
    "MigrationPhase",
    "UploadWorkerPool",
    "ShutdownCoordinator",
    "load_config",
    # Models
    "ErrorRecord",
    "Item",
    "ItemResult",
    "MigrationConfig",
    "MigrationSummary",
    "Outcome",
    "ProgressRecord",
    "RunStatistics",
    # Services
    "HTTPStorageClient",
    "ProgressStore",
    "WorkEnumerator",
    "Reporter",
    "classify",
    # Errors
    "MigrationError",
    "ConfigurationError",
    "CorruptState",
    "RemoteUploadError",
    "SourceUnavailable",
]
