"""Error taxonomy for the migration engine."""
from typing import Optional


class MigrationError(RuntimeError):
    """Base class for errors raised by the migration engine."""


class ConfigurationError(MigrationError):
    """Required configuration is missing or invalid."""


class SourceUnavailable(MigrationError):
    """The source location cannot be listed."""


class CorruptState(MigrationError):
    """Persisted progress exists but cannot be parsed."""


class RemoteUploadError(MigrationError):
    """
    Upload rejected by the remote storage service.

    Args:
        message: Human readable error text
        code: Structured error kind reported by the remote side
        status_code: HTTP status of the failed call, if any
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(message)
        self.code = code
        self.status_code = status_code
