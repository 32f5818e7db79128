"""
Protocols (Interfaces) for the migration engine's collaborators.

Small, focused interfaces so the driver can run against the HTTP client
in production and against fakes in tests.
"""
from typing import Any, Dict, Optional, Protocol, runtime_checkable

from .models import ProgressRecord


@runtime_checkable
class IRemoteStorage(Protocol):
    """Interface for the remote content-addressable storage service."""

    async def upload(self, data: bytes, metadata: Optional[Dict[str, Any]] = None) -> str:
        """Upload a payload and return its piece CID."""
        ...


@runtime_checkable
class IProgressStore(Protocol):
    """Interface for durable migration progress."""

    async def load(self) -> ProgressRecord:
        """Return the persisted record, or an empty one."""
        ...

    async def save(self, record: ProgressRecord) -> None:
        """Persist the full record, replacing any prior version."""
        ...
