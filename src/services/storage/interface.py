"""
Abstract Storage Interface

DESIGN DECISION: The ledger is persisted as ONE snapshot blob
(members + payment records + transactions), written in full after every
change. There is no incremental persistence to keep consistent, so the
interface is just load/save.

This allows us to:
1. Keep a local JSON file for single-machine use
2. Mirror the ledger into Google Sheets so the committee can view it
3. Use in-memory storage for testing
"""

from abc import ABC, abstractmethod
from typing import Optional

from src.models.audit import AuditEvent
from src.models.club import ClubSnapshot


class SnapshotStorageInterface(ABC):
    """
    Abstract interface for ledger snapshot persistence.

    Any storage implementation (local file, Google Sheets, etc.)
    must implement these methods.
    """

    #: Short backend name used in logs and audit events
    backend_name: str = "storage"

    @abstractmethod
    def load(self) -> Optional[ClubSnapshot]:
        """
        Load the stored snapshot.

        Returns:
            The stored snapshot, or None if nothing has been stored yet

        Raises:
            StorageError: If stored data exists but cannot be read
        """
        pass

    @abstractmethod
    def save(self, snapshot: ClubSnapshot) -> bool:
        """
        Replace the stored snapshot with this one.

        Args:
            snapshot: The complete current ledger state

        Returns:
            True if saved successfully

        Raises:
            PersistenceError: If the write fails
        """
        pass


class InMemorySnapshotStorage(SnapshotStorageInterface):
    """
    Snapshot storage that keeps a deep copy in memory.

    Used in tests and when no persistent backend is configured.
    """

    backend_name = "memory"

    def __init__(self, snapshot: Optional[ClubSnapshot] = None):
        self._snapshot = snapshot.model_copy(deep=True) if snapshot else None
        self.save_count = 0

    def load(self) -> Optional[ClubSnapshot]:
        if self._snapshot is None:
            return None
        return self._snapshot.model_copy(deep=True)

    def save(self, snapshot: ClubSnapshot) -> bool:
        self._snapshot = snapshot.model_copy(deep=True)
        self.save_count += 1
        return True


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events (newest first).
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class PersistenceError(StorageError):
    """Snapshot could not be written."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
