"""Services package."""

from src.services.storage import (
    AuditStorageInterface,
    ConnectionError,
    InMemorySnapshotStorage,
    LocalFileSnapshotStorage,
    PersistenceError,
    SnapshotStorageInterface,
    StorageError,
)

__all__ = [
    # Storage services
    "AuditStorageInterface",
    "ConnectionError",
    "InMemorySnapshotStorage",
    "LocalFileSnapshotStorage",
    "PersistenceError",
    "SnapshotStorageInterface",
    "StorageError",
]
