"""
Storage Services Package

Provides the snapshot storage interface and its implementations:
a local JSON file (default), Google Sheets, and in-memory for tests.
"""

from src.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    InMemorySnapshotStorage,
    PersistenceError,
    SnapshotStorageInterface,
    StorageError,
)
from src.services.storage.local_file import LocalFileSnapshotStorage

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "SnapshotStorageInterface",
    # Exceptions
    "ConnectionError",
    "PersistenceError",
    "StorageError",
    # Implementations
    "InMemorySnapshotStorage",
    "LocalFileSnapshotStorage",
]
