"""
Local File Storage Implementation

The whole ledger is one JSON document on disk. Writes go to a temporary
file in the same directory which is then renamed over the target, so a
crash mid-write leaves the previous snapshot intact.
"""

import os
import tempfile
from pathlib import Path
from typing import Optional, Union

from pydantic import ValidationError

from src.models.club import ClubSnapshot
from src.services.storage.interface import (
    PersistenceError,
    SnapshotStorageInterface,
    StorageError,
)


class LocalFileSnapshotStorage(SnapshotStorageInterface):
    """
    Snapshot storage backed by a single JSON file.
    """

    backend_name = "local"

    def __init__(self, path: Union[str, Path]):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> Optional[ClubSnapshot]:
        """Read the snapshot; None when the file does not exist yet."""
        if not self._path.exists():
            return None

        try:
            raw = self._path.read_text(encoding="utf-8")
        except OSError as e:
            raise StorageError(f"Failed to read snapshot {self._path}: {e}")

        if not raw.strip():
            return None

        try:
            return ClubSnapshot.model_validate_json(raw)
        except ValidationError as e:
            raise StorageError(f"Snapshot {self._path} is malformed: {e}")

    def save(self, snapshot: ClubSnapshot) -> bool:
        """Write the snapshot atomically."""
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self._path.parent,
                prefix=f".{self._path.name}.",
                suffix=".tmp",
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    fh.write(snapshot.model_dump_json(indent=2))
                os.replace(tmp_name, self._path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
            return True
        except OSError as e:
            raise PersistenceError(f"Failed to save snapshot {self._path}: {e}")
