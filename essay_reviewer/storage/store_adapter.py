"""Key/value byte storage used to persist the evaluation history.

Each key holds one opaque blob that is always rewritten as a whole.  The file
store keeps one file per key and replaces it atomically; the memory store is
meant for tests and for running without a writable disk.
"""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """Raised when a blob cannot be written or deleted."""


class StoreQuotaExceededError(StoreError):
    pass


class StoreAdapter(ABC):
    @abstractmethod
    def read(self, key: str) -> Optional[bytes]:
        """Return the blob stored under ``key`` or ``None`` when absent."""

    @abstractmethod
    def write(self, key: str, payload: bytes) -> None:
        """Overwrite the blob under ``key``. Raises StoreError on failure."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove ``key``. Deleting a missing key is not an error."""


class FileStore(StoreAdapter):
    def __init__(self, root: Path):
        self.root = Path(root)

    def _path(self, key: str) -> Path:
        return self.root / f"{key}.json"

    def read(self, key: str) -> Optional[bytes]:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_bytes()

    def write(self, key: str, payload: bytes) -> None:
        path = self._path(key)
        tmp = path.with_suffix(path.suffix + ".tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_bytes(payload)
            tmp.replace(path)
        except OSError as e:
            logger.error(f"Failed to write {path}: {e}")
            raise StoreError(f"could not write {path}: {e}") from e

    def delete(self, key: str) -> None:
        path = self._path(key)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            logger.error(f"Failed to delete {path}: {e}")
            raise StoreError(f"could not delete {path}: {e}") from e


class MemoryStore(StoreAdapter):
    def __init__(self, quota_bytes: Optional[int] = None):
        self.quota_bytes = quota_bytes
        self.blobs: Dict[str, bytes] = {}

    def read(self, key: str) -> Optional[bytes]:
        return self.blobs.get(key)

    def write(self, key: str, payload: bytes) -> None:
        if self.quota_bytes is not None and len(payload) > self.quota_bytes:
            raise StoreQuotaExceededError(
                f"payload of {len(payload)} bytes exceeds quota of {self.quota_bytes} bytes"
            )
        self.blobs[key] = bytes(payload)

    def delete(self, key: str) -> None:
        self.blobs.pop(key, None)
