"""
Storage abstraction layer for the persisted session.

Provides pluggable key/value backends holding raw JSON text:
- In-memory (tests, throwaway sessions)
- File (default; one file per key in STORAGE_DIR)

Configure via STORAGE_BACKEND environment variable.
"""
import os
import re
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, Dict

from datanova.core.config import Settings

logger = logging.getLogger(__name__)


class StorageBackend(ABC):
    """Abstract base class for storage backends."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Get raw value by key. Returns None if not found."""
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> bool:
        """Set raw value. Returns True on success."""
        pass

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Delete key. Returns True if deleted."""
        pass


class InMemoryStorage(StorageBackend):
    """
    In-memory storage.

    Nothing survives a restart.
    """

    def __init__(self):
        self._store: Dict[str, str] = {}
        logger.info("Using in-memory storage backend")

    def get(self, key: str) -> Optional[str]:
        return self._store.get(key)

    def set(self, key: str, value: str) -> bool:
        self._store[key] = value
        return True

    def delete(self, key: str) -> bool:
        if key in self._store:
            del self._store[key]
            return True
        return False

    def size(self) -> int:
        """Get current store size."""
        return len(self._store)


class FileStorage(StorageBackend):
    """
    File-per-key storage under a local directory.

    Writes go to a temporary file first and are moved into place, so a crash
    mid-write leaves the previous value intact.
    """

    def __init__(self, directory: str):
        self._dir = Path(directory)
        self._dir.mkdir(parents=True, exist_ok=True)
        logger.info(f"Using file storage backend at {self._dir.resolve()}")

    def _path(self, key: str) -> Path:
        safe_key = re.sub(r'[^A-Za-z0-9_.-]', '_', key)
        return self._dir / f"{safe_key}.json"

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            logger.error(f"File storage read error for {path.name}: {e}")
            return None

    def set(self, key: str, value: str) -> bool:
        path = self._path(key)
        tmp_path = path.with_suffix(".tmp")
        try:
            tmp_path.write_text(value, encoding="utf-8")
            os.replace(tmp_path, path)
            return True
        except OSError as e:
            logger.error(f"File storage write error for {path.name}: {e}")
            return False

    def delete(self, key: str) -> bool:
        try:
            self._path(key).unlink()
            return True
        except FileNotFoundError:
            return False
        except OSError as e:
            logger.error(f"File storage delete error for key {key}: {e}")
            return False


def create_storage(settings: Settings) -> StorageBackend:
    """Build the storage backend named by settings."""
    if settings.storage_backend == "memory":
        return InMemoryStorage()
    return FileStorage(settings.storage_dir)

