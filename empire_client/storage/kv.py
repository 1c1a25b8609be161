"""Durable key/value backends for client-side state.

Values are opaque strings, the way browser local storage holds them; the
callers own encoding and validation. Two backends implement the same
interface so the Staging Store does not know which one is active:

- MemoryKeyValueStore: process-local dict, for tests and ephemeral sessions
- FileKeyValueStore: one file per key in a directory
"""

import logging
import re
from abc import ABC, abstractmethod
from pathlib import Path

from ..config import ClientConfig, StagingBackend
from ..errors import PersistenceError

logger = logging.getLogger(__name__)


class KeyValueStore(ABC):
    """Abstract base class for string key/value storage."""

    @abstractmethod
    def get(self, key: str) -> str | None:
        """Read a value.

        Returns:
            Stored string, or None if the key is absent

        Raises:
            PersistenceError: If the backend cannot be read
        """
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Write a value, replacing any previous one.

        Raises:
            PersistenceError: If the backend cannot be written
        """
        pass

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Remove a key.

        Returns:
            True if deleted, False if not found

        Raises:
            PersistenceError: If the backend cannot be written
        """
        pass

    @abstractmethod
    def keys(self, prefix: str = "") -> list[str]:
        """List stored keys starting with prefix, sorted."""
        pass


class MemoryKeyValueStore(KeyValueStore):
    """In-memory key/value store."""

    def __init__(self):
        self._data: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> bool:
        return self._data.pop(key, None) is not None

    def keys(self, prefix: str = "") -> list[str]:
        return sorted(k for k in self._data if k.startswith(prefix))


def key_to_filename(key: str) -> str:
    """Convert a store key to a safe file name.

    Examples:
        >>> key_to_filename("staged_orders:12:4")
        'staged_orders~12~4.txt'
    """
    return re.sub(r"[^A-Za-z0-9_.-]", "~", key) + ".txt"


def filename_to_key(name: str) -> str:
    return name.removesuffix(".txt").replace("~", ":")


class FileKeyValueStore(KeyValueStore):
    """File-based key/value store.

    Each key is stored as its own UTF-8 text file in the store directory.
    Keys may contain letters, digits, "_", ".", "-" and ":".
    """

    def __init__(self, path: str | Path = "staging"):
        """Initialize store.

        Args:
            path: Directory holding one file per key
        """
        self.path = Path(path)
        self.path.mkdir(parents=True, exist_ok=True)

    def _key_path(self, key: str) -> Path:
        return self.path / key_to_filename(key)

    def get(self, key: str) -> str | None:
        path = self._key_path(key)
        if not path.exists():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise PersistenceError(f"Failed to read {path}: {e}") from e

    def set(self, key: str, value: str) -> None:
        path = self._key_path(key)
        tmp_path = path.with_suffix(".tmp")
        try:
            tmp_path.write_text(value, encoding="utf-8")
            tmp_path.replace(path)
        except OSError as e:
            raise PersistenceError(f"Failed to write {path}: {e}") from e

    def delete(self, key: str) -> bool:
        path = self._key_path(key)
        if not path.exists():
            return False
        try:
            path.unlink()
        except OSError as e:
            raise PersistenceError(f"Failed to delete {path}: {e}") from e
        return True

    def keys(self, prefix: str = "") -> list[str]:
        found = (filename_to_key(p.name) for p in self.path.glob("*.txt"))
        return sorted(k for k in found if k.startswith(prefix))


def create_key_value_store(config: ClientConfig) -> KeyValueStore:
    """Factory function to create the configured backend.

    Args:
        config: Client configuration

    Returns:
        KeyValueStore instance
    """
    if config.staging_backend == StagingBackend.MEMORY:
        return MemoryKeyValueStore()
    logger.debug(f"Using file staging store at {config.staging_path}")
    return FileKeyValueStore(config.staging_path)
