"""
Key-value stores backing the persistent cache tier.

A store maps string keys to string values, like browser storage would.
Caches serialize their entries to JSON before handing them over, so any
store implementation only has to move text around.
"""

import hashlib
import json
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Optional, Union
from loguru import logger

from alphdata.exceptions import StorageError


class KeyValueStore(ABC):
    """Abstract string key-value store."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Get the value stored under key, or None."""
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store value under key, replacing any previous value."""
        pass

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Delete key. Returns True if it existed."""
        pass

    @abstractmethod
    def keys(self) -> List[str]:
        """List all stored keys."""
        pass

    def close(self) -> None:
        """Release any resources held by the store."""
        pass


class MemoryKeyValueStore(KeyValueStore):
    """In-process store, used in tests and when nothing should outlive the process."""

    def __init__(self, max_bytes: Optional[int] = None):
        self._data: Dict[str, str] = {}
        self._max_bytes = max_bytes

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        if self._max_bytes is not None:
            used = sum(len(v) for k, v in self._data.items() if k != key)
            if used + len(value) > self._max_bytes:
                raise StorageError(
                    f"Quota exceeded writing '{key}'",
                    context={"key": key, "max_bytes": self._max_bytes}
                )
        self._data[key] = value

    def delete(self, key: str) -> bool:
        return self._data.pop(key, None) is not None

    def keys(self) -> List[str]:
        return list(self._data.keys())


class FileKeyValueStore(KeyValueStore):
    """File-backed store: one file per key plus an index of original keys.

    File names are hashes of the keys so arbitrary ids are safe on any
    filesystem. Writes go through a temporary file and ``os.replace`` so a
    crash never leaves a half-written value behind.

    The value files are the source of truth. Lookups read them directly and
    the index is re-read from disk before every update, so several instances
    or processes sharing one directory see each other's keys.
    """

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Cannot create store directory {self.directory}: {e}", cause=e)

        self.index_file = self.directory / "store_index.json"

    def _load_index(self) -> Dict[str, str]:
        """Read the key index from disk."""
        if not self.index_file.exists():
            return {}
        try:
            with open(self.index_file, 'r', encoding='utf-8') as f:
                index = json.load(f)
        except (json.JSONDecodeError, OSError):
            logger.warning("Store index file corrupted, rebuilding from an empty index")
            return {}
        return index if isinstance(index, dict) else {}

    def _save_index(self, index: Dict[str, str]) -> None:
        self._atomic_write(self.index_file, json.dumps(index, indent=2))

    def _atomic_write(self, path: Path, text: str) -> None:
        fd, tmp_path = tempfile.mkstemp(dir=self.directory, suffix=".tmp")
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                f.write(text)
            os.replace(tmp_path, path)
        except OSError as e:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise StorageError(f"Failed to write {path.name}: {e}", cause=e)

    def _get_value_file(self, key: str) -> Path:
        key_hash = hashlib.sha256(key.encode()).hexdigest()
        return self.directory / f"{key_hash}.json"

    def get(self, key: str) -> Optional[str]:
        value_file = self._get_value_file(key)
        try:
            with open(value_file, 'r', encoding='utf-8') as f:
                return f.read()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StorageError(f"Error reading {value_file.name}: {e}", context={"key": key}, cause=e)

    def set(self, key: str, value: str) -> None:
        value_file = self._get_value_file(key)
        self._atomic_write(value_file, value)

        index = self._load_index()
        if index.get(key) != value_file.name:
            index[key] = value_file.name
            self._save_index(index)

    def delete(self, key: str) -> bool:
        value_file = self._get_value_file(key)
        existed = value_file.exists()
        if existed:
            try:
                value_file.unlink()
            except FileNotFoundError:
                existed = False
            except OSError as e:
                raise StorageError(f"Error deleting {value_file.name}: {e}", context={"key": key}, cause=e)

        index = self._load_index()
        if key in index:
            del index[key]
            self._save_index(index)
        return existed

    def keys(self) -> List[str]:
        # Entries whose value file was removed behind our back are skipped
        return [key for key in self._load_index() if self._get_value_file(key).exists()]
