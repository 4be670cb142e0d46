"""
Storage Backends
================

Bounded Context: Raw string-keyed persistence.

Backends store str -> str and know nothing about JSON or namespaces.
KeyedStore layers serialization, namespacing and degradation on top.

Backends:
- MemoryBackend: process-local dict (lost on restart)
- JsonFileBackend: single JSON document on disk (survives restarts)
"""

import json
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Optional, Union


class StorageUnavailableError(Exception):
    """Raised by a backend that cannot read or write."""
    pass


class StorageBackend(ABC):
    """Abstract string-keyed store with prefix enumeration."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the raw value or None if absent."""
        raise NotImplementedError

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def remove(self, key: str) -> None:
        """Remove a key. No error if absent."""
        raise NotImplementedError

    @abstractmethod
    def keys(self, prefix: str = "") -> List[str]:
        """Enumerate keys starting with prefix."""
        raise NotImplementedError

    def clear_prefix(self, prefix: str) -> int:
        """
        Remove every key starting with prefix.

        Returns:
            Number of keys removed
        """
        doomed = self.keys(prefix)
        for key in doomed:
            self.remove(key)
        return len(doomed)


class MemoryBackend(StorageBackend):
    """Dict-backed storage."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self, prefix: str = "") -> List[str]:
        return [key for key in self._data if key.startswith(prefix)]

    def clear_prefix(self, prefix: str) -> int:
        doomed = self.keys(prefix)
        for key in doomed:
            del self._data[key]
        return len(doomed)

    def __len__(self) -> int:
        return len(self._data)


class JsonFileBackend(StorageBackend):
    """
    Storage persisted as one JSON object in a file.

    Every mutation rewrites the whole document through a temporary file
    and os.replace(), so a reader never observes a partial write and
    clear_prefix() is a single atomic replacement.

    A file that exists but cannot be read as a JSON object leaves the
    backend unusable: every operation raises StorageUnavailableError, so
    KeyedStore's probe degrades instead of the constructor failing, and
    the bad file is never overwritten.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._load_error: Optional[StorageUnavailableError] = None
        self._data: Dict[str, str] = {}
        try:
            self._data = self._load()
        except StorageUnavailableError as e:
            self._load_error = e

    def _usable(self) -> None:
        if self._load_error is not None:
            raise self._load_error

    def _load(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise StorageUnavailableError(f"Cannot read storage file {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise StorageUnavailableError(
                f"Storage file {self.path} must contain a JSON object, got {type(data).__name__}"
            )
        return {str(k): str(v) for k, v in data.items()}

    def _flush(self, data: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(
            prefix=f".{self.path.name}.", suffix=".tmp", dir=str(self.path.parent)
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, sort_keys=True)
            os.replace(tmp_path, self.path)
        except OSError:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
        self._data = data

    def get(self, key: str) -> Optional[str]:
        self._usable()
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._usable()
        data = dict(self._data)
        data[key] = value
        self._flush(data)

    def remove(self, key: str) -> None:
        self._usable()
        if key not in self._data:
            return
        data = dict(self._data)
        del data[key]
        self._flush(data)

    def keys(self, prefix: str = "") -> List[str]:
        self._usable()
        return [key for key in self._data if key.startswith(prefix)]

    def clear_prefix(self, prefix: str) -> int:
        self._usable()
        kept = {k: v for k, v in self._data.items() if not k.startswith(prefix)}
        removed = len(self._data) - len(kept)
        if removed:
            self._flush(kept)
        return removed
