"""
Keyed Store
===========

Bounded Context: Typed, namespaced persistence over a StorageBackend.

Responsibilities:
- JSON serialization of values
- Namespacing every key under one reserved prefix (default "herenow_")
- Startup probe and degraded mode when the backend is unusable

Failure semantics:
- Probe fails at construction -> ``available`` is False and every
  operation is a no-op / absent read from then on.
- A backend error on an individual operation is logged and degraded
  the same way for that call.
- Malformed persisted JSON is logged and read as absent.
"""

import json
from enum import Enum
from typing import Any, List, Optional, Union

from herenow_logging import LogEvent, StructuredLogger, create_logger

from .backends import StorageBackend, StorageUnavailableError

DEFAULT_NAMESPACE = "herenow_"

KeyLike = Union[str, Enum]

_BACKEND_ERRORS = (OSError, StorageUnavailableError)


class KeyedStore:
    """
    Namespaced JSON key/value store.

    Keys are given without the namespace prefix; enum members are
    accepted and their value is used.

    Usage:
        store = KeyedStore(MemoryBackend())
        store.set("user_profile", {"id": "u1"})
        store.get("user_profile")  # {"id": "u1"}
        store.clear()              # removes every "herenow_*" key
    """

    PROBE_KEY = "__storage_test__"

    def __init__(
        self,
        backend: StorageBackend,
        namespace: str = DEFAULT_NAMESPACE,
        logger: Optional[StructuredLogger] = None,
    ):
        if not namespace:
            raise ValueError("namespace cannot be empty")
        self.backend = backend
        self.namespace = namespace
        self.logger = logger or create_logger("store")
        self.available = self._probe()

    def _probe(self) -> bool:
        """Write, read back and remove a probe key."""
        try:
            self.backend.set(self.PROBE_KEY, "test")
            ok = self.backend.get(self.PROBE_KEY) == "test"
            self.backend.remove(self.PROBE_KEY)
        except _BACKEND_ERRORS as e:
            self.logger.warning(
                event=LogEvent.STORAGE_UNAVAILABLE,
                message="Storage probe failed; persistence disabled",
                metadata={'backend': type(self.backend).__name__},
                exc_info=e,
            )
            return False

        if not ok:
            self.logger.warning(
                event=LogEvent.STORAGE_UNAVAILABLE,
                message="Storage probe read back a different value; persistence disabled",
                metadata={'backend': type(self.backend).__name__},
            )
            return False

        self.logger.debug(
            event=LogEvent.STORAGE_AVAILABLE,
            message="Storage probe succeeded",
            metadata={'backend': type(self.backend).__name__},
        )
        return True

    def full_key(self, key: KeyLike) -> str:
        """Key as stored in the backend (namespace + key)."""
        name = key.value if isinstance(key, Enum) else str(key)
        return f"{self.namespace}{name}"

    def get(self, key: KeyLike, default: Any = None) -> Any:
        """
        Read and decode a value.

        Returns:
            Decoded value, or default when absent, undecodable or unavailable
        """
        if not self.available:
            return default

        full_key = self.full_key(key)
        try:
            raw = self.backend.get(full_key)
        except _BACKEND_ERRORS as e:
            self.logger.error(
                event=LogEvent.STORAGE_ERROR,
                message="Failed to read value",
                metadata={'key': full_key},
                exc_info=e,
            )
            return default

        if raw is None:
            return default

        try:
            return json.loads(raw)
        except (json.JSONDecodeError, TypeError) as e:
            self.logger.warning(
                event=LogEvent.DESERIALIZATION_ERROR,
                message="Ignoring malformed persisted value",
                metadata={'key': full_key},
                exc_info=e,
            )
            return default

    def set(self, key: KeyLike, value: Any) -> None:
        """
        Encode and store a value.

        Raises:
            ValueError: If value is not JSON-serializable
        """
        full_key = self.full_key(key)
        try:
            payload = json.dumps(value)
        except (TypeError, ValueError) as e:
            self.logger.error(
                event=LogEvent.SERIALIZATION_ERROR,
                message="Value is not JSON-serializable",
                metadata={'key': full_key},
                exc_info=e,
            )
            raise ValueError(f"Value for key {full_key!r} is not JSON-serializable: {e}") from e

        if not self.available:
            return

        try:
            self.backend.set(full_key, payload)
        except _BACKEND_ERRORS as e:
            self.logger.error(
                event=LogEvent.STORAGE_ERROR,
                message="Failed to persist value",
                metadata={'key': full_key},
                exc_info=e,
            )

    def remove(self, key: KeyLike) -> None:
        if not self.available:
            return
        full_key = self.full_key(key)
        try:
            self.backend.remove(full_key)
        except _BACKEND_ERRORS as e:
            self.logger.error(
                event=LogEvent.STORAGE_ERROR,
                message="Failed to remove value",
                metadata={'key': full_key},
                exc_info=e,
            )

    def exists(self, key: KeyLike) -> bool:
        if not self.available:
            return False
        try:
            return self.backend.get(self.full_key(key)) is not None
        except _BACKEND_ERRORS:
            return False

    def keys(self) -> List[str]:
        """Keys under the namespace, with the prefix stripped."""
        if not self.available:
            return []
        try:
            full_keys = self.backend.keys(self.namespace)
        except _BACKEND_ERRORS as e:
            self.logger.error(
                event=LogEvent.STORAGE_ERROR,
                message="Failed to enumerate keys",
                exc_info=e,
            )
            return []
        return sorted(k[len(self.namespace):] for k in full_keys)

    def clear(self) -> int:
        """
        Remove every key under the namespace prefix.

        Keys outside the namespace are left untouched.

        Returns:
            Number of keys removed
        """
        if not self.available:
            return 0
        try:
            removed = self.backend.clear_prefix(self.namespace)
        except _BACKEND_ERRORS as e:
            self.logger.error(
                event=LogEvent.STORAGE_ERROR,
                message="Failed to clear namespace",
                metadata={'namespace': self.namespace},
                exc_info=e,
            )
            return 0

        self.logger.info(
            event=LogEvent.STORAGE_CLEARED,
            message="Cleared app data",
            metadata={'namespace': self.namespace, 'removed': removed},
        )
        return removed

    def __repr__(self) -> str:
        return (
            f"KeyedStore(backend={type(self.backend).__name__}, "
            f"namespace={self.namespace!r}, available={self.available})"
        )
