"""
Day-Scoped Cache
================

Bounded Context: "valid only for today" values on top of KeyedStore.

Every value is wrapped in a CacheEntry carrying the day stamp it was
written on. Expiry is lazy: a read compares the stamp with the clock's
current day and treats a mismatch as absent. There is no background
sweep and no midnight timer; stale raw entries stay in the store until
overwritten.

Used for:
- the daily event cache
- the ad-watch counter (reset exactly once per new day, on first access)
- the daily reveal flag
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from herenow_logging import LogEvent, StructuredLogger, create_logger

from .clock import Clock
from .keyed_store import KeyLike, KeyedStore


@dataclass(frozen=True)
class CacheEntry:
    """
    Value plus the calendar day it belongs to.

    Attributes:
        value: Any JSON-compatible payload
        day_stamp: YYYY-MM-DD of the write
    """
    value: Any
    day_stamp: str

    def __post_init__(self):
        if not isinstance(self.day_stamp, str) or not self.day_stamp:
            raise ValueError(f"day_stamp must be a non-empty string, got {self.day_stamp!r}")

    def is_for(self, day: str) -> bool:
        return self.day_stamp == day

    def to_dict(self) -> Dict[str, Any]:
        return {'value': self.value, 'day_stamp': self.day_stamp}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CacheEntry':
        """
        Deserialize from dict.

        Raises:
            ValueError: If data is not a mapping with value/day_stamp
        """
        if not isinstance(data, dict):
            raise ValueError(f"CacheEntry must be a dict, got {type(data).__name__}")
        try:
            return cls(value=data['value'], day_stamp=data['day_stamp'])
        except KeyError as e:
            raise ValueError(f"Missing required CacheEntry field: {e}")


class DayScopedCache:
    """
    Day-scoped reads, writes and counters.

    None of the methods raise on storage problems: an unavailable store
    behaves as an always-empty one, so counters restart at 1 on every call.

    Usage:
        cache = DayScopedCache(store, clock)
        cache.increment_daily_counter("ad_watch_count")  # 1
        cache.increment_daily_counter("ad_watch_count")  # 2
        # ... next day ...
        cache.increment_daily_counter("ad_watch_count")  # 1
    """

    def __init__(
        self,
        store: KeyedStore,
        clock: Clock,
        logger: Optional[StructuredLogger] = None,
    ):
        self.store = store
        self.clock = clock
        self.logger = logger or create_logger("cache")

    def _read_entry(self, key: KeyLike) -> Optional[CacheEntry]:
        raw = self.store.get(key)
        if raw is None:
            return None
        try:
            return CacheEntry.from_dict(raw)
        except ValueError as e:
            self.logger.warning(
                event=LogEvent.DESERIALIZATION_ERROR,
                message="Ignoring malformed cache entry",
                metadata={'key': self.store.full_key(key)},
                exc_info=e,
            )
            return None

    def _read_today(self, key: KeyLike) -> Optional[CacheEntry]:
        entry = self._read_entry(key)
        if entry is None:
            return None
        today = self.clock.today()
        if not entry.is_for(today):
            self.logger.debug(
                event=LogEvent.CACHE_STALE,
                message="Cache entry is from another day",
                metadata={'key': self.store.full_key(key), 'day_stamp': entry.day_stamp, 'today': today},
            )
            return None
        return entry

    def get_today(self, key: KeyLike) -> Any:
        """Value written today under key, else None."""
        entry = self._read_today(key)
        return None if entry is None else entry.value

    def put_today(self, key: KeyLike, value: Any) -> None:
        """Overwrite key with value stamped for today."""
        self.store.set(key, CacheEntry(value=value, day_stamp=self.clock.today()).to_dict())

    def get_daily_counter(self, key: KeyLike) -> int:
        """Today's counter value (0 when absent or stale)."""
        entry = self._read_today(key)
        if entry is None or not _is_count(entry.value):
            return 0
        return entry.value

    def increment_daily_counter(self, key: KeyLike) -> int:
        """
        Increment today's counter.

        Absent, stale or non-integer counters restart at 1.

        Returns:
            Post-increment value
        """
        current = self.get_daily_counter(key)
        if current == 0:
            self.logger.debug(
                event=LogEvent.CACHE_COUNTER_RESET,
                message="Starting daily counter",
                metadata={'key': self.store.full_key(key), 'day': self.clock.today()},
            )
        new_value = current + 1
        self.put_today(key, new_value)
        return new_value

    def is_threshold_reached(self, key: KeyLike, threshold: int) -> bool:
        return self.get_daily_counter(key) >= threshold

    def invalidate(self, key: KeyLike) -> None:
        self.store.remove(key)


def _is_count(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0
