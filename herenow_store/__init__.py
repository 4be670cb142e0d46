"""
HereNow Store
=============

Bounded Context: Persistence (clock, keyed store, day-scoped cache)

Design:
- Backends expose raw string get/set/remove/enumerate/clear-by-prefix
- KeyedStore adds JSON, namespacing and degraded mode
- DayScopedCache adds "valid only for today" semantics
- DailyEventStore is the app-facing facade

Public API
----------
    Clock, SystemClock, ManualClock, day_stamp
    StorageBackend, MemoryBackend, JsonFileBackend, StorageUnavailableError
    KeyedStore
    CacheEntry, DayScopedCache
    StorageKey, DailyEventStore
"""

from .backends import JsonFileBackend, MemoryBackend, StorageBackend, StorageUnavailableError
from .clock import Clock, ManualClock, SystemClock, add_local_days, day_stamp, ensure_aware
from .daily_cache import CacheEntry, DayScopedCache
from .event_store import ADS_REQUIRED, REVEAL_TIME, DailyEventStore, StorageKey
from .keyed_store import DEFAULT_NAMESPACE, KeyedStore

__all__ = [
    'Clock',
    'SystemClock',
    'ManualClock',
    'add_local_days',
    'day_stamp',
    'ensure_aware',
    'StorageBackend',
    'MemoryBackend',
    'JsonFileBackend',
    'StorageUnavailableError',
    'KeyedStore',
    'DEFAULT_NAMESPACE',
    'CacheEntry',
    'DayScopedCache',
    'StorageKey',
    'DailyEventStore',
    'ADS_REQUIRED',
    'REVEAL_TIME',
]
