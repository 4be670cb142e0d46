"""
Test HereNow Store
==================

Keyed store, day-scoped cache and daily event facade, driven by a
ManualClock and in-memory / on-disk backends.

Usage:
    pytest test_store.py
"""

import json
from datetime import datetime, timedelta, timezone

import pytest

from herenow_store import (
    CacheEntry,
    DailyEventStore,
    DayScopedCache,
    JsonFileBackend,
    KeyedStore,
    ManualClock,
    MemoryBackend,
    StorageKey,
    StorageUnavailableError,
)


UTC = timezone.utc


class BrokenBackend(MemoryBackend):
    """Backend whose writes always fail."""

    def set(self, key, value):
        raise StorageUnavailableError("quota exceeded")


class LyingBackend(MemoryBackend):
    """Backend that accepts writes but reads back something else."""

    def get(self, key):
        return "nope"


def make_clock(hour=9, minute=0):
    return ManualClock(datetime(2025, 6, 1, hour, minute, tzinfo=UTC))


# ============================================================================
# KeyedStore
# ============================================================================

def test_store_probe_succeeds_and_leaves_no_trace():
    backend = MemoryBackend()
    store = KeyedStore(backend)

    assert store.available
    assert backend.keys() == []


def test_store_namespaces_keys():
    backend = MemoryBackend()
    store = KeyedStore(backend)

    store.set(StorageKey.USER_PROFILE, {"id": "u1"})
    store.set("custom", [1, 2, 3])

    assert backend.get("herenow_user_profile") == json.dumps({"id": "u1"})
    assert store.get(StorageKey.USER_PROFILE) == {"id": "u1"}
    assert store.get("custom") == [1, 2, 3]
    assert store.keys() == ["custom", "user_profile"]
    assert store.exists("custom")


def test_store_get_default_when_absent():
    store = KeyedStore(MemoryBackend())

    assert store.get("missing") is None
    assert store.get("missing", default=7) == 7
    assert not store.exists("missing")


def test_store_remove():
    store = KeyedStore(MemoryBackend())
    store.set("a", 1)

    store.remove("a")
    store.remove("never-there")

    assert store.get("a") is None


def test_store_clear_only_touches_namespace():
    backend = MemoryBackend({"other_app_key": "keep", "herenowish": "keep"})
    store = KeyedStore(backend)
    store.set("a", 1)
    store.set("b", {"x": True})

    removed = store.clear()

    assert removed == 2
    assert store.keys() == []
    assert backend.get("other_app_key") == "keep"
    assert backend.get("herenowish") == "keep"


def test_store_malformed_json_reads_as_absent():
    backend = MemoryBackend({"herenow_broken": "{not json"})
    store = KeyedStore(backend)

    assert store.get("broken") is None
    assert store.get("broken", default="fallback") == "fallback"


def test_store_rejects_unserializable_value():
    store = KeyedStore(MemoryBackend())

    with pytest.raises(ValueError):
        store.set("bad", object())


def test_store_degrades_when_probe_fails():
    store = KeyedStore(BrokenBackend())

    assert not store.available
    store.set("a", 1)
    assert store.get("a") is None
    assert store.keys() == []
    assert store.clear() == 0


def test_store_degrades_when_probe_reads_wrong_value():
    store = KeyedStore(LyingBackend())

    assert not store.available


def test_store_custom_namespace():
    backend = MemoryBackend()
    store = KeyedStore(backend, namespace="test_")
    store.set("a", 1)

    assert backend.keys() == ["test_a"]

    with pytest.raises(ValueError):
        KeyedStore(backend, namespace="")


def test_json_file_backend_survives_restart(tmp_path):
    path = tmp_path / "store.json"
    store = KeyedStore(JsonFileBackend(path))
    store.set("a", {"n": 1})

    reopened = KeyedStore(JsonFileBackend(path))

    assert reopened.get("a") == {"n": 1}
    assert reopened.clear() == 1
    assert KeyedStore(JsonFileBackend(path)).keys() == []


@pytest.mark.parametrize("content", ["{not json", "[1, 2, 3]"])
def test_json_file_backend_unreadable_file_degrades(tmp_path, content):
    path = tmp_path / "store.json"
    path.write_text(content)

    backend = JsonFileBackend(path)
    with pytest.raises(StorageUnavailableError):
        backend.get("a")

    store = KeyedStore(backend)

    assert store.available is False
    assert store.get("a") is None
    store.set("a", 1)
    assert store.clear() == 0
    assert path.read_text() == content


# ============================================================================
# DayScopedCache
# ============================================================================

def test_cache_entry_validation():
    entry = CacheEntry(value=3, day_stamp="2025-06-01")

    assert entry.is_for("2025-06-01")
    assert CacheEntry.from_dict(entry.to_dict()) == entry

    with pytest.raises(ValueError):
        CacheEntry(value=1, day_stamp="")
    with pytest.raises(ValueError):
        CacheEntry.from_dict({"value": 1})
    with pytest.raises(ValueError):
        CacheEntry.from_dict("2025-06-01")


def test_cache_value_goes_stale_next_day():
    clock = make_clock()
    store = KeyedStore(MemoryBackend())
    cache = DayScopedCache(store, clock)

    cache.put_today("daily_event", {"id": "evt-1"})
    assert cache.get_today("daily_event") == {"id": "evt-1"}

    clock.advance(days=1)

    assert cache.get_today("daily_event") is None
    # Stale entries are not swept
    assert store.get("daily_event") == {"value": {"id": "evt-1"}, "day_stamp": "2025-06-01"}


def test_daily_counter_resets_on_new_day():
    clock = make_clock()
    cache = DayScopedCache(KeyedStore(MemoryBackend()), clock)

    assert cache.get_daily_counter("ads") == 0
    assert [cache.increment_daily_counter("ads") for _ in range(3)] == [1, 2, 3]
    assert cache.is_threshold_reached("ads", 3)

    clock.advance(days=1)

    assert cache.get_daily_counter("ads") == 0
    assert cache.increment_daily_counter("ads") == 1
    assert not cache.is_threshold_reached("ads", 3)


def test_daily_counter_just_before_midnight():
    clock = make_clock(hour=23, minute=59)
    cache = DayScopedCache(KeyedStore(MemoryBackend()), clock)

    cache.increment_daily_counter("ads")
    cache.increment_daily_counter("ads")
    clock.advance(minutes=2)

    assert cache.increment_daily_counter("ads") == 1


def test_daily_counter_ignores_non_integer_values():
    clock = make_clock()
    store = KeyedStore(MemoryBackend())
    cache = DayScopedCache(store, clock)

    store.set("ads", {"value": True, "day_stamp": "2025-06-01"})
    assert cache.get_daily_counter("ads") == 0

    store.set("ads", {"value": "three", "day_stamp": "2025-06-01"})
    assert cache.increment_daily_counter("ads") == 1


def test_cache_malformed_entry_reads_as_absent():
    clock = make_clock()
    store = KeyedStore(MemoryBackend())
    cache = DayScopedCache(store, clock)

    store.set("daily_event", "just a string")

    assert cache.get_today("daily_event") is None


def test_cache_invalidate():
    cache = DayScopedCache(KeyedStore(MemoryBackend()), make_clock())
    cache.put_today("x", 1)

    cache.invalidate("x")

    assert cache.get_today("x") is None


def test_cache_on_unavailable_store_counts_from_one():
    cache = DayScopedCache(KeyedStore(BrokenBackend()), make_clock())

    assert cache.increment_daily_counter("ads") == 1
    assert cache.increment_daily_counter("ads") == 1


# ============================================================================
# DailyEventStore
# ============================================================================

def make_events(clock, **kwargs):
    store = KeyedStore(MemoryBackend())
    return DailyEventStore(store, DayScopedCache(store, clock), clock, **kwargs)


def test_event_unlocks_after_required_ads():
    clock = make_clock()
    events = make_events(clock)

    assert not events.is_event_unlocked()
    assert events.ads_remaining() == 3

    events.record_ad_watch()
    events.record_ad_watch()
    assert not events.is_event_unlocked()
    assert events.ads_remaining() == 1

    assert events.record_ad_watch() == 3
    assert events.is_event_unlocked()
    assert events.ads_remaining() == 0

    clock.advance(days=1)
    assert not events.is_event_unlocked()
    assert events.get_ad_watch_count() == 0


def test_event_ads_required_validation():
    with pytest.raises(ValueError):
        make_events(make_clock(), ads_required=0)


def test_daily_event_cache_is_day_scoped():
    clock = make_clock()
    events = make_events(clock)

    events.cache_daily_event({"id": "evt-1", "title": "Rooftop jazz"})
    assert events.get_cached_daily_event()["id"] == "evt-1"

    clock.advance(days=1)
    assert events.get_cached_daily_event() is None


def test_event_reveal_time():
    clock = make_clock(hour=7, minute=30)
    events = make_events(clock)

    assert not events.is_event_revealed()
    assert events.time_until_reveal() == timedelta(minutes=30)

    clock.advance(minutes=30)
    assert events.is_event_revealed()
    assert events.time_until_reveal() == timedelta(0)

    # Next morning the reveal is pending again
    clock.advance(hours=23)
    assert not events.is_event_revealed()


def test_reveal_check_without_remember_is_read_only():
    clock = make_clock(hour=9, minute=0)
    events = make_events(clock)

    assert events.is_event_revealed(remember=False)
    assert not events.store.exists(StorageKey.EVENT_REVEALED)

    assert events.is_event_revealed()
    assert events.store.exists(StorageKey.EVENT_REVEALED)


def test_storage_keys():
    assert {key.value for key in StorageKey} == {
        "user_profile",
        "user_preferences",
        "daily_event",
        "attended_events",
        "notification_prefs",
        "ad_watch_count",
        "event_revealed",
        "scheduled_notifications",
    }


def test_mark_event_attended_updates_profile():
    events = make_events(make_clock())
    events.set_user_profile({"id": "u1", "preferences": {"radius_km": 5}})

    events.mark_event_attended("evt-1")
    events.mark_event_attended("evt-1")
    events.mark_event_attended("evt-2")

    assert events.get_attended_events() == ["evt-1", "evt-2"]
    assert events.get_user_profile()["attended_event_ids"] == ["evt-1", "evt-2"]
    assert events.store.get(StorageKey.USER_PREFERENCES) == {"radius_km": 5}


def test_mark_event_attended_without_profile():
    events = make_events(make_clock())

    events.mark_event_attended("evt-1")

    assert events.get_attended_events() == ["evt-1"]
    assert events.get_user_profile() is None
