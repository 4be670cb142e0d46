"""
Daily Event Store
=================

Bounded Context: Daily event lifecycle state (profile, daily event,
ad-watch unlock, reveal, attendance).

Thin facade over KeyedStore + DayScopedCache. Payloads (profile, daily
event) are opaque dicts owned by callers.
"""

from datetime import datetime, time, timedelta
from enum import Enum
from typing import Any, Dict, List, Optional

from .clock import Clock
from .daily_cache import DayScopedCache
from .keyed_store import KeyedStore

ADS_REQUIRED = 3
REVEAL_TIME = time(8, 0)


class StorageKey(str, Enum):
    """Keys used by the app (stored under the namespace prefix)."""
    USER_PROFILE = "user_profile"
    USER_PREFERENCES = "user_preferences"
    DAILY_EVENT_CACHE = "daily_event"
    ATTENDED_EVENTS = "attended_events"
    NOTIFICATION_PREFS = "notification_prefs"
    AD_WATCH_COUNT = "ad_watch_count"
    EVENT_REVEALED = "event_revealed"
    SCHEDULED_NOTIFICATIONS = "scheduled_notifications"


class DailyEventStore:
    """
    Facade for the daily event lifecycle.

    Usage:
        events = DailyEventStore(store, cache, clock)
        events.cache_daily_event({"id": "evt-1", "title": "Rooftop jazz"})
        events.record_ad_watch()      # 1
        events.is_event_unlocked()    # False until ads_required
    """

    def __init__(
        self,
        store: KeyedStore,
        cache: DayScopedCache,
        clock: Clock,
        ads_required: int = ADS_REQUIRED,
        reveal_time: time = REVEAL_TIME,
    ):
        if ads_required < 1:
            raise ValueError(f"ads_required must be >= 1, got {ads_required}")
        self.store = store
        self.cache = cache
        self.clock = clock
        self.ads_required = ads_required
        self.reveal_time = reveal_time

    # ------------------------------------------------------------------
    # Profile
    # ------------------------------------------------------------------

    def get_user_profile(self) -> Optional[Dict[str, Any]]:
        return self.store.get(StorageKey.USER_PROFILE)

    def set_user_profile(self, profile: Dict[str, Any]) -> None:
        """Store the profile; its preferences are also kept under their own key."""
        self.store.set(StorageKey.USER_PROFILE, profile)
        if 'preferences' in profile:
            self.store.set(StorageKey.USER_PREFERENCES, profile['preferences'])

    # ------------------------------------------------------------------
    # Daily event
    # ------------------------------------------------------------------

    def get_cached_daily_event(self) -> Optional[Dict[str, Any]]:
        return self.cache.get_today(StorageKey.DAILY_EVENT_CACHE)

    def cache_daily_event(self, event: Dict[str, Any]) -> None:
        self.cache.put_today(StorageKey.DAILY_EVENT_CACHE, event)

    # ------------------------------------------------------------------
    # Ad-watch unlock
    # ------------------------------------------------------------------

    def record_ad_watch(self) -> int:
        return self.cache.increment_daily_counter(StorageKey.AD_WATCH_COUNT)

    def get_ad_watch_count(self) -> int:
        return self.cache.get_daily_counter(StorageKey.AD_WATCH_COUNT)

    def is_event_unlocked(self) -> bool:
        return self.cache.is_threshold_reached(StorageKey.AD_WATCH_COUNT, self.ads_required)

    def ads_remaining(self) -> int:
        return max(0, self.ads_required - self.get_ad_watch_count())

    # ------------------------------------------------------------------
    # Reveal
    # ------------------------------------------------------------------

    def _reveal_moment(self, now: datetime) -> datetime:
        return now.replace(
            hour=self.reveal_time.hour,
            minute=self.reveal_time.minute,
            second=0,
            microsecond=0,
        )

    def is_event_revealed(self, remember: bool = True) -> bool:
        """
        Whether today's event is visible.

        Once past the reveal time the reveal is remembered for the rest
        of the day. With remember=False nothing is written.
        """
        if self.cache.get_today(StorageKey.EVENT_REVEALED):
            return True
        now = self.clock.now()
        if now < self._reveal_moment(now):
            return False
        if remember:
            self.cache.put_today(StorageKey.EVENT_REVEALED, True)
        return True

    def time_until_reveal(self) -> timedelta:
        """Time left before today's reveal (zero once revealed)."""
        if self.is_event_revealed():
            return timedelta(0)
        now = self.clock.now()
        return self._reveal_moment(now) - now

    # ------------------------------------------------------------------
    # Attendance
    # ------------------------------------------------------------------

    def mark_event_attended(self, event_id: str) -> None:
        attended = self.get_attended_events()
        if event_id not in attended:
            attended.append(event_id)
            self.store.set(StorageKey.ATTENDED_EVENTS, attended)

        profile = self.get_user_profile()
        if isinstance(profile, dict):
            ids = list(profile.get('attended_event_ids', []))
            if event_id not in ids:
                ids.append(event_id)
                self.set_user_profile({**profile, 'attended_event_ids': ids})

    def get_attended_events(self) -> List[str]:
        attended = self.store.get(StorageKey.ATTENDED_EVENTS)
        return list(attended) if isinstance(attended, list) else []
