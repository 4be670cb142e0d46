"""
Test HereNow Notify
===================

Preference gating, quiet hours, delayed and repeating schedules,
rehydration after restart, taps and the geofence bridge.

All time is virtual: a ManualClock drives a ManualTimerQueue.

Usage:
    pytest test_notify.py
"""

import asyncio
import time as time_module
from datetime import datetime, time, timedelta, timezone

import pytest

from herenow_geofence import (
    Coordinates,
    GeofenceEvent,
    GeofenceMonitor,
    GeofenceRegion,
    LocationSample,
    ManualPositionSource,
)
from herenow_notify import (
    AsyncioTimerQueue,
    DeliveryOutcome,
    GeofenceNotificationBridge,
    LocationNotification,
    LocationTrigger,
    ManualTimerQueue,
    MemoryPresenter,
    MQTTPresenter,
    NotificationCategory,
    NotificationPreferences,
    NotificationRequest,
    NotificationScheduler,
    RepeatInterval,
    ScheduledNotification,
    match_location_notifications,
)
from herenow_store import KeyedStore, ManualClock, MemoryBackend, StorageKey


UTC = timezone.utc
T0 = datetime(2025, 6, 1, 12, 0, tzinfo=UTC)


def request(notification_id="daily-reveal", category=NotificationCategory.DAILY_EVENT, **kwargs):
    return NotificationRequest(
        id=notification_id,
        title="Today's event is live",
        body="Watch 3 ads to unlock it.",
        category=category,
        **kwargs,
    )


class Harness:
    """Scheduler wired to a manual clock, timer queue and memory presenter."""

    def __init__(self, start=T0, backend=None, presenter=None, clock=None):
        self.clock = clock or ManualClock(start)
        self.backend = backend if backend is not None else MemoryBackend()
        self.store = KeyedStore(self.backend)
        self.timers = ManualTimerQueue(self.clock)
        self.presenter = presenter or MemoryPresenter()
        self.scheduler = NotificationScheduler(self.store, self.clock, self.timers, self.presenter)

    def restart(self):
        """New scheduler over the same storage and clock (a process restart)."""
        return Harness(backend=self.backend, clock=self.clock)


# ============================================================================
# Schemas
# ============================================================================

def test_request_validation_and_coercion():
    parsed = NotificationRequest.from_dict(
        {"id": "n1", "title": "Hi", "body": "there", "category": "social"}
    )

    assert parsed.category is NotificationCategory.SOCIAL
    assert NotificationRequest.from_dict(parsed.to_dict()) == parsed
    with pytest.raises(ValueError):
        NotificationRequest.from_dict({"id": "n1", "title": "Hi", "category": "spam"})
    with pytest.raises(ValueError):
        NotificationRequest.from_dict({"title": "Hi", "category": "social"})
    with pytest.raises(ValueError):
        request(notification_id="")


def test_scheduled_notification_validation():
    with pytest.raises(ValueError):
        ScheduledNotification(request(), T0, repeating=True)
    with pytest.raises(ValueError):
        ScheduledNotification(request(), "not a time")

    weekly = ScheduledNotification(request(), T0, repeating=True, repeat_interval="weekly")
    assert weekly.repeat_interval is RepeatInterval.WEEKLY
    assert weekly.next_occurrence().scheduled_time == T0 + timedelta(days=7)
    assert weekly.next_occurrence().id == weekly.id

    with pytest.raises(ValueError):
        ScheduledNotification(request(), T0).next_occurrence()


def test_scheduled_notification_dict_is_flat():
    scheduled = ScheduledNotification(request(), T0, repeating=True, repeat_interval=RepeatInterval.DAILY)

    data = scheduled.to_dict()

    assert data["id"] == "daily-reveal"
    assert data["scheduled_time"] == T0.isoformat()
    assert data["repeat_interval"] == "daily"
    assert ScheduledNotification.from_dict(data) == scheduled


def test_location_trigger_matching():
    assert LocationTrigger.BOTH.matches(GeofenceEvent.ENTER)
    assert LocationTrigger.BOTH.matches("exit")
    assert LocationTrigger.ENTER.matches(GeofenceEvent.ENTER)
    assert not LocationTrigger.ENTER.matches(GeofenceEvent.EXIT)

    with pytest.raises(ValueError):
        LocationNotification(request(), "park", trigger="dwell")
    with pytest.raises(ValueError):
        LocationNotification(request(), "")


# ============================================================================
# Preferences and quiet hours
# ============================================================================

def at(hour, minute=0):
    return datetime(2025, 6, 1, hour, minute, tzinfo=UTC)


def test_quiet_hours_wrapping_midnight():
    prefs = NotificationPreferences(quiet_hours_start="22:00", quiet_hours_end="07:00")

    assert prefs.is_quiet_at(at(23, 30))
    assert prefs.is_quiet_at(at(6, 0))
    assert prefs.is_quiet_at(at(22, 0))
    assert not prefs.is_quiet_at(at(7, 0))
    assert not prefs.is_quiet_at(at(12, 0))


def test_quiet_hours_same_day_window():
    prefs = NotificationPreferences(quiet_hours_start="09:00", quiet_hours_end="17:00")

    assert prefs.is_quiet_at(time(9, 0))
    assert prefs.is_quiet_at(at(12, 0))
    assert not prefs.is_quiet_at(at(17, 0))
    assert not prefs.is_quiet_at(at(8, 59))


def test_quiet_hours_need_both_bounds():
    assert not NotificationPreferences(quiet_hours_start="22:00").is_quiet_at(at(23, 0))
    assert not NotificationPreferences().is_quiet_at(at(3, 0))


def test_preferences_validation():
    with pytest.raises(ValueError):
        NotificationPreferences(quiet_hours_start="25:00", quiet_hours_end="07:00")
    with pytest.raises(ValueError):
        NotificationPreferences(categories={"spam": True})
    with pytest.raises(ValueError):
        NotificationPreferences().updated({"volume": 11})


def test_preferences_missing_category_is_disabled():
    prefs = NotificationPreferences.from_dict({"categories": {"social": True}})

    assert prefs.category_enabled(NotificationCategory.SOCIAL)
    assert not prefs.category_enabled(NotificationCategory.SYSTEM)


def test_preferences_update_merges_categories():
    prefs = NotificationPreferences().updated({"categories": {"social": False}})

    assert not prefs.category_enabled(NotificationCategory.SOCIAL)
    assert prefs.category_enabled(NotificationCategory.DAILY_EVENT)
    assert NotificationPreferences.from_dict(prefs.to_dict()) == prefs


# ============================================================================
# Immediate delivery
# ============================================================================

def test_show_now_delivers_with_default_icon():
    h = Harness()

    assert h.scheduler.show_now(request()) is DeliveryOutcome.DELIVERED
    assert h.scheduler.show_now(request("custom", image_url="/img/jazz.png")).delivered

    assert h.presenter.delivered_ids == ["daily-reveal", "custom"]
    assert h.presenter.delivered[0].image_url == "/favicon.ico"
    assert h.presenter.delivered[1].image_url == "/img/jazz.png"


@pytest.mark.parametrize("hour, minute, expected", [
    (23, 30, DeliveryOutcome.SUPPRESSED_QUIET_HOURS),
    (6, 0, DeliveryOutcome.SUPPRESSED_QUIET_HOURS),
    (12, 0, DeliveryOutcome.DELIVERED),
])
def test_show_now_respects_quiet_hours(hour, minute, expected):
    h = Harness(start=at(hour, minute))
    h.scheduler.update_preferences({"quiet_hours_start": "22:00", "quiet_hours_end": "07:00"})

    assert h.scheduler.show_now(request()) is expected
    assert h.scheduler.is_quiet_hours() == (expected is not DeliveryOutcome.DELIVERED)


def test_gate_order():
    h = Harness(start=at(23, 0), presenter=MemoryPresenter(permission=False, grant_on_request=False))
    h.scheduler.update_preferences({"quiet_hours_start": "22:00", "quiet_hours_end": "07:00"})

    assert h.scheduler.show_now(request()) is DeliveryOutcome.SUPPRESSED_QUIET_HOURS

    h.scheduler.update_preferences({"categories": {"daily_event": False}})
    assert h.scheduler.show_now(request()) is DeliveryOutcome.SUPPRESSED_CATEGORY

    h.scheduler.update_preferences({"enabled": False})
    assert h.scheduler.show_now(request()) is DeliveryOutcome.SUPPRESSED_DISABLED

    h.scheduler.update_preferences(
        {"enabled": True, "categories": {"daily_event": True}, "quiet_hours_start": None}
    )
    assert h.scheduler.show_now(request()) is DeliveryOutcome.NO_PERMISSION
    assert h.presenter.delivered == []


def test_permission_request():
    h = Harness(presenter=MemoryPresenter(permission=False))

    assert not h.scheduler.has_permission()
    assert h.scheduler.show_now(request()) is DeliveryOutcome.NO_PERMISSION
    assert h.scheduler.request_permission()
    assert h.scheduler.show_now(request()) is DeliveryOutcome.DELIVERED


def test_preferences_persist_across_restart():
    h = Harness()
    h.scheduler.update_preferences({"categories": {"social": False}, "quiet_hours_start": "22:00"})

    restarted = h.restart()

    prefs = restarted.scheduler.get_preferences()
    assert not prefs.category_enabled(NotificationCategory.SOCIAL)
    assert prefs.quiet_hours_start == "22:00"


def test_malformed_preferences_fall_back_to_defaults():
    h = Harness()
    h.store.set(StorageKey.NOTIFICATION_PREFS, {"categories": {"spam": True}})

    assert h.restart().scheduler.get_preferences() == NotificationPreferences()


def test_history_records_outcomes():
    h = Harness(presenter=MemoryPresenter(permission=False, grant_on_request=False))

    h.scheduler.show_now(request())

    record = h.scheduler.history[-1]
    assert record.outcome is DeliveryOutcome.NO_PERMISSION
    assert record.source == "immediate"
    assert record.at == T0
    assert h.scheduler.get_stats()["recent_suppressed"] == 1


# ============================================================================
# Scheduling
# ============================================================================

def test_past_time_is_never_delivered():
    h = Harness()

    assert not h.scheduler.schedule(ScheduledNotification(request(), T0 - timedelta(minutes=1)))
    assert not h.scheduler.schedule(ScheduledNotification(request(), T0))

    h.timers.advance(days=2)
    assert h.presenter.delivered == []
    assert h.scheduler.pending() == []


def test_past_time_does_not_replace_pending():
    h = Harness()
    h.scheduler.schedule(ScheduledNotification(request(), T0 + timedelta(hours=1)))

    h.scheduler.schedule(ScheduledNotification(request(), T0 - timedelta(hours=1)))

    assert h.scheduler.get_pending("daily-reveal").scheduled_time == T0 + timedelta(hours=1)


def test_delayed_delivery_fires_once():
    h = Harness()
    h.scheduler.schedule(ScheduledNotification(request(), T0 + timedelta(minutes=30)))

    h.timers.advance(minutes=29)
    assert h.presenter.delivered == []

    h.timers.advance(minutes=1)
    assert h.presenter.delivered_ids == ["daily-reveal"]
    assert h.scheduler.history[-1].at == T0 + timedelta(minutes=30)
    assert h.scheduler.history[-1].source == "scheduled"

    h.timers.advance(days=3)
    assert h.presenter.delivered_ids == ["daily-reveal"]
    assert h.scheduler.pending() == []


def test_daily_repeat_rearms_with_same_id():
    h = Harness()
    first = T0 + timedelta(hours=1)
    h.scheduler.schedule(
        ScheduledNotification(request(), first, repeating=True, repeat_interval=RepeatInterval.DAILY)
    )

    h.timers.run_until(first)
    assert len(h.presenter.delivered) == 1
    assert h.scheduler.get_pending("daily-reveal").scheduled_time == first + timedelta(hours=24)

    h.timers.run_until(first + timedelta(hours=24))
    assert len(h.presenter.delivered) == 2

    h.timers.run_until(first + timedelta(hours=48))
    assert len(h.presenter.delivered) == 3
    assert [r.at for r in h.scheduler.history] == [
        first, first + timedelta(hours=24), first + timedelta(hours=48),
    ]
    assert len(h.scheduler.pending()) == 1


@pytest.fixture
def new_york_tz(monkeypatch):
    if not hasattr(time_module, "tzset"):
        pytest.skip("time.tzset() is not available on this platform")
    monkeypatch.setenv("TZ", "America/New_York")
    time_module.tzset()
    yield
    monkeypatch.undo()
    time_module.tzset()


def test_daily_repeat_keeps_local_hour_across_dst(new_york_tz):
    # 2025-03-09 is the US spring-forward day
    first = datetime(2025, 3, 8, 9, 0).astimezone()
    scheduled = ScheduledNotification(
        request(), first, repeating=True, repeat_interval=RepeatInterval.DAILY
    )

    following = scheduled.next_occurrence()

    assert (following.scheduled_time.hour, following.scheduled_time.minute) == (9, 0)
    assert following.scheduled_time.date().isoformat() == "2025-03-09"
    assert following.scheduled_time - first == timedelta(hours=23)

    weekly = ScheduledNotification(
        request(), datetime(2025, 11, 1, 9, 0).astimezone(),
        repeating=True, repeat_interval=RepeatInterval.WEEKLY,
    )
    assert weekly.next_occurrence().scheduled_time.hour == 9


def test_daily_repeat_through_scheduler_across_dst(new_york_tz):
    start = datetime(2025, 3, 8, 8, 0).astimezone()
    h = Harness(start=start)
    first = start + timedelta(hours=1)
    h.scheduler.schedule(
        ScheduledNotification(request(), first, repeating=True, repeat_interval=RepeatInterval.DAILY)
    )

    h.timers.run_until(first)

    nxt = h.scheduler.get_pending("daily-reveal").scheduled_time
    assert nxt.astimezone().hour == 9
    assert nxt - first == timedelta(hours=23)


def test_repeat_survives_suppression():
    h = Harness(start=at(21, 0))
    h.scheduler.update_preferences({"quiet_hours_start": "22:00", "quiet_hours_end": "07:00"})
    h.scheduler.schedule(
        ScheduledNotification(request(), at(23, 0), repeating=True, repeat_interval="daily")
    )

    h.timers.advance(hours=2)

    assert h.presenter.delivered == []
    assert h.scheduler.history[-1].outcome is DeliveryOutcome.SUPPRESSED_QUIET_HOURS
    assert h.scheduler.get_pending("daily-reveal") is not None


def test_rescheduling_same_id_replaces():
    h = Harness()
    h.scheduler.schedule(ScheduledNotification(request(), T0 + timedelta(minutes=10)))
    h.scheduler.schedule(ScheduledNotification(request(), T0 + timedelta(minutes=20)))

    h.timers.advance(minutes=15)
    assert h.presenter.delivered == []

    h.timers.advance(minutes=10)
    assert h.presenter.delivered_ids == ["daily-reveal"]
    assert len(h.timers) == 0


def test_cancel():
    h = Harness()
    h.scheduler.schedule(ScheduledNotification(request(), T0 + timedelta(minutes=10)))

    assert h.scheduler.cancel("daily-reveal")
    assert not h.scheduler.cancel("daily-reveal")

    h.timers.advance(hours=1)
    assert h.presenter.delivered == []
    assert h.store.get(StorageKey.SCHEDULED_NOTIFICATIONS) == []


def test_pending_is_sorted_by_time():
    h = Harness()
    h.scheduler.schedule(ScheduledNotification(request("late"), T0 + timedelta(hours=3)))
    h.scheduler.schedule(ScheduledNotification(request("early"), T0 + timedelta(hours=1)))

    assert [s.id for s in h.scheduler.pending()] == ["early", "late"]


def test_rehydrates_pending_after_restart():
    h = Harness()
    h.scheduler.schedule(ScheduledNotification(request("a"), T0 + timedelta(hours=1)))
    h.scheduler.schedule(
        ScheduledNotification(request("b"), T0 + timedelta(hours=2), repeating=True, repeat_interval="daily")
    )

    restarted = h.restart()

    assert [s.id for s in restarted.scheduler.pending()] == ["a", "b"]
    restarted.timers.advance(hours=2)
    assert restarted.presenter.delivered_ids == ["a", "b"]
    assert restarted.scheduler.get_pending("b").scheduled_time == T0 + timedelta(hours=26)


def test_cancel_all_then_restart_rehydrates_nothing():
    h = Harness()
    h.scheduler.schedule(ScheduledNotification(request("a"), T0 + timedelta(hours=1)))
    h.scheduler.schedule(ScheduledNotification(request("b"), T0 + timedelta(hours=2)))

    assert h.scheduler.cancel_all() == 2
    assert h.scheduler.cancel_all() == 0

    restarted = h.restart()
    assert restarted.scheduler.pending() == []
    restarted.timers.advance(days=1)
    assert restarted.presenter.delivered == []


def test_restore_drops_past_due_entries():
    h = Harness()
    h.scheduler.schedule(ScheduledNotification(request("soon"), T0 + timedelta(minutes=5)))
    h.scheduler.schedule(ScheduledNotification(request("later"), T0 + timedelta(hours=5)))

    # Process was down while "soon" came due
    h.clock.advance(hours=1)
    restarted = h.restart()

    assert [s.id for s in restarted.scheduler.pending()] == ["later"]
    assert [item["id"] for item in restarted.store.get(StorageKey.SCHEDULED_NOTIFICATIONS)] == ["later"]
    restarted.timers.advance(days=1)
    assert restarted.presenter.delivered_ids == ["later"]


def test_restore_skips_malformed_entries():
    h = Harness()
    valid = ScheduledNotification(request("ok"), T0 + timedelta(hours=1)).to_dict()
    h.store.set(StorageKey.SCHEDULED_NOTIFICATIONS, [{"id": "broken"}, valid])

    restarted = h.restart()

    assert [s.id for s in restarted.scheduler.pending()] == ["ok"]


def test_restore_ignores_non_list_state():
    h = Harness()
    h.store.set(StorageKey.SCHEDULED_NOTIFICATIONS, {"not": "a list"})

    restarted = h.restart()

    assert restarted.scheduler.pending() == []
    assert restarted.store.get(StorageKey.SCHEDULED_NOTIFICATIONS) is None


# ============================================================================
# Taps
# ============================================================================

def test_tap_handlers_run_in_order_and_isolate_failures():
    h = Harness()
    calls = []

    def failing(req):
        calls.append("second")
        raise RuntimeError("boom")

    h.scheduler.register_tap_handler(lambda req: calls.append(("first", req.id)))
    h.scheduler.register_tap_handler(failing)
    h.scheduler.register_tap_handler(lambda req: calls.append("third"))
    h.scheduler.show_now(request())

    assert h.presenter.tap("daily-reveal")
    assert not h.presenter.tap("unknown")
    assert calls == [("first", "daily-reveal"), "second", "third"]


def test_acknowledge_by_id():
    h = Harness()
    tapped = []
    h.scheduler.register_tap_handler(lambda req: tapped.append(req.action_url))
    h.scheduler.show_now(request(action_url="/today"))

    assert h.scheduler.acknowledge("daily-reveal")
    assert not h.scheduler.acknowledge("never-delivered")
    assert tapped == ["/today"]


def test_suppressed_notifications_cannot_be_acknowledged():
    h = Harness(presenter=MemoryPresenter(permission=False, grant_on_request=False))
    h.scheduler.show_now(request())

    assert not h.scheduler.acknowledge("daily-reveal")


# ============================================================================
# Timer queues
# ============================================================================

def test_manual_timer_queue_orders_and_cancels():
    clock = ManualClock(T0)
    timers = ManualTimerQueue(clock)
    fired = []

    timers.arm(20, lambda: fired.append(("b", clock.now())))
    timers.arm(10, lambda: fired.append(("a", clock.now())))
    handle = timers.arm(15, lambda: fired.append(("cancelled", clock.now())))
    timers.arm(10, lambda: fired.append(("a2", clock.now())))
    timers.cancel(handle)

    assert timers.next_due() == T0 + timedelta(seconds=10)
    assert timers.advance(seconds=30) == 3
    assert fired == [
        ("a", T0 + timedelta(seconds=10)),
        ("a2", T0 + timedelta(seconds=10)),
        ("b", T0 + timedelta(seconds=20)),
    ]
    assert clock.now() == T0 + timedelta(seconds=30)
    assert timers.next_due() is None


def test_asyncio_timer_queue():
    fired = []

    async def scenario():
        timers = AsyncioTimerQueue()
        timers.arm(0.01, lambda: fired.append("kept"))
        handle = timers.arm(0.01, lambda: fired.append("cancelled"))
        timers.cancel(handle)
        await asyncio.sleep(0.05)

    asyncio.run(scenario())

    assert fired == ["kept"]


# ============================================================================
# Geofence bridge
# ============================================================================

PARK = Coordinates(37.7596, -122.4269)


def sample_at(latitude, longitude):
    return LocationSample(latitude, longitude, 5.0, T0)


INSIDE = sample_at(37.7597, -122.4270)
OUTSIDE = sample_at(37.7700, -122.4269)


def bridged():
    h = Harness()
    monitor = GeofenceMonitor(ManualPositionSource())
    bridge = GeofenceNotificationBridge(h.scheduler)
    bridge.attach(monitor)
    monitor.register_region(GeofenceRegion("park", "Dolores Park", PARK, 150.0))
    for notification_id, geofence_id, trigger in (
        ("on-enter", "park", LocationTrigger.ENTER),
        ("on-exit", "park", LocationTrigger.EXIT),
        ("on-both", "park", LocationTrigger.BOTH),
        ("elsewhere", "ferry", LocationTrigger.BOTH),
    ):
        h.scheduler.register_location_notification(
            LocationNotification(request(notification_id, NotificationCategory.DISCOVERY), geofence_id, trigger)
        )
    return h, monitor, bridge


def test_bridge_delivers_matching_notifications():
    h, monitor, _ = bridged()

    monitor.evaluate(INSIDE)
    assert h.presenter.delivered_ids == ["on-enter", "on-both"]

    monitor.evaluate(INSIDE)
    assert h.presenter.delivered_ids == ["on-enter", "on-both"]

    monitor.evaluate(OUTSIDE)
    assert h.presenter.delivered_ids == ["on-enter", "on-both", "on-exit", "on-both"]
    assert h.scheduler.history[-1].source == "geofence:park"


def test_bridge_respects_preferences():
    h, monitor, _ = bridged()
    h.scheduler.update_preferences({"categories": {"discovery": False}})

    monitor.evaluate(INSIDE)

    assert h.presenter.delivered == []
    assert {r.outcome for r in h.scheduler.history} == {DeliveryOutcome.SUPPRESSED_CATEGORY}


def test_bridge_sees_immediate_enter_on_registration():
    h, monitor, _ = bridged()
    monitor.evaluate(INSIDE)
    h.scheduler.register_location_notification(
        LocationNotification(request("plaza-hello", NotificationCategory.DISCOVERY), "plaza", "enter")
    )

    monitor.register_region(GeofenceRegion("plaza", "Plaza", PARK, 300.0))

    assert h.presenter.delivered_ids[-1] == "plaza-hello"


def test_bridge_detach_and_direct_call():
    h, monitor, bridge = bridged()
    bridge.detach(monitor)

    monitor.evaluate(INSIDE)
    assert h.presenter.delivered == []

    region = monitor.get_region("park")
    outcomes = bridge.on_transition(region, GeofenceEvent.EXIT)
    assert outcomes == {"on-exit": DeliveryOutcome.DELIVERED, "on-both": DeliveryOutcome.DELIVERED}


def test_unregister_location_notification():
    h, monitor, _ = bridged()

    assert h.scheduler.unregister_location_notification("on-both")
    assert not h.scheduler.unregister_location_notification("on-both")

    monitor.evaluate(INSIDE)
    assert h.presenter.delivered_ids == ["on-enter"]


def test_match_location_notifications():
    registry = [
        LocationNotification(request("a"), "park", "enter"),
        LocationNotification(request("b"), "park", "exit"),
        LocationNotification(request("c"), "ferry", "both"),
    ]

    assert [n.id for n in match_location_notifications("park", GeofenceEvent.ENTER, registry)] == ["a"]
    assert [n.id for n in match_location_notifications("ferry", GeofenceEvent.EXIT, registry)] == ["c"]
    assert match_location_notifications("nowhere", GeofenceEvent.ENTER, registry) == []


def test_memory_presenter_keeps_only_recent_deliveries():
    presenter = MemoryPresenter(limit=3)
    h = Harness(presenter=presenter)

    for i in range(5):
        h.scheduler.show_now(request(f"n{i}"))

    assert presenter.delivered_ids == ["n2", "n3", "n4"]
    assert presenter.get_stats()["presented_count"] == 5
    assert not presenter.tap("n0")
    assert presenter.tap("n4")


# ============================================================================
# MQTT presenter (no broker)
# ============================================================================

def test_mqtt_presenter_offline_reports_no_permission():
    presenter = MQTTPresenter(
        broker_host="localhost",
        broker_port=1883,
        topic="herenow/test/notifications",
        client_id="herenow_test_notifications",
    )
    h = Harness(presenter=presenter)

    assert not presenter.has_permission()
    assert h.scheduler.show_now(request()) is DeliveryOutcome.NO_PERMISSION
    assert not presenter.present(request())
    assert presenter.get_stats()["presented_count"] == 0


def test_mqtt_presenter_message_format():
    presenter = MQTTPresenter(
        broker_host="localhost",
        broker_port=1883,
        topic="herenow/test/notifications",
        client_id="herenow_test_format",
    )

    message = presenter.format_message(
        request(action_url="/today", data={"event_id": "evt-1"}).with_default_icon("/favicon.ico")
    )

    assert message["id"] == "daily-reveal"
    assert message["icon"] == "/favicon.ico"
    assert message["category"] == "daily_event"
    assert message["action_url"] == "/today"
    assert message["data"] == {"event_id": "evt-1"}
    assert "delivered_at" in message
