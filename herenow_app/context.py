"""
Service Context
===============

Explicitly constructed components, wired once and passed around as one
object. Nothing in the core is a module-level singleton.

Wiring:
    Clock ─┬─ KeyedStore ── DayScopedCache ── DailyEventStore
           ├─ NotificationScheduler (store, timers, presenter)
           └─ GeofenceMonitor (position source)
    GeofenceNotificationBridge: monitor transitions -> scheduler
"""

from dataclasses import dataclass
from datetime import time
from typing import Any, Dict, Optional

from herenow_geofence import GeofenceMonitor, LocationOptions, PositionSource
from herenow_logging import create_logger
from herenow_notify import (
    DEFAULT_ICON,
    BasePresenter,
    GeofenceNotificationBridge,
    NotificationScheduler,
    TimerQueue,
)
from herenow_store import (
    ADS_REQUIRED,
    DEFAULT_NAMESPACE,
    REVEAL_TIME,
    Clock,
    DailyEventStore,
    DayScopedCache,
    KeyedStore,
    StorageBackend,
)


@dataclass
class ServiceContext:
    """All core components of one HereNow instance."""

    clock: Clock
    store: KeyedStore
    cache: DayScopedCache
    events: DailyEventStore
    source: PositionSource
    monitor: GeofenceMonitor
    presenter: BasePresenter
    scheduler: NotificationScheduler
    bridge: GeofenceNotificationBridge

    def clear(self) -> Dict[str, int]:
        """
        Clear all app data.

        Cancels every scheduled notification, removes every key under the
        namespace and resets the scheduler's preferences and location
        registrations to their defaults. All of it runs synchronously on
        the calling thread, so no caller observes a partial clear.
        """
        cancelled = self.scheduler.cancel_all()
        removed = self.store.clear()
        self.scheduler.forget_user_state()
        return {'cancelled': cancelled, 'removed': removed}


def build_context(
    *,
    clock: Clock,
    backend: StorageBackend,
    source: PositionSource,
    timers: TimerQueue,
    presenter: BasePresenter,
    namespace: str = DEFAULT_NAMESPACE,
    location_options: Optional[LocationOptions] = None,
    ads_required: int = ADS_REQUIRED,
    reveal_time: time = REVEAL_TIME,
    default_icon: str = DEFAULT_ICON,
    log_level: Optional[Any] = None,
) -> ServiceContext:
    """
    Construct and wire every component.

    Construction order matters for rehydration: the scheduler reloads its
    persisted schedules while being built.
    """
    level_kwargs = {} if log_level is None else {'level': log_level}

    store = KeyedStore(backend, namespace=namespace, logger=create_logger("store", **level_kwargs))
    cache = DayScopedCache(store, clock, logger=create_logger("cache", **level_kwargs))
    events = DailyEventStore(
        store,
        cache,
        clock,
        ads_required=ads_required,
        reveal_time=reveal_time,
    )
    monitor = GeofenceMonitor(
        source,
        options=location_options,
        logger=create_logger("geofence", **level_kwargs),
    )
    scheduler = NotificationScheduler(
        store,
        clock,
        timers,
        presenter,
        logger=create_logger("scheduler", **level_kwargs),
        default_icon=default_icon,
    )
    bridge = GeofenceNotificationBridge(scheduler)
    bridge.attach(monitor)

    return ServiceContext(
        clock=clock,
        store=store,
        cache=cache,
        events=events,
        source=source,
        monitor=monitor,
        presenter=presenter,
        scheduler=scheduler,
        bridge=bridge,
    )
