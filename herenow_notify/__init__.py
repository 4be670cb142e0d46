"""
HereNow Notify
==============

Bounded Context: Notification delivery (immediate, delayed, repeating,
location-triggered) under user preferences.

Architecture:
    schemas/     requests, schedules, preferences (immutable)
    presenters/  delivery primitive (memory, MQTT)
    timers       cancellable timer queues (manual, asyncio)
    scheduler    gating, timers, persistence, taps, location registry
    bridge       geofence transitions -> scheduler

Example:
    >>> scheduler = NotificationScheduler(store, clock, timers, MemoryPresenter())
    >>> bridge = GeofenceNotificationBridge(scheduler)
    >>> bridge.attach(monitor)
"""

from .bridge import GeofenceNotificationBridge, match_location_notifications
from .presenters import BasePresenter, MemoryPresenter, MQTTPresenter
from .scheduler import (
    DEFAULT_ICON,
    DeliveryOutcome,
    DeliveryRecord,
    NotificationScheduler,
)
from .schemas import (
    LocationNotification,
    LocationTrigger,
    NotificationCategory,
    NotificationPreferences,
    NotificationRequest,
    RepeatInterval,
    ScheduledNotification,
)
from .timers import AsyncioTimerQueue, ManualTimerQueue, TimerQueue

__all__ = [
    'GeofenceNotificationBridge',
    'match_location_notifications',
    'BasePresenter',
    'MemoryPresenter',
    'MQTTPresenter',
    'DEFAULT_ICON',
    'DeliveryOutcome',
    'DeliveryRecord',
    'NotificationScheduler',
    'LocationNotification',
    'LocationTrigger',
    'NotificationCategory',
    'NotificationPreferences',
    'NotificationRequest',
    'RepeatInterval',
    'ScheduledNotification',
    'AsyncioTimerQueue',
    'ManualTimerQueue',
    'TimerQueue',
]
