"""
Notification Schemas
====================

Immutable, validated value objects shared by the scheduler, presenters
and the control plane.
"""

from .notification import (
    LocationNotification,
    LocationTrigger,
    NotificationCategory,
    NotificationRequest,
    RepeatInterval,
    ScheduledNotification,
    parse_timestamp,
)
from .preferences import NotificationPreferences, parse_hhmm

__all__ = [
    'LocationNotification',
    'LocationTrigger',
    'NotificationCategory',
    'NotificationRequest',
    'RepeatInterval',
    'ScheduledNotification',
    'parse_timestamp',
    'NotificationPreferences',
    'parse_hhmm',
]
