"""
Structured Logging for HereNow
==============================

Bounded Context: Observability

JSON-structured logging shared by the store, geofence and notification
packages.

Design:
- JSON output, one object per line
- Typed events (LogEvent enum)
- Contextual metadata (region_id, notification_id, key, ...)

Public API
----------
    LogEvent: Typed event names (enum)
    StructuredLogger: JSON logger implementation
    create_logger: Factory function

Example:
    >>> from herenow_logging import StructuredLogger, LogEvent
    >>> logger = StructuredLogger(component="scheduler")
    >>> logger.info(
    ...     event=LogEvent.NOTIFICATION_SCHEDULED,
    ...     message="Scheduled notification",
    ...     metadata={'notification_id': 'daily-reveal', 'delay_s': 3600.0}
    ... )

Output:
    {
        "timestamp": "2025-10-24T15:30:45.123456+00:00",
        "level": "INFO",
        "component": "scheduler",
        "event": "notification.scheduled",
        "message": "Scheduled notification",
        "metadata": {"notification_id": "daily-reveal", "delay_s": 3600.0}
    }
"""

from .events import LogEvent
from .structured import StructuredLogger, create_logger

__all__ = [
    'LogEvent',
    'StructuredLogger',
    'create_logger',
]
