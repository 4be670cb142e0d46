"""
Structured JSON Logger
======================

One JSON object per log line, built on the standard logging module.

Entry fields:
    timestamp   UTC ISO-8601
    level       DEBUG | INFO | WARNING | ERROR
    component   "store", "cache", "geofence", "scheduler", ...
    event       LogEvent value ("notification.delivered", ...)
    message     human-readable text
    metadata    optional dict (region_id, notification_id, key, ...)
    exception   optional {"type", "message"} summary

Example:
    >>> logger = StructuredLogger(component="geofence")
    >>> logger.info(
    ...     event=LogEvent.GEOFENCE_TRANSITION,
    ...     message="Enter Dolores Park",
    ...     metadata={'region_id': 'dolores-park', 'event': 'enter'}
    ... )
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from .events import LogEvent


class JSONFormatter(logging.Formatter):
    """Pass-through formatter: the record message is already a JSON document."""

    def format(self, record: logging.LogRecord) -> str:
        return record.getMessage()


class StructuredLogger:
    """
    Component-scoped JSON logger.

    Loggers are named ``herenow.<component>``; the first instance for a
    name installs a stderr handler with JSONFormatter, later instances
    reuse it. Records still propagate, so the entry point's root handlers
    (console/file) and pytest's caplog see them too.

    Attributes:
        component: Component name written into every entry
        logger: Underlying logging.Logger
    """

    def __init__(
        self,
        component: str,
        level: int = logging.INFO,
        logger_name: Optional[str] = None
    ):
        self.component = component
        self.logger_name = logger_name or f"herenow.{component}"
        self.logger = logging.getLogger(self.logger_name)
        self.logger.setLevel(level)

        if not self.logger.handlers:
            handler = logging.StreamHandler()
            handler.setFormatter(JSONFormatter())
            self.logger.addHandler(handler)

    def _entry(
        self,
        level_name: str,
        event: LogEvent,
        message: str,
        metadata: Optional[Dict[str, Any]],
        exc_info: Optional[BaseException],
    ) -> Dict[str, Any]:
        entry: Dict[str, Any] = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'level': level_name,
            'component': self.component,
            'event': event.value,
            'message': message,
        }
        if metadata:
            entry['metadata'] = metadata
        if exc_info is not None:
            entry['exception'] = {'type': type(exc_info).__name__, 'message': str(exc_info)}
        return entry

    def _emit(
        self,
        level: int,
        event: LogEvent,
        message: str,
        metadata: Optional[Dict[str, Any]] = None,
        exc_info: Optional[BaseException] = None,
    ) -> None:
        # Skip JSON encoding entirely for filtered levels
        if not self.logger.isEnabledFor(level):
            return
        entry = self._entry(logging.getLevelName(level), event, message, metadata, exc_info)
        self.logger.log(
            level,
            json.dumps(entry, default=str),
            # Full traceback only for errors; warnings carry the summary
            exc_info=exc_info if level >= logging.ERROR else None,
        )

    def debug(self, event: LogEvent, message: str, metadata: Optional[Dict[str, Any]] = None) -> None:
        self._emit(logging.DEBUG, event, message, metadata)

    def info(self, event: LogEvent, message: str, metadata: Optional[Dict[str, Any]] = None) -> None:
        self._emit(logging.INFO, event, message, metadata)

    def warning(
        self,
        event: LogEvent,
        message: str,
        metadata: Optional[Dict[str, Any]] = None,
        exc_info: Optional[BaseException] = None
    ) -> None:
        """Degraded-but-continuing conditions (storage probe, malformed data, location errors)."""
        self._emit(logging.WARNING, event, message, metadata, exc_info)

    def error(
        self,
        event: LogEvent,
        message: str,
        metadata: Optional[Dict[str, Any]] = None,
        exc_info: Optional[BaseException] = None
    ) -> None:
        """
        Failures that lost work (a write, a publish, a callback).

        Example:
            >>> try:
            ...     backend.set(key, payload)
            ... except OSError as e:
            ...     logger.error(
            ...         event=LogEvent.STORAGE_ERROR,
            ...         message="Failed to persist value",
            ...         metadata={'key': key},
            ...         exc_info=e,
            ...     )
        """
        self._emit(logging.ERROR, event, message, metadata, exc_info)

    def set_level(self, level: int) -> None:
        self.logger.setLevel(level)


def create_logger(component: str, level: int = logging.INFO) -> StructuredLogger:
    """
    Build a StructuredLogger for a component.

    Example:
        >>> logger = create_logger("geofence", level=logging.DEBUG)
    """
    return StructuredLogger(component=component, level=level)
