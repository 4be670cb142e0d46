"""
Notification Schemas
====================

Bounded Context: Notification requests and their delivery plans.

Design Principles:
- Immutability: frozen=True, a request never changes once accepted
- Validation: __post_init__ raises ValueError
- Serialization: to_dict()/from_dict() for persistence and MQTT

Types:
- NotificationRequest: what to show
- ScheduledNotification: request + when (+ optional repeat)
- LocationNotification: request + geofence + trigger direction
"""

from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from herenow_store.clock import add_local_days, ensure_aware


class NotificationCategory(str, Enum):
    DAILY_EVENT = "daily_event"
    EVENT_REMINDER = "event_reminder"
    SOCIAL = "social"
    DISCOVERY = "discovery"
    SYSTEM = "system"


class RepeatInterval(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"

    @property
    def days(self) -> int:
        return 1 if self is RepeatInterval.DAILY else 7


class LocationTrigger(str, Enum):
    ENTER = "enter"
    EXIT = "exit"
    BOTH = "both"

    def matches(self, direction) -> bool:
        """True for BOTH or when direction ("enter"/"exit") equals the trigger."""
        value = getattr(direction, 'value', direction)
        return self is LocationTrigger.BOTH or self.value == value


def parse_timestamp(value: Any) -> datetime:
    """
    Parse an ISO-8601 string (or pass a datetime through).

    Naive values are taken as local time.

    Raises:
        ValueError: If value is not a datetime or ISO string
    """
    if isinstance(value, datetime):
        return ensure_aware(value)
    if not isinstance(value, str):
        raise ValueError(f"Invalid timestamp: {value!r}")
    try:
        return ensure_aware(datetime.fromisoformat(value))
    except ValueError as e:
        raise ValueError(f"Invalid ISO timestamp: {value}") from e


@dataclass(frozen=True)
class NotificationRequest:
    """
    Content of one notification.

    Attributes:
        id: Caller-supplied unique id (also the delivery tag)
        title: Headline
        body: Text
        category: Used by preference filtering
        image_url: Icon (default icon applied at delivery when None)
        action_url: Opened on tap by the presenter's host
        data: Opaque extra payload
    """
    id: str
    title: str
    body: str
    category: NotificationCategory
    image_url: Optional[str] = None
    action_url: Optional[str] = None
    data: Optional[Dict[str, Any]] = None

    def __post_init__(self):
        if not isinstance(self.id, str) or not self.id:
            raise ValueError("Notification id must be a non-empty string")
        if not isinstance(self.title, str):
            raise ValueError(f"title must be a string, got {type(self.title).__name__}")
        if not isinstance(self.body, str):
            raise ValueError(f"body must be a string, got {type(self.body).__name__}")
        if not isinstance(self.category, NotificationCategory):
            try:
                object.__setattr__(self, 'category', NotificationCategory(self.category))
            except ValueError:
                raise ValueError(f"Unknown notification category: {self.category!r}")
        if self.data is not None and not isinstance(self.data, dict):
            raise ValueError(f"data must be a dict, got {type(self.data).__name__}")

    def with_default_icon(self, icon: str) -> 'NotificationRequest':
        if self.image_url:
            return self
        return replace(self, image_url=icon)

    def to_dict(self) -> Dict[str, Any]:
        result = {
            'id': self.id,
            'title': self.title,
            'body': self.body,
            'category': self.category.value,
        }
        if self.image_url is not None:
            result['image_url'] = self.image_url
        if self.action_url is not None:
            result['action_url'] = self.action_url
        if self.data is not None:
            result['data'] = self.data
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'NotificationRequest':
        """
        Deserialize from dict.

        Raises:
            ValueError: If required fields missing or invalid
        """
        try:
            return cls(
                id=data['id'],
                title=data['title'],
                body=data.get('body', ''),
                category=data['category'],
                image_url=data.get('image_url'),
                action_url=data.get('action_url'),
                data=data.get('data'),
            )
        except KeyError as e:
            raise ValueError(f"Missing required notification field: {e}")
        except (TypeError, AttributeError) as e:
            raise ValueError(f"Invalid notification data: {e}")


@dataclass(frozen=True)
class ScheduledNotification:
    """
    Request plus delivery time.

    A repeating schedule keeps its id; next_occurrence() returns the same
    notification moved forward by one interval (wall-clock days).

    Invariants:
        - scheduled_time is timezone-aware
        - repeating requires repeat_interval
    """
    request: NotificationRequest
    scheduled_time: datetime
    repeating: bool = False
    repeat_interval: Optional[RepeatInterval] = None

    def __post_init__(self):
        if not isinstance(self.request, NotificationRequest):
            raise ValueError(f"request must be NotificationRequest, got {type(self.request).__name__}")
        object.__setattr__(self, 'scheduled_time', parse_timestamp(self.scheduled_time))
        if self.repeat_interval is not None and not isinstance(self.repeat_interval, RepeatInterval):
            try:
                object.__setattr__(self, 'repeat_interval', RepeatInterval(self.repeat_interval))
            except ValueError:
                raise ValueError(f"Unknown repeat interval: {self.repeat_interval!r}")
        if self.repeating and self.repeat_interval is None:
            raise ValueError("Repeating notification requires repeat_interval")

    @property
    def id(self) -> str:
        return self.request.id

    def next_occurrence(self) -> 'ScheduledNotification':
        if not self.repeating:
            raise ValueError(f"Notification '{self.id}' is not repeating")
        return replace(
            self, scheduled_time=add_local_days(self.scheduled_time, self.repeat_interval.days)
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            **self.request.to_dict(),
            'scheduled_time': self.scheduled_time.isoformat(),
            'repeating': self.repeating,
            'repeat_interval': self.repeat_interval.value if self.repeat_interval else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ScheduledNotification':
        try:
            return cls(
                request=NotificationRequest.from_dict(data),
                scheduled_time=data['scheduled_time'],
                repeating=bool(data.get('repeating', False)),
                repeat_interval=data.get('repeat_interval'),
            )
        except KeyError as e:
            raise ValueError(f"Missing required schedule field: {e}")


@dataclass(frozen=True)
class LocationNotification:
    """Request delivered when a geofence transition matches the trigger."""
    request: NotificationRequest
    geofence_id: str
    trigger: LocationTrigger = LocationTrigger.BOTH

    def __post_init__(self):
        if not isinstance(self.request, NotificationRequest):
            raise ValueError(f"request must be NotificationRequest, got {type(self.request).__name__}")
        if not isinstance(self.geofence_id, str) or not self.geofence_id:
            raise ValueError("geofence_id must be a non-empty string")
        if not isinstance(self.trigger, LocationTrigger):
            try:
                object.__setattr__(self, 'trigger', LocationTrigger(self.trigger))
            except ValueError:
                raise ValueError(f"Unknown location trigger: {self.trigger!r}")

    @property
    def id(self) -> str:
        return self.request.id

    def matches(self, region_id: str, direction) -> bool:
        return self.geofence_id == region_id and self.trigger.matches(direction)

    def to_dict(self) -> Dict[str, Any]:
        return {
            **self.request.to_dict(),
            'geofence_id': self.geofence_id,
            'trigger': self.trigger.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'LocationNotification':
        try:
            return cls(
                request=NotificationRequest.from_dict(data),
                geofence_id=data['geofence_id'],
                trigger=data.get('trigger', LocationTrigger.BOTH.value),
            )
        except KeyError as e:
            raise ValueError(f"Missing required location notification field: {e}")
