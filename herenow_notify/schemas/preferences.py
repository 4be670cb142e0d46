"""
Notification Preferences
========================

Single process-wide preferences object: master switch, per-category
switches and an optional quiet-hours window.

Quiet hours compare the local wall-clock time (HH:MM) of the moment
being checked:
- start > end wraps midnight: quiet when now >= start or now < end
- otherwise: quiet when start <= now < end
- missing start or end: never quiet
"""

import re
from dataclasses import dataclass, field, replace
from datetime import datetime, time
from typing import Any, Dict, Optional, Union

from .notification import NotificationCategory

_HHMM = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


def parse_hhmm(value: str) -> int:
    """
    Minutes since midnight for an "HH:MM" string.

    Raises:
        ValueError: If value is not a valid 24h HH:MM
    """
    match = _HHMM.match(value) if isinstance(value, str) else None
    if match is None:
        raise ValueError(f"Expected HH:MM (24h), got {value!r}")
    return int(match.group(1)) * 60 + int(match.group(2))


def _default_categories() -> Dict[str, bool]:
    return {category.value: True for category in NotificationCategory}


@dataclass(frozen=True)
class NotificationPreferences:
    """
    User notification settings.

    Attributes:
        enabled: Master switch
        categories: category value -> enabled (missing => disabled)
        quiet_hours_start: "HH:MM" or None
        quiet_hours_end: "HH:MM" or None
    """
    enabled: bool = True
    categories: Dict[str, bool] = field(default_factory=_default_categories)
    quiet_hours_start: Optional[str] = None
    quiet_hours_end: Optional[str] = None

    def __post_init__(self):
        if not isinstance(self.categories, dict):
            raise ValueError(f"categories must be a dict, got {type(self.categories).__name__}")
        normalized = {}
        for key, value in self.categories.items():
            name = getattr(key, 'value', key)
            try:
                NotificationCategory(name)
            except ValueError:
                raise ValueError(f"Unknown notification category: {name!r}")
            normalized[name] = bool(value)
        object.__setattr__(self, 'categories', normalized)

        for name in ('quiet_hours_start', 'quiet_hours_end'):
            value = getattr(self, name)
            if value is not None:
                parse_hhmm(value)

    def allows(self, category: NotificationCategory) -> bool:
        return self.enabled and self.category_enabled(category)

    def category_enabled(self, category: NotificationCategory) -> bool:
        return self.categories.get(getattr(category, 'value', category), False)

    def is_quiet_at(self, moment: Union[datetime, time]) -> bool:
        if self.quiet_hours_start is None or self.quiet_hours_end is None:
            return False

        start = parse_hhmm(self.quiet_hours_start)
        end = parse_hhmm(self.quiet_hours_end)
        now = moment.hour * 60 + moment.minute

        if start > end:
            return now >= start or now < end
        return start <= now < end

    def updated(self, changes: Dict[str, Any]) -> 'NotificationPreferences':
        """
        Copy with changes applied.

        ``categories`` in changes is merged into the current map.

        Raises:
            ValueError: On unknown fields or invalid values
        """
        unknown = set(changes) - {'enabled', 'categories', 'quiet_hours_start', 'quiet_hours_end'}
        if unknown:
            raise ValueError(f"Unknown preference fields: {sorted(unknown)}")
        values = dict(changes)
        if 'categories' in values:
            values['categories'] = {**self.categories, **values['categories']}
        return replace(self, **values)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'enabled': self.enabled,
            'categories': dict(self.categories),
            'quiet_hours_start': self.quiet_hours_start,
            'quiet_hours_end': self.quiet_hours_end,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'NotificationPreferences':
        if not isinstance(data, dict):
            raise ValueError(f"Preferences must be a dict, got {type(data).__name__}")
        return cls(
            enabled=bool(data.get('enabled', True)),
            categories=data.get('categories', _default_categories()),
            quiet_hours_start=data.get('quiet_hours_start'),
            quiet_hours_end=data.get('quiet_hours_end'),
        )
