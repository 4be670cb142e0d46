"""
Location Sources
================

Bounded Context: Position samples, permission state and the source
contract the monitor consumes.

Error codes follow the platform geolocation convention:
    1 -> PermissionDenied
    2 -> PositionUnavailable
    3 -> LocationTimeout
"""

import itertools
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Protocol

from herenow_store.clock import ensure_aware

from herenow_geofence.geometry.shapes import Coordinates


class PermissionState(str, Enum):
    GRANTED = "granted"
    DENIED = "denied"
    PROMPT = "prompt"
    UNKNOWN = "unknown"


class LocationError(Exception):
    """Base class for position source failures."""

    code = 0

    @classmethod
    def from_code(cls, code: int, message: Optional[str] = None) -> 'LocationError':
        """Map a platform error code to the matching subclass."""
        for subclass in (PermissionDenied, PositionUnavailable, LocationTimeout):
            if subclass.code == code:
                return subclass(message or subclass.default_message)
        return LocationError(message or f"Unknown location error (code={code})")

    default_message = "Unknown location error"


class PermissionDenied(LocationError):
    code = 1
    default_message = "Location permission denied"


class PositionUnavailable(LocationError):
    code = 2
    default_message = "Location information unavailable"


class LocationTimeout(LocationError):
    code = 3
    default_message = "Location request timed out"


@dataclass(frozen=True)
class LocationSample:
    """
    One position fix.

    Attributes:
        latitude: Degrees
        longitude: Degrees
        accuracy_m: Accuracy radius in meters (>= 0)
        timestamp: Time of the fix (naive values are taken as local time)
    """

    latitude: float
    longitude: float
    accuracy_m: float
    timestamp: datetime

    def __post_init__(self):
        # Raises ValueError on out-of-range values
        object.__setattr__(self, '_coordinates', Coordinates(self.latitude, self.longitude))
        if self.accuracy_m < 0:
            raise ValueError(f"accuracy_m must be >= 0, got {self.accuracy_m}")
        if not isinstance(self.timestamp, datetime):
            raise ValueError(f"timestamp must be datetime, got {type(self.timestamp).__name__}")
        object.__setattr__(self, 'timestamp', ensure_aware(self.timestamp))

    @property
    def coordinates(self) -> Coordinates:
        return self._coordinates

    def to_dict(self) -> Dict[str, Any]:
        return {
            'latitude': self.latitude,
            'longitude': self.longitude,
            'accuracy_m': self.accuracy_m,
            'timestamp': self.timestamp.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], default_timestamp: Optional[datetime] = None) -> 'LocationSample':
        """
        Deserialize from dict.

        ``timestamp`` may be an ISO-8601 string; when missing,
        ``default_timestamp`` is used.

        Raises:
            ValueError: If fields are missing or invalid
        """
        try:
            raw_ts = data.get('timestamp')
            if raw_ts is None:
                if default_timestamp is None:
                    raise ValueError("Missing required sample field: 'timestamp'")
                timestamp = default_timestamp
            elif isinstance(raw_ts, datetime):
                timestamp = raw_ts
            else:
                timestamp = datetime.fromisoformat(raw_ts)
            return cls(
                latitude=data['latitude'],
                longitude=data['longitude'],
                accuracy_m=data.get('accuracy_m', 0.0),
                timestamp=timestamp,
            )
        except KeyError as e:
            raise ValueError(f"Missing required sample field: {e}")
        except TypeError as e:
            raise ValueError(f"Invalid sample: {e}")


@dataclass(frozen=True)
class LocationOptions:
    """Accuracy/timeout/max-age for position reads."""

    high_accuracy: bool = True
    timeout_s: float = 15.0
    max_age_s: float = 30.0

    def __post_init__(self):
        if self.timeout_s <= 0:
            raise ValueError(f"timeout_s must be > 0, got {self.timeout_s}")
        if self.max_age_s < 0:
            raise ValueError(f"max_age_s must be >= 0, got {self.max_age_s}")


SampleCallback = Callable[[LocationSample], None]
ErrorCallback = Callable[[LocationError], None]


class PositionSource(Protocol):
    """Protocol for platform position providers (interface)."""

    def get_current_position(self, options: LocationOptions) -> LocationSample:
        """
        One-shot read.

        Raises:
            LocationError: PermissionDenied, PositionUnavailable or LocationTimeout
        """
        ...

    def watch_position(
        self,
        on_sample: SampleCallback,
        on_error: ErrorCallback,
        options: LocationOptions,
    ) -> int:
        """Subscribe to samples. Returns a watch id."""
        ...

    def clear_watch(self, watch_id: int) -> None:
        ...

    def query_permission(self) -> PermissionState:
        ...


class ManualPositionSource:
    """
    Position source driven by the caller.

    Samples are pushed with push(); one-shot reads return the latest
    position. Permission and failures are configurable.

    Usage:
        source = ManualPositionSource()
        monitor = GeofenceMonitor(source)
        monitor.start_continuous_updates()
        source.push(sample)  # delivered to the monitor
    """

    def __init__(
        self,
        permission: PermissionState = PermissionState.GRANTED,
        position: Optional[LocationSample] = None,
        prompt_answer: PermissionState = PermissionState.GRANTED,
    ):
        self.permission = permission
        self.prompt_answer = prompt_answer
        self.position = position
        self._pending_errors: List[LocationError] = []
        self._watches: Dict[int, tuple] = {}
        self._ids = itertools.count(1)
        self.reads = 0

    @property
    def active_watches(self) -> int:
        return len(self._watches)

    def _resolve_permission(self) -> None:
        # A read while undecided plays the role of the platform prompt
        if self.permission in (PermissionState.PROMPT, PermissionState.UNKNOWN):
            self.permission = self.prompt_answer
        if self.permission == PermissionState.DENIED:
            raise PermissionDenied(PermissionDenied.default_message)

    def get_current_position(self, options: Optional[LocationOptions] = None) -> LocationSample:
        self.reads += 1
        self._resolve_permission()
        if self._pending_errors:
            raise self._pending_errors.pop(0)
        if self.position is None:
            raise PositionUnavailable(PositionUnavailable.default_message)
        return self.position

    def watch_position(
        self,
        on_sample: SampleCallback,
        on_error: ErrorCallback,
        options: Optional[LocationOptions] = None,
    ) -> int:
        watch_id = next(self._ids)
        self._watches[watch_id] = (on_sample, on_error)
        return watch_id

    def clear_watch(self, watch_id: int) -> None:
        self._watches.pop(watch_id, None)

    def query_permission(self) -> PermissionState:
        return self.permission

    def set_position(self, sample: LocationSample) -> None:
        """Change the position returned by one-shot reads without notifying watchers."""
        self.position = sample

    def fail_next(self, error: LocationError) -> None:
        """Make the next one-shot read raise error."""
        self._pending_errors.append(error)

    def push(self, sample: LocationSample) -> None:
        """Set the position and deliver it to every active watch."""
        self.position = sample
        for on_sample, _ in list(self._watches.values()):
            on_sample(sample)

    def push_error(self, error: LocationError) -> None:
        for _, on_error in list(self._watches.values()):
            on_error(error)

    def __repr__(self) -> str:
        return (
            f"ManualPositionSource(permission={self.permission.value}, "
            f"watches={len(self._watches)})"
        )
