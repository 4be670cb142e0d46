"""
Geofence Monitor
================

Bounded Context: Turns a stream of position samples into edge-triggered
enter/exit events for registered circular regions.

State per region: {outside, inside}, stored as ``GeofenceRegion.is_active``.

Ordering:
- One sample is evaluated completely (all regions, all callbacks) before
  the next is accepted. Samples arriving from inside a callback are queued.
- Callbacks run synchronously: the region's own callback first, then the
  global transition listeners in registration order.
- At most one continuous subscription is active.

Design:
- Stateless geometry in GeofenceDetector; state lives here
- Snapshot of the registry per sample (callbacks may register/unregister)
- Callback failures are logged and never abort an evaluation
"""

from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Deque, Dict, List, Optional

import numpy as np

from herenow_logging import LogEvent, StructuredLogger, create_logger

from herenow_geofence.geometry import GeofenceDetector, GeofenceRegion, haversine_m
from herenow_geofence.location import (
    LocationError,
    LocationOptions,
    LocationSample,
    PermissionState,
    PositionSource,
    SampleCallback,
)


class GeofenceEvent(str, Enum):
    ENTER = "enter"
    EXIT = "exit"


TransitionCallback = Callable[[GeofenceRegion, GeofenceEvent], None]


@dataclass(frozen=True)
class GeofenceTransition:
    """Record of one fired transition (returned by evaluate())."""
    region_id: str
    event: GeofenceEvent
    distance_m: float


@dataclass
class _MonitoredRegion:
    region: GeofenceRegion
    callback: Optional[TransitionCallback]


class GeofenceMonitor:
    """
    Registry of monitored regions plus the position subscription.

    Usage:
        monitor = GeofenceMonitor(source)
        monitor.register_region(region, lambda r, e: print(r.id, e.value))
        monitor.start_continuous_updates()
        ...
        monitor.stop()
    """

    def __init__(
        self,
        source: PositionSource,
        options: Optional[LocationOptions] = None,
        logger: Optional[StructuredLogger] = None,
    ):
        self.source = source
        self.options = options or LocationOptions()
        self.logger = logger or create_logger("geofence")

        self._regions: Dict[str, _MonitoredRegion] = {}
        self._listeners: List[TransitionCallback] = []
        self._last_known: Optional[LocationSample] = None

        self._watch_id: Optional[int] = None
        self._sample_callback: Optional[SampleCallback] = None
        self._error_callback: Optional[Callable[[LocationError], None]] = None

        self._backlog: Deque[LocationSample] = deque()
        self._evaluating = False

    # ------------------------------------------------------------------
    # Registry
    # ------------------------------------------------------------------

    def register_region(
        self,
        region: GeofenceRegion,
        on_transition: Optional[TransitionCallback] = None,
    ) -> None:
        """
        Add a region.

        The region starts outside. If the last known sample already lies
        within its radius it starts inside and ``enter`` fires before this
        method returns.

        Raises:
            ValueError: If region is not a GeofenceRegion or id already exists
        """
        if not isinstance(region, GeofenceRegion):
            raise ValueError(f"Expected GeofenceRegion, got {type(region).__name__}")
        if region.id in self._regions:
            raise ValueError(f"Region '{region.id}' already registered")

        region.is_active = False
        entry = _MonitoredRegion(region=region, callback=on_transition)
        self._regions[region.id] = entry

        self.logger.info(
            event=LogEvent.GEOFENCE_REGISTERED,
            message="Registered geofence",
            metadata={
                'region_id': region.id,
                'radius_meters': region.radius_meters,
                'center': region.center.to_dict(),
            },
        )

        if self._last_known is not None:
            distance = haversine_m(self._last_known, region.center)
            if distance <= region.radius_meters:
                region.is_active = True
                self._fire(entry, GeofenceEvent.ENTER, distance)

    def unregister_region(self, region_id: str) -> bool:
        """
        Remove a region. No event fires, even if it was active.

        Returns:
            True if a region was removed
        """
        entry = self._regions.pop(region_id, None)
        if entry is None:
            return False
        self.logger.info(
            event=LogEvent.GEOFENCE_UNREGISTERED,
            message="Unregistered geofence",
            metadata={'region_id': region_id, 'was_active': entry.region.is_active},
        )
        return True

    def get_region(self, region_id: str) -> Optional[GeofenceRegion]:
        entry = self._regions.get(region_id)
        return entry.region if entry else None

    def active_regions(self) -> List[GeofenceRegion]:
        """All registered regions, in registration order."""
        return [entry.region for entry in self._regions.values()]

    def add_transition_listener(self, listener: TransitionCallback) -> None:
        """Listener invoked for every transition of every region."""
        self._listeners.append(listener)

    def remove_transition_listener(self, listener: TransitionCallback) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    @property
    def last_known_location(self) -> Optional[LocationSample]:
        return self._last_known

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    def evaluate(self, sample: LocationSample) -> List[GeofenceTransition]:
        """
        Evaluate a sample against every region.

        A call made from inside a transition callback is queued and runs
        after the current sample finishes; it then returns [].

        Returns:
            Transitions fired (including those of queued samples)
        """
        self._backlog.append(sample)
        if self._evaluating:
            return []

        self._evaluating = True
        transitions: List[GeofenceTransition] = []
        try:
            while self._backlog:
                transitions.extend(self._evaluate_one(self._backlog.popleft()))
        finally:
            self._evaluating = False
        return transitions

    def _evaluate_one(self, sample: LocationSample) -> List[GeofenceTransition]:
        self._last_known = sample

        snapshot = list(self._regions.values())
        if not snapshot:
            return []

        regions = [entry.region for entry in snapshot]
        distances, is_inside = GeofenceDetector.containment(sample, regions)
        was_inside = np.array([r.is_active for r in regions], dtype=bool)
        entered, exited = GeofenceDetector.detect_transitions(was_inside, is_inside)

        fired: List[GeofenceTransition] = []
        for idx, entry in enumerate(snapshot):
            # Skip regions removed or replaced by an earlier callback
            if self._regions.get(entry.region.id) is not entry:
                continue

            if entered[idx]:
                event = GeofenceEvent.ENTER
                entry.region.is_active = True
            elif exited[idx]:
                event = GeofenceEvent.EXIT
                entry.region.is_active = False
            else:
                continue

            distance = float(distances[idx])
            fired.append(GeofenceTransition(entry.region.id, event, distance))
            self._fire(entry, event, distance)

        return fired

    def _fire(self, entry: _MonitoredRegion, event: GeofenceEvent, distance: float) -> None:
        region = entry.region
        self.logger.info(
            event=LogEvent.GEOFENCE_TRANSITION,
            message=f"{event.value.capitalize()} {region.name}",
            metadata={
                'region_id': region.id,
                'event': event.value,
                'distance_m': round(distance, 2),
                'radius_meters': region.radius_meters,
            },
        )

        callbacks = [entry.callback] if entry.callback else []
        callbacks.extend(self._listeners)
        for callback in callbacks:
            try:
                callback(region, event)
            except Exception as e:
                self.logger.error(
                    event=LogEvent.CALLBACK_ERROR,
                    message="Geofence transition callback failed",
                    metadata={'region_id': region.id, 'event': event.value},
                    exc_info=e,
                )

    # ------------------------------------------------------------------
    # Position source
    # ------------------------------------------------------------------

    @staticmethod
    def calculate_distance(a, b) -> float:
        """Haversine distance in meters between two points."""
        return haversine_m(a, b)

    def get_current_location(self) -> LocationSample:
        """
        One-shot read. Updates the last known location (no evaluation).

        Raises:
            LocationError: PermissionDenied, PositionUnavailable or LocationTimeout
        """
        try:
            sample = self.source.get_current_position(self.options)
        except LocationError as e:
            self.logger.warning(
                event=LogEvent.LOCATION_FAILED,
                message="One-shot location read failed",
                metadata={'error': type(e).__name__},
                exc_info=e,
            )
            raise

        self._last_known = sample
        self.logger.debug(
            event=LogEvent.LOCATION_UPDATED,
            message="Location updated",
            metadata={'latitude': sample.latitude, 'longitude': sample.longitude, 'accuracy_m': sample.accuracy_m},
        )
        return sample

    def start_continuous_updates(
        self,
        callback: Optional[SampleCallback] = None,
        on_error: Optional[Callable[[LocationError], None]] = None,
    ) -> None:
        """
        Subscribe to the position stream.

        Each sample is evaluated, then passed to callback. A running
        subscription is stopped first.
        """
        self.stop()
        self._sample_callback = callback
        self._error_callback = on_error
        self._watch_id = self.source.watch_position(self._on_sample, self._on_error, self.options)
        self.logger.info(
            event=LogEvent.LOCATION_WATCH_STARTED,
            message="Started continuous location updates",
            metadata={'watch_id': self._watch_id, 'regions': len(self._regions)},
        )

    def stop(self) -> None:
        if self._watch_id is None:
            return
        self.source.clear_watch(self._watch_id)
        self.logger.info(
            event=LogEvent.LOCATION_WATCH_STOPPED,
            message="Stopped continuous location updates",
            metadata={'watch_id': self._watch_id},
        )
        self._watch_id = None
        self._sample_callback = None
        self._error_callback = None

    @property
    def is_running(self) -> bool:
        return self._watch_id is not None

    def _on_sample(self, sample: LocationSample) -> None:
        self.evaluate(sample)
        if self._sample_callback is None:
            return
        try:
            self._sample_callback(sample)
        except Exception as e:
            self.logger.error(
                event=LogEvent.CALLBACK_ERROR,
                message="Location update callback failed",
                exc_info=e,
            )

    def _on_error(self, error: LocationError) -> None:
        self.logger.warning(
            event=LogEvent.LOCATION_FAILED,
            message="Location update error",
            metadata={'error': type(error).__name__},
            exc_info=error,
        )
        if self._error_callback is None:
            return
        try:
            self._error_callback(error)
        except Exception as e:
            self.logger.error(
                event=LogEvent.CALLBACK_ERROR,
                message="Location error callback failed",
                exc_info=e,
            )

    # ------------------------------------------------------------------
    # Permission
    # ------------------------------------------------------------------

    def request_permission(self) -> bool:
        """Trigger the permission prompt with a one-shot read."""
        try:
            self.get_current_location()
        except LocationError:
            return False
        return True

    def has_permission(self) -> bool:
        """
        Capability query with graceful degradation.

        GRANTED/DENIED/PROMPT are answered directly; UNKNOWN attempts a
        read and infers the answer from the result.
        """
        state = self.source.query_permission()
        if state == PermissionState.GRANTED:
            return True
        if state in (PermissionState.DENIED, PermissionState.PROMPT):
            return False
        return self.request_permission()

    def __repr__(self) -> str:
        return (
            f"GeofenceMonitor(regions={len(self._regions)}, "
            f"running={self.is_running})"
        )
