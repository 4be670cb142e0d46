"""
HereNow Geofence
================

Bounded Context: Location-aware region monitoring.

Architecture:
- geometry/: coordinates, regions, haversine, containment masks (pure)
- location: samples, errors, permission state, position sources
- monitor: region registry + edge-triggered enter/exit events

Usage:
    from herenow_geofence import (
        Coordinates, GeofenceRegion, GeofenceMonitor, ManualPositionSource,
    )

    source = ManualPositionSource()
    monitor = GeofenceMonitor(source)
    monitor.register_region(
        GeofenceRegion("park", "Dolores Park", Coordinates(37.7596, -122.4269), 150),
        on_transition=lambda region, event: print(region.id, event.value),
    )
    monitor.start_continuous_updates()
"""

from herenow_geofence.geometry import (
    EARTH_RADIUS_M,
    Coordinates,
    GeofenceDetector,
    GeofenceRegion,
    haversine_m,
    haversine_many,
)
from herenow_geofence.location import (
    LocationError,
    LocationOptions,
    LocationSample,
    LocationTimeout,
    ManualPositionSource,
    PermissionDenied,
    PermissionState,
    PositionSource,
    PositionUnavailable,
)
from herenow_geofence.monitor import (
    GeofenceEvent,
    GeofenceMonitor,
    GeofenceTransition,
    TransitionCallback,
)

__all__ = [
    "EARTH_RADIUS_M",
    "Coordinates",
    "GeofenceDetector",
    "GeofenceRegion",
    "haversine_m",
    "haversine_many",
    "LocationError",
    "LocationOptions",
    "LocationSample",
    "LocationTimeout",
    "ManualPositionSource",
    "PermissionDenied",
    "PermissionState",
    "PositionSource",
    "PositionUnavailable",
    "GeofenceEvent",
    "GeofenceMonitor",
    "GeofenceTransition",
    "TransitionCallback",
]
