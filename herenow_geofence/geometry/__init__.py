"""
Geometry Layer
==============

Bounded Context: Pure geographic shapes and spatial queries.

Responsibilities:
- Coordinates and circular regions (validated)
- Haversine distance (vectorized)
- Containment and edge detection masks
- NO callbacks, NO subscriptions
"""

from herenow_geofence.geometry.shapes import Coordinates, GeofenceRegion
from herenow_geofence.geometry.distance import EARTH_RADIUS_M, haversine_m, haversine_many
from herenow_geofence.geometry.detector import GeofenceDetector

__all__ = [
    "Coordinates",
    "GeofenceRegion",
    "EARTH_RADIUS_M",
    "haversine_m",
    "haversine_many",
    "GeofenceDetector",
]
