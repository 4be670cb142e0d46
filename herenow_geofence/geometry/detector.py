"""
Geofence Detector Module
========================

Stateless containment and transition logic over arrays of regions.

Design:
- Static methods only (no instance state)
- Previous state is injected; masks are returned
- The monitor owns state and fires events from the masks
"""

from typing import Sequence, Tuple

import numpy as np

from herenow_geofence.geometry.distance import haversine_many
from herenow_geofence.geometry.shapes import GeofenceRegion


class GeofenceDetector:
    """
    Stateless detector for applying region geometry to a position.

    Usage:
        distances, inside = GeofenceDetector.containment(sample, regions)
        entered, exited = GeofenceDetector.detect_transitions(was_inside, inside)
    """

    @staticmethod
    def containment(
        point,
        regions: Sequence[GeofenceRegion],
    ) -> Tuple[np.ndarray, np.ndarray]:
        """
        Distances to every region center and the inside mask.

        A point exactly on the boundary (distance == radius) is inside.

        Returns:
            Tuple of (distances_m, inside_mask), both shape (N,)
        """
        if len(regions) == 0:
            return np.array([], dtype=float), np.array([], dtype=bool)

        centers = np.array(
            [[r.center.latitude, r.center.longitude] for r in regions],
            dtype=float,
        )
        radii = np.array([r.radius_meters for r in regions], dtype=float)

        distances = haversine_many(point, centers)
        return distances, distances <= radii

    @staticmethod
    def detect_transitions(
        was_inside: np.ndarray,
        is_inside: np.ndarray,
    ) -> Tuple[np.ndarray, np.ndarray]:
        """
        Edge detection between two containment masks.

        Returns:
            Tuple of:
            - entered: outside -> inside
            - exited: inside -> outside

        Raises:
            ValueError: If mask shapes differ
        """
        was_inside = np.asarray(was_inside, dtype=bool)
        is_inside = np.asarray(is_inside, dtype=bool)
        if was_inside.shape != is_inside.shape:
            raise ValueError(
                f"Mask shapes differ: {was_inside.shape} vs {is_inside.shape}"
            )
        entered = is_inside & ~was_inside
        exited = was_inside & ~is_inside
        return entered, exited
