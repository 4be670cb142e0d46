"""
Great-Circle Distance
=====================

Haversine distance on a spherical Earth (mean radius 6,371,000 m).
Degrees in, meters out.
"""

import numpy as np

EARTH_RADIUS_M = 6_371_000.0


def haversine_many(origin, centers: np.ndarray) -> np.ndarray:
    """
    Distance from one point to many points.

    Args:
        origin: Anything with ``latitude``/``longitude`` attributes (degrees)
        centers: Nx2 array of (latitude, longitude) in degrees

    Returns:
        Array of shape (N,) with distances in meters
    """
    centers = np.asarray(centers, dtype=float)
    if centers.size == 0:
        return np.array([], dtype=float)
    if centers.ndim != 2 or centers.shape[1] != 2:
        raise ValueError(f"centers must be Nx2 array, got shape {centers.shape}")

    lat1 = np.radians(origin.latitude)
    lon1 = np.radians(origin.longitude)
    lat2 = np.radians(centers[:, 0])
    lon2 = np.radians(centers[:, 1])

    dlat = lat2 - lat1
    dlon = lon2 - lon1
    a = np.sin(dlat / 2.0) ** 2 + np.cos(lat1) * np.cos(lat2) * np.sin(dlon / 2.0) ** 2
    # Rounding can push a slightly outside [0, 1] for near-antipodal points
    a = np.clip(a, 0.0, 1.0)
    c = 2.0 * np.arctan2(np.sqrt(a), np.sqrt(1.0 - a))
    return EARTH_RADIUS_M * c


def haversine_m(a, b) -> float:
    """Distance in meters between two points with ``latitude``/``longitude``."""
    return float(haversine_many(a, np.array([[b.latitude, b.longitude]]))[0])
