"""
Geographic Shapes Module
========================

Coordinates and circular regions.

Design:
- Coordinates are immutable (frozen dataclass)
- Fail-fast validation in __post_init__
- GeofenceRegion carries ``is_active``, which only the monitor mutates
"""

import math
from dataclasses import dataclass
from typing import Any, Dict


@dataclass(frozen=True)
class Coordinates:
    """
    Point on the globe in decimal degrees.

    Attributes:
        latitude: [-90, 90]
        longitude: [-180, 180]
    """

    latitude: float
    longitude: float

    def __post_init__(self):
        for name, value, bound in (
            ('latitude', self.latitude, 90.0),
            ('longitude', self.longitude, 180.0),
        ):
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValueError(f"{name} must be a number, got {value!r}")
            if not math.isfinite(value) or not -bound <= value <= bound:
                raise ValueError(f"{name} must be in [-{bound:g}, {bound:g}], got {value}")

    def to_dict(self) -> Dict[str, float]:
        return {'latitude': self.latitude, 'longitude': self.longitude}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Coordinates':
        try:
            return cls(latitude=data['latitude'], longitude=data['longitude'])
        except KeyError as e:
            raise ValueError(f"Missing required coordinate field: {e}")
        except TypeError as e:
            raise ValueError(f"Invalid coordinates: {e}")


@dataclass
class GeofenceRegion:
    """
    Circular region monitored for entry/exit.

    Attributes:
        id: Unique region identifier
        name: Display name
        center: Region center
        radius_meters: Radius (> 0)
        is_active: True while the last evaluated sample is inside.
            Owned by GeofenceMonitor; reset on registration.
    """

    id: str
    name: str
    center: Coordinates
    radius_meters: float
    is_active: bool = False

    def __post_init__(self):
        if not isinstance(self.id, str) or not self.id:
            raise ValueError("Region id must be a non-empty string")
        if not isinstance(self.center, Coordinates):
            raise ValueError(f"center must be Coordinates, got {type(self.center).__name__}")
        if isinstance(self.radius_meters, bool) or not isinstance(self.radius_meters, (int, float)):
            raise ValueError(f"radius_meters must be a number, got {self.radius_meters!r}")
        if not math.isfinite(self.radius_meters) or self.radius_meters <= 0:
            raise ValueError(f"radius_meters must be > 0, got {self.radius_meters}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'center': self.center.to_dict(),
            'radius_meters': self.radius_meters,
            'is_active': self.is_active,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'GeofenceRegion':
        """
        Build a region from a dict.

        Accepts either a nested ``center`` or flat ``latitude``/``longitude``.
        ``is_active`` is never read back; the monitor owns it.

        Raises:
            ValueError: If required fields are missing or invalid
        """
        try:
            if 'center' in data:
                center = Coordinates.from_dict(data['center'])
            else:
                center = Coordinates(latitude=data['latitude'], longitude=data['longitude'])
            return cls(
                id=data['id'],
                name=data.get('name', data['id']),
                center=center,
                radius_meters=data['radius_meters'],
            )
        except KeyError as e:
            raise ValueError(f"Missing required region field: {e}")
