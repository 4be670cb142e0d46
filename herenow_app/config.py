"""
Configuration schema for the HereNow service.

Defines storage, location, daily event, notification, MQTT and startup
region settings. Loaded from YAML and validated at startup; immutable
after construction (frozen dataclasses).
"""

from dataclasses import dataclass, field
from datetime import time
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from herenow_geofence import Coordinates, GeofenceRegion, LocationOptions
from herenow_notify.schemas import parse_hhmm
from herenow_store import DEFAULT_NAMESPACE


@dataclass(frozen=True)
class StorageConfig:
    """Persistent store location; no path means in-memory only."""

    path: Optional[Path] = None
    namespace: str = DEFAULT_NAMESPACE

    def __post_init__(self):
        if not self.namespace:
            raise ValueError("storage namespace cannot be empty")


@dataclass(frozen=True)
class LocationConfig:
    high_accuracy: bool = True
    timeout_s: float = 15.0
    max_age_s: float = 30.0

    def __post_init__(self):
        # LocationOptions carries the actual validation
        self.to_options()

    def to_options(self) -> LocationOptions:
        return LocationOptions(
            high_accuracy=self.high_accuracy,
            timeout_s=self.timeout_s,
            max_age_s=self.max_age_s,
        )


@dataclass(frozen=True)
class DailyEventConfig:
    ads_required: int = 3
    reveal_time: str = "08:00"

    def __post_init__(self):
        if self.ads_required < 1:
            raise ValueError(f"ads_required must be >= 1, got {self.ads_required}")
        parse_hhmm(self.reveal_time)

    def reveal_time_value(self) -> time:
        minutes = parse_hhmm(self.reveal_time)
        return time(minutes // 60, minutes % 60)


@dataclass(frozen=True)
class NotificationConfig:
    presenter: str = "memory"  # "memory" or "mqtt"
    default_icon: str = "/favicon.ico"

    def __post_init__(self):
        valid_presenters = {"memory", "mqtt"}
        if self.presenter not in valid_presenters:
            raise ValueError(
                f"Invalid presenter: {self.presenter}. "
                f"Must be one of {valid_presenters}"
            )


@dataclass(frozen=True)
class MQTTConfig:
    """MQTT broker configuration."""

    broker: str = "localhost"
    port: int = 1883
    username: Optional[str] = None
    password: Optional[str] = None
    qos: int = 1

    notification_topic: str = "herenow/{service_id}/notifications"
    command_topic: str = "herenow/{service_id}/commands"
    status_topic: str = "herenow/{service_id}/status"
    reply_topic: str = "herenow/{service_id}/replies"

    def __post_init__(self):
        if not 1 <= self.port <= 65535:
            raise ValueError(
                f"MQTT port must be in [1, 65535], got {self.port}"
            )

        if self.qos not in {0, 1, 2}:
            raise ValueError(
                f"MQTT QoS must be 0, 1, or 2, got {self.qos}"
            )

    def topic(self, name: str, service_id: str) -> str:
        """Resolve a ``*_topic`` template for service_id."""
        return getattr(self, f"{name}_topic").format(service_id=service_id)


@dataclass(frozen=True)
class RegionConfig:
    """Geofence registered at startup."""

    region_id: str
    latitude: float
    longitude: float
    radius_m: float
    name: Optional[str] = None

    def __post_init__(self):
        # Fail at load time, not at registration
        self.to_region()

    def to_region(self) -> GeofenceRegion:
        return GeofenceRegion(
            id=self.region_id,
            name=self.name or self.region_id,
            center=Coordinates(latitude=self.latitude, longitude=self.longitude),
            radius_meters=self.radius_m,
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RegionConfig":
        try:
            return cls(
                region_id=data["region_id"],
                name=data.get("name"),
                latitude=data["latitude"],
                longitude=data["longitude"],
                radius_m=data["radius_m"],
            )
        except KeyError as e:
            raise ValueError(f"Missing required region field: {e}")


@dataclass(frozen=True)
class AppConfig:
    """
    Main configuration for the HereNow service.

    Loaded from YAML and validated at startup.
    """

    service_id: str
    storage: StorageConfig = field(default_factory=StorageConfig)
    location: LocationConfig = field(default_factory=LocationConfig)
    daily_event: DailyEventConfig = field(default_factory=DailyEventConfig)
    notifications: NotificationConfig = field(default_factory=NotificationConfig)
    mqtt: MQTTConfig = field(default_factory=MQTTConfig)
    regions: List[RegionConfig] = field(default_factory=list)

    def __post_init__(self):
        if not self.service_id:
            raise ValueError("service_id cannot be empty")

        region_ids = [region.region_id for region in self.regions]
        duplicates = sorted({rid for rid in region_ids if region_ids.count(rid) > 1})
        if duplicates:
            raise ValueError(f"Duplicate region ids in config: {duplicates}")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AppConfig":
        if not isinstance(data, dict):
            raise ValueError("Configuration must be a mapping")
        if "service_id" not in data:
            raise ValueError("Missing required field: 'service_id'")

        storage_data = dict(data.get("storage") or {})
        if storage_data.get("path") is not None:
            storage_data["path"] = Path(storage_data["path"])

        try:
            return cls(
                service_id=data["service_id"],
                storage=StorageConfig(**storage_data),
                location=LocationConfig(**(data.get("location") or {})),
                daily_event=DailyEventConfig(**(data.get("daily_event") or {})),
                notifications=NotificationConfig(**(data.get("notifications") or {})),
                mqtt=MQTTConfig(**(data.get("mqtt") or {})),
                regions=[RegionConfig.from_dict(r) for r in data.get("regions") or []],
            )
        except TypeError as e:
            # Unknown keys in a section
            raise ValueError(f"Invalid configuration: {e}")

    @classmethod
    def from_yaml(cls, yaml_path: Path) -> "AppConfig":
        """
        Load configuration from YAML file.

        Example YAML:
            service_id: "sf-mission"

            storage:
              path: "./data/herenow.json"
              namespace: "herenow_"

            location:
              high_accuracy: true
              timeout_s: 15
              max_age_s: 30

            daily_event:
              ads_required: 3
              reveal_time: "08:00"

            notifications:
              presenter: "mqtt"
              default_icon: "/favicon.ico"

            mqtt:
              broker: "localhost"
              port: 1883

            regions:
              - region_id: "dolores-park"
                name: "Dolores Park"
                latitude: 37.7596
                longitude: -122.4269
                radius_m: 150
        """
        with open(yaml_path) as f:
            data = yaml.safe_load(f)

        return cls.from_dict(data or {})
