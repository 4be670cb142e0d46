"""
herenow_app - Service composition for HereNow

Bounded Context: Configuration, wiring and command-driven hosting
Responsibilities:
  - AppConfig: YAML configuration (frozen, validated)
  - ServiceContext / build_context: explicit dependency injection
  - HereNowService: control plane commands over the core
"""

from herenow_app.config import (
    AppConfig,
    DailyEventConfig,
    LocationConfig,
    MQTTConfig,
    NotificationConfig,
    RegionConfig,
    StorageConfig,
)
from herenow_app.context import ServiceContext, build_context
from herenow_app.service import HereNowService

__all__ = [
    "AppConfig",
    "DailyEventConfig",
    "LocationConfig",
    "MQTTConfig",
    "NotificationConfig",
    "RegionConfig",
    "StorageConfig",
    "ServiceContext",
    "build_context",
    "HereNowService",
]
