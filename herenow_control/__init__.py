"""
herenow_control - Control Plane for the HereNow service

Bounded Context: MQTT-based command-and-control
Responsibilities:
  - MQTT connection management (Control Plane)
  - Command registration and validation
  - Command execution delegation (onto the service's event loop)

Architecture:
  - CommandRegistry: explicit registration pattern
  - MQTTControlPlane: MQTT client + command reception + replies
  - QoS 1 for control commands (at-least-once delivery)
"""

from .registry import CommandRegistry, CommandNotAvailableError
from .plane import MQTTControlPlane

__all__ = [
    "CommandRegistry",
    "CommandNotAvailableError",
    "MQTTControlPlane",
]
