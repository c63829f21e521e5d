"""
eonta_control - Remote control of a listener session

Bounded Context: MQTT-based command-and-control
Responsibilities:
  - MQTT connection management (Control Plane)
  - Command registration and validation
  - Command execution delegation and replies

Commands registered by ListenerSession:
  - start_recording  {"composition_id": "..."}
  - stop_recording
  - status
"""

from .registry import CommandRegistry, CommandNotAvailableError
from .plane import MQTTControlPlane

__all__ = [
    "CommandRegistry",
    "CommandNotAvailableError",
    "MQTTControlPlane",
]
