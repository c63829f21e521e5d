"""
eonta_session - One listener walking one composition

Components:
  - SessionConfig: YAML configuration (regions, capture, MQTT topics)
  - ListenerSession: Owns engine, recorder and location hub; registers
    the remote control commands
"""

from eonta_session.config import MQTTConfig, RegionConfig, SessionConfig
from eonta_session.session import ListenerSession

__all__ = [
    "ListenerSession",
    "MQTTConfig",
    "RegionConfig",
    "SessionConfig",
]
