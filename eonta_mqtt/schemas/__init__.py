"""
EONTA MQTT Schemas
==================

Bounded Context: Data Structures

Immutable, typed wire messages.

Design:
- Frozen dataclasses (immutability)
- to_dict() for JSON serialization
- from_dict() for deserialization (raises ValueError)
- Schema versioning for evolution

Public API
----------
Common Types:
    Timestamp, SCHEMA_VERSION

Audio Commands:
    AudioAction, AudioCommandMessage

Status:
    StatusEventType, StatusMessage

Location:
    LocationFix, LocationError, LocationErrorCode
"""

from .common import SCHEMA_VERSION, Timestamp
from .audio_command import AudioAction, AudioCommandMessage
from .status import StatusEventType, StatusMessage
from .location import LocationError, LocationErrorCode, LocationFix, USER_MESSAGES

__all__ = [
    # Common types
    'SCHEMA_VERSION',
    'Timestamp',
    # Audio commands
    'AudioAction',
    'AudioCommandMessage',
    # Status
    'StatusEventType',
    'StatusMessage',
    # Location
    'LocationError',
    'LocationErrorCode',
    'LocationFix',
    'USER_MESSAGES',
]
