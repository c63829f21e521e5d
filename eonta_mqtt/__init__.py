"""
EONTA MQTT Communication Package
================================

Bounded Context: Communication Protocol for Listener Sessions

MQTT messaging between a listener session and its collaborators: the
location provider, the audio renderer, the composition generator and any
UI observing recording status.

Architecture:
- schemas/: Immutable wire messages
- publishers/: Message producers (audio commands, status, recordings)
- subscriber.py: Location fix / error consumer
- logging/: Structured JSON logging for observability

Design Philosophy:
- Immutability: frozen dataclasses for message DTOs
- Observability: structured logs (JSON) for production queries
- Publishers never raise from publish*; they log and return False

Example:
    >>> from eonta_mqtt import StatusPublisher, StatusMessage, StatusEventType, create_logger
    >>>
    >>> publisher = StatusPublisher(
    ...     broker_host="localhost",
    ...     topic="eonta/status/walk_01",
    ...     logger=create_logger("session")
    ... )
    >>> publisher.connect()
    >>> publisher.publish_status(StatusMessage.create(
    ...     session_id="walk_01",
    ...     event_type=StatusEventType.RECORDING_STARTED,
    ...     composition_id="comp-7"
    ... ))
"""

__version__ = "1.0.0"

from .schemas import (
    SCHEMA_VERSION,
    Timestamp,
    AudioAction,
    AudioCommandMessage,
    StatusEventType,
    StatusMessage,
    LocationError,
    LocationErrorCode,
    LocationFix,
)

from .publishers import (
    BasePublisher,
    AudioCommandPublisher,
    StatusPublisher,
    RecordingHandoffError,
    RecordingPublisher,
)

from .subscriber import LocationSubscriber

from .logging import (
    LogEvent,
    StructuredLogger,
    create_logger,
)

__all__ = [
    '__version__',
    # Schemas
    'SCHEMA_VERSION',
    'Timestamp',
    'AudioAction',
    'AudioCommandMessage',
    'StatusEventType',
    'StatusMessage',
    'LocationError',
    'LocationErrorCode',
    'LocationFix',
    # Publishers
    'BasePublisher',
    'AudioCommandPublisher',
    'StatusPublisher',
    'RecordingHandoffError',
    'RecordingPublisher',
    # Subscriber
    'LocationSubscriber',
    # Logging
    'LogEvent',
    'StructuredLogger',
    'create_logger',
]
