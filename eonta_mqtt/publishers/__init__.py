"""
MQTT Publishers
==============

Bounded Context: Message Production

Design:
- BasePublisher: Abstract base with connection management
- AudioCommandPublisher: Audio sink commands (QoS 0)
- StatusPublisher: Recording status events (QoS 0)
- RecordingPublisher: Finalized recordings (QoS 1)

Example:
    >>> from eonta_mqtt.publishers import StatusPublisher
    >>> from eonta_mqtt.logging import create_logger
    >>>
    >>> publisher = StatusPublisher(
    ...     broker_host="localhost",
    ...     topic="eonta/status/walk_01",
    ...     logger=create_logger("session")
    ... )
    >>> publisher.connect()
"""

from .base import BasePublisher
from .audio_command import AudioCommandPublisher
from .status import StatusPublisher
from .recording import RecordingHandoffError, RecordingPublisher

__all__ = [
    'BasePublisher',
    'AudioCommandPublisher',
    'StatusPublisher',
    'RecordingHandoffError',
    'RecordingPublisher',
]
