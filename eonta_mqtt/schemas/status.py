"""
Status Message Schema
=====================

Bounded Context: Recording Status for External Observers

Events a UI observes while a path is being recorded.

Message Flow:
    PathRecorder → status listeners → StatusPublisher → MQTT → UI
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

from .common import SCHEMA_VERSION, Timestamp


class StatusEventType(str, Enum):
    """Recording lifecycle events."""
    RECORDING_STARTED = "recording.started"
    RECORDING_STOPPED = "recording.stopped"
    RECORDING_ERROR = "recording.error"
    POSITION_UPDATED = "position.updated"
    MAX_DURATION_REACHED = "recording.max_duration"


@dataclass(frozen=True)
class StatusMessage:
    """
    One status event.

    Attributes:
        schema_version: Message schema version
        timestamp: ISO 8601 creation time
        session_id: Listener session identifier
        event_type: What happened
        composition_id: Recording the event belongs to (None before start)
        data: Event payload (points, duration, outcome, message, ...)

    Example:
        >>> msg = StatusMessage.create(
        ...     session_id="walk_01",
        ...     event_type=StatusEventType.POSITION_UPDATED,
        ...     composition_id="comp-7",
        ...     data={'points': 12}
        ... )
    """
    schema_version: str
    timestamp: Timestamp
    session_id: str
    event_type: StatusEventType
    composition_id: Optional[str] = None
    data: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        """Validate invariants."""
        if not isinstance(self.event_type, StatusEventType):
            raise ValueError(f"event_type must be a StatusEventType, got {self.event_type!r}")

    @property
    def is_error(self) -> bool:
        return self.event_type == StatusEventType.RECORDING_ERROR

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to JSON-compatible dict."""
        return {
            'schema_version': self.schema_version,
            'timestamp': self.timestamp.to_dict(),
            'session_id': self.session_id,
            'event_type': self.event_type.value,
            'composition_id': self.composition_id,
            'data': dict(self.data),
        }

    @classmethod
    def create(
        cls,
        session_id: str,
        event_type: StatusEventType,
        composition_id: Optional[str] = None,
        data: Optional[Dict[str, Any]] = None
    ) -> 'StatusMessage':
        """Build a message stamped now with the current schema version."""
        return cls(
            schema_version=SCHEMA_VERSION,
            timestamp=Timestamp.now(),
            session_id=session_id,
            event_type=event_type,
            composition_id=composition_id,
            data=dict(data or {}),
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'StatusMessage':
        """Deserialize from dict.

        Raises:
            ValueError: If required fields missing or invalid
        """
        try:
            return cls(
                schema_version=str(data['schema_version']),
                timestamp=Timestamp(value=data['timestamp']),
                session_id=str(data['session_id']),
                event_type=StatusEventType(data['event_type']),
                composition_id=data.get('composition_id'),
                data=dict(data.get('data', {})),
            )
        except KeyError as e:
            raise ValueError(f"Missing required StatusMessage field: {e}")
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid StatusMessage data: {e}")
