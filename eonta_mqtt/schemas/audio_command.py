"""
Audio Command Message Schema
============================

Bounded Context: Transition Engine -> Audio Renderer

One message per AudioSink call, consumed by an external audio renderer.

Message Flow:
    TransitionEngine → MqttAudioSink → AudioCommandPublisher → MQTT → Renderer
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict

from .common import SCHEMA_VERSION, Timestamp


class AudioAction(str, Enum):
    """Audio sink operations carried on the wire."""
    PLAY = "play"
    STOP = "stop"
    FADE_OUT = "fade_out"
    SET_VOLUME = "set_volume"
    APPLY_EFFECT = "apply_effect"


@dataclass(frozen=True)
class AudioCommandMessage:
    """
    A single audio command.

    Params by action:
        PLAY: url, loop, volume, fade_in, effects
        STOP: fade_out
        FADE_OUT: duration
        SET_VOLUME: volume
        APPLY_EFFECT: effect_type, params

    Example:
        >>> msg = AudioCommandMessage(
        ...     schema_version="1.0",
        ...     timestamp=Timestamp.now(),
        ...     session_id="walk_01",
        ...     action=AudioAction.SET_VOLUME,
        ...     region_id="fountain",
        ...     params={'volume': 0.4}
        ... )
    """
    schema_version: str
    timestamp: Timestamp
    session_id: str
    action: AudioAction
    region_id: str
    params: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        """Validate invariants."""
        if not isinstance(self.action, AudioAction):
            raise ValueError(f"action must be an AudioAction, got {self.action!r}")
        if not self.region_id:
            raise ValueError("region_id cannot be empty")
        if self.action == AudioAction.PLAY and not self.params.get('url'):
            raise ValueError("play commands require a 'url' param")
        if self.action == AudioAction.SET_VOLUME:
            volume = self.params.get('volume')
            if not isinstance(volume, (int, float)) or not 0.0 <= volume <= 1.0:
                raise ValueError(f"set_volume requires volume in [0.0, 1.0], got {volume!r}")

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to JSON-compatible dict."""
        return {
            'schema_version': self.schema_version,
            'timestamp': self.timestamp.to_dict(),
            'session_id': self.session_id,
            'action': self.action.value,
            'region_id': self.region_id,
            'params': dict(self.params),
        }

    @classmethod
    def create(cls, session_id: str, action: AudioAction, region_id: str, **params) -> 'AudioCommandMessage':
        """Build a message stamped now with the current schema version."""
        return cls(
            schema_version=SCHEMA_VERSION,
            timestamp=Timestamp.now(),
            session_id=session_id,
            action=action,
            region_id=region_id,
            params=params,
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AudioCommandMessage':
        """Deserialize from dict.

        Raises:
            ValueError: If required fields missing or invalid
        """
        try:
            return cls(
                schema_version=str(data['schema_version']),
                timestamp=Timestamp(value=data['timestamp']),
                session_id=str(data['session_id']),
                action=AudioAction(data['action']),
                region_id=str(data['region_id']),
                params=dict(data.get('params', {})),
            )
        except KeyError as e:
            raise ValueError(f"Missing required AudioCommandMessage field: {e}")
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid AudioCommandMessage data: {e}")
