"""
Audio Sink Contract
===================

Where the transition engine sends playback commands.

Design:
- AudioSink is a structural Protocol: any object with these methods works
- Every call returns a bool; implementations should not raise, but the
  engine guards against it anyway
- MqttAudioSink publishes commands for an external renderer and mirrors
  the active set locally so get_active_audio() needs no round trip
"""

import threading
from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

from eonta_mqtt.logging import LogEvent, StructuredLogger, create_logger
from eonta_mqtt.publishers import AudioCommandPublisher
from eonta_mqtt.schemas import AudioAction, AudioCommandMessage


@runtime_checkable
class AudioSink(Protocol):
    """Playback surface driven by the TransitionEngine."""

    def play_audio(self, region_id: str, url: str, options: Dict[str, Any]) -> bool:
        """Start looping ``url`` with options {loop, volume, fade_in, effects}."""
        ...

    def stop_audio(self, region_id: str, fade_out_seconds: float = 0.0) -> bool:
        ...

    def fade_out_audio(self, region_id: str, duration_seconds: float) -> bool:
        ...

    def set_volume(self, region_id: str, volume: float) -> bool:
        ...

    def apply_effect(self, region_id: str, effect_type: str, params: Dict[str, Any]) -> bool:
        ...

    def get_active_audio(self) -> List[Dict[str, Any]]:
        """Currently playing audio as [{id, volume, effects}]."""
        ...


class MqttAudioSink:
    """
    AudioSink that publishes AudioCommandMessages.

    The local mirror is updated only when a command was published, so
    get_active_audio() reflects what the renderer was actually told.

    Example:
        >>> sink = MqttAudioSink(session_id="walk_01", publisher=audio_publisher)
        >>> sink.play_audio("fountain", "https://audio.example/f.mp3",
        ...                 {'loop': True, 'volume': 0.2, 'fade_in': 1.5, 'effects': {}})
        True
    """

    def __init__(
        self,
        session_id: str,
        publisher: AudioCommandPublisher,
        logger: Optional[StructuredLogger] = None
    ):
        self.session_id = session_id
        self.publisher = publisher
        self.logger = logger or create_logger("audio_sink")
        self._active: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.Lock()

    def _send(self, action: AudioAction, region_id: str, **params) -> bool:
        try:
            command = AudioCommandMessage.create(self.session_id, action, region_id, **params)
        except ValueError as e:
            self.logger.warning(
                event=LogEvent.INVALID_INPUT,
                message="Rejected audio command",
                metadata={'action': action.value, 'region_id': region_id, 'error': str(e)}
            )
            return False
        return self.publisher.publish_command(command)

    def play_audio(self, region_id: str, url: str, options: Dict[str, Any]) -> bool:
        options = dict(options or {})
        volume = float(options.get('volume', 1.0))
        effects = dict(options.get('effects') or {})
        sent = self._send(
            AudioAction.PLAY,
            region_id,
            url=url,
            loop=bool(options.get('loop', True)),
            volume=volume,
            fade_in=float(options.get('fade_in', 0.0)),
            effects=effects,
        )
        if sent:
            with self._lock:
                self._active[region_id] = {'volume': volume, 'effects': effects}
        return sent

    def stop_audio(self, region_id: str, fade_out_seconds: float = 0.0) -> bool:
        sent = self._send(AudioAction.STOP, region_id, fade_out=float(fade_out_seconds))
        if sent:
            with self._lock:
                self._active.pop(region_id, None)
        return sent

    def fade_out_audio(self, region_id: str, duration_seconds: float) -> bool:
        sent = self._send(AudioAction.FADE_OUT, region_id, duration=float(duration_seconds))
        if sent:
            with self._lock:
                self._active.pop(region_id, None)
        return sent

    def set_volume(self, region_id: str, volume: float) -> bool:
        volume = min(1.0, max(0.0, float(volume)))
        sent = self._send(AudioAction.SET_VOLUME, region_id, volume=volume)
        if sent:
            with self._lock:
                if region_id in self._active:
                    self._active[region_id]['volume'] = volume
        return sent

    def apply_effect(self, region_id: str, effect_type: str, params: Dict[str, Any]) -> bool:
        params = dict(params or {})
        sent = self._send(AudioAction.APPLY_EFFECT, region_id, effect_type=effect_type, params=params)
        if sent:
            with self._lock:
                if region_id in self._active:
                    self._active[region_id]['effects'][effect_type] = params
        return sent

    def get_active_audio(self) -> List[Dict[str, Any]]:
        with self._lock:
            return [
                {'id': region_id, 'volume': state['volume'], 'effects': dict(state['effects'])}
                for region_id, state in self._active.items()
            ]
