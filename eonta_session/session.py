"""
Listener Session - one listener walking one composition.

This module provides the ListenerSession class, which owns every
per-listener handle: the TransitionEngine driving the audio sink, the
PathRecorder, and the location hub feeding both.

Architecture:
- Everything is constructor-injected; nothing is global
- The session subscribes to the hub first, so on every fix the engine
  updates the sink before the recorder snapshots it
- Fix handling is serialized by the session lock; the recorder
  serializes its own provider and timer callbacks

Threading Model:
- Location thread (MQTT subscriber or replay) -> hub -> session/recorder
- Timer thread (recorder snapshots)
- Control Plane thread (paho-mqtt internal, command handlers)
"""

import logging
import threading
from typing import Any, Callable, Dict, Optional

from eonta_capture import (
    LocationError,
    LocationHub,
    PathRecorder,
    Scheduler,
    StopResult,
    Subscription,
)
from eonta_control import CommandRegistry
from eonta_mqtt.logging import StructuredLogger, create_logger
from eonta_mqtt.schemas import StatusMessage
from eonta_session.config import SessionConfig
from eonta_transition import AudioSink, TickResult, TransitionEngine

logger = logging.getLogger(__name__)


class ListenerSession:
    """
    Per-listener orchestrator.

    Usage:
        config = SessionConfig.from_yaml("session_config.yaml")
        session = ListenerSession(
            config=config,
            audio_sink=MqttAudioSink(config.service_id, audio_publisher),
            composition_generator=recording_publisher,
            status_listener=status_publisher.publish_status,
        )
        session.register_commands(control_plane.command_registry)
        session.start()

        location_subscriber = LocationSubscriber(
            ..., on_fix=session.hub.publish_fix, on_error=session.hub.publish_error
        )
    """

    def __init__(
        self,
        config: SessionConfig,
        audio_sink: AudioSink,
        composition_generator: Any,
        hub: Optional[LocationHub] = None,
        status_listener: Optional[Callable[[StatusMessage], Any]] = None,
        scheduler: Optional[Scheduler] = None,
        clock: Optional[Callable[[], float]] = None,
        structured_logger: Optional[StructuredLogger] = None,
    ):
        self.config = config
        self.audio_sink = audio_sink
        self.hub = hub or LocationHub(structured_logger)

        self.engine = TransitionEngine(
            regions=config.build_regions(),
            sink=audio_sink,
            logger=structured_logger or create_logger("transition"),
            projection=config.projection,
        )
        self.recorder = PathRecorder(
            audio_sink=audio_sink,
            location_provider=self.hub,
            composition_generator=composition_generator,
            settings=config.capture,
            scheduler=scheduler,
            clock=clock,
            logger=structured_logger or create_logger("capture"),
            session_id=config.service_id,
            projection=config.projection,
        )
        if status_listener is not None:
            self.recorder.add_status_listener(status_listener)

        self._lock = threading.Lock()
        self._subscription: Optional[Subscription] = None
        self._last_tick: Optional[TickResult] = None
        self._fix_count = 0
        self._last_location_error: Optional[LocationError] = None

        logger.info(
            f"ListenerSession initialized for service_id={config.service_id} "
            f"({len(self.engine.regions)} regions, projection={config.projection.value})"
        )

    # ===== Lifecycle =====

    @property
    def is_running(self) -> bool:
        return self._subscription is not None

    def start(self) -> None:
        """Begin driving the engine from the hub."""
        if self._subscription is not None:
            logger.warning("Session already running")
            return

        self._subscription = self.hub.subscribe(self._on_fix, self._on_location_error)
        logger.info("✅ Listener session started")

    def stop(self) -> Optional[StopResult]:
        """
        Stop recording (submitting if possible), fade everything out and
        detach from the hub.

        Returns:
            The StopResult if a recording was in progress
        """
        result = self.recorder.dispose()

        if self._subscription is not None:
            self.hub.unsubscribe(self._subscription)
            self._subscription = None

        with self._lock:
            faded = self.engine.reset()

        logger.info(f"✅ Listener session stopped (faded out: {faded})")
        return result

    # ===== Location callbacks =====

    def _on_fix(self, fix: Any) -> None:
        with self._lock:
            self._fix_count += 1
            tick = self.engine.update(fix)
            self._last_tick = tick

        if tick.changed:
            logger.debug(
                f"Tick: entered={list(tick.entered)} exited={list(tick.exited)} "
                f"updated={list(tick.updated)}"
            )

    def _on_location_error(self, error: LocationError) -> None:
        self._last_location_error = error
        logger.warning(f"⚠️ Location error: {error.code.value} ({error.user_message})")

    @property
    def last_tick(self) -> Optional[TickResult]:
        return self._last_tick

    # ===== Commands =====

    def register_commands(self, registry: CommandRegistry) -> None:
        """Register the session's remote commands."""
        registry.register(
            'start_recording',
            self.start_recording_command,
            "Start recording the listener's path (requires composition_id)"
        )
        registry.register(
            'stop_recording',
            self.stop_recording_command,
            "Stop recording and submit the path for composition generation"
        )
        registry.register(
            'status',
            self.status_command,
            "Recording status and active regions"
        )
        logger.info("Control handlers registered")

    def start_recording_command(self, command: Dict[str, Any]) -> Dict[str, Any]:
        composition_id = command.get('composition_id')
        started = self.recorder.start_recording(composition_id)
        if started:
            logger.info(f"Recording started: {composition_id}")
        return {'started': started, 'composition_id': composition_id}

    def stop_recording_command(self, command: Dict[str, Any]) -> Dict[str, Any]:
        result = self.recorder.stop_recording()
        reply: Dict[str, Any] = {'outcome': result.outcome.value}
        if result.message:
            reply['message'] = result.message
        if result.recording is not None:
            reply['composition_id'] = result.recording.composition_id
            reply['stats'] = result.recording.stats(self.config.projection)
        if result.submitted and isinstance(result.result, dict):
            reply['receipt'] = result.result
        logger.info(f"Recording stopped: {result.outcome.value}")
        return reply

    def status_command(self, command: Dict[str, Any]) -> Dict[str, Any]:
        return self.get_status()

    def get_status(self) -> Dict[str, Any]:
        """Session snapshot for the control plane and CLI."""
        with self._lock:
            status = {
                'service_id': self.config.service_id,
                'running': self.is_running,
                'fixes_processed': self._fix_count,
                'active_regions': self.engine.active_region_ids,
                'recording': self.recorder.get_status(),
            }
        if self._last_location_error is not None:
            status['last_location_error'] = self._last_location_error.to_dict()
        return status
