"""
Path Recorder
=============

Records a listener's walk: a spatially de-duplicated path plus snapshots
of what the audio sink was playing, handed to a composition generator
when the recording stops.

Design:
- State IDLE / RECORDING plus a generation counter; every provider and
  timer callback is bound to the generation it was registered under and
  becomes a no-op once that generation ends
- Provider thread and timer thread are serialized through one RLock
- Capture-clock timestamps (never decreasing), arrival order preserved
- Status events go to in-process listeners (StatusPublisher, UI bridges)

Stop outcomes:
    SUBMITTED               >= 2 points, generator accepted the recording
    GENERATION_FAILED       >= 2 points, generator raised
    INSUFFICIENT_MOVEMENT   < 2 points, recording discarded
    NOT_RECORDING           nothing to stop
"""

import math
import numbers
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Protocol, Tuple

from eonta_geo import Projection, distance_between, to_point
from eonta_mqtt.logging import LogEvent, StructuredLogger, create_logger
from eonta_mqtt.schemas import LocationError, StatusEventType, StatusMessage
from eonta_capture.config import CaptureSettings
from eonta_capture.location import LocationProvider, Subscription
from eonta_capture.scheduler import Scheduler, ThreadScheduler, TimerHandle, wall_clock_ms
from eonta_capture.schemas import AudioSnapshot, PathRecording, Position, RegionAudioState


MSG_ALREADY_RECORDING = "Recording already in progress."
MSG_INVALID_COMPOSITION = "Invalid composition ID provided."
MSG_TRACKING_FAILED = "Could not start location tracking. Please check your location settings."
MSG_INSUFFICIENT_MOVEMENT = "Not enough movement detected to create a composition."
MSG_GENERATION_FAILED = "Failed to generate composition from your path."
MSG_MAX_DURATION = "Maximum recording duration reached. Your path has been automatically saved."

StatusListener = Callable[[StatusMessage], None]


class CompositionGenerator(Protocol):
    """Receives the finalized recording at stop time."""

    def generate(self, recording: PathRecording) -> Any:
        ...


class StopOutcome(str, Enum):
    SUBMITTED = "submitted"
    INSUFFICIENT_MOVEMENT = "insufficient_movement"
    NOT_RECORDING = "not_recording"
    GENERATION_FAILED = "generation_failed"


@dataclass(frozen=True)
class StopResult:
    """
    Result of stop_recording().

    Attributes:
        outcome: What happened
        recording: The finalized recording (None when not recording)
        result: Whatever the generator returned (SUBMITTED only)
        message: User-facing message for non-success outcomes
    """
    outcome: StopOutcome
    recording: Optional[PathRecording] = None
    result: Any = None
    message: str = ""

    @property
    def submitted(self) -> bool:
        return self.outcome == StopOutcome.SUBMITTED


def _read(fix: Any, name: str, default: Any = None) -> Any:
    if isinstance(fix, dict):
        return fix.get(name, default)
    return getattr(fix, name, default)


def _is_finite(value: Any) -> bool:
    return isinstance(value, numbers.Real) and not isinstance(value, bool) and math.isfinite(value)


class PathRecorder:
    """
    Records one walk at a time.

    Example:
        >>> recorder = PathRecorder(
        ...     audio_sink=sink,
        ...     location_provider=hub,
        ...     composition_generator=recording_publisher,
        ... )
        >>> recorder.start_recording("comp-7")
        True
        >>> # ... fixes arrive through the hub ...
        >>> recorder.stop_recording().outcome
        <StopOutcome.SUBMITTED: 'submitted'>
    """

    def __init__(
        self,
        audio_sink: Any,
        location_provider: LocationProvider,
        composition_generator: CompositionGenerator,
        settings: Optional[CaptureSettings] = None,
        scheduler: Optional[Scheduler] = None,
        clock: Optional[Callable[[], float]] = None,
        logger: Optional[StructuredLogger] = None,
        session_id: str = "local",
        projection: Projection = Projection.GEOGRAPHIC
    ):
        self.audio_sink = audio_sink
        self.location_provider = location_provider
        self.composition_generator = composition_generator
        self.settings = settings or CaptureSettings()
        self.scheduler = scheduler or ThreadScheduler()
        self.clock = clock or wall_clock_ms
        self.logger = logger or create_logger("capture")
        self.session_id = session_id
        self.projection = projection

        self._lock = threading.RLock()
        self._recording = False
        self._generation = 0
        self._composition_id: Optional[str] = None
        self._path: List[Position] = []
        self._audio_events: List[AudioSnapshot] = []
        self._start_time: Optional[float] = None
        self._last_timestamp: Optional[float] = None
        self._subscription: Optional[Subscription] = None
        self._timer: Optional[TimerHandle] = None
        self._listeners: List[StatusListener] = []
        self._last_result: Optional[StopResult] = None

    # ===== Status events =====

    def add_status_listener(self, listener: StatusListener) -> None:
        with self._lock:
            self._listeners.append(listener)

    def remove_status_listener(self, listener: StatusListener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def _emit(self, event_type: StatusEventType, data: Optional[Dict[str, Any]] = None) -> None:
        message = StatusMessage.create(
            session_id=self.session_id,
            event_type=event_type,
            composition_id=self._composition_id,
            data=data,
        )
        for listener in list(self._listeners):
            try:
                listener(message)
            except Exception as e:
                self.logger.error(
                    event=LogEvent.INVALID_INPUT,
                    message="Status listener failed",
                    exc_info=e,
                    metadata={'event_type': event_type.value}
                )

    def _emit_error(self, message: str, **extra) -> None:
        self._emit(StatusEventType.RECORDING_ERROR, {'message': message, **extra})

    # ===== Clock =====

    def _now(self) -> float:
        now = self.clock()
        if self._last_timestamp is not None and now < self._last_timestamp:
            now = self._last_timestamp
        self._last_timestamp = now
        return now

    def _is_current(self, generation: int) -> bool:
        return self._recording and generation == self._generation

    # ===== Lifecycle =====

    @property
    def is_recording(self) -> bool:
        return self._recording

    @property
    def composition_id(self) -> Optional[str]:
        return self._composition_id

    @property
    def path(self) -> Tuple[Position, ...]:
        with self._lock:
            return tuple(self._path)

    @property
    def audio_events(self) -> Tuple[AudioSnapshot, ...]:
        with self._lock:
            return tuple(self._audio_events)

    @property
    def last_result(self) -> Optional[StopResult]:
        return self._last_result

    def start_recording(self, composition_id: Any) -> bool:
        """
        Begin a recording.

        Returns:
            False if already recording, the id is not a non-empty string,
            or the location provider refused the subscription
        """
        with self._lock:
            if self._recording:
                self.logger.warning(
                    event=LogEvent.INVALID_INPUT,
                    message="Recording already in progress",
                    metadata={'composition_id': self._composition_id}
                )
                self._emit_error(MSG_ALREADY_RECORDING)
                return False

            if not isinstance(composition_id, str) or not composition_id.strip():
                self.logger.warning(
                    event=LogEvent.INVALID_INPUT,
                    message="Invalid composition id",
                    metadata={'composition_id': repr(composition_id)}
                )
                self._emit_error(MSG_INVALID_COMPOSITION)
                return False

            self._generation += 1
            generation = self._generation
            self._composition_id = composition_id
            self._path = []
            self._audio_events = []
            self._last_timestamp = None
            self._start_time = self._now()
            self._recording = True

            try:
                self._subscription = self.location_provider.subscribe(
                    lambda fix: self._on_fix(generation, fix),
                    lambda error: self._on_location_error(generation, error),
                )
            except Exception as e:
                self._recording = False
                self._generation += 1
                self.logger.error(
                    event=LogEvent.LOCATION_ERROR_RECEIVED,
                    message="Could not subscribe to location provider",
                    exc_info=e
                )
                self._emit_error(MSG_TRACKING_FAILED)
                return False

            self._timer = self.scheduler.schedule(
                self.settings.capture_interval_s,
                lambda: self._on_timer(generation),
            )

            self.logger.info(
                event=LogEvent.RECORDING_STARTED,
                message="Recording started",
                metadata={'composition_id': composition_id, 'generation': generation}
            )
            self._emit(StatusEventType.RECORDING_STARTED, {'timestamp': self._start_time})
            return True

    def stop_recording(self) -> StopResult:
        """Stop, finalize and hand off the current recording."""
        with self._lock:
            return self._stop()

    def _release_sources(self) -> None:
        if self._subscription is not None:
            try:
                self.location_provider.unsubscribe(self._subscription)
            except Exception as e:
                self.logger.error(
                    event=LogEvent.LOCATION_ERROR_RECEIVED,
                    message="Error unsubscribing from location provider",
                    exc_info=e
                )
            self._subscription = None

        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _stop(self) -> StopResult:
        if not self._recording:
            self.logger.warning(
                event=LogEvent.INVALID_INPUT,
                message="No recording in progress"
            )
            return StopResult(outcome=StopOutcome.NOT_RECORDING)

        self._release_sources()
        if self.settings.include_audio_snapshot:
            self.capture_audio_state()

        self._recording = False
        self._generation += 1

        end_time = self._now()
        recording = PathRecording(
            composition_id=self._composition_id,
            path=tuple(self._path),
            audio_events=tuple(self._audio_events),
            start_time=self._start_time,
            end_time=end_time,
            duration=end_time - self._start_time,
        )

        if recording.point_count < 2:
            result = StopResult(
                outcome=StopOutcome.INSUFFICIENT_MOVEMENT,
                recording=recording,
                message=MSG_INSUFFICIENT_MOVEMENT,
            )
            self._emit_error(MSG_INSUFFICIENT_MOVEMENT, points=recording.point_count)
        else:
            try:
                generated = self.composition_generator.generate(recording)
                result = StopResult(outcome=StopOutcome.SUBMITTED, recording=recording, result=generated)
            except Exception as e:
                self.logger.error(
                    event=LogEvent.GENERATION_ERROR,
                    message="Composition generation failed",
                    exc_info=e,
                    metadata={'composition_id': recording.composition_id}
                )
                result = StopResult(
                    outcome=StopOutcome.GENERATION_FAILED,
                    recording=recording,
                    message=MSG_GENERATION_FAILED,
                )
                self._emit_error(MSG_GENERATION_FAILED)

        self.logger.info(
            event=LogEvent.RECORDING_STOPPED,
            message="Recording stopped",
            metadata={
                'composition_id': recording.composition_id,
                'outcome': result.outcome.value,
                'points': recording.point_count,
                'audio_events': len(recording.audio_events),
                'duration_ms': recording.duration
            }
        )
        self._emit(StatusEventType.RECORDING_STOPPED, {
            'outcome': result.outcome.value,
            'points': recording.point_count,
            'duration': recording.duration,
        })

        self._last_result = result
        return result

    # ===== Capture =====

    def capture_position(self, fix: Any) -> bool:
        """
        Record ``fix`` if it is valid and far enough from the last point.

        Returns:
            True if the position was appended
        """
        with self._lock:
            if not self._recording:
                return False

            point = to_point(fix, self.projection)
            if point is None:
                self.logger.warning(
                    event=LogEvent.INVALID_INPUT,
                    message="Invalid coordinates received",
                    metadata={'fix': repr(fix)}
                )
                return False

            accuracy = _read(fix, 'accuracy')
            altitude = _read(fix, 'altitude')
            if accuracy is None:
                accuracy = 0.0
            if not _is_finite(accuracy) or accuracy < 0 or (altitude is not None and not _is_finite(altitude)):
                self.logger.warning(
                    event=LogEvent.INVALID_INPUT,
                    message="Invalid accuracy or altitude received",
                    metadata={'accuracy': repr(accuracy), 'altitude': repr(altitude)}
                )
                return False

            if self._path:
                gap = distance_between(self._path[-1], point, self.projection)
                if gap < self.settings.min_distance_m:
                    self.logger.debug(
                        event=LogEvent.POSITION_FILTERED,
                        message="Position too close to previous point",
                        metadata={'distance': gap, 'min_distance': self.settings.min_distance_m}
                    )
                    return False

            fix_timestamp = _read(fix, 'timestamp')
            now = self._now()
            position = Position(
                lat=point.lat,
                lng=point.lng,
                accuracy=float(accuracy),
                timestamp=now,
                time_since_start=now - self._start_time,
                altitude=None if altitude is None else float(altitude),
                fix_timestamp=float(fix_timestamp) if _is_finite(fix_timestamp) else None,
            )
            self._path.append(position)

            if self.settings.include_audio_snapshot:
                self.capture_audio_state()

            self.logger.debug(
                event=LogEvent.POSITION_CAPTURED,
                message="Captured position",
                metadata={'points': len(self._path)}
            )
            self._emit(StatusEventType.POSITION_UPDATED, {
                'position': position.to_dict(),
                'points': len(self._path),
            })
            return True

    def capture_audio_state(self) -> Optional[AudioSnapshot]:
        """Snapshot the sink's active audio into the recording."""
        with self._lock:
            if not self._recording:
                return None

            try:
                playing = self.audio_sink.get_active_audio() or []
                regions = tuple(
                    RegionAudioState(
                        region_id=str(audio['id']),
                        volume=float(audio.get('volume', 0.0)),
                        effects=dict(audio.get('effects') or {}),
                    )
                    for audio in playing
                    if isinstance(audio, dict) and audio.get('id') is not None
                )
            except Exception as e:
                self.logger.error(
                    event=LogEvent.AUDIO_SINK_ERROR,
                    message="Error capturing audio state",
                    exc_info=e
                )
                regions = ()

            now = self._now()
            snapshot = AudioSnapshot(
                timestamp=now,
                time_since_start=now - self._start_time,
                active_regions=regions,
            )
            self._audio_events.append(snapshot)
            return snapshot

    # ===== Callbacks (provider / timer threads) =====

    def _on_fix(self, generation: int, fix: Any) -> None:
        with self._lock:
            if not self._is_current(generation):
                return
            self.capture_position(fix)

    def _on_location_error(self, generation: int, error: LocationError) -> None:
        with self._lock:
            if not self._is_current(generation):
                return
            self.logger.warning(
                event=LogEvent.LOCATION_ERROR_RECEIVED,
                message="Location error during recording",
                metadata=error.to_dict()
            )
            self._emit_error(error.user_message, code=error.code.value)

    def _on_timer(self, generation: int) -> None:
        with self._lock:
            if not self._is_current(generation):
                return

            if self.settings.include_audio_snapshot:
                self.capture_audio_state()

            if self.clock() - self._start_time > self.settings.max_duration_ms:
                self.logger.info(
                    event=LogEvent.RECORDING_MAX_DURATION,
                    message="Maximum recording duration reached",
                    metadata={'max_duration_ms': self.settings.max_duration_ms}
                )
                result = self._stop()
                self._emit(StatusEventType.MAX_DURATION_REACHED, {
                    'message': MSG_MAX_DURATION,
                    'outcome': result.outcome.value,
                })

    # ===== Introspection =====

    def get_status(self) -> Dict[str, Any]:
        """Current recording status."""
        with self._lock:
            if not self._recording:
                return {'is_recording': False}
            return {
                'is_recording': True,
                'duration': self.clock() - self._start_time,
                'points_recorded': len(self._path),
                'audio_snapshots_recorded': len(self._audio_events),
                'composition_id': self._composition_id,
            }

    def dispose(self) -> Optional[StopResult]:
        """Stop any recording in progress and drop listeners."""
        with self._lock:
            result = self._stop() if self._recording else None
            self._listeners.clear()
            return result
