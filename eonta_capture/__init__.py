"""
EONTA Position Capture
======================

Bounded Context: Recording a listener's walk for composition generation.

Architecture:

    eonta_capture/
    ├── config.py     # CaptureSettings (immutable)
    ├── schemas.py    # Position, AudioSnapshot, PathRecording (immutable)
    ├── location.py   # LocationProvider protocol, LocationHub
    ├── scheduler.py  # Scheduler protocol, ThreadScheduler, wall_clock_ms
    └── recorder.py   # PathRecorder (stateful, generation-guarded)

Usage:

    from eonta_capture import LocationHub, PathRecorder

    hub = LocationHub()
    recorder = PathRecorder(
        audio_sink=sink,
        location_provider=hub,
        composition_generator=recording_publisher,
    )
    recorder.start_recording("comp-7")
    hub.publish_fix(fix)
    result = recorder.stop_recording()
"""

from eonta_capture.config import CaptureSettings
from eonta_capture.schemas import (
    AudioSnapshot,
    PathRecording,
    PathValidation,
    Position,
    RegionAudioState,
    format_duration,
)
from eonta_capture.location import (
    LocationError,
    LocationErrorCode,
    LocationFix,
    LocationHub,
    LocationProvider,
    Subscription,
)
from eonta_capture.scheduler import RepeatingTimer, Scheduler, ThreadScheduler, wall_clock_ms
from eonta_capture.recorder import (
    CompositionGenerator,
    PathRecorder,
    StopOutcome,
    StopResult,
)

__all__ = [
    # Config
    "CaptureSettings",
    # Schemas
    "AudioSnapshot",
    "PathRecording",
    "PathValidation",
    "Position",
    "RegionAudioState",
    "format_duration",
    # Location
    "LocationError",
    "LocationErrorCode",
    "LocationFix",
    "LocationHub",
    "LocationProvider",
    "Subscription",
    # Scheduling
    "RepeatingTimer",
    "Scheduler",
    "ThreadScheduler",
    "wall_clock_ms",
    # Recorder
    "CompositionGenerator",
    "PathRecorder",
    "StopOutcome",
    "StopResult",
]
