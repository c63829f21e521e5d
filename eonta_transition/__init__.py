"""
EONTA Transition Engine
=======================

Bounded Context: Position-driven audio automation.

Architecture:

    eonta_transition/
    ├── settings.py   # TransitionType, ParameterRange, TransitionSettings (immutable)
    ├── region.py     # AudioRegion (immutable)
    ├── effects.py    # entry_progress, interpolate, parameter clamps (pure)
    ├── state.py      # ActiveRegionState, RegionStateTracker (stateful)
    ├── sink.py       # AudioSink protocol, MqttAudioSink
    └── engine.py     # TransitionEngine (orchestration)

Usage:

    from eonta_transition import AudioRegion, TransitionEngine, create_transition_settings

    region = AudioRegion.from_dict({
        'id': 'plaza',
        'polygon': [[40.4160, -3.7045], [40.4160, -3.7030], [40.4175, -3.7030]],
        'audio_ref': 'https://audio.example/plaza.mp3',
        'settings': {'fade_in_type': 'lowpass_filter'},
    })

    engine = TransitionEngine([region], sink=audio_sink)
    engine.update({'lat': 40.4165, 'lng': -3.7035})
"""

from eonta_transition.settings import (
    DEFAULT_TRANSITION_SETTINGS,
    AdvancedSettings,
    ParameterRange,
    TransitionSettings,
    TransitionType,
    create_transition_settings,
)
from eonta_transition.region import AudioRegion
from eonta_transition.effects import (
    EffectParameters,
    entry_progress,
    interpolate,
    validate_delay_time,
    validate_frequency,
)
from eonta_transition.state import ActiveRegionState, RegionEdge, RegionStateTracker
from eonta_transition.sink import AudioSink, MqttAudioSink
from eonta_transition.engine import PROGRESS_EPSILON, TickResult, TransitionEngine

__all__ = [
    # Settings
    "DEFAULT_TRANSITION_SETTINGS",
    "AdvancedSettings",
    "ParameterRange",
    "TransitionSettings",
    "TransitionType",
    "create_transition_settings",
    # Region
    "AudioRegion",
    # Effects
    "EffectParameters",
    "entry_progress",
    "interpolate",
    "validate_delay_time",
    "validate_frequency",
    # State
    "ActiveRegionState",
    "RegionEdge",
    "RegionStateTracker",
    # Sink
    "AudioSink",
    "MqttAudioSink",
    # Engine
    "PROGRESS_EPSILON",
    "TickResult",
    "TransitionEngine",
]

__version__ = "1.0.0"
