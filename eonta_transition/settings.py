"""
Transition Settings
===================

Immutable per-region transition configuration.

Design:
- Frozen dataclasses validated in __post_init__ (ValueError on bad input)
- ParameterRange.start is the value fully inside a region (progress = 1),
  ParameterRange.end the value at the outer edge of the band (progress = 0)
- create_transition_settings() merges overrides over the defaults; advanced
  settings merge per effect and per range bound, so partial overrides never
  drop nested values
"""

import math
from dataclasses import dataclass, field, fields, asdict
from enum import Enum
from typing import Any, Dict, Mapping, Optional


class TransitionType(str, Enum):
    """Closed set of transition shapes a region can use."""
    VOLUME_FADE = "volume_fade"          # volume only
    LOWPASS_FILTER = "lowpass_filter"    # muffled outside, open inside
    HIGHPASS_FILTER = "highpass_filter"  # thin outside, full inside
    REVERB_TAIL = "reverb_tail"          # wetter towards the edge
    PITCH_SHIFT = "pitch_shift"
    DELAY_FEEDBACK = "delay_feedback"
    CROSSFADE = "crossfade"              # volume only, shared with neighbours
    DOPPLER = "doppler"                  # pitch + playback rate
    SPATIAL_BLEND = "spatial_blend"      # stereo pan


@dataclass(frozen=True)
class ParameterRange:
    """
    Linear parameter range driven by transition progress.

    Attributes:
        start: Value at progress 1 (inside the region)
        end: Value at progress 0 (outer edge of the transition band)
    """
    start: float
    end: float

    def __post_init__(self):
        for name in ('start', 'end'):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
                raise ValueError(f"ParameterRange.{name} must be a finite number, got {value!r}")

    def at(self, progress: float) -> float:
        """Interpolate from ``end`` (progress 0) to ``start`` (progress 1)."""
        return self.end + progress * (self.start - self.end)

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], base: Optional['ParameterRange'] = None) -> 'ParameterRange':
        """
        Build a range from a mapping, filling missing bounds from ``base``.

        Raises:
            ValueError: If a bound is missing with no base, or not numeric
        """
        if not isinstance(data, Mapping):
            raise ValueError(f"ParameterRange must be a mapping, got {type(data).__name__}")
        try:
            start = data['start'] if 'start' in data else base.start
            end = data['end'] if 'end' in data else base.end
        except AttributeError:
            raise ValueError(f"ParameterRange requires 'start' and 'end', got {dict(data)}")
        return cls(start=start, end=end)


@dataclass(frozen=True)
class AdvancedSettings:
    """Per-effect parameter ranges."""

    lowpass_frequency: ParameterRange = ParameterRange(start=20000.0, end=500.0)    # Hz
    highpass_frequency: ParameterRange = ParameterRange(start=20.0, end=2000.0)     # Hz
    reverb_mix: ParameterRange = ParameterRange(start=0.1, end=0.7)                 # dry/wet
    reverb_decay: ParameterRange = ParameterRange(start=1.0, end=3.0)               # seconds
    delay_feedback: ParameterRange = ParameterRange(start=0.1, end=0.7)
    delay_time: ParameterRange = ParameterRange(start=0.25, end=0.5)                # seconds
    pitch_shift: ParameterRange = ParameterRange(start=0.0, end=-4.0)               # semitones
    spatial_position: ParameterRange = ParameterRange(start=0.0, end=1.0)           # pan

    def to_dict(self) -> Dict[str, Dict[str, float]]:
        return {f.name: getattr(self, f.name).to_dict() for f in fields(self)}

    def merged(self, overrides: Optional[Mapping[str, Any]]) -> 'AdvancedSettings':
        """
        Return a copy with ``overrides`` applied per effect.

        Raises:
            ValueError: On unknown effect names or invalid ranges
        """
        if not overrides:
            return self
        if not isinstance(overrides, Mapping):
            raise ValueError(f"advanced_settings must be a mapping, got {type(overrides).__name__}")

        known = {f.name for f in fields(self)}
        unknown = set(overrides) - known
        if unknown:
            raise ValueError(f"Unknown advanced settings: {sorted(unknown)}")

        updated = {}
        for name, value in overrides.items():
            current = getattr(self, name)
            updated[name] = value if isinstance(value, ParameterRange) else ParameterRange.from_dict(value, base=current)
        return AdvancedSettings(**{f.name: updated.get(f.name, getattr(self, f.name)) for f in fields(self)})


@dataclass(frozen=True)
class TransitionSettings:
    """
    How a region fades in, fades out and blends with its neighbours.

    Attributes:
        fade_in_length: Fade-in duration (seconds)
        fade_out_length: Fade-out duration (seconds)
        fade_in_type: Transition shape while entering / inside
        fade_out_type: Transition shape applied on exit
        transition_radius: Width of the band outside the polygon (meters)
        blending_enabled: Ramp volume across the band (False: full volume
            as soon as the band is entered)
        crossfade_overlap: Take part in crossfades with other active regions
        advanced_settings: Effect parameter ranges
    """

    fade_in_length: float = 1.5
    fade_out_length: float = 2.0
    fade_in_type: TransitionType = TransitionType.VOLUME_FADE
    fade_out_type: TransitionType = TransitionType.VOLUME_FADE
    transition_radius: float = 10.0
    blending_enabled: bool = True
    crossfade_overlap: bool = True
    advanced_settings: AdvancedSettings = field(default_factory=AdvancedSettings)

    def __post_init__(self):
        """Validate transition settings."""
        for name in ('fade_in_length', 'fade_out_length', 'transition_radius'):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
                raise ValueError(f"{name} must be a finite number, got {value!r}")
            if value < 0:
                raise ValueError(f"{name} must be >= 0, got {value}")

        for name in ('blending_enabled', 'crossfade_overlap'):
            if not isinstance(getattr(self, name), bool):
                raise ValueError(f"{name} must be a bool, got {getattr(self, name)!r}")

        for name in ('fade_in_type', 'fade_out_type'):
            if not isinstance(getattr(self, name), TransitionType):
                raise ValueError(
                    f"{name} must be a TransitionType, got {getattr(self, name)!r}"
                )

        if not isinstance(self.advanced_settings, AdvancedSettings):
            raise ValueError("advanced_settings must be an AdvancedSettings instance")

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to JSON-compatible dict."""
        return {
            'fade_in_length': self.fade_in_length,
            'fade_out_length': self.fade_out_length,
            'fade_in_type': self.fade_in_type.value,
            'fade_out_type': self.fade_out_type.value,
            'transition_radius': self.transition_radius,
            'blending_enabled': self.blending_enabled,
            'crossfade_overlap': self.crossfade_overlap,
            'advanced_settings': self.advanced_settings.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> 'TransitionSettings':
        """Deserialize from dict (missing keys take the defaults)."""
        return create_transition_settings(data)


DEFAULT_TRANSITION_SETTINGS = TransitionSettings()

_SCALAR_KEYS = (
    'fade_in_length',
    'fade_out_length',
    'transition_radius',
    'blending_enabled',
    'crossfade_overlap',
)


def create_transition_settings(
    overrides: Optional[Mapping[str, Any]] = None,
    base: TransitionSettings = DEFAULT_TRANSITION_SETTINGS
) -> TransitionSettings:
    """
    Merge ``overrides`` over ``base``.

    Args:
        overrides: Partial settings (snake_case keys); enum values may be
            given as their string tags
        base: Settings to merge over (default: the stock defaults)

    Returns:
        New TransitionSettings

    Raises:
        ValueError: On unknown keys or invalid values

    Example:
        >>> settings = create_transition_settings({
        ...     'fade_in_type': 'lowpass_filter',
        ...     'advanced_settings': {'lowpass_frequency': {'end': 800}},
        ... })
        >>> settings.advanced_settings.lowpass_frequency
        ParameterRange(start=20000.0, end=800)
    """
    if not overrides:
        return base
    if not isinstance(overrides, Mapping):
        raise ValueError(f"Transition settings must be a mapping, got {type(overrides).__name__}")

    known = set(_SCALAR_KEYS) | {'fade_in_type', 'fade_out_type', 'advanced_settings'}
    unknown = set(overrides) - known
    if unknown:
        raise ValueError(f"Unknown transition settings: {sorted(unknown)}")

    merged: Dict[str, Any] = {key: getattr(base, key) for key in _SCALAR_KEYS}
    merged.update({key: overrides[key] for key in _SCALAR_KEYS if key in overrides})

    for key in ('fade_in_type', 'fade_out_type'):
        value = overrides.get(key, getattr(base, key))
        try:
            merged[key] = TransitionType(value)
        except ValueError:
            raise ValueError(
                f"Invalid {key}: {value!r}. "
                f"Must be one of {[t.value for t in TransitionType]}"
            )

    merged['advanced_settings'] = base.advanced_settings.merged(overrides.get('advanced_settings'))
    return TransitionSettings(**merged)
