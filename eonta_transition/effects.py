"""
Transition Interpolation
========================

Maps a normalized progress value to audio parameters.

Design:
- Pure functions, no state
- One branch per TransitionType; an unhandled member raises ValueError
- Parameter safety clamps for the audio graph (frequency, delay time)

Progress convention:
    0.0 at the outer edge of the transition band, 1.0 once the listener is
    inside the polygon. Every range is walked from its ``end`` (outside) to
    its ``start`` (inside).
"""

import math
import numbers
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from eonta_transition.settings import AdvancedSettings, TransitionType


MIN_FREQUENCY = 20.0
MAX_FREQUENCY = 20000.0
DEFAULT_FREQUENCY = 1000.0

MIN_DELAY_TIME = 0.01
MAX_DELAY_TIME = 5.0
DEFAULT_DELAY_TIME = 0.3

VOLUME_ONLY_TYPES = frozenset({TransitionType.VOLUME_FADE, TransitionType.CROSSFADE})


@dataclass(frozen=True)
class EffectParameters:
    """
    One effect command for the audio sink.

    Attributes:
        effect_type: Sink-facing effect name ("lowpass", "reverb", ...)
        params: Effect parameter values
    """
    effect_type: str
    params: Dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {self.effect_type: dict(self.params)}


def _is_number(value: Any) -> bool:
    return (
        isinstance(value, numbers.Real)
        and not isinstance(value, bool)
        and not math.isnan(value)
    )


def validate_frequency(frequency: Any) -> float:
    """Clamp a filter frequency to [20, 20000] Hz; non-numbers become 1 kHz."""
    if not _is_number(frequency):
        return DEFAULT_FREQUENCY
    return max(MIN_FREQUENCY, min(MAX_FREQUENCY, float(frequency)))


def validate_delay_time(delay_time: Any) -> float:
    """Clamp a delay time to [0.01, 5] s; non-numbers become 0.3 s."""
    if not _is_number(delay_time):
        return DEFAULT_DELAY_TIME
    return max(MIN_DELAY_TIME, min(MAX_DELAY_TIME, float(delay_time)))


def entry_progress(distance: float, radius: float) -> float:
    """
    Normalized position inside the transition band.

    Args:
        distance: Signed distance to the region edge (negative inside)
        radius: Transition radius

    Returns:
        0.0 at ``distance == radius``, 1.0 for ``distance <= 0``; no-signal
        (NaN or infinite) distances give 0.0
    """
    if not _is_number(distance) or distance == math.inf:
        return 0.0
    if not _is_number(radius) or radius <= 0:
        return 1.0 if distance <= 0 else 0.0

    progress = (radius - max(distance, 0.0)) / radius
    return min(1.0, max(0.0, progress))


def semitones_to_rate(semitones: float) -> float:
    """Playback-rate multiplier for a pitch offset in semitones."""
    return 2.0 ** (semitones / 12.0)


def interpolate(
    transition_type: TransitionType,
    progress: float,
    advanced: AdvancedSettings
) -> Optional[EffectParameters]:
    """
    Effect parameters for ``transition_type`` at ``progress``.

    Args:
        transition_type: One of the nine TransitionType members
        progress: Value in [0, 1] (clamped)
        advanced: Parameter ranges

    Returns:
        EffectParameters, or None for volume-only types

    Raises:
        ValueError: If transition_type is not a TransitionType
    """
    transition_type = TransitionType(transition_type)
    p = min(1.0, max(0.0, float(progress))) if _is_number(progress) else 0.0

    if transition_type in VOLUME_ONLY_TYPES:
        return None

    if transition_type == TransitionType.LOWPASS_FILTER:
        return EffectParameters(
            effect_type="lowpass",
            params={'frequency': validate_frequency(advanced.lowpass_frequency.at(p))}
        )

    if transition_type == TransitionType.HIGHPASS_FILTER:
        return EffectParameters(
            effect_type="highpass",
            params={'frequency': validate_frequency(advanced.highpass_frequency.at(p))}
        )

    if transition_type == TransitionType.REVERB_TAIL:
        return EffectParameters(
            effect_type="reverb",
            params={
                'mix': min(1.0, max(0.0, advanced.reverb_mix.at(p))),
                'decay': max(0.0, advanced.reverb_decay.at(p)),
            }
        )

    if transition_type == TransitionType.PITCH_SHIFT:
        return EffectParameters(
            effect_type="pitch",
            params={'semitones': advanced.pitch_shift.at(p)}
        )

    if transition_type == TransitionType.DELAY_FEEDBACK:
        return EffectParameters(
            effect_type="delay",
            params={
                'feedback': min(0.95, max(0.0, advanced.delay_feedback.at(p))),
                'time': validate_delay_time(advanced.delay_time.at(p)),
            }
        )

    if transition_type == TransitionType.DOPPLER:
        semitones = advanced.pitch_shift.at(p)
        return EffectParameters(
            effect_type="doppler",
            params={'semitones': semitones, 'playback_rate': semitones_to_rate(semitones)}
        )

    if transition_type == TransitionType.SPATIAL_BLEND:
        return EffectParameters(
            effect_type="spatial",
            params={'pan': min(1.0, max(-1.0, advanced.spatial_position.at(p)))}
        )

    raise ValueError(f"Unhandled transition type: {transition_type!r}")
