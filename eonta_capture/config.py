"""
Capture settings for the PathRecorder.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class CaptureSettings:
    """
    Path recording tunables.

    Attributes:
        capture_interval_ms: Period of the audio snapshot timer
        min_distance_m: Minimum spacing between recorded path points
        max_duration_ms: Recording auto-stops (and submits) after this
        include_audio_snapshot: Snapshot the audio sink on fixes and timer ticks
    """

    capture_interval_ms: int = 1000
    min_distance_m: float = 2.0
    max_duration_ms: int = 3_600_000  # 1 hour
    include_audio_snapshot: bool = True

    def __post_init__(self):
        """Validate capture settings."""
        if not 50 <= self.capture_interval_ms <= 60_000:
            raise ValueError(
                f"capture_interval_ms must be in [50, 60000], got {self.capture_interval_ms}"
            )

        if self.min_distance_m < 0:
            raise ValueError(
                f"min_distance_m must be >= 0, got {self.min_distance_m}"
            )

        if self.max_duration_ms <= 0:
            raise ValueError(
                f"max_duration_ms must be > 0, got {self.max_duration_ms}"
            )

        if not isinstance(self.include_audio_snapshot, bool):
            raise ValueError(
                f"include_audio_snapshot must be a bool, got {self.include_audio_snapshot!r}"
            )

    @property
    def capture_interval_s(self) -> float:
        return self.capture_interval_ms / 1000.0
