"""
Audio Region
============

A geofenced polygon bound to a looping soundscape.

Design:
- Immutable (frozen dataclass); polygon stored as a tuple of GeoPoint
- Centroid is the vertex mean, computed once at construction
- from_dict() coerces raw config / wire data and raises ValueError
"""

import math
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple

from eonta_geo import GeoPoint, Projection, polygon_center, sanitize_points
from eonta_transition.settings import DEFAULT_TRANSITION_SETTINGS, TransitionSettings, create_transition_settings


@dataclass(frozen=True)
class AudioRegion:
    """
    Immutable audio region.

    Attributes:
        id: Region identifier
        polygon: Vertices (>= 3, implicitly closed)
        audio_ref: URL of the looping audio
        base_volume: Volume at full presence, in [0, 1]
        settings: Transition settings
        centroid: Vertex mean (computed when omitted)

    Example:
        >>> region = AudioRegion(
        ...     id="fountain",
        ...     polygon=(GeoPoint(0, 0), GeoPoint(0, 0.001), GeoPoint(0.001, 0.001)),
        ...     audio_ref="https://audio.example/fountain.mp3",
        ... )
    """
    id: str
    polygon: Tuple[GeoPoint, ...]
    audio_ref: str
    base_volume: float = 1.0
    settings: TransitionSettings = DEFAULT_TRANSITION_SETTINGS
    centroid: Optional[GeoPoint] = field(default=None, compare=False)

    def __post_init__(self):
        """Validate invariants."""
        if not isinstance(self.id, str) or not self.id:
            raise ValueError(f"Region id must be a non-empty string, got {self.id!r}")

        polygon = tuple(self.polygon)
        if len(polygon) < 3:
            raise ValueError(
                f"Region '{self.id}' polygon must have at least 3 points, got {len(polygon)}"
            )
        if not all(isinstance(p, GeoPoint) for p in polygon):
            raise ValueError(f"Region '{self.id}' polygon must contain GeoPoint vertices")
        object.__setattr__(self, 'polygon', polygon)

        if not isinstance(self.audio_ref, str) or not self.audio_ref:
            raise ValueError(f"Region '{self.id}' audio_ref cannot be empty")

        if (
            isinstance(self.base_volume, bool)
            or not isinstance(self.base_volume, (int, float))
            or not math.isfinite(self.base_volume)
            or not 0.0 <= self.base_volume <= 1.0
        ):
            raise ValueError(
                f"Region '{self.id}' base_volume must be in [0.0, 1.0], got {self.base_volume!r}"
            )

        if not isinstance(self.settings, TransitionSettings):
            raise ValueError(f"Region '{self.id}' settings must be TransitionSettings")

        if self.centroid is None:
            object.__setattr__(
                self, 'centroid', polygon_center(polygon, Projection.PLANAR)
            )

    @property
    def transition_radius(self) -> float:
        return self.settings.transition_radius

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to JSON-compatible dict."""
        return {
            'id': self.id,
            'polygon': [p.to_dict() for p in self.polygon],
            'centroid': self.centroid.to_dict(),
            'audio_ref': self.audio_ref,
            'base_volume': self.base_volume,
            'settings': self.settings.to_dict(),
        }

    @classmethod
    def from_dict(
        cls,
        data: Mapping[str, Any],
        projection: Projection = Projection.GEOGRAPHIC
    ) -> 'AudioRegion':
        """
        Deserialize from dict.

        Invalid vertices are dropped (and oversized polygons truncated)
        before the >= 3 point check.

        Raises:
            ValueError: If required fields missing or invalid
        """
        try:
            polygon = sanitize_points(data['polygon'], projection)
            return cls(
                id=data['id'],
                polygon=tuple(polygon),
                audio_ref=data['audio_ref'],
                base_volume=data.get('base_volume', 1.0),
                settings=create_transition_settings(data.get('settings')),
            )
        except KeyError as e:
            raise ValueError(f"Missing required AudioRegion field: {e}")
        except TypeError as e:
            raise ValueError(f"Invalid AudioRegion data: {e}")
