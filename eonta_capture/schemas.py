"""
Capture Schemas
===============

Immutable records produced by the PathRecorder.

Design:
- Frozen dataclasses; PathRecording is never mutated after hand-off
- Wire layout (to_dict/from_dict) uses the camelCase keys the
  composition generator consumes:
  {compositionId, path, audioEvents, duration, startTime, endTime}
- from_dict raises ValueError for missing or invalid fields
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from eonta_geo import Projection, distance_between, is_valid_coordinate


@dataclass(frozen=True)
class Position:
    """
    One recorded path vertex.

    Attributes:
        lat: Latitude
        lng: Longitude
        accuracy: Horizontal accuracy (meters)
        timestamp: Capture-clock time (epoch ms); non-decreasing per recording
        time_since_start: Milliseconds since the recording started
        altitude: Altitude (meters), if the provider reported one
        fix_timestamp: Provider's own timestamp (epoch ms)
    """
    lat: float
    lng: float
    accuracy: float
    timestamp: float
    time_since_start: float
    altitude: Optional[float] = None
    fix_timestamp: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        result = {
            'lat': self.lat,
            'lng': self.lng,
            'accuracy': self.accuracy,
            'timestamp': self.timestamp,
            'timeSinceStart': self.time_since_start,
        }
        if self.altitude is not None:
            result['alt'] = self.altitude
        if self.fix_timestamp is not None:
            result['fixTimestamp'] = self.fix_timestamp
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Position':
        try:
            return cls(
                lat=float(data['lat']),
                lng=float(data['lng']),
                accuracy=float(data.get('accuracy', 0.0)),
                timestamp=float(data['timestamp']),
                time_since_start=float(data.get('timeSinceStart', 0.0)),
                altitude=data.get('alt'),
                fix_timestamp=data.get('fixTimestamp'),
            )
        except KeyError as e:
            raise ValueError(f"Missing required Position field: {e}")
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid Position data: {e}")


@dataclass(frozen=True)
class RegionAudioState:
    """One playing region inside an AudioSnapshot."""
    region_id: str
    volume: float
    effects: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {'regionId': self.region_id, 'volume': self.volume, 'effects': dict(self.effects)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RegionAudioState':
        try:
            return cls(
                region_id=str(data['regionId']),
                volume=float(data.get('volume', 0.0)),
                effects=dict(data.get('effects') or {}),
            )
        except KeyError as e:
            raise ValueError(f"Missing required RegionAudioState field: {e}")
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid RegionAudioState data: {e}")


@dataclass(frozen=True)
class AudioSnapshot:
    """Audio sink state at one instant of a recording."""
    timestamp: float
    time_since_start: float
    active_regions: Tuple[RegionAudioState, ...] = ()

    @property
    def region_ids(self) -> List[str]:
        return [r.region_id for r in self.active_regions]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'timestamp': self.timestamp,
            'timeSinceStart': self.time_since_start,
            'activeRegions': [r.to_dict() for r in self.active_regions],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AudioSnapshot':
        try:
            return cls(
                timestamp=float(data['timestamp']),
                time_since_start=float(data.get('timeSinceStart', 0.0)),
                active_regions=tuple(
                    RegionAudioState.from_dict(r) for r in data.get('activeRegions', [])
                ),
            )
        except KeyError as e:
            raise ValueError(f"Missing required AudioSnapshot field: {e}")
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid AudioSnapshot data: {e}")


@dataclass(frozen=True)
class PathValidation:
    valid: bool
    message: str = ""


@dataclass(frozen=True)
class PathRecording:
    """
    A finalized listener walk.

    Attributes:
        composition_id: Composition the listener was experiencing
        path: Recorded vertices in arrival order
        audio_events: Audio snapshots in capture order
        start_time: Recording start (epoch ms)
        end_time: Recording end (epoch ms)
        duration: end_time - start_time (ms)
    """
    composition_id: str
    path: Tuple[Position, ...]
    audio_events: Tuple[AudioSnapshot, ...]
    start_time: float
    end_time: float
    duration: float

    def __post_init__(self):
        """Validate invariants."""
        if not isinstance(self.composition_id, str) or not self.composition_id:
            raise ValueError("composition_id cannot be empty")
        if self.end_time < self.start_time:
            raise ValueError(
                f"end_time ({self.end_time}) must be >= start_time ({self.start_time})"
            )
        if self.duration < 0:
            raise ValueError(f"duration must be >= 0, got {self.duration}")

    @property
    def point_count(self) -> int:
        return len(self.path)

    def total_distance(self, projection: Projection = Projection.GEOGRAPHIC) -> float:
        """Sum of the Haversine legs along the path (meters)."""
        if len(self.path) < 2:
            return 0.0
        return sum(
            distance_between(a, b, projection)
            for a, b in zip(self.path, self.path[1:])
        )

    def average_speed(self, projection: Projection = Projection.GEOGRAPHIC) -> float:
        """Meters per second over the whole recording (0 for zero duration)."""
        if self.duration <= 0:
            return 0.0
        return self.total_distance(projection) / (self.duration / 1000.0)

    def unique_regions_visited(self) -> int:
        """Distinct region ids heard in any snapshot."""
        return len({rid for event in self.audio_events for rid in event.region_ids})

    def validate_path(self) -> PathValidation:
        """Check the path is usable for composition generation."""
        if len(self.path) < 2:
            return PathValidation(False, "Path must contain at least 2 points")
        for point in self.path:
            if not is_valid_coordinate(point.lat, point.lng):
                return PathValidation(
                    False, f"Invalid coordinates: lat={point.lat}, lng={point.lng}"
                )
        return PathValidation(True)

    def stats(self, projection: Projection = Projection.GEOGRAPHIC) -> Dict[str, Any]:
        return {
            'points': self.point_count,
            'audio_events': len(self.audio_events),
            'duration_ms': self.duration,
            'total_distance_m': self.total_distance(projection),
            'average_speed_mps': self.average_speed(projection),
            'unique_regions_visited': self.unique_regions_visited(),
        }

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the wire layout."""
        return {
            'compositionId': self.composition_id,
            'path': [p.to_dict() for p in self.path],
            'audioEvents': [e.to_dict() for e in self.audio_events],
            'duration': self.duration,
            'startTime': self.start_time,
            'endTime': self.end_time,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PathRecording':
        """Deserialize from the wire layout.

        Raises:
            ValueError: If required fields missing or invalid
        """
        try:
            return cls(
                composition_id=data['compositionId'],
                path=tuple(Position.from_dict(p) for p in data['path']),
                audio_events=tuple(AudioSnapshot.from_dict(e) for e in data.get('audioEvents', [])),
                start_time=float(data['startTime']),
                end_time=float(data['endTime']),
                duration=float(data['duration']),
            )
        except KeyError as e:
            raise ValueError(f"Missing required PathRecording field: {e}")
        except (TypeError, AttributeError) as e:
            raise ValueError(f"Invalid PathRecording data: {e}")


def format_duration(duration_ms: float) -> str:
    """Format milliseconds as H:MM:SS (or M:SS under an hour)."""
    total_seconds = int(max(0.0, duration_ms) // 1000)
    hours, remainder = divmod(total_seconds, 3600)
    minutes, seconds = divmod(remainder, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{seconds:02d}"
    return f"{minutes}:{seconds:02d}"
