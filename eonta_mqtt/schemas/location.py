"""
Location Message Schemas
========================

Bounded Context: Location Provider -> Listener Session

Position fixes and categorized provider errors.

Design:
- LocationFix carries the provider's own timestamp; the recorder stamps
  its own capture-clock time on top
- LocationErrorCode accepts both string tags and the W3C numeric codes
  (1 = permission denied, 2 = unavailable, 3 = timeout)
- Coordinates are only checked for being finite here; range checks
  depend on the session projection and happen downstream
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class LocationErrorCode(str, Enum):
    """Categorized location failures."""
    PERMISSION_DENIED = "permission_denied"
    POSITION_UNAVAILABLE = "position_unavailable"
    TIMEOUT = "timeout"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, raw: Any) -> 'LocationErrorCode':
        """Map a wire code (string tag or W3C number) to a member; anything else is UNKNOWN."""
        if isinstance(raw, bool):
            return cls.UNKNOWN
        if isinstance(raw, int):
            return _NUMERIC_CODES.get(raw, cls.UNKNOWN)
        if isinstance(raw, str):
            try:
                return cls(raw.lower())
            except ValueError:
                return cls.UNKNOWN
        return cls.UNKNOWN


_NUMERIC_CODES = {
    1: LocationErrorCode.PERMISSION_DENIED,
    2: LocationErrorCode.POSITION_UNAVAILABLE,
    3: LocationErrorCode.TIMEOUT,
}

USER_MESSAGES = {
    LocationErrorCode.PERMISSION_DENIED: (
        "Location permission denied. Please enable location services to record your path."
    ),
    LocationErrorCode.POSITION_UNAVAILABLE: (
        "Location information is unavailable. Please try again in an open area."
    ),
    LocationErrorCode.TIMEOUT: (
        "Location request timed out. Please check your connection and try again."
    ),
    LocationErrorCode.UNKNOWN: (
        "Unknown error occurred while tracking your location."
    ),
}


def _finite(value: Any, name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        raise ValueError(f"{name} must be a finite number, got {value!r}")
    return float(value)


@dataclass(frozen=True)
class LocationFix:
    """
    One position fix from a location provider.

    Attributes:
        lat: Latitude (or northing under a planar projection)
        lng: Longitude (or easting)
        accuracy: Horizontal accuracy (meters)
        timestamp: Provider timestamp (Unix epoch ms)
        altitude: Altitude (meters), if known
    """
    lat: float
    lng: float
    accuracy: float
    timestamp: float
    altitude: Optional[float] = None

    def __post_init__(self):
        """Validate invariants."""
        _finite(self.lat, 'lat')
        _finite(self.lng, 'lng')
        if _finite(self.accuracy, 'accuracy') < 0:
            raise ValueError(f"accuracy must be >= 0, got {self.accuracy}")
        _finite(self.timestamp, 'timestamp')
        if self.altitude is not None:
            _finite(self.altitude, 'altitude')

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to JSON-compatible dict."""
        result = {
            'lat': self.lat,
            'lng': self.lng,
            'accuracy': self.accuracy,
            'timestamp': self.timestamp,
        }
        if self.altitude is not None:
            result['altitude'] = self.altitude
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'LocationFix':
        """Deserialize from dict.

        Raises:
            ValueError: If required fields missing or invalid
        """
        try:
            return cls(
                lat=data['lat'],
                lng=data['lng'],
                accuracy=data['accuracy'],
                timestamp=data['timestamp'],
                altitude=data.get('altitude'),
            )
        except KeyError as e:
            raise ValueError(f"Missing required LocationFix field: {e}")
        except (TypeError, AttributeError) as e:
            raise ValueError(f"Invalid LocationFix data: {e}")


@dataclass(frozen=True)
class LocationError:
    """
    A categorized location failure.

    Attributes:
        code: Error category
        detail: Provider's own message, if any
    """
    code: LocationErrorCode
    detail: Optional[str] = None

    @property
    def user_message(self) -> str:
        """Message suitable for showing to the listener."""
        return USER_MESSAGES[self.code]

    def to_dict(self) -> Dict[str, Any]:
        result = {'code': self.code.value}
        if self.detail:
            result['message'] = self.detail
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'LocationError':
        """Deserialize from dict.

        Raises:
            ValueError: If the code field is missing
        """
        try:
            code = LocationErrorCode.parse(data['code'])
        except KeyError as e:
            raise ValueError(f"Missing required LocationError field: {e}")
        except TypeError as e:
            raise ValueError(f"Invalid LocationError data: {e}")
        detail = data.get('message')
        return cls(code=code, detail=str(detail) if detail is not None else None)
