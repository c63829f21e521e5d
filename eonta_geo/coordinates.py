"""
Coordinate Primitives
=====================

Pure coordinate handling - NO state, NO side effects.

Design:
- Immutable points (frozen dataclass pattern)
- Lenient coercion: GeoPoint, objects with lat/lng, mappings, (lat, lng) pairs
- Sentinels instead of exceptions (None, math.inf, empty lists)
- Two projections: GEOGRAPHIC (degrees) and PLANAR (local metric CRS)

Known limitation:
    Great-circle distances (Haversine) and edge distances (flat-plane with
    latitude correction) use different precision. Transition timing depends
    on both, so they are kept as they are rather than unified.
"""

import math
import numbers
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, List, Optional, Tuple

import numpy as np


EARTH_RADIUS_M = 6_371_000.0
DEG_TO_RAD = math.pi / 180.0
RAD_TO_DEG = 180.0 / math.pi
METERS_PER_DEGREE = EARTH_RADIUS_M * DEG_TO_RAD  # ~111 195 m
EXPANSION_METERS_PER_DEGREE = 111_000.0
MAX_POLYGON_POINTS = 1000
WEB_MERCATOR_EXTENT = 20037508.34


class Projection(str, Enum):
    """How polygon and point coordinates are interpreted."""
    GEOGRAPHIC = "geographic"  # lat/lng degrees, distances in meters
    PLANAR = "planar"          # already metric, distances are Euclidean


@dataclass(frozen=True)
class GeoPoint:
    """
    Immutable latitude/longitude pair in decimal degrees.

    Under Projection.PLANAR the same fields carry local metric
    coordinates (lat = northing, lng = easting).
    """

    lat: float
    lng: float

    def to_dict(self) -> dict:
        return {'lat': self.lat, 'lng': self.lng}

    def as_tuple(self) -> Tuple[float, float]:
        return (self.lat, self.lng)


def _is_real(value: Any) -> bool:
    return (
        isinstance(value, numbers.Real)
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


def is_valid_coordinate(lat: Any, lng: Any) -> bool:
    """
    Check that lat/lng are finite numbers inside the valid ranges.

    Returns:
        True if -90 <= lat <= 90 and -180 <= lng <= 180
    """
    return (
        _is_real(lat)
        and _is_real(lng)
        and -90.0 <= lat <= 90.0
        and -180.0 <= lng <= 180.0
    )


def is_valid_for(lat: Any, lng: Any, projection: Projection) -> bool:
    """Coordinate check for a projection (PLANAR only requires finiteness)."""
    if projection == Projection.PLANAR:
        return _is_real(lat) and _is_real(lng)
    return is_valid_coordinate(lat, lng)


def to_point(value: Any, projection: Projection = Projection.GEOGRAPHIC) -> Optional[GeoPoint]:
    """
    Coerce a point-like value into a validated GeoPoint.

    Accepts GeoPoint, any object exposing ``lat``/``lng``, a mapping with
    ``lat``/``lng`` keys, or a ``(lat, lng)`` sequence.

    Returns:
        GeoPoint, or None if the value is not a valid coordinate
    """
    if value is None:
        return None
    if isinstance(value, GeoPoint):
        lat, lng = value.lat, value.lng
    elif isinstance(value, dict):
        lat, lng = value.get('lat'), value.get('lng')
    elif hasattr(value, 'lat') and hasattr(value, 'lng'):
        lat, lng = getattr(value, 'lat'), getattr(value, 'lng')
    elif isinstance(value, (tuple, list)) and len(value) == 2:
        lat, lng = value[0], value[1]
    else:
        return None

    if not is_valid_for(lat, lng, projection):
        return None
    return GeoPoint(lat=float(lat), lng=float(lng))


def sanitize_points(
    points: Any,
    projection: Projection = Projection.GEOGRAPHIC
) -> List[GeoPoint]:
    """
    Truncate to MAX_POLYGON_POINTS and drop invalid entries.

    Oversized input is truncated rather than rejected so the real-time
    loop never stalls on a pathological polygon.
    """
    if points is None or isinstance(points, (str, bytes, dict)):
        return []
    try:
        head = list(points)[:MAX_POLYGON_POINTS]
    except TypeError:
        return []

    valid = []
    for raw in head:
        point = to_point(raw, projection)
        if point is not None:
            valid.append(point)
    return valid


def points_to_array(points: Iterable[GeoPoint]) -> np.ndarray:
    """Nx2 float array of (lat, lng) rows."""
    return np.array([[p.lat, p.lng] for p in points], dtype=np.float64).reshape(-1, 2)


def distance_between(
    p1: Any,
    p2: Any,
    projection: Projection = Projection.GEOGRAPHIC
) -> float:
    """
    Great-circle (Haversine) distance in meters.

    Symmetric and zero for identical points. Under PLANAR the distance
    is Euclidean in the input units.

    Returns:
        Distance, or math.inf if either point is invalid
    """
    a = to_point(p1, projection)
    b = to_point(p2, projection)
    if a is None or b is None:
        return math.inf

    if projection == Projection.PLANAR:
        return math.hypot(b.lat - a.lat, b.lng - a.lng)

    phi1 = a.lat * DEG_TO_RAD
    phi2 = b.lat * DEG_TO_RAD
    d_phi = (b.lat - a.lat) * DEG_TO_RAD
    d_lambda = (b.lng - a.lng) * DEG_TO_RAD

    h = math.sin(d_phi / 2.0) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2.0) ** 2
    # Rounding can push h a hair outside [0, 1] for antipodal points
    h = min(1.0, max(0.0, h))
    return EARTH_RADIUS_M * 2.0 * math.atan2(math.sqrt(h), math.sqrt(1.0 - h))


def degrees_to_meters(distance_deg: float, latitude: float) -> float:
    """
    Convert a planar degree distance to meters around ``latitude``.

    Averages the north-south and east-west scale, i.e.
    meters_per_degree * (1 + cos(lat)) / 2.
    """
    lat_factor = math.cos(latitude * DEG_TO_RAD)
    if lat_factor == 0.0:
        lat_factor = 0.5
    return distance_deg * METERS_PER_DEGREE * (1.0 + lat_factor) / 2.0


def polygon_center(
    points: Any,
    projection: Projection = Projection.GEOGRAPHIC
) -> Optional[GeoPoint]:
    """
    Vertex mean of a point sequence.

    Returns:
        GeoPoint, or None if there are no valid points
    """
    valid = sanitize_points(points, projection)
    if not valid:
        return None
    mean_lat, mean_lng = points_to_array(valid).mean(axis=0)
    return GeoPoint(lat=float(mean_lat), lng=float(mean_lng))


def geo_to_mercator(lat: Any, lng: Any) -> Tuple[float, float]:
    """
    Project lat/lng to Web Mercator meters.

    Returns:
        (x, y), or (0.0, 0.0) for invalid input
    """
    if not is_valid_coordinate(lat, lng):
        return (0.0, 0.0)

    # Poles map to infinity; pull them in to the Mercator limit
    clamped_lat = max(-85.05112878, min(85.05112878, lat))
    x = lng * WEB_MERCATOR_EXTENT / 180.0
    y = math.log(math.tan((90.0 + clamped_lat) * math.pi / 360.0)) / DEG_TO_RAD
    y = y * WEB_MERCATOR_EXTENT / 180.0
    return (x, y)


def mercator_to_geo(x: Any, y: Any) -> GeoPoint:
    """
    Inverse Web Mercator.

    Returns:
        GeoPoint clamped to the valid range, or GeoPoint(0, 0) for invalid input
    """
    if not (_is_real(x) and _is_real(y)):
        return GeoPoint(lat=0.0, lng=0.0)

    lng = x * 180.0 / WEB_MERCATOR_EXTENT
    lat = y * 180.0 / WEB_MERCATOR_EXTENT
    try:
        growth = math.exp(lat * DEG_TO_RAD)
    except OverflowError:
        growth = math.inf
    lat = RAD_TO_DEG * (2.0 * math.atan(growth) - math.pi / 2.0)

    return GeoPoint(
        lat=max(-90.0, min(90.0, lat)),
        lng=max(-180.0, min(180.0, lng)),
    )
