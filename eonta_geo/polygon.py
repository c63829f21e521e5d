"""
Polygon Operations Module
=========================

Stateless polygon queries over sanitized vertex rings.

Design:
- Pure functions (no state, never raise)
- Vertices handled as Nx2 numpy arrays of (lat, lng)
- Rings are implicitly closed (last vertex connects to first)
- Sentinels: False, math.inf, empty list

Known limitations:
- distance_to_segment is a flat-plane approximation with a latitude
  correction, not a geodesic distance.
- expand_polygon scales vertices radially from the centroid; it is not a
  true offset buffer for concave shapes.
"""

import math
import numbers
from typing import Any, List

import numpy as np

from eonta_geo.coordinates import (
    DEG_TO_RAD,
    EXPANSION_METERS_PER_DEGREE,
    METERS_PER_DEGREE,
    GeoPoint,
    Projection,
    points_to_array,
    sanitize_points,
    to_point,
)


DEFAULT_TOLERANCE = 0.00001  # meters under GEOGRAPHIC, input units under PLANAR
MIN_TOLERANCE = 0.000001
MAX_EXPANSION_M = 10_000.0


def _segment_distances(p_lat, p_lng, a_lat, a_lng, b_lat, b_lng, projection: Projection) -> np.ndarray:
    """
    Point-to-segment distances, broadcast over numpy arrays.

    Projects in (lng, lat) space and clamps the projection parameter to
    [0, 1]. Degenerate segments measure to their start vertex.
    """
    p_lat, p_lng, a_lat, a_lng, b_lat, b_lng = (
        np.asarray(v, dtype=np.float64) for v in (p_lat, p_lng, a_lat, a_lng, b_lat, b_lng)
    )
    c = b_lng - a_lng
    d = b_lat - a_lat
    len_sq = c * c + d * d
    dot = (p_lng - a_lng) * c + (p_lat - a_lat) * d

    with np.errstate(divide='ignore', invalid='ignore'):
        t = np.where(len_sq > 0.0, dot / len_sq, 0.0)
    t = np.clip(t, 0.0, 1.0)

    near_lng = a_lng + t * c
    near_lat = a_lat + t * d
    planar = np.hypot(p_lng - near_lng, p_lat - near_lat)

    if projection == Projection.PLANAR:
        return planar

    lat_factor = np.cos((a_lat + b_lat) / 2.0 * DEG_TO_RAD)
    lat_factor = np.where(lat_factor == 0.0, 0.5, lat_factor)
    return planar * METERS_PER_DEGREE * (1.0 + lat_factor) / 2.0


def _ring(polygon: Any, projection: Projection) -> np.ndarray:
    return points_to_array(sanitize_points(polygon, projection))


def distance_to_segment(
    point: Any,
    a: Any,
    b: Any,
    projection: Projection = Projection.GEOGRAPHIC
) -> float:
    """
    Distance from a point to segment [a, b].

    Args:
        point: Query point
        a: Segment start
        b: Segment end
        projection: GEOGRAPHIC (meters) or PLANAR (input units)

    Returns:
        Distance, or math.inf for invalid input
    """
    p = to_point(point, projection)
    start = to_point(a, projection)
    end = to_point(b, projection)
    if p is None or start is None or end is None:
        return math.inf

    distance = _segment_distances(
        p.lat, p.lng, start.lat, start.lng, end.lat, end.lng, projection
    )
    return float(distance)


def point_in_polygon(
    point: Any,
    polygon: Any,
    projection: Projection = Projection.GEOGRAPHIC
) -> bool:
    """
    Ray-casting parity test over an implicitly closed ring.

    Points exactly on an edge get whatever the parity test yields; the
    answer is consistent for a given input but not special-cased.

    Returns:
        True if inside, False if outside or input is invalid
    """
    p = to_point(point, projection)
    if p is None:
        return False

    ring = _ring(polygon, projection)
    if len(ring) < 3:
        return False
    return _contains(p, ring)


def _contains(p: GeoPoint, ring: np.ndarray) -> bool:
    yi, xi = ring[:, 0], ring[:, 1]
    yj, xj = np.roll(yi, 1), np.roll(xi, 1)

    straddles = (yi > p.lat) != (yj > p.lat)
    with np.errstate(divide='ignore', invalid='ignore'):
        x_cross = (xj - xi) * (p.lat - yi) / (yj - yi) + xi
    crossings = np.count_nonzero(straddles & (p.lng < x_cross))

    return bool(crossings % 2 == 1)


def distance_to_boundary_edge(
    point: Any,
    polygon: Any,
    projection: Projection = Projection.GEOGRAPHIC
) -> float:
    """
    Signed distance to the nearest polygon edge.

    Magnitude is the minimum over edges of distance_to_segment; the sign
    is negative inside the polygon and positive outside.

    Returns:
        Signed distance, or math.inf for invalid input
    """
    p = to_point(point, projection)
    if p is None:
        return math.inf

    ring = _ring(polygon, projection)
    if len(ring) < 3:
        return math.inf

    ends = np.roll(ring, -1, axis=0)
    nearest = float(np.min(_segment_distances(
        p.lat, p.lng, ring[:, 0], ring[:, 1], ends[:, 0], ends[:, 1], projection
    )))
    if _contains(p, ring):
        return -nearest
    return nearest


def ring_to_points(ring: np.ndarray) -> List[GeoPoint]:
    """Inverse of points_to_array."""
    return [GeoPoint(lat=float(lat), lng=float(lng)) for lat, lng in ring]


def simplify_polygon(
    points: Any,
    tolerance: float = DEFAULT_TOLERANCE,
    projection: Projection = Projection.GEOGRAPHIC
) -> List[GeoPoint]:
    """
    Douglas-Peucker simplification.

    Always keeps the first and last point. A point is kept when it is the
    furthest from the current chord and its deviation exceeds
    ``tolerance``; both halves are then simplified in turn.

    Args:
        points: Vertex sequence
        tolerance: Maximum deviation in meters (input units when PLANAR).
            The default of 1e-5 m only removes near-collinear vertices;
            pass e.g. 1.0 to thin a GPS path to meter scale
        projection: Distance interpretation

    Returns:
        Simplified vertex list (empty for invalid input)
    """
    valid = sanitize_points(points, projection)
    if len(valid) <= 2:
        return valid

    if not isinstance(tolerance, numbers.Real) or not math.isfinite(tolerance):
        tolerance = DEFAULT_TOLERANCE
    tolerance = max(MIN_TOLERANCE, float(tolerance))

    ring = points_to_array(valid)
    keep = np.zeros(len(ring), dtype=bool)
    keep[0] = keep[-1] = True

    # (start, end) index pairs still to split
    pending = [(0, len(ring) - 1)]
    while pending:
        start, end = pending.pop()
        if end - start < 2:
            continue

        interior = ring[start + 1:end]
        deviations = _segment_distances(
            interior[:, 0], interior[:, 1],
            ring[start, 0], ring[start, 1],
            ring[end, 0], ring[end, 1],
            projection
        )

        offset = int(np.argmax(deviations))
        if deviations[offset] > tolerance:
            split = start + 1 + offset
            keep[split] = True
            pending.append((split, end))
            pending.append((start, split))

    return [point for point, kept in zip(valid, keep) if kept]


def expand_polygon(
    polygon: Any,
    distance_m: Any,
    projection: Projection = Projection.GEOGRAPHIC
) -> List[GeoPoint]:
    """
    Push each vertex away from the centroid by ``distance_m``.

    The distance is clamped to [0, 10000] meters. Geographic input converts
    meters with 111 km per degree and widens the longitude step by
    1 / cos(latitude).

    Returns:
        Expanded vertex list (empty for invalid input)
    """
    if (
        not isinstance(distance_m, numbers.Real)
        or isinstance(distance_m, bool)
        or not math.isfinite(distance_m)
    ):
        return []

    ring = _ring(polygon, projection)
    if len(ring) < 3:
        return []

    distance = min(MAX_EXPANSION_M, max(0.0, float(distance_m)))
    center = ring.mean(axis=0)

    offsets = ring - center
    lengths = np.hypot(offsets[:, 0], offsets[:, 1])
    with np.errstate(divide='ignore', invalid='ignore'):
        unit = np.where(lengths[:, None] > 0.0, offsets / lengths[:, None], 0.0)

    if projection == Projection.PLANAR:
        return ring_to_points(ring + unit * distance)

    step_deg = distance / EXPANSION_METERS_PER_DEGREE
    lat_factor = np.cos(ring[:, 0] * DEG_TO_RAD)
    lat_factor = np.where(lat_factor == 0.0, 0.5, lat_factor)

    expanded = np.empty_like(ring)
    expanded[:, 0] = np.clip(ring[:, 0] + unit[:, 0] * step_deg, -90.0, 90.0)
    expanded[:, 1] = np.clip(ring[:, 1] + unit[:, 1] * step_deg / lat_factor, -180.0, 180.0)
    return ring_to_points(expanded)
