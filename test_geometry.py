"""
Geometry kernel tests (eonta_geo).

Usage:
    pytest test_geometry.py -v
"""

import math

import pytest

from eonta_geo import (
    MAX_POLYGON_POINTS,
    GeoPoint,
    Projection,
    degrees_to_meters,
    distance_between,
    distance_to_boundary_edge,
    distance_to_segment,
    expand_polygon,
    geo_to_mercator,
    mercator_to_geo,
    point_in_polygon,
    polygon_center,
    sanitize_points,
    simplify_polygon,
    to_point,
)
from eonta_geo.coordinates import METERS_PER_DEGREE

from conftest import square

PLANAR = Projection.PLANAR

# Concave "L" shape, planar units
L_SHAPE = [(0, 0), (0, 10), (4, 10), (4, 4), (10, 4), (10, 0)]


# ===== point_in_polygon / distance_to_boundary_edge =====

def test_square_center_is_inside_at_minus_five():
    """(5,5) in the 10x10 square: inside, signed distance -5."""
    sq = square(0, 0, 10)

    assert point_in_polygon((5, 5), sq, PLANAR) is True
    assert distance_to_boundary_edge((5, 5), sq, PLANAR) == pytest.approx(-5.0)


def test_point_outside_square_has_positive_distance():
    sq = square(0, 0, 10)

    assert point_in_polygon((15, 5), sq, PLANAR) is False
    assert distance_to_boundary_edge((15, 5), sq, PLANAR) == pytest.approx(5.0)
    # Nearest feature is a corner
    assert distance_to_boundary_edge((13, 14), sq, PLANAR) == pytest.approx(5.0)


def test_point_in_polygon_invariant_under_vertex_rotation():
    grid = [(x + 0.5, y + 0.5) for x in range(-2, 12) for y in range(-2, 12)]
    expected = [point_in_polygon(p, L_SHAPE, PLANAR) for p in grid]

    for shift in range(1, len(L_SHAPE)):
        rotated = L_SHAPE[shift:] + L_SHAPE[:shift]
        assert [point_in_polygon(p, rotated, PLANAR) for p in grid] == expected


def test_negative_distance_iff_inside():
    grid = [(x + 0.5, y + 0.5) for x in range(-3, 13) for y in range(-3, 13)]

    for p in grid:
        inside = point_in_polygon(p, L_SHAPE, PLANAR)
        distance = distance_to_boundary_edge(p, L_SHAPE, PLANAR)
        assert (distance < 0) == inside, p


def test_concave_notch_is_outside():
    assert point_in_polygon((7, 7), L_SHAPE, PLANAR) is False
    assert distance_to_boundary_edge((7, 7), L_SHAPE, PLANAR) == pytest.approx(3.0)


def test_geographic_distance_is_in_meters():
    # ~111 m square at the equator
    sq = square(0.0, 0.0, 0.001)
    center = (0.0005, 0.0005)

    assert point_in_polygon(center, sq) is True
    assert distance_to_boundary_edge(center, sq) == pytest.approx(-0.0005 * METERS_PER_DEGREE, rel=1e-3)


@pytest.mark.parametrize("point,polygon", [
    (None, square(0, 0, 10)),
    ((5, 5), [(0, 0), (0, 10)]),
    ((5, 5), None),
    ((5, 5), "not a polygon"),
    (("a", "b"), square(0, 0, 10)),
])
def test_invalid_input_uses_sentinels(point, polygon):
    assert point_in_polygon(point, polygon, PLANAR) is False
    assert distance_to_boundary_edge(point, polygon, PLANAR) == math.inf


def test_out_of_range_geographic_point_is_rejected():
    sq = square(0.0, 0.0, 0.001)

    assert point_in_polygon((200.0, 0.0), sq) is False
    assert distance_to_boundary_edge((0.0, 181.0), sq) == math.inf
    # Same coordinates are fine as planar coordinates
    assert to_point((200.0, 0.0), PLANAR) == GeoPoint(lat=200.0, lng=0.0)


def test_invalid_vertices_are_dropped():
    sq = square(0, 0, 10)
    noisy = [sq[0], (float('nan'), 1.0), sq[1], None, sq[2], "x", sq[3]]

    assert point_in_polygon((5, 5), noisy, PLANAR) is True
    assert distance_to_boundary_edge((5, 5), noisy, PLANAR) == pytest.approx(-5.0)


def test_oversized_polygon_is_truncated():
    points = [(i * 0.0001, 0.0) for i in range(MAX_POLYGON_POINTS + 500)]
    assert len(sanitize_points(points)) == MAX_POLYGON_POINTS


# ===== distance_to_segment =====

def test_distance_to_segment_planar():
    assert distance_to_segment((5, 5), (0, 0), (0, 10), PLANAR) == pytest.approx(5.0)
    # Beyond the end of the segment: distance to the endpoint
    assert distance_to_segment((0, 15), (0, 0), (0, 10), PLANAR) == pytest.approx(5.0)
    # Degenerate segment
    assert distance_to_segment((3, 4), (0, 0), (0, 0), PLANAR) == pytest.approx(5.0)


def test_distance_to_segment_geographic_and_invalid():
    d = distance_to_segment((0.001, 0.0005), (0.0, 0.0), (0.0, 0.001))
    assert d == pytest.approx(0.001 * METERS_PER_DEGREE, rel=1e-6)

    assert distance_to_segment((0.0, 0.0), None, (0.0, 1.0)) == math.inf


# ===== distance_between =====

def test_distance_between_haversine():
    a = GeoPoint(40.4168, -3.7038)
    b = GeoPoint(41.4168, -3.7038)

    assert distance_between(a, a) == 0.0
    assert distance_between(a, b) == pytest.approx(METERS_PER_DEGREE, rel=1e-6)
    assert distance_between(a, b) == distance_between(b, a)


def test_distance_between_planar_and_invalid():
    assert distance_between((0, 0), (3, 4), PLANAR) == pytest.approx(5.0)
    assert distance_between((0, 0), {'lat': 95, 'lng': 0}) == math.inf
    assert distance_between(None, (0, 0)) == math.inf


def test_degrees_to_meters_uses_latitude():
    assert degrees_to_meters(1.0, 0.0) == pytest.approx(METERS_PER_DEGREE)
    assert degrees_to_meters(1.0, 60.0) == pytest.approx(METERS_PER_DEGREE * 0.75)


# ===== simplify_polygon =====

def test_collinear_points_simplify_to_endpoints():
    line = [(0, i) for i in range(10)]

    assert simplify_polygon(line, tolerance=100.0, projection=PLANAR) == [
        GeoPoint(0, 0), GeoPoint(0, 9)
    ]


def test_simplify_keeps_corners():
    path = [(0, 0), (0, 5), (0, 10), (5, 10), (10, 10)]

    simplified = simplify_polygon(path, tolerance=0.1, projection=PLANAR)

    assert simplified == [GeoPoint(0, 0), GeoPoint(0, 10), GeoPoint(10, 10)]


def test_simplify_short_and_invalid_input():
    assert simplify_polygon([(0, 0), (1, 1)], projection=PLANAR) == [GeoPoint(0, 0), GeoPoint(1, 1)]
    assert simplify_polygon(None) == []
    # Non-numeric tolerance falls back to the default
    assert len(simplify_polygon(square(0, 0, 10), tolerance="big", projection=PLANAR)) == 4


def test_geographic_tolerance_is_in_meters():
    # Middle vertex sits ~0.44 m off the east-west chord
    path = [(40.0, -3.0), (40.0 + 0.5 / METERS_PER_DEGREE, -2.9995), (40.0, -2.999)]

    assert len(simplify_polygon(path)) == 3
    assert simplify_polygon(path, tolerance=1.0) == [GeoPoint(40.0, -3.0), GeoPoint(40.0, -2.999)]


# ===== expand_polygon =====

def test_expand_planar_moves_vertices_away_from_center():
    sq = square(0, 0, 10)
    expanded = expand_polygon(sq, 2.0, PLANAR)
    center = GeoPoint(5.0, 5.0)

    for before, after in zip(sq, expanded):
        growth = distance_between(center, after, PLANAR) - distance_between(center, before, PLANAR)
        assert growth == pytest.approx(2.0)


def test_expand_geographic_contains_original():
    sq = square(40.4160, -3.7045, 0.001)
    expanded = expand_polygon(sq, 25.0)

    assert len(expanded) == 4
    for vertex in sq:
        assert point_in_polygon(vertex, expanded)


def test_expand_clamps_and_rejects():
    sq = square(0, 0, 10)

    assert expand_polygon(sq, -5.0, PLANAR) == [GeoPoint(float(a), float(b)) for a, b in sq]
    assert expand_polygon(sq, float('nan'), PLANAR) == []
    assert expand_polygon([(0, 0)], 1.0, PLANAR) == []


# ===== centers / projections =====

def test_polygon_center_is_vertex_mean():
    assert polygon_center(square(0, 0, 10), PLANAR) == GeoPoint(5.0, 5.0)
    assert polygon_center([]) is None


def test_mercator_projection():
    assert geo_to_mercator(0.0, 0.0) == pytest.approx((0.0, 0.0), abs=1e-6)
    assert geo_to_mercator(120.0, 0.0) == (0.0, 0.0)

    back = mercator_to_geo(*geo_to_mercator(40.4168, -3.7038))
    assert back.lat == pytest.approx(40.4168, abs=1e-9)
    assert back.lng == pytest.approx(-3.7038, abs=1e-9)

    assert mercator_to_geo(float('inf'), 0.0) == GeoPoint(0.0, 0.0)
