"""
EONTA Geometry Kernel
=====================

Bounded Context: Spatial queries for location-triggered audio regions.

Design Philosophy:
- Pure functions: no state, no I/O, never raise on bad input
- Sentinels over exceptions: None, False, math.inf, empty list
- numpy for vertex math, stdlib math for scalar distances

Architecture:

    eonta_geo/
    ├── coordinates.py   # GeoPoint, validation, Haversine, Mercator
    └── polygon.py       # point-in-polygon, edge distance, simplify, expand

Usage:

    from eonta_geo import GeoPoint, point_in_polygon, distance_to_boundary_edge

    square = [(0, 0), (0, 0.001), (0.001, 0.001), (0.001, 0)]
    here = GeoPoint(lat=0.0005, lng=0.0005)

    point_in_polygon(here, square)           # True
    distance_to_boundary_edge(here, square)  # negative (inside), meters
"""

from eonta_geo.coordinates import (
    EARTH_RADIUS_M,
    MAX_POLYGON_POINTS,
    GeoPoint,
    Projection,
    degrees_to_meters,
    distance_between,
    geo_to_mercator,
    is_valid_coordinate,
    mercator_to_geo,
    polygon_center,
    sanitize_points,
    to_point,
)
from eonta_geo.polygon import (
    distance_to_boundary_edge,
    distance_to_segment,
    expand_polygon,
    point_in_polygon,
    simplify_polygon,
)

__all__ = [
    # Coordinates
    "EARTH_RADIUS_M",
    "MAX_POLYGON_POINTS",
    "GeoPoint",
    "Projection",
    "degrees_to_meters",
    "distance_between",
    "geo_to_mercator",
    "is_valid_coordinate",
    "mercator_to_geo",
    "polygon_center",
    "sanitize_points",
    "to_point",
    # Polygon
    "distance_to_boundary_edge",
    "distance_to_segment",
    "expand_polygon",
    "point_in_polygon",
    "simplify_polygon",
]

__version__ = "1.0.0"
