"""
Geometry Engine — point-in-polygon, great-circle distance, zone centroids.

Conventions:
  - Coordinates are decimal degrees (WGS84), never range-checked here.
  - Polygons are ordered vertex lists; the closing edge is implicit.
  - Vertices may be LocationPoint objects or {"lat": .., "lng": ..} mappings
    (the JSON shape stored on DeliveryZone.coordinates).

All functions are pure and never raise for well-formed input.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Mapping, Sequence

from shapely.geometry import LinearRing

logger = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6371.0


@dataclass(frozen=True)
class LocationPoint:
    lat: float
    lng: float

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "LocationPoint":
        return cls(lat=float(data["lat"]), lng=float(data["lng"]))

    def as_dict(self) -> dict[str, float]:
        return {"lat": self.lat, "lng": self.lng}


def as_point(value: LocationPoint | Mapping[str, Any]) -> LocationPoint:
    """Coerce a vertex or point in either supported shape."""
    if isinstance(value, LocationPoint):
        return value
    return LocationPoint.from_mapping(value)


def is_point_in_polygon(
    point: LocationPoint | Mapping[str, Any],
    polygon: Sequence[LocationPoint | Mapping[str, Any]],
) -> bool:
    """
    Even-odd ray casting with lat as the x axis and lng as the y axis.

    A polygon with fewer than 3 vertices contains nothing. Points lying
    exactly on an edge may classify either way.
    """
    if len(polygon) < 3:
        logger.debug("Polygon has %d vertices, cannot contain a point", len(polygon))
        return False

    p = as_point(point)
    x, y = p.lat, p.lng
    vertices = [as_point(v) for v in polygon]

    inside = False
    j = len(vertices) - 1
    for i in range(len(vertices)):
        xi, yi = vertices[i].lat, vertices[i].lng
        xj, yj = vertices[j].lat, vertices[j].lng
        if (yi > y) != (yj > y) and x < (xj - xi) * (y - yi) / (yj - yi) + xi:
            inside = not inside
        j = i

    return inside


def calculate_distance(
    p1: LocationPoint | Mapping[str, Any],
    p2: LocationPoint | Mapping[str, Any],
) -> float:
    """Great-circle distance in km (Haversine, R = 6371 km)."""
    a_pt, b_pt = as_point(p1), as_point(p2)
    d_lat = math.radians(b_pt.lat - a_pt.lat)
    d_lng = math.radians(b_pt.lng - a_pt.lng)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(a_pt.lat))
        * math.cos(math.radians(b_pt.lat))
        * math.sin(d_lng / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def polygon_centroid(
    polygon: Sequence[LocationPoint | Mapping[str, Any]],
) -> LocationPoint | None:
    """
    Arithmetic mean of the vertices.

    Not the area centroid; good enough for "how far away is this zone".
    """
    if not polygon:
        return None
    vertices = [as_point(v) for v in polygon]
    n = len(vertices)
    return LocationPoint(
        lat=sum(v.lat for v in vertices) / n,
        lng=sum(v.lng for v in vertices) / n,
    )


# ── Polygon validity (opt-in hardening on zone save) ───────

def is_simple_polygon(polygon: Sequence[LocationPoint | Mapping[str, Any]]) -> bool:
    """
    True if the polygon's boundary neither crosses nor touches itself.

    An explicitly repeated closing vertex is accepted; fewer than three
    distinct vertices is never simple.
    """
    vertices = [as_point(v) for v in polygon]
    if len(vertices) > 1 and vertices[0] == vertices[-1]:
        vertices = vertices[:-1]
    if len(vertices) < 3:
        return False
    return LinearRing([(v.lng, v.lat) for v in vertices]).is_simple
