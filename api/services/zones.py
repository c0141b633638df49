"""
Zone Resolver & Delivery Validator.

Classifies a customer's point against the active zone polygons:
  1. find_zone_for_location — first containing zone in list order
  2. find_nearest_zone      — closest vertex-mean centroid (fallback messaging)
  3. validate_location_for_delivery — user-facing serviceability verdict

Overlapping zones resolve to whichever comes first in the supplied list; there
is no other tie-break. The expensive polygon test runs once, when
an address is entered; dispatch later matches on the stored zone id only.

Zones are duck-typed: anything with ``id``, ``name``, ``coordinates`` and
``delivery_fee`` works (ORM DeliveryZone or a cached ZoneSnapshot).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence

from services.geo import (
    LocationPoint, as_point, calculate_distance, is_point_in_polygon,
    is_simple_polygon, polygon_centroid,
)

logger = logging.getLogger(__name__)

MIN_POLYGON_VERTICES = 3


class ZonePolygonError(ValueError):
    """Raised when an administrator saves an unusable zone polygon."""


@dataclass
class NearestZone:
    zone: Any
    distance_km: float


@dataclass
class ValidationResult:
    is_serviceable: bool
    message: str
    zone: Any | None = None
    delivery_fee: float = 0.0
    nearest_zone: Any | None = None
    distance_km: float | None = None
    suggestions: list[str] = field(default_factory=list)

    @property
    def zone_id(self):
        return self.zone.id if self.zone is not None else None


# ── Resolver ───────────────────────────────────────────────

def find_zone_for_location(
    point: LocationPoint | Mapping[str, Any],
    zones: Sequence[Any],
) -> Any | None:
    """Return the first zone (in list order) whose polygon contains the point."""
    p = as_point(point)
    logger.debug("🌍 Resolving zone for (%s, %s) against %d zones", p.lat, p.lng, len(zones))

    for zone in zones:
        if is_point_in_polygon(p, zone.coordinates):
            logger.debug("✅ Point (%s, %s) inside zone %s (%s)", p.lat, p.lng, zone.id, zone.name)
            return zone

    logger.debug("❌ Point (%s, %s) outside all zones", p.lat, p.lng)
    return None


def find_nearest_zone(
    point: LocationPoint | Mapping[str, Any],
    zones: Sequence[Any],
) -> NearestZone | None:
    """
    Zone whose vertex-mean centroid is closest to the point.

    Strict less-than comparison: the first minimum encountered wins.
    """
    p = as_point(point)
    nearest = None
    min_distance = float("inf")

    for zone in zones:
        centre = polygon_centroid(zone.coordinates)
        if centre is None:
            continue
        distance = calculate_distance(p, centre)
        if distance < min_distance:
            min_distance = distance
            nearest = zone

    if nearest is None:
        return None
    return NearestZone(zone=nearest, distance_km=min_distance)


# ── Validator ──────────────────────────────────────────────

def validate_location_for_delivery(
    point: LocationPoint | Mapping[str, Any],
    zones: Sequence[Any],
) -> ValidationResult:
    """
    Serviceability verdict for a candidate delivery point.

    Pure: the caller fetches the zone set and persists ``result.zone_id``.
    """
    p = as_point(point)
    zone = find_zone_for_location(p, zones)

    if zone is not None:
        logger.info(
            "📍 Classified point (%s, %s) → zone %s (%s)", p.lat, p.lng, zone.id, zone.name,
        )
        return ValidationResult(
            is_serviceable=True,
            zone=zone,
            delivery_fee=float(zone.delivery_fee or 0),
            message=f"Great! Your location is in the {zone.name} delivery zone.",
        )

    nearest = find_nearest_zone(p, zones)
    if nearest is None:
        logger.info("📍 Classified point (%s, %s) → no zones configured", p.lat, p.lng)
        return ValidationResult(
            is_serviceable=False,
            message="No delivery zones are configured yet.",
            suggestions=["Contact us to check if we can deliver to your area"],
        )

    logger.info(
        "📍 Classified point (%s, %s) → outside, nearest zone %s at %.1f km",
        p.lat, p.lng, nearest.zone.id, nearest.distance_km,
    )
    return ValidationResult(
        is_serviceable=False,
        nearest_zone=nearest.zone,
        distance_km=nearest.distance_km,
        message=(
            "Your location is outside our delivery zones. "
            f"The nearest zone is {nearest.zone.name} ({nearest.distance_km:.1f} km away)."
        ),
        suggestions=[
            f"Consider choosing a location closer to {nearest.zone.name}",
            "Contact us for delivery to your area",
        ],
    )


def classify_zone_id(lat: float | None, lng: float | None, zones: Sequence[Any]):
    """Zone id for a stored map pin, or None when unpinned or unserviceable."""
    if lat is None or lng is None:
        return None
    return validate_location_for_delivery(LocationPoint(float(lat), float(lng)), zones).zone_id


# ── Polygon checks on save ─────────────────────────────────

def normalize_polygon(
    coordinates: Sequence[LocationPoint | Mapping[str, Any]],
    enforce_simple: bool = False,
) -> list[dict[str, float]]:
    """
    Validate admin-supplied vertices and return the JSON shape to store.

    Raises:
        ZonePolygonError: fewer than 3 vertices, or self-intersecting when
            ``enforce_simple`` is set.
    """
    vertices = [as_point(c) for c in coordinates]
    if len(vertices) < MIN_POLYGON_VERTICES:
        raise ZonePolygonError(
            f"A zone needs at least {MIN_POLYGON_VERTICES} points, got {len(vertices)}"
        )
    if enforce_simple and not is_simple_polygon(vertices):
        raise ZonePolygonError("Zone polygon edges cross each other")
    return [v.as_dict() for v in vertices]


# ── Quick-setup templates ──────────────────────────────────

def _rect(north: float, south: float, west: float, east: float) -> list[dict[str, float]]:
    return [
        {"lat": north, "lng": west},
        {"lat": north, "lng": east},
        {"lat": south, "lng": east},
        {"lat": south, "lng": west},
    ]


ZONE_TEMPLATES: dict[str, list[dict]] = {
    "dahuk": [
        {
            "name": "Central Dahuk",
            "color": "#3B82F6",
            "description": "City center and main commercial area",
            "delivery_fee": 15000,
            "coordinates": _rect(36.8672, 36.8472, 42.9976, 43.0176),
        },
        {
            "name": "Northern Districts",
            "color": "#10B981",
            "description": "Residential areas north of center",
            "delivery_fee": 18000,
            "coordinates": _rect(36.8772, 36.8672, 42.9976, 43.0176),
        },
        {
            "name": "Southern Districts",
            "color": "#F59E0B",
            "description": "Southern residential and industrial areas",
            "delivery_fee": 18000,
            "coordinates": _rect(36.8472, 36.8272, 42.9976, 43.0176),
        },
        {
            "name": "Eastern Suburbs",
            "color": "#8B5CF6",
            "description": "Eastern expansion areas",
            "delivery_fee": 22500,
            "coordinates": _rect(36.8672, 36.8472, 43.0176, 43.0376),
        },
        {
            "name": "Western Outskirts",
            "color": "#EF4444",
            "description": "Western rural and suburban areas",
            "delivery_fee": 25000,
            "coordinates": _rect(36.8672, 36.8472, 42.9776, 42.9976),
        },
    ],
}
