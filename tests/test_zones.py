"""Tests for the zone resolver, delivery validator and polygon checks."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "api"))

import pytest

from conftest import FakeZone, SQUARE, square
from services.geo import LocationPoint, calculate_distance, polygon_centroid
from services.zones import (
    ZONE_TEMPLATES, ZonePolygonError, classify_zone_id, find_nearest_zone,
    find_zone_for_location, normalize_polygon, validate_location_for_delivery,
)


# ── Resolver ───────────────────────────────────────────────

def test_find_zone_inside():
    zone = FakeZone("Square", SQUARE)
    assert find_zone_for_location(LocationPoint(5, 5), [zone]) is zone


def test_find_zone_outside():
    assert find_zone_for_location(LocationPoint(15, 15), [FakeZone("Square", SQUARE)]) is None


def test_find_zone_empty_list():
    assert find_zone_for_location(LocationPoint(5, 5), []) is None


def test_overlap_first_in_list_wins():
    a = FakeZone("A", square(0, 0, 10))
    b = FakeZone("B", square(5, 5, 10))
    point = LocationPoint(7, 7)

    for _ in range(5):
        assert find_zone_for_location(point, [a, b]) is a
        assert find_zone_for_location(point, [b, a]) is b


def test_degenerate_zone_is_skipped():
    line = FakeZone("Line", [{"lat": 0, "lng": 0}, {"lat": 10, "lng": 10}])
    real = FakeZone("Real", SQUARE)
    assert find_zone_for_location(LocationPoint(5, 5), [line, real]) is real


# ── Nearest zone ───────────────────────────────────────────

def _zone_with_centroid_km_from(origin: LocationPoint, km: float, name: str) -> FakeZone:
    """Tiny square whose vertex-mean sits ``km`` due north of ``origin``."""
    dlat = km / 111.19492664455873
    c = LocationPoint(origin.lat + dlat, origin.lng)
    h = 0.001
    return FakeZone(name, [
        {"lat": c.lat - h, "lng": c.lng - h},
        {"lat": c.lat - h, "lng": c.lng + h},
        {"lat": c.lat + h, "lng": c.lng + h},
        {"lat": c.lat + h, "lng": c.lng - h},
    ])


def test_nearest_zone_picks_closest_centroid():
    origin = LocationPoint(36.0, 43.0)
    zones = [
        _zone_with_centroid_km_from(origin, 5, "five"),
        _zone_with_centroid_km_from(origin, 12, "twelve"),
        _zone_with_centroid_km_from(origin, 3, "three"),
    ]
    nearest = find_nearest_zone(origin, zones)
    assert nearest.zone.name == "three"
    assert nearest.distance_km == pytest.approx(3, abs=0.01)


def test_nearest_zone_empty():
    assert find_nearest_zone(LocationPoint(0, 0), []) is None


def test_nearest_zone_tie_keeps_first():
    a = FakeZone("A", square(1, -1, 2))
    b = FakeZone("B", square(-3, -1, 2))
    # Both centroids are exactly 2 degrees of latitude from the origin
    assert find_nearest_zone(LocationPoint(0, 0), [a, b]).zone is a
    assert find_nearest_zone(LocationPoint(0, 0), [b, a]).zone is b


def test_nearest_zone_skips_zone_without_vertices():
    empty = FakeZone("Empty", [])
    real = FakeZone("Real", square(20, 20, 1))
    assert find_nearest_zone(LocationPoint(0, 0), [empty, real]).zone is real


# ── Validator ──────────────────────────────────────────────

def test_validate_serviceable():
    zone = FakeZone("Central Dahuk", SQUARE, delivery_fee=15000)
    result = validate_location_for_delivery(LocationPoint(5, 5), [zone])

    assert result.is_serviceable is True
    assert result.zone is zone
    assert result.zone_id == zone.id
    assert result.delivery_fee == 15000
    assert result.message == "Great! Your location is in the Central Dahuk delivery zone."
    assert result.nearest_zone is None


def test_validate_serviceable_without_fee():
    zone = FakeZone("Free", SQUARE, delivery_fee=None)
    assert validate_location_for_delivery(LocationPoint(5, 5), [zone]).delivery_fee == 0


def test_validate_outside_reports_nearest():
    zone = FakeZone("Square", SQUARE)
    point = LocationPoint(15, 15)
    result = validate_location_for_delivery(point, [zone])

    expected_km = calculate_distance(point, polygon_centroid(SQUARE))
    assert result.is_serviceable is False
    assert result.zone is None
    assert result.zone_id is None
    assert result.nearest_zone is zone
    assert result.distance_km == pytest.approx(expected_km)
    assert result.message == (
        "Your location is outside our delivery zones. "
        f"The nearest zone is Square ({expected_km:.1f} km away)."
    )
    assert result.suggestions == [
        "Consider choosing a location closer to Square",
        "Contact us for delivery to your area",
    ]


def test_validate_no_zones_never_raises():
    for point in (LocationPoint(0, 0), LocationPoint(89.9, 179.9), LocationPoint(-45, -120)):
        result = validate_location_for_delivery(point, [])
        assert result.is_serviceable is False
        assert result.zone is None
        assert result.nearest_zone is None
        assert result.distance_km is None
        assert result.message == "No delivery zones are configured yet."
        assert result.suggestions == ["Contact us to check if we can deliver to your area"]


def test_classify_zone_id():
    zone = FakeZone("Square", SQUARE)
    assert classify_zone_id(5, 5, [zone]) == zone.id
    assert classify_zone_id(50, 50, [zone]) is None
    assert classify_zone_id(None, 5, [zone]) is None


# ── Polygon save checks ────────────────────────────────────

def test_normalize_polygon_returns_json_shape():
    out = normalize_polygon([LocationPoint(0, 0), {"lat": "1.5", "lng": 2}, {"lat": 3, "lng": 0}])
    assert out == [{"lat": 0, "lng": 0}, {"lat": 1.5, "lng": 2.0}, {"lat": 3.0, "lng": 0.0}]


def test_normalize_polygon_needs_three_points():
    with pytest.raises(ZonePolygonError, match="at least 3 points"):
        normalize_polygon([{"lat": 0, "lng": 0}, {"lat": 1, "lng": 1}])


def test_self_intersecting_allowed_unless_enforced():
    bow_tie = [
        {"lat": 0, "lng": 0}, {"lat": 10, "lng": 10},
        {"lat": 10, "lng": 0}, {"lat": 0, "lng": 10},
    ]
    assert len(normalize_polygon(bow_tie)) == 4
    with pytest.raises(ZonePolygonError, match="cross"):
        normalize_polygon(bow_tie, enforce_simple=True)


def test_dahuk_template_zones_are_valid_and_disjoint():
    zones = [FakeZone(z["name"], z["coordinates"], z["delivery_fee"]) for z in ZONE_TEMPLATES["dahuk"]]
    assert len(zones) == 5
    for zone in zones:
        normalize_polygon(zone.coordinates, enforce_simple=True)
        centre = polygon_centroid(zone.coordinates)
        assert find_zone_for_location(centre, zones) is zone
