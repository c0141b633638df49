"""Tests for the bot's zone-aware location picker text helpers."""

import uuid

from bot.services.location_picker import format_verdict, format_zone_list, parse_pin_text


def test_parse_comma_pin():
    assert parse_pin_text("36.8572, 43.0076") == (36.8572, 43.0076)


def test_parse_space_and_negative():
    assert parse_pin_text("-33.86 151.2") == (-33.86, 151.2)


def test_parse_from_maps_link():
    assert parse_pin_text("https://maps.google.com/@36.86,42.99,15z") == (36.86, 42.99)


def test_parse_rejects_garbage_and_out_of_range():
    assert parse_pin_text("near the bakery") is None
    assert parse_pin_text("") is None
    assert parse_pin_text(None) is None
    assert parse_pin_text("95.0, 43.0") is None
    assert parse_pin_text("36.0, 190.0") is None


def test_serviceable_verdict():
    verdict = {
        "is_serviceable": True,
        "message": "Great! Your location is in the Central Dahuk delivery zone.",
        "zone": {"id": str(uuid.uuid4()), "name": "Central Dahuk"},
        "delivery_fee": 15000,
        "suggestions": [],
    }
    text = format_verdict(verdict)
    assert "Central Dahuk" in text
    assert "15,000 IQD" in text
    assert "Confirm" in text


def test_outside_verdict_lists_nearest_and_suggestions():
    verdict = {
        "is_serviceable": False,
        "message": "Your location is outside our delivery zones. The nearest zone is North (4.2 km away).",
        "zone": None,
        "nearest_zone": {"name": "North"},
        "distance_km": 4.21,
        "suggestions": ["Consider choosing a location closer to North", "Contact us for delivery to your area"],
    }
    text = format_verdict(verdict)
    assert "Nearest zone: <b>North</b> (4.2 km)" in text
    assert "• Contact us for delivery to your area" in text


def test_no_zones_verdict():
    verdict = {
        "is_serviceable": False,
        "message": "No delivery zones are configured yet.",
        "nearest_zone": None,
        "distance_km": None,
        "suggestions": ["Contact us to check if we can deliver to your area"],
    }
    text = format_verdict(verdict)
    assert "No delivery zones are configured yet." in text
    assert "Nearest zone" not in text


def test_zone_list():
    assert "No delivery zones" in format_zone_list([])
    text = format_zone_list([
        {"name": "Central", "delivery_fee": 15000, "description": "City center"},
        {"name": "Edge", "delivery_fee": None},
    ])
    assert "Central</b> — 15,000 IQD" in text
    assert "Edge</b> — Free" in text
