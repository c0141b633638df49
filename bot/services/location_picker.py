"""
Zone-aware location picker — the text side of the bot's map.

The customer shares a Telegram location or types a ``lat,lng`` pin; the bot
asks the API to validate it and shows the verdict before the pin is saved.
Everything here is pure so the wording can be tested without Telegram.
"""

import re

_PIN_RE = re.compile(r"(-?\d{1,3}(?:\.\d+)?)\s*[,;\s]\s*(-?\d{1,3}(?:\.\d+)?)")


def parse_pin_text(text: str | None) -> tuple[float, float] | None:
    """
    Extract ``(lat, lng)`` from free text such as ``"36.86, 42.99"`` or a
    maps link containing ``@36.86,42.99``. Returns None when nothing usable
    is found or the numbers are out of range.
    """
    if not text:
        return None
    match = _PIN_RE.search(text)
    if not match:
        return None
    lat, lng = float(match.group(1)), float(match.group(2))
    if not (-90 <= lat <= 90 and -180 <= lng <= 180):
        return None
    return lat, lng


def format_fee(amount: float | int | None, currency: str = "IQD") -> str:
    if not amount:
        return "Free"
    return f"{float(amount):,.0f} {currency}"


def format_verdict(verdict: dict, currency: str = "IQD") -> str:
    """Render a /api/zones/validate response as an HTML message."""
    if verdict.get("is_serviceable"):
        zone = verdict.get("zone") or {}
        return (
            f"✅ <b>We deliver here!</b>\n\n"
            f"{verdict['message']}\n\n"
            f"🗺️ Zone: <b>{zone.get('name', '?')}</b>\n"
            f"🚚 Delivery fee: <b>{format_fee(verdict.get('delivery_fee'), currency)}</b>\n\n"
            f"Confirm this location?"
        )

    text = f"⚠️ <b>Outside our delivery area</b>\n\n{verdict['message']}\n"
    nearest = verdict.get("nearest_zone")
    if nearest and verdict.get("distance_km") is not None:
        text += f"\n📍 Nearest zone: <b>{nearest['name']}</b> ({verdict['distance_km']:.1f} km)\n"
    suggestions = verdict.get("suggestions") or []
    if suggestions:
        text += "\n" + "\n".join(f"• {s}" for s in suggestions) + "\n"
    text += "\nYou can save it anyway, but orders from here will need manual handling."
    return text


def format_zone_list(zones: list[dict], currency: str = "IQD") -> str:
    if not zones:
        return "🗺️ No delivery zones are configured yet."
    lines = ["🗺️ <b>Delivery zones</b>\n"]
    for zone in zones:
        line = f"• <b>{zone['name']}</b> — {format_fee(zone.get('delivery_fee'), currency)}"
        if zone.get("description"):
            line += f"\n   <i>{zone['description']}</i>"
        lines.append(line)
    return "\n".join(lines)


def maps_link(lat: float, lng: float) -> str:
    return f"https://www.google.com/maps?q={lat},{lng}"
