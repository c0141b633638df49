"""
Pricing — order totals from the tank price list.

  total = (base_price + delivery_fee) × quantity

The price list carries one row per tank type. The zone's own delivery fee is
shown to customers by the delivery validator but is not added to the total.
Drivers earn a flat commission on delivered orders.
"""

from dataclasses import dataclass

from config import settings


# ── Constants ──────────────────────────────────────────────

MIN_QUANTITY = 1
MAX_QUANTITY = 20


# ── Data classes ───────────────────────────────────────────

@dataclass
class PriceBreakdown:
    tank_type: str
    quantity: int
    unit_price: float
    delivery_fee: float
    total_price: float
    currency: str


class PricingError(ValueError):
    """Quantity outside the accepted range."""


# ── Core Functions ─────────────────────────────────────────

def calculate_order_total(
    tank_type: str,
    base_price: float,
    delivery_fee: float,
    quantity: int,
) -> PriceBreakdown:
    """
    Price an order of ``quantity`` tanks.

    Raises:
        PricingError: quantity outside MIN_QUANTITY..MAX_QUANTITY.
    """
    if not MIN_QUANTITY <= quantity <= MAX_QUANTITY:
        raise PricingError(f"Quantity must be between {MIN_QUANTITY} and {MAX_QUANTITY}")

    unit_price = float(base_price)
    fee = float(delivery_fee or 0)
    return PriceBreakdown(
        tank_type=tank_type,
        quantity=quantity,
        unit_price=round(unit_price, 2),
        delivery_fee=round(fee, 2),
        total_price=round((unit_price + fee) * quantity, 2),
        currency=settings.CURRENCY,
    )


def driver_commission(total_prices: list[float], pct: float | None = None) -> int:
    """Driver earnings for a set of delivered orders, rounded to whole units."""
    rate = settings.DRIVER_COMMISSION_PCT if pct is None else pct
    return round(sum(float(p) * rate for p in total_prices))
