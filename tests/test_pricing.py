"""Tests for order pricing and driver commission."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "api"))

import pytest

from services.pricing import (
    MAX_QUANTITY, MIN_QUANTITY, PricingError, calculate_order_total, driver_commission,
)


def test_total_is_base_plus_fee_times_quantity():
    price = calculate_order_total("12kg", base_price=10000, delivery_fee=2000, quantity=3)
    assert price.unit_price == 10000
    assert price.delivery_fee == 2000
    assert price.total_price == 36000
    assert price.currency == "IQD"


def test_missing_fee_counts_as_zero():
    price = calculate_order_total("12kg", base_price=9500, delivery_fee=None, quantity=2)
    assert price.total_price == 19000


def test_decimal_inputs():
    from decimal import Decimal
    price = calculate_order_total("48kg", Decimal("12500.50"), Decimal("0"), 1)
    assert price.total_price == 12500.5


@pytest.mark.parametrize("quantity", [MIN_QUANTITY - 1, MAX_QUANTITY + 1, -3])
def test_quantity_out_of_range(quantity):
    with pytest.raises(PricingError):
        calculate_order_total("12kg", 10000, 0, quantity)


def test_quantity_bounds_accepted():
    assert calculate_order_total("12kg", 100, 0, MIN_QUANTITY).total_price == 100
    assert calculate_order_total("12kg", 100, 0, MAX_QUANTITY).total_price == 100 * MAX_QUANTITY


def test_driver_commission_default_rate():
    assert driver_commission([36000, 12000]) == 4800


def test_driver_commission_custom_rate_and_empty():
    assert driver_commission([10000], pct=0.15) == 1500
    assert driver_commission([]) == 0
