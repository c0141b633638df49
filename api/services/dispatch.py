"""
Order Dispatch Filter — zone-equality matching of orders to drivers.

No polygon math happens here. A customer's zone id is computed once, when the
address is entered, and copied onto each order at creation (the snapshot).
Drivers get their zone from an administrator. Dispatch then reduces to:

  eligible(order, driver) =
      order.driver_id == driver.id                                  (mine)
   or (order.zone_id == driver.assigned_zone_id
       and order.driver_id is None
       and order.status in {PENDING, CONFIRMED})                     (available)

A driver with no assigned zone gets an empty queue and an explanatory message.
Assigned-to-me orders sort first, then newest first.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Sequence

from sqlalchemy import and_, case, false, or_, select, update

from models import Order

logger = logging.getLogger(__name__)

DISPATCHABLE_STATUSES = ("PENDING", "CONFIRMED")
NO_ZONE_MESSAGE = "No delivery zone assigned. Contact an administrator."


@dataclass
class DriverQueue:
    driver_id: Any
    zone_id: Any | None
    mine: list = field(default_factory=list)
    available: list = field(default_factory=list)
    message: str | None = None

    @property
    def has_zone(self) -> bool:
        return self.zone_id is not None


# ── Predicates ─────────────────────────────────────────────

def is_assigned_to(order, driver) -> bool:
    return order.driver_id is not None and order.driver_id == driver.id


def is_available_to(order, driver) -> bool:
    zone_id = driver.assigned_zone_id
    return (
        zone_id is not None
        and order.zone_id == zone_id
        and order.driver_id is None
        and order.status in DISPATCHABLE_STATUSES
    )


def is_dispatch_eligible(order, driver) -> bool:
    """
    Whether the order belongs in the driver's queue (mine or available).

    A driver without a zone has an empty queue, so nothing is eligible.
    """
    if driver.assigned_zone_id is None:
        return False
    return is_assigned_to(order, driver) or is_available_to(order, driver)


def sort_queue(orders: Sequence, driver_id) -> list:
    """Orders assigned to ``driver_id`` first, each group newest first."""
    newest_first = sorted(orders, key=lambda o: o.created_at, reverse=True)
    return sorted(newest_first, key=lambda o: o.driver_id != driver_id)


def build_driver_queue(driver, orders: Sequence) -> DriverQueue:
    """Apply the dispatch filter to already-fetched orders."""
    if driver.assigned_zone_id is None:
        logger.info("🚚 Dispatch filter: driver %s has no zone, empty queue", driver.id)
        return DriverQueue(driver_id=driver.id, zone_id=None, message=NO_ZONE_MESSAGE)

    ordered = sort_queue([o for o in orders if is_dispatch_eligible(o, driver)], driver.id)
    queue = DriverQueue(
        driver_id=driver.id,
        zone_id=driver.assigned_zone_id,
        mine=[o for o in ordered if is_assigned_to(o, driver)],
        available=[o for o in ordered if not is_assigned_to(o, driver)],
    )
    logger.info(
        "🚚 Dispatch filter: driver %s zone %s → %d mine, %d available",
        driver.id, driver.assigned_zone_id, len(queue.mine), len(queue.available),
    )
    return queue


# ── Persistence boundary ───────────────────────────────────

def dispatch_queue_query(driver):
    """The dispatch filter as a SELECT, ordered like ``sort_queue``."""
    if driver.assigned_zone_id is None:
        return select(Order).where(false())

    return (
        select(Order)
        .where(
            or_(
                Order.driver_id == driver.id,
                and_(
                    Order.zone_id == driver.assigned_zone_id,
                    Order.driver_id.is_(None),
                    Order.status.in_(DISPATCHABLE_STATUSES),
                ),
            )
        )
        .order_by(
            case((Order.driver_id == driver.id, 0), else_=1),
            Order.created_at.desc(),
        )
    )


def claim_order_statement(order_id, driver_id, zone_id):
    """
    Conditional UPDATE that assigns an order only if it is still unclaimed.

    rowcount == 1 means this driver won; 0 means someone else got there first
    (or the order left the dispatchable set). A zoneless driver never matches.
    """
    zone_match = Order.zone_id == zone_id if zone_id is not None else false()
    return _assign_if_unclaimed(order_id, driver_id, zone_match)


def assign_order_statement(order_id, driver_id):
    """
    Admin counterpart of ``claim_order_statement``: same unclaimed guard, no
    zone clause, so manual assignment can cross zones.
    """
    return _assign_if_unclaimed(order_id, driver_id)


def _assign_if_unclaimed(order_id, driver_id, *criteria):
    return (
        update(Order)
        .where(
            Order.id == order_id,
            Order.driver_id.is_(None),
            Order.status.in_(DISPATCHABLE_STATUSES),
            *criteria,
        )
        .values(driver_id=driver_id, status="ASSIGNED", updated_at=datetime.utcnow())
        .execution_options(synchronize_session="fetch")
    )


def snapshot_zone_id(user):
    """Zone id stamped onto a new order: the customer's zone at this instant."""
    return user.zone_id
