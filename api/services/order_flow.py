"""
Order lifecycle — status transitions, driver actions and audit events.

  PENDING → CONFIRMED → ASSIGNED → IN_TRANSIT → DELIVERED
  PENDING | CONFIRMED | ASSIGNED → CANCELLED

Rejected transitions raise OrderTransitionError; routers report them as 400.
"""

from __future__ import annotations

import logging
from datetime import datetime

from models import OrderEvent

logger = logging.getLogger(__name__)

TRANSITIONS: dict[str, frozenset[str]] = {
    "PENDING": frozenset({"CONFIRMED", "ASSIGNED", "CANCELLED"}),
    "CONFIRMED": frozenset({"ASSIGNED", "CANCELLED"}),
    "ASSIGNED": frozenset({"IN_TRANSIT", "CANCELLED"}),
    "IN_TRANSIT": frozenset({"DELIVERED"}),
    "DELIVERED": frozenset(),
    "CANCELLED": frozenset(),
}

CANCELLABLE_STATUSES = frozenset({"PENDING", "CONFIRMED", "ASSIGNED"})
ACTIVE_DELIVERY_STATUSES = ("ASSIGNED", "IN_TRANSIT")

# Driver status that follows an order entering this status
DRIVER_STATUS_AFTER = {
    "IN_TRANSIT": "BUSY",
    "DELIVERED": "AVAILABLE",
}

DRIVER_ACTIONS = ("accept_order", "start_delivery", "complete_delivery")

ACTION_MESSAGES = {
    "accept_order": "Order accepted successfully",
    "start_delivery": "Delivery started successfully",
    "complete_delivery": "Delivery completed successfully",
}


class OrderTransitionError(Exception):
    """A status change that the lifecycle does not allow."""


def can_transition(from_status: str, to_status: str) -> bool:
    return to_status in TRANSITIONS.get(from_status, frozenset())


def record_event(
    order,
    from_status: str | None,
    to_status: str,
    actor_type: str = "SYSTEM",
    actor_id=None,
    metadata: dict | None = None,
) -> OrderEvent:
    return OrderEvent(
        order_id=order.id,
        from_status=from_status,
        to_status=to_status,
        actor_type=actor_type,
        actor_id=actor_id,
        metadata_json=metadata or {},
    )


def transition(order, to_status: str, actor_type: str = "SYSTEM", actor_id=None) -> OrderEvent:
    """
    Move ``order`` to ``to_status`` and return the audit event to persist.

    Raises:
        OrderTransitionError: the lifecycle does not allow the move.
    """
    from_status = order.status

    if to_status == "CANCELLED" and from_status not in CANCELLABLE_STATUSES:
        if from_status == "CANCELLED":
            raise OrderTransitionError("Order is already cancelled")
        raise OrderTransitionError("Cannot cancel an order that is in transit or delivered")

    if not can_transition(from_status, to_status):
        raise OrderTransitionError(f"Cannot move order from {from_status} to {to_status}")

    order.status = to_status
    now = datetime.utcnow()
    if to_status == "DELIVERED":
        order.delivered_at = now
    elif to_status == "CANCELLED":
        order.cancelled_at = now

    logger.info(
        "📦 Order %s: %s → %s (%s %s)", order.id, from_status, to_status, actor_type, actor_id,
    )
    return record_event(order, from_status, to_status, actor_type, actor_id)


def apply_driver_action(order, driver, action: str) -> OrderEvent:
    """
    Driver-initiated step on an order in their queue.

    ``accept_order`` here only mutates the in-memory order; the API claims
    orders with dispatch.claim_order_statement so concurrent accepts cannot
    both succeed.
    """
    if action == "accept_order":
        if order.status not in ("PENDING", "CONFIRMED") or order.driver_id is not None:
            raise OrderTransitionError("Can only accept available orders")
        event = transition(order, "ASSIGNED", "DRIVER", driver.id)
        order.driver_id = driver.id
        return event

    if action == "start_delivery":
        if order.status != "ASSIGNED" or order.driver_id != driver.id:
            raise OrderTransitionError("Can only start delivery for assigned orders")
        event = transition(order, "IN_TRANSIT", "DRIVER", driver.id)
        driver.status = DRIVER_STATUS_AFTER["IN_TRANSIT"]
        return event

    if action == "complete_delivery":
        if order.status != "IN_TRANSIT" or order.driver_id != driver.id:
            raise OrderTransitionError("Can only complete orders that are in transit")
        event = transition(order, "DELIVERED", "DRIVER", driver.id)
        driver.status = DRIVER_STATUS_AFTER["DELIVERED"]
        return event

    raise OrderTransitionError("Invalid action")
