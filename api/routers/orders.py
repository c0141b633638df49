"""Order management API endpoints."""

import uuid
import random
import string
import logging
from datetime import datetime
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from db.database import get_db
from models import Order, User, Driver, Price, DeliveryZone
from schemas import OrderCreate, OrderResponse
from services.address import format_delivery_address
from services.dispatch import snapshot_zone_id
from services.notifications import notify_admin, notify_user_order_status, notify_zone_drivers
from services.order_flow import OrderTransitionError, record_event, transition
from services.pricing import PricingError, calculate_order_total

router = APIRouter()
logger = logging.getLogger(__name__)


def _generate_order_number() -> str:
    """Generate human-readable order number: PRP-YYMMDD-XXXX."""
    now = datetime.utcnow()
    date_part = now.strftime("%y%m%d")
    rand_part = "".join(random.choices(string.ascii_uppercase + string.digits, k=4))
    return f"PRP-{date_part}-{rand_part}"


async def _get_order(order_id: uuid.UUID, db: AsyncSession) -> Order:
    order = await db.get(Order, order_id)
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    return order


async def _announce_new_order(order: Order, db: AsyncSession) -> None:
    """Tell the zone's available drivers, or the admin when the order has no zone."""
    zone = await db.get(DeliveryZone, order.zone_id) if order.zone_id else None
    if zone is None:
        logger.warning("⚠️ Order %s has no delivery zone, no driver will see it", order.order_number)
        await notify_admin(
            f"Order <code>#{order.order_number}</code> was placed outside every delivery zone.\n"
            f"Address: {order.delivery_address}"
        )
        return

    result = await db.execute(
        select(Driver.telegram_id).where(
            Driver.assigned_zone_id == zone.id,
            Driver.status == "AVAILABLE",
        )
    )
    telegram_ids = list(result.scalars().all())
    sent = await notify_zone_drivers(telegram_ids, order.order_number, zone.name, str(order.id))
    logger.info("📣 Order %s announced to %d/%d drivers in %s", order.order_number, sent, len(telegram_ids), zone.name)


@router.post("/", response_model=OrderResponse)
async def create_order(data: OrderCreate, db: AsyncSession = Depends(get_db)):
    """
    Create a new order.

    The customer's current zone id is copied onto the order and never
    recomputed, so later pin moves do not re-route existing orders.
    """
    user = (await db.execute(
        select(User).where(User.telegram_id == data.telegram_id)
    )).scalar_one_or_none()
    if not user:
        raise HTTPException(status_code=404, detail="User not registered")
    if user.is_blocked:
        raise HTTPException(status_code=403, detail="User is blocked")

    price = (await db.execute(
        select(Price).where(Price.type == data.tank_type, Price.is_active == True)  # noqa: E712
    )).scalar_one_or_none()
    if not price:
        raise HTTPException(status_code=404, detail=f"No active price for tank type '{data.tank_type}'")

    try:
        breakdown = calculate_order_total(
            data.tank_type, price.base_price, price.delivery_fee, data.quantity,
        )
    except PricingError as e:
        raise HTTPException(status_code=400, detail=str(e))

    delivery_address = data.delivery_address or format_delivery_address(user)
    if not delivery_address:
        raise HTTPException(status_code=400, detail="Delivery address is required")
    phone_number = data.phone_number or user.phone
    if not phone_number:
        raise HTTPException(status_code=400, detail="Phone number is required")

    order = Order(
        id=uuid.uuid4(),
        order_number=_generate_order_number(),
        user_id=user.id,
        zone_id=snapshot_zone_id(user),
        tank_type=data.tank_type,
        quantity=data.quantity,
        delivery_address=delivery_address,
        phone_number=phone_number,
        notes=data.notes,
        unit_price=breakdown.unit_price,
        delivery_fee=breakdown.delivery_fee,
        total_price=breakdown.total_price,
        status="PENDING",
    )
    db.add(order)
    db.add(record_event(order, None, "PENDING", "USER", user.id, {"total_price": breakdown.total_price}))
    await db.commit()
    await db.refresh(order)

    logger.info(
        "🆕 Order %s created: user=%s zone=%s total=%s %s",
        order.order_number, user.telegram_id, order.zone_id, breakdown.total_price, breakdown.currency,
    )

    await notify_user_order_status(
        user.telegram_id, order.order_number, order.status,
        f"Total: {breakdown.total_price:,.0f} {breakdown.currency}",
    )
    await _announce_new_order(order, db)
    return order


@router.get("/user/{telegram_id}", response_model=list[OrderResponse])
async def get_user_orders(telegram_id: int, db: AsyncSession = Depends(get_db)):
    """Get all orders for a user, newest first."""
    user = (await db.execute(
        select(User).where(User.telegram_id == telegram_id)
    )).scalar_one_or_none()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    result = await db.execute(
        select(Order).where(Order.user_id == user.id).order_by(Order.created_at.desc())
    )
    return result.scalars().all()


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(order_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    """Get order by ID."""
    return await _get_order(order_id, db)


@router.post("/{order_id}/cancel", response_model=OrderResponse)
async def cancel_order(order_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    """Customer cancellation; allowed until the driver starts the delivery."""
    order = await _get_order(order_id, db)
    try:
        event = transition(order, "CANCELLED", "USER", order.user_id)
    except OrderTransitionError as e:
        raise HTTPException(status_code=400, detail=str(e))

    db.add(event)
    await db.commit()
    await db.refresh(order)

    user = await db.get(User, order.user_id)
    if user:
        await notify_user_order_status(user.telegram_id, order.order_number, order.status)
    return order
