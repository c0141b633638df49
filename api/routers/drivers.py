"""Driver API endpoints — zone-filtered queue, order actions, status and stats."""

import uuid
import logging
from datetime import datetime
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from db.database import get_db
from models import Driver, Order, User, DeliveryZone
from schemas import (
    DriverResponse, DriverStatusUpdate, DriverLocationUpdate, DriverActionRequest,
    DriverStats, DriverQueueResponse, OrderResponse, OrderActionResponse, ZoneSummary,
)
from services.dispatch import (
    build_driver_queue, claim_order_statement, dispatch_queue_query,
    is_available_to, is_dispatch_eligible,
)
from services.notifications import notify_user_order_status
from services.order_flow import (
    ACTION_MESSAGES, ACTIVE_DELIVERY_STATUSES, OrderTransitionError,
    apply_driver_action, record_event,
)
from services.pricing import driver_commission

router = APIRouter()
logger = logging.getLogger(__name__)


async def _get_driver(telegram_id: int, db: AsyncSession) -> Driver:
    result = await db.execute(select(Driver).where(Driver.telegram_id == telegram_id))
    driver = result.scalar_one_or_none()
    if not driver:
        raise HTTPException(status_code=404, detail="Driver not found")
    return driver


@router.get("/telegram/{telegram_id}", response_model=DriverResponse)
async def get_driver_by_telegram(telegram_id: int, db: AsyncSession = Depends(get_db)):
    """Get driver by Telegram ID."""
    return await _get_driver(telegram_id, db)


# ── Queue ──────────────────────────────────────────────────

@router.get("/telegram/{telegram_id}/queue", response_model=DriverQueueResponse)
async def get_driver_queue(telegram_id: int, db: AsyncSession = Depends(get_db)):
    """
    The driver's dispatch queue: orders assigned to them, then unclaimed
    PENDING/CONFIRMED orders whose zone id equals the driver's zone.
    """
    driver = await _get_driver(telegram_id, db)
    result = await db.execute(dispatch_queue_query(driver))
    queue = build_driver_queue(driver, result.scalars().all())

    zone = None
    if driver.assigned_zone_id is not None:
        zone = await db.get(DeliveryZone, driver.assigned_zone_id)

    return DriverQueueResponse(
        driver_id=driver.id,
        zone=ZoneSummary.model_validate(zone) if zone else None,
        has_zone=queue.has_zone,
        message=queue.message,
        mine=[OrderResponse.model_validate(o) for o in queue.mine],
        available=[OrderResponse.model_validate(o) for o in queue.available],
    )


@router.get("/telegram/{telegram_id}/orders/{order_id}", response_model=OrderResponse)
async def get_driver_order(
    telegram_id: int,
    order_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
):
    """Order detail, only for orders the dispatch filter shows this driver."""
    driver = await _get_driver(telegram_id, db)
    order = await db.get(Order, order_id)
    if not order or not is_dispatch_eligible(order, driver):
        raise HTTPException(status_code=404, detail="Order not found")
    return order


# ── Actions ────────────────────────────────────────────────

async def _claim(order: Order, driver: Driver, db: AsyncSession) -> None:
    """Accept an order with a conditional UPDATE; the first driver wins."""
    if not is_available_to(order, driver):
        raise HTTPException(status_code=400, detail="Can only accept available orders")

    from_status = order.status
    result = await db.execute(
        claim_order_statement(order.id, driver.id, driver.assigned_zone_id)
    )
    if result.rowcount != 1:
        await db.rollback()
        logger.info("🏁 Driver %s lost the race for order %s", driver.id, order.id)
        raise HTTPException(status_code=409, detail="Order was already taken by another driver")

    db.add(record_event(order, from_status, "ASSIGNED", "DRIVER", driver.id))


@router.post(
    "/telegram/{telegram_id}/orders/{order_id}/action",
    response_model=OrderActionResponse,
)
async def driver_order_action(
    telegram_id: int,
    order_id: uuid.UUID,
    data: DriverActionRequest,
    db: AsyncSession = Depends(get_db),
):
    """Accept, start or complete a delivery."""
    driver = await _get_driver(telegram_id, db)
    order = await db.get(Order, order_id)
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")

    action = data.action.value
    if action == "accept_order":
        await _claim(order, driver, db)
    else:
        try:
            db.add(apply_driver_action(order, driver, action))
        except OrderTransitionError as e:
            raise HTTPException(status_code=400, detail=str(e))

    await db.commit()
    await db.refresh(order)
    logger.info("🚚 Driver %s: %s on order %s → %s", driver.id, action, order.order_number, order.status)

    user = await db.get(User, order.user_id)
    if user:
        extra = f"Driver: {driver.full_name} ({driver.phone or 'no phone'})" if order.status == "ASSIGNED" else ""
        await notify_user_order_status(user.telegram_id, order.order_number, order.status, extra)

    return OrderActionResponse(
        order=OrderResponse.model_validate(order),
        message=ACTION_MESSAGES[action],
    )


# ── Status / Location ──────────────────────────────────────

@router.patch("/telegram/{telegram_id}/status", response_model=DriverResponse)
async def update_driver_status(
    telegram_id: int,
    data: DriverStatusUpdate,
    db: AsyncSession = Depends(get_db),
):
    """Update driver status. Going OFFLINE is refused while deliveries are active."""
    driver = await _get_driver(telegram_id, db)
    new_status = data.status.value

    if new_status == "OFFLINE":
        active = (await db.execute(
            select(func.count(Order.id)).where(
                Order.driver_id == driver.id,
                Order.status.in_(ACTIVE_DELIVERY_STATUSES),
            )
        )).scalar() or 0
        if active:
            raise HTTPException(
                status_code=400,
                detail="Cannot go offline while you have active deliveries",
            )

    old_status = driver.status
    driver.status = new_status
    await db.commit()
    await db.refresh(driver)
    logger.info("Driver %s status: %s → %s", driver.id, old_status, new_status)
    return driver


@router.patch("/telegram/{telegram_id}/location", response_model=DriverResponse)
async def update_driver_location(
    telegram_id: int,
    data: DriverLocationUpdate,
    db: AsyncSession = Depends(get_db),
):
    """Record the driver's GPS position. Does not affect the assigned zone."""
    driver = await _get_driver(telegram_id, db)
    driver.current_lat = data.lat
    driver.current_lng = data.lng
    driver.last_location_update = datetime.utcnow()
    await db.commit()
    await db.refresh(driver)
    return driver


# ── Stats ──────────────────────────────────────────────────

@router.get("/telegram/{telegram_id}/stats", response_model=DriverStats)
async def get_driver_stats(telegram_id: int, db: AsyncSession = Depends(get_db)):
    driver = await _get_driver(telegram_id, db)
    today_start = datetime.utcnow().replace(hour=0, minute=0, second=0, microsecond=0)

    total_deliveries = (await db.execute(
        select(func.count(Order.id)).where(
            Order.driver_id == driver.id, Order.status == "DELIVERED",
        )
    )).scalar() or 0

    today_totals = (await db.execute(
        select(Order.total_price).where(
            Order.driver_id == driver.id,
            Order.status == "DELIVERED",
            Order.delivered_at >= today_start,
        )
    )).scalars().all()

    pending_orders = (await db.execute(
        select(func.count(Order.id)).where(
            Order.driver_id == driver.id,
            Order.status.in_(ACTIVE_DELIVERY_STATUSES),
        )
    )).scalar() or 0

    return DriverStats(
        total_deliveries=total_deliveries,
        today_deliveries=len(today_totals),
        pending_orders=pending_orders,
        earnings_today=driver_commission(list(today_totals)),
        status=driver.status,
    )
