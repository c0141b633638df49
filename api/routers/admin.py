"""Admin dashboard API endpoints — orders, drivers, prices and fleet overview."""

import uuid
import logging
from datetime import datetime
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select, func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from db.database import get_db
from models import Order, Driver, User, Price, DeliveryZone
from schemas import (
    DashboardStats, OrderResponse, OrderStatusUpdate, OrderAssign, ZoneBackfillResponse,
    DriverCreate, DriverUpdate, DriverResponse,
    PriceCreate, PriceUpdate, PriceResponse,
)
from services.dispatch import assign_order_statement
from services.notifications import notify_user_order_status, send_message
from services.order_flow import (
    ACTIVE_DELIVERY_STATUSES, DRIVER_STATUS_AFTER, OrderTransitionError,
    can_transition, record_event, transition,
)

router = APIRouter()
logger = logging.getLogger(__name__)


# ── Dashboard ──────────────────────────────────────────────

@router.get("/dashboard", response_model=DashboardStats)
async def get_dashboard_stats(db: AsyncSession = Depends(get_db)):
    """Real-time dashboard counts."""
    today_start = datetime.utcnow().replace(hour=0, minute=0, second=0, microsecond=0)

    async def count(*criteria) -> int:
        return (await db.execute(select(func.count(Order.id)).where(*criteria))).scalar() or 0

    revenue_today = (await db.execute(
        select(func.coalesce(func.sum(Order.total_price), 0)).where(
            Order.status == "DELIVERED", Order.delivered_at >= today_start,
        )
    )).scalar() or 0

    return DashboardStats(
        total_orders=await count(),
        orders_today=await count(Order.created_at >= today_start),
        orders_pending=await count(Order.status.in_(("PENDING", "CONFIRMED"))),
        orders_in_transit=await count(Order.status == "IN_TRANSIT"),
        orders_delivered=await count(Order.status == "DELIVERED"),
        orders_cancelled=await count(Order.status == "CANCELLED"),
        orders_without_zone=await count(Order.zone_id.is_(None)),
        revenue_today=float(revenue_today),
        active_drivers=(await db.execute(
            select(func.count(Driver.id)).where(Driver.status.in_(("AVAILABLE", "BUSY")))
        )).scalar() or 0,
        zones_active=(await db.execute(
            select(func.count(DeliveryZone.id)).where(DeliveryZone.is_active == True)  # noqa: E712
        )).scalar() or 0,
    )


@router.get("/fleet-summary")
async def fleet_summary(db: AsyncSession = Depends(get_db)):
    """Fleet overview for dashboard, grouped by status with each driver's zone."""
    drivers = (await db.execute(select(Driver).order_by(Driver.full_name))).scalars().all()
    zone_names = dict((await db.execute(select(DeliveryZone.id, DeliveryZone.name))).all())

    return {
        "total": len(drivers),
        "available": sum(1 for d in drivers if d.status == "AVAILABLE"),
        "busy": sum(1 for d in drivers if d.status == "BUSY"),
        "offline": sum(1 for d in drivers if d.status == "OFFLINE"),
        "suspended": sum(1 for d in drivers if d.status == "SUSPENDED"),
        "without_zone": sum(1 for d in drivers if d.assigned_zone_id not in zone_names),
        "drivers": [
            {
                "id": str(d.id),
                "name": d.full_name,
                "status": d.status,
                "vehicle": f"{d.vehicle_type} {d.vehicle_plate}",
                "zone": zone_names.get(d.assigned_zone_id),
                "lat": float(d.current_lat) if d.current_lat is not None else None,
                "lng": float(d.current_lng) if d.current_lng is not None else None,
            }
            for d in drivers
        ],
    }


# ── Orders ─────────────────────────────────────────────────

async def _get_order(order_id: uuid.UUID, db: AsyncSession) -> Order:
    order = await db.get(Order, order_id)
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    return order


async def _notify_customer(order: Order, db: AsyncSession, extra_info: str = "") -> None:
    user = await db.get(User, order.user_id)
    if user:
        await notify_user_order_status(user.telegram_id, order.order_number, order.status, extra_info)


@router.get("/orders", response_model=list[OrderResponse])
async def list_orders(
    status: str | None = None,
    zone_id: uuid.UUID | None = None,
    driver_id: uuid.UUID | None = None,
    unzoned: bool = False,
    skip: int = 0,
    limit: int = 50,
    db: AsyncSession = Depends(get_db),
):
    """List orders, newest first, with optional filters."""
    query = select(Order)
    if status:
        query = query.where(Order.status == status.upper())
    if zone_id:
        query = query.where(Order.zone_id == zone_id)
    if driver_id:
        query = query.where(Order.driver_id == driver_id)
    if unzoned:
        query = query.where(Order.zone_id.is_(None))
    query = query.order_by(Order.created_at.desc()).offset(skip).limit(limit)
    result = await db.execute(query)
    return result.scalars().all()


@router.put("/orders/{order_id}/status", response_model=OrderResponse)
async def override_order_status(
    order_id: uuid.UUID,
    data: OrderStatusUpdate,
    db: AsyncSession = Depends(get_db),
):
    """Admin status change through the same transition table drivers use."""
    order = await _get_order(order_id, db)
    new_status = data.status.value
    if new_status == "ASSIGNED":
        raise HTTPException(status_code=400, detail="Use the assign-driver endpoint to assign orders")

    try:
        event = transition(order, new_status, "ADMIN", data.actor_id)
    except OrderTransitionError as e:
        raise HTTPException(status_code=400, detail=str(e))
    db.add(event)

    if order.driver_id and new_status in DRIVER_STATUS_AFTER:
        driver = await db.get(Driver, order.driver_id)
        if driver:
            driver.status = DRIVER_STATUS_AFTER[new_status]

    await db.commit()
    await db.refresh(order)
    await _notify_customer(order, db)
    return order


@router.post("/orders/{order_id}/assign", response_model=OrderResponse)
async def assign_driver(order_id: uuid.UUID, data: OrderAssign, db: AsyncSession = Depends(get_db)):
    """
    Manually hand an unclaimed order to a driver.

    Written as a conditional UPDATE like a driver's accept, so an order a
    driver claimed in the meantime is never taken away from them (409).
    """
    order = await _get_order(order_id, db)
    driver = await db.get(Driver, data.driver_id)
    if not driver:
        raise HTTPException(status_code=404, detail="Driver not found")
    if driver.status in ("OFFLINE", "SUSPENDED"):
        raise HTTPException(status_code=400, detail=f"Driver is {driver.status.lower()}")
    if driver.assigned_zone_id is None:
        # Zoneless drivers have an empty queue and would never see the order
        raise HTTPException(status_code=400, detail="Driver has no delivery zone")
    if order.driver_id is not None:
        raise HTTPException(status_code=400, detail="Order already has a driver")

    from_status = order.status
    if not can_transition(from_status, "ASSIGNED"):
        raise HTTPException(status_code=400, detail=f"Cannot move order from {from_status} to ASSIGNED")

    result = await db.execute(assign_order_statement(order.id, driver.id))
    if result.rowcount != 1:
        await db.rollback()
        logger.info("🏁 Admin assignment of order %s lost to a driver claim", order_id)
        raise HTTPException(status_code=409, detail="Order was already taken by another driver")
    db.add(record_event(order, from_status, "ASSIGNED", "ADMIN", None))

    if driver.assigned_zone_id != order.zone_id:
        logger.warning(
            "⚠️ Order %s (zone %s) assigned outside driver %s's zone %s",
            order.order_number, order.zone_id, driver.id, driver.assigned_zone_id,
        )

    await db.commit()
    await db.refresh(order)
    await _notify_customer(order, db, f"Driver: {driver.full_name} ({driver.phone or 'no phone'})")
    await send_message(
        driver.telegram_id,
        f"📦 <b>Order #{order.order_number}</b> has been assigned to you.\n"
        f"📍 {order.delivery_address}",
    )
    return order


@router.post("/orders/backfill-zones", response_model=ZoneBackfillResponse)
async def backfill_order_zones(db: AsyncSession = Depends(get_db)):
    """
    Stamp the customer's current zone onto orders that were created without one.
    Orders that already carry a zone id are never touched.
    """
    rows = (await db.execute(
        select(Order, User.zone_id)
        .join(User, Order.user_id == User.id)
        .where(Order.zone_id.is_(None), User.zone_id.is_not(None))
    )).all()

    fixed = []
    for order, zone_id in rows:
        order.zone_id = zone_id
        fixed.append(order.id)

    await db.commit()
    logger.info("🩹 Zone backfill: %d orders updated", len(fixed))
    return ZoneBackfillResponse(fixed=len(fixed), order_ids=fixed)


# ── Drivers ────────────────────────────────────────────────

async def _get_driver(driver_id: uuid.UUID, db: AsyncSession) -> Driver:
    driver = await db.get(Driver, driver_id)
    if not driver:
        raise HTTPException(status_code=404, detail="Driver not found")
    return driver


@router.get("/drivers", response_model=list[DriverResponse])
async def list_drivers(
    status: str | None = None,
    zone_id: uuid.UUID | None = None,
    db: AsyncSession = Depends(get_db),
):
    query = select(Driver)
    if status:
        query = query.where(Driver.status == status.upper())
    if zone_id:
        query = query.where(Driver.assigned_zone_id == zone_id)
    result = await db.execute(query.order_by(Driver.created_at.desc()))
    return result.scalars().all()


@router.post("/drivers", response_model=DriverResponse)
async def create_driver(data: DriverCreate, db: AsyncSession = Depends(get_db)):
    """Register a driver. The zone is set here by hand, never derived from GPS."""
    existing = await db.execute(
        select(Driver.id).where(
            or_(
                Driver.telegram_id == data.telegram_id,
                Driver.license_number == data.license_number,
                Driver.vehicle_plate == data.vehicle_plate,
            )
        )
    )
    if existing.first():
        raise HTTPException(
            status_code=409,
            detail="Driver with this Telegram ID, license number or vehicle plate already exists",
        )

    driver = Driver(**data.model_dump())
    db.add(driver)
    await db.commit()
    await db.refresh(driver)
    logger.info("Driver created: %s zone=%s", driver.full_name, driver.assigned_zone_id)
    return driver


@router.get("/drivers/{driver_id}", response_model=DriverResponse)
async def get_driver(driver_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    return await _get_driver(driver_id, db)


@router.patch("/drivers/{driver_id}", response_model=DriverResponse)
async def update_driver(driver_id: uuid.UUID, data: DriverUpdate, db: AsyncSession = Depends(get_db)):
    """
    Update driver fields. ``assigned_zone_id: null`` removes the driver from
    zone dispatch; omitting it leaves the zone unchanged.
    """
    driver = await _get_driver(driver_id, db)

    for field in data.model_fields_set:
        value = getattr(data, field)
        if value is None and field != "assigned_zone_id":
            continue
        if field == "status":
            value = value.value
        setattr(driver, field, value)

    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=409, detail="License number or vehicle plate already in use")
    await db.refresh(driver)

    logger.info("Driver updated: %s fields=%s", driver.id, sorted(data.model_fields_set))
    return driver


@router.delete("/drivers/{driver_id}")
async def delete_driver(driver_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    driver = await _get_driver(driver_id, db)
    orders = (await db.execute(
        select(func.count(Order.id)).where(Order.driver_id == driver.id)
    )).scalar() or 0
    if orders:
        active = (await db.execute(
            select(func.count(Order.id)).where(
                Order.driver_id == driver.id, Order.status.in_(ACTIVE_DELIVERY_STATUSES),
            )
        )).scalar() or 0
        detail = (
            "Driver has active deliveries" if active
            else "Driver has order history; suspend instead of deleting"
        )
        raise HTTPException(status_code=400, detail=detail)

    await db.delete(driver)
    await db.commit()
    return {"message": "Driver deleted", "id": str(driver_id)}


# ── Prices ─────────────────────────────────────────────────

async def _get_price(price_id: uuid.UUID, db: AsyncSession) -> Price:
    price = await db.get(Price, price_id)
    if not price:
        raise HTTPException(status_code=404, detail="Price not found")
    return price


@router.get("/prices", response_model=list[PriceResponse])
async def list_prices(db: AsyncSession = Depends(get_db)):
    result = await db.execute(select(Price).order_by(Price.type))
    return result.scalars().all()


@router.post("/prices", response_model=PriceResponse)
async def create_price(data: PriceCreate, db: AsyncSession = Depends(get_db)):
    price = Price(**data.model_dump())
    db.add(price)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=409, detail=f"A price for '{data.type}' already exists")
    await db.refresh(price)
    return price


@router.patch("/prices/{price_id}", response_model=PriceResponse)
async def update_price(price_id: uuid.UUID, data: PriceUpdate, db: AsyncSession = Depends(get_db)):
    price = await _get_price(price_id, db)
    for field, value in data.model_dump(exclude_unset=True).items():
        if value is not None:
            setattr(price, field, value)
    await db.commit()
    await db.refresh(price)
    return price


@router.delete("/prices/{price_id}")
async def delete_price(price_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    price = await _get_price(price_id, db)
    await db.delete(price)
    await db.commit()
    return {"message": "Price deleted", "id": str(price_id)}
