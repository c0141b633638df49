"""Admin zone management — polygons, quick-setup templates and consistency checks."""

import uuid
import logging
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select, func, union
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from db.database import get_db
from models import DeliveryZone, Driver, Order, User
from schemas import (
    ZoneCreate, ZoneUpdate, ZoneResponse, ZoneSetupResponse, ZoneConsistencyReport,
)
from services.zone_cache import invalidate_active_zones
from services.zones import ZONE_TEMPLATES, ZonePolygonError, normalize_polygon

router = APIRouter()
logger = logging.getLogger(__name__)


def _polygon_or_400(coordinates) -> list[dict]:
    try:
        return normalize_polygon(
            [c.model_dump() for c in coordinates],
            enforce_simple=settings.ENFORCE_SIMPLE_POLYGONS,
        )
    except ZonePolygonError as e:
        raise HTTPException(status_code=400, detail=str(e))


async def _get_zone(zone_id: uuid.UUID, db: AsyncSession) -> DeliveryZone:
    zone = await db.get(DeliveryZone, zone_id)
    if not zone:
        raise HTTPException(status_code=404, detail="Zone not found")
    return zone


async def _commit_or_409(db: AsyncSession) -> None:
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=409, detail="A zone with this name already exists")


# ── CRUD ───────────────────────────────────────────────────

@router.get("/zones", response_model=list[ZoneResponse])
async def list_zones(db: AsyncSession = Depends(get_db)):
    """All zones, active and inactive."""
    result = await db.execute(select(DeliveryZone).order_by(DeliveryZone.name))
    return result.scalars().all()


@router.post("/zones", response_model=ZoneResponse)
async def create_zone(data: ZoneCreate, db: AsyncSession = Depends(get_db)):
    coordinates = _polygon_or_400(data.coordinates)

    existing = await db.execute(select(DeliveryZone.id).where(DeliveryZone.name == data.name))
    if existing.scalar_one_or_none():
        raise HTTPException(status_code=409, detail="A zone with this name already exists")

    zone = DeliveryZone(
        name=data.name,
        color=data.color,
        coordinates=coordinates,
        delivery_fee=data.delivery_fee,
        description=data.description,
        is_active=data.is_active,
    )
    db.add(zone)
    await _commit_or_409(db)
    await db.refresh(zone)
    await invalidate_active_zones()

    logger.info("🗺️ Zone created: %s (%d points)", zone.name, len(coordinates))
    return zone


@router.get("/zones/consistency", response_model=ZoneConsistencyReport)
async def zone_consistency(db: AsyncSession = Depends(get_db)):
    """
    Zone bookkeeping health: orders that never got a zone id although their
    customer has one now, drivers without a zone, and zone ids that point at
    deleted zones.
    """
    active_zones = (await db.execute(
        select(func.count(DeliveryZone.id)).where(DeliveryZone.is_active == True)  # noqa: E712
    )).scalar() or 0

    users_without_zone = (await db.execute(
        select(func.count(User.id)).where(User.zone_id.is_(None))
    )).scalar() or 0

    orders_without_zone = (await db.execute(
        select(func.count(Order.id)).where(Order.zone_id.is_(None))
    )).scalar() or 0

    orders_backfillable = (await db.execute(
        select(func.count(Order.id))
        .join(User, Order.user_id == User.id)
        .where(Order.zone_id.is_(None), User.zone_id.is_not(None))
    )).scalar() or 0

    drivers_without_zone = (await db.execute(
        select(Driver.id).where(Driver.assigned_zone_id.is_(None)).order_by(Driver.full_name)
    )).scalars().all()

    referenced = union(
        select(User.zone_id.label("zone_id")).where(User.zone_id.is_not(None)),
        select(Order.zone_id).where(Order.zone_id.is_not(None)),
        select(Driver.assigned_zone_id).where(Driver.assigned_zone_id.is_not(None)),
    ).subquery()
    known = set((await db.execute(select(DeliveryZone.id))).scalars().all())
    referenced_ids = (await db.execute(select(referenced.c.zone_id))).scalars().all()
    dangling = sorted({z for z in referenced_ids if z not in known}, key=str)

    return ZoneConsistencyReport(
        active_zones=active_zones,
        users_without_zone=users_without_zone,
        orders_without_zone=orders_without_zone,
        orders_backfillable=orders_backfillable,
        drivers_without_zone=list(drivers_without_zone),
        dangling_zone_ids=dangling,
    )


@router.get("/zones/{zone_id}", response_model=ZoneResponse)
async def get_zone(zone_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    return await _get_zone(zone_id, db)


@router.put("/zones/{zone_id}", response_model=ZoneResponse)
async def update_zone(zone_id: uuid.UUID, data: ZoneUpdate, db: AsyncSession = Depends(get_db)):
    """
    Edit a zone. Customers are not re-classified: their zone id changes only
    when they move their pin.
    """
    zone = await _get_zone(zone_id, db)
    updates = data.model_dump(exclude_unset=True)

    if "coordinates" in updates:
        if data.coordinates is None:
            raise HTTPException(status_code=400, detail="coordinates cannot be null")
        updates["coordinates"] = _polygon_or_400(data.coordinates)

    if updates.get("name") and updates["name"] != zone.name:
        clash = await db.execute(
            select(DeliveryZone.id).where(
                DeliveryZone.name == updates["name"], DeliveryZone.id != zone.id,
            )
        )
        if clash.scalar_one_or_none():
            raise HTTPException(status_code=409, detail="A zone with this name already exists")

    for field, value in updates.items():
        if field in ("name", "color", "is_active") and value is None:
            continue
        setattr(zone, field, value)

    await _commit_or_409(db)
    await db.refresh(zone)
    await invalidate_active_zones()

    logger.info("🗺️ Zone updated: %s fields=%s", zone.name, sorted(updates))
    return zone


@router.delete("/zones/{zone_id}")
async def delete_zone(zone_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    """
    Delete a zone. Users, orders and drivers that referenced it keep the now
    dangling id and are treated as having no zone.
    """
    zone = await _get_zone(zone_id, db)
    name = zone.name
    await db.delete(zone)
    await db.commit()
    await invalidate_active_zones()

    logger.info("🗑️ Zone deleted: %s (%s)", name, zone_id)
    return {"message": f"Zone '{name}' deleted", "id": str(zone_id)}


# ── Quick setup ────────────────────────────────────────────

@router.post("/zones/setup/{template}", response_model=ZoneSetupResponse)
async def setup_zone_template(template: str, db: AsyncSession = Depends(get_db)):
    """Create a predefined zone layout. Refused once any zone exists."""
    zones_data = ZONE_TEMPLATES.get(template.lower())
    if zones_data is None:
        raise HTTPException(status_code=404, detail=f"Unknown zone template '{template}'")

    existing = (await db.execute(select(func.count(DeliveryZone.id)))).scalar() or 0
    if existing:
        raise HTTPException(
            status_code=400,
            detail="Zones already exist. Delete them first or create zones manually.",
        )

    created = [DeliveryZone(is_active=True, **z) for z in zones_data]
    db.add_all(created)
    await db.commit()
    for zone in created:
        await db.refresh(zone)
    await invalidate_active_zones()

    logger.info("🗺️ Zone template '%s' applied: %d zones", template, len(created))
    return ZoneSetupResponse(
        message=f"Created {len(created)} zones from the '{template}' template",
        zones=[ZoneResponse.model_validate(z) for z in created],
    )
