"""Customer API endpoints — signup, profile and geofenced delivery location."""

import logging
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from db.database import get_db
from models import User, Driver, DeliveryZone
from routers.zones import to_validation_response
from schemas import (
    UserCreate, UserUpdate, UserResponse, UserLocationUpdate,
    UserLocationResponse, UserProfileResponse, IdentityResponse, ZoneSummary,
)
from services.address import clean_text, format_delivery_address
from services.geo import LocationPoint
from services.zone_cache import get_active_zones
from services.zones import classify_zone_id, validate_location_for_delivery

router = APIRouter()
logger = logging.getLogger(__name__)

ADDRESS_FIELDS = (
    "address", "complex_name", "building_number", "floor_number",
    "apartment_number", "city", "neighborhood", "business_name",
)


async def _get_user(telegram_id: int, db: AsyncSession) -> User:
    result = await db.execute(select(User).where(User.telegram_id == telegram_id))
    user = result.scalar_one_or_none()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


# ── Identity Resolution ────────────────────────────────────

@router.get("/identity/{telegram_id}", response_model=IdentityResponse)
async def resolve_identity(telegram_id: int, db: AsyncSession = Depends(get_db)):
    """
    Determine if a Telegram user is a customer, a driver, both, or new.
    Called on every /start to route the bot experience.
    """
    user = (await db.execute(
        select(User).where(User.telegram_id == telegram_id)
    )).scalar_one_or_none()
    driver = (await db.execute(
        select(Driver).where(Driver.telegram_id == telegram_id)
    )).scalar_one_or_none()

    return IdentityResponse(
        is_customer=user is not None,
        is_driver=driver is not None,
        customer_id=user.id if user else None,
        driver_id=driver.id if driver else None,
        driver_status=driver.status if driver else None,
    )


# ── Signup / Profile ───────────────────────────────────────

@router.post("/", response_model=UserResponse)
async def create_or_get_user(data: UserCreate, db: AsyncSession = Depends(get_db)):
    """Sign up a customer (or return the existing one). A map pin is geofenced."""
    existing = (await db.execute(
        select(User).where(User.telegram_id == data.telegram_id)
    )).scalar_one_or_none()
    if existing:
        return existing

    zone_id = None
    if data.map_pin_lat is not None and data.map_pin_lng is not None:
        zones = await get_active_zones(db)
        zone_id = classify_zone_id(data.map_pin_lat, data.map_pin_lng, zones)

    user = User(
        telegram_id=data.telegram_id,
        full_name=data.full_name,
        phone=data.phone,
        telegram_username=data.telegram_username,
        address_type=data.address_type.value if data.address_type else None,
        map_pin_lat=data.map_pin_lat,
        map_pin_lng=data.map_pin_lng,
        zone_id=zone_id,
        **{f: clean_text(getattr(data, f)) for f in ADDRESS_FIELDS},
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    logger.info("User created: telegram_id=%s zone_id=%s", data.telegram_id, zone_id)
    return user


@router.patch("/{telegram_id}", response_model=UserResponse)
async def update_user(telegram_id: int, data: UserUpdate, db: AsyncSession = Depends(get_db)):
    """Update profile fields. Location changes go through /location."""
    user = await _get_user(telegram_id, db)

    for field, value in data.model_dump(exclude_unset=True).items():
        if field in ADDRESS_FIELDS:
            value = clean_text(value)
        elif field == "address_type" and value is not None:
            value = value.value if hasattr(value, "value") else value
        setattr(user, field, value)

    await db.commit()
    await db.refresh(user)
    logger.info("User updated: telegram_id=%s", telegram_id)
    return user


@router.patch("/{telegram_id}/location", response_model=UserLocationResponse)
async def update_user_location(
    telegram_id: int,
    data: UserLocationUpdate,
    db: AsyncSession = Depends(get_db),
):
    """
    Store a new map pin and re-classify the customer's zone.
    Outside every zone ⇒ zone_id is cleared. Existing orders keep their zone.
    """
    user = await _get_user(telegram_id, db)
    zones = await get_active_zones(db)
    result = validate_location_for_delivery(LocationPoint(data.lat, data.lng), zones)

    old_zone_id = user.zone_id
    user.map_pin_lat = data.lat
    user.map_pin_lng = data.lng
    user.zone_id = result.zone_id
    if data.address is not None:
        user.address = clean_text(data.address)

    await db.commit()
    await db.refresh(user)
    logger.info(
        "📍 User %s relocated: zone %s → %s", telegram_id, old_zone_id, user.zone_id,
    )
    return UserLocationResponse(
        user=UserResponse.model_validate(user),
        validation=to_validation_response(result),
    )


@router.get("/{telegram_id}/profile", response_model=UserProfileResponse)
async def get_user_profile(telegram_id: int, db: AsyncSession = Depends(get_db)):
    """Delivery-ready profile: formatted address and zone."""
    user = await _get_user(telegram_id, db)
    address = format_delivery_address(user)

    zone = None
    if user.zone_id is not None:
        zone = await db.get(DeliveryZone, user.zone_id)

    return UserProfileResponse(
        id=user.id,
        full_name=user.full_name,
        phone=user.phone,
        address=address,
        address_type=user.address_type,
        zone=ZoneSummary.model_validate(zone) if zone else None,
        has_complete_profile=bool(user.phone and address),
    )


@router.get("/{telegram_id}", response_model=UserResponse)
async def get_user_by_telegram(telegram_id: int, db: AsyncSession = Depends(get_db)):
    """Get user by Telegram ID."""
    return await _get_user(telegram_id, db)


@router.get("/", response_model=list[UserResponse])
async def list_users(skip: int = 0, limit: int = 50, db: AsyncSession = Depends(get_db)):
    """List all users (paginated)."""
    result = await db.execute(
        select(User).offset(skip).limit(limit).order_by(User.created_at.desc())
    )
    return result.scalars().all()
