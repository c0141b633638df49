"""
Active-zone cache — short-lived Redis copy of the zone set used for geofencing.

Every classification needs the full active zone list. It changes rarely
(admin edits), so it is cached as JSON under ``zones:active`` with a short TTL
and dropped explicitly whenever an admin creates, edits or deletes a zone.

Redis is optional: an empty REDIS_URL, or any Redis error, falls back to the
database. Cache failures are logged and never raised.
"""

from __future__ import annotations

import json
import logging
import uuid
from dataclasses import dataclass, asdict

import redis.asyncio as aioredis
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from models import DeliveryZone

logger = logging.getLogger(__name__)

ACTIVE_ZONES_KEY = "zones:active"

_redis: aioredis.Redis | None = None


@dataclass
class ZoneSnapshot:
    id: uuid.UUID
    name: str
    color: str
    coordinates: list[dict]
    delivery_fee: float | None
    description: str | None
    is_active: bool = True

    @classmethod
    def from_model(cls, zone: DeliveryZone) -> "ZoneSnapshot":
        return cls(
            id=zone.id,
            name=zone.name,
            color=zone.color,
            coordinates=list(zone.coordinates or []),
            delivery_fee=float(zone.delivery_fee) if zone.delivery_fee is not None else None,
            description=zone.description,
            is_active=zone.is_active,
        )

    def to_json(self) -> dict:
        data = asdict(self)
        data["id"] = str(self.id)
        return data

    @classmethod
    def from_json(cls, data: dict) -> "ZoneSnapshot":
        return cls(**{**data, "id": uuid.UUID(data["id"])})


async def _get_redis() -> aioredis.Redis | None:
    global _redis
    if not settings.REDIS_URL:
        return None
    if _redis is None:
        _redis = aioredis.from_url(settings.REDIS_URL, decode_responses=True)
    return _redis


async def _load_from_db(db: AsyncSession) -> list[ZoneSnapshot]:
    result = await db.execute(
        select(DeliveryZone)
        .where(DeliveryZone.is_active == True)  # noqa: E712
        .order_by(DeliveryZone.name)
    )
    return [ZoneSnapshot.from_model(z) for z in result.scalars().all()]


async def get_active_zones(db: AsyncSession) -> list[ZoneSnapshot]:
    """Active zones ordered by name; this order is the overlap tie-break."""
    r = await _get_redis()

    if r is not None:
        try:
            cached = await r.get(ACTIVE_ZONES_KEY)
            if cached:
                return [ZoneSnapshot.from_json(z) for z in json.loads(cached)]
        except Exception as e:
            logger.warning("⚠️ Zone cache read failed, using database: %s", e)

    zones = await _load_from_db(db)

    if r is not None:
        try:
            await r.set(
                ACTIVE_ZONES_KEY,
                json.dumps([z.to_json() for z in zones]),
                ex=settings.ZONE_CACHE_TTL_SEC,
            )
        except Exception as e:
            logger.warning("⚠️ Zone cache write failed: %s", e)

    logger.debug("Loaded %d active zones from database", len(zones))
    return zones


async def invalidate_active_zones() -> None:
    """Drop the cached zone set after any admin zone mutation."""
    r = await _get_redis()
    if r is None:
        return
    try:
        await r.delete(ACTIVE_ZONES_KEY)
        logger.info("🧹 Active zone cache invalidated")
    except Exception as e:
        logger.warning("⚠️ Zone cache invalidation failed: %s", e)
