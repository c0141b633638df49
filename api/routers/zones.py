"""Public zone endpoints — active zones for the map and location validation."""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from db.database import get_db
from schemas import LatLng, LocationValidationResponse, ZoneResponse
from services.geo import LocationPoint
from services.zone_cache import get_active_zones
from services.zones import ValidationResult, validate_location_for_delivery

router = APIRouter()
logger = logging.getLogger(__name__)


def to_validation_response(result: ValidationResult) -> LocationValidationResponse:
    return LocationValidationResponse(
        is_serviceable=result.is_serviceable,
        message=result.message,
        zone=ZoneResponse.model_validate(result.zone) if result.zone is not None else None,
        delivery_fee=result.delivery_fee,
        nearest_zone=(
            ZoneResponse.model_validate(result.nearest_zone)
            if result.nearest_zone is not None else None
        ),
        distance_km=round(result.distance_km, 2) if result.distance_km is not None else None,
        suggestions=result.suggestions,
    )


@router.get("/", response_model=list[ZoneResponse])
async def list_active_zones(db: AsyncSession = Depends(get_db)):
    """Active delivery zones (for map rendering at signup / order time)."""
    return await get_active_zones(db)


@router.post("/validate", response_model=LocationValidationResponse)
async def validate_location(data: LatLng, db: AsyncSession = Depends(get_db)):
    """Classify a candidate point; nothing is persisted."""
    zones = await get_active_zones(db)
    result = validate_location_for_delivery(LocationPoint(data.lat, data.lng), zones)
    return to_validation_response(result)
