"""Public price list."""

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from db.database import get_db
from models import Price
from schemas import PriceResponse

router = APIRouter()


@router.get("/", response_model=list[PriceResponse])
async def list_active_prices(db: AsyncSession = Depends(get_db)):
    result = await db.execute(
        select(Price).where(Price.is_active == True).order_by(Price.type)  # noqa: E712
    )
    return result.scalars().all()
