"""
PropaneHub — FastAPI Backend
Zone-dispatched propane tank delivery
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from config import settings
from db.database import engine, Base
from observability import setup_logging
from routers import admin, admin_zones, drivers, orders, prices, users, zones

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    setup_logging(settings.LOG_LEVEL, settings.LOG_FORMAT)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("🚀 PropaneHub API starting...")
    yield
    await engine.dispose()
    logger.info("🛑 PropaneHub API shut down.")


app = FastAPI(
    title="PropaneHub API",
    description="Propane delivery backend with polygon delivery zones and zone-based dispatch",
    version="1.0.0",
    lifespan=lifespan,
)

# ── CORS ───────────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ── Routers ────────────────────────────────────────────────
app.include_router(users.router, prefix="/api/users", tags=["Users"])
app.include_router(orders.router, prefix="/api/orders", tags=["Orders"])
app.include_router(drivers.router, prefix="/api/drivers", tags=["Drivers"])
app.include_router(zones.router, prefix="/api/zones", tags=["Zones"])
app.include_router(prices.router, prefix="/api/prices", tags=["Prices"])
app.include_router(admin_zones.router, prefix="/api/admin", tags=["Admin Zones"])
app.include_router(admin.router, prefix="/api/admin", tags=["Admin Dashboard"])


@app.get("/health")
async def health_check():
    return {"status": "healthy", "service": "PropaneHub API"}


@app.get("/health/db")
async def health_db():
    """Verify the database answers."""
    try:
        async with engine.connect() as conn:
            zone_count = (await conn.execute(text("SELECT COUNT(*) FROM delivery_zones"))).scalar()
        return {"status": "ok", "zones_count": zone_count}
    except Exception as e:
        logger.error("Database health check failed: %s", e)
        return {"status": "error", "detail": str(e)}
