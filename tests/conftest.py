"""
Shared test setup.

The API reads its settings at import time, so the environment is pointed at a
throwaway SQLite file (and the Redis cache is switched off) before any test
module imports ``config``.
"""

import os
import sys
import tempfile
import uuid
from datetime import datetime, timedelta

_DB_PATH = os.path.join(tempfile.gettempdir(), f"propanehub_test_{os.getpid()}.db")

os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_DB_PATH}"
os.environ["REDIS_URL"] = ""
os.environ["TELEGRAM_BOT_TOKEN"] = ""
os.environ["ADMIN_TELEGRAM_ID"] = ""
os.environ["ENFORCE_SIMPLE_POLYGONS"] = "false"

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "api"))
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session

from db.database import Base
import models  # noqa: F401  (registers every table on Base.metadata)

SQUARE = [
    {"lat": 0, "lng": 0},
    {"lat": 0, "lng": 10},
    {"lat": 10, "lng": 10},
    {"lat": 10, "lng": 0},
]


@pytest.fixture
def sync_engine():
    """Fresh schema on the test database file, dropped afterwards."""
    engine = create_engine(f"sqlite:///{_DB_PATH}")
    Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session(sync_engine):
    with Session(sync_engine, expire_on_commit=False) as s:
        yield s


@pytest.fixture
def client(sync_engine):
    """FastAPI TestClient running against the same SQLite file."""
    from fastapi.testclient import TestClient
    from main import app

    with TestClient(app) as c:
        yield c


class FakeZone:
    """Anything with id/name/coordinates/delivery_fee is a zone to the resolver."""

    def __init__(self, name, coordinates, delivery_fee=None, zone_id=None):
        self.id = zone_id or uuid.uuid4()
        self.name = name
        self.coordinates = coordinates
        self.delivery_fee = delivery_fee


class FakeOrder:
    def __init__(self, zone_id=None, driver_id=None, status="PENDING", age_min=0):
        self.id = uuid.uuid4()
        self.zone_id = zone_id
        self.driver_id = driver_id
        self.status = status
        self.created_at = datetime(2024, 1, 1, 12, 0) - timedelta(minutes=age_min)


class FakeDriver:
    def __init__(self, assigned_zone_id=None, status="AVAILABLE"):
        self.id = uuid.uuid4()
        self.assigned_zone_id = assigned_zone_id
        self.status = status


def square(lat0, lng0, size):
    return [
        {"lat": lat0, "lng": lng0},
        {"lat": lat0, "lng": lng0 + size},
        {"lat": lat0 + size, "lng": lng0 + size},
        {"lat": lat0 + size, "lng": lng0},
    ]
