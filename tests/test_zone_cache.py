"""Tests for the active-zone cache (mocked Redis)."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "api"))

import json
import uuid

import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from services.zone_cache import ACTIVE_ZONES_KEY, ZoneSnapshot, get_active_zones, invalidate_active_zones


def _snapshot(name="Central Dahuk"):
    return ZoneSnapshot(
        id=uuid.uuid4(),
        name=name,
        color="#3B82F6",
        coordinates=[{"lat": 0, "lng": 0}, {"lat": 0, "lng": 1}, {"lat": 1, "lng": 1}],
        delivery_fee=15000.0,
        description=None,
    )


def test_snapshot_json_keeps_uuid():
    snap = _snapshot()
    restored = ZoneSnapshot.from_json(json.loads(json.dumps(snap.to_json())))
    assert restored == snap
    assert isinstance(restored.id, uuid.UUID)


@pytest.mark.asyncio
async def test_cache_hit_skips_database():
    snap = _snapshot()
    mock_conn = AsyncMock()
    mock_conn.get.return_value = json.dumps([snap.to_json()])
    load = AsyncMock()

    with patch("services.zone_cache._get_redis", AsyncMock(return_value=mock_conn)), \
            patch("services.zone_cache._load_from_db", load):
        zones = await get_active_zones(MagicMock())

    assert zones == [snap]
    load.assert_not_called()
    mock_conn.set.assert_not_called()


@pytest.mark.asyncio
async def test_cache_miss_loads_and_stores():
    snaps = [_snapshot("A"), _snapshot("B")]
    mock_conn = AsyncMock()
    mock_conn.get.return_value = None

    with patch("services.zone_cache._get_redis", AsyncMock(return_value=mock_conn)), \
            patch("services.zone_cache._load_from_db", AsyncMock(return_value=snaps)):
        zones = await get_active_zones(MagicMock())

    assert zones == snaps
    mock_conn.set.assert_called_once()
    key, payload = mock_conn.set.call_args.args
    assert key == ACTIVE_ZONES_KEY
    assert [z["name"] for z in json.loads(payload)] == ["A", "B"]
    assert "ex" in mock_conn.set.call_args.kwargs


@pytest.mark.asyncio
async def test_redis_failure_falls_back_to_database():
    snaps = [_snapshot()]
    mock_conn = AsyncMock()
    mock_conn.get.side_effect = ConnectionError("redis down")
    mock_conn.set.side_effect = ConnectionError("redis down")

    with patch("services.zone_cache._get_redis", AsyncMock(return_value=mock_conn)), \
            patch("services.zone_cache._load_from_db", AsyncMock(return_value=snaps)):
        zones = await get_active_zones(MagicMock())

    assert zones == snaps


@pytest.mark.asyncio
async def test_cache_disabled_uses_database():
    snaps = [_snapshot()]
    with patch("services.zone_cache._get_redis", AsyncMock(return_value=None)), \
            patch("services.zone_cache._load_from_db", AsyncMock(return_value=snaps)):
        assert await get_active_zones(MagicMock()) == snaps


@pytest.mark.asyncio
async def test_invalidate_deletes_key_and_swallows_errors():
    mock_conn = AsyncMock()
    with patch("services.zone_cache._get_redis", AsyncMock(return_value=mock_conn)):
        await invalidate_active_zones()
    mock_conn.delete.assert_called_once_with(ACTIVE_ZONES_KEY)

    mock_conn.delete.side_effect = ConnectionError("redis down")
    with patch("services.zone_cache._get_redis", AsyncMock(return_value=mock_conn)):
        await invalidate_active_zones()
