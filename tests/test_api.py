"""
API tests through FastAPI's TestClient on a SQLite database.

Walks the zone → customer → order → driver flow end to end.
"""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "api"))

import uuid

import pytest
from unittest.mock import patch

from conftest import square
from services.dispatch import claim_order_statement

CENTRAL_PIN = {"lat": 36.8572, "lng": 43.0076}
EASTERN_PIN = {"lat": 36.8572, "lng": 43.0276}
FAR_PIN = {"lat": 36.19, "lng": 44.01}


@pytest.fixture
def zones(client):
    resp = client.post("/api/admin/zones/setup/dahuk")
    assert resp.status_code == 200
    return {z["name"]: z for z in resp.json()["zones"]}


@pytest.fixture
def price(client):
    resp = client.post("/api/admin/prices", json={"type": "12kg", "base_price": 10000, "delivery_fee": 2000})
    assert resp.status_code == 200
    return resp.json()


def _customer(client, telegram_id=111, pin=CENTRAL_PIN):
    resp = client.post("/api/users/", json={
        "telegram_id": telegram_id,
        "full_name": "Customer",
        "phone": "07501234567",
        "address": "Street 60, House 12",
        "map_pin_lat": pin["lat"] if pin else None,
        "map_pin_lng": pin["lng"] if pin else None,
    })
    assert resp.status_code == 200
    return resp.json()


def _driver(client, telegram_id, zone_id, plate):
    resp = client.post("/api/admin/drivers", json={
        "telegram_id": telegram_id,
        "full_name": f"Driver {telegram_id}",
        "phone": "07700000000",
        "license_number": f"LIC-{telegram_id}",
        "vehicle_type": "Pickup",
        "vehicle_plate": plate,
        "assigned_zone_id": zone_id,
    })
    assert resp.status_code == 200
    client.patch(f"/api/drivers/telegram/{telegram_id}/status", json={"status": "AVAILABLE"})
    return resp.json()


def _order(client, telegram_id=111, quantity=2):
    resp = client.post("/api/orders/", json={"telegram_id": telegram_id, "tank_type": "12kg", "quantity": quantity})
    assert resp.status_code == 200, resp.text
    return resp.json()


# ── Zones ──────────────────────────────────────────────────

def test_health(client):
    assert client.get("/health").json()["status"] == "healthy"


def test_public_zones_sorted_by_name(client, zones):
    names = [z["name"] for z in client.get("/api/zones/").json()]
    assert names == sorted(zones)


def test_validate_location(client, zones):
    inside = client.post("/api/zones/validate", json=CENTRAL_PIN).json()
    assert inside["is_serviceable"] is True
    assert inside["zone"]["name"] == "Central Dahuk"
    assert inside["delivery_fee"] == 15000

    outside = client.post("/api/zones/validate", json=FAR_PIN).json()
    assert outside["is_serviceable"] is False
    assert outside["nearest_zone"] is not None
    assert outside["distance_km"] > 50
    assert len(outside["suggestions"]) == 2


def test_validate_with_no_zones(client):
    body = client.post("/api/zones/validate", json=CENTRAL_PIN).json()
    assert body["is_serviceable"] is False
    assert body["message"] == "No delivery zones are configured yet."


def test_validate_rejects_out_of_range_coordinates(client):
    assert client.post("/api/zones/validate", json={"lat": 120, "lng": 0}).status_code == 422


def test_setup_refused_when_zones_exist(client, zones):
    resp = client.post("/api/admin/zones/setup/dahuk")
    assert resp.status_code == 400


def test_zone_crud(client):
    resp = client.post("/api/admin/zones", json={"name": "Test", "coordinates": square(0, 0, 1), "delivery_fee": 5000})
    assert resp.status_code == 200
    zone = resp.json()

    dup = client.post("/api/admin/zones", json={"name": "Test", "coordinates": square(5, 5, 1)})
    assert dup.status_code == 409

    too_few = client.post("/api/admin/zones", json={"name": "Line", "coordinates": square(0, 0, 1)[:2]})
    assert too_few.status_code == 400

    resp = client.put(f"/api/admin/zones/{zone['id']}", json={"delivery_fee": 7500, "is_active": False})
    assert resp.json()["delivery_fee"] == 7500
    assert client.get("/api/zones/").json() == []

    assert client.delete(f"/api/admin/zones/{zone['id']}").status_code == 200
    assert client.get(f"/api/admin/zones/{zone['id']}").status_code == 404


# ── Customers ──────────────────────────────────────────────

def test_signup_classifies_pin(client, zones):
    user = _customer(client)
    assert user["zone_id"] == zones["Central Dahuk"]["id"]

    outside = _customer(client, telegram_id=222, pin=FAR_PIN)
    assert outside["zone_id"] is None


def test_relocation_reclassifies_but_keeps_order_snapshot(client, zones, price):
    _customer(client)
    order = _order(client)
    assert order["zone_id"] == zones["Central Dahuk"]["id"]

    resp = client.patch("/api/users/111/location", json=EASTERN_PIN)
    assert resp.status_code == 200
    body = resp.json()
    assert body["validation"]["zone"]["name"] == "Eastern Suburbs"
    assert body["user"]["zone_id"] == zones["Eastern Suburbs"]["id"]

    assert client.get(f"/api/orders/{order['id']}").json()["zone_id"] == zones["Central Dahuk"]["id"]


def test_relocation_outside_clears_zone(client, zones):
    _customer(client)
    body = client.patch("/api/users/111/location", json=FAR_PIN).json()
    assert body["validation"]["is_serviceable"] is False
    assert body["user"]["zone_id"] is None


def test_profile_and_identity(client, zones):
    _customer(client)
    profile = client.get("/api/users/111/profile").json()
    assert profile["address"] == "Street 60, House 12"
    assert profile["zone"]["name"] == "Central Dahuk"
    assert profile["has_complete_profile"] is True

    identity = client.get("/api/users/identity/111").json()
    assert identity["is_customer"] is True
    assert identity["is_driver"] is False


# ── Orders & dispatch ──────────────────────────────────────

def test_order_total(client, zones, price):
    _customer(client)
    order = _order(client, quantity=3)
    assert order["total_price"] == 36000
    assert order["status"] == "PENDING"
    assert order["driver_id"] is None


def test_order_unknown_tank_type(client, zones, price):
    _customer(client)
    resp = client.post("/api/orders/", json={"telegram_id": 111, "tank_type": "99kg", "quantity": 1})
    assert resp.status_code == 404


def test_queue_is_zone_filtered(client, zones, price):
    _customer(client)
    order = _order(client)
    central = _driver(client, 900, zones["Central Dahuk"]["id"], "DH-1")
    _driver(client, 901, zones["Eastern Suburbs"]["id"], "DH-2")
    _driver(client, 902, None, "DH-3")

    central_queue = client.get("/api/drivers/telegram/900/queue").json()
    assert central_queue["has_zone"] is True
    assert central_queue["zone"]["name"] == "Central Dahuk"
    assert [o["id"] for o in central_queue["available"]] == [order["id"]]
    assert central_queue["driver_id"] == central["id"]

    eastern_queue = client.get("/api/drivers/telegram/901/queue").json()
    assert eastern_queue["available"] == []

    zoneless = client.get("/api/drivers/telegram/902/queue").json()
    assert zoneless["has_zone"] is False
    assert zoneless["message"] == "No delivery zone assigned. Contact an administrator."
    assert zoneless["available"] == [] and zoneless["mine"] == []


def test_driver_delivery_flow(client, zones, price):
    _customer(client)
    order = _order(client)
    central_id = zones["Central Dahuk"]["id"]
    _driver(client, 900, central_id, "DH-1")
    _driver(client, 903, central_id, "DH-4")
    action = "/api/drivers/telegram/{tid}/orders/" + order["id"] + "/action"

    resp = client.post(action.format(tid=900), json={"action": "accept_order"})
    assert resp.status_code == 200
    assert resp.json()["message"] == "Order accepted successfully"
    assert resp.json()["order"]["status"] == "ASSIGNED"

    # Already taken: gone from the other driver's queue, accept refused
    assert client.get("/api/drivers/telegram/903/queue").json()["available"] == []
    assert client.post(action.format(tid=903), json={"action": "accept_order"}).status_code == 400

    mine = client.get("/api/drivers/telegram/900/queue").json()["mine"]
    assert [o["id"] for o in mine] == [order["id"]]

    resp = client.patch("/api/drivers/telegram/900/status", json={"status": "OFFLINE"})
    assert resp.status_code == 400

    assert client.post(action.format(tid=900), json={"action": "start_delivery"}).status_code == 200
    assert client.get("/api/drivers/telegram/900").json()["status"] == "BUSY"

    resp = client.post(f"/api/orders/{order['id']}/cancel")
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Cannot cancel an order that is in transit or delivered"

    resp = client.post(action.format(tid=900), json={"action": "complete_delivery"})
    assert resp.json()["order"]["status"] == "DELIVERED"
    assert resp.json()["order"]["delivered_at"] is not None

    stats = client.get("/api/drivers/telegram/900/stats").json()
    assert stats["total_deliveries"] == 1
    assert stats["today_deliveries"] == 1
    assert stats["earnings_today"] == 2400
    assert stats["status"] == "AVAILABLE"


def test_other_zone_driver_cannot_see_or_accept(client, zones, price):
    _customer(client)
    order = _order(client)
    _driver(client, 901, zones["Eastern Suburbs"]["id"], "DH-2")

    assert client.get(f"/api/drivers/telegram/901/orders/{order['id']}").status_code == 404
    resp = client.post(
        f"/api/drivers/telegram/901/orders/{order['id']}/action", json={"action": "accept_order"},
    )
    assert resp.status_code == 400


def test_customer_cancel(client, zones, price):
    _customer(client)
    order = _order(client)
    resp = client.post(f"/api/orders/{order['id']}/cancel")
    assert resp.status_code == 200
    assert resp.json()["status"] == "CANCELLED"
    assert client.post(f"/api/orders/{order['id']}/cancel").status_code == 400


# ── Admin ──────────────────────────────────────────────────

def test_unzoned_order_backfill(client, zones, price):
    _customer(client, pin=FAR_PIN)
    order = _order(client)
    assert order["zone_id"] is None

    client.patch("/api/users/111/location", json=CENTRAL_PIN)
    report = client.get("/api/admin/zones/consistency").json()
    assert report["orders_without_zone"] == 1
    assert report["orders_backfillable"] == 1

    result = client.post("/api/admin/orders/backfill-zones").json()
    assert result == {"fixed": 1, "order_ids": [order["id"]]}
    assert client.get(f"/api/orders/{order['id']}").json()["zone_id"] == zones["Central Dahuk"]["id"]

    assert client.post("/api/admin/orders/backfill-zones").json()["fixed"] == 0


def test_admin_assign_and_status_override(client, zones, price):
    _customer(client, pin=FAR_PIN)
    order = _order(client)
    driver = _driver(client, 904, zones["Central Dahuk"]["id"], "DH-5")

    resp = client.put(f"/api/admin/orders/{order['id']}/status", json={"status": "ASSIGNED"})
    assert resp.status_code == 400

    resp = client.post(f"/api/admin/orders/{order['id']}/assign", json={"driver_id": driver["id"]})
    assert resp.status_code == 200
    assert resp.json()["driver_id"] == driver["id"]
    mine = client.get("/api/drivers/telegram/904/queue").json()["mine"]
    assert [o["id"] for o in mine] == [order["id"]]

    resp = client.put(f"/api/admin/orders/{order['id']}/status", json={"status": "IN_TRANSIT"})
    assert resp.json()["status"] == "IN_TRANSIT"
    assert client.get("/api/drivers/telegram/904").json()["status"] == "BUSY"

    resp = client.put(f"/api/admin/orders/{order['id']}/status", json={"status": "PENDING"})
    assert resp.status_code == 400


def test_admin_cannot_assign_to_zoneless_driver(client, zones, price):
    _customer(client, pin=FAR_PIN)
    order = _order(client)
    driver = _driver(client, 906, None, "DH-7")

    resp = client.post(f"/api/admin/orders/{order['id']}/assign", json={"driver_id": driver["id"]})
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Driver has no delivery zone"
    assert client.get(f"/api/orders/{order['id']}").json()["driver_id"] is None


def test_admin_assign_loses_to_driver_claim(client, session, zones, price):
    _customer(client)
    order = _order(client)
    central_id = zones["Central Dahuk"]["id"]
    claimer = _driver(client, 907, central_id, "DH-8")
    admin_pick = _driver(client, 908, central_id, "DH-9")

    def driver_claims_first(from_status, to_status):
        # The driver's accept commits after the admin loaded the order
        result = session.execute(claim_order_statement(
            uuid.UUID(order["id"]), uuid.UUID(claimer["id"]), uuid.UUID(central_id),
        ))
        session.commit()
        assert result.rowcount == 1
        return True

    with patch("routers.admin.can_transition", side_effect=driver_claims_first):
        resp = client.post(
            f"/api/admin/orders/{order['id']}/assign", json={"driver_id": admin_pick["id"]},
        )

    assert resp.status_code == 409
    assert client.get(f"/api/orders/{order['id']}").json()["driver_id"] == claimer["id"]
    mine = client.get("/api/drivers/telegram/907/queue").json()["mine"]
    assert [o["id"] for o in mine] == [order["id"]]


def test_zoneless_driver_cannot_open_own_order(client, zones, price):
    _customer(client)
    order = _order(client)
    driver = _driver(client, 909, zones["Central Dahuk"]["id"], "DH-10")
    client.post(f"/api/drivers/telegram/909/orders/{order['id']}/action", json={"action": "accept_order"})
    client.patch(f"/api/admin/drivers/{driver['id']}", json={"assigned_zone_id": None})

    assert client.get(f"/api/drivers/telegram/909/orders/{order['id']}").status_code == 404
    assert client.get("/api/drivers/telegram/909/queue").json()["mine"] == []


def test_driver_zone_can_be_cleared(client, zones):
    driver = _driver(client, 905, zones["Central Dahuk"]["id"], "DH-6")

    resp = client.patch(f"/api/admin/drivers/{driver['id']}", json={"full_name": "Renamed"})
    assert resp.json()["assigned_zone_id"] == zones["Central Dahuk"]["id"]

    resp = client.patch(f"/api/admin/drivers/{driver['id']}", json={"assigned_zone_id": None})
    assert resp.json()["assigned_zone_id"] is None
    assert client.get("/api/admin/zones/consistency").json()["drivers_without_zone"] == [driver["id"]]


def test_deleted_zone_leaves_dangling_ids(client, zones, price):
    _customer(client)
    _order(client)
    central_id = zones["Central Dahuk"]["id"]
    client.delete(f"/api/admin/zones/{central_id}")

    profile = client.get("/api/users/111/profile").json()
    assert profile["zone"] is None
    assert client.get("/api/admin/zones/consistency").json()["dangling_zone_ids"] == [central_id]


def test_dashboard_counts(client, zones, price):
    _customer(client)
    _order(client)
    stats = client.get("/api/admin/dashboard").json()
    assert stats["total_orders"] == 1
    assert stats["orders_pending"] == 1
    assert stats["zones_active"] == 5
