"""Pydantic schemas for API request/response models."""

from __future__ import annotations
import uuid
from datetime import datetime
from enum import Enum
from pydantic import BaseModel, Field


# ── Enums ──────────────────────────────────────────────────

class OrderStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    ASSIGNED = "ASSIGNED"
    IN_TRANSIT = "IN_TRANSIT"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


class DriverStatus(str, Enum):
    AVAILABLE = "AVAILABLE"
    BUSY = "BUSY"
    OFFLINE = "OFFLINE"
    SUSPENDED = "SUSPENDED"


class AddressType(str, Enum):
    HOUSE = "HOUSE"
    APARTMENT = "APARTMENT"
    BUSINESS = "BUSINESS"


class DriverAction(str, Enum):
    ACCEPT_ORDER = "accept_order"
    START_DELIVERY = "start_delivery"
    COMPLETE_DELIVERY = "complete_delivery"


# ── Geometry ───────────────────────────────────────────────

class LatLng(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


# ── Zone Schemas ───────────────────────────────────────────

class ZoneCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    color: str = Field("#3B82F6", max_length=20)
    coordinates: list[LatLng]
    delivery_fee: float | None = Field(None, ge=0)
    description: str | None = None
    is_active: bool = True


class ZoneUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=100)
    color: str | None = Field(None, max_length=20)
    coordinates: list[LatLng] | None = None
    delivery_fee: float | None = Field(None, ge=0)
    description: str | None = None
    is_active: bool | None = None


class ZoneResponse(BaseModel):
    id: uuid.UUID
    name: str
    color: str
    coordinates: list[LatLng]
    delivery_fee: float | None
    description: str | None
    is_active: bool = True

    class Config:
        from_attributes = True


class ZoneSummary(BaseModel):
    id: uuid.UUID
    name: str
    color: str

    class Config:
        from_attributes = True


class LocationValidationResponse(BaseModel):
    is_serviceable: bool
    message: str
    zone: ZoneResponse | None = None
    delivery_fee: float = 0.0
    nearest_zone: ZoneResponse | None = None
    distance_km: float | None = None
    suggestions: list[str] = []


class ZoneSetupResponse(BaseModel):
    message: str
    zones: list[ZoneResponse]


class ZoneConsistencyReport(BaseModel):
    active_zones: int
    users_without_zone: int
    orders_without_zone: int
    orders_backfillable: int
    drivers_without_zone: list[uuid.UUID]
    dangling_zone_ids: list[uuid.UUID]


# ── User Schemas ───────────────────────────────────────────

class UserCreate(BaseModel):
    telegram_id: int
    full_name: str
    phone: str | None = None
    telegram_username: str | None = None
    address_type: AddressType | None = None
    address: str | None = None
    complex_name: str | None = None
    building_number: str | None = None
    floor_number: str | None = None
    apartment_number: str | None = None
    city: str | None = None
    neighborhood: str | None = None
    business_name: str | None = None
    map_pin_lat: float | None = Field(None, ge=-90, le=90)
    map_pin_lng: float | None = Field(None, ge=-180, le=180)


class UserUpdate(BaseModel):
    full_name: str | None = None
    phone: str | None = None
    telegram_username: str | None = None
    address_type: AddressType | None = None
    address: str | None = None
    complex_name: str | None = None
    building_number: str | None = None
    floor_number: str | None = None
    apartment_number: str | None = None
    city: str | None = None
    neighborhood: str | None = None
    business_name: str | None = None


class UserLocationUpdate(LatLng):
    address: str | None = None


class UserResponse(BaseModel):
    id: uuid.UUID
    telegram_id: int
    full_name: str
    phone: str | None
    telegram_username: str | None
    address_type: str | None
    address: str | None
    map_pin_lat: float | None
    map_pin_lng: float | None
    zone_id: uuid.UUID | None
    is_blocked: bool
    created_at: datetime

    class Config:
        from_attributes = True


class IdentityResponse(BaseModel):
    is_customer: bool
    is_driver: bool
    customer_id: uuid.UUID | None = None
    driver_id: uuid.UUID | None = None
    driver_status: str | None = None


class UserLocationResponse(BaseModel):
    user: UserResponse
    validation: LocationValidationResponse


class UserProfileResponse(BaseModel):
    id: uuid.UUID
    full_name: str
    phone: str | None
    address: str
    address_type: str | None
    zone: ZoneSummary | None
    has_complete_profile: bool


# ── Driver Schemas ─────────────────────────────────────────

class DriverCreate(BaseModel):
    telegram_id: int
    full_name: str
    phone: str | None = None
    license_number: str = Field(..., min_length=1, max_length=50)
    vehicle_type: str = Field(..., min_length=1, max_length=50)
    vehicle_plate: str = Field(..., min_length=1, max_length=30)
    assigned_zone_id: uuid.UUID | None = None


class DriverUpdate(BaseModel):
    full_name: str | None = None
    phone: str | None = None
    license_number: str | None = None
    vehicle_type: str | None = None
    vehicle_plate: str | None = None
    status: DriverStatus | None = None
    # Explicit null clears the zone; omitting the field leaves it alone
    assigned_zone_id: uuid.UUID | None = None


class DriverResponse(BaseModel):
    id: uuid.UUID
    telegram_id: int
    full_name: str
    phone: str | None
    license_number: str
    vehicle_type: str
    vehicle_plate: str
    status: str
    assigned_zone_id: uuid.UUID | None
    current_lat: float | None
    current_lng: float | None
    last_location_update: datetime | None
    created_at: datetime

    class Config:
        from_attributes = True


class DriverStatusUpdate(BaseModel):
    status: DriverStatus


class DriverLocationUpdate(LatLng):
    pass


class DriverActionRequest(BaseModel):
    action: DriverAction


class DriverStats(BaseModel):
    total_deliveries: int
    today_deliveries: int
    pending_orders: int
    earnings_today: int
    status: str


# ── Order Schemas ──────────────────────────────────────────

class OrderCreate(BaseModel):
    telegram_id: int
    tank_type: str
    quantity: int = Field(1, ge=1)
    delivery_address: str | None = None
    phone_number: str | None = None
    notes: str | None = None


class OrderResponse(BaseModel):
    id: uuid.UUID
    order_number: str
    status: str
    tank_type: str
    quantity: int
    unit_price: float
    delivery_fee: float
    total_price: float
    delivery_address: str
    phone_number: str
    notes: str | None
    zone_id: uuid.UUID | None
    driver_id: uuid.UUID | None
    created_at: datetime
    delivered_at: datetime | None
    cancelled_at: datetime | None

    class Config:
        from_attributes = True


class OrderStatusUpdate(BaseModel):
    status: OrderStatus
    actor_id: uuid.UUID | None = None


class OrderAssign(BaseModel):
    driver_id: uuid.UUID


class OrderActionResponse(BaseModel):
    order: OrderResponse
    message: str


class DriverQueueResponse(BaseModel):
    driver_id: uuid.UUID
    zone: ZoneSummary | None
    has_zone: bool
    message: str | None
    mine: list[OrderResponse]
    available: list[OrderResponse]


class ZoneBackfillResponse(BaseModel):
    fixed: int
    order_ids: list[uuid.UUID]


# ── Price Schemas ──────────────────────────────────────────

class PriceCreate(BaseModel):
    type: str = Field(..., min_length=1, max_length=50)
    base_price: float = Field(..., ge=0)
    delivery_fee: float = Field(0, ge=0)
    is_active: bool = True


class PriceUpdate(BaseModel):
    base_price: float | None = Field(None, ge=0)
    delivery_fee: float | None = Field(None, ge=0)
    is_active: bool | None = None


class PriceResponse(BaseModel):
    id: uuid.UUID
    type: str
    base_price: float
    delivery_fee: float
    is_active: bool

    class Config:
        from_attributes = True


# ── Analytics Schemas ──────────────────────────────────────

class DashboardStats(BaseModel):
    total_orders: int
    orders_today: int
    orders_pending: int
    orders_in_transit: int
    orders_delivered: int
    orders_cancelled: int
    orders_without_zone: int
    revenue_today: float
    active_drivers: int
    zones_active: int
