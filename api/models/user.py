"""User (customer) ORM model."""

import uuid
from datetime import datetime
from sqlalchemy import String, BigInteger, Boolean, DateTime, Numeric, Text, Uuid, Enum as PgEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship
from db.database import Base


class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    telegram_id: Mapped[int] = mapped_column(BigInteger, unique=True, nullable=False)
    telegram_username: Mapped[str | None] = mapped_column(String(255))
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(20))

    # Delivery address
    address_type: Mapped[str | None] = mapped_column(
        PgEnum("HOUSE", "APARTMENT", "BUSINESS", name="address_type"),
    )
    address: Mapped[str | None] = mapped_column(Text)
    complex_name: Mapped[str | None] = mapped_column(String(255))
    building_number: Mapped[str | None] = mapped_column(String(50))
    floor_number: Mapped[str | None] = mapped_column(String(50))
    apartment_number: Mapped[str | None] = mapped_column(String(50))
    city: Mapped[str | None] = mapped_column(String(100))
    neighborhood: Mapped[str | None] = mapped_column(String(255))
    business_name: Mapped[str | None] = mapped_column(String(255))
    map_pin_lat: Mapped[float | None] = mapped_column(Numeric(10, 7))
    map_pin_lng: Mapped[float | None] = mapped_column(Numeric(10, 7))

    # Written by geofencing whenever the map pin changes. Not a foreign key:
    # a deleted zone leaves a dangling id that readers treat as "no zone".
    zone_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, index=True)

    is_blocked: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    orders = relationship("Order", back_populates="user", lazy="selectin")
