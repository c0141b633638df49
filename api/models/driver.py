"""Driver ORM model — delivery staff with an administrator-assigned zone."""

import uuid
from datetime import datetime
from sqlalchemy import String, BigInteger, Numeric, DateTime, Uuid, Enum as PgEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship
from db.database import Base

DRIVER_STATUSES = ("AVAILABLE", "BUSY", "OFFLINE", "SUSPENDED")


class Driver(Base):
    __tablename__ = "drivers"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    telegram_id: Mapped[int] = mapped_column(BigInteger, unique=True, nullable=False)
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(20))
    license_number: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    vehicle_type: Mapped[str] = mapped_column(String(50), nullable=False)
    vehicle_plate: Mapped[str] = mapped_column(String(30), unique=True, nullable=False)
    status: Mapped[str] = mapped_column(
        PgEnum(*DRIVER_STATUSES, name="driver_status"),
        default="OFFLINE",
    )

    # Set by an administrator, never derived from the driver's position
    assigned_zone_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, index=True)

    current_lat: Mapped[float | None] = mapped_column(Numeric(10, 7))
    current_lng: Mapped[float | None] = mapped_column(Numeric(10, 7))
    last_location_update: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    orders = relationship("Order", back_populates="driver", lazy="selectin")
