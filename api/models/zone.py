"""DeliveryZone ORM model — administrator-drawn delivery polygons."""

import uuid
from datetime import datetime
from sqlalchemy import String, Numeric, Boolean, DateTime, Text, JSON
from sqlalchemy.orm import Mapped, mapped_column
from db.database import Base


class DeliveryZone(Base):
    __tablename__ = "delivery_zones"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    color: Mapped[str] = mapped_column(String(20), nullable=False, default="#3B82F6")
    # Ordered [{"lat": float, "lng": float}, ...]; the closing vertex is implicit
    coordinates: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    delivery_fee: Mapped[float | None] = mapped_column(Numeric(12, 2))
    description: Mapped[str | None] = mapped_column(Text)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow)
