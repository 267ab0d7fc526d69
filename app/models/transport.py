"""Transport booking model."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from app.database import Base


class TransportBooking(Base):
    """Ride attached to a stay through ``booking_ref`` (``BOOKING:<id>``)."""

    __tablename__ = "transport_bookings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int | None] = mapped_column(Integer, index=True)
    property_id: Mapped[int | None] = mapped_column(Integer)
    booking_ref: Mapped[str | None] = mapped_column(String(50), index=True)

    # Status
    status: Mapped[str] = mapped_column(
        String(30), default="PENDING_PAYMENT", index=True
    )  # PENDING_PAYMENT, PENDING_ASSIGNMENT, ASSIGNED, IN_PROGRESS, COMPLETED, CANCELED
    driver_id: Mapped[int | None] = mapped_column(Integer)

    # Trip
    vehicle_type: Mapped[str | None] = mapped_column(String(20))  # BODA, BAJAJI, CAR, XL
    scheduled_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    from_address: Mapped[str | None] = mapped_column(String(255))
    from_latitude: Mapped[Decimal | None] = mapped_column(Numeric(10, 6))
    from_longitude: Mapped[Decimal | None] = mapped_column(Numeric(10, 6))
    to_address: Mapped[str | None] = mapped_column(String(255))
    to_latitude: Mapped[Decimal | None] = mapped_column(Numeric(10, 6))
    to_longitude: Mapped[Decimal | None] = mapped_column(Numeric(10, 6))
    number_of_passengers: Mapped[int] = mapped_column(Integer, default=1)
    trip_code: Mapped[str | None] = mapped_column(String(16))

    # Money
    amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    currency: Mapped[str | None] = mapped_column(String(3))
    payment_status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="PENDING", server_default="PENDING"
    )  # PENDING, PAID
    payment_ref: Mapped[str | None] = mapped_column(String(100))
    payment_method: Mapped[str | None] = mapped_column(String(30))

    notes: Mapped[str | None] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
