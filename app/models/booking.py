"""Booking and check-in code models."""

from __future__ import annotations

import math
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from app.database import Base

if TYPE_CHECKING:
    from app.models.invoice import Invoice
    from app.models.property import Property

SECONDS_PER_DAY = 24 * 60 * 60


class Booking(Base):
    """Accommodation reservation."""

    __tablename__ = "bookings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    property_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("properties.id"), nullable=False, index=True
    )
    user_id: Mapped[int | None] = mapped_column(Integer, index=True)

    # Stay
    check_in: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    check_out: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    rooms_qty: Mapped[int] = mapped_column(Integer, default=1)
    adults: Mapped[int] = mapped_column(Integer, default=1)
    children: Mapped[int] = mapped_column(Integer, default=0)

    # Accommodation + transport, commission excluded
    total_amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    status: Mapped[str] = mapped_column(String(20), default="NEW")

    # Transport
    include_transport: Mapped[bool] = mapped_column(Boolean, default=False)
    transport_fare: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    transport_vehicle_type: Mapped[str | None] = mapped_column(String(20))
    transport_origin_address: Mapped[str | None] = mapped_column(String(255))
    transport_scheduled_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # Legacy notes; may embed "TRANSPORT_INCLUDED|fare:<n>"
    special_requests: Mapped[str | None] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    @property
    def nights(self) -> int:
        """Nights billed: partial days round up, never fewer than one."""
        seconds = (self.check_out - self.check_in).total_seconds()
        return max(1, math.ceil(seconds / SECONDS_PER_DAY))

    property: Mapped["Property"] = relationship("Property", back_populates="bookings")
    code: Mapped["CheckinCode | None"] = relationship(
        "CheckinCode", back_populates="booking", uselist=False
    )
    invoice: Mapped["Invoice | None"] = relationship(
        "Invoice", back_populates="booking", uselist=False
    )


class CheckinCode(Base):
    """Shareable check-in code, one per booking."""

    __tablename__ = "checkin_codes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    booking_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("bookings.id"), nullable=False, unique=True
    )
    code: Mapped[str] = mapped_column(String(16), nullable=False, unique=True)
    code_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    code_visible: Mapped[str | None] = mapped_column(String(16))
    status: Mapped[str] = mapped_column(String(20), default="ACTIVE")  # ACTIVE, USED, VOID
    generated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    used_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    booking: Mapped["Booking"] = relationship("Booking", back_populates="code")
