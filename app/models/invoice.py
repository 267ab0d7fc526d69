"""Invoice model."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from app.database import Base

if TYPE_CHECKING:
    from app.models.booking import Booking, CheckinCode


class Invoice(Base):
    """Financial record for a booking.

    ``booking_id`` is unique: at most one live invoice exists per booking.
    Financial fields are frozen once the invoice is paid.
    """

    __tablename__ = "invoices"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    invoice_number: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    owner_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    booking_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("bookings.id"), nullable=False, unique=True
    )
    checkin_code_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("checkin_codes.id")
    )
    title: Mapped[str | None] = mapped_column(String(255))

    # Amounts
    subtotal: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    tax_percent: Mapped[Decimal] = mapped_column(Numeric(5, 2), default=Decimal("0"))
    tax_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"))
    total: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))  # what the customer pays
    net_payable: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))  # owner share
    commission_percent: Mapped[Decimal | None] = mapped_column(Numeric(5, 2))
    commission_amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))

    # Status
    status: Mapped[str] = mapped_column(
        String(20), default="REQUESTED", index=True
    )  # REQUESTED, VERIFIED, APPROVED, PROCESSING, PAID, REJECTED, CUSTOMER_PAID (legacy)

    # Payment
    payment_ref: Mapped[str | None] = mapped_column(String(100), index=True)
    payment_method: Mapped[str | None] = mapped_column(String(30))
    notes: Mapped[str | None] = mapped_column(Text)

    # Receipt
    receipt_number: Mapped[str | None] = mapped_column(String(64))
    issued_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    booking: Mapped["Booking"] = relationship("Booking", back_populates="invoice")
    checkin_code: Mapped["CheckinCode | None"] = relationship("CheckinCode")
