"""Booking-to-invoice settlement.

CRITICAL BUSINESS LOGIC:
- Exactly one invoice per booking: a pre-transaction read drives the
  idempotent/stale-refresh path, an in-transaction re-check (plus the unique
  ``invoices.booking_id`` constraint) makes concurrent requests converge
- invoice.total = accommodation after commission + transport fare
- invoice.net_payable = accommodation before commission (the owner never
  receives commission or transport money)
- Paid invoices are never modified; observing one activates the stay's rides
- A fresh invoice never activates transport: only a confirmed payment does
"""

import logging
import re
from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.config import settings
from app.core.exceptions import (
    InvoiceConflictError,
    NotFoundError,
    PropertyNotApprovedError,
)
from app.domain.invoice_state import (
    PAID,
    REQUESTED,
    assert_invoice_transition,
    is_paid_like,
)
from app.models.booking import Booking
from app.models.invoice import Invoice
from app.models.transport import TransportBooking
from app.services.booking_code_service import BookingCodeService, booking_code_service
from app.services.commission_service import (
    ZERO,
    ZERO_MONEY,
    CommissionService,
    commission_service,
    round_money,
    split_price,
    to_finite_decimal,
)
from app.services.notification_service import RealtimePublisher
from app.services.transport_service import (
    TransportActivationService,
    transport_activation_service,
)
from app.utils.references import (
    booking_correlation_key,
    generate_payment_reference,
    make_invoice_number,
    make_receipt_number,
)

logger = logging.getLogger(__name__)

# Written into special_requests by bookings made before transport_fare existed
LEGACY_TRANSPORT_MARKER = re.compile(r"TRANSPORT_INCLUDED\|fare:(\d+(?:\.\d+)?)")


def parse_legacy_transport_fare(notes: str | None) -> Decimal | None:
    """Transport fare embedded in legacy free-text notes, if any."""
    if not notes:
        return None
    match = LEGACY_TRANSPORT_MARKER.search(notes)
    if match is None:
        return None
    return to_finite_decimal(match.group(1))


@dataclass(frozen=True)
class StayFacts:
    """Plain values read from a booking, its property and its code."""

    booking_id: int
    owner_id: int
    property_id: int
    property_title: str
    property_services: Any
    base_price: Decimal | None
    currency: str
    check_in: datetime
    check_out: datetime
    nights: int
    total_amount: Decimal | None
    include_transport: bool
    transport_fare: Decimal | None
    special_requests: str | None
    code_id: int | None
    code: str | None

    @classmethod
    def from_booking(cls, booking: Booking) -> "StayFacts":
        prop = booking.property
        return cls(
            booking_id=booking.id,
            owner_id=prop.owner_id,
            property_id=prop.id,
            property_title=prop.title,
            property_services=prop.services,
            base_price=prop.base_price,
            currency=prop.currency or settings.default_currency,
            check_in=booking.check_in,
            check_out=booking.check_out,
            nights=booking.nights,
            total_amount=booking.total_amount,
            include_transport=bool(booking.include_transport),
            transport_fare=booking.transport_fare,
            special_requests=booking.special_requests,
            code_id=booking.code.id if booking.code else None,
            code=booking.code.code if booking.code else None,
        )

    @property
    def effective_transport_fare(self) -> Decimal:
        """Authoritative fare field first, legacy notes marker second."""
        if self.include_transport:
            fare = to_finite_decimal(self.transport_fare)
            if fare is not None and fare > 0:
                return fare
        return parse_legacy_transport_fare(self.special_requests) or ZERO


@dataclass(frozen=True)
class Charges:
    """Intended invoice amounts for a stay."""

    nights: int
    transport_fare: Decimal
    accommodation_subtotal: Decimal
    commission_percent: Decimal
    commission_amount: Decimal
    accommodation_total: Decimal
    effective_total: Decimal


def compute_charges(facts: StayFacts, commission_percent: Decimal) -> Charges:
    """Split a stay's price into accommodation, commission and transport."""
    transport_fare = facts.effective_transport_fare
    total_amount = to_finite_decimal(facts.total_amount)
    if total_amount is not None:
        # total_amount already covers rooms, room pricing and transport
        subtotal = max(ZERO, total_amount - transport_fare)
    else:
        subtotal = (to_finite_decimal(facts.base_price) or ZERO) * facts.nights

    split = split_price(subtotal, commission_percent)
    return Charges(
        nights=facts.nights,
        transport_fare=transport_fare,
        accommodation_subtotal=subtotal,
        commission_percent=commission_percent if split.commission > 0 else ZERO,
        commission_amount=split.commission,
        accommodation_total=split.total,
        effective_total=round_money(split.total + transport_fare),
    )


def format_money(amount: Decimal, currency: str) -> str:
    return f"{amount:,.2f} {currency}"


def charge_summary(charges: Charges, currency: str) -> str:
    parts = [f"Accommodation: {format_money(charges.accommodation_total, currency)}"]
    if charges.transport_fare > 0:
        parts.append(f"Transport: {format_money(charges.transport_fare, currency)}")
    parts.append(f"Total: {format_money(charges.effective_total, currency)}")
    return " | ".join(parts)


@dataclass
class SettlementResult:
    """Outcome of a settlement request."""

    invoice: Invoice
    created: bool
    facts: StayFacts
    charges: Charges
    booking_code: str | None


class InvoiceService:
    """Creates, refreshes and projects booking invoices."""

    def __init__(
        self,
        commission: CommissionService = commission_service,
        codes: BookingCodeService = booking_code_service,
        transport: TransportActivationService = transport_activation_service,
    ) -> None:
        self.commission = commission
        self.codes = codes
        self.transport = transport

    # ==================== LOOKUPS ====================

    async def get_invoice_for_booking(self, db: AsyncSession, booking_id: int) -> Invoice | None:
        result = await db.execute(
            select(Invoice)
            .where(Invoice.booking_id == booking_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def _load_booking(self, db: AsyncSession, booking_id: int) -> Booking | None:
        result = await db.execute(
            select(Booking)
            .options(selectinload(Booking.property), selectinload(Booking.code))
            .where(Booking.id == booking_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    # ==================== SETTLEMENT ====================

    async def settle(
        self,
        db: AsyncSession,
        booking_id: int,
        publisher: RealtimePublisher | None = None,
    ) -> SettlementResult:
        """Create the booking's invoice, or return the one it already has.

        Args:
            db: Database session (committed at each step by this call)
            booking_id: Booking to invoice
            publisher: Real-time publisher used if the invoice is already paid

        Returns:
            SettlementResult: ``created`` is False for an existing invoice

        Raises:
            NotFoundError: booking missing
            PropertyNotApprovedError: property not APPROVED
            BookingCodeExhaustedError: no check-in code could be allocated
            InvoiceConflictError: creation conflicted and no invoice was found
        """
        booking = await self._load_booking(db, booking_id)
        if booking is None:
            raise NotFoundError("Booking", str(booking_id))
        if not booking.property.is_approved:
            raise PropertyNotApprovedError(booking.property.status)

        facts = StayFacts.from_booking(booking)
        commission_percent = await self.commission.resolve_commission_percent(
            db, facts.property_services
        )
        charges = compute_charges(facts, commission_percent)

        existing = await self.get_invoice_for_booking(db, booking_id)
        if existing is not None:
            invoice = await self._resolve_existing(db, existing, facts, charges, publisher)
            return SettlementResult(invoice, False, facts, charges, facts.code)

        # Outside the invoice transaction: collisions retry without holding it
        if facts.code_id is not None:
            code_id, code = facts.code_id, facts.code
        else:
            checkin_code = await self.codes.ensure_code(db, booking_id)
            code_id, code = checkin_code.id, checkin_code.code

        invoice, created = await self._create_invoice(db, facts, charges, code_id)
        return SettlementResult(invoice, created, facts, charges, code)

    async def _resolve_existing(
        self,
        db: AsyncSession,
        invoice: Invoice,
        facts: StayFacts,
        charges: Charges,
        publisher: RealtimePublisher | None,
    ) -> Invoice:
        if is_paid_like(invoice.status, invoice.receipt_number):
            await self.transport.activate(
                db,
                facts.booking_id,
                payment_ref=invoice.payment_ref,
                payment_method=invoice.payment_method,
                publisher=publisher,
            )
            await db.refresh(invoice)
            return invoice

        if self.is_stale(invoice, facts, charges):
            self.apply_charges(invoice, charges)
            await db.commit()
            logger.info(
                f"Refreshed stale invoice {invoice.id} for booking {facts.booking_id}: "
                f"total={invoice.total} net={invoice.net_payable}"
            )
        return invoice

    @staticmethod
    def is_stale(invoice: Invoice, facts: StayFacts, charges: Charges) -> bool:
        """Whether an unpaid invoice predates the current pricing rules.

        An invoice whose total equals the raw booking total while commission
        is expected was written before commission-aware totals existed.
        """
        total = to_finite_decimal(invoice.total)
        if total is None or total <= 0:
            return True
        if invoice.net_payable is None:
            return True
        if charges.commission_amount > 0:
            booking_total = to_finite_decimal(facts.total_amount)
            if booking_total is not None and total == booking_total:
                return True
            if invoice.commission_amount is None or invoice.commission_percent is None:
                return True
        return False

    @staticmethod
    def apply_charges(invoice: Invoice, charges: Charges) -> None:
        """Overwrite amounts only; number, booking and payment ref stay."""
        invoice.subtotal = charges.accommodation_subtotal
        invoice.total = charges.effective_total
        invoice.net_payable = charges.accommodation_subtotal
        invoice.commission_percent = charges.commission_percent or None
        invoice.commission_amount = charges.commission_amount or None

    async def _create_invoice(
        self,
        db: AsyncSession,
        facts: StayFacts,
        charges: Charges,
        code_id: int,
    ) -> tuple[Invoice, bool]:
        booking_id = facts.booking_id
        await db.commit()

        try:
            # Serialises creators on stores with row locks
            await db.execute(
                select(Booking.id).where(Booking.id == booking_id).with_for_update()
            )
            duplicate = await self.get_invoice_for_booking(db, booking_id)
            if duplicate is not None:
                await db.commit()
                logger.info(f"Invoice {duplicate.id} for booking {booking_id} created concurrently")
                return duplicate, False

            invoice = Invoice(
                invoice_number=make_invoice_number(booking_id, code_id),
                owner_id=facts.owner_id,
                booking_id=booking_id,
                checkin_code_id=code_id,
                title=f"{facts.property_title} - Accommodation Invoice",
                subtotal=charges.accommodation_subtotal,
                tax_percent=ZERO_MONEY,
                tax_amount=ZERO_MONEY,
                total=charges.effective_total,
                net_payable=charges.accommodation_subtotal,
                commission_percent=charges.commission_percent or None,
                commission_amount=charges.commission_amount or None,
                status=REQUESTED,
                payment_ref=generate_payment_reference(booking_id),
                notes=charge_summary(charges, facts.currency),
                issued_at=datetime.now(UTC),
            )
            db.add(invoice)
            await db.commit()
        except IntegrityError:
            await db.rollback()
            existing = await self.get_invoice_for_booking(db, booking_id)
            if existing is None:
                raise InvoiceConflictError(booking_id)
            logger.info(f"Invoice insert for booking {booking_id} lost the race to {existing.id}")
            return existing, False

        logger.info(
            f"Created invoice {invoice.id} ({invoice.invoice_number}) for booking {booking_id}: "
            f"total={invoice.total} net={invoice.net_payable} commission={invoice.commission_amount}"
        )
        return invoice, True

    # ==================== PAYMENT CONFIRMATION ====================

    async def mark_paid(
        self,
        db: AsyncSession,
        invoice_id: int,
        payment_method: str | None = None,
        payment_ref: str | None = None,
        publisher: RealtimePublisher | None = None,
    ) -> Invoice:
        """Record a confirmed payment and activate the stay's rides.

        Repeating the call for a paid invoice changes nothing but re-runs
        activation, which only touches rides still awaiting payment.
        """
        result = await db.execute(
            select(Invoice)
            .where(Invoice.id == invoice_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        invoice = result.scalar_one_or_none()
        if invoice is None:
            raise NotFoundError("Invoice", str(invoice_id))

        if not is_paid_like(invoice.status, invoice.receipt_number):
            assert_invoice_transition(invoice.status, PAID)
            invoice.status = PAID
            invoice.paid_at = datetime.now(UTC)
            invoice.payment_method = payment_method or invoice.payment_method
            invoice.payment_ref = payment_ref or invoice.payment_ref
            invoice.receipt_number = invoice.receipt_number or make_receipt_number(invoice.id)
            await db.commit()
            logger.info(f"Invoice {invoice.id} marked paid (ref={invoice.payment_ref})")

        await self.transport.activate(
            db,
            invoice.booking_id,
            payment_ref=invoice.payment_ref,
            payment_method=invoice.payment_method,
            publisher=publisher,
        )
        await db.refresh(invoice)
        return invoice

    # ==================== PUBLIC PROJECTION ====================

    async def project(self, db: AsyncSession, invoice_id: int) -> dict[str, Any]:
        """Public view of an invoice; commission is never exposed."""
        result = await db.execute(
            select(Invoice)
            .options(
                selectinload(Invoice.booking).selectinload(Booking.property),
                selectinload(Invoice.booking).selectinload(Booking.code),
            )
            .where(Invoice.id == invoice_id)
            .execution_options(populate_existing=True)
        )
        invoice = result.scalar_one_or_none()
        if invoice is None:
            raise NotFoundError("Invoice", str(invoice_id))

        booking = invoice.booking
        prop = booking.property
        total = max(ZERO, to_finite_decimal(invoice.total) or ZERO)

        trip_result = await db.execute(
            select(TransportBooking.amount)
            .where(TransportBooking.booking_ref == booking_correlation_key(booking.id))
            .order_by(TransportBooking.id)
            .limit(1)
        )
        trip_amounts = trip_result.scalars().all()
        if trip_amounts:
            fare = to_finite_decimal(trip_amounts[0]) or ZERO
        else:
            fare = StayFacts.from_booking(booking).effective_transport_fare
        fare = min(total, max(ZERO, fare))

        return {
            "id": invoice.id,
            "invoice_number": invoice.invoice_number,
            "payment_ref": invoice.payment_ref,
            "status": invoice.status,
            "total_amount": total,
            "currency": prop.currency or settings.default_currency,
            "price_breakdown": {
                "accommodation_subtotal": total - fare,
                "transport_fare": fare,
                "commission": ZERO,
                "total": total,
            },
            "booking": {
                "id": booking.id,
                "booking_code": booking.code.code if booking.code else None,
                "check_in": booking.check_in,
                "check_out": booking.check_out,
                "nights": booking.nights,
            },
            "property": {
                "id": prop.id,
                "title": prop.title,
                "primary_image": prop.primary_image,
            },
        }


# Singleton instance
invoice_service = InvoiceService()
