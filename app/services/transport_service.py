"""Transport activation after a stay is paid.

Rides requested together with a stay wait in a pre-assignment state until
the stay's invoice is paid. Activation makes them claimable by drivers,
fills in trip details the ride request left blank, and announces them on
the available-drivers channel.
"""

import logging
from typing import Any

from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.config import settings
from app.models.booking import Booking
from app.models.property import Property
from app.models.transport import TransportBooking
from app.services.commission_service import to_finite_decimal
from app.services.notification_service import RealtimePublisher, realtime_publisher
from app.utils.references import booking_correlation_key

logger = logging.getLogger(__name__)

PENDING_PAYMENT = "PENDING_PAYMENT"
PENDING_ASSIGNMENT = "PENDING_ASSIGNMENT"
PRE_ASSIGNMENT_STATUSES = (PENDING_PAYMENT, PENDING_ASSIGNMENT)
PAYMENT_PAID = "PAID"

TRIP_AVAILABLE_EVENT = "transport:booking:created"
DEFAULT_VEHICLE_TYPE = "CAR"
DESTINATION_LABEL_MAX_LENGTH = 255

# Notes written by the ride-request flow itself, safe to replace
STALE_NOTE_PREFIXES = (
    "awaiting payment",
    "pending payment",
    "scheduled with stay booking",
    "auction policy:",
    "nolsaf auction policy:",
)


def destination_label(prop: Property | None) -> str | None:
    """Human-readable destination built from the property's location fields."""
    if prop is None:
        return None
    parts = [
        (value or "").strip()
        for value in (prop.title, prop.street, prop.ward, prop.district, prop.region, prop.city)
    ]
    label = ", ".join(part for part in parts if part)
    return label[:DESTINATION_LABEL_MAX_LENGTH] or None


def is_placeholder_note(notes: str | None) -> bool:
    if notes is None or not notes.strip():
        return True
    return notes.strip().lower().startswith(STALE_NOTE_PREFIXES)


def _is_unset(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def trip_defaults(booking: Booking | None) -> dict[str, Any]:
    """Trip field values implied by the stay booking and its property."""
    if booking is None:
        return {}
    defaults: dict[str, Any] = {
        "user_id": booking.user_id,
        "property_id": booking.property_id,
        "vehicle_type": booking.transport_vehicle_type or DEFAULT_VEHICLE_TYPE,
        "from_address": booking.transport_origin_address,
        "scheduled_date": booking.transport_scheduled_date or booking.check_in,
    }
    prop = booking.property
    if prop is not None:
        defaults.update(
            to_address=destination_label(prop),
            to_latitude=prop.latitude,
            to_longitude=prop.longitude,
            currency=prop.currency or settings.default_currency,
        )
    fare = to_finite_decimal(booking.transport_fare)
    if fare is not None and fare > 0:
        defaults["amount"] = fare
    return defaults


def backfill_trip(trip: TransportBooking, defaults: dict[str, Any], policy_notice: str) -> bool:
    """Fill fields the ride request left unset; never overwrite a value.

    Returns:
        bool: True if anything changed
    """
    changed = False
    for attr, value in defaults.items():
        current = getattr(trip, attr)
        if attr == "amount":
            amount = to_finite_decimal(current)
            missing = amount is None or amount <= 0
        else:
            missing = _is_unset(current)
        if missing and not _is_unset(value):
            setattr(trip, attr, value)
            changed = True

    if is_placeholder_note(trip.notes) and trip.notes != policy_notice:
        trip.notes = policy_notice
        changed = True

    return changed


def trip_available_payload(trip: TransportBooking, booking_id: int) -> dict[str, Any]:
    """Fields a driver client needs to evaluate and claim a trip."""
    amount = to_finite_decimal(trip.amount)
    return {
        "bookingId": trip.id,
        "stayBookingId": booking_id,
        "tripCode": trip.trip_code,
        "vehicleType": trip.vehicle_type,
        "scheduledDate": trip.scheduled_date.isoformat() if trip.scheduled_date else None,
        "fromAddress": trip.from_address,
        "toAddress": trip.to_address,
        "toLatitude": float(trip.to_latitude) if trip.to_latitude is not None else None,
        "toLongitude": float(trip.to_longitude) if trip.to_longitude is not None else None,
        "amount": float(amount) if amount is not None else None,
        "currency": trip.currency,
        "propertyId": trip.property_id,
        "numberOfPassengers": trip.number_of_passengers,
    }


def payment_unsettled():
    """Rides whose payment has not been recorded, including a NULL status."""
    return or_(
        TransportBooking.payment_status.is_(None),
        TransportBooking.payment_status != PAYMENT_PAID,
    )


class TransportActivationService:
    """Activates and announces the rides attached to a paid stay."""

    def __init__(self, policy_notice: str | None = None) -> None:
        self.policy_notice = policy_notice or settings.transport_policy_notice

    async def pending_trip_ids(self, db: AsyncSession, booking_id: int) -> list[int]:
        """Rides for the booking that still wait for payment."""
        result = await db.execute(
            select(TransportBooking.id)
            .where(
                TransportBooking.booking_ref == booking_correlation_key(booking_id),
                TransportBooking.status.in_(PRE_ASSIGNMENT_STATUSES),
                payment_unsettled(),
            )
            .order_by(TransportBooking.id)
        )
        return list(result.scalars().all())

    async def activate(
        self,
        db: AsyncSession,
        booking_id: int,
        payment_ref: str | None = None,
        payment_method: str | None = None,
        publisher: RealtimePublisher | None = None,
    ) -> list[int]:
        """Make a paid stay's rides assignable and notify drivers.

        Must only be called once the governing invoice is paid. The status
        flip is committed before anything else; backfill and notification
        failures are logged and never undo it.

        Args:
            db: Database session (committed by this call)
            booking_id: The stay booking
            payment_ref: Invoice payment reference (defaults to the correlation key)
            payment_method: Invoice payment method
            publisher: Real-time publisher

        Returns:
            list[int]: Ids of the rides activated by this call
        """
        trip_ids = await self.pending_trip_ids(db, booking_id)
        if not trip_ids:
            return []

        booking_result = await db.execute(
            select(Booking)
            .options(selectinload(Booking.property))
            .where(Booking.id == booking_id)
            .execution_options(populate_existing=True)
        )
        defaults = trip_defaults(booking_result.scalar_one_or_none())

        flip = await db.execute(
            update(TransportBooking)
            .where(
                TransportBooking.id.in_(trip_ids),
                TransportBooking.status.in_(PRE_ASSIGNMENT_STATUSES),
                payment_unsettled(),
            )
            .values(
                status=PENDING_ASSIGNMENT,
                payment_status=PAYMENT_PAID,
                payment_ref=payment_ref or booking_correlation_key(booking_id),
                payment_method=func.coalesce(payment_method, TransportBooking.payment_method),
                updated_at=func.now(),
            )
            .returning(TransportBooking.id)
            .execution_options(synchronize_session=False)
        )
        activated = sorted(flip.scalars().all())
        await db.commit()
        if not activated:
            return []
        logger.info(f"Activated transport bookings {activated} for booking {booking_id}")

        payloads = []
        for trip_id in activated:
            payload = await self._backfill(db, trip_id, defaults, booking_id)
            if payload is not None:
                payloads.append(payload)

        await self._announce(payloads, booking_id, publisher or realtime_publisher)
        return activated

    async def _backfill(
        self,
        db: AsyncSession,
        trip_id: int,
        defaults: dict[str, Any],
        booking_id: int,
    ) -> dict[str, Any] | None:
        try:
            trip = await db.get(TransportBooking, trip_id, populate_existing=True)
            if trip is None:
                return None
            if backfill_trip(trip, defaults, self.policy_notice):
                await db.commit()
            return trip_available_payload(trip, booking_id)
        except Exception:
            logger.warning(f"Backfill failed for transport booking {trip_id}", exc_info=True)
            await db.rollback()

        try:
            trip = await db.get(TransportBooking, trip_id, populate_existing=True)
        except Exception:
            logger.warning(f"Transport booking {trip_id} unreadable after failed backfill", exc_info=True)
            return None
        return trip_available_payload(trip, booking_id) if trip is not None else None

    async def _announce(
        self,
        payloads: list[dict[str, Any]],
        booking_id: int,
        publisher: RealtimePublisher,
    ) -> None:
        for payload in payloads:
            try:
                await publisher.publish(settings.drivers_channel, TRIP_AVAILABLE_EVENT, payload)
            except Exception:
                logger.warning(
                    f"Driver notification failed for transport booking {payload['bookingId']} "
                    f"(booking {booking_id})",
                    exc_info=True,
                )


# Singleton instance
transport_activation_service = TransportActivationService()
