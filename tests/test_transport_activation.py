from datetime import UTC, datetime
from decimal import Decimal

import pytest
from sqlalchemy import MetaData, insert

from app.config import settings
from app.models.transport import TransportBooking
from app.services.transport_service import (
    DESTINATION_LABEL_MAX_LENGTH,
    TRIP_AVAILABLE_EVENT,
    TransportActivationService,
    destination_label,
    is_placeholder_note,
)
from tests.conftest import RecordingPublisher

POLICY = settings.transport_policy_notice


@pytest.fixture
def service():
    return TransportActivationService()


@pytest.fixture
async def stay(make_property, make_booking):
    prop = await make_property()
    booking = await make_booking(
        prop,
        include_transport=True,
        transport_fare=Decimal("20000"),
        transport_vehicle_type="BAJAJI",
        transport_origin_address="Kilimanjaro International Airport",
    )
    return prop.id, booking.id


async def reload(db, trip_id):
    return await db.get(TransportBooking, trip_id, populate_existing=True)


def test_destination_label_joins_location_fields():
    class Place:
        title = "Lodge"
        street = " Sokoine Road "
        ward = ""
        district = None
        region = "Kilimanjaro"
        city = "Moshi"

    assert destination_label(Place()) == "Lodge, Sokoine Road, Kilimanjaro, Moshi"
    assert destination_label(None) is None


def test_destination_label_is_bounded():
    class Place:
        title = "L" * 300
        street = ward = district = region = city = None

    assert len(destination_label(Place())) == DESTINATION_LABEL_MAX_LENGTH


@pytest.mark.parametrize(
    "notes, placeholder",
    [
        (None, True),
        ("   ", True),
        ("Awaiting payment for stay", True),
        ("Scheduled with stay booking #12", True),
        ("Auction Policy: old wording", True),
        ("Please bring a child seat", False),
    ],
)
def test_placeholder_notes(notes, placeholder):
    assert is_placeholder_note(notes) is placeholder


async def test_activation_flips_and_backfills(db, service, stay, make_trip):
    property_id, booking_id = stay
    trip = await make_trip(booking_id, notes="Awaiting payment")
    trip_id = trip.id
    publisher = RecordingPublisher()

    activated = await service.activate(
        db, booking_id, payment_ref="INVREF-1-2-abcdef", payment_method="CARD", publisher=publisher
    )

    assert activated == [trip_id]
    trip = await reload(db, trip_id)
    assert trip.status == "PENDING_ASSIGNMENT"
    assert trip.payment_status == "PAID"
    assert trip.payment_ref == "INVREF-1-2-abcdef"
    assert trip.payment_method == "CARD"
    assert trip.property_id == property_id
    assert trip.user_id == 11
    assert trip.vehicle_type == "BAJAJI"
    assert trip.from_address == "Kilimanjaro International Airport"
    assert trip.to_address == "Kilimanjaro Lodge, Sokoine Road, Kati, Moshi Urban, Kilimanjaro, Moshi"
    assert trip.to_latitude == Decimal("-3.3349")
    assert trip.amount == Decimal("20000")
    assert trip.currency == "TZS"
    assert trip.scheduled_date is not None
    assert trip.notes == POLICY


async def test_backfill_never_overwrites_existing_values(db, service, stay, make_trip):
    _, booking_id = stay
    scheduled = datetime(2026, 3, 1, 9, 30, tzinfo=UTC)
    trip = await make_trip(
        booking_id,
        vehicle_type="XL",
        from_address="Moshi Bus Stand",
        to_address="Custom drop-off",
        amount=Decimal("35000"),
        scheduled_date=scheduled,
        notes="Please bring a child seat",
    )
    trip_id = trip.id

    await service.activate(db, booking_id, publisher=RecordingPublisher())

    trip = await reload(db, trip_id)
    assert trip.vehicle_type == "XL"
    assert trip.from_address == "Moshi Bus Stand"
    assert trip.to_address == "Custom drop-off"
    assert trip.amount == Decimal("35000")
    assert trip.scheduled_date.replace(tzinfo=None) == scheduled.replace(tzinfo=None)
    assert trip.notes == "Please bring a child seat"


async def test_zero_amount_counts_as_missing(db, service, stay, make_trip):
    _, booking_id = stay
    trip = await make_trip(booking_id, amount=Decimal("0"))
    trip_id = trip.id

    await service.activate(db, booking_id, publisher=RecordingPublisher())

    assert (await reload(db, trip_id)).amount == Decimal("20000")


async def test_payment_ref_defaults_to_correlation_key(db, service, stay, make_trip):
    _, booking_id = stay
    trip = await make_trip(booking_id)
    trip_id = trip.id

    await service.activate(db, booking_id, publisher=RecordingPublisher())

    assert (await reload(db, trip_id)).payment_ref == f"BOOKING:{booking_id}"


async def test_only_pre_assignment_trips_of_the_booking_are_touched(db, service, stay, make_trip):
    _, booking_id = stay
    pending = await make_trip(booking_id)
    awaiting_driver = await make_trip(booking_id, status="PENDING_ASSIGNMENT")
    assigned = await make_trip(booking_id, status="ASSIGNED", payment_status="PAID")
    other_stay = await make_trip(booking_id + 1000)
    ids = pending.id, awaiting_driver.id, assigned.id, other_stay.id

    activated = await service.activate(db, booking_id, publisher=RecordingPublisher())

    assert activated == sorted(ids[:2])
    assert (await reload(db, ids[2])).status == "ASSIGNED"
    assert (await reload(db, ids[3])).status == "PENDING_PAYMENT"


async def test_no_trips_is_a_noop(db, service, stay):
    _, booking_id = stay
    publisher = RecordingPublisher()

    assert await service.activate(db, booking_id, publisher=publisher) == []
    assert publisher.events == []


async def test_one_event_per_trip_on_drivers_channel(db, service, stay, make_trip):
    _, booking_id = stay
    first = await make_trip(booking_id, trip_code="TRIP0001")
    second = await make_trip(booking_id, trip_code="TRIP0002", number_of_passengers=3)
    publisher = RecordingPublisher()

    await service.activate(db, booking_id, publisher=publisher)

    assert [topic for topic, _, _ in publisher.events] == [settings.drivers_channel] * 2
    assert {event for _, event, _ in publisher.events} == {TRIP_AVAILABLE_EVENT}
    payloads = {payload["bookingId"]: payload for _, _, payload in publisher.events}
    assert set(payloads) == {first.id, second.id}
    assert payloads[second.id]["numberOfPassengers"] == 3
    assert payloads[first.id]["stayBookingId"] == booking_id
    assert payloads[first.id]["tripCode"] == "TRIP0001"
    assert payloads[first.id]["amount"] == 20000.0
    assert payloads[first.id]["vehicleType"] == "BAJAJI"


async def test_repeat_activation_does_not_renotify(db, service, stay, make_trip):
    _, booking_id = stay
    await make_trip(booking_id)
    publisher = RecordingPublisher()

    await service.activate(db, booking_id, publisher=publisher)
    assert await service.activate(db, booking_id, publisher=publisher) == []

    assert len(publisher.events) == 1


async def test_publish_failure_keeps_activation(db, service, stay, make_trip):
    _, booking_id = stay
    trip = await make_trip(booking_id)
    trip_id = trip.id

    activated = await service.activate(db, booking_id, publisher=RecordingPublisher(fail=True))

    assert activated == [trip_id]
    trip = await reload(db, trip_id)
    assert trip.status == "PENDING_ASSIGNMENT"
    assert trip.payment_status == "PAID"


async def test_backfill_failure_is_isolated(db, stay, make_trip, monkeypatch):
    _, booking_id = stay
    broken = await make_trip(booking_id)
    healthy = await make_trip(booking_id)
    broken_id, healthy_id = broken.id, healthy.id

    from app.services import transport_service

    original = transport_service.backfill_trip

    def flaky_backfill(trip, defaults, policy_notice):
        if trip.id == broken_id:
            raise ValueError("bad coordinates")
        return original(trip, defaults, policy_notice)

    monkeypatch.setattr(transport_service, "backfill_trip", flaky_backfill)
    publisher = RecordingPublisher()

    activated = await TransportActivationService().activate(db, booking_id, publisher=publisher)

    assert activated == [broken_id, healthy_id]
    assert (await reload(db, broken_id)).status == "PENDING_ASSIGNMENT"
    assert (await reload(db, broken_id)).to_address is None
    assert (await reload(db, healthy_id)).to_address is not None
    assert len(publisher.events) == 2


@pytest.fixture
async def nullable_payment_status(engine):
    """Rebuild the rides table with a nullable payment_status, as older schemas have it."""
    legacy = MetaData()
    table = TransportBooking.__table__.to_metadata(legacy)
    table.c.payment_status.nullable = True
    table.c.payment_status.server_default = None
    async with engine.begin() as conn:
        await conn.run_sync(TransportBooking.__table__.drop)
        await conn.run_sync(legacy.create_all)
    return table


async def test_trip_without_payment_status_is_activated(
    db, service, stay, nullable_payment_status
):
    _, booking_id = stay
    result = await db.execute(
        insert(nullable_payment_status)
        .values(booking_ref=f"BOOKING:{booking_id}", status="PENDING_PAYMENT", payment_status=None)
        .returning(nullable_payment_status.c.id)
    )
    trip_id = result.scalar_one()
    await db.commit()
    publisher = RecordingPublisher()

    activated = await service.activate(
        db, booking_id, payment_ref="REF", payment_method="CARD", publisher=publisher
    )

    assert activated == [trip_id]
    trip = await reload(db, trip_id)
    assert trip.status == "PENDING_ASSIGNMENT"
    assert trip.payment_status == "PAID"
    assert len(publisher.events) == 1


async def test_missing_payment_method_keeps_existing_one(db, service, stay, make_trip):
    _, booking_id = stay
    trip = await make_trip(booking_id, payment_method="MOBILE_MONEY")
    trip_id = trip.id

    await service.activate(db, booking_id, payment_ref="REF", publisher=RecordingPublisher())

    trip = await reload(db, trip_id)
    assert trip.payment_status == "PAID"
    assert trip.payment_method == "MOBILE_MONEY"
