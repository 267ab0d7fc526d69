from decimal import Decimal

import pytest

from app.core.exceptions import NotFoundError
from app.services.invoice_service import InvoiceService


@pytest.fixture
def service():
    return InvoiceService()


async def test_breakdown_uses_invoice_total_not_base_price(db, service, make_property, make_booking):
    # Room pricing made the stay cost more than base_price * nights
    prop = await make_property(base_price=Decimal("10000"))
    booking = await make_booking(prop, nights=2, total_amount=Decimal("95000"))
    invoice_id = (await service.settle(db, booking.id)).invoice.id

    view = await service.project(db, invoice_id)

    assert view["total_amount"] == Decimal("95000")
    assert view["price_breakdown"]["accommodation_subtotal"] == Decimal("95000")
    assert view["price_breakdown"]["transport_fare"] == 0
    assert view["booking"]["nights"] == 2


async def test_commission_is_hidden(db, service, make_property, make_booking):
    prop = await make_property(services={"commissionPercent": 10})
    booking = await make_booking(prop, total_amount=Decimal("100000"))
    invoice_id = (await service.settle(db, booking.id)).invoice.id

    view = await service.project(db, invoice_id)

    assert view["price_breakdown"]["commission"] == 0
    assert view["price_breakdown"]["accommodation_subtotal"] == Decimal("110000")
    assert "commission_amount" not in view
    assert "net_payable" not in view


async def test_legacy_notes_fare_without_trip(db, service, make_property, make_booking):
    prop = await make_property()
    booking = await make_booking(
        prop,
        total_amount=Decimal("60000"),
        special_requests="TRANSPORT_INCLUDED|fare:12000",
    )
    invoice_id = (await service.settle(db, booking.id)).invoice.id

    breakdown = (await service.project(db, invoice_id))["price_breakdown"]

    assert breakdown["transport_fare"] == Decimal("12000")
    assert breakdown["accommodation_subtotal"] == Decimal("48000")


async def test_trip_amount_wins_over_booking_fare(db, service, make_property, make_booking, make_trip):
    prop = await make_property()
    booking = await make_booking(
        prop,
        total_amount=Decimal("120000"),
        include_transport=True,
        transport_fare=Decimal("20000"),
    )
    booking_id = booking.id
    await make_trip(booking_id, amount=Decimal("18000"))
    invoice_id = (await service.settle(db, booking_id)).invoice.id

    breakdown = (await service.project(db, invoice_id))["price_breakdown"]

    assert breakdown["transport_fare"] == Decimal("18000")
    assert breakdown["accommodation_subtotal"] == Decimal("102000")
    assert breakdown["total"] == Decimal("120000")


async def test_negative_trip_amount_is_clamped_to_zero(db, service, make_property, make_booking, make_trip):
    prop = await make_property()
    booking = await make_booking(prop, total_amount=Decimal("50000"))
    booking_id = booking.id
    await make_trip(booking_id, amount=Decimal("-500"))
    invoice_id = (await service.settle(db, booking_id)).invoice.id

    breakdown = (await service.project(db, invoice_id))["price_breakdown"]

    assert breakdown["transport_fare"] == 0
    assert breakdown["accommodation_subtotal"] == Decimal("50000")


async def test_unknown_invoice(db, service):
    with pytest.raises(NotFoundError):
        await service.project(db, 31337)
