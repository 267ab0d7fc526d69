from decimal import Decimal

import pytest

from app.services.commission_service import (
    CommissionService,
    clamp_percent,
    split_price,
    to_finite_decimal,
)
from app.services.system_settings_service import SystemSettingsStore


@pytest.mark.parametrize(
    "base, pct, total, commission",
    [
        (Decimal("150000"), Decimal("10"), Decimal("165000.00"), Decimal("15000.00")),
        (Decimal("100000"), Decimal("8"), Decimal("108000.00"), Decimal("8000.00")),
        (Decimal("33.33"), Decimal("12.5"), Decimal("37.50"), Decimal("4.17")),
        (Decimal("100"), Decimal("250"), Decimal("200.00"), Decimal("100.00")),
        (Decimal("0.05"), Decimal("10"), Decimal("0.06"), Decimal("0.01")),
    ],
)
def test_split_adds_commission_on_top(base, pct, total, commission):
    split = split_price(base, pct)

    assert split.total == total
    assert split.commission == commission


@pytest.mark.parametrize("pct", [None, 0, -5, float("nan"), float("inf"), "abc"])
def test_split_without_usable_commission_keeps_base(pct):
    split = split_price(Decimal("120000"), pct)

    assert split.total == Decimal("120000")
    assert split.commission == 0


@pytest.mark.parametrize("base", [None, 0, -1, float("nan"), float("-inf"), "", "n/a"])
def test_split_without_usable_base_is_zero(base):
    split = split_price(base, Decimal("10"))

    assert split.total == 0
    assert split.commission == 0


@pytest.mark.parametrize(
    "base, pct",
    [("1234.56", "7.5"), ("99999.99", "33.333"), ("0.01", "100"), ("450000", "0.5")],
)
def test_split_total_minus_commission_is_base(base, pct):
    split = split_price(Decimal(base), Decimal(pct))

    assert abs((split.total - split.commission) - Decimal(base)) <= Decimal("0.01")


def test_split_accepts_floats_and_strings():
    assert split_price(200.0, "5").total == Decimal("210.00")
    assert split_price("200", 5).commission == Decimal("10.00")


@pytest.mark.parametrize(
    "value, expected",
    [(-3, 0), (150, 100), ("12.5", Decimal("12.5")), (None, 0), (float("nan"), 0), (True, 0)],
)
def test_clamp_percent(value, expected):
    assert clamp_percent(value) == expected


def test_to_finite_decimal_rejects_non_numbers():
    assert to_finite_decimal(Decimal("NaN")) is None
    assert to_finite_decimal("Infinity") is None
    assert to_finite_decimal([1]) is None
    assert to_finite_decimal(" 42 ") == Decimal("42")


def test_property_override_reads_services_object():
    assert CommissionService.property_override({"commissionPercent": 12}) == Decimal("12")
    assert CommissionService.property_override('{"commissionPercent": "7.5"}') == Decimal("7.5")
    assert CommissionService.property_override({"wifi": True}) is None
    assert CommissionService.property_override("not json") is None
    assert CommissionService.property_override(["commissionPercent"]) is None
    assert CommissionService.property_override({"commissionPercent": "lots"}) is None


async def test_property_override_wins_over_global(db, set_global_commission):
    await set_global_commission(Decimal("8"))
    service = CommissionService()

    assert await service.resolve_commission_percent(db, {"commissionPercent": 10}) == Decimal("10")


async def test_override_is_clamped(db):
    service = CommissionService()

    assert await service.resolve_commission_percent(db, {"commissionPercent": 140}) == 100
    assert await service.resolve_commission_percent(db, {"commissionPercent": -2}) == 0


async def test_global_commission_used_without_override(db, set_global_commission):
    await set_global_commission(Decimal("8"))

    assert await CommissionService().resolve_commission_percent(db, {"wifi": True}) == Decimal("8")


async def test_global_row_is_seeded_on_first_read(db):
    store = SystemSettingsStore(default_commission_percent=6.5)

    assert await store.get_commission_percent(db) == Decimal("6.5")
    row = await store.get_or_create(db)
    assert row.id == 1


async def test_out_of_range_global_is_clamped(db, set_global_commission):
    await set_global_commission(Decimal("250"))

    assert await CommissionService().resolve_commission_percent(db, None) == 100


async def test_failing_global_accessor_yields_zero(db):
    async def broken(session):
        raise RuntimeError("settings table missing")

    service = CommissionService(global_percent=broken)

    assert await service.resolve_commission_percent(db, None) == 0


async def test_garbage_global_value_yields_zero(db):
    async def garbage(session):
        return "ten percent"

    assert await CommissionService(global_percent=garbage).resolve_commission_percent(db, None) == 0
