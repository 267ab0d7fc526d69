"""Commission resolution and price split.

PRICING RULES:
- The customer pays the accommodation price plus the platform commission
  (plus any transport fare, which carries no commission)
- The owner is owed the accommodation price only
- A per-property ``commissionPercent`` in the services object always wins
  over the system-wide default
- Commission is always a finite percentage in [0, 100]; resolution never
  blocks invoicing (any failure of the system default yields 0)
"""

import json
import logging
import math
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from app.services.system_settings_service import system_settings_store

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
HUNDRED = Decimal("100")
CENT = Decimal("0.01")
ZERO_MONEY = Decimal("0.00")

# Reads the system-wide commission percentage from the configuration store
CommissionAccessor = Callable[[AsyncSession], Awaitable[Any]]


def to_finite_decimal(value: Any) -> Decimal | None:
    """Coerce a loosely-typed number to Decimal; None when not finite."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return value if value.is_finite() else None
    if isinstance(value, float):
        return Decimal(str(value)) if math.isfinite(value) else None
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, str):
        try:
            parsed = Decimal(value.strip())
        except InvalidOperation:
            return None
        return parsed if parsed.is_finite() else None
    return None


def clamp_percent(value: Any) -> Decimal:
    """Clamp a percentage to [0, 100]; anything non-numeric becomes 0."""
    percent = to_finite_decimal(value)
    if percent is None:
        return ZERO
    return min(HUNDRED, max(ZERO, percent))


def round_money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class PriceSplit:
    """Customer-facing total and the platform's cut of it."""

    total: Decimal
    commission: Decimal


def split_price(base: Any, commission_percent: Any) -> PriceSplit:
    """Add commission on top of a base amount.

    Args:
        base: Amount before commission
        commission_percent: Percentage to add (clamped to [0, 100])

    Returns:
        PriceSplit: ``total = base + commission``, each rounded half-up to
        2 decimals after the full-precision multiply. Non-finite or
        non-positive bases give ``(0, 0)``; a non-finite or non-positive
        percentage gives ``(base, 0)``.
    """
    amount = to_finite_decimal(base)
    if amount is None or amount <= 0:
        return PriceSplit(total=ZERO_MONEY, commission=ZERO_MONEY)

    percent = to_finite_decimal(commission_percent)
    if percent is None or percent <= 0:
        return PriceSplit(total=amount, commission=ZERO_MONEY)

    percent = min(HUNDRED, percent)
    commission = amount * percent / HUNDRED
    return PriceSplit(
        total=round_money(amount + commission),
        commission=round_money(commission),
    )


class CommissionService:
    """Resolves the commission percentage applicable to a booking."""

    def __init__(self, global_percent: CommissionAccessor | None = None) -> None:
        self._global_percent = global_percent or system_settings_store.get_commission_percent

    @staticmethod
    def property_override(services: Any) -> Decimal | None:
        """Per-property commission from a services object, if usable."""
        if isinstance(services, str):
            try:
                services = json.loads(services)
            except ValueError:
                return None
        if not isinstance(services, dict):
            return None
        value = services.get("commissionPercent")
        if value is None:
            return None
        return to_finite_decimal(value)

    async def resolve_commission_percent(self, db: AsyncSession, services: Any) -> Decimal:
        """Commission for a property's bookings.

        Args:
            db: Database session (used only for the system-wide fallback)
            services: The property's embedded services object

        Returns:
            Decimal: Percentage in [0, 100]
        """
        override = self.property_override(services)
        if override is not None:
            return clamp_percent(override)

        try:
            value = await self._global_percent(db)
        except Exception:
            logger.warning("System commission unavailable; using 0%", exc_info=True)
            await db.rollback()
            return ZERO
        return clamp_percent(value)


# Singleton instance
commission_service = CommissionService()
