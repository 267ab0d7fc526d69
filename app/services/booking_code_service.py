"""Check-in code generation.

Codes are 8 characters from an alphabet without look-alike characters
(no 0/O, no 1/I). Each allocation attempt commits on its own so a
collision retry never holds an invoice transaction open.
"""

import hashlib
import logging
import secrets
from collections.abc import Callable
from datetime import UTC, datetime

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import BookingCodeExhaustedError
from app.models.booking import CheckinCode

logger = logging.getLogger(__name__)

BOOKING_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
BOOKING_CODE_LENGTH = 8
MAX_CODE_ATTEMPTS = 10


def generate_booking_code(length: int = BOOKING_CODE_LENGTH) -> str:
    """Draw a random code uniformly from the unambiguous alphabet."""
    return "".join(secrets.choice(BOOKING_CODE_ALPHABET) for _ in range(length))


def hash_code(code: str) -> str:
    """One-way hash stored next to the code."""
    return hashlib.sha256(code.encode()).hexdigest()


class BookingCodeService:
    """Allocates the single check-in code of a booking."""

    def __init__(
        self,
        code_factory: Callable[[], str] = generate_booking_code,
        max_attempts: int = MAX_CODE_ATTEMPTS,
    ) -> None:
        self.code_factory = code_factory
        self.max_attempts = max_attempts

    async def get_code(self, db: AsyncSession, booking_id: int) -> CheckinCode | None:
        result = await db.execute(
            select(CheckinCode).where(CheckinCode.booking_id == booking_id)
        )
        return result.scalar_one_or_none()

    async def ensure_code(self, db: AsyncSession, booking_id: int) -> CheckinCode:
        """Return the booking's code, creating it if the booking has none."""
        existing = await self.get_code(db, booking_id)
        if existing is not None:
            return existing
        return await self.generate(db, booking_id)

    async def generate(self, db: AsyncSession, booking_id: int) -> CheckinCode:
        """Persist a fresh ACTIVE code for a booking.

        The session must carry no other pending changes: every attempt
        commits or rolls back.

        Raises:
            BookingCodeExhaustedError: every attempt hit a uniqueness conflict
        """
        for attempt in range(1, self.max_attempts + 1):
            code = self.code_factory()
            record = CheckinCode(
                booking_id=booking_id,
                code=code,
                code_hash=hash_code(code),
                code_visible=code,
                status="ACTIVE",
                generated_at=datetime.now(UTC),
            )
            db.add(record)
            try:
                await db.commit()
            except IntegrityError:
                await db.rollback()
                # A concurrent request may have created this booking's code
                existing = await self.get_code(db, booking_id)
                if existing is not None:
                    logger.info(f"Booking {booking_id} code created concurrently; reusing it")
                    return existing
                logger.info(f"Booking code collision for booking {booking_id} (attempt {attempt})")
                continue

            logger.info(f"Generated check-in code id={record.id} for booking {booking_id}")
            return record

        logger.error(f"Booking code generation exhausted for booking {booking_id}")
        raise BookingCodeExhaustedError(booking_id, self.max_attempts)


# Singleton instance
booking_code_service = BookingCodeService()
