"""Access to the singleton system settings row."""

import logging
from decimal import Decimal

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models.system_setting import SINGLETON_ID, SystemSetting

logger = logging.getLogger(__name__)


class SystemSettingsStore:
    """Reads system-wide settings, seeding the row on first use."""

    def __init__(self, default_commission_percent: float | None = None) -> None:
        if default_commission_percent is None:
            default_commission_percent = settings.default_commission_percent
        self.default_commission_percent = Decimal(str(default_commission_percent))

    async def get_or_create(self, db: AsyncSession) -> SystemSetting:
        """Return the singleton row, inserting it with defaults if missing.

        Commits the insert on its own so concurrent first readers converge
        on the same row.
        """
        row = await db.get(SystemSetting, SINGLETON_ID)
        if row is not None:
            return row

        db.add(
            SystemSetting(
                id=SINGLETON_ID,
                commission_percent=self.default_commission_percent,
            )
        )
        try:
            await db.commit()
        except IntegrityError:
            await db.rollback()
            logger.info("System settings row created concurrently; re-reading")
        row = await db.get(SystemSetting, SINGLETON_ID)
        if row is None:
            raise LookupError("system settings row missing after upsert")
        return row

    async def get_commission_percent(self, db: AsyncSession) -> Decimal | None:
        row = await self.get_or_create(db)
        return row.commission_percent


# Singleton instance
system_settings_store = SystemSettingsStore()
