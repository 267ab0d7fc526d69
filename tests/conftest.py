import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("INTERNAL_API_KEY", "test-internal-key")

from datetime import UTC, datetime, timedelta  # noqa: E402
from decimal import Decimal  # noqa: E402

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402

import app.models  # noqa: E402,F401
from app.api.deps import get_publisher  # noqa: E402
from app.database import Base, get_db  # noqa: E402
from app.main import app as fastapi_app  # noqa: E402
from app.models.booking import Booking  # noqa: E402
from app.models.property import Property  # noqa: E402
from app.models.system_setting import SINGLETON_ID, SystemSetting  # noqa: E402
from app.models.transport import TransportBooking  # noqa: E402

INTERNAL_KEY = os.environ["INTERNAL_API_KEY"]
CHECK_IN = datetime(2026, 3, 1, 14, 0, tzinfo=UTC)


class RecordingPublisher:
    """Stands in for the Redis publisher and records every event."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.events = []

    async def publish(self, topic, event, payload):
        if self.fail:
            raise ConnectionError("redis unavailable")
        self.events.append((topic, event, payload))
        return 1

    async def close(self):
        pass


@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'settlement.db'}",
        connect_args={"timeout": 30},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def publisher():
    return RecordingPublisher()


@pytest.fixture
async def client(session_factory, publisher):
    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    fastapi_app.dependency_overrides[get_db] = override_get_db
    fastapi_app.dependency_overrides[get_publisher] = lambda: publisher
    async with AsyncClient(transport=ASGITransport(app=fastapi_app), base_url="http://test") as ac:
        yield ac
    fastapi_app.dependency_overrides.clear()


@pytest.fixture
def make_property(db):
    async def _make(**overrides):
        fields = {
            "owner_id": 7,
            "title": "Kilimanjaro Lodge",
            "status": "APPROVED",
            "base_price": Decimal("50000"),
            "currency": "TZS",
            "street": "Sokoine Road",
            "ward": "Kati",
            "district": "Moshi Urban",
            "region": "Kilimanjaro",
            "city": "Moshi",
            "latitude": Decimal("-3.334900"),
            "longitude": Decimal("37.340300"),
            "photos": ["https://img.test/lodge-1.jpg", "https://img.test/lodge-2.jpg"],
            "services": None,
        }
        fields.update(overrides)
        prop = Property(**fields)
        db.add(prop)
        await db.commit()
        return prop

    return _make


@pytest.fixture
def make_booking(db):
    async def _make(prop, nights=3, **overrides):
        fields = {
            "property_id": prop.id,
            "user_id": 11,
            "check_in": CHECK_IN,
            "check_out": CHECK_IN + timedelta(days=nights),
            "total_amount": Decimal("150000"),
        }
        fields.update(overrides)
        booking = Booking(**fields)
        db.add(booking)
        await db.commit()
        return booking

    return _make


@pytest.fixture
def make_trip(db):
    async def _make(booking_id, **overrides):
        fields = {
            "booking_ref": f"BOOKING:{booking_id}",
            "status": "PENDING_PAYMENT",
            "payment_status": "PENDING",
        }
        fields.update(overrides)
        trip = TransportBooking(**fields)
        db.add(trip)
        await db.commit()
        return trip

    return _make


@pytest.fixture
def set_global_commission(db):
    async def _set(percent):
        await db.merge(SystemSetting(id=SINGLETON_ID, commission_percent=percent))
        await db.commit()

    return _set
