"""Service test fixtures: async SQLite database, seed helpers and FastAPI test client.

Invariants:
    - Every test gets a fresh SQLite database file under tmp_path
    - get_db and get_session_factory dependencies overridden to use the test database
    - db_manager patched for code that bypasses dependency injection

Design Decisions:
    - File database instead of :memory:: the auditor runs its checks concurrently,
      each on its own session, and every session must see the same data
    - Seed helpers commit so every later session reads the rows
"""

from datetime import date, datetime, timedelta, timezone

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncSession, async_sessionmaker, create_async_engine,
)

import studio_sales.infrastructure.database as db_module
from studio_sales.config import Settings, get_settings
from studio_sales.core.names import client_key
from studio_sales.db.base import Base
from studio_sales.infrastructure.database import (
    DatabaseSessionManager, get_db, get_session_factory,
)
from studio_sales.main import app
import studio_sales.models  # noqa: F401
from studio_sales.models.booking import Booking

STAFF = ["Sarah", "Mike", "Dana"]


@pytest.fixture
def settings():
    return Settings(
        database_url="sqlite+aiosqlite:///unused.db",
        studio_staff=STAFF,
        audit_interval_minutes=0,
    )


@pytest.fixture
async def test_engine(tmp_path):
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def test_session_factory(test_engine):
    return async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False,
    )


@pytest.fixture
async def test_db(test_session_factory):
    async with test_session_factory() as session:
        yield session


@pytest.fixture
async def client(test_engine, test_session_factory, settings):
    """FastAPI test client with DB and settings dependencies overridden."""
    async def override_get_db():
        async with test_session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: test_session_factory
    app.dependency_overrides[get_settings] = lambda: settings

    original_manager = db_module.db_manager
    fake_manager = DatabaseSessionManager.__new__(DatabaseSessionManager)
    fake_manager.engine = test_engine
    fake_manager._session_factory = test_session_factory
    db_module.db_manager = fake_manager

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()
    db_module.db_manager = original_manager


@pytest.fixture
def seed_booking(test_db):
    """Factory: insert a committed booking. Defaults describe a healthy row."""
    async def _seed(client_name: str = "John Smith", **overrides) -> Booking:
        fields = {
            "client_name": client_name,
            "client_key": client_key(client_name),
            "class_date": date.today() - timedelta(days=2),
            "phone": "2055551234",
            "coach_name": "Dana",
            "booked_by": "Sarah",
            "intro_owner": "Sarah",
            "lead_source": "Member Referral",
            "status": "active",
            "created_at": datetime.now(timezone.utc),
        }
        fields.update(overrides)
        booking = Booking(**fields)
        test_db.add(booking)
        await test_db.commit()
        await test_db.refresh(booking)
        return booking
    return _seed
