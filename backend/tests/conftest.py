"""
Pytest fixtures for the test database, HTTP client and sample records.

Each test gets its own SQLite file, so tests are isolated without a
PostgreSQL server. The app's lifespan does not run under ASGITransport, so
the client fixture wires `app.state` the same way the lifespan does.
"""

import datetime as dt
from typing import AsyncGenerator

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from tourbook.db.session import Database
from tourbook.main import app
from tourbook.models.patron import Patron
from tourbook.models.trip import Trip
from tourbook.schemas.patron import PatronCreate
from tourbook.schemas.trip import TripCreate
from tourbook.services import patron_service, trip_service
from tourbook.services.cache_service import StatsCache
from tourbook.services.interfaces.local_trip_lock import LocalTripLock


def future_date(days: int = 30) -> dt.date:
    return dt.date.today() + dt.timedelta(days=days)


def trip_payload(**overrides) -> dict:
    """JSON body for POST /trips with a departure a month out."""
    payload = {
        "destination": "Delaware Park Casino",
        "date": future_date().isoformat(),
        "time": "09:00",
        "bus_capacity": 45,
        "price": 35,
        "departure_location": "Superior Tours Office, Baltimore",
        "return_time": "18:00",
    }
    payload.update(overrides)
    return payload


@pytest_asyncio.fixture
async def database(tmp_path) -> AsyncGenerator[Database, None]:
    database = Database(f"sqlite+aiosqlite:///{tmp_path / 'tourbook_test.db'}")
    await database.create_all()
    yield database
    await database.dispose()


@pytest_asyncio.fixture
async def db_session(database: Database) -> AsyncGenerator[AsyncSession, None]:
    async with database.session() as session:
        yield session


@pytest_asyncio.fixture
async def client(database: Database) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client against the app with test state in place of the lifespan's."""
    app.state.db = database
    app.state.trip_lock = LocalTripLock(blocking_timeout=10)
    app.state.stats_cache = StatsCache(None, ttl=60)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def patron_a(db_session: AsyncSession) -> Patron:
    return await patron_service.create_patron(
        db_session,
        PatronCreate(name="Mary Johnson", phone="410-555-0123", email="Mary.Johnson@Email.com"),
    )


@pytest_asyncio.fixture
async def patron_b(db_session: AsyncSession) -> Patron:
    return await patron_service.create_patron(
        db_session, PatronCreate(name="Robert Smith", phone="410-555-0456")
    )


@pytest_asyncio.fixture
async def test_trip(db_session: AsyncSession) -> Trip:
    """Upcoming trip with 45 seats."""
    return await trip_service.create_trip(db_session, TripCreate(**trip_payload()))


@pytest_asyncio.fixture
async def small_trip(db_session: AsyncSession) -> Trip:
    """Upcoming trip with only 2 seats."""
    return await trip_service.create_trip(
        db_session,
        TripCreate(**trip_payload(destination="Midway Slots", bus_capacity=2, price=40)),
    )
