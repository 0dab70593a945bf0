"""
FastAPI dependencies. Everything stateful comes from `app.state`, which the
application lifespan (or the test fixtures) populates.
"""

from typing import AsyncGenerator

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from tourbook.db.session import Database
from tourbook.services.cache_service import StatsCache
from tourbook.services.interfaces.trip_lock import TripLock


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    database: Database = request.app.state.db
    async with database.session() as session:
        yield session


def get_trip_lock(request: Request) -> TripLock:
    return request.app.state.trip_lock


def get_stats_cache(request: Request) -> StatsCache:
    return request.app.state.stats_cache
