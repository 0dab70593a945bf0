"""
Database handle: async engine plus session factory.

A Database is constructed explicitly (application lifespan, tests, the seed
script) and passed to whatever needs persistence; there is no module-level
engine.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from tourbook.core.config import Settings, get_settings
from tourbook.core.logging import get_logger
from tourbook.db.base import Base

logger = get_logger(__name__)


class Database:
    """Owns one async engine and hands out sessions bound to it."""

    def __init__(self, url: str, echo: bool = False, **engine_kwargs):
        self.url = make_url(url)
        self.is_sqlite = self.url.get_backend_name() == "sqlite"
        if not self.is_sqlite:
            engine_kwargs.setdefault("pool_pre_ping", True)

        self.engine: AsyncEngine = create_async_engine(url, echo=echo, **engine_kwargs)
        self.session_factory = async_sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False
        )

        if self.is_sqlite:
            self._setup_sqlite_pragmas()

        logger.info("database_configured", backend=self.url.get_backend_name())

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "Database":
        settings = settings or get_settings()
        kwargs = {}
        if not settings.DATABASE_URL.startswith("sqlite"):
            kwargs.update(
                pool_size=settings.DB_POOL_SIZE,
                max_overflow=settings.DB_MAX_OVERFLOW,
                pool_timeout=settings.DB_POOL_TIMEOUT,
                pool_recycle=settings.DB_POOL_RECYCLE,
            )
        return cls(settings.DATABASE_URL, echo=settings.DB_ECHO, **kwargs)

    def _setup_sqlite_pragmas(self) -> None:
        @event.listens_for(self.engine.sync_engine, "connect")
        def set_sqlite_pragma(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.execute("PRAGMA busy_timeout=5000")
            cursor.close()

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Session scope: commit on success, roll back on any error."""
        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def create_all(self) -> None:
        # Models must be imported so their tables are registered on Base.metadata
        import tourbook.models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def drop_all(self) -> None:
        import tourbook.models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

    async def dispose(self) -> None:
        await self.engine.dispose()
