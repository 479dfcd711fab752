"""Async database manager for Keyward-Engine (single-DB)."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from keyward_engine.common.config import KeywardSettings, get_settings
from keyward_engine.common.models import Base

# Import all model modules so Base.metadata is complete for create_all().
import keyward_engine.licensing.models  # noqa: F401

# Async drivers and the sync drivers alembic migrates with
SYNC_DRIVERS = {
    "sqlite+aiosqlite": "sqlite",
    "postgresql+asyncpg": "postgresql",
}


def sync_db_url(url: str) -> str:
    """Return ``url`` with its async driver swapped for the sync default."""
    parsed = make_url(url)
    drivername = SYNC_DRIVERS.get(parsed.drivername, parsed.drivername)
    return parsed.set(drivername=drivername).render_as_string(hide_password=False)


class DatabaseManager:
    """Manages a single async database engine."""

    def __init__(self, settings: KeywardSettings | None = None):
        self._settings = settings or get_settings()
        self.engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None

    def _engine_kwargs(self) -> dict:
        timeout = self._settings.store_timeout
        if self._settings.is_sqlite:
            # SQLite has no pool wait; the busy timeout bounds lock waits instead
            return {"connect_args": {"timeout": timeout}}
        return {"pool_timeout": timeout, "pool_pre_ping": True}

    async def init(self) -> None:
        url = self._settings.db_url
        self.engine = create_async_engine(url, echo=False, **self._engine_kwargs())
        self._session_factory = async_sessionmaker(
            self.engine, expire_on_commit=False
        )

    @asynccontextmanager
    async def get_session(self) -> AsyncGenerator[AsyncSession, None]:
        if self._session_factory is None:
            raise RuntimeError("DatabaseManager not initialized — call init() first")
        async with self._session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def create_all(self) -> None:
        if self.engine is None:
            raise RuntimeError("DatabaseManager not initialized — call init() first")
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def close(self) -> None:
        if self.engine:
            await self.engine.dispose()
            self.engine = None
            self._session_factory = None
