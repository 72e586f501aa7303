"""
Async database engine and session management.

Usage:
    from database.connection import get_async_session

    async with get_async_session() as session:
        result = await session.execute(select(User))
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from database.models import Base
from shared.config import get_settings

logger = logging.getLogger(__name__)


def engine_options(database_url: str, echo: bool = False) -> dict[str, Any]:
    """
    Build create_async_engine() keyword arguments for a database URL.

    SQLite (aiosqlite) is used for local runs and tests: in-memory databases
    share one connection through StaticPool so every session sees the same data.
    """
    options: dict[str, Any] = {"echo": echo}

    if database_url.startswith("sqlite"):
        options["connect_args"] = {"check_same_thread": False}
        if ":memory:" in database_url or database_url.rstrip("/").endswith("aiosqlite:"):
            options["poolclass"] = StaticPool
    else:
        options["pool_pre_ping"] = True
        options["pool_size"] = 10
        options["max_overflow"] = 20

    return options


def create_engine_for(database_url: str, echo: bool = False) -> AsyncEngine:
    return create_async_engine(database_url, **engine_options(database_url, echo))


def create_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind, class_=AsyncSession, expire_on_commit=False)


_settings = get_settings()

engine: AsyncEngine = create_engine_for(_settings.DATABASE_URL, echo=_settings.DATABASE_ECHO)
AsyncSessionLocal = create_session_factory(engine)


@asynccontextmanager
async def get_async_session() -> AsyncIterator[AsyncSession]:
    """
    Yield a database session bound to the application engine.

    The session is closed on exit. Callers commit explicitly; uncommitted
    work is rolled back when the session closes.
    """
    async with AsyncSessionLocal() as session:
        yield session


async def init_models(bind: AsyncEngine | None = None) -> None:
    """Create all tables that do not exist yet (idempotent)."""
    target = bind or engine
    async with target.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database schema ensured")


async def dispose_engine() -> None:
    """Release all pooled connections."""
    await engine.dispose()
