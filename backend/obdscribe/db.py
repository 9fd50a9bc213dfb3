"""Database configuration and session management for FastAPI.

This module uses SQLAlchemy's asyncio support.  The engine is created
lazily on first use from ``settings.database_url`` and then reused by every
request for the lifetime of the process.  In production the URL points at
PostgreSQL through asyncpg; the test suite swaps in aiosqlite.
"""

from typing import AsyncGenerator, Optional

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from .models import Base
from .reference_data import seed_reference_data
from .settings import settings


_engine: Optional[AsyncEngine] = None
_sessionmaker: Optional[async_sessionmaker[AsyncSession]] = None


def get_engine() -> AsyncEngine:
    """Return the process-wide engine, creating it on first call."""
    global _engine
    if _engine is None:
        _engine = create_async_engine(settings.database_url, pool_pre_ping=True)
    return _engine


def get_sessionmaker() -> async_sessionmaker[AsyncSession]:
    global _sessionmaker
    if _sessionmaker is None:
        _sessionmaker = async_sessionmaker(
            bind=get_engine(), class_=AsyncSession, expire_on_commit=False
        )
    return _sessionmaker


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Provide a transactional scope for database operations.

    This is designed to be used as a dependency with FastAPI.  The session
    context manager closes the session and discards any uncommitted work.
    """
    async with get_sessionmaker()() as session:
        yield session


async def init_db() -> None:
    """Create missing tables and load the reference data."""
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    if settings.seed_reference_data:
        async with get_sessionmaker()() as session:
            await seed_reference_data(session)


async def dispose_engine() -> None:
    global _engine, _sessionmaker
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _sessionmaker = None
