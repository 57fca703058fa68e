"""
Database Session Management

Async SQLAlchemy engine and session factory.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from typing import Any

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from behaviorplan.config import settings


def build_engine(database_url: str | None = None, **kwargs: Any) -> AsyncEngine:
    """Create an async engine for the configured database.

    Args:
        database_url: Connection string. Defaults to settings.DATABASE_URL
        **kwargs: Extra create_async_engine arguments

    Returns:
        AsyncEngine
    """
    url = database_url or settings.DATABASE_URL
    if not url.startswith("sqlite"):
        kwargs.setdefault("pool_pre_ping", True)
    return create_async_engine(url, echo=settings.DEBUG, **kwargs)


engine = build_engine()

AsyncSessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield a session; commit on success, roll back on error."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def init_db(bind: AsyncEngine | None = None) -> None:
    """Create all tables (development and tests; production uses Alembic)."""
    from behaviorplan.core.models import Base

    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """Dispose of the engine connection pool."""
    await engine.dispose()
