"""
Database connection and session management.

Uses SQLAlchemy async engines with aiosqlite for SQLite URLs.
"""

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from tradeplan.db.models import Base

logger = logging.getLogger(__name__)


def create_engine_for(url: str) -> AsyncEngine:
    """Create an async engine. SQLite URLs get a single shared connection."""
    if url.startswith("sqlite"):
        # Note: SQLite requires check_same_thread=False for async
        return create_async_engine(
            url,
            echo=False,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_async_engine(url, echo=False)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory for read-only use."""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def init_db(engine: AsyncEngine) -> None:
    """
    Create the report-history table if it does not exist.
    Used for local development and tests; production tables belong to the report store.
    """
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Report history schema ready")
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        raise


# Process-wide engine, created on startup when a history URL is configured
_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker[AsyncSession]] = None


def open_history_db(url: str) -> async_sessionmaker[AsyncSession]:
    """Open (once) the report-history database and return its session factory."""
    global _engine, _session_factory
    if _session_factory is None:
        _engine = create_engine_for(url)
        _session_factory = create_session_factory(_engine)
        logger.info("Report history database opened")
    return _session_factory


async def close_db() -> None:
    """
    Close database connections.
    Called on application shutdown.
    """
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
        logger.info("Database connections closed")
    _engine = None
    _session_factory = None
