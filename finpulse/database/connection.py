"""
Database Connection Module
Configures async SQLAlchemy engine and session factory.
"""

import logging

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from finpulse.config import settings
from finpulse.database.base import Base

# Disable SQLAlchemy engine query logging
logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

# Create async engine with connection pooling
async_engine = create_async_engine(
    settings.database_url,
    echo=False,
    future=True,
    pool_pre_ping=True,  # Verify connections before use
)

# Session factory for creating new sessions
async_session_factory = async_sessionmaker(
    bind=async_engine,
    class_=AsyncSession,
    expire_on_commit=False,  # Don't expire objects after commit
    autocommit=False,
    autoflush=False,
)


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """
    Dependency that provides the shared session factory.

    The period fact loader opens one session per sub-query so that
    independent reads can run concurrently.
    """
    return async_session_factory


async def init_db() -> None:
    """
    Initialize database tables.

    Note:
        In production, use Alembic migrations instead.
        This is useful for testing and initial development.
    """
    async with async_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """
    Close database connections.
    Call this during application shutdown.
    """
    await async_engine.dispose()
