"""
Shared fixtures: an on-disk SQLite database per test.

A file database (not :memory:) is used so that the concurrent loader, which
opens one session per query, sees the same data from every connection.
"""

import uuid

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

import finpulse.models  # noqa: F401  (registers every table on Base.metadata)
from finpulse.database.base import Base


@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'finpulse.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def workspace_id():
    return uuid.uuid4()


@pytest.fixture
def add(session_factory):
    """Persist ORM objects in their own committed transaction."""

    async def _add(*objects):
        async with session_factory() as session:
            session.add_all(objects)
            await session.commit()

    return _add
