"""
Database Package
Handles database connection, session management, and base models.
"""

from finpulse.database.connection import (
    async_engine,
    async_session_factory,
    get_session_factory,
    init_db,
    close_db,
)
from finpulse.database.base import Base, TimestampMixin, UUIDMixin

__all__ = [
    # Connection
    "async_engine",
    "async_session_factory",
    "get_session_factory",
    "init_db",
    "close_db",
    # Base classes
    "Base",
    "TimestampMixin",
    "UUIDMixin",
]
