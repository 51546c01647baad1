"""
Base Model Module
Defines the declarative base and common mixins for all models.
"""

import re
import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import DateTime, Uuid, func
from sqlalchemy.orm import (
    DeclarativeBase,
    Mapped,
    declared_attr,
    mapped_column,
)


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy models.

    Features:
        - Automatic table name generation from class name
        - Common __repr__ method
        - Type annotations support
    """

    @declared_attr.directive
    def __tablename__(cls) -> str:
        """
        Generate table name from class name.
        Converts CamelCase to snake_case and pluralizes.

        Examples:
            Expense -> expenses
            BankBalanceSnapshot -> bank_balance_snapshots
            TimeEntry -> time_entries
        """
        # Convert CamelCase to snake_case
        name = re.sub(r"(?<!^)(?=[A-Z])", "_", cls.__name__).lower()

        # Simple pluralization (handles common cases)
        if name.endswith("ics") or name.endswith("sis"):
            return name
        elif name.endswith("s") or name.endswith("x") or name.endswith("ch") or name.endswith("sh"):
            return name + "es"
        elif name.endswith("y") and name[-2] not in "aeiou":
            return name[:-1] + "ies"
        else:
            return name + "s"

    def __repr__(self) -> str:
        """Generate a readable string representation."""
        class_name = self.__class__.__name__
        attrs = []

        if hasattr(self, "id"):
            attrs.append(f"id={self.id}")

        for attr in ["workspace_id", "status", "stage"]:
            if hasattr(self, attr):
                value = getattr(self, attr)
                if value is not None:
                    attrs.append(f"{attr}={value!r}")

        return f"<{class_name}({', '.join(attrs)})>"

    def to_dict(self) -> dict[str, Any]:
        """
        Convert model instance to dictionary.
        Useful for serialization and debugging.
        """
        result = {}
        for column in self.__table__.columns:
            value = getattr(self, column.name)
            if isinstance(value, (datetime, date)):
                value = value.isoformat()
            elif isinstance(value, uuid.UUID):
                value = str(value)
            elif isinstance(value, Decimal):
                value = float(value)
            result[column.name] = value
        return result


class TimestampMixin:
    """
    Mixin that adds created_at and updated_at timestamps.

    Usage:
        class Expense(Base, TimestampMixin):
            ...
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


class UUIDMixin:
    """
    Mixin that adds a UUID primary key.

    Usage:
        class Expense(Base, UUIDMixin, TimestampMixin):
            ...
    """

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        nullable=False,
    )
