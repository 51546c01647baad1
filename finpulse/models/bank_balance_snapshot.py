"""
Bank Balance Snapshot Model
Point-in-time declarations of the real bank balance of a workspace.
"""

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import DateTime, Index, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from finpulse.database.base import Base, TimestampMixin, UUIDMixin


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BankBalanceSnapshot(Base, UUIDMixin, TimestampMixin):
    """
    A declaration of "my real bank balance is X" at a point in time.

    Snapshots are created only by the record-balance operation and are never
    updated or deleted. The most recent one (by recorded_at) is the anchor
    for theoretical balance reconstruction.

    Attributes:
        id: Unique identifier (UUID)
        workspace_id: Owning workspace (tenant)
        recorded_at: When the balance was declared
        real_balance: Balance reported by the user
        theoretical_balance: Balance reconstructed from recorded facts
        difference: real_balance - theoretical_balance
        note: Optional free-text note
        recorded_via: Channel that recorded the snapshot (e.g. "app")
    """

    workspace_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        nullable=False,
    )

    recorded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        comment="When the real balance was declared",
    )

    real_balance: Mapped[Decimal] = mapped_column(
        Numeric(15, 2),
        nullable=False,
        comment="Bank balance reported by the user",
    )

    theoretical_balance: Mapped[Decimal] = mapped_column(
        Numeric(15, 2),
        nullable=False,
        comment="Balance reconstructed from collections and expenses",
    )

    difference: Mapped[Decimal] = mapped_column(
        Numeric(15, 2),
        nullable=False,
        comment="real_balance - theoretical_balance",
    )

    note: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )

    recorded_via: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="app",
    )

    __table_args__ = (
        Index("ix_bank_balance_snapshots_workspace_recorded", "workspace_id", "recorded_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<BankBalanceSnapshot(id={self.id}, workspace_id={self.workspace_id}, "
            f"real={self.real_balance}, recorded_at={self.recorded_at})>"
        )
