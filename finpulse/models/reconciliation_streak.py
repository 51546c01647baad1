"""
Reconciliation Streak Model
Consecutive calendar weeks in which a workspace reported its bank balance.
"""

import uuid
from datetime import date, datetime
from typing import Optional

from sqlalchemy import Date, DateTime, Integer, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from finpulse.database.base import Base, TimestampMixin, UUIDMixin

STREAK_TYPE_RECONCILIATION = "conciliacion"


class ReconciliationStreak(Base, UUIDMixin, TimestampMixin):
    """
    Weekly streak counter, one row per workspace and streak type.

    Mutated every time a balance snapshot is recorded. Never deleted:
    a broken streak is reset in place and the record is preserved.

    Attributes:
        workspace_id: Owning workspace (tenant)
        streak_type: Streak kind, "conciliacion" for bank reconciliation
        current_weeks: Current consecutive-week count
        record_weeks: Highest count ever reached
        last_updated_at: Timestamp of the last counted balance report
        streak_started_on: First day of the current streak
    """

    workspace_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        nullable=False,
    )

    streak_type: Mapped[str] = mapped_column(
        String(30),
        nullable=False,
        default=STREAK_TYPE_RECONCILIATION,
    )

    current_weeks: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )

    record_weeks: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )

    last_updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    streak_started_on: Mapped[Optional[date]] = mapped_column(
        Date,
        nullable=True,
    )

    __table_args__ = (
        UniqueConstraint("workspace_id", "streak_type", name="uq_reconciliation_streaks_workspace_type"),
    )

    def __repr__(self) -> str:
        return (
            f"<ReconciliationStreak(workspace_id={self.workspace_id}, "
            f"current={self.current_weeks}, record={self.record_weeks})>"
        )
