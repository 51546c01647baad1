"""
Monthly Target Models
Sales and collection goals per workspace and month.

Two tables exist:
- monthly_targets: current table, keyed by the first day of the month
- legacy_monthly_targets: older (year, month) table, read only as a fallback
"""

import uuid
from datetime import date
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import Date, Index, Integer, Numeric, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from finpulse.database.base import Base, TimestampMixin, UUIDMixin


class MonthlyTarget(Base, UUIDMixin, TimestampMixin):
    """
    Sales and collection goals for one (workspace, month).

    Written only by explicit saves. Reads may inherit an earlier month's
    values, but inheritance never writes a row.

    Attributes:
        workspace_id: Owning workspace (tenant)
        period_start: First day of the month the target applies to
        sales_target: Invoiced-sales goal for the month
        collection_target: Collections goal for the month
    """

    workspace_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        nullable=False,
    )

    period_start: Mapped[date] = mapped_column(
        Date,
        nullable=False,
        comment="First day of the target month",
    )

    sales_target: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(15, 2),
        nullable=True,
    )

    collection_target: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(15, 2),
        nullable=True,
    )

    __table_args__ = (
        UniqueConstraint("workspace_id", "period_start", name="uq_monthly_targets_workspace_period"),
        Index("ix_monthly_targets_workspace_period", "workspace_id", "period_start"),
    )

    def __repr__(self) -> str:
        return (
            f"<MonthlyTarget(workspace_id={self.workspace_id}, "
            f"period={self.period_start}, sales={self.sales_target})>"
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for API responses."""
        return {
            "period": self.period_start.strftime("%Y-%m"),
            "sales_target": float(self.sales_target) if self.sales_target is not None else None,
            "collection_target": float(self.collection_target) if self.collection_target is not None else None,
        }


class LegacyMonthlyTarget(Base, UUIDMixin, TimestampMixin):
    """Targets from the first version of the goals screen, keyed by (year, month)."""

    workspace_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        nullable=False,
    )

    year: Mapped[int] = mapped_column(Integer, nullable=False)

    month: Mapped[int] = mapped_column(Integer, nullable=False)

    sales_target: Mapped[Optional[Decimal]] = mapped_column(Numeric(15, 2), nullable=True)

    collection_target: Mapped[Optional[Decimal]] = mapped_column(Numeric(15, 2), nullable=True)

    __table_args__ = (
        UniqueConstraint("workspace_id", "year", "month", name="uq_legacy_monthly_targets_workspace_month"),
    )
