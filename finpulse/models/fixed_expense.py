"""
Fixed Expense Models
Recurring monthly costs configured by the workspace and their monthly drafts.
"""

import uuid
from datetime import date
from decimal import Decimal

from sqlalchemy import Boolean, Date, Index, Numeric, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from finpulse.database.base import Base, TimestampMixin, UUIDMixin


class FixedExpense(Base, UUIDMixin, TimestampMixin):
    """
    A configured recurring cost (rent, payroll, software...).

    The sum of active reference amounts is the monthly fixed cost used for
    the break-even point.
    """

    workspace_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), nullable=False)

    name: Mapped[str] = mapped_column(String(120), nullable=False)

    reference_amount: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class FixedExpenseDraft(Base, UUIDMixin, TimestampMixin):
    """A fixed expense pre-filled for a month, waiting for the user to confirm it."""

    workspace_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), nullable=False)

    period_start: Mapped[date] = mapped_column(Date, nullable=False)

    is_confirmed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    __table_args__ = (
        Index("ix_fixed_expense_drafts_workspace_period", "workspace_id", "period_start"),
    )
