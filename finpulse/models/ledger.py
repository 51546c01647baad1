"""
Ledger Fact Models
Collections, expenses and invoices recorded by the billing and expense screens.

These are immutable monetary facts: corrections are recorded as new rows.
The metrics engine only reads them.
"""

import uuid
from datetime import date
from decimal import Decimal
from typing import Optional

from sqlalchemy import Date, ForeignKey, Index, Numeric, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from finpulse.database.base import Base, TimestampMixin, UUIDMixin


class Invoice(Base, UUIDMixin, TimestampMixin):
    """An issued invoice. Its amount counts as sales in the month of issue."""

    workspace_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), nullable=False)

    issued_on: Mapped[date] = mapped_column(Date, nullable=False)

    amount: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)

    number: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    __table_args__ = (
        Index("ix_invoices_workspace_issued", "workspace_id", "issued_on"),
    )


class Collection(Base, UUIDMixin, TimestampMixin):
    """Money received, optionally applied against an invoice."""

    workspace_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), nullable=False)

    collected_on: Mapped[date] = mapped_column(Date, nullable=False)

    amount: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)

    invoice_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("invoices.id", ondelete="SET NULL"),
        nullable=True,
    )

    __table_args__ = (
        Index("ix_collections_workspace_collected", "workspace_id", "collected_on"),
    )


class Expense(Base, UUIDMixin, TimestampMixin):
    """Money spent."""

    workspace_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), nullable=False)

    spent_on: Mapped[date] = mapped_column(Date, nullable=False)

    amount: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)

    category: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    __table_args__ = (
        Index("ix_expenses_workspace_spent", "workspace_id", "spent_on"),
    )
