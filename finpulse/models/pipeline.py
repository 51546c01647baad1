"""
Pipeline and Directory Models
Clients, opportunities, projects and logged hours.

Only the columns the metrics engine reads are modelled here.
"""

import uuid
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import Date, DateTime, Index, Numeric, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from finpulse.database.base import Base, TimestampMixin, UUIDMixin


class OpportunityStage(str, Enum):
    """Sales pipeline stages."""

    INITIAL_CONTACT = "initial_contact"
    PROPOSAL = "proposal"
    NEGOTIATION = "negotiation"
    WON = "won"
    LOST = "lost"


ACTIVE_OPPORTUNITY_STAGES = (
    OpportunityStage.INITIAL_CONTACT.value,
    OpportunityStage.PROPOSAL.value,
    OpportunityStage.NEGOTIATION.value,
)


class ProjectStatus(str, Enum):
    """Project lifecycle states."""

    ACTIVE = "active"
    REWORK = "rework"
    PAUSED = "paused"
    CLOSED = "closed"


class Client(Base, UUIDMixin, TimestampMixin):
    """
    A client company.

    Fiscally complete when both document number and tax regime are set.
    """

    workspace_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), nullable=False)

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    document_number: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)

    tax_regime: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)


class Opportunity(Base, UUIDMixin):
    """A sales opportunity. updated_at is maintained by the pipeline board."""

    workspace_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), nullable=False)

    stage: Mapped[str] = mapped_column(String(30), nullable=False)

    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("ix_opportunities_workspace_stage", "workspace_id", "stage"),
    )


class Project(Base, UUIDMixin, TimestampMixin):
    """A delivery project with its approved budget and accumulated cost."""

    workspace_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), nullable=False)

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    status: Mapped[str] = mapped_column(String(20), nullable=False, default=ProjectStatus.ACTIVE.value)

    total_budget: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False, default=0)

    accumulated_cost: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False, default=0)


class TimeEntry(Base, UUIDMixin, TimestampMixin):
    """Hours logged against a project."""

    workspace_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), nullable=False)

    project_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid(as_uuid=True), nullable=True)

    entry_date: Mapped[date] = mapped_column(Date, nullable=False)

    hours: Mapped[Decimal] = mapped_column(Numeric(6, 2), nullable=False)

    __table_args__ = (
        Index("ix_time_entries_workspace_date", "workspace_id", "entry_date"),
    )
