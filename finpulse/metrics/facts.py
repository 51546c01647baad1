"""
Typed structures for the raw facts of a period.

Produced by PeriodFactLoader, consumed by the calculators. Every field has
an empty/zero default so a failed sub-query degrades into missing data
instead of an error.
"""

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional

from finpulse.metrics.periods import Period
from finpulse.metrics.streaks import StreakState


@dataclass(frozen=True)
class InvoiceFact:
    """An issued invoice."""
    id: uuid.UUID
    amount: float
    issued_on: date


@dataclass(frozen=True)
class SnapshotFact:
    """The latest bank balance snapshot."""
    real_balance: float
    theoretical_balance: float
    difference: float
    recorded_at: datetime
    note: Optional[str] = None


@dataclass(frozen=True)
class ResolvedTarget:
    """
    Monthly target as resolved for a period.

    source is "exact", "inherited" or "legacy"; source_period is the month the
    values were taken from.
    """
    sales_target: Optional[float]
    collection_target: Optional[float]
    source: str
    source_period: str


@dataclass
class CompletenessFacts:
    """Raw counts behind the Layer 1 completeness checks."""
    fixed_expense_count: int = 0
    clients_total: int = 0
    clients_fiscally_complete: int = 0
    active_opportunities: int = 0
    fresh_opportunities: int = 0
    drafts_total: int = 0
    drafts_confirmed: int = 0
    has_recent_hours: bool = False


@dataclass
class PeriodFacts:
    """Everything the engine reads for one (workspace, period)."""
    period: Period

    # Cash flow
    collections: float = 0.0
    expenses: float = 0.0
    previous_collections: float = 0.0
    previous_expenses: float = 0.0

    # Sales and receivables
    sales: float = 0.0
    invoices: list[InvoiceFact] = field(default_factory=list)
    collected_by_invoice: dict[uuid.UUID, float] = field(default_factory=dict)
    total_invoiced: float = 0.0
    total_collected: float = 0.0

    # Trailing expense window, keyed by "YYYY-MM"
    monthly_expenses: dict[str, float] = field(default_factory=dict)

    # Costs and margins
    fixed_expenses_total: float = 0.0
    closed_projects: list[tuple[float, float]] = field(default_factory=list)  # (budget, cost)

    # Reconciliation
    latest_snapshot: Optional[SnapshotFact] = None
    collections_since_snapshot: float = 0.0
    expenses_since_snapshot: float = 0.0
    streak: Optional[StreakState] = None

    # Goals
    target: Optional[ResolvedTarget] = None

    completeness: CompletenessFacts = field(default_factory=CompletenessFacts)

    # Sub-queries that failed and were replaced by defaults
    errors: list[str] = field(default_factory=list)
