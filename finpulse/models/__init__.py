"""
Models Package
SQLAlchemy ORM models for the application.
"""

from finpulse.models.bank_balance_snapshot import BankBalanceSnapshot
from finpulse.models.fixed_expense import FixedExpense, FixedExpenseDraft
from finpulse.models.ledger import Collection, Expense, Invoice
from finpulse.models.monthly_target import LegacyMonthlyTarget, MonthlyTarget
from finpulse.models.pipeline import (
    ACTIVE_OPPORTUNITY_STAGES,
    Client,
    Opportunity,
    OpportunityStage,
    Project,
    ProjectStatus,
    TimeEntry,
)
from finpulse.models.reconciliation_streak import (
    STREAK_TYPE_RECONCILIATION,
    ReconciliationStreak,
)

__all__ = [
    "ACTIVE_OPPORTUNITY_STAGES",
    "BankBalanceSnapshot",
    "Client",
    "Collection",
    "Expense",
    "FixedExpense",
    "FixedExpenseDraft",
    "Invoice",
    "LegacyMonthlyTarget",
    "MonthlyTarget",
    "Opportunity",
    "OpportunityStage",
    "Project",
    "ProjectStatus",
    "ReconciliationStreak",
    "STREAK_TYPE_RECONCILIATION",
    "TimeEntry",
]
