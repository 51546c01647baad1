"""
Theoretical Balance Reconstructor

Infers what the bank balance should be from the last real balance the user
reported plus every collection and expense recorded after it, and compares
that with what the user reports.
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import Optional

from finpulse.config import settings


class ReconciliationState(IntEnum):
    """Visual states of the reconciliation strip."""

    RECONCILED = 1       # Recent (< 4 days) and within tolerance
    AGEING = 2           # Within tolerance but 4-7 days old
    DIFFERENCE = 3       # Material difference against the theoretical balance
    STALE = 4            # Never recorded, or older than 7 days


@dataclass(frozen=True)
class ReconciliationStatus:
    """Reconciliation values shown next to the cash figure."""

    real_balance: Optional[float]
    theoretical_balance: float
    difference: float
    tolerance: float
    days_since_last: Optional[int]
    state: ReconciliationState

    @property
    def is_material(self) -> bool:
        return BalanceReconstructor.is_material(self.difference, self.tolerance)


class BalanceReconstructor:
    """
    Reconstructs the theoretical balance and measures the difference.

    theoretical = last_real + collections_since - expenses_since
    bootstrap (no snapshot yet) = all collections - all expenses
    difference = real - theoretical
    """

    RECENT_DAYS = 4
    STALE_AFTER_DAYS = 7

    @staticmethod
    def theoretical_balance(
        last_real_balance: Optional[float],
        collections_since: float,
        expenses_since: float,
    ) -> float:
        """
        Theoretical balance from the last snapshot.

        Args:
            last_real_balance: Real balance of the latest snapshot, or None
                when nothing was ever recorded
            collections_since: Collections dated after the snapshot date
                (all collections in the bootstrap case)
            expenses_since: Expenses dated after the snapshot date
                (all expenses in the bootstrap case)
        """
        base = last_real_balance if last_real_balance is not None else 0.0
        return base + collections_since - expenses_since

    @staticmethod
    def difference(real_balance: float, theoretical_balance: float) -> float:
        return real_balance - theoretical_balance

    @staticmethod
    def tolerance(
        cash_on_hand: float,
        absolute: Optional[float] = None,
        pct: Optional[float] = None,
    ) -> float:
        """max(absolute floor, pct of cash on hand); the floor applies when cash <= 0."""
        absolute = settings.reconciliation_tolerance_abs if absolute is None else absolute
        pct = settings.reconciliation_tolerance_pct if pct is None else pct
        relative = cash_on_hand * pct if cash_on_hand > 0 else absolute
        return max(absolute, relative)

    @staticmethod
    def is_material(difference: float, tolerance: float) -> bool:
        """A difference is material only when it is strictly above the tolerance."""
        return abs(difference) > tolerance

    @staticmethod
    def classify(
        difference: float,
        tolerance: float,
        days_since_last: Optional[int],
    ) -> ReconciliationState:
        if days_since_last is None or days_since_last > BalanceReconstructor.STALE_AFTER_DAYS:
            return ReconciliationState.STALE
        if BalanceReconstructor.is_material(difference, tolerance):
            return ReconciliationState.DIFFERENCE
        if days_since_last >= BalanceReconstructor.RECENT_DAYS:
            return ReconciliationState.AGEING
        return ReconciliationState.RECONCILED

    @staticmethod
    def status(
        real_balance: Optional[float],
        theoretical_balance: float,
        stored_difference: float,
        cash_on_hand: float,
        days_since_last: Optional[int],
    ) -> ReconciliationStatus:
        """
        Build the reconciliation strip values.

        The difference shown is the one stored with the latest snapshot
        (computed when it was recorded), zero when there is none.
        """
        tolerance = BalanceReconstructor.tolerance(cash_on_hand)
        return ReconciliationStatus(
            real_balance=real_balance,
            theoretical_balance=theoretical_balance,
            difference=stored_difference,
            tolerance=tolerance,
            days_since_last=days_since_last,
            state=BalanceReconstructor.classify(stored_difference, tolerance, days_since_last),
        )
