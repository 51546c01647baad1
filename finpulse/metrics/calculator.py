"""
Metrics Calculator
Turns the raw facts of a period into the five headline indicators:

- How much cash do I have?        cash on hand
- Am I making money?              profit
- How much am I owed?             receivables (and their aging)
- How much do I need to sell?     break-even point / required sales
- How long can I last?            runway
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import date
from typing import Iterable, Optional

from finpulse.metrics.facts import InvoiceFact, PeriodFacts
from finpulse.metrics.periods import Period
from finpulse.metrics.reconciliation import BalanceReconstructor

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GoalPacing:
    """Progress against a monthly goal, pro-rated to the current day."""
    target: float
    expected_to_date: float
    actual: float
    status: str  # ahead, on_track, behind


@dataclass(frozen=True)
class FinancialIndicators:
    """Derived figures for one period."""
    # Cash
    cash_on_hand: float
    cash_is_real: bool
    theoretical_balance: float

    # Profit
    collections: float
    expenses: float
    profit: float
    previous_collections: float
    previous_expenses: float
    previous_profit: float

    # Receivables
    total_invoiced: float
    total_collected: float
    receivables: float
    overdue_receivables: float
    overdue_ratio: float

    # Sales and break-even
    sales: float
    fixed_costs: float
    contribution_margin: float
    break_even: float
    required_sales: float

    # Runway
    average_monthly_expense: float
    runway_months: float

    # Goals
    sales_target: Optional[float]
    collection_target: Optional[float]
    sales_pacing: Optional[GoalPacing]
    collection_pacing: Optional[GoalPacing]


class MetricsCalculator:
    """
    Calculates period indicators from PeriodFacts.

    All arithmetic edge cases fall back to defaults instead of raising:
    30% margin without closed projects, raw fixed cost as break-even when the
    margin is not positive, and a runway cap when there are no expenses.
    """

    DEFAULT_CONTRIBUTION_MARGIN = 0.30
    OVERDUE_AFTER_DAYS = 30
    RUNWAY_CAP_MONTHS = 99.0
    ON_TRACK_RATIO = 0.8

    @staticmethod
    def profit(collections: float, expenses: float) -> float:
        return collections - expenses

    @staticmethod
    def receivables(total_invoiced: float, total_collected: float) -> float:
        """Outstanding balance across every invoice ever issued."""
        return total_invoiced - total_collected

    @staticmethod
    def overdue_receivables(
        invoices: Iterable[InvoiceFact],
        collected_by_invoice: dict[uuid.UUID, float],
        today: date,
    ) -> float:
        """
        Sum of outstanding balances older than 30 days.

        An invoice is overdue when it is not fully collected and more than
        30 days have elapsed since it was issued.
        """
        overdue = 0.0
        for invoice in invoices:
            outstanding = invoice.amount - collected_by_invoice.get(invoice.id, 0.0)
            if outstanding <= 0:
                continue
            if (today - invoice.issued_on).days > MetricsCalculator.OVERDUE_AFTER_DAYS:
                overdue += outstanding
        return overdue

    @staticmethod
    def overdue_ratio(overdue: float, receivables: float) -> float:
        if receivables <= 0:
            return 0.0
        return overdue / receivables

    @staticmethod
    def contribution_margin(closed_projects: Iterable[tuple[float, float]]) -> float:
        """
        Average of 1 - cost/budget over closed projects with a budget.

        Args:
            closed_projects: (total_budget, accumulated_cost) pairs
        """
        margins = [
            1 - (cost / budget)
            for budget, cost in closed_projects
            if budget > 0
        ]
        if not margins:
            return MetricsCalculator.DEFAULT_CONTRIBUTION_MARGIN
        return sum(margins) / len(margins)

    @staticmethod
    def break_even(fixed_costs: float, contribution_margin: float) -> float:
        if contribution_margin <= 0:
            return fixed_costs
        return fixed_costs / contribution_margin

    @staticmethod
    def required_sales(break_even: float, sales: float) -> float:
        """Sales still missing this period to reach break-even."""
        return max(break_even - sales, 0.0)

    @staticmethod
    def average_monthly_expense(monthly_expenses: dict[str, float]) -> float:
        """
        Average expense over the months of the trailing window that have data.

        The denominator is the number of months with expenses (at least 1),
        not the window length.
        """
        months_with_data = max(len(monthly_expenses), 1)
        return sum(monthly_expenses.values()) / months_with_data

    @staticmethod
    def runway_months(cash_on_hand: float, average_monthly_expense: float) -> float:
        if average_monthly_expense <= 0:
            return MetricsCalculator.RUNWAY_CAP_MONTHS
        return cash_on_hand / average_monthly_expense

    @staticmethod
    def goal_pacing(
        actual: float,
        target: Optional[float],
        period: Period,
        today: date,
    ) -> Optional[GoalPacing]:
        """
        Compare actual-to-date against the pro-rated goal.

        Only meaningful for the month in progress; returns None for past and
        future periods, or when there is no positive target.
        """
        if not target or target <= 0 or period.kind(today) != "current":
            return None

        expected = target * (period.day_cursor(today) / period.days_in_month)
        if actual >= expected:
            status = "ahead"
        elif actual >= expected * MetricsCalculator.ON_TRACK_RATIO:
            status = "on_track"
        else:
            status = "behind"

        return GoalPacing(
            target=target,
            expected_to_date=expected,
            actual=actual,
            status=status,
        )

    @staticmethod
    def calculate(facts: PeriodFacts, today: date) -> FinancialIndicators:
        """
        Calculate all indicators for a period.

        Args:
            facts: Raw facts from PeriodFactLoader
            today: Reference date for aging and pacing

        Returns:
            FinancialIndicators
        """
        snapshot = facts.latest_snapshot
        theoretical = BalanceReconstructor.theoretical_balance(
            snapshot.real_balance if snapshot else None,
            facts.collections_since_snapshot,
            facts.expenses_since_snapshot,
        )
        cash_on_hand = snapshot.real_balance if snapshot else theoretical

        receivables = MetricsCalculator.receivables(facts.total_invoiced, facts.total_collected)
        overdue = MetricsCalculator.overdue_receivables(
            facts.invoices, facts.collected_by_invoice, today
        )

        margin = MetricsCalculator.contribution_margin(facts.closed_projects)
        break_even = MetricsCalculator.break_even(facts.fixed_expenses_total, margin)

        average_expense = MetricsCalculator.average_monthly_expense(facts.monthly_expenses)
        runway = MetricsCalculator.runway_months(cash_on_hand, average_expense)

        target = facts.target
        sales_target = target.sales_target if target else None
        collection_target = target.collection_target if target else None

        indicators = FinancialIndicators(
            cash_on_hand=cash_on_hand,
            cash_is_real=snapshot is not None,
            theoretical_balance=theoretical,
            collections=facts.collections,
            expenses=facts.expenses,
            profit=MetricsCalculator.profit(facts.collections, facts.expenses),
            previous_collections=facts.previous_collections,
            previous_expenses=facts.previous_expenses,
            previous_profit=MetricsCalculator.profit(facts.previous_collections, facts.previous_expenses),
            total_invoiced=facts.total_invoiced,
            total_collected=facts.total_collected,
            receivables=receivables,
            overdue_receivables=overdue,
            overdue_ratio=MetricsCalculator.overdue_ratio(overdue, receivables),
            sales=facts.sales,
            fixed_costs=facts.fixed_expenses_total,
            contribution_margin=margin,
            break_even=break_even,
            required_sales=MetricsCalculator.required_sales(break_even, facts.sales),
            average_monthly_expense=average_expense,
            runway_months=runway,
            sales_target=sales_target,
            collection_target=collection_target,
            sales_pacing=MetricsCalculator.goal_pacing(facts.sales, sales_target, facts.period, today),
            collection_pacing=MetricsCalculator.goal_pacing(
                facts.collections, collection_target, facts.period, today
            ),
        )

        logger.debug(
            "Indicators for %s: cash=%.2f profit=%.2f receivables=%.2f runway=%.1f",
            facts.period.key,
            indicators.cash_on_hand,
            indicators.profit,
            indicators.receivables,
            indicators.runway_months,
        )

        return indicators
