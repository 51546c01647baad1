"""
Period Metrics Service
Single entry point for reading the metrics of a period and for the writes
that feed them (bank balance reports and monthly targets).

Read flow:
    PeriodFactLoader -> MetricsCalculator + BalanceReconstructor
                     -> SemaphoreScorer -> PeriodMetrics

Every operation takes the workspace id explicitly. An unresolved workspace
(None) yields None for reads and a "No autenticado" failure for writes.
"""

import asyncio
import logging
import math
import uuid
from dataclasses import dataclass, field
from datetime import MAXYEAR, MINYEAR, datetime, timezone
from typing import Any, Iterable, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from finpulse.core.errors import NOT_AUTHENTICATED, ErrorCode, sanitize_error_message
from finpulse.metrics.calculator import FinancialIndicators, MetricsCalculator
from finpulse.metrics.facts import PeriodFacts
from finpulse.metrics.loader import PeriodFactLoader, sum_between
from finpulse.metrics.periods import Period
from finpulse.metrics.reconciliation import BalanceReconstructor, ReconciliationStatus
from finpulse.metrics.semaphore import (
    CompletenessInputs,
    HealthInputs,
    SemaphoreResult,
    SemaphoreScorer,
)
from finpulse.metrics.streaks import ReconciliationStreakTracker, milestone_badge
from finpulse.metrics.targets import MonthlyTargetRepository, TargetInput
from finpulse.metrics.utils import as_utc, safe_float, to_decimal, whole_days_between
from finpulse.models import (
    BankBalanceSnapshot,
    Collection,
    Expense,
    Opportunity,
    OpportunityStage,
    Project,
    ProjectStatus,
    TimeEntry,
)

# Project states counted as running in the monthly comparison
RUNNING_PROJECT_STATUSES = (ProjectStatus.ACTIVE.value, ProjectStatus.REWORK.value)

logger = logging.getLogger(__name__)

INVALID_AMOUNT = "Enter a valid amount"
NEGATIVE_TARGET = "Targets cannot be negative"


@dataclass(frozen=True)
class ReconciliationSummary:
    """Reconciliation strip: status plus streak figures."""
    status: ReconciliationStatus
    streak_weeks: int
    streak_record: int
    milestone: Optional[str]


@dataclass(frozen=True)
class PeriodMetrics:
    """Composite result of one metrics read."""
    period: str
    kind: str
    day_cursor: int
    days_in_month: int
    indicators: FinancialIndicators
    semaphore: SemaphoreResult
    reconciliation: ReconciliationSummary
    target_source: Optional[str] = None
    target_source_period: Optional[str] = None
    errors: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class RecordBalanceResult:
    success: bool
    error: Optional[str] = None
    real_balance: Optional[float] = None
    theoretical_balance: Optional[float] = None
    difference: Optional[float] = None
    is_material: Optional[bool] = None
    streak_weeks: Optional[int] = None


@dataclass(frozen=True)
class SaveTargetResult:
    success: bool
    error: Optional[str] = None
    saved: int = 0


@dataclass(frozen=True)
class MonthlyComparison:
    """Headline figures of one month for the comparison chart."""
    period: str
    collections: float
    expenses: float
    margin_pct: float
    hours: float
    won_opportunities: int
    active_projects: int


def _failure(error: str) -> RecordBalanceResult:
    return RecordBalanceResult(success=False, error=error)


class PeriodMetricsService:
    """
    Orchestrates the metrics engine for one workspace at a time.

    Args:
        session_factory: async_sessionmaker shared by reads and writes
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory
        self.loader = PeriodFactLoader(session_factory)

    # ============================================
    # Reads
    # ============================================

    async def get_metrics(
        self,
        workspace_id: Optional[uuid.UUID],
        period_key: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Optional[PeriodMetrics]:
        """
        Metrics of a period (the current month when no key is given).

        Returns:
            PeriodMetrics, or None when the workspace is unresolved

        Raises:
            ValueError: If period_key is not a valid "YYYY-MM" key
        """
        if workspace_id is None:
            return None

        now = as_utc(now) if now is not None else datetime.now(timezone.utc)
        today = now.date()
        period = Period.resolve(period_key, today)

        facts = await self.loader.load(workspace_id, period, today, now=now)
        return self._build_metrics(facts, now)

    def _build_metrics(self, facts: PeriodFacts, now: datetime) -> PeriodMetrics:
        today = now.date()
        indicators = MetricsCalculator.calculate(facts, today)

        snapshot = facts.latest_snapshot
        days_since_last = (
            whole_days_between(snapshot.recorded_at, now) if snapshot is not None else None
        )
        status = BalanceReconstructor.status(
            real_balance=snapshot.real_balance if snapshot else None,
            theoretical_balance=indicators.theoretical_balance,
            stored_difference=snapshot.difference if snapshot else 0.0,
            cash_on_hand=indicators.cash_on_hand,
            days_since_last=days_since_last,
        )

        completeness = facts.completeness
        semaphore = SemaphoreScorer.evaluate(
            CompletenessInputs(
                fixed_expense_count=completeness.fixed_expense_count,
                sales_target=indicators.sales_target,
                clients_total=completeness.clients_total,
                clients_fiscally_complete=completeness.clients_fiscally_complete,
                days_since_last_balance=days_since_last,
                active_opportunities=completeness.active_opportunities,
                fresh_opportunities=completeness.fresh_opportunities,
                drafts_total=completeness.drafts_total,
                drafts_confirmed=completeness.drafts_confirmed,
                has_recent_hours=completeness.has_recent_hours,
                reconciliation_difference=status.difference,
                reconciliation_tolerance=status.tolerance,
            ),
            HealthInputs(
                runway_months=indicators.runway_months,
                sales=indicators.sales,
                break_even=indicators.break_even,
                overdue_receivables=indicators.overdue_receivables,
                receivables=indicators.receivables,
            ),
        )

        streak = facts.streak
        streak_weeks = streak.current_weeks if streak else 0

        return PeriodMetrics(
            period=facts.period.key,
            kind=facts.period.kind(today),
            day_cursor=facts.period.day_cursor(today),
            days_in_month=facts.period.days_in_month,
            indicators=indicators,
            semaphore=semaphore,
            reconciliation=ReconciliationSummary(
                status=status,
                streak_weeks=streak_weeks,
                streak_record=streak.record_weeks if streak else 0,
                milestone=milestone_badge(streak_weeks),
            ),
            target_source=facts.target.source if facts.target else None,
            target_source_period=facts.target.source_period if facts.target else None,
            errors=list(facts.errors),
        )

    async def list_targets(
        self,
        workspace_id: Optional[uuid.UUID],
        limit: int = 12,
    ) -> list[dict[str, Any]]:
        """Latest saved targets, newest month first."""
        if workspace_id is None:
            return []
        async with self.session_factory() as session:
            rows = await MonthlyTargetRepository(session).list_latest(workspace_id, limit)
        return [row.to_dict() for row in rows]

    async def get_monthly_comparison(
        self,
        workspace_id: Optional[uuid.UUID],
        months: int = 6,
        now: Optional[datetime] = None,
    ) -> list[MonthlyComparison]:
        """
        Collections, expenses, margin, logged hours, won opportunities and
        running projects for the trailing `months` calendar months, oldest
        first, ending with the current one.

        Won opportunities are those moved to "won" during the month; running
        projects counts the active and rework projects as of today.
        """
        if workspace_id is None:
            return []

        now = as_utc(now) if now is not None else datetime.now(timezone.utc)
        current = Period.containing(now.date())
        periods = [current.shift(-offset) for offset in range(months - 1, -1, -1)]

        return list(await asyncio.gather(
            *(self._comparison_for(workspace_id, period) for period in periods)
        ))

    async def _comparison_for(self, workspace_id: uuid.UUID, period: Period) -> MonthlyComparison:
        async with self.session_factory() as session:
            collections = await sum_between(
                session, Collection, Collection.collected_on, workspace_id, period.start, period.end
            )
            expenses = await sum_between(
                session, Expense, Expense.spent_on, workspace_id, period.start, period.end
            )
            result = await session.execute(
                select(func.coalesce(func.sum(TimeEntry.hours), 0))
                .where(TimeEntry.workspace_id == workspace_id)
                .where(TimeEntry.entry_date >= period.start)
                .where(TimeEntry.entry_date < period.end)
            )
            hours = safe_float(result.scalar())

            month_start = datetime(period.start.year, period.start.month, 1, tzinfo=timezone.utc)
            month_end = datetime(period.end.year, period.end.month, 1, tzinfo=timezone.utc)
            won_opportunities = await session.scalar(
                select(func.count(Opportunity.id))
                .where(Opportunity.workspace_id == workspace_id)
                .where(Opportunity.stage == OpportunityStage.WON.value)
                .where(Opportunity.updated_at >= month_start)
                .where(Opportunity.updated_at < month_end)
            )
            active_projects = await session.scalar(
                select(func.count(Project.id))
                .where(Project.workspace_id == workspace_id)
                .where(Project.status.in_(RUNNING_PROJECT_STATUSES))
            )

        margin_pct = (collections - expenses) / collections * 100 if collections > 0 else 0.0
        return MonthlyComparison(
            period=period.key,
            collections=collections,
            expenses=expenses,
            margin_pct=margin_pct,
            hours=hours,
            won_opportunities=won_opportunities or 0,
            active_projects=active_projects or 0,
        )

    # ============================================
    # Writes
    # ============================================

    async def record_balance(
        self,
        workspace_id: Optional[uuid.UUID],
        amount: Any,
        note: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> RecordBalanceResult:
        """
        Record the real bank balance reported by the user.

        Reconstructs the theoretical balance from the latest snapshot (or
        from all-time totals the first time), stores the new snapshot with
        its difference and counts the week in the reconciliation streak.
        """
        if workspace_id is None:
            return _failure(NOT_AUTHENTICATED)

        real_balance = safe_float(amount, default=math.nan)
        if math.isnan(real_balance) or math.isinf(real_balance) or real_balance <= 0:
            return _failure(INVALID_AMOUNT)

        now = as_utc(now) if now is not None else datetime.now(timezone.utc)

        async with self.session_factory() as session:
            try:
                result = await session.execute(
                    select(BankBalanceSnapshot)
                    .where(BankBalanceSnapshot.workspace_id == workspace_id)
                    .order_by(BankBalanceSnapshot.recorded_at.desc())
                    .limit(1)
                )
                latest = result.scalar_one_or_none()

                if latest is not None:
                    anchor_day = as_utc(latest.recorded_at).date()
                    collections = await sum_between(
                        session, Collection, Collection.collected_on, workspace_id, after=anchor_day
                    )
                    expenses = await sum_between(
                        session, Expense, Expense.spent_on, workspace_id, after=anchor_day
                    )
                    last_real = safe_float(latest.real_balance)
                else:
                    collections = await sum_between(session, Collection, Collection.collected_on, workspace_id)
                    expenses = await sum_between(session, Expense, Expense.spent_on, workspace_id)
                    last_real = None

                theoretical = BalanceReconstructor.theoretical_balance(last_real, collections, expenses)
                difference = BalanceReconstructor.difference(real_balance, theoretical)

                session.add(BankBalanceSnapshot(
                    workspace_id=workspace_id,
                    recorded_at=now,
                    real_balance=to_decimal(real_balance),
                    theoretical_balance=to_decimal(theoretical),
                    difference=to_decimal(difference),
                    note=(note or "").strip() or None,
                    recorded_via="app",
                ))
                await session.flush()

                transition = await ReconciliationStreakTracker(session).register(workspace_id, now)
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                return _failure(sanitize_error_message(e, ErrorCode.PERSISTENCE_FAILED))

        tolerance = BalanceReconstructor.tolerance(real_balance)
        logger.info(
            "Recorded bank balance for workspace %s: real=%.2f theoretical=%.2f difference=%.2f",
            workspace_id,
            real_balance,
            theoretical,
            difference,
        )

        return RecordBalanceResult(
            success=True,
            real_balance=real_balance,
            theoretical_balance=theoretical,
            difference=difference,
            is_material=BalanceReconstructor.is_material(difference, tolerance),
            streak_weeks=transition.current_weeks,
        )

    async def save_target(
        self,
        workspace_id: Optional[uuid.UUID],
        period_key: str,
        sales_target: float,
        collection_target: Optional[float] = None,
    ) -> SaveTargetResult:
        """Save the goals of exactly one month (collection defaults to 80% of sales)."""
        if workspace_id is None:
            return SaveTargetResult(success=False, error=NOT_AUTHENTICATED)

        try:
            period = Period.from_key(period_key)
        except ValueError as e:
            return SaveTargetResult(success=False, error=str(e))

        return await self._save_targets(
            workspace_id,
            period.year,
            [TargetInput(period.month, sales_target, collection_target)],
        )

    async def bulk_save_targets(
        self,
        workspace_id: Optional[uuid.UUID],
        year: int,
        targets: Iterable[TargetInput],
    ) -> SaveTargetResult:
        """Save up to twelve months of one year in a single transaction."""
        if workspace_id is None:
            return SaveTargetResult(success=False, error=NOT_AUTHENTICATED)

        targets = list(targets)
        months = [target.month for target in targets]
        if len(months) > 12 or len(set(months)) != len(months):
            return SaveTargetResult(success=False, error="Each month can appear only once")
        if any(not 1 <= month <= 12 for month in months):
            return SaveTargetResult(success=False, error="Months must be between 1 and 12")
        if not MINYEAR <= year < MAXYEAR:
            return SaveTargetResult(success=False, error=f"Invalid year: {year}")

        return await self._save_targets(workspace_id, year, targets)

    async def _save_targets(
        self,
        workspace_id: uuid.UUID,
        year: int,
        targets: list[TargetInput],
    ) -> SaveTargetResult:
        for target in targets:
            if safe_float(target.sales_target) < 0 or safe_float(target.collection_target) < 0:
                return SaveTargetResult(success=False, error=NEGATIVE_TARGET)

        async with self.session_factory() as session:
            try:
                rows = await MonthlyTargetRepository(session).bulk_save(workspace_id, year, targets)
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                return SaveTargetResult(
                    success=False,
                    error=sanitize_error_message(e, ErrorCode.PERSISTENCE_FAILED),
                )

        logger.info("Saved %s monthly target(s) for workspace %s (%s)", len(rows), workspace_id, year)
        return SaveTargetResult(success=True, saved=len(rows))
