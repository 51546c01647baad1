"""
Period Fact Loader
Reads every raw fact the metrics engine needs for one workspace and period.

Strategy:
- Phase 1 (parallel): period sums, receivables, expense window, fixed costs,
  latest snapshot, completeness counts, streak row and resolved target
- Phase 2 (parallel): collections and expenses after the latest snapshot
  (all-time totals when there is none)

Each query runs on its own session because an AsyncSession cannot run
statements concurrently. A failing query is logged, reported in
PeriodFacts.errors and replaced by its default; load() never raises for it.
"""

import asyncio
import logging
import uuid
from collections import defaultdict
from datetime import date, datetime, timedelta, timezone
from typing import Any, Awaitable, Callable, Optional, TypeVar

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from finpulse.metrics.facts import (
    CompletenessFacts,
    InvoiceFact,
    PeriodFacts,
    ResolvedTarget,
    SnapshotFact,
)
from finpulse.metrics.periods import Period
from finpulse.metrics.streaks import ReconciliationStreakTracker, StreakState
from finpulse.metrics.targets import TargetResolverChain
from finpulse.metrics.utils import as_utc, safe_float
from finpulse.models import (
    ACTIVE_OPPORTUNITY_STAGES,
    BankBalanceSnapshot,
    Client,
    Collection,
    Expense,
    FixedExpense,
    FixedExpenseDraft,
    Invoice,
    Opportunity,
    Project,
    ProjectStatus,
    TimeEntry,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Days without an update after which an opportunity or the hour log is stale
FRESHNESS_DAYS = 14

# Calendar months (ending with the requested one) averaged for runway
EXPENSE_WINDOW_MONTHS = 3


async def sum_between(
    session: AsyncSession,
    model: Any,
    date_column: Any,
    workspace_id: uuid.UUID,
    start: Optional[date] = None,
    end: Optional[date] = None,
    after: Optional[date] = None,
) -> float:
    """
    SUM(amount) of a ledger table for a workspace.

    start is inclusive, end exclusive, after strictly exclusive.
    """
    stmt = select(func.coalesce(func.sum(model.amount), 0)).where(model.workspace_id == workspace_id)
    if start is not None:
        stmt = stmt.where(date_column >= start)
    if end is not None:
        stmt = stmt.where(date_column < end)
    if after is not None:
        stmt = stmt.where(date_column > after)
    result = await session.execute(stmt)
    return safe_float(result.scalar())


class PeriodFactLoader:
    """
    Concurrent, fault-tolerant reader of period facts.

    Args:
        session_factory: async_sessionmaker used to open one session per query
        target_chain: Resolver chain for monthly targets
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        target_chain: Optional[TargetResolverChain] = None,
    ):
        self.session_factory = session_factory
        self.target_chain = target_chain or TargetResolverChain()

    async def _query_with_fallback(
        self,
        label: str,
        query: Callable[[AsyncSession], Awaitable[T]],
        default: T,
    ) -> tuple[T, Optional[str]]:
        """Run one query on its own session, returning (default, error) on failure."""
        try:
            async with self.session_factory() as session:
                return await query(session), None
        except SQLAlchemyError as e:
            error_msg = f"{label}: {type(e).__name__}"
            logger.warning("Fact query failed (%s): %s", label, e, exc_info=True)
            return default, error_msg

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def _collections_between(self, session, workspace_id, period: Period) -> float:
        return await sum_between(
            session, Collection, Collection.collected_on, workspace_id, period.start, period.end
        )

    async def _expenses_between(self, session, workspace_id, period: Period) -> float:
        return await sum_between(
            session, Expense, Expense.spent_on, workspace_id, period.start, period.end
        )

    async def _sales(self, session, workspace_id, period: Period) -> float:
        return await sum_between(
            session, Invoice, Invoice.issued_on, workspace_id, period.start, period.end
        )

    async def _invoices(self, session, workspace_id) -> list[InvoiceFact]:
        stmt = (
            select(Invoice.id, Invoice.amount, Invoice.issued_on)
            .where(Invoice.workspace_id == workspace_id)
        )
        result = await session.execute(stmt)
        return [
            InvoiceFact(id=row.id, amount=safe_float(row.amount), issued_on=row.issued_on)
            for row in result.all()
        ]

    async def _collected_by_invoice(self, session, workspace_id) -> dict[uuid.UUID, float]:
        stmt = (
            select(Collection.invoice_id, func.sum(Collection.amount))
            .where(Collection.workspace_id == workspace_id)
            .where(Collection.invoice_id.is_not(None))
            .group_by(Collection.invoice_id)
        )
        result = await session.execute(stmt)
        return {invoice_id: safe_float(total) for invoice_id, total in result.all()}

    async def _total_invoiced(self, session, workspace_id) -> float:
        return await sum_between(session, Invoice, Invoice.issued_on, workspace_id)

    async def _total_collected(self, session, workspace_id) -> float:
        return await sum_between(session, Collection, Collection.collected_on, workspace_id)

    async def _monthly_expenses(self, session, workspace_id, period: Period) -> dict[str, float]:
        """Expense totals per month of the trailing window, only months with data."""
        window_start = period.shift(-(EXPENSE_WINDOW_MONTHS - 1)).start
        stmt = (
            select(Expense.spent_on, Expense.amount)
            .where(Expense.workspace_id == workspace_id)
            .where(Expense.spent_on >= window_start)
            .where(Expense.spent_on < period.end)
        )
        result = await session.execute(stmt)
        totals: dict[str, float] = defaultdict(float)
        for spent_on, amount in result.all():
            totals[Period.containing(spent_on).key] += safe_float(amount)
        return dict(totals)

    async def _fixed_expenses(self, session, workspace_id) -> tuple[int, float]:
        stmt = (
            select(func.count(FixedExpense.id), func.coalesce(func.sum(FixedExpense.reference_amount), 0))
            .where(FixedExpense.workspace_id == workspace_id)
            .where(FixedExpense.is_active.is_(True))
        )
        result = await session.execute(stmt)
        count, total = result.one()
        return int(count or 0), safe_float(total)

    async def _latest_snapshot(self, session, workspace_id) -> Optional[SnapshotFact]:
        stmt = (
            select(BankBalanceSnapshot)
            .where(BankBalanceSnapshot.workspace_id == workspace_id)
            .order_by(BankBalanceSnapshot.recorded_at.desc())
            .limit(1)
        )
        result = await session.execute(stmt)
        row = result.scalar_one_or_none()
        if row is None:
            return None
        return SnapshotFact(
            real_balance=safe_float(row.real_balance),
            theoretical_balance=safe_float(row.theoretical_balance),
            difference=safe_float(row.difference),
            recorded_at=row.recorded_at,
            note=row.note,
        )

    async def _closed_projects(self, session, workspace_id) -> list[tuple[float, float]]:
        stmt = (
            select(Project.total_budget, Project.accumulated_cost)
            .where(Project.workspace_id == workspace_id)
            .where(Project.status == ProjectStatus.CLOSED.value)
            .where(Project.total_budget > 0)
        )
        result = await session.execute(stmt)
        return [(safe_float(budget), safe_float(cost)) for budget, cost in result.all()]

    async def _clients(self, session, workspace_id) -> tuple[int, int]:
        stmt = select(Client.document_number, Client.tax_regime).where(Client.workspace_id == workspace_id)
        result = await session.execute(stmt)
        rows = result.all()
        complete = sum(1 for document, regime in rows if document and regime)
        return len(rows), complete

    async def _opportunities(self, session, workspace_id, now: datetime) -> tuple[int, int]:
        cutoff = now - timedelta(days=FRESHNESS_DAYS)
        stmt = (
            select(Opportunity.updated_at)
            .where(Opportunity.workspace_id == workspace_id)
            .where(Opportunity.stage.in_(ACTIVE_OPPORTUNITY_STAGES))
        )
        result = await session.execute(stmt)
        updates = [row[0] for row in result.all()]
        fresh = 0
        for updated_at in updates:
            if updated_at is not None and as_utc(updated_at) >= cutoff:
                fresh += 1
        return len(updates), fresh

    async def _drafts(self, session, workspace_id, period: Period) -> tuple[int, int]:
        stmt = (
            select(FixedExpenseDraft.is_confirmed)
            .where(FixedExpenseDraft.workspace_id == workspace_id)
            .where(FixedExpenseDraft.period_start == period.start)
        )
        result = await session.execute(stmt)
        flags = [row[0] for row in result.all()]
        return len(flags), sum(1 for confirmed in flags if confirmed)

    async def _has_recent_hours(self, session, workspace_id, today: date) -> bool:
        stmt = (
            select(TimeEntry.id)
            .where(TimeEntry.workspace_id == workspace_id)
            .where(TimeEntry.entry_date >= today - timedelta(days=FRESHNESS_DAYS))
            .limit(1)
        )
        result = await session.execute(stmt)
        return result.first() is not None

    async def _streak(self, session, workspace_id) -> Optional[StreakState]:
        row = await ReconciliationStreakTracker(session).get(workspace_id)
        if row is None:
            return None
        return StreakState(
            current_weeks=row.current_weeks or 0,
            record_weeks=row.record_weeks or 0,
            last_updated_at=row.last_updated_at,
            started_on=row.streak_started_on,
        )

    async def _target(self, session, workspace_id, period: Period) -> Optional[ResolvedTarget]:
        return await self.target_chain.resolve(session, workspace_id, period)

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    async def load(
        self,
        workspace_id: uuid.UUID,
        period: Period,
        today: date,
        now: Optional[datetime] = None,
    ) -> PeriodFacts:
        """
        Load all facts of a period and its previous period.

        Args:
            workspace_id: Workspace to read
            period: Requested period
            today: Reference date for the hour log freshness
            now: Reference instant for opportunity freshness (defaults to
                the start of `today` in UTC)

        Returns:
            PeriodFacts, with any failed query listed in errors
        """
        if now is None:
            now = datetime(today.year, today.month, today.day, tzinfo=timezone.utc)
        previous = period.previous()
        ws = workspace_id
        q = self._query_with_fallback

        (
            (collections, e1),
            (expenses, e2),
            (previous_collections, e3),
            (previous_expenses, e4),
            (sales, e5),
            (invoices, e6),
            (collected_by_invoice, e7),
            (total_invoiced, e8),
            (total_collected, e9),
            (monthly_expenses, e10),
            ((fixed_count, fixed_total), e11),
            (snapshot, e12),
            (closed_projects, e13),
            ((clients_total, clients_complete), e14),
            ((active_opportunities, fresh_opportunities), e15),
            ((drafts_total, drafts_confirmed), e16),
            (has_recent_hours, e17),
            (streak, e18),
            (target, e19),
        ) = await asyncio.gather(
            q("Collections", lambda s: self._collections_between(s, ws, period), 0.0),
            q("Expenses", lambda s: self._expenses_between(s, ws, period), 0.0),
            q("Collections (previous)", lambda s: self._collections_between(s, ws, previous), 0.0),
            q("Expenses (previous)", lambda s: self._expenses_between(s, ws, previous), 0.0),
            q("Sales", lambda s: self._sales(s, ws, period), 0.0),
            q("Invoices", lambda s: self._invoices(s, ws), []),
            q("Collections by invoice", lambda s: self._collected_by_invoice(s, ws), {}),
            q("Total invoiced", lambda s: self._total_invoiced(s, ws), 0.0),
            q("Total collected", lambda s: self._total_collected(s, ws), 0.0),
            q("Expense window", lambda s: self._monthly_expenses(s, ws, period), {}),
            q("Fixed expenses", lambda s: self._fixed_expenses(s, ws), (0, 0.0)),
            q("Latest snapshot", lambda s: self._latest_snapshot(s, ws), None),
            q("Closed projects", lambda s: self._closed_projects(s, ws), []),
            q("Clients", lambda s: self._clients(s, ws), (0, 0)),
            q("Opportunities", lambda s: self._opportunities(s, ws, now), (0, 0)),
            q("Fixed expense drafts", lambda s: self._drafts(s, ws, period), (0, 0)),
            q("Recent hours", lambda s: self._has_recent_hours(s, ws, today), False),
            q("Streak", lambda s: self._streak(s, ws), None),
            q("Monthly target", lambda s: self._target(s, ws, period), None),
        )

        errors = [
            e for e in (e1, e2, e3, e4, e5, e6, e7, e8, e9, e10,
                        e11, e12, e13, e14, e15, e16, e17, e18, e19)
            if e
        ]

        # Phase 2: movements after the anchor snapshot
        if snapshot is not None:
            anchor_day = as_utc(snapshot.recorded_at).date()
            (since_collections, e20), (since_expenses, e21) = await asyncio.gather(
                q("Collections since snapshot", lambda s: sum_between(
                    s, Collection, Collection.collected_on, ws, after=anchor_day), 0.0),
                q("Expenses since snapshot", lambda s: sum_between(
                    s, Expense, Expense.spent_on, ws, after=anchor_day), 0.0),
            )
        else:
            (since_collections, e20), (since_expenses, e21) = await asyncio.gather(
                q("Collections (all time)", lambda s: self._total_collected(s, ws), 0.0),
                q("Expenses (all time)", lambda s: sum_between(s, Expense, Expense.spent_on, ws), 0.0),
            )
        errors.extend(e for e in (e20, e21) if e)

        if errors:
            logger.warning(
                "Some fact queries failed for workspace %s (%s): %s",
                workspace_id,
                period.key,
                ", ".join(errors),
            )

        return PeriodFacts(
            period=period,
            collections=collections,
            expenses=expenses,
            previous_collections=previous_collections,
            previous_expenses=previous_expenses,
            sales=sales,
            invoices=invoices,
            collected_by_invoice=collected_by_invoice,
            total_invoiced=total_invoiced,
            total_collected=total_collected,
            monthly_expenses=monthly_expenses,
            fixed_expenses_total=fixed_total,
            closed_projects=closed_projects,
            latest_snapshot=snapshot,
            collections_since_snapshot=since_collections,
            expenses_since_snapshot=since_expenses,
            streak=streak,
            target=target,
            completeness=CompletenessFacts(
                fixed_expense_count=fixed_count,
                clients_total=clients_total,
                clients_fiscally_complete=clients_complete,
                active_opportunities=active_opportunities,
                fresh_opportunities=fresh_opportunities,
                drafts_total=drafts_total,
                drafts_confirmed=drafts_confirmed,
                has_recent_hours=has_recent_hours,
            ),
            errors=errors,
        )
