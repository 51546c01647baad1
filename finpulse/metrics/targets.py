"""
Monthly Target Resolver

Reads resolve a period's goals through an ordered chain of resolvers; the
first one that finds a positive sales target wins:

1. ExactPeriodResolver   - the row saved for the period itself
2. PriorPeriodResolver   - the most recent earlier month with a sales target
3. LegacyTableResolver   - the (year, month) row of the legacy table

Resolution never writes. Writes go through MonthlyTargetRepository and only
touch the exact month being saved.
"""

import logging
import uuid
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from finpulse.metrics.facts import ResolvedTarget
from finpulse.metrics.periods import Period
from finpulse.metrics.utils import safe_float, to_decimal
from finpulse.models.monthly_target import LegacyMonthlyTarget, MonthlyTarget

logger = logging.getLogger(__name__)

DEFAULT_COLLECTION_RATIO = 0.8


def _positive(value) -> Optional[float]:
    """Float value when positive, None for missing or zero amounts."""
    amount = safe_float(value)
    return amount if amount > 0 else None


def _stored(value) -> Optional[float]:
    """Float value as stored, None only when missing."""
    return None if value is None else safe_float(value)


class TargetResolver:
    """Base class for one link of the resolution chain."""

    source = ""

    async def resolve(
        self,
        session: AsyncSession,
        workspace_id: uuid.UUID,
        period: Period,
    ) -> Optional[ResolvedTarget]:
        raise NotImplementedError


class ExactPeriodResolver(TargetResolver):
    source = "exact"

    async def resolve(self, session, workspace_id, period):
        stmt = (
            select(MonthlyTarget)
            .where(MonthlyTarget.workspace_id == workspace_id)
            .where(MonthlyTarget.period_start == period.start)
        )
        result = await session.execute(stmt)
        row = result.scalar_one_or_none()
        if row is None or _positive(row.sales_target) is None:
            return None
        return ResolvedTarget(
            sales_target=_positive(row.sales_target),
            collection_target=_stored(row.collection_target),
            source=self.source,
            source_period=period.key,
        )


class PriorPeriodResolver(TargetResolver):
    """Inherit from the latest earlier month that has a non-zero sales target."""

    source = "inherited"

    async def resolve(self, session, workspace_id, period):
        stmt = (
            select(MonthlyTarget)
            .where(MonthlyTarget.workspace_id == workspace_id)
            .where(MonthlyTarget.period_start < period.start)
            .where(MonthlyTarget.sales_target > 0)
            .order_by(MonthlyTarget.period_start.desc())
            .limit(1)
        )
        result = await session.execute(stmt)
        row = result.scalar_one_or_none()
        if row is None:
            return None
        return ResolvedTarget(
            sales_target=_positive(row.sales_target),
            collection_target=_stored(row.collection_target),
            source=self.source,
            source_period=Period.containing(row.period_start).key,
        )


class LegacyTableResolver(TargetResolver):
    source = "legacy"

    async def resolve(self, session, workspace_id, period):
        stmt = (
            select(LegacyMonthlyTarget)
            .where(LegacyMonthlyTarget.workspace_id == workspace_id)
            .where(LegacyMonthlyTarget.year == period.year)
            .where(LegacyMonthlyTarget.month == period.month)
        )
        result = await session.execute(stmt)
        row = result.scalar_one_or_none()
        if row is None or _positive(row.sales_target) is None:
            return None
        return ResolvedTarget(
            sales_target=_positive(row.sales_target),
            collection_target=_stored(row.collection_target),
            source=self.source,
            source_period=period.key,
        )


class TargetResolverChain:
    """Runs resolvers in order and returns the first hit."""

    def __init__(self, resolvers: Optional[Sequence[TargetResolver]] = None):
        self.resolvers = list(resolvers) if resolvers is not None else [
            ExactPeriodResolver(),
            PriorPeriodResolver(),
            LegacyTableResolver(),
        ]

    async def resolve(
        self,
        session: AsyncSession,
        workspace_id: uuid.UUID,
        period: Period,
    ) -> Optional[ResolvedTarget]:
        for resolver in self.resolvers:
            target = await resolver.resolve(session, workspace_id, period)
            if target is not None:
                if target.source != ExactPeriodResolver.source:
                    logger.debug(
                        "Target for %s resolved from %s (%s)",
                        period.key,
                        target.source,
                        target.source_period,
                    )
                return target
        return None


@dataclass(frozen=True)
class TargetInput:
    """One month of a bulk save."""
    month: int
    sales_target: float
    collection_target: Optional[float] = None


class MonthlyTargetRepository:
    """Exact-month writes and listing of monthly targets."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, workspace_id: uuid.UUID, period: Period) -> Optional[MonthlyTarget]:
        stmt = (
            select(MonthlyTarget)
            .where(MonthlyTarget.workspace_id == workspace_id)
            .where(MonthlyTarget.period_start == period.start)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def save(
        self,
        workspace_id: uuid.UUID,
        period: Period,
        sales_target: float,
        collection_target: Optional[float] = None,
    ) -> MonthlyTarget:
        """
        Insert or update the row for exactly this month.

        The collection target defaults to 80% of the sales target. Flushes
        but does not commit.
        """
        if collection_target is None:
            collection_target = sales_target * DEFAULT_COLLECTION_RATIO

        row = await self.get(workspace_id, period)
        if row is None:
            row = MonthlyTarget(workspace_id=workspace_id, period_start=period.start)
            self.session.add(row)

        row.sales_target = to_decimal(sales_target)
        row.collection_target = to_decimal(collection_target)

        await self.session.flush()
        return row

    async def bulk_save(
        self,
        workspace_id: uuid.UUID,
        year: int,
        targets: Iterable[TargetInput],
    ) -> list[MonthlyTarget]:
        """Save several months of one year. Invalid months raise ValueError."""
        rows = []
        for target in targets:
            period = Period(year, target.month)
            rows.append(
                await self.save(
                    workspace_id,
                    period,
                    target.sales_target,
                    target.collection_target,
                )
            )
        return rows

    async def list_latest(self, workspace_id: uuid.UUID, limit: int = 12) -> list[MonthlyTarget]:
        stmt = (
            select(MonthlyTarget)
            .where(MonthlyTarget.workspace_id == workspace_id)
            .order_by(MonthlyTarget.period_start.desc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
