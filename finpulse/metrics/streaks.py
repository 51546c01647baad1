"""
Reconciliation Streak Tracker

Counts consecutive calendar weeks in which the workspace reported its real
bank balance at least once.

State machine over the single streak row of a workspace:
- no row                              -> create with count 1, record 1
- gap since last update > 7 days      -> broken: count back to 1, record kept
- gap <= 7 days, same ISO week        -> already counted, no change
- gap <= 7 days, different ISO week   -> count + 1, record = max(record, count)
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional, Union

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from finpulse.metrics.utils import as_utc, whole_days_between
from finpulse.models.reconciliation_streak import (
    STREAK_TYPE_RECONCILIATION,
    ReconciliationStreak,
)

logger = logging.getLogger(__name__)

STREAK_BREAK_AFTER_DAYS = 7

# (minimum weeks, badge), highest first
MILESTONES = (
    (52, "🏆"),
    (26, "🥇"),
    (12, "🥈"),
    (4, "🥉"),
)


def iso_week(value: Union[date, datetime]) -> tuple[int, int]:
    """
    ISO-8601 (iso_year, week) of a date.

    Weeks start on Monday and week 1 is the one containing the year's first
    Thursday, so late-December days can belong to week 1 of the next year.
    Compare the returned tuples, never the bare week numbers.
    """
    if isinstance(value, datetime):
        value = as_utc(value).date()
    iso_year, week, _ = value.isocalendar()
    return iso_year, week


def milestone_badge(weeks: int) -> Optional[str]:
    """Badge for the current streak length, if any."""
    for minimum, badge in MILESTONES:
        if weeks >= minimum:
            return badge
    return None


@dataclass(frozen=True)
class StreakState:
    """Persisted streak values relevant to a transition."""

    current_weeks: int
    record_weeks: int
    last_updated_at: Optional[datetime]
    started_on: Optional[date] = None


@dataclass(frozen=True)
class StreakTransition:
    """Result of applying one balance report to a streak."""

    current_weeks: int
    record_weeks: int
    started_on: Optional[date]
    created: bool = False
    broken: bool = False
    counted: bool = True


def advance_streak(state: Optional[StreakState], now: datetime) -> StreakTransition:
    """Apply a balance report made at `now` to the streak state."""
    today = as_utc(now).date()

    if state is None:
        return StreakTransition(
            current_weeks=1,
            record_weeks=1,
            started_on=today,
            created=True,
        )

    if state.last_updated_at is None:
        gap_days = None
    else:
        gap_days = whole_days_between(state.last_updated_at, now)

    if gap_days is None or gap_days > STREAK_BREAK_AFTER_DAYS:
        return StreakTransition(
            current_weeks=1,
            record_weeks=max(state.record_weeks, 1),
            started_on=today,
            broken=True,
        )

    if iso_week(state.last_updated_at) == iso_week(now):
        return StreakTransition(
            current_weeks=state.current_weeks,
            record_weeks=max(state.record_weeks, state.current_weeks),
            started_on=state.started_on,
            counted=False,
        )

    current = state.current_weeks + 1
    return StreakTransition(
        current_weeks=current,
        record_weeks=max(state.record_weeks, current),
        started_on=state.started_on,
    )


class ReconciliationStreakTracker:
    """Reads and updates the per-workspace reconciliation streak row."""

    def __init__(self, session: AsyncSession, streak_type: str = STREAK_TYPE_RECONCILIATION):
        self.session = session
        self.streak_type = streak_type

    async def get(self, workspace_id: uuid.UUID) -> Optional[ReconciliationStreak]:
        stmt = (
            select(ReconciliationStreak)
            .where(ReconciliationStreak.workspace_id == workspace_id)
            .where(ReconciliationStreak.streak_type == self.streak_type)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def register(self, workspace_id: uuid.UUID, now: datetime) -> StreakTransition:
        """
        Count a balance report made at `now`.

        Flushes but does not commit; the caller owns the transaction.
        """
        row = await self.get(workspace_id)

        state = None
        if row is not None:
            state = StreakState(
                current_weeks=row.current_weeks or 0,
                record_weeks=row.record_weeks or 0,
                last_updated_at=row.last_updated_at,
                started_on=row.streak_started_on,
            )

        transition = advance_streak(state, now)

        if row is None:
            row = ReconciliationStreak(
                workspace_id=workspace_id,
                streak_type=self.streak_type,
            )
            self.session.add(row)

        row.current_weeks = transition.current_weeks
        row.record_weeks = transition.record_weeks
        row.streak_started_on = transition.started_on
        row.last_updated_at = as_utc(now)

        await self.session.flush()

        if transition.broken:
            logger.info(
                "Reconciliation streak broken for workspace %s (record %s weeks)",
                workspace_id,
                transition.record_weeks,
            )

        return transition
