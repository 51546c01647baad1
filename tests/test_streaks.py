from datetime import date, datetime, timedelta, timezone

import pytest

from finpulse.metrics.streaks import (
    ReconciliationStreakTracker,
    StreakState,
    advance_streak,
    iso_week,
    milestone_badge,
)


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


class TestIsoWeek:
    def test_late_december_can_belong_to_next_iso_year(self):
        # Monday 30 Dec 2024 starts week 1 of 2025
        assert iso_week(date(2024, 12, 30)) == (2025, 1)

    def test_early_january_can_belong_to_previous_iso_year(self):
        assert iso_week(date(2021, 1, 1)) == (2020, 53)

    def test_weeks_start_on_monday(self):
        assert iso_week(date(2026, 3, 8)) != iso_week(date(2026, 3, 9))  # Sun / Mon
        assert iso_week(date(2026, 3, 9)) == iso_week(date(2026, 3, 15))  # Mon / Sun

    def test_datetimes_are_compared_in_utc(self):
        assert iso_week(utc(2026, 3, 9, 23, 30)) == iso_week(date(2026, 3, 9))


class TestAdvanceStreak:
    def test_first_report_creates_streak(self):
        transition = advance_streak(None, utc(2026, 3, 10, 12))
        assert transition.created
        assert (transition.current_weeks, transition.record_weeks) == (1, 1)
        assert transition.started_on == date(2026, 3, 10)

    def test_same_iso_week_is_not_counted_twice(self):
        state = StreakState(2, 5, utc(2026, 3, 9, 8))
        transition = advance_streak(state, utc(2026, 3, 12, 8))
        assert not transition.counted
        assert (transition.current_weeks, transition.record_weeks) == (2, 5)

    def test_next_week_within_gap_increments(self):
        state = StreakState(3, 3, utc(2026, 3, 12, 8))
        transition = advance_streak(state, utc(2026, 3, 17, 8))
        assert (transition.current_weeks, transition.record_weeks) == (4, 4)

    def test_gap_of_exactly_seven_days_keeps_streak(self):
        state = StreakState(3, 3, utc(2026, 3, 10, 8))
        transition = advance_streak(state, utc(2026, 3, 17, 8))
        assert not transition.broken
        assert transition.current_weeks == 4

    def test_gap_over_seven_days_resets_and_keeps_record(self):
        state = StreakState(3, 3, utc(2026, 3, 1, 8), started_on=date(2026, 2, 15))
        transition = advance_streak(state, utc(2026, 3, 11, 8))
        assert transition.broken
        assert transition.current_weeks == 1
        assert transition.record_weeks >= 3
        assert transition.started_on == date(2026, 3, 11)

    def test_record_never_decreases(self):
        state = StreakState(1, 9, utc(2026, 3, 1))
        moments = [utc(2026, 3, 1) + timedelta(days=d) for d in (3, 8, 20, 24, 40)]
        record = state.record_weeks
        for moment in moments:
            transition = advance_streak(state, moment)
            assert transition.record_weeks >= record
            record = transition.record_weeks
            state = StreakState(transition.current_weeks, transition.record_weeks, moment)


@pytest.mark.parametrize(
    ("weeks", "badge"),
    [(0, None), (3, None), (4, "🥉"), (12, "🥈"), (26, "🥇"), (51, "🥇"), (52, "🏆")],
)
def test_milestone_badges(weeks, badge):
    assert milestone_badge(weeks) == badge


async def test_tracker_upserts_a_single_row(session, workspace_id):
    tracker = ReconciliationStreakTracker(session)

    first = await tracker.register(workspace_id, utc(2026, 3, 2, 9))
    second = await tracker.register(workspace_id, utc(2026, 3, 10, 9))
    await session.commit()

    assert first.created
    assert second.current_weeks == 1  # 8 days later: broken
    row = await tracker.get(workspace_id)
    assert row.current_weeks == 1
    assert row.record_weeks == 1
    assert row.streak_started_on == date(2026, 3, 10)


async def test_tracker_counts_consecutive_weeks(session, workspace_id):
    tracker = ReconciliationStreakTracker(session)
    start = utc(2026, 1, 5, 9)
    for week in range(4):
        transition = await tracker.register(workspace_id, start + timedelta(weeks=week))
    await session.commit()

    assert transition.current_weeks == 4
    row = await tracker.get(workspace_id)
    assert (row.current_weeks, row.record_weeks) == (4, 4)
