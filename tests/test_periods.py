from datetime import date

import pytest

from finpulse.metrics.periods import Period


def test_from_key_parses_year_and_month():
    period = Period.from_key("2026-03")
    assert (period.year, period.month) == (2026, 3)
    assert period.key == "2026-03"


@pytest.mark.parametrize("key", ["2026-3", "2026-13", "March", "", "2026/03", "0000-05", "9999-12"])
def test_from_key_rejects_malformed_keys(key):
    with pytest.raises(ValueError):
        Period.from_key(key)


def test_bounds_are_start_inclusive_end_exclusive():
    period = Period(2026, 12)
    assert period.start == date(2026, 12, 1)
    assert period.end == date(2027, 1, 1)
    assert period.contains(date(2026, 12, 31))
    assert not period.contains(date(2027, 1, 1))


def test_shift_crosses_year_boundaries():
    assert Period(2026, 1).previous() == Period(2025, 12)
    assert Period(2026, 11).shift(3) == Period(2027, 2)
    assert Period(2026, 3).shift(-14) == Period(2025, 1)


def test_days_in_month_handles_leap_years():
    assert Period(2024, 2).days_in_month == 29
    assert Period(2026, 2).days_in_month == 28


def test_kind_and_day_cursor_relative_to_today():
    today = date(2026, 3, 10)
    assert Period(2026, 3).kind(today) == "current"
    assert Period(2026, 2).kind(today) == "past"
    assert Period(2026, 4).kind(today) == "future"

    assert Period(2026, 3).day_cursor(today) == 10
    assert Period(2026, 2).day_cursor(today) == 28


def test_resolve_defaults_to_the_month_of_today():
    assert Period.resolve(None, date(2026, 7, 4)) == Period(2026, 7)
    assert Period.resolve("2025-01", date(2026, 7, 4)) == Period(2025, 1)
