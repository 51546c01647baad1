import uuid
from datetime import date, datetime, timezone

import pytest

from finpulse.metrics.calculator import MetricsCalculator
from finpulse.metrics.facts import InvoiceFact, PeriodFacts, ResolvedTarget, SnapshotFact
from finpulse.metrics.periods import Period


class TestReceivables:
    def test_receivables_is_invoiced_minus_collected(self):
        assert MetricsCalculator.receivables(1_000_000, 400_000) == 600_000

    def test_fully_paid_receivables_are_zero(self):
        assert MetricsCalculator.receivables(1_000_000, 1_000_000) == 0

    def test_overdue_counts_outstanding_balance_older_than_30_days(self):
        old, recent, paid = uuid.uuid4(), uuid.uuid4(), uuid.uuid4()
        invoices = [
            InvoiceFact(old, 500_000, date(2026, 1, 10)),
            InvoiceFact(recent, 300_000, date(2026, 3, 1)),
            InvoiceFact(paid, 200_000, date(2025, 12, 1)),
        ]
        collected = {old: 100_000, paid: 200_000}

        overdue = MetricsCalculator.overdue_receivables(invoices, collected, date(2026, 3, 15))

        assert overdue == 400_000

    def test_invoice_issued_exactly_30_days_ago_is_not_overdue(self):
        invoice = InvoiceFact(uuid.uuid4(), 100_000, date(2026, 2, 13))
        assert MetricsCalculator.overdue_receivables([invoice], {}, date(2026, 3, 15)) == 0

    def test_overdue_ratio_without_receivables_is_zero(self):
        assert MetricsCalculator.overdue_ratio(0, 0) == 0.0


class TestBreakEven:
    def test_contribution_margin_averages_closed_projects(self):
        margin = MetricsCalculator.contribution_margin([(1_000, 600), (2_000, 1_000), (0, 50)])
        assert margin == pytest.approx((0.4 + 0.5) / 2)

    def test_contribution_margin_defaults_without_projects(self):
        assert MetricsCalculator.contribution_margin([]) == 0.30

    def test_break_even_divides_fixed_costs_by_margin(self):
        assert MetricsCalculator.break_even(2_000_000, 0.70) == pytest.approx(2_857_142.857, rel=1e-6)

    def test_break_even_without_positive_margin_is_fixed_cost(self):
        assert MetricsCalculator.break_even(2_000_000, 0) == 2_000_000
        assert MetricsCalculator.break_even(2_000_000, -0.2) == 2_000_000

    def test_required_sales_is_never_negative(self):
        assert MetricsCalculator.required_sales(1_000, 1_500) == 0
        assert MetricsCalculator.required_sales(1_000, 400) == 600


class TestRunway:
    def test_average_uses_months_with_data(self):
        assert MetricsCalculator.average_monthly_expense({"2026-02": 300, "2026-03": 500}) == 400

    def test_average_of_empty_window_is_zero(self):
        assert MetricsCalculator.average_monthly_expense({}) == 0

    def test_runway_is_capped_without_expenses(self):
        assert MetricsCalculator.runway_months(5_000_000, 0) == 99.0

    def test_runway_divides_cash_by_average_expense(self):
        assert MetricsCalculator.runway_months(8_000_000, 1_000_000) == 8


class TestGoalPacing:
    def test_pacing_only_for_the_current_period(self):
        assert MetricsCalculator.goal_pacing(100, 1_000, Period(2026, 2), date(2026, 3, 15)) is None

    def test_pacing_requires_a_positive_target(self):
        assert MetricsCalculator.goal_pacing(100, None, Period(2026, 3), date(2026, 3, 15)) is None
        assert MetricsCalculator.goal_pacing(100, 0, Period(2026, 3), date(2026, 3, 15)) is None

    @pytest.mark.parametrize(
        ("actual", "status"),
        [(500, "ahead"), (400, "on_track"), (399, "behind")],
    )
    def test_pacing_status(self, actual, status):
        # April has 30 days; on the 15th half of 1,000 is expected
        pacing = MetricsCalculator.goal_pacing(actual, 1_000, Period(2026, 4), date(2026, 4, 15))
        assert pacing.expected_to_date == pytest.approx(500)
        assert pacing.status == status


def test_calculate_prefers_real_balance_for_cash():
    period = Period(2026, 3)
    facts = PeriodFacts(
        period=period,
        collections=1_200_000,
        expenses=700_000,
        previous_collections=900_000,
        previous_expenses=950_000,
        sales=1_500_000,
        total_invoiced=4_000_000,
        total_collected=3_000_000,
        monthly_expenses={"2026-01": 600_000, "2026-03": 800_000},
        fixed_expenses_total=600_000,
        latest_snapshot=SnapshotFact(
            real_balance=2_100_000,
            theoretical_balance=2_000_000,
            difference=100_000,
            recorded_at=datetime(2026, 3, 12, tzinfo=timezone.utc),
        ),
        collections_since_snapshot=200_000,
        expenses_since_snapshot=50_000,
        target=ResolvedTarget(2_000_000, 1_600_000, "exact", "2026-03"),
    )

    indicators = MetricsCalculator.calculate(facts, date(2026, 3, 15))

    assert indicators.cash_on_hand == 2_100_000
    assert indicators.cash_is_real
    assert indicators.theoretical_balance == 2_250_000
    assert indicators.profit == indicators.collections - indicators.expenses == 500_000
    assert indicators.previous_profit == -50_000
    assert indicators.receivables == 1_000_000
    assert indicators.contribution_margin == 0.30
    assert indicators.break_even == pytest.approx(2_000_000)
    assert indicators.required_sales == pytest.approx(500_000)
    assert indicators.runway_months == pytest.approx(3.0)
    assert indicators.sales_pacing is not None
    assert indicators.collection_pacing.target == 1_600_000


def test_calculate_without_snapshot_uses_bootstrap_balance():
    facts = PeriodFacts(
        period=Period(2026, 3),
        collections_since_snapshot=900_000,
        expenses_since_snapshot=400_000,
    )

    indicators = MetricsCalculator.calculate(facts, date(2026, 3, 15))

    assert not indicators.cash_is_real
    assert indicators.cash_on_hand == 500_000
    assert indicators.runway_months == 99.0
    assert indicators.sales_target is None
    assert indicators.sales_pacing is None
