import pytest

from finpulse.metrics.reconciliation import BalanceReconstructor, ReconciliationState


def test_theoretical_balance_from_last_snapshot():
    assert BalanceReconstructor.theoretical_balance(1_000_000, 300_000, 120_000) == 1_180_000


def test_bootstrap_uses_only_movements():
    assert BalanceReconstructor.theoretical_balance(None, 800_000, 650_000) == 150_000


def test_difference_is_real_minus_theoretical():
    assert BalanceReconstructor.difference(1_000_000, 950_000) == 50_000
    assert BalanceReconstructor.difference(900_000, 950_000) == -50_000


@pytest.mark.parametrize(
    ("cash", "expected"),
    [
        (1_000_000, 50_000),     # 2% = 20,000 < floor
        (10_000_000, 200_000),   # 2% above floor
        (0, 50_000),
        (-300_000, 50_000),
    ],
)
def test_tolerance_has_an_absolute_floor(cash, expected):
    assert BalanceReconstructor.tolerance(cash, absolute=50_000, pct=0.02) == pytest.approx(expected)


def test_difference_at_the_tolerance_is_not_material():
    assert not BalanceReconstructor.is_material(50_000, 50_000)
    assert not BalanceReconstructor.is_material(-50_000, 50_000)
    assert BalanceReconstructor.is_material(50_000.01, 50_000)


@pytest.mark.parametrize(
    ("difference", "days", "state"),
    [
        (0, 0, ReconciliationState.RECONCILED),
        (0, 3, ReconciliationState.RECONCILED),
        (0, 4, ReconciliationState.AGEING),
        (0, 7, ReconciliationState.AGEING),
        (80_000, 1, ReconciliationState.DIFFERENCE),
        (0, 8, ReconciliationState.STALE),
        (0, None, ReconciliationState.STALE),
    ],
)
def test_classify(difference, days, state):
    assert BalanceReconstructor.classify(difference, 50_000, days) == state


def test_status_uses_stored_difference():
    status = BalanceReconstructor.status(
        real_balance=1_000_000,
        theoretical_balance=1_200_000,
        stored_difference=10_000,
        cash_on_hand=1_000_000,
        days_since_last=2,
    )
    assert status.difference == 10_000
    assert status.tolerance == 50_000
    assert not status.is_material
    assert status.state == ReconciliationState.RECONCILED
