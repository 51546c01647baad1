"""
Metrics Module
Period indicators, the two-layer business health semaphore and bank
reconciliation for a workspace.
"""

from finpulse.metrics.calculator import FinancialIndicators, MetricsCalculator
from finpulse.metrics.loader import PeriodFactLoader
from finpulse.metrics.periods import Period
from finpulse.metrics.reconciliation import BalanceReconstructor, ReconciliationState
from finpulse.metrics.semaphore import SemaphoreScorer
from finpulse.metrics.service import PeriodMetrics, PeriodMetricsService
from finpulse.metrics.streaks import ReconciliationStreakTracker
from finpulse.metrics.targets import MonthlyTargetRepository, TargetResolverChain

__all__ = [
    "BalanceReconstructor",
    "FinancialIndicators",
    "MetricsCalculator",
    "MonthlyTargetRepository",
    "Period",
    "PeriodFactLoader",
    "PeriodMetrics",
    "PeriodMetricsService",
    "ReconciliationState",
    "ReconciliationStreakTracker",
    "SemaphoreScorer",
    "TargetResolverChain",
]
