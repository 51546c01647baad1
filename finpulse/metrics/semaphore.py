"""
Business Health Semaphore

Two-layer traffic light:

- Layer 1 (completeness): can the numbers be trusted at all? Eight weighted
  checks, each graded green (full credit), yellow (half credit) or red (no
  credit). Score = round(green_weight / total_weight * 100); green >= 80,
  yellow >= 50, red otherwise.
- Layer 2 (financial health): evaluated only when Layer 1 is green. Runway,
  sales vs break-even and overdue receivables are colored independently and
  the worst of the three wins.

The final color is Layer 2 when it was evaluated, Layer 1 otherwise.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class Light(str, Enum):
    """Semaphore colors."""
    GREEN = "green"
    YELLOW = "yellow"
    RED = "red"


_SEVERITY = {Light.GREEN: 0, Light.YELLOW: 1, Light.RED: 2}

_CREDIT = {Light.GREEN: 1.0, Light.YELLOW: 0.5, Light.RED: 0.0}


def worst(*lights: Light) -> Light:
    """Worst color of the given ones (red > yellow > green)."""
    return max(lights, key=lambda light: _SEVERITY[light])


def grade_ratio(ratio: float, yellow_from: float, green_from: float = 1.0) -> Light:
    """Green at or above green_from, yellow at or above yellow_from, red otherwise."""
    if ratio >= green_from:
        return Light.GREEN
    if ratio >= yellow_from:
        return Light.YELLOW
    return Light.RED


def _plural(count: int, word: str) -> str:
    return f"{count} {word}{'s' if count > 1 else ''}"


# ============================================
# Layer 1: completeness
# ============================================

@dataclass(frozen=True)
class PendingItem:
    """A checklist line shown under the semaphore."""
    label: str
    done: bool
    action: Optional[str] = None  # link to the screen that fixes it


@dataclass(frozen=True)
class CheckResult:
    light: Light
    pending: PendingItem

    @property
    def credit(self) -> float:
        """Fraction of the check's weight awarded."""
        return _CREDIT[self.light]


@dataclass(frozen=True)
class CompletenessInputs:
    """Raw indicators graded by the completeness checks."""
    fixed_expense_count: int = 0
    sales_target: Optional[float] = None
    clients_total: int = 0
    clients_fiscally_complete: int = 0
    days_since_last_balance: Optional[int] = None
    active_opportunities: int = 0
    fresh_opportunities: int = 0
    drafts_total: int = 0
    drafts_confirmed: int = 0
    has_recent_hours: bool = False
    reconciliation_difference: float = 0.0
    reconciliation_tolerance: float = 0.0


@dataclass(frozen=True)
class CompletenessCheck:
    """One weighted entry of the completeness table."""
    key: str
    weight: float
    grade: Callable[[CompletenessInputs], CheckResult]


def _grade_fixed_expenses(inputs: CompletenessInputs) -> CheckResult:
    count = inputs.fixed_expense_count
    light = Light.GREEN if count >= 3 else Light.YELLOW if count >= 1 else Light.RED
    return CheckResult(light, PendingItem(
        label="Fixed expenses configured",
        done=light == Light.GREEN,
        action=None if light == Light.GREEN else "/config",
    ))


def _grade_sales_target(inputs: CompletenessInputs) -> CheckResult:
    light = Light.GREEN if inputs.sales_target and inputs.sales_target > 0 else Light.RED
    return CheckResult(light, PendingItem(
        label="Sales target defined",
        done=light == Light.GREEN,
        action=None if light == Light.GREEN else "/config",
    ))


def _grade_client_fiscal_data(inputs: CompletenessInputs) -> CheckResult:
    total = inputs.clients_total
    ratio = inputs.clients_fiscally_complete / total if total > 0 else 1.0
    light = grade_ratio(ratio, yellow_from=0.7)
    if light != Light.GREEN:
        missing = total - inputs.clients_fiscally_complete
        return CheckResult(light, PendingItem(
            label=f"Fiscal data for {_plural(missing, 'client')}",
            done=False,
            action="/directorio",
        ))
    return CheckResult(light, PendingItem(label="Client fiscal data", done=True))


def _grade_balance_recency(inputs: CompletenessInputs) -> CheckResult:
    days = inputs.days_since_last_balance
    if days is None:
        light = Light.RED
    elif days < 4:
        light = Light.GREEN
    elif days <= 7:
        light = Light.YELLOW
    else:
        light = Light.RED
    return CheckResult(light, PendingItem(
        label="Bank balance up to date",
        done=light == Light.GREEN,
    ))


def _grade_opportunity_freshness(inputs: CompletenessInputs) -> CheckResult:
    active = inputs.active_opportunities
    ratio = inputs.fresh_opportunities / active if active > 0 else 1.0
    light = grade_ratio(ratio, yellow_from=0.7)
    return CheckResult(light, PendingItem(
        label="Opportunities up to date",
        done=light == Light.GREEN,
        action=None if light == Light.GREEN else "/pipeline",
    ))


def _grade_draft_confirmation(inputs: CompletenessInputs) -> CheckResult:
    total = inputs.drafts_total
    ratio = inputs.drafts_confirmed / total if total > 0 else 1.0
    light = grade_ratio(ratio, yellow_from=0.5)
    if light != Light.GREEN:
        pending = total - inputs.drafts_confirmed
        return CheckResult(light, PendingItem(
            label=f"Confirm {_plural(pending, 'fixed expense')} for the month",
            done=False,
        ))
    return CheckResult(light, PendingItem(label="Fixed expenses for the month confirmed", done=True))


def _grade_recent_hours(inputs: CompletenessInputs) -> CheckResult:
    light = Light.GREEN if inputs.has_recent_hours else Light.RED
    return CheckResult(light, PendingItem(
        label="Project hours up to date",
        done=inputs.has_recent_hours,
        action=None if inputs.has_recent_hours else "/proyectos",
    ))


def _grade_reconciliation_difference(inputs: CompletenessInputs) -> CheckResult:
    if inputs.days_since_last_balance is None:
        light = Light.RED
    else:
        difference = abs(inputs.reconciliation_difference)
        tolerance = inputs.reconciliation_tolerance
        if difference <= tolerance * 0.02:
            light = Light.GREEN
        elif difference <= tolerance * 0.10:
            light = Light.YELLOW
        else:
            light = Light.RED
    return CheckResult(light, PendingItem(
        label="Bank reconciliation up to date",
        done=light == Light.GREEN,
    ))


# Weights: critical = 3, high = 2, medium/low = 1
COMPLETENESS_CHECKS: tuple[CompletenessCheck, ...] = (
    CompletenessCheck("fixed_expenses", 3, _grade_fixed_expenses),
    CompletenessCheck("sales_target", 3, _grade_sales_target),
    CompletenessCheck("client_fiscal_data", 2, _grade_client_fiscal_data),
    CompletenessCheck("balance_recency", 2, _grade_balance_recency),
    CompletenessCheck("opportunity_freshness", 1, _grade_opportunity_freshness),
    CompletenessCheck("draft_confirmation", 1, _grade_draft_confirmation),
    CompletenessCheck("recent_hours", 1, _grade_recent_hours),
    CompletenessCheck("reconciliation_difference", 1, _grade_reconciliation_difference),
)


@dataclass(frozen=True)
class Layer1Result:
    score: int
    light: Light
    pending_items: list[PendingItem]
    checks: dict[str, Light] = field(default_factory=dict)


# ============================================
# Layer 2: financial health
# ============================================

@dataclass(frozen=True)
class HealthInputs:
    runway_months: float
    sales: float
    break_even: float
    overdue_receivables: float
    receivables: float


@dataclass(frozen=True)
class Layer2Result:
    light: Light
    reason: Optional[str]
    runway: Light
    sales_vs_break_even: Light
    overdue_receivables: Light


# ============================================
# Merged result
# ============================================

@dataclass(frozen=True)
class SemaphoreResult:
    layer1_score: int
    layer1_state: Light
    pending_items: list[PendingItem]
    layer2_state: Optional[Light]
    layer2_reason: Optional[str]
    final_state: Light
    message: str


class SemaphoreScorer:
    """Scores completeness and financial health and merges them."""

    GREEN_SCORE = 80
    YELLOW_SCORE = 50

    MESSAGES = {
        (Light.RED, None): "Your numbers are not reliable yet",
        (Light.GREEN, Light.GREEN): "Complete data. Your business is healthy.",
        (Light.GREEN, Light.YELLOW): "Complete data. There are issues to address.",
        (Light.GREEN, Light.RED): "Complete data. Your business needs immediate action.",
    }

    @staticmethod
    def score_completeness(
        inputs: CompletenessInputs,
        checks: tuple[CompletenessCheck, ...] = COMPLETENESS_CHECKS,
    ) -> Layer1Result:
        """Fold the check table into a 0-100 score and a color."""
        total_weight = 0.0
        green_weight = 0.0
        pending_items: list[PendingItem] = []
        lights: dict[str, Light] = {}

        for check in checks:
            result = check.grade(inputs)
            total_weight += check.weight
            green_weight += check.weight * result.credit
            pending_items.append(result.pending)
            lights[check.key] = result.light

        score = round(green_weight / total_weight * 100) if total_weight > 0 else 0

        if score >= SemaphoreScorer.GREEN_SCORE:
            light = Light.GREEN
        elif score >= SemaphoreScorer.YELLOW_SCORE:
            light = Light.YELLOW
        else:
            light = Light.RED

        return Layer1Result(score=score, light=light, pending_items=pending_items, checks=lights)

    @staticmethod
    def evaluate_health(inputs: HealthInputs) -> Layer2Result:
        """Color runway, sales vs break-even and overdue ratio; keep the worst."""
        runway = inputs.runway_months
        if runway > 6:
            runway_light = Light.GREEN
        elif runway >= 3:
            runway_light = Light.YELLOW
        else:
            runway_light = Light.RED

        sales_ratio = inputs.sales / inputs.break_even if inputs.break_even > 0 else 1.0
        if sales_ratio > 1.2:
            sales_light = Light.GREEN
        elif sales_ratio >= 1.0:
            sales_light = Light.YELLOW
        else:
            sales_light = Light.RED

        overdue_ratio = (
            inputs.overdue_receivables / inputs.receivables if inputs.receivables > 0 else 0.0
        )
        if overdue_ratio < 0.2:
            receivables_light = Light.GREEN
        elif overdue_ratio <= 0.4:
            receivables_light = Light.YELLOW
        else:
            receivables_light = Light.RED

        overall = worst(runway_light, sales_light, receivables_light)
        overdue_pct = round(overdue_ratio * 100)

        reason = None
        if overall == Light.RED:
            if runway_light == Light.RED:
                reason = f"Runway: {runway:.1f} months, speed up collections or cut expenses"
            elif sales_light == Light.RED:
                shortfall = round(inputs.break_even - inputs.sales)
                reason = f"Sales below break-even, {shortfall:,} short"
            else:
                reason = f"Overdue receivables: {overdue_pct}%, review pending collections"
        elif overall == Light.YELLOW:
            if runway_light == Light.YELLOW:
                reason = f"Runway: {runway:.1f} months"
            elif sales_light == Light.YELLOW:
                reason = "Sales between break-even and target"
            else:
                reason = f"Overdue receivables: {overdue_pct}%, review pending collections"

        return Layer2Result(
            light=overall,
            reason=reason,
            runway=runway_light,
            sales_vs_break_even=sales_light,
            overdue_receivables=receivables_light,
        )

    @staticmethod
    def message(layer1: Layer1Result, layer2: Optional[Layer2Result]) -> str:
        if layer1.light == Light.YELLOW:
            pending = sum(1 for item in layer1.pending_items if not item.done)
            return f"Almost there: {_plural(pending, 'pending item')} for a full reading"
        layer2_light = layer2.light if layer2 is not None else None
        key = (layer1.light, layer2_light if layer1.light == Light.GREEN else None)
        return SemaphoreScorer.MESSAGES.get(key, SemaphoreScorer.MESSAGES[(Light.RED, None)])

    @staticmethod
    def evaluate(completeness: CompletenessInputs, health: HealthInputs) -> SemaphoreResult:
        """
        Full two-layer evaluation.

        Layer 2 is None unless Layer 1 is green.
        """
        layer1 = SemaphoreScorer.score_completeness(completeness)

        layer2 = None
        if layer1.light == Light.GREEN:
            layer2 = SemaphoreScorer.evaluate_health(health)

        final_state = layer2.light if layer2 is not None else layer1.light

        logger.debug(
            "Semaphore: layer1=%s (%s) layer2=%s final=%s",
            layer1.light.value,
            layer1.score,
            layer2.light.value if layer2 else None,
            final_state.value,
        )

        return SemaphoreResult(
            layer1_score=layer1.score,
            layer1_state=layer1.light,
            pending_items=layer1.pending_items,
            layer2_state=layer2.light if layer2 else None,
            layer2_reason=layer2.reason if layer2 else None,
            final_state=final_state,
            message=SemaphoreScorer.message(layer1, layer2),
        )
