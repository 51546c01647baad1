"""
Metrics Schemas
Pydantic models for metrics API requests and responses.
"""

from typing import Optional

from pydantic import BaseModel, Field

from finpulse.metrics.calculator import GoalPacing
from finpulse.metrics.service import (
    MonthlyComparison,
    PeriodMetrics,
    RecordBalanceResult,
    SaveTargetResult,
)


# ============================================
# Requests
# ============================================

class RecordBalanceRequest(BaseModel):
    """Real bank balance reported by the user."""

    amount: float = Field(..., description="Real bank balance (must be positive)")
    note: Optional[str] = Field(None, max_length=500, description="Optional note")


class SaveTargetRequest(BaseModel):
    """Goals for one month."""

    sales_target: float = Field(..., ge=0, description="Invoiced-sales goal for the month")
    collection_target: Optional[float] = Field(
        None, ge=0, description="Collections goal (defaults to 80% of the sales goal)"
    )


class MonthTargetRequest(SaveTargetRequest):
    month: int = Field(..., ge=1, le=12, description="Month number (1-12)")


class BulkSaveTargetsRequest(BaseModel):
    """Goals for several months of one year."""

    targets: list[MonthTargetRequest] = Field(..., max_length=12, description="One entry per month")


# ============================================
# Responses
# ============================================

class GoalPacingResponse(BaseModel):
    target: float = Field(..., description="Monthly goal")
    expected_to_date: float = Field(..., description="Goal pro-rated to today")
    actual: float = Field(..., description="Amount achieved so far")
    status: str = Field(..., description="ahead, on_track or behind")

    @classmethod
    def from_pacing(cls, pacing: Optional[GoalPacing]) -> Optional["GoalPacingResponse"]:
        if pacing is None:
            return None
        return cls(
            target=pacing.target,
            expected_to_date=pacing.expected_to_date,
            actual=pacing.actual,
            status=pacing.status,
        )


class IndicatorsResponse(BaseModel):
    """The five headline questions plus their supporting figures."""

    cash_on_hand: float = Field(..., description="Last real balance, or the theoretical one when none was recorded")
    cash_is_real: bool = Field(..., description="Whether cash_on_hand comes from a reported balance")
    theoretical_balance: float = Field(..., description="Balance reconstructed from collections and expenses")
    collections: float = Field(..., description="Collections of the period")
    expenses: float = Field(..., description="Expenses of the period")
    profit: float = Field(..., description="Collections minus expenses")
    previous_collections: float = Field(..., description="Collections of the previous period")
    previous_expenses: float = Field(..., description="Expenses of the previous period")
    previous_profit: float = Field(..., description="Profit of the previous period")
    total_invoiced: float = Field(..., description="Sum of every invoice issued")
    total_collected: float = Field(..., description="Sum of every collection received")
    receivables: float = Field(..., description="Total invoiced minus total collected")
    overdue_receivables: float = Field(..., description="Outstanding balance older than 30 days")
    overdue_ratio: float = Field(..., description="Overdue share of receivables (0-1)")
    sales: float = Field(..., description="Invoices issued in the period")
    fixed_costs: float = Field(..., description="Sum of active fixed expenses")
    contribution_margin: float = Field(..., description="Average margin of closed projects")
    break_even: float = Field(..., description="Monthly break-even sales")
    required_sales: float = Field(..., description="Sales still missing to reach break-even")
    average_monthly_expense: float = Field(..., description="Average of the trailing expense window")
    runway_months: float = Field(..., description="Months of runway (capped at 99)")
    sales_target: Optional[float] = Field(None, description="Resolved sales goal")
    collection_target: Optional[float] = Field(None, description="Resolved collections goal")
    sales_pacing: Optional[GoalPacingResponse] = None
    collection_pacing: Optional[GoalPacingResponse] = None


class PendingItemResponse(BaseModel):
    label: str
    done: bool
    action: Optional[str] = Field(None, description="Screen that resolves the item")


class SemaphoreResponse(BaseModel):
    layer1_score: int = Field(..., ge=0, le=100, description="Completeness score")
    layer1_state: str = Field(..., description="green, yellow or red")
    pending_items: list[PendingItemResponse]
    layer2_state: Optional[str] = Field(None, description="Financial health (only when layer 1 is green)")
    layer2_reason: Optional[str] = None
    final_state: str
    message: str


class ReconciliationResponse(BaseModel):
    real_balance: Optional[float] = None
    theoretical_balance: float
    difference: float
    tolerance: float
    is_material: bool
    days_since_last: Optional[int] = Field(None, description="Whole days since the last reported balance")
    state: int = Field(..., description="1 reconciled, 2 ageing, 3 difference, 4 stale")
    streak_weeks: int
    streak_record: int
    milestone: Optional[str] = None


class PeriodMetricsResponse(BaseModel):
    """Complete metrics of one period."""

    period: str = Field(..., description="YYYY-MM")
    kind: str = Field(..., description="current, past or future")
    day_cursor: int
    days_in_month: int
    indicators: IndicatorsResponse
    semaphore: SemaphoreResponse
    reconciliation: ReconciliationResponse
    target_source: Optional[str] = Field(None, description="exact, inherited or legacy")
    target_source_period: Optional[str] = None
    errors: list[str] = Field(default_factory=list, description="Data sources that could not be read")

    @classmethod
    def from_metrics(cls, metrics: PeriodMetrics) -> "PeriodMetricsResponse":
        ind = metrics.indicators
        sem = metrics.semaphore
        rec = metrics.reconciliation
        return cls(
            period=metrics.period,
            kind=metrics.kind,
            day_cursor=metrics.day_cursor,
            days_in_month=metrics.days_in_month,
            indicators=IndicatorsResponse(
                cash_on_hand=ind.cash_on_hand,
                cash_is_real=ind.cash_is_real,
                theoretical_balance=ind.theoretical_balance,
                collections=ind.collections,
                expenses=ind.expenses,
                profit=ind.profit,
                previous_collections=ind.previous_collections,
                previous_expenses=ind.previous_expenses,
                previous_profit=ind.previous_profit,
                total_invoiced=ind.total_invoiced,
                total_collected=ind.total_collected,
                receivables=ind.receivables,
                overdue_receivables=ind.overdue_receivables,
                overdue_ratio=ind.overdue_ratio,
                sales=ind.sales,
                fixed_costs=ind.fixed_costs,
                contribution_margin=ind.contribution_margin,
                break_even=ind.break_even,
                required_sales=ind.required_sales,
                average_monthly_expense=ind.average_monthly_expense,
                runway_months=ind.runway_months,
                sales_target=ind.sales_target,
                collection_target=ind.collection_target,
                sales_pacing=GoalPacingResponse.from_pacing(ind.sales_pacing),
                collection_pacing=GoalPacingResponse.from_pacing(ind.collection_pacing),
            ),
            semaphore=SemaphoreResponse(
                layer1_score=sem.layer1_score,
                layer1_state=sem.layer1_state.value,
                pending_items=[
                    PendingItemResponse(label=item.label, done=item.done, action=item.action)
                    for item in sem.pending_items
                ],
                layer2_state=sem.layer2_state.value if sem.layer2_state else None,
                layer2_reason=sem.layer2_reason,
                final_state=sem.final_state.value,
                message=sem.message,
            ),
            reconciliation=ReconciliationResponse(
                real_balance=rec.status.real_balance,
                theoretical_balance=rec.status.theoretical_balance,
                difference=rec.status.difference,
                tolerance=rec.status.tolerance,
                is_material=rec.status.is_material,
                days_since_last=rec.status.days_since_last,
                state=int(rec.status.state),
                streak_weeks=rec.streak_weeks,
                streak_record=rec.streak_record,
                milestone=rec.milestone,
            ),
            target_source=metrics.target_source,
            target_source_period=metrics.target_source_period,
            errors=metrics.errors,
        )


class RecordBalanceResponse(BaseModel):
    success: bool
    error: Optional[str] = None
    real_balance: Optional[float] = None
    theoretical_balance: Optional[float] = None
    difference: Optional[float] = None
    is_material: Optional[bool] = None
    streak_weeks: Optional[int] = None

    @classmethod
    def from_result(cls, result: RecordBalanceResult) -> "RecordBalanceResponse":
        return cls(
            success=result.success,
            error=result.error,
            real_balance=result.real_balance,
            theoretical_balance=result.theoretical_balance,
            difference=result.difference,
            is_material=result.is_material,
            streak_weeks=result.streak_weeks,
        )


class SaveTargetResponse(BaseModel):
    success: bool
    error: Optional[str] = None
    saved: int = Field(0, description="Number of months written")

    @classmethod
    def from_result(cls, result: SaveTargetResult) -> "SaveTargetResponse":
        return cls(success=result.success, error=result.error, saved=result.saved)


class MonthlyTargetResponse(BaseModel):
    period: str = Field(..., description="YYYY-MM")
    sales_target: Optional[float] = None
    collection_target: Optional[float] = None


class MonthlyComparisonResponse(BaseModel):
    period: str = Field(..., description="YYYY-MM")
    collections: float
    expenses: float
    margin_pct: float = Field(..., description="(collections - expenses) / collections * 100")
    hours: float = Field(..., description="Hours logged in the month")
    won_opportunities: int = Field(..., description="Opportunities won during the month")
    active_projects: int = Field(..., description="Projects currently active or in rework")

    @classmethod
    def from_comparison(cls, row: MonthlyComparison) -> "MonthlyComparisonResponse":
        return cls(
            period=row.period,
            collections=row.collections,
            expenses=row.expenses,
            margin_pct=row.margin_pct,
            hours=row.hours,
            won_opportunities=row.won_opportunities,
            active_projects=row.active_projects,
        )
