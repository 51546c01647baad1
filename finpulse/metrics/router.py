"""
Metrics Router
API endpoints for period metrics, bank balance reports and monthly targets.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Path, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from finpulse.auth.dependencies import CurrentWorkspace
from finpulse.auth.rate_limit import WRITE_RATE_LIMIT, limiter
from finpulse.core.errors import ErrorCode, create_error_response
from finpulse.database.connection import get_session_factory
from finpulse.metrics.schemas import (
    BulkSaveTargetsRequest,
    MonthlyComparisonResponse,
    MonthlyTargetResponse,
    PeriodMetricsResponse,
    RecordBalanceRequest,
    RecordBalanceResponse,
    SaveTargetRequest,
    SaveTargetResponse,
)
from finpulse.metrics.service import PeriodMetricsService
from finpulse.metrics.targets import TargetInput

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/metrics", tags=["Metrics"])


def get_metrics_service(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> PeriodMetricsService:
    return PeriodMetricsService(session_factory)


@router.get(
    "/",
    response_model=Optional[PeriodMetricsResponse],
    summary="Get period metrics",
    description="Indicators, semaphore and reconciliation status of a month (current month by default).",
)
async def get_period_metrics(
    workspace_id: CurrentWorkspace,
    period: Optional[str] = Query(None, description="Period as YYYY-MM"),
    service: PeriodMetricsService = Depends(get_metrics_service),
) -> Optional[PeriodMetricsResponse]:
    """
    Read the metrics of a period.

    Returns null when the caller's workspace cannot be resolved.
    """
    try:
        metrics = await service.get_metrics(workspace_id, period)
    except ValueError:
        raise create_error_response(ErrorCode.INVALID_PERIOD)

    if metrics is None:
        return None
    return PeriodMetricsResponse.from_metrics(metrics)


@router.post(
    "/balance",
    response_model=RecordBalanceResponse,
    summary="Record the real bank balance",
)
@limiter.limit(WRITE_RATE_LIMIT)
async def record_balance(
    request: Request,
    body: RecordBalanceRequest,
    workspace_id: CurrentWorkspace,
    service: PeriodMetricsService = Depends(get_metrics_service),
) -> RecordBalanceResponse:
    """
    Store a bank balance snapshot, compare it with the theoretical balance
    and count the week in the reconciliation streak.
    """
    result = await service.record_balance(workspace_id, body.amount, body.note)
    return RecordBalanceResponse.from_result(result)


@router.put(
    "/targets/{period}",
    response_model=SaveTargetResponse,
    summary="Save the goals of one month",
)
@limiter.limit(WRITE_RATE_LIMIT)
async def save_target(
    request: Request,
    period: str,
    body: SaveTargetRequest,
    workspace_id: CurrentWorkspace,
    service: PeriodMetricsService = Depends(get_metrics_service),
) -> SaveTargetResponse:
    result = await service.save_target(
        workspace_id,
        period,
        body.sales_target,
        body.collection_target,
    )
    return SaveTargetResponse.from_result(result)


@router.put(
    "/targets/year/{year}",
    response_model=SaveTargetResponse,
    summary="Save the goals of several months of a year",
)
@limiter.limit(WRITE_RATE_LIMIT)
async def bulk_save_targets(
    request: Request,
    body: BulkSaveTargetsRequest,
    workspace_id: CurrentWorkspace,
    year: int = Path(..., ge=1, le=9998, description="Calendar year"),
    service: PeriodMetricsService = Depends(get_metrics_service),
) -> SaveTargetResponse:
    targets = [
        TargetInput(
            month=item.month,
            sales_target=item.sales_target,
            collection_target=item.collection_target,
        )
        for item in body.targets
    ]
    result = await service.bulk_save_targets(workspace_id, year, targets)
    return SaveTargetResponse.from_result(result)


@router.get(
    "/targets",
    response_model=list[MonthlyTargetResponse],
    summary="List the latest saved monthly goals",
)
async def list_targets(
    workspace_id: CurrentWorkspace,
    service: PeriodMetricsService = Depends(get_metrics_service),
) -> list[MonthlyTargetResponse]:
    rows = await service.list_targets(workspace_id)
    return [MonthlyTargetResponse(**row) for row in rows]


@router.get(
    "/comparison",
    response_model=list[MonthlyComparisonResponse],
    summary="Month-over-month comparison",
    description="Collections, expenses, margin and logged hours for the trailing months.",
)
async def get_monthly_comparison(
    workspace_id: CurrentWorkspace,
    months: int = Query(6, ge=1, le=24, description="Number of months, ending with the current one"),
    service: PeriodMetricsService = Depends(get_metrics_service),
) -> list[MonthlyComparisonResponse]:
    rows = await service.get_monthly_comparison(workspace_id, months)
    return [MonthlyComparisonResponse.from_comparison(row) for row in rows]
