import logging
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from xplorium import crud
from xplorium.api import deps
from xplorium.core.exceptions import ValidationFailedError
from xplorium.models.user import User, UserRole
from xplorium.schemas.analytics import (
    CancellationMetrics,
    DashboardStats,
    ForecastResult,
    PaymentStats,
    PopularServices,
    RevenueByType,
    RevenueOverTime,
    RevenueStats,
    TimeToApprovalMetrics,
    TopCustomer,
)
from xplorium.services.revenue import Interval

router = APIRouter()
logger = logging.getLogger(__name__)

admin_only = deps.require_role(UserRole.ADMIN)


def _check_range(start: Optional[date], end: Optional[date]) -> None:
    if start and end and start > end:
        raise ValidationFailedError(
            "start must not be after end",
            details={"start": start.isoformat(), "end": end.isoformat()},
        )


@router.get("/dashboard", response_model=DashboardStats)  # type: ignore[misc]
async def get_dashboard(
    db: AsyncSession = Depends(deps.get_db),
    current_user: User = Depends(admin_only),
) -> DashboardStats:
    """
    Counters, trends, breakdowns and recent activity for the admin dashboard.
    """
    logger.info("Analytics dashboard accessed by admin user %s", current_user.id)
    return await crud.analytics.get_dashboard_stats(db)


@router.get("/revenue-forecast", response_model=ForecastResult)  # type: ignore[misc]
async def get_revenue_forecast(
    db: AsyncSession = Depends(deps.get_db),
    current_user: User = Depends(admin_only),
) -> ForecastResult:
    """
    Linear projection of monthly revenue over the next months.

    Returns status ``NOT_ENOUGH_DATA`` rather than an error when history is
    too short.
    """
    return await crud.analytics.get_revenue_forecast(db)


@router.get("/revenue", response_model=RevenueStats)  # type: ignore[misc]
async def get_revenue_stats(
    db: AsyncSession = Depends(deps.get_db),
    current_user: User = Depends(admin_only),
    start: Optional[date] = Query(None),
    end: Optional[date] = Query(None),
) -> RevenueStats:
    _check_range(start, end)
    return await crud.analytics.get_revenue_stats(db, start=start, end=end)


@router.get("/revenue/by-type", response_model=List[RevenueByType])  # type: ignore[misc]
async def get_revenue_by_type(
    db: AsyncSession = Depends(deps.get_db),
    current_user: User = Depends(admin_only),
    start: Optional[date] = Query(None),
    end: Optional[date] = Query(None),
) -> List[RevenueByType]:
    _check_range(start, end)
    return await crud.analytics.get_revenue_by_type(db, start=start, end=end)


@router.get("/revenue/over-time", response_model=List[RevenueOverTime])  # type: ignore[misc]
async def get_revenue_over_time(
    db: AsyncSession = Depends(deps.get_db),
    current_user: User = Depends(admin_only),
    interval: Interval = Query(Interval.DAY),
    start: Optional[date] = Query(None),
    end: Optional[date] = Query(None),
) -> List[RevenueOverTime]:
    _check_range(start, end)
    return await crud.analytics.get_revenue_over_time(
        db, interval=interval, start=start, end=end
    )


@router.get("/payments", response_model=PaymentStats)  # type: ignore[misc]
async def get_payment_stats(
    db: AsyncSession = Depends(deps.get_db),
    current_user: User = Depends(admin_only),
    start: Optional[date] = Query(None),
    end: Optional[date] = Query(None),
) -> PaymentStats:
    _check_range(start, end)
    return await crud.analytics.get_payment_stats(db, start=start, end=end)


@router.get("/top-customers", response_model=List[TopCustomer])  # type: ignore[misc]
async def get_top_customers(
    db: AsyncSession = Depends(deps.get_db),
    current_user: User = Depends(admin_only),
    limit: int = Query(10, ge=1, le=100),
    start: Optional[date] = Query(None),
    end: Optional[date] = Query(None),
) -> List[TopCustomer]:
    _check_range(start, end)
    return await crud.analytics.get_top_customers(db, limit=limit, start=start, end=end)


@router.get("/popular-services", response_model=PopularServices)  # type: ignore[misc]
async def get_popular_services(
    db: AsyncSession = Depends(deps.get_db),
    current_user: User = Depends(admin_only),
    start: Optional[date] = Query(None),
    end: Optional[date] = Query(None),
) -> PopularServices:
    _check_range(start, end)
    return await crud.analytics.get_popular_services(db, start=start, end=end)


@router.get("/cancellations", response_model=CancellationMetrics)  # type: ignore[misc]
async def get_cancellation_metrics(
    db: AsyncSession = Depends(deps.get_db),
    current_user: User = Depends(admin_only),
    start: Optional[date] = Query(None),
    end: Optional[date] = Query(None),
) -> CancellationMetrics:
    _check_range(start, end)
    return await crud.analytics.get_cancellation_metrics(db, start=start, end=end)


@router.get("/time-to-approval", response_model=TimeToApprovalMetrics)  # type: ignore[misc]
async def get_time_to_approval(
    db: AsyncSession = Depends(deps.get_db),
    current_user: User = Depends(admin_only),
    start: Optional[date] = Query(None),
    end: Optional[date] = Query(None),
) -> TimeToApprovalMetrics:
    _check_range(start, end)
    return await crud.analytics.get_time_to_approval(db, start=start, end=end)
