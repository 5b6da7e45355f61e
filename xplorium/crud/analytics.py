import logging
from datetime import date, datetime, timezone
from typing import List, Optional, Tuple

from dateutil.relativedelta import relativedelta
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from xplorium.core.settings import settings
from xplorium.models.booking import Booking
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
from xplorium.services import aggregation, forecast, revenue
from xplorium.services.records import BookingRecord

from . import event as crud_event
from . import pricing as crud_pricing
from . import user as crud_user

# WARNING: ALL FUNCTIONS IN THIS MODULE ARE ADMIN-ONLY OPERATIONS
# Access control is enforced at the API layer via require_role(UserRole.ADMIN)

logger = logging.getLogger(__name__)

RECENT_BOOKINGS_LIMIT = 5
RECENT_EVENTS_LIMIT = 5


def _now(now: Optional[datetime]) -> datetime:
    return now or datetime.now(timezone.utc)


async def get_booking_records(
    db: AsyncSession,
    *,
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> List[BookingRecord]:
    """
    Load bookings taking place in ``[start, end]`` as engine records.

    Bookings without a ``total_amount`` are priced from the published
    pricing packages.
    """
    query = select(Booking)
    if start is not None:
        query = query.filter(Booking.date >= start)
    if end is not None:
        query = query.filter(Booking.date <= end)

    result = await db.execute(query)
    rows = result.scalars().all()
    price_lookup = await crud_pricing.get_price_lookup(db)
    return [BookingRecord.from_model(row, price_lookup) for row in rows]


async def get_dashboard_stats(
    db: AsyncSession, now: Optional[datetime] = None
) -> DashboardStats:
    now = _now(now)

    records = await get_booking_records(db)
    total_users = await crud_user.count(db)
    upcoming_events = await crud_event.count_upcoming(db, now=now)

    recent_result = await db.execute(
        select(Booking).order_by(Booking.created_at.desc()).limit(RECENT_BOOKINGS_LIMIT)
    )
    recent_bookings = list(recent_result.scalars().all())
    recent_events = await crud_event.get_upcoming(
        db, now=now, limit=RECENT_EVENTS_LIMIT
    )

    stats = aggregation.compute_dashboard_stats(
        records,
        now=now,
        total_users=total_users,
        upcoming_events=upcoming_events,
        recent_bookings=recent_bookings,
        recent_events=recent_events,
        lookback_days=settings.analytics.BOOKINGS_OVER_TIME_DAYS,
    )
    logger.debug("Dashboard stats computed over %d bookings", len(records))
    return stats


async def get_revenue_forecast(
    db: AsyncSession, now: Optional[datetime] = None
) -> ForecastResult:
    now = _now(now)
    months = settings.analytics.FORECAST_HISTORY_MONTHS
    since = now.date().replace(day=1) - relativedelta(months=months - 1)

    records = await get_booking_records(db, start=since)
    history = revenue.monthly_revenue_series(records, months=months, now=now)
    return forecast.forecast_revenue(
        history, horizon=settings.analytics.FORECAST_HORIZON_MONTHS
    )


async def get_revenue_stats(
    db: AsyncSession,
    start: Optional[date] = None,
    end: Optional[date] = None,
    now: Optional[datetime] = None,
) -> RevenueStats:
    now = _now(now)
    last_month_start = now.date().replace(day=1) - relativedelta(months=1)
    lower = min(start, last_month_start) if start else None

    records = await get_booking_records(db, start=lower)
    return revenue.revenue_stats(records, now, start=start, end=end)


def _window(
    start: Optional[date],
    end: Optional[date],
    now: Optional[datetime],
    months: int,
) -> Tuple[date, date]:
    """Requested range, defaulting to the trailing ``months`` months up to ``now``"""
    today = _now(now).date()
    return start or today - relativedelta(months=months), end or today


async def get_revenue_by_type(
    db: AsyncSession,
    start: Optional[date] = None,
    end: Optional[date] = None,
    now: Optional[datetime] = None,
) -> List[RevenueByType]:
    start, end = _window(start, end, now, months=1)
    records = await get_booking_records(db, start=start, end=end)
    return revenue.revenue_by_type(records)


async def get_revenue_over_time(
    db: AsyncSession,
    interval: revenue.Interval = revenue.Interval.DAY,
    start: Optional[date] = None,
    end: Optional[date] = None,
    now: Optional[datetime] = None,
) -> List[RevenueOverTime]:
    start, end = _window(start, end, now, months=1)
    records = await get_booking_records(db, start=start, end=end)
    return revenue.revenue_over_time(records, interval)


async def get_payment_stats(
    db: AsyncSession,
    start: Optional[date] = None,
    end: Optional[date] = None,
    now: Optional[datetime] = None,
) -> PaymentStats:
    start, end = _window(start, end, now, months=1)
    records = await get_booking_records(db, start=start, end=end)
    return revenue.payment_stats(records)


async def get_top_customers(
    db: AsyncSession,
    limit: int = 10,
    start: Optional[date] = None,
    end: Optional[date] = None,
    now: Optional[datetime] = None,
) -> List[TopCustomer]:
    start, end = _window(start, end, now, months=6)
    records = await get_booking_records(db, start=start, end=end)
    user_ids = sorted({r.user_id for r in records if r.user_id is not None})
    users = await crud_user.get_users_by_ids(db, user_ids=user_ids)
    return revenue.top_customers(records, users, limit=limit)


async def get_popular_services(
    db: AsyncSession,
    start: Optional[date] = None,
    end: Optional[date] = None,
    now: Optional[datetime] = None,
) -> PopularServices:
    start, end = _window(start, end, now, months=3)
    records = await get_booking_records(db, start=start, end=end)
    return revenue.popular_services(records)


async def get_cancellation_metrics(
    db: AsyncSession,
    start: Optional[date] = None,
    end: Optional[date] = None,
    now: Optional[datetime] = None,
) -> CancellationMetrics:
    now = _now(now)
    start, end = _window(start, end, now, months=6)
    records = await get_booking_records(db, start=start, end=end)
    return revenue.cancellation_metrics(records, now)


async def get_time_to_approval(
    db: AsyncSession,
    start: Optional[date] = None,
    end: Optional[date] = None,
    now: Optional[datetime] = None,
) -> TimeToApprovalMetrics:
    start, end = _window(start, end, now, months=3)
    records = await get_booking_records(db, start=start, end=end)
    return revenue.time_to_approval(records)
