"""
Revenue engine.

Revenue figures only count bookings that actually earn money, i.e. APPROVED
or COMPLETED ones (:data:`REVENUE_STATUSES`). Cancellation metrics are the
exception and look at every status.
"""
import datetime as dt
import enum
import logging
import statistics
from collections import defaultdict
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from dateutil.relativedelta import relativedelta

from xplorium.models.booking import REVENUE_STATUSES, BookingStatus, BookingType
from xplorium.schemas.analytics import (
    CancellationMetrics,
    MonthlyCancellation,
    PaymentStats,
    PopularService,
    PopularServices,
    RevenueByType,
    RevenueMonthPoint,
    RevenueOverTime,
    RevenueStats,
    TimeToApprovalMetrics,
    TopCustomer,
    TypeApprovalTime,
)

from .records import BookingRecord, as_date, as_utc, month_key

logger = logging.getLogger(__name__)

DEFAULT_CURRENCY = "RSD"
CANCELLED_STATUSES = (BookingStatus.CANCELLED, BookingStatus.REJECTED)

_TYPE_ORDER = {booking_type: i for i, booking_type in enumerate(BookingType)}


class Interval(str, enum.Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"


def earning(bookings: Iterable[BookingRecord]) -> List[BookingRecord]:
    """Bookings that count toward revenue"""
    return [booking for booking in bookings if booking.status in REVENUE_STATUSES]


def in_date_range(
    bookings: Iterable[BookingRecord],
    start: Optional[dt.date] = None,
    end: Optional[dt.date] = None,
) -> List[BookingRecord]:
    """Bookings taking place between ``start`` and ``end``, both inclusive"""
    start_day, end_day = as_date(start), as_date(end)
    selected = []
    for booking in bookings:
        day = booking.day
        if day is None:
            continue
        if start_day is not None and day < start_day:
            continue
        if end_day is not None and day > end_day:
            continue
        selected.append(booking)
    return selected


def _sum_amount(bookings: Iterable[BookingRecord]) -> float:
    return sum(booking.amount for booking in bookings)


def _average(total: float, count: int) -> float:
    return round(total / count, 2) if count else 0.0


def _growth(current: float, previous: float) -> float:
    if previous == 0:
        return 0.0
    return round((current - previous) / previous * 100, 2)


def revenue_stats(
    bookings: Sequence[BookingRecord],
    now: dt.datetime,
    start: Optional[dt.date] = None,
    end: Optional[dt.date] = None,
) -> RevenueStats:
    """
    Revenue totals for bookings taking place in ``[start, end]``.

    The range defaults to the month leading up to ``now``. Paid revenue sums
    the amounts actually received, so a part-paid booking splits between paid
    and pending. The this-month and last-month figures cover whole calendar
    months around ``now`` regardless of the requested range.
    """
    today = as_date(now)
    range_end = as_date(end) or today
    range_start = as_date(start) or (today - relativedelta(months=1))

    revenue = earning(bookings)
    selected = in_date_range(revenue, range_start, range_end)

    paid = [booking for booking in selected if booking.is_paid]
    total_revenue = _sum_amount(selected)
    paid_revenue = sum(float(booking.paid_amount or 0) for booking in selected)

    month_start = today.replace(day=1)
    month_end = month_start + relativedelta(months=1) - dt.timedelta(days=1)
    last_month_start = month_start - relativedelta(months=1)
    this_month = _sum_amount(in_date_range(revenue, month_start, month_end))
    last_month = _sum_amount(
        in_date_range(revenue, last_month_start, month_start - dt.timedelta(days=1))
    )

    return RevenueStats(
        total_revenue=total_revenue,
        paid_revenue=paid_revenue,
        pending_revenue=total_revenue - paid_revenue,
        total_bookings=len(selected),
        paid_bookings=len(paid),
        pending_bookings=len(selected) - len(paid),
        average_booking_value=_average(total_revenue, len(selected)),
        currency=selected[0].currency if selected else DEFAULT_CURRENCY,
        this_month=this_month,
        last_month=last_month,
        month_growth=_growth(this_month, last_month),
    )


def _group_by_type(
    bookings: Iterable[BookingRecord],
) -> Dict[BookingType, List[BookingRecord]]:
    groups: Dict[BookingType, List[BookingRecord]] = defaultdict(list)
    for booking in bookings:
        groups[booking.type].append(booking)
    return groups


def revenue_by_type(bookings: Iterable[BookingRecord]) -> List[RevenueByType]:
    """Revenue per booking type, highest revenue first"""
    rows = []
    for booking_type, group in _group_by_type(earning(bookings)).items():
        total = _sum_amount(group)
        rows.append(
            RevenueByType(
                type=booking_type,
                revenue=total,
                bookings=len(group),
                average_value=_average(total, len(group)),
            )
        )
    rows.sort(key=lambda row: (-row.revenue, _TYPE_ORDER[row.type]))
    return rows


def _interval_key(day: dt.date, interval: Interval) -> str:
    if interval == Interval.MONTH:
        return month_key(day)
    if interval == Interval.WEEK:
        return (day - dt.timedelta(days=day.weekday())).isoformat()
    return day.isoformat()


def revenue_over_time(
    bookings: Iterable[BookingRecord], interval: Interval = Interval.DAY
) -> List[RevenueOverTime]:
    """
    Revenue grouped by day, ISO week or month of the booking date.

    Keys are ``YYYY-MM-DD`` (weeks use their Monday) or ``YYYY-MM``, ascending.
    """
    interval = Interval(interval)
    totals: Dict[str, Tuple[float, int]] = {}
    for booking in earning(bookings):
        day = booking.day
        if day is None:
            logger.debug("Skipping booking without a date in revenue over time")
            continue
        key = _interval_key(day, interval)
        revenue, count = totals.get(key, (0.0, 0))
        totals[key] = (revenue + booking.amount, count + 1)

    return [
        RevenueOverTime(date=key, revenue=totals[key][0], bookings=totals[key][1])
        for key in sorted(totals)
    ]


def payment_stats(bookings: Iterable[BookingRecord]) -> PaymentStats:
    """Paid versus outstanding amounts across earning bookings"""
    total_paid = 0.0
    total_pending = 0.0
    full = partial = unpaid = 0

    for booking in earning(bookings):
        paid_amount = float(booking.paid_amount or 0)
        total_paid += paid_amount
        total_pending += max(0.0, booking.amount - paid_amount)

        if booking.is_paid:
            full += 1
        elif paid_amount > 0:
            partial += 1
        else:
            unpaid += 1

    return PaymentStats(
        total_paid=total_paid,
        total_pending=total_pending,
        partial_payments=partial,
        full_payments=full,
        unpaid_bookings=unpaid,
    )


def top_customers(
    bookings: Iterable[BookingRecord],
    users: Optional[Mapping[int, Any]] = None,
    limit: int = 10,
) -> List[TopCustomer]:
    """
    Customers ranked by revenue.

    ``users`` maps user ids to anything with ``name`` and ``email`` attributes
    (a ``User`` row works). Bookings made without an account are ignored.
    """
    users = users or {}
    totals: Dict[int, Tuple[float, int]] = {}
    for booking in earning(bookings):
        if booking.user_id is None:
            continue
        revenue, count = totals.get(booking.user_id, (0.0, 0))
        totals[booking.user_id] = (revenue + booking.amount, count + 1)

    ranked = sorted(totals.items(), key=lambda item: (-item[1][0], item[0]))[:limit]
    customers = []
    for user_id, (revenue, count) in ranked:
        user = users.get(user_id)
        customers.append(
            TopCustomer(
                user_id=user_id,
                name=getattr(user, "name", None),
                email=getattr(user, "email", None),
                revenue=revenue,
                bookings=count,
            )
        )
    return customers


def popular_services(bookings: Iterable[BookingRecord]) -> PopularServices:
    """Share of bookings and revenue per service type, most booked first"""
    revenue = earning(bookings)
    total = len(revenue)

    services = []
    for booking_type, group in _group_by_type(revenue).items():
        amount = _sum_amount(group)
        services.append(
            PopularService(
                type=booking_type,
                bookings=len(group),
                revenue=amount,
                average_value=_average(amount, len(group)),
                percentage=round(len(group) / total * 100, 2) if total else 0.0,
            )
        )
    services.sort(key=lambda service: (-service.bookings, _TYPE_ORDER[service.type]))
    return PopularServices(services=services, total_bookings=total)


def cancellation_metrics(
    bookings: Sequence[BookingRecord], now: dt.datetime, months: int = 6
) -> CancellationMetrics:
    """
    Cancellation figures over all bookings.

    Both CANCELLED and REJECTED bookings count as cancelled. The monthly trend
    covers the last ``months`` calendar months up to ``now``, oldest first,
    bucketed by booking date.
    """
    cancelled = [b for b in bookings if b.status in CANCELLED_STATUSES]

    by_type = [
        {"type": booking_type, "count": len(group)}
        for booking_type, group in sorted(
            _group_by_type(cancelled).items(),
            key=lambda item: (-len(item[1]), _TYPE_ORDER[item[0]]),
        )
    ]

    current_month = as_date(now).replace(day=1)
    trend = []
    for offset in range(months - 1, -1, -1):
        key = month_key(current_month - relativedelta(months=offset))
        in_month = [b for b in bookings if b.day is not None and month_key(b.day) == key]
        cancelled_in_month = sum(1 for b in in_month if b.status in CANCELLED_STATUSES)
        trend.append(
            MonthlyCancellation(
                month=key,
                cancelled=cancelled_in_month,
                total=len(in_month),
                rate=round(cancelled_in_month / len(in_month) * 100, 2)
                if in_month
                else 0.0,
            )
        )

    return CancellationMetrics(
        total_cancelled=len(cancelled),
        cancellation_rate=round(len(cancelled) / len(bookings) * 100, 2)
        if bookings
        else 0.0,
        cancelled_revenue=_sum_amount(cancelled),
        cancelled_by_type=by_type,
        monthly_trend=trend,
    )


def time_to_approval(bookings: Iterable[BookingRecord]) -> TimeToApprovalMetrics:
    """Hours from creation to approval for APPROVED bookings"""
    measured: List[Tuple[BookingType, float]] = []
    for booking in bookings:
        if booking.status != BookingStatus.APPROVED:
            continue
        created = as_utc(booking.created_at)
        updated = as_utc(booking.updated_at)
        if created is None or updated is None:
            logger.debug("Skipping approved booking without timestamps")
            continue
        hours = max(0.0, (updated - created).total_seconds() / 3600)
        measured.append((booking.type, hours))

    if not measured:
        return TimeToApprovalMetrics()

    hours_list = sorted(hours for _, hours in measured)

    per_type: Dict[BookingType, List[float]] = defaultdict(list)
    for booking_type, hours in measured:
        per_type[booking_type].append(hours)

    return TimeToApprovalMetrics(
        average_hours=round(statistics.fmean(hours_list), 2),
        median_hours=round(statistics.median(hours_list), 2),
        fastest=round(hours_list[0], 2),
        slowest=round(hours_list[-1], 2),
        within_24_hours=sum(1 for hours in hours_list if hours <= 24),
        within_48_hours=sum(1 for hours in hours_list if hours <= 48),
        total_measured=len(hours_list),
        by_type=[
            TypeApprovalTime(
                type=booking_type, average_hours=round(statistics.fmean(values), 2)
            )
            for booking_type, values in sorted(
                per_type.items(), key=lambda item: _TYPE_ORDER[item[0]]
            )
        ],
    )


def monthly_revenue_series(
    bookings: Iterable[BookingRecord], months: int = 12, now: Optional[dt.datetime] = None
) -> List[RevenueMonthPoint]:
    """
    Revenue per calendar month for the trailing ``months`` months ending with
    the month of ``now``. Months without revenue are reported as 0.
    """
    current_month = as_date(now or dt.datetime.now(dt.timezone.utc)).replace(day=1)
    keys = [
        month_key(current_month - relativedelta(months=offset))
        for offset in range(months - 1, -1, -1)
    ]
    totals = dict.fromkeys(keys, 0.0)

    for booking in earning(bookings):
        day = booking.day
        if day is None:
            continue
        key = month_key(day)
        if key in totals:
            totals[key] += booking.amount

    return [RevenueMonthPoint(month=key, revenue=totals[key]) for key in keys]
