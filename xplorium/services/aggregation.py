"""
Booking aggregation engine.

Pure functions turning a flat collection of :class:`BookingRecord` into the
counts, trends, breakdowns and histograms shown on the admin dashboard.
Nothing here performs I/O; a record that lacks the field an operation needs
is skipped by that operation instead of failing the whole batch.
"""
import datetime as dt
import enum
import logging
from collections import Counter
from typing import Any, Dict, Iterable, List, Optional, Sequence

from dateutil.relativedelta import relativedelta

from xplorium.models.booking import BookingStatus, BookingType
from xplorium.schemas.analytics import (
    DashboardCounters,
    DashboardStats,
    RecentBooking,
    UpcomingEvent,
)

from .records import BookingRecord, as_date, as_utc, parse_hour, round_half_up

logger = logging.getLogger(__name__)

# Sunday first, matching the dashboard's week layout
WEEKDAY_NAMES = (
    "Sunday",
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
)

# Always reported, even when zero
DASHBOARD_STATUSES = (
    BookingStatus.PENDING,
    BookingStatus.APPROVED,
    BookingStatus.REJECTED,
)

PEAK_HOURS_LIMIT = 10


class WindowField(str, enum.Enum):
    """Which timestamp a window count is measured against"""

    CREATED_AT = "created_at"  # bookings made in the period
    DATE = "date"  # bookings taking place in the period


def count_by_status(bookings: Iterable[BookingRecord]) -> Dict[str, int]:
    """
    Count bookings per status.

    PENDING, APPROVED and REJECTED are always present. CANCELLED and
    COMPLETED only show up when non-zero, so the values always add up to
    the number of bookings.
    """
    counts: Dict[str, int] = {status.value: 0 for status in DASHBOARD_STATUSES}
    for booking in bookings:
        key = booking.status.value
        counts[key] = counts.get(key, 0) + 1
    return counts


def count_by_type(bookings: Iterable[BookingRecord]) -> List[Dict[str, Any]]:
    """Bookings per type, most booked first"""
    counts = Counter(booking.type for booking in bookings)
    order = {booking_type: i for i, booking_type in enumerate(BookingType)}
    return [
        {"type": booking_type.value, "count": count}
        for booking_type, count in sorted(
            counts.items(), key=lambda item: (-item[1], order[item[0]])
        )
    ]


def count_by_window(
    bookings: Iterable[BookingRecord],
    window_start: Optional[dt.date],
    window_end: Optional[dt.date] = None,
    field: WindowField = WindowField.CREATED_AT,
    inclusive_end: bool = False,
) -> int:
    """
    Count bookings whose ``field`` falls in ``[window_start, window_end)``.

    ``window_end`` is included when ``inclusive_end`` is set. Either bound may
    be None for an open window. ``CREATED_AT`` compares instants (naive values
    are UTC), ``DATE`` compares calendar days.
    """
    if field == WindowField.DATE:
        start_day = as_date(window_start)
        end_day = as_date(window_end)
        values = [as_date(booking.date) for booking in bookings]
        return sum(
            1
            for value in values
            if value is not None and _in_window(value, start_day, end_day, inclusive_end)
        )

    start_at = as_utc(window_start)
    end_at = as_utc(window_end)
    return sum(
        1
        for booking in bookings
        if booking.created_at is not None
        and _in_window(as_utc(booking.created_at), start_at, end_at, inclusive_end)
    )


def _in_window(value: Any, start: Any, end: Any, inclusive_end: bool) -> bool:
    if start is not None and value < start:
        return False
    if end is not None:
        if inclusive_end:
            return bool(value <= end)
        return bool(value < end)
    return True


def percent_trend(current: float, previous: float) -> int:
    """
    Percentage change from ``previous`` to ``current``, rounded.

    A zero baseline always reports 100, 0 -> 0 included.
    """
    if previous == 0:
        return 100
    return round_half_up(((current - previous) / previous) * 100)


def peak_day_of_week(bookings: Iterable[BookingRecord]) -> List[Dict[str, Any]]:
    """Days of the week by booking count, busiest first, ties Sunday..Saturday"""
    counts: Counter[int] = Counter()
    for booking in bookings:
        day = as_date(booking.date)
        if day is None:
            logger.debug("Skipping booking without a date in day-of-week analysis")
            continue
        # isoweekday: Monday=1 .. Sunday=7 -> Sunday=0 .. Saturday=6
        counts[day.isoweekday() % 7] += 1

    return [
        {"day": WEEKDAY_NAMES[index], "count": count}
        for index, count in sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    ]


def peak_hour(
    bookings: Iterable[BookingRecord], limit: int = PEAK_HOURS_LIMIT
) -> List[Dict[str, Any]]:
    """Busiest booking hours parsed from ``time``, top ``limit``"""
    counts: Counter[int] = Counter()
    for booking in bookings:
        hour = parse_hour(booking.time)
        if hour is None:
            logger.debug("Skipping booking with unreadable time %r", booking.time)
            continue
        counts[hour] += 1

    ranked = sorted(counts.items(), key=lambda item: (-item[1], item[0]))[:limit]
    return [
        {"hour": hour, "time": f"{hour:02d}:00", "count": count}
        for hour, count in ranked
    ]


def bookings_over_time(
    bookings: Iterable[BookingRecord],
    lookback_days: int,
    now: Optional[dt.datetime] = None,
) -> List[Dict[str, Any]]:
    """
    Bookings created in the last ``lookback_days``, grouped by the day they
    take place, oldest day first.
    """
    now_utc = as_utc(now or dt.datetime.now(dt.timezone.utc))
    since = now_utc - dt.timedelta(days=lookback_days)

    counts: Counter[dt.date] = Counter()
    for booking in bookings:
        created = as_utc(booking.created_at)
        day = as_date(booking.date)
        if created is None or day is None:
            continue
        if created >= since:
            counts[day] += 1

    return [{"date": day, "count": counts[day]} for day in sorted(counts)]


def compute_dashboard_stats(
    bookings: Sequence[BookingRecord],
    *,
    now: dt.datetime,
    total_users: int = 0,
    upcoming_events: int = 0,
    recent_bookings: Sequence[Any] = (),
    recent_events: Sequence[Any] = (),
    lookback_days: int = 30,
) -> DashboardStats:
    """
    Assemble the dashboard read-model from every booking in the store.

    ``recent_bookings`` and ``recent_events`` are ORM rows (or anything with
    matching attributes) and are converted to their response schemas.
    """
    today_start = now.replace(hour=0, minute=0, second=0, microsecond=0)
    week_ago = now - dt.timedelta(days=7)
    two_weeks_ago = now - dt.timedelta(days=14)
    month_start = today_start.replace(day=1)
    last_month_start = month_start - relativedelta(months=1)

    status_counts = count_by_status(bookings)

    week_bookings = count_by_window(bookings, week_ago)
    last_week_bookings = count_by_window(bookings, two_weeks_ago, week_ago)
    month_bookings = count_by_window(bookings, month_start)
    last_month_bookings = count_by_window(bookings, last_month_start, month_start)

    this_month = [
        booking
        for booking in bookings
        if booking.created_at is not None
        and as_utc(booking.created_at) >= as_utc(month_start)
    ]

    counters = DashboardCounters(
        total_bookings=len(bookings),
        pending_bookings=status_counts[BookingStatus.PENDING.value],
        approved_bookings=status_counts[BookingStatus.APPROVED.value],
        rejected_bookings=status_counts[BookingStatus.REJECTED.value],
        total_users=total_users,
        upcoming_events=upcoming_events,
        today_bookings=count_by_window(bookings, today_start),
        week_bookings=week_bookings,
        month_bookings=month_bookings,
        bookings_trend=percent_trend(week_bookings, last_week_bookings),
        month_trend=percent_trend(month_bookings, last_month_bookings),
    )

    return DashboardStats(
        generated_at=now,
        stats=counters,
        recent_bookings=[RecentBooking.model_validate(b) for b in recent_bookings],
        recent_events=[UpcomingEvent.model_validate(e) for e in recent_events],
        bookings_by_type=count_by_type(bookings),
        bookings_by_status=[
            {"status": status.value, "count": status_counts[status.value]}
            for status in DASHBOARD_STATUSES
        ],
        peak_days=peak_day_of_week(this_month),
        peak_times=peak_hour(this_month),
        bookings_over_time=bookings_over_time(bookings, lookback_days, now=now),
    )
