import datetime as dt
from typing import List

import pytest

from xplorium.models.booking import BookingStatus, BookingType
from xplorium.services.aggregation import (
    WindowField,
    bookings_over_time,
    compute_dashboard_stats,
    count_by_status,
    count_by_type,
    count_by_window,
    peak_day_of_week,
    peak_hour,
    percent_trend,
)
from xplorium.services.records import BookingRecord

UTC = dt.timezone.utc
NOW = dt.datetime(2024, 6, 15, 12, 0, tzinfo=UTC)  # a Saturday


def make(
    status: str = "PENDING",
    type: str = "PLAYGROUND",
    date: dt.date = dt.date(2024, 6, 15),
    time: str = "10:00",
    created_at: dt.datetime = NOW,
) -> BookingRecord:
    return BookingRecord(
        status=status, type=type, date=date, time=time, created_at=created_at
    )


@pytest.fixture  # type: ignore[misc]
def dashboard_bookings() -> List[BookingRecord]:
    return [
        make("PENDING", "PARTY", dt.date(2024, 6, 20), "10:00",
             dt.datetime(2024, 6, 15, 9, 0, tzinfo=UTC)),
        make("APPROVED", "CAFE", dt.date(2024, 6, 16), "14:00",
             dt.datetime(2024, 6, 10, 8, 0, tzinfo=UTC)),
        make("REJECTED", "PARTY", dt.date(2024, 6, 17), "10:30",
             dt.datetime(2024, 6, 3, 8, 0, tzinfo=UTC)),
        make("APPROVED", "PLAYGROUND", dt.date(2024, 5, 25), "11:00",
             dt.datetime(2024, 5, 20, 8, 0, tzinfo=UTC)),
        make("CANCELLED", "CAFE", dt.date(2024, 5, 10), "bad",
             dt.datetime(2024, 5, 2, 8, 0, tzinfo=UTC)),
    ]


def test_count_by_status_reports_core_statuses() -> None:
    bookings = [make("PENDING"), make("PENDING"), make("APPROVED")]
    assert count_by_status(bookings) == {"PENDING": 2, "APPROVED": 1, "REJECTED": 0}


def test_count_by_status_empty() -> None:
    assert count_by_status([]) == {"PENDING": 0, "APPROVED": 0, "REJECTED": 0}


@pytest.mark.parametrize(  # type: ignore[misc]
    "statuses",
    [
        [],
        ["CANCELLED"],
        ["COMPLETED", "COMPLETED", "PENDING"],
        [s.value for s in BookingStatus] * 3,
    ],
)
def test_count_by_status_sums_to_total(statuses: List[str]) -> None:
    bookings = [make(s) for s in statuses]
    assert sum(count_by_status(bookings).values()) == len(bookings)


def test_count_by_type_most_booked_first() -> None:
    bookings = [make(type="PARTY"), make(type="CAFE"), make(type="PARTY")]
    assert count_by_type(bookings) == [
        {"type": "PARTY", "count": 2},
        {"type": "CAFE", "count": 1},
    ]


@pytest.mark.parametrize(  # type: ignore[misc]
    "current,previous,expected",
    [
        (0, 0, 100),
        (5, 0, 100),
        (15, 10, 50),
        (5, 10, -50),
        (10, 10, 0),
        (9, 8, 13),
        (7, 8, -12),
    ],
)
def test_percent_trend(current: int, previous: int, expected: int) -> None:
    assert percent_trend(current, previous) == expected


def test_count_by_window_half_open() -> None:
    start = dt.datetime(2024, 6, 1, tzinfo=UTC)
    end = dt.datetime(2024, 6, 8, tzinfo=UTC)
    bookings = [
        make(created_at=start),
        make(created_at=dt.datetime(2024, 6, 7, 23, 59)),  # naive, read as UTC
        make(created_at=end),
    ]
    assert count_by_window(bookings, start, end) == 2
    assert count_by_window(bookings, start, end, inclusive_end=True) == 3
    assert count_by_window(bookings, None, None) == 3


def test_count_by_window_on_booking_date() -> None:
    bookings = [make(date=dt.date(2024, 6, d)) for d in (1, 2, 3)]
    assert count_by_window(
        bookings, dt.date(2024, 6, 2), field=WindowField.DATE
    ) == 2


def test_peak_day_of_week_ties_follow_week_order() -> None:
    bookings = [
        make(date=dt.date(2024, 6, 17)),  # Monday
        make(date=dt.date(2024, 6, 16)),  # Sunday
        make(date=dt.date(2024, 6, 19)),  # Wednesday
        make(date=dt.date(2024, 6, 26)),  # Wednesday
    ]
    assert peak_day_of_week(bookings) == [
        {"day": "Wednesday", "count": 2},
        {"day": "Sunday", "count": 1},
        {"day": "Monday", "count": 1},
    ]


def test_peak_hour_skips_unreadable_times() -> None:
    bookings = [
        make(time="10:00"),
        make(time="10:30"),
        make(time="14:00"),
        make(time="bad"),
        make(time="25:00"),
        BookingRecord(status="PENDING", time=None),
    ]
    assert peak_hour(bookings) == [
        {"hour": 10, "time": "10:00", "count": 2},
        {"hour": 14, "time": "14:00", "count": 1},
    ]


def test_peak_hour_limit() -> None:
    bookings = [make(time=f"{h:02d}:00") for h in range(15)]
    assert len(peak_hour(bookings, limit=10)) == 10


def test_bookings_over_time_groups_recent_bookings_by_day() -> None:
    bookings = [
        make(date=dt.date(2024, 6, 20), created_at=NOW - dt.timedelta(days=1)),
        make(date=dt.date(2024, 6, 18), created_at=NOW - dt.timedelta(days=2)),
        make(date=dt.date(2024, 6, 20), created_at=NOW - dt.timedelta(days=3)),
        make(date=dt.date(2024, 6, 19), created_at=NOW - dt.timedelta(days=10)),
        make(date=dt.date(2024, 5, 1), created_at=NOW - dt.timedelta(days=40)),
    ]
    result = bookings_over_time(bookings, 30, now=NOW)
    assert result == [
        {"date": dt.date(2024, 6, 18), "count": 1},
        {"date": dt.date(2024, 6, 19), "count": 1},
        {"date": dt.date(2024, 6, 20), "count": 2},
    ]


def test_compute_dashboard_stats(dashboard_bookings: List[BookingRecord]) -> None:
    stats = compute_dashboard_stats(
        dashboard_bookings, now=NOW, total_users=7, upcoming_events=2
    )

    counters = stats.stats
    assert counters.total_bookings == 5
    assert counters.pending_bookings == 1
    assert counters.approved_bookings == 2
    assert counters.rejected_bookings == 1
    assert counters.total_users == 7
    assert counters.upcoming_events == 2
    assert counters.today_bookings == 1
    assert counters.week_bookings == 2
    assert counters.bookings_trend == 100
    assert counters.month_bookings == 3
    assert counters.month_trend == 50

    assert [(t.type, t.count) for t in stats.bookings_by_type] == [
        (BookingType.CAFE, 2),
        (BookingType.PARTY, 2),
        (BookingType.PLAYGROUND, 1),
    ]
    assert [(s.status.value, s.count) for s in stats.bookings_by_status] == [
        ("PENDING", 1),
        ("APPROVED", 2),
        ("REJECTED", 1),
    ]
    assert [d.day for d in stats.peak_days] == ["Sunday", "Monday", "Thursday"]
    assert [(h.hour, h.count) for h in stats.peak_times] == [(10, 2), (14, 1)]
    assert [p.date for p in stats.bookings_over_time] == [
        dt.date(2024, 5, 25),
        dt.date(2024, 6, 16),
        dt.date(2024, 6, 17),
        dt.date(2024, 6, 20),
    ]
    assert stats.recent_bookings == []
    assert stats.generated_at == NOW


def test_compute_dashboard_stats_empty_store() -> None:
    stats = compute_dashboard_stats([], now=NOW)
    assert stats.stats.total_bookings == 0
    assert stats.stats.bookings_trend == 100
    assert stats.peak_days == []
    assert stats.bookings_over_time == []
