import asyncio
import datetime as dt
from typing import Any, Dict, List, Optional

import pytest

from xplorium.crud import analytics as crud_analytics
from xplorium.services.records import BookingRecord

NOW = dt.datetime(2024, 6, 15, 12, 0, tzinfo=dt.timezone.utc)
TODAY = NOW.date()


class RecordingLoader:
    """Stands in for ``get_booking_records`` and filters like the real query"""

    def __init__(self, records: List[BookingRecord]) -> None:
        self.records = records
        self.calls: List[Dict[str, Optional[dt.date]]] = []

    async def __call__(
        self,
        db: Any,
        *,
        start: Optional[dt.date] = None,
        end: Optional[dt.date] = None,
    ) -> List[BookingRecord]:
        self.calls.append({"start": start, "end": end})
        return [
            r
            for r in self.records
            if (start is None or r.date >= start) and (end is None or r.date <= end)
        ]


@pytest.fixture  # type: ignore[misc]
def loader(monkeypatch: pytest.MonkeyPatch) -> RecordingLoader:
    records = [
        BookingRecord(status="CANCELLED", date=dt.date(2023, 1, 10), total_amount=100),
        BookingRecord(status="CANCELLED", date=dt.date(2023, 2, 10), total_amount=100),
        BookingRecord(status="APPROVED", date=dt.date(2024, 6, 1), total_amount=100),
        BookingRecord(status="CANCELLED", date=dt.date(2024, 5, 20), total_amount=100),
    ]
    recording = RecordingLoader(records)
    monkeypatch.setattr(crud_analytics, "get_booking_records", recording)

    async def no_users(db: Any, *, user_ids: List[int]) -> Dict[int, Any]:
        return {}

    monkeypatch.setattr(crud_analytics.crud_user, "get_users_by_ids", no_users)
    return recording


def run(coro: Any) -> Any:
    return asyncio.run(coro)


@pytest.mark.parametrize(  # type: ignore[misc]
    "operation,expected_start",
    [
        (crud_analytics.get_revenue_by_type, dt.date(2024, 5, 15)),
        (crud_analytics.get_revenue_over_time, dt.date(2024, 5, 15)),
        (crud_analytics.get_payment_stats, dt.date(2024, 5, 15)),
        (crud_analytics.get_popular_services, dt.date(2024, 3, 15)),
        (crud_analytics.get_time_to_approval, dt.date(2024, 3, 15)),
        (crud_analytics.get_top_customers, dt.date(2023, 12, 15)),
        (crud_analytics.get_cancellation_metrics, dt.date(2023, 12, 15)),
    ],
)
def test_default_trailing_windows(
    loader: RecordingLoader, operation: Any, expected_start: dt.date
) -> None:
    run(operation(None, now=NOW))
    assert loader.calls == [{"start": expected_start, "end": TODAY}]


def test_explicit_range_is_kept(loader: RecordingLoader) -> None:
    start, end = dt.date(2023, 1, 1), dt.date(2023, 12, 31)
    run(crud_analytics.get_payment_stats(None, start=start, end=end, now=NOW))
    assert loader.calls == [{"start": start, "end": end}]


def test_only_start_given_ends_today(loader: RecordingLoader) -> None:
    run(crud_analytics.get_popular_services(None, start=dt.date(2024, 1, 1), now=NOW))
    assert loader.calls == [{"start": dt.date(2024, 1, 1), "end": TODAY}]


def test_cancellation_rate_excludes_old_bookings(loader: RecordingLoader) -> None:
    metrics = run(crud_analytics.get_cancellation_metrics(None, now=NOW))
    assert metrics.total_cancelled == 1
    assert metrics.cancellation_rate == 50.0
