import math
from typing import Optional

import pytest
from pydantic import ValidationError

from xplorium.schemas.analytics import Confidence, ForecastStatus, RevenueMonthPoint
from xplorium.services.forecast import confidence_for, forecast_revenue


def monthly(values, year: int = 2024):
    return [
        RevenueMonthPoint(month=f"{year}-{i + 1:02d}", revenue=value)
        for i, value in enumerate(values)
    ]


def test_linear_history_projects_exact_trend() -> None:
    result = forecast_revenue(monthly([1000 * (i + 1) for i in range(12)]))

    assert result.status == ForecastStatus.OK
    assert result.ok
    assert result.r_squared == pytest.approx(1.0)
    assert result.confidence == Confidence.HIGH
    assert result.slope == pytest.approx(1000.0)
    assert result.intercept == pytest.approx(1000.0)
    assert [p.month for p in result.forecast] == ["2025-01", "2025-02", "2025-03"]
    assert [p.forecasted_revenue for p in result.forecast] == [13000, 14000, 15000]
    assert all(p.confidence == Confidence.HIGH for p in result.forecast)
    assert len(result.historical_data) == 12


def test_constant_history_gives_flat_low_confidence_forecast() -> None:
    result = forecast_revenue(monthly([5000] * 12))

    assert result.status == ForecastStatus.OK
    assert result.r_squared is None
    assert result.confidence == Confidence.LOW
    assert [p.forecasted_revenue for p in result.forecast] == [5000, 5000, 5000]
    for point in result.forecast:
        assert not math.isnan(point.forecasted_revenue)


def test_all_zero_history() -> None:
    result = forecast_revenue(monthly([0] * 12))
    assert [p.forecasted_revenue for p in result.forecast] == [0, 0, 0]
    assert result.confidence == Confidence.LOW


@pytest.mark.parametrize("count", [0, 1])  # type: ignore[misc]
def test_short_history_is_not_enough_data(count: int) -> None:
    result = forecast_revenue(monthly([4200] * count))

    assert result.status == ForecastStatus.NOT_ENOUGH_DATA
    assert not result.ok
    assert result.forecast == []
    assert len(result.historical_data) == count


def test_declining_trend_is_clamped_at_zero() -> None:
    result = forecast_revenue(monthly([3000, 2000, 1000]))
    assert [p.forecasted_revenue for p in result.forecast] == [0, 0, 0]
    assert [p.month for p in result.forecast] == ["2024-04", "2024-05", "2024-06"]


def test_history_accepts_mappings_in_any_order() -> None:
    history = [
        {"month": "2024-03", "revenue": 300},
        {"month": "2024-01", "revenue": 100},
        {"month": "2024-02", "revenue": 200},
    ]
    result = forecast_revenue(history, horizon=2)

    assert [p.month for p in result.historical_data] == ["2024-01", "2024-02", "2024-03"]
    assert [p.forecasted_revenue for p in result.forecast] == [400, 500]


@pytest.mark.parametrize("bad", [math.nan, math.inf, -math.inf])  # type: ignore[misc]
def test_non_finite_revenue_is_rejected(bad: float) -> None:
    with pytest.raises(ValidationError):
        forecast_revenue(
            [{"month": "2024-01", "revenue": 100}, {"month": "2024-02", "revenue": bad}]
        )
    with pytest.raises(ValidationError):
        RevenueMonthPoint(month="2024-02", revenue=bad)


def test_noisy_history_has_lower_confidence() -> None:
    result = forecast_revenue(monthly([1000, 5000, 1000, 5000, 1000, 5200]))
    assert result.r_squared is not None
    assert 0 <= result.r_squared < 0.4
    assert result.confidence == Confidence.LOW


@pytest.mark.parametrize(  # type: ignore[misc]
    "r_squared,expected",
    [
        (1.0, Confidence.HIGH),
        (0.7, Confidence.HIGH),
        (0.69, Confidence.MEDIUM),
        (0.4, Confidence.MEDIUM),
        (0.39, Confidence.LOW),
        (0.0, Confidence.LOW),
        (None, Confidence.LOW),
    ],
)
def test_confidence_tiers(r_squared: Optional[float], expected: Confidence) -> None:
    assert confidence_for(r_squared) == expected
