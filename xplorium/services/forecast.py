"""
Revenue forecast engine.

Fits an ordinary least-squares line through up to twelve months of revenue
(month index 0..N-1 against revenue) and projects the following months.
The fit quality (R squared) is mapped to a confidence tier.
"""
import datetime as dt
import logging
import statistics
from typing import Any, List, Mapping, Optional, Sequence, Union

from dateutil.relativedelta import relativedelta

from xplorium.schemas.analytics import (
    Confidence,
    ForecastPoint,
    ForecastResult,
    ForecastStatus,
    RevenueMonthPoint,
)

from .records import month_key, round_half_up

logger = logging.getLogger(__name__)

MIN_HISTORY_POINTS = 2
DEFAULT_HORIZON = 3

HIGH_CONFIDENCE_R2 = 0.7
MEDIUM_CONFIDENCE_R2 = 0.4

HistoryPoint = Union[RevenueMonthPoint, Mapping[str, Any]]


def confidence_for(r_squared: Optional[float]) -> Confidence:
    """Tier a fit: >= 0.7 high, >= 0.4 medium, anything else (or undefined) low"""
    if r_squared is None:
        return Confidence.LOW
    if r_squared >= HIGH_CONFIDENCE_R2:
        return Confidence.HIGH
    if r_squared >= MEDIUM_CONFIDENCE_R2:
        return Confidence.MEDIUM
    return Confidence.LOW


def forecast_revenue(
    history: Sequence[HistoryPoint], horizon: int = DEFAULT_HORIZON
) -> ForecastResult:
    """
    Project revenue ``horizon`` months past the last month of ``history``.

    Fewer than two points cannot be fitted and yield a ``NOT_ENOUGH_DATA``
    result with an empty forecast. A constant series has no defined R squared:
    it is reported as None with low confidence and a flat projection.
    Projected values are clamped at zero and rounded to whole units.
    """
    points = sorted(
        (
            point
            if isinstance(point, RevenueMonthPoint)
            else RevenueMonthPoint.model_validate(point)
            for point in history
        ),
        key=lambda point: point.month,
    )

    if len(points) < MIN_HISTORY_POINTS:
        logger.info(
            "Revenue forecast skipped: %d month(s) of history, need %d",
            len(points),
            MIN_HISTORY_POINTS,
        )
        return ForecastResult(
            status=ForecastStatus.NOT_ENOUGH_DATA, historical_data=points
        )

    xs = list(range(len(points)))
    ys = [float(point.revenue) for point in points]

    y_mean = statistics.fmean(ys)
    ss_total = sum((y - y_mean) ** 2 for y in ys)

    r_squared: Optional[float]
    if ss_total == 0:
        slope, intercept = 0.0, ys[0]
        r_squared = None
    else:
        slope, intercept = statistics.linear_regression(xs, ys)
        ss_residual = sum((y - (slope * x + intercept)) ** 2 for x, y in zip(xs, ys))
        r_squared = 1 - ss_residual / ss_total

    confidence = confidence_for(r_squared)

    last_month = dt.datetime.strptime(points[-1].month, "%Y-%m").date()
    forecast: List[ForecastPoint] = []
    for step in range(1, horizon + 1):
        x = len(points) - 1 + step
        forecast.append(
            ForecastPoint(
                month=month_key(last_month + relativedelta(months=step)),
                forecasted_revenue=max(0, round_half_up(slope * x + intercept)),
                confidence=confidence,
            )
        )

    return ForecastResult(
        status=ForecastStatus.OK,
        forecast=forecast,
        historical_data=points,
        r_squared=r_squared,
        slope=slope,
        intercept=intercept,
        confidence=confidence,
    )
