import datetime as dt
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..models.booking import BookingStatus, BookingType


class TypeCount(BaseModel):
    type: BookingType
    count: int


class StatusCount(BaseModel):
    status: BookingStatus
    count: int


class DayCount(BaseModel):
    day: str
    count: int


class HourCount(BaseModel):
    hour: int = Field(..., ge=0, le=23)
    time: str
    count: int


class DateCount(BaseModel):
    date: dt.date
    count: int


class DashboardCounters(BaseModel):
    total_bookings: int = 0
    pending_bookings: int = 0
    approved_bookings: int = 0
    rejected_bookings: int = 0
    total_users: int = 0
    upcoming_events: int = 0
    today_bookings: int = 0
    week_bookings: int = 0
    month_bookings: int = 0
    bookings_trend: int = 0
    month_trend: int = 0


class RecentBooking(BaseModel):
    id: int
    title: str
    type: BookingType
    status: BookingStatus
    date: dt.date
    time: str
    email: str
    created_at: dt.datetime

    model_config = ConfigDict(from_attributes=True)


class UpcomingEvent(BaseModel):
    id: int
    slug: str
    title: str
    date: dt.datetime
    time: str
    category: str

    model_config = ConfigDict(from_attributes=True)


class DashboardStats(BaseModel):
    """Read-model behind the admin dashboard, assembled on every request"""

    generated_at: dt.datetime
    stats: DashboardCounters
    recent_bookings: List[RecentBooking] = []
    recent_events: List[UpcomingEvent] = []
    bookings_by_type: List[TypeCount] = []
    bookings_by_status: List[StatusCount] = []
    peak_days: List[DayCount] = []
    peak_times: List[HourCount] = []
    bookings_over_time: List[DateCount] = []


class Confidence(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class ForecastStatus(str, Enum):
    OK = "OK"
    NOT_ENOUGH_DATA = "NOT_ENOUGH_DATA"


class RevenueMonthPoint(BaseModel):
    month: str = Field(..., pattern=r"^\d{4}-\d{2}$")
    revenue: float = Field(..., allow_inf_nan=False)


class ForecastPoint(BaseModel):
    month: str
    forecasted_revenue: float
    confidence: Confidence


class ForecastResult(BaseModel):
    status: ForecastStatus
    forecast: List[ForecastPoint] = []
    historical_data: List[RevenueMonthPoint] = []
    r_squared: Optional[float] = None
    slope: Optional[float] = None
    intercept: Optional[float] = None
    confidence: Optional[Confidence] = None

    @property
    def ok(self) -> bool:
        return self.status == ForecastStatus.OK


class RevenueStats(BaseModel):
    total_revenue: float
    paid_revenue: float
    pending_revenue: float
    total_bookings: int
    paid_bookings: int
    pending_bookings: int
    average_booking_value: float
    currency: str
    this_month: float
    last_month: float
    month_growth: float


class RevenueByType(BaseModel):
    type: BookingType
    revenue: float
    bookings: int
    average_value: float


class RevenueOverTime(BaseModel):
    date: str
    revenue: float
    bookings: int


class PaymentStats(BaseModel):
    total_paid: float
    total_pending: float
    partial_payments: int
    full_payments: int
    unpaid_bookings: int


class TopCustomer(BaseModel):
    user_id: int
    name: Optional[str] = None
    email: Optional[str] = None
    revenue: float
    bookings: int


class PopularService(BaseModel):
    type: BookingType
    bookings: int
    revenue: float
    average_value: float
    percentage: float


class PopularServices(BaseModel):
    services: List[PopularService]
    total_bookings: int


class MonthlyCancellation(BaseModel):
    month: str
    cancelled: int
    total: int
    rate: float


class CancellationMetrics(BaseModel):
    total_cancelled: int
    cancellation_rate: float
    cancelled_revenue: float
    cancelled_by_type: List[TypeCount]
    monthly_trend: List[MonthlyCancellation]


class TypeApprovalTime(BaseModel):
    type: BookingType
    average_hours: float


class TimeToApprovalMetrics(BaseModel):
    average_hours: float = 0.0
    median_hours: float = 0.0
    fastest: float = 0.0
    slowest: float = 0.0
    within_24_hours: int = 0
    within_48_hours: int = 0
    total_measured: int = 0
    by_type: List[TypeApprovalTime] = []
