"""
In-memory booking projection consumed by the analytics engines.

The engines never touch the ORM: ``crud.analytics`` loads rows and converts
them with :meth:`BookingRecord.from_model` so the aggregation code can be
exercised with plain values.
"""
import datetime as dt
import math
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Union

from xplorium.models.booking import BookingStatus, BookingType


DateLike = Union[dt.date, dt.datetime]


@dataclass(frozen=True)
class BookingRecord:
    status: BookingStatus
    type: BookingType = BookingType.PLAYGROUND
    date: Optional[dt.date] = None
    time: Optional[str] = None
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None
    total_amount: Optional[float] = None
    paid_amount: Optional[float] = None
    is_paid: bool = False
    currency: str = "RSD"
    user_id: Optional[int] = None

    def __post_init__(self) -> None:
        # Accept raw strings ("PENDING", "CAFE") as well as enum members
        object.__setattr__(self, "status", BookingStatus(self.status))
        object.__setattr__(self, "type", BookingType(self.type))

    @property
    def day(self) -> Optional[dt.date]:
        """Calendar day the booking takes place on"""
        return as_date(self.date)

    @property
    def amount(self) -> float:
        return float(self.total_amount or 0)

    @classmethod
    def from_model(
        cls, booking: Any, price_lookup: Optional[Mapping[str, float]] = None
    ) -> "BookingRecord":
        """
        Build a record from a ``Booking`` row.

        When the booking carries no ``total_amount`` the published pricing
        package price for its type is used, if ``price_lookup`` has one.
        """
        total_amount = booking.total_amount
        if total_amount is None and price_lookup:
            type_key = getattr(booking.type, "value", booking.type)
            total_amount = price_lookup.get(type_key)

        return cls(
            status=booking.status,
            type=booking.type,
            date=as_date(booking.date),
            time=booking.time,
            created_at=booking.created_at,
            updated_at=booking.updated_at,
            total_amount=total_amount,
            paid_amount=booking.paid_amount,
            is_paid=bool(booking.is_paid),
            currency=booking.currency or "RSD",
            user_id=booking.user_id,
        )


def as_date(value: Optional[DateLike]) -> Optional[dt.date]:
    if value is None:
        return None
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, dt.date):
        return value
    return None


def as_utc(value: Optional[DateLike]) -> Optional[dt.datetime]:
    """Normalize to an aware UTC datetime; naive values are taken as UTC."""
    if value is None:
        return None
    if isinstance(value, dt.datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=dt.timezone.utc)
        return value.astimezone(dt.timezone.utc)
    if isinstance(value, dt.date):
        return dt.datetime(value.year, value.month, value.day, tzinfo=dt.timezone.utc)
    return None


def parse_hour(value: Optional[str]) -> Optional[int]:
    """Leading hour of an ``HH:MM`` string, or None when it can't be read."""
    if not value or not isinstance(value, str):
        return None
    head = value.strip().split(":", 1)[0]
    if not head.isdigit():
        return None
    hour = int(head)
    if hour > 23:
        return None
    return hour


def month_key(value: DateLike) -> str:
    return f"{value.year:04d}-{value.month:02d}"


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves rounded up."""
    return int(math.floor(value + 0.5))
