import datetime as dt
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from ..models.booking import BookingStatus, BookingType

TIME_PATTERN = r"^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$"


class BookingBase(BaseModel):
    title: str = Field(..., min_length=3, max_length=200)
    date: dt.date
    time: str = Field(..., pattern=TIME_PATTERN, description="HH:MM")
    type: BookingType
    guest_count: int = Field(..., ge=1, le=100)
    phone: str = Field(..., min_length=10, max_length=50)
    email: EmailStr


class BookingCreate(BookingBase):
    pass


class BookingStatusUpdate(BaseModel):
    status: BookingStatus
    admin_notes: Optional[str] = None


class Booking(BookingBase):
    id: int
    user_id: Optional[int] = None
    status: BookingStatus
    admin_notes: Optional[str] = None
    total_amount: Optional[float] = None
    paid_amount: Optional[float] = None
    is_paid: bool = False
    currency: str = "RSD"
    created_at: dt.datetime
    updated_at: dt.datetime

    # Stored emails are not re-validated on the way out
    email: str

    model_config = ConfigDict(from_attributes=True)
