import enum
import datetime as dt
from typing import TYPE_CHECKING, Optional

from sqlalchemy import Boolean, Date, DateTime
from sqlalchemy import Enum as SQLEnum
from sqlalchemy import Float, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from ..database import Base

if TYPE_CHECKING:
    from .user import User


class BookingStatus(str, enum.Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"


class BookingType(str, enum.Enum):
    CAFE = "CAFE"
    SENSORY_ROOM = "SENSORY_ROOM"
    PLAYGROUND = "PLAYGROUND"
    PARTY = "PARTY"
    EVENT = "EVENT"


# Statuses that count towards revenue
REVENUE_STATUSES = (BookingStatus.APPROVED, BookingStatus.COMPLETED)


class Booking(Base):
    __tablename__ = "bookings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.id"), nullable=True, index=True
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False, index=True)
    time: Mapped[str] = mapped_column(String(5), nullable=False)
    type: Mapped[BookingType] = mapped_column(
        SQLEnum(BookingType), nullable=False, index=True
    )
    guest_count: Mapped[int] = mapped_column(Integer, nullable=False)
    phone: Mapped[str] = mapped_column(String(50), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    status: Mapped[BookingStatus] = mapped_column(
        SQLEnum(BookingStatus), default=BookingStatus.PENDING, nullable=False, index=True
    )
    admin_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    total_amount: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    paid_amount: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    is_paid: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False, index=True)
    currency: Mapped[str] = mapped_column(String(3), default="RSD", nullable=False)

    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False, index=True
    )
    updated_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    user: Mapped[Optional["User"]] = relationship("User", back_populates="bookings")

    # Composite indexes backing the dashboard queries
    __table_args__ = (
        Index("idx_booking_status_date", "status", "date"),
        Index("idx_booking_status_created", "status", "created_at"),
        Index("idx_booking_type_date", "type", "date"),
        Index("idx_booking_date_time", "date", "time"),
    )
