import logging
from typing import List, Optional, Tuple

from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from xplorium.models.booking import Booking, BookingStatus
from xplorium.schemas.booking import BookingCreate, BookingStatusUpdate

logger = logging.getLogger(__name__)


async def get_booking(db: AsyncSession, booking_id: int) -> Optional[Booking]:
    result = await db.execute(select(Booking).filter(Booking.id == booking_id))
    booking: Optional[Booking] = result.scalars().first()
    return booking


async def get_bookings_with_pagination(
    db: AsyncSession,
    skip: int = 0,
    limit: int = 100,
    status_filter: Optional[BookingStatus] = None,
    user_id_filter: Optional[int] = None,
) -> Tuple[List[Booking], int]:
    query = select(Booking)
    count_query = select(func.count(Booking.id))
    filters = []
    if status_filter:
        filters.append(Booking.status == status_filter)
    if user_id_filter:
        filters.append(Booking.user_id == user_id_filter)
    if filters:
        query = query.filter(and_(*filters))
        count_query = count_query.filter(and_(*filters))
    total_result = await db.execute(count_query)
    total = total_result.scalar_one()
    query = query.order_by(Booking.created_at.desc()).offset(skip).limit(limit)
    result = await db.execute(query)
    bookings = list(result.scalars().all())
    return bookings, total


async def create_booking(
    db: AsyncSession, booking_data: BookingCreate, user_id: Optional[int] = None
) -> Booking:
    """Store a booking request from the public form; it starts out PENDING"""
    db_obj = Booking(
        **booking_data.model_dump(),
        user_id=user_id,
        status=BookingStatus.PENDING,
    )
    db.add(db_obj)
    await db.commit()
    await db.refresh(db_obj)
    logger.info(
        "Booking %s created for %s on %s %s",
        db_obj.id,
        db_obj.type.value,
        db_obj.date,
        db_obj.time,
    )
    return db_obj


async def update_status(
    db: AsyncSession, booking: Booking, obj_in: BookingStatusUpdate
) -> Booking:
    """Apply an admin status decision; date and time never change here"""
    previous = booking.status
    booking.status = obj_in.status
    if obj_in.admin_notes is not None:
        booking.admin_notes = obj_in.admin_notes
    await db.commit()
    await db.refresh(booking)
    logger.info(
        "Booking %s status changed from %s to %s",
        booking.id,
        previous.value,
        booking.status.value,
    )
    return booking
