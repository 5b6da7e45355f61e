import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from xplorium import crud
from xplorium.api import deps
from xplorium.core.exceptions import NotFoundError
from xplorium.models.booking import BookingStatus
from xplorium.models.user import User, UserRole
from xplorium.schemas.booking import Booking, BookingCreate, BookingStatusUpdate

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/", response_model=Booking, status_code=status.HTTP_201_CREATED)  # type: ignore[misc]
async def create_booking(
    *,
    db: AsyncSession = Depends(deps.get_db),
    booking_in: BookingCreate,
    current_user: Optional[User] = Depends(deps.get_optional_user),
    _: object = Depends(deps.rate_limited_by_ip("booking")),
) -> Booking:
    """
    Submit a booking request from the public form.

    Anonymous requests are accepted; a signed-in customer gets the booking
    linked to their account.
    """
    booking = await crud.booking.create_booking(
        db, booking_in, user_id=current_user.id if current_user else None
    )
    return Booking.model_validate(booking)


@router.get("/", response_model=List[Booking])  # type: ignore[misc]
async def read_bookings(
    db: AsyncSession = Depends(deps.get_db),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    status_filter: Optional[BookingStatus] = Query(None, alias="status"),
    current_user: User = Depends(deps.require_role(UserRole.ADMIN)),
) -> List[Booking]:
    bookings, _ = await crud.booking.get_bookings_with_pagination(
        db, skip=skip, limit=limit, status_filter=status_filter
    )
    return [Booking.model_validate(b) for b in bookings]


@router.patch("/{booking_id}/status", response_model=Booking)  # type: ignore[misc]
async def update_booking_status(
    booking_id: int,
    update_in: BookingStatusUpdate,
    db: AsyncSession = Depends(deps.get_db),
    current_user: User = Depends(deps.require_role(UserRole.ADMIN)),
) -> Booking:
    booking = await crud.booking.get_booking(db, booking_id)
    if not booking:
        raise NotFoundError("Booking")

    booking = await crud.booking.update_status(db, booking, update_in)
    logger.info("Booking %s updated by admin %s", booking.id, current_user.id)
    return Booking.model_validate(booking)
