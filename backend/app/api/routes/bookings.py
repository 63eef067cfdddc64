"""
Visitor booking endpoints with concurrency-safe slot allocation.
"""

from datetime import date

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import get_db
from app.schemas.booking import (
    AvailabilityResponse,
    BookingCancelResponse,
    BookingCreate,
    BookingResponse,
    UserBookingResponse,
)
from app.schemas.user import TelegramUser
from app.services.availability_service import get_availability
from app.services.booking_query_service import get_user_bookings
from app.services.booking_service import cancel_booking, create_booking
from app.services.notification_service import NotificationDispatcher, get_dispatcher
from app.core.security import get_current_user

router = APIRouter(prefix="/bookings", tags=["Bookings"])


@router.get("/availability", response_model=AvailabilityResponse)
async def availability(
    exhibition_id: int = Query(..., gt=0),
    booking_date: date = Query(..., alias="date"),
    db: AsyncSession = Depends(get_db),
):
    """
    Remaining places per slot for one exhibition day.
    A snapshot only: a slot shown as available can still be taken before
    the visitor books it.
    """
    return await get_availability(db, exhibition_id, booking_date)


@router.post("", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking_endpoint(
    booking_data: BookingCreate,
    tg_user: TelegramUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    """
    Book one place in a slot.

    The capacity check and insert run under the slot's lock, so concurrent
    requests for the last place get exactly one 201; the rest get 409.
    """
    return await create_booking(db, dispatcher, tg_user, booking_data)


@router.get("/my", response_model=list[UserBookingResponse])
async def my_bookings(
    tg_user: TelegramUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """All bookings of the caller, most recent first."""
    return await get_user_bookings(db, tg_user.id)


@router.patch("/{booking_id}/cancel", response_model=BookingCancelResponse)
async def cancel_booking_endpoint(
    booking_id: int,
    tg_user: TelegramUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    booking_id, booking_status = await cancel_booking(db, booking_id, tg_user.id)
    return BookingCancelResponse(id=booking_id, status=booking_status)
