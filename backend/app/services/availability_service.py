"""
Slot availability calculator.

A read-only, point-in-time view of remaining headroom per slot. It takes no
locks and reserves nothing: the allocator re-counts inside its own
transaction before granting a slot.
"""

from datetime import date, time
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.calendar import TIME_SLOTS, format_slot
from app.core.logging import get_logger
from app.models.booking import Booking, BookingStatus
from app.schemas.booking import AvailabilityResponse, SlotAvailability
from app.services.exhibition_service import get_exhibition

logger = get_logger(__name__)

NOT_OPERATING_MESSAGE = "Выставка не работает в этот день"


def active_bookings_filter(exhibition_id: int, booking_date: date, booking_time: Optional[time] = None):
    """WHERE clauses selecting the bookings that occupy capacity."""
    clauses = [
        Booking.exhibition_id == exhibition_id,
        Booking.booking_date == booking_date,
        Booking.status != BookingStatus.CANCELLED.value,
    ]
    if booking_time is not None:
        clauses.append(Booking.booking_time == booking_time)
    return clauses


async def booked_per_slot(db: AsyncSession, exhibition_id: int, booking_date: date) -> dict[time, int]:
    result = await db.execute(
        select(Booking.booking_time, func.count(Booking.id))
        .where(*active_bookings_filter(exhibition_id, booking_date))
        .group_by(Booking.booking_time)
    )
    return {slot_time: booked for slot_time, booked in result.all()}


async def get_availability(
    db: AsyncSession,
    exhibition_id: int,
    booking_date: date,
) -> AvailabilityResponse:
    exhibition = await get_exhibition(db, exhibition_id)

    if not exhibition.operates_on(booking_date):
        return AvailabilityResponse(
            exhibition_id=exhibition_id,
            date=booking_date,
            slots=[],
            message=NOT_OPERATING_MESSAGE,
        )

    booked_map = await booked_per_slot(db, exhibition_id, booking_date)
    capacity = exhibition.capacity

    slots = []
    for slot_time in TIME_SLOTS:
        booked = booked_map.get(slot_time, 0)
        slots.append(
            SlotAvailability(
                time=format_slot(slot_time),
                capacity=capacity,
                booked=booked,
                available=max(capacity - booked, 0),
                is_available=booked < capacity,
            )
        )

    logger.debug(
        "availability_computed",
        exhibition_id=exhibition_id,
        date=booking_date.isoformat(),
        open_slots=sum(1 for s in slots if s.is_available),
    )
    return AvailabilityResponse(exhibition_id=exhibition_id, date=booking_date, slots=slots)
