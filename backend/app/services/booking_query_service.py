"""
Read side for bookings: visitor listings, operator listings and stats.
"""

from datetime import date
from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.booking import Booking, BookingStatus
from app.models.exhibition import Exhibition
from app.models.user import User

SUMMARY_STATUSES = (BookingStatus.CONFIRMED.value, BookingStatus.COMPLETED.value)

_user_columns = (
    Booking.id,
    Booking.booking_date,
    Booking.booking_time,
    Booking.status,
    Booking.phone,
    Booking.created_at,
    Exhibition.id.label("exhibition_id"),
    Exhibition.name.label("exhibition_name"),
    Exhibition.price,
)

_admin_columns = (
    *_user_columns,
    Booking.updated_at,
    User.telegram_id,
    User.first_name,
    User.username,
)


def _joined(*columns):
    return (
        select(*columns)
        .select_from(Booking)
        .join(User, Booking.user_id == User.id)
        .join(Exhibition, Booking.exhibition_id == Exhibition.id)
    )


async def get_user_bookings(db: AsyncSession, telegram_id: int) -> list[dict]:
    """Every booking of the caller, most recent slot first."""
    result = await db.execute(
        _joined(*_user_columns)
        .where(User.telegram_id == telegram_id)
        .order_by(Booking.booking_date.desc(), Booking.booking_time.desc())
    )
    return [dict(row) for row in result.mappings().all()]


async def get_user_booking_summary(db: AsyncSession, telegram_id: int, limit: int = 5) -> list[dict]:
    """Confirmed and completed bookings only, for the bot's /mybookings."""
    result = await db.execute(
        _joined(*_user_columns)
        .where(User.telegram_id == telegram_id, Booking.status.in_(SUMMARY_STATUSES))
        .order_by(Booking.booking_date.desc(), Booking.booking_time.desc())
        .limit(limit)
    )
    return [dict(row) for row in result.mappings().all()]


async def list_bookings(
    db: AsyncSession,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    exhibition_id: Optional[int] = None,
    status_filter: Optional[BookingStatus] = None,
) -> list[dict]:
    """Operator listing, in visiting order."""
    query = _joined(*_admin_columns)

    if date_from:
        query = query.where(Booking.booking_date >= date_from)
    if date_to:
        query = query.where(Booking.booking_date <= date_to)
    if exhibition_id:
        query = query.where(Booking.exhibition_id == exhibition_id)
    if status_filter:
        query = query.where(Booking.status == status_filter.value)

    result = await db.execute(query.order_by(Booking.booking_date.asc(), Booking.booking_time.asc()))
    return [dict(row) for row in result.mappings().all()]


async def get_booking_detail(db: AsyncSession, booking_id: int) -> dict:
    result = await db.execute(
        _joined(
            *_admin_columns,
            Booking.user_id,
            Booking.reminded_at,
            User.phone.label("user_phone"),
        ).where(Booking.id == booking_id)
    )
    row = result.mappings().first()

    if row is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Booking not found",
        )
    return dict(row)


async def get_stats(db: AsyncSession, today: date) -> dict:
    """Counts relative to `today` in the venue's timezone."""
    confirmed = Booking.status == BookingStatus.CONFIRMED.value
    result = await db.execute(
        select(
            func.count(case((Booking.booking_date == today, 1))).label("today_bookings"),
            func.count(case(((Booking.booking_date == today) & confirmed, 1))).label("today_confirmed"),
            func.count(case((confirmed & (Booking.booking_date >= today), 1))).label("upcoming_total"),
            func.count(
                case((Booking.status == BookingStatus.COMPLETED.value, 1))
            ).label("total_completed"),
        )
    )
    return dict(result.mappings().one())
