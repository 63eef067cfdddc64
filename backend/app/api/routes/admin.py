"""
Operator endpoints. Every route requires a row in the admins table.
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.calendar import venue_today
from app.core.security import require_admin
from app.db.session import get_db
from app.models.booking import BookingStatus
from app.schemas.admin import (
    AdminBookingDetail,
    AdminBookingResponse,
    RescheduleRequest,
    RescheduleResponse,
    StatsResponse,
    StatusUpdate,
    StatusUpdateResponse,
)
from app.schemas.user import TelegramUser
from app.services.booking_query_service import get_booking_detail, get_stats, list_bookings
from app.services.booking_service import delete_booking, reschedule_booking, set_booking_status

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.get("/bookings", response_model=list[AdminBookingResponse])
async def admin_list_bookings(
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    exhibition_id: Optional[int] = Query(None, gt=0),
    status_filter: Optional[BookingStatus] = Query(None, alias="status"),
    _: TelegramUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await list_bookings(db, date_from, date_to, exhibition_id, status_filter)


@router.get("/bookings/{booking_id}", response_model=AdminBookingDetail)
async def admin_get_booking(
    booking_id: int,
    _: TelegramUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await get_booking_detail(db, booking_id)


@router.patch("/bookings/{booking_id}/status", response_model=StatusUpdateResponse)
async def admin_set_status(
    booking_id: int,
    update: StatusUpdate,
    admin: TelegramUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """
    Set any status. This is a manual correction channel: no transition rules
    apply, every change is written to the audit log.
    """
    return await set_booking_status(db, booking_id, update.status, admin.id)


@router.patch("/bookings/{booking_id}/reschedule", response_model=RescheduleResponse)
async def admin_reschedule(
    booking_id: int,
    request: RescheduleRequest,
    admin: TelegramUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await reschedule_booking(db, booking_id, request, admin.id)


@router.delete("/bookings/{booking_id}", status_code=status.HTTP_204_NO_CONTENT)
async def admin_delete_booking(
    booking_id: int,
    admin: TelegramUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    await delete_booking(db, booking_id, admin.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/stats", response_model=StatsResponse)
async def admin_stats(
    _: TelegramUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await get_stats(db, venue_today())
