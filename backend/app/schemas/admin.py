"""
Pydantic schemas for the operator surface.
"""

from datetime import date, datetime, time
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, field_validator

from app.models.booking import BookingStatus
from app.schemas.booking import SlotTimeMixin, check_slot_time


class AdminBookingResponse(SlotTimeMixin):
    id: int
    booking_date: date
    booking_time: time
    status: str
    phone: str
    created_at: datetime
    updated_at: datetime
    telegram_id: int
    first_name: str
    username: Optional[str]
    exhibition_id: int
    exhibition_name: str
    price: Decimal


class AdminBookingDetail(AdminBookingResponse):
    user_id: int
    user_phone: Optional[str]
    reminded_at: Optional[datetime]


class StatusUpdate(BaseModel):
    status: BookingStatus


class StatusUpdateResponse(BaseModel):
    id: int
    status: str
    updated_at: datetime

    model_config = {"from_attributes": True}


class RescheduleRequest(BaseModel):
    booking_date: date
    booking_time: time

    validate_booking_time = field_validator("booking_time")(check_slot_time)


class RescheduleResponse(SlotTimeMixin):
    id: int
    booking_date: date
    booking_time: time
    updated_at: datetime

    model_config = {"from_attributes": True}


class StatsResponse(BaseModel):
    today_bookings: int
    today_confirmed: int
    upcoming_total: int
    total_completed: int
