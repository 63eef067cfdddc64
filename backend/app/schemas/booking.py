"""
Pydantic schemas for booking-related request/response validation.
"""

from datetime import date, datetime, time
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, Field, field_serializer, field_validator

from app.core.calendar import TIME_SLOTS, format_slot, is_slot

PHONE_PATTERN = r"^\+7\d{10}$"


def check_slot_time(value: time) -> time:
    if not is_slot(value):
        allowed = ", ".join(format_slot(t) for t in TIME_SLOTS)
        raise ValueError(f"booking_time must be one of: {allowed}")
    return value


class SlotTimeMixin(BaseModel):
    @field_serializer("booking_time", check_fields=False)
    def _serialize_time(self, value: time) -> str:
        return format_slot(value)


class BookingCreate(BaseModel):
    exhibition_id: int = Field(..., gt=0)
    booking_date: date
    booking_time: time
    phone: str = Field(..., pattern=PHONE_PATTERN, description="Format +7XXXXXXXXXX")

    validate_booking_time = field_validator("booking_time")(check_slot_time)


class BookingResponse(SlotTimeMixin):
    id: int
    exhibition_id: int
    exhibition_name: str
    booking_date: date
    booking_time: time
    phone: str
    status: str
    created_at: datetime


class UserBookingResponse(SlotTimeMixin):
    id: int
    booking_date: date
    booking_time: time
    status: str
    phone: str
    created_at: datetime
    exhibition_id: int
    exhibition_name: str
    price: Decimal


class BookingCancelResponse(BaseModel):
    id: int
    status: str


class SlotAvailability(BaseModel):
    time: str
    capacity: int
    booked: int
    available: int
    is_available: bool


class AvailabilityResponse(BaseModel):
    exhibition_id: int
    date: date
    slots: list[SlotAvailability]
    message: Optional[str] = None
