from app.schemas.user import TelegramUser, UserResponse
from app.schemas.exhibition import ExhibitionResponse
from app.schemas.booking import (
    BookingCreate,
    BookingResponse,
    UserBookingResponse,
    BookingCancelResponse,
    AvailabilityResponse,
)

__all__ = [
    "TelegramUser", "UserResponse",
    "ExhibitionResponse",
    "BookingCreate", "BookingResponse", "UserBookingResponse",
    "BookingCancelResponse", "AvailabilityResponse",
]
