from app.models.user import User, Admin
from app.models.exhibition import Exhibition
from app.models.booking import Booking, BookingStatus, SlotLock, BookingAudit

__all__ = ["User", "Admin", "Exhibition", "Booking", "BookingStatus", "SlotLock", "BookingAudit"]
