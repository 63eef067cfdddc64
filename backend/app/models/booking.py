"""
Booking model representing a visitor's reservation of one exhibition slot.

Key design decisions:
- A slot is (exhibition_id, booking_date, booking_time); capacity is enforced
  per slot by counting non-cancelled rows, never by a denormalized counter
- Status field allows cancellation without deleting records
- `reminded_at` doubles as the at-most-once guard for the reminder sweep
- SlotLock rows serialize concurrent writers targeting the same slot
"""

import enum

from sqlalchemy import (
    BigInteger,
    Column,
    Integer,
    String,
    Date,
    Time,
    DateTime,
    ForeignKey,
    CheckConstraint,
    Index,
    PrimaryKeyConstraint,
    func,
)
from sqlalchemy.orm import relationship

from app.db.base import Base, TimestampMixin


class BookingStatus(str, enum.Enum):
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


# Owners may not cancel bookings that are already in one of these states
OWNER_FINAL_STATUSES = (BookingStatus.CANCELLED.value, BookingStatus.COMPLETED.value)


class Booking(Base, TimestampMixin):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    exhibition_id = Column(Integer, ForeignKey("exhibitions.id"), nullable=False, index=True)
    booking_date = Column(Date, nullable=False)
    booking_time = Column(Time, nullable=False)
    status = Column(String(20), nullable=False, default=BookingStatus.CONFIRMED.value)
    phone = Column(String(20), nullable=False)
    reminded_at = Column(DateTime(timezone=True), nullable=True)

    user = relationship("User", back_populates="bookings")
    exhibition = relationship("Exhibition", back_populates="bookings")

    __table_args__ = (
        CheckConstraint(
            "status IN ('confirmed', 'completed', 'cancelled', 'no_show')",
            name="check_booking_status",
        ),
        # Covers the capacity count: WHERE exhibition_id, date, time AND status != 'cancelled'
        Index("ix_bookings_slot", "exhibition_id", "booking_date", "booking_time", "status"),
        # Reminder sweep: confirmed bookings for a given date
        Index("ix_bookings_date_status", "booking_date", "status"),
    )

    def __repr__(self) -> str:
        return (
            f"<Booking(id={self.id}, exhibition={self.exhibition_id}, "
            f"slot={self.booking_date} {self.booking_time}, status={self.status})>"
        )


class SlotLock(Base):
    """One row per slot key; bumping `version` takes the slot's write lock."""

    __tablename__ = "slot_locks"

    exhibition_id = Column(Integer, ForeignKey("exhibitions.id"), nullable=False)
    slot_date = Column(Date, nullable=False)
    slot_time = Column(Time, nullable=False)
    version = Column(Integer, nullable=False, default=0)

    __table_args__ = (
        PrimaryKeyConstraint("exhibition_id", "slot_date", "slot_time", name="pk_slot_locks"),
    )


class BookingAudit(Base):
    """Operator changes to bookings. No FK so entries outlive deleted bookings."""

    __tablename__ = "booking_audit"

    id = Column(Integer, primary_key=True)
    booking_id = Column(Integer, nullable=False, index=True)
    actor_telegram_id = Column(BigInteger, nullable=False)
    action = Column(String(20), nullable=False)  # status, reschedule, delete
    old_value = Column(String(64), nullable=True)
    new_value = Column(String(64), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    def __repr__(self) -> str:
        return f"<BookingAudit(booking={self.booking_id}, action={self.action})>"
