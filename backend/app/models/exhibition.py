"""
Exhibition model: the bookable offering.

Key design decisions:
- `capacity` is the headcount allowed per time slot, not per day
- `schedule_days` holds weekday numbers (Sunday = 0 ... Saturday = 6) as JSON so
  the same schema works on PostgreSQL and SQLite
- Exhibitions are managed outside this service; the API only reads them
"""

from sqlalchemy import JSON, Boolean, CheckConstraint, Column, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship

from app.core.calendar import day_index
from app.db.base import Base, TimestampMixin


class Exhibition(Base, TimestampMixin):
    __tablename__ = "exhibitions"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    duration_minutes = Column(Integer, nullable=False, default=60)
    price = Column(Numeric(10, 2), nullable=False, default=0)
    capacity = Column(Integer, nullable=False)
    schedule_days = Column(JSON, nullable=False, default=lambda: list(range(7)))
    is_active = Column(Boolean, nullable=False, default=True)

    bookings = relationship("Booking", back_populates="exhibition")

    __table_args__ = (
        CheckConstraint("capacity > 0", name="check_exhibition_capacity_positive"),
        CheckConstraint("duration_minutes > 0", name="check_exhibition_duration_positive"),
    )

    def operates_on(self, day) -> bool:
        return day_index(day) in (self.schedule_days or [])

    def __repr__(self) -> str:
        return f"<Exhibition(id={self.id}, name={self.name}, capacity={self.capacity})>"
