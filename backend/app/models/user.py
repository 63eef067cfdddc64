"""
User model keyed by the caller's Telegram identity.
"""

from sqlalchemy import BigInteger, Boolean, Column, Integer, String
from sqlalchemy.orm import relationship

from app.db.base import Base, TimestampMixin


class User(Base, TimestampMixin):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    telegram_id = Column(BigInteger, unique=True, index=True, nullable=False)
    first_name = Column(String(255), nullable=False)
    last_name = Column(String(255), nullable=True)
    username = Column(String(255), nullable=True)
    language_code = Column(String(10), nullable=False, default="ru")
    is_premium = Column(Boolean, nullable=False, default=False)
    phone = Column(String(20), nullable=True)

    bookings = relationship("Booking", back_populates="user")

    def __repr__(self) -> str:
        return f"<User(id={self.id}, telegram_id={self.telegram_id})>"


class Admin(Base):
    """Operators. A row here grants access to the /admin surface."""

    __tablename__ = "admins"

    telegram_id = Column(BigInteger, primary_key=True)
    admin_level = Column(Integer, nullable=False, default=1)

    def __repr__(self) -> str:
        return f"<Admin(telegram_id={self.telegram_id}, level={self.admin_level})>"
