"""
Pydantic schemas for the caller's identity and the stored user record.
"""

from typing import Optional
from pydantic import BaseModel


class TelegramUser(BaseModel):
    """The `user` object carried inside Telegram WebApp init data."""

    id: int
    first_name: str
    last_name: Optional[str] = None
    username: Optional[str] = None
    language_code: Optional[str] = None
    is_premium: bool = False

    model_config = {"extra": "ignore"}


class UserResponse(BaseModel):
    id: int
    telegram_id: int
    first_name: str
    username: Optional[str]
    phone: Optional[str]

    model_config = {"from_attributes": True}
