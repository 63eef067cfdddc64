"""
Identity endpoints: profile upsert and self-fetch.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import get_db
from app.schemas.user import TelegramUser, UserResponse
from app.services.user_service import register_user, get_user
from app.core.security import get_current_user

router = APIRouter(prefix="/users", tags=["Users"])


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def upsert_user_endpoint(
    tg_user: TelegramUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Create the caller's user record or refresh its profile fields."""
    return await register_user(db, tg_user)


@router.get("/me", response_model=UserResponse)
async def get_me(
    tg_user: TelegramUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await get_user(db, tg_user.id)
