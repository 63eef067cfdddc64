"""
Identity resolver: maps a Telegram caller onto a stable user record.

The upsert is a single INSERT ... ON CONFLICT (telegram_id) statement, so two
first-contact requests for the same caller cannot race into a duplicate.
"""

from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.dialect import upsert_insert
from app.models.user import Admin, User
from app.schemas.user import TelegramUser
from app.core.logging import get_logger

logger = get_logger(__name__)


async def upsert_user(
    db: AsyncSession,
    tg_user: TelegramUser,
    phone: Optional[str] = None,
) -> int:
    """
    Create or refresh the user for `tg_user` and return its internal id.
    Profile fields are refreshed on every call; `phone` only when given.
    Does not commit: callers decide the transaction boundary.
    """
    values = {
        "telegram_id": tg_user.id,
        "first_name": tg_user.first_name,
        "last_name": tg_user.last_name,
        "username": tg_user.username,
        "language_code": tg_user.language_code or "ru",
        "is_premium": tg_user.is_premium,
    }
    if phone is not None:
        values["phone"] = phone

    stmt = upsert_insert(db, User).values(**values)
    updates = {
        "first_name": stmt.excluded.first_name,
        "last_name": stmt.excluded.last_name,
        "username": stmt.excluded.username,
        "updated_at": func.now(),
    }
    if phone is not None:
        updates["phone"] = stmt.excluded.phone

    stmt = stmt.on_conflict_do_update(index_elements=[User.telegram_id], set_=updates).returning(User.id)
    user_id = (await db.execute(stmt)).scalar_one()

    logger.info("user_upserted", user_id=user_id, telegram_id=tg_user.id)
    return user_id


async def register_user(db: AsyncSession, tg_user: TelegramUser) -> User:
    """Upsert the caller's profile and return the stored record."""
    await upsert_user(db, tg_user)
    await db.commit()
    return await get_user(db, tg_user.id)


async def get_user(db: AsyncSession, telegram_id: int) -> User:
    result = await db.execute(
        select(User)
        .where(User.telegram_id == telegram_id)
        .execution_options(populate_existing=True)
    )
    user = result.scalar_one_or_none()

    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not registered",
        )
    return user


async def get_admin(db: AsyncSession, telegram_id: int) -> Optional[Admin]:
    result = await db.execute(select(Admin).where(Admin.telegram_id == telegram_id))
    return result.scalar_one_or_none()
