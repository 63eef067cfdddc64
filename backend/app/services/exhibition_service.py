"""
Exhibition catalog reads.
Only active exhibitions are visible or bookable.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from fastapi import HTTPException, status

from app.models.exhibition import Exhibition


async def list_exhibitions(db: AsyncSession) -> list[Exhibition]:
    result = await db.execute(
        select(Exhibition)
        .where(Exhibition.is_active.is_(True))
        .order_by(Exhibition.id)
    )
    return list(result.scalars().all())


async def get_exhibition(db: AsyncSession, exhibition_id: int) -> Exhibition:
    """Get a single active exhibition by ID."""
    result = await db.execute(
        select(Exhibition).where(
            Exhibition.id == exhibition_id,
            Exhibition.is_active.is_(True),
        )
    )
    exhibition = result.scalar_one_or_none()

    if not exhibition:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Exhibition not found",
        )
    return exhibition
