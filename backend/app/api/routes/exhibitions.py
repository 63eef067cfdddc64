"""
Exhibition catalog endpoints with Redis caching on the list.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import get_db
from app.schemas.exhibition import ExhibitionResponse
from app.services.exhibition_service import list_exhibitions, get_exhibition
from app.services.cache_service import get_cached_exhibitions, set_cached_exhibitions
from app.core.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/exhibitions", tags=["Exhibitions"])


@router.get("", response_model=list[ExhibitionResponse])
async def list_exhibitions_endpoint(db: AsyncSession = Depends(get_db)):
    """
    List active exhibitions.
    Served from Redis when available; cache expires after REDIS_CACHE_TTL.
    """
    cached = await get_cached_exhibitions()
    if cached is not None:
        logger.info("exhibitions_cache_hit")
        return cached

    exhibitions = [ExhibitionResponse.model_validate(e) for e in await list_exhibitions(db)]
    await set_cached_exhibitions([e.model_dump(mode="json") for e in exhibitions])
    return exhibitions


@router.get("/{exhibition_id}", response_model=ExhibitionResponse)
async def get_exhibition_endpoint(
    exhibition_id: int,
    db: AsyncSession = Depends(get_db),
):
    return await get_exhibition(db, exhibition_id)
