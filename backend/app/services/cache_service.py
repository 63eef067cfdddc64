"""
Redis read-through cache for the exhibition catalog.

Only the active exhibition list is cached, under EXHIBITION_LIST_KEY, with
REDIS_CACHE_TTL expiry. Exhibitions are edited outside this service, so TTL
is the invalidation mechanism; `invalidate_exhibition_cache` is for
operator tooling.

Slot availability and bookings are never cached: the allocator counts live
rows inside its transaction.

Redis is optional. With REDIS_ENABLED off, or when Redis is unreachable,
every helper degrades to a miss/no-op and the caller reads the database.
"""

import json
from typing import Any, Awaitable, Callable, Optional

import redis.asyncio as redis
from redis.exceptions import RedisError
from app.core.config import get_settings
from app.core.logging import get_logger

logger = get_logger(__name__)
settings = get_settings()

EXHIBITION_LIST_KEY = "exhibitions:list"

_redis_client: Optional[redis.Redis] = None


async def get_redis() -> Optional[redis.Redis]:
    """Shared client, connected lazily. None when caching is off or Redis is down."""
    global _redis_client

    if not settings.REDIS_ENABLED:
        return None
    if _redis_client is not None:
        return _redis_client

    client = redis.from_url(
        settings.REDIS_URL,
        encoding="utf-8",
        decode_responses=True,
        socket_connect_timeout=5,
        socket_timeout=5,
    )
    try:
        await client.ping()
    except (RedisError, OSError) as e:
        logger.error("redis_connection_failed", url=settings.REDIS_URL, error=str(e))
        await client.aclose()
        return None

    logger.info("redis_connected", url=settings.REDIS_URL)
    _redis_client = client
    return _redis_client


async def close_redis() -> None:
    global _redis_client
    if _redis_client is not None:
        await _redis_client.aclose()
        _redis_client = None


async def _best_effort(event: str, call: Callable[[redis.Redis], Awaitable[Any]]) -> Any:
    client = await get_redis()
    if client is None:
        return None
    try:
        return await call(client)
    except Exception as e:
        logger.error(event, key=EXHIBITION_LIST_KEY, error=str(e))
        return None


async def get_cached_exhibitions() -> Optional[list[dict]]:
    raw = await _best_effort("cache_get_error", lambda client: client.get(EXHIBITION_LIST_KEY))
    if raw is None:
        return None
    return json.loads(raw)


async def set_cached_exhibitions(data: list[dict]) -> None:
    payload = json.dumps(data, default=str, ensure_ascii=False)
    await _best_effort(
        "cache_set_error",
        lambda client: client.setex(EXHIBITION_LIST_KEY, settings.REDIS_CACHE_TTL, payload),
    )


async def invalidate_exhibition_cache() -> None:
    await _best_effort("cache_invalidation_error", lambda client: client.delete(EXHIBITION_LIST_KEY))
    logger.info("cache_invalidated", key=EXHIBITION_LIST_KEY)


async def get_cache_stats() -> dict:
    """Keyspace hit rate, reported on /health."""
    client = await get_redis()
    if client is None:
        return {"status": "disabled"}

    try:
        info = await client.info("stats")
    except Exception as e:
        return {"status": "error", "error": str(e)}

    hits = info.get("keyspace_hits", 0)
    misses = info.get("keyspace_misses", 0)
    return {
        "status": "connected",
        "hits": hits,
        "misses": misses,
        "hit_rate": round(hits / max(hits + misses, 1) * 100, 2),
    }
