"""
Tests for the Redis-backed exhibition list cache.
"""

import json

import pytest
from httpx import AsyncClient

from app.services import cache_service


class FakeRedis:
    def __init__(self, broken: bool = False):
        self.store = {}
        self.broken = broken

    async def get(self, key):
        if self.broken:
            raise ConnectionError("redis down")
        return self.store.get(key)

    async def setex(self, key, ttl, value):
        if self.broken:
            raise ConnectionError("redis down")
        self.store[key] = value

    async def delete(self, key):
        self.store.pop(key, None)


@pytest.fixture
def fake_redis(monkeypatch):
    fake = FakeRedis()
    monkeypatch.setattr(cache_service.settings, "REDIS_ENABLED", True)
    monkeypatch.setattr(cache_service, "_redis_client", fake)
    return fake


@pytest.mark.asyncio
async def test_exhibition_list_is_cached(client: AsyncClient, exhibition, fake_redis, db_session):
    first = await client.get("/api/exhibitions")
    assert first.status_code == 200
    cached = json.loads(fake_redis.store[cache_service.EXHIBITION_LIST_KEY])
    assert [e["id"] for e in cached] == [exhibition.id]

    exhibition.is_active = False
    await db_session.commit()

    second = await client.get("/api/exhibitions")
    assert second.json() == first.json()

    await cache_service.invalidate_exhibition_cache()
    third = await client.get("/api/exhibitions")
    assert third.json() == []


@pytest.mark.asyncio
async def test_cache_errors_fall_back_to_database(client: AsyncClient, exhibition, monkeypatch):
    monkeypatch.setattr(cache_service.settings, "REDIS_ENABLED", True)
    monkeypatch.setattr(cache_service, "_redis_client", FakeRedis(broken=True))

    response = await client.get("/api/exhibitions")
    assert response.status_code == 200
    assert [e["id"] for e in response.json()] == [exhibition.id]


@pytest.mark.asyncio
async def test_cache_disabled(client: AsyncClient):
    assert await cache_service.get_cached_exhibitions() is None
    assert await cache_service.get_cache_stats() == {"status": "disabled"}
