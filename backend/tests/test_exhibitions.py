"""
Tests for the exhibition catalog endpoints.
"""

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_list_exhibitions_active_only(
    client: AsyncClient, exhibition, solo_exhibition, inactive_exhibition
):
    """Only active exhibitions are listed, with their weekday schedule."""
    response = await client.get("/api/exhibitions")
    assert response.status_code == 200
    data = response.json()

    ids = {e["id"] for e in data}
    assert ids == {exhibition.id, solo_exhibition.id}

    by_id = {e["id"]: e for e in data}
    assert by_id[exhibition.id]["schedule_text"] == "ежедневно"
    assert by_id[exhibition.id]["capacity"] == 2
    assert by_id[solo_exhibition.id]["schedule_days"] == [0, 6]
    assert by_id[solo_exhibition.id]["schedule_text"] == "воскресенье, суббота"


@pytest.mark.asyncio
async def test_list_exhibitions_empty(client: AsyncClient):
    response = await client.get("/api/exhibitions")
    assert response.status_code == 200
    assert response.json() == []


@pytest.mark.asyncio
async def test_get_exhibition(client: AsyncClient, exhibition):
    response = await client.get(f"/api/exhibitions/{exhibition.id}")
    assert response.status_code == 200
    data = response.json()
    assert data["name"] == exhibition.name
    assert data["duration_minutes"] == 60
    assert data["is_active"] is True


@pytest.mark.asyncio
async def test_get_inactive_exhibition_not_found(client: AsyncClient, inactive_exhibition):
    """Inactive exhibitions are hidden from visitors."""
    response = await client.get(f"/api/exhibitions/{inactive_exhibition.id}")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_get_unknown_exhibition(client: AsyncClient):
    response = await client.get("/api/exhibitions/99999")
    assert response.status_code == 404
    assert response.json()["detail"] == "Exhibition not found"
