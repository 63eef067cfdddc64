"""
Tests for service endpoints and request middleware.
"""

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    response = await client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["environment"] == "test"
    assert data["cache"] == {"status": "disabled"}


@pytest.mark.asyncio
async def test_request_id_is_echoed(client: AsyncClient):
    response = await client.get("/", headers={"X-Request-ID": "abc123"})
    assert response.status_code == 200
    assert response.headers["X-Request-ID"] == "abc123"
    assert response.headers["X-Response-Time"].endswith("ms")


@pytest.mark.asyncio
async def test_request_id_is_generated(client: AsyncClient):
    response = await client.get("/")
    assert len(response.headers["X-Request-ID"]) == 8


@pytest.mark.asyncio
async def test_metrics_after_booking(client: AsyncClient, auth_headers, exhibition, visit_date):
    await client.post(
        "/api/bookings",
        json={
            "exhibition_id": exhibition.id,
            "booking_date": visit_date.isoformat(),
            "booking_time": "12:00",
            "phone": "+79991234567",
        },
        headers=auth_headers,
    )
    response = await client.get("/metrics")
    assert response.status_code == 200
    assert 'booking_attempts_total{status="success"}' in response.text
    assert "http_request_latency_seconds" in response.text
