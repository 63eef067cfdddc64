"""
Tests for per-slot availability.
"""

from datetime import date, time, timedelta

import pytest
from httpx import AsyncClient

from app.core.calendar import TIME_SLOTS, day_index, format_long_date, schedule_text
from app.models.exhibition import Exhibition


@pytest.mark.asyncio
async def test_availability_empty_day(client: AsyncClient, exhibition, visit_date):
    """Every slot of the grid is reported with full capacity."""
    response = await client.get(
        "/api/bookings/availability",
        params={"exhibition_id": exhibition.id, "date": visit_date.isoformat()},
    )
    assert response.status_code == 200
    data = response.json()

    assert data["exhibition_id"] == exhibition.id
    assert data["date"] == visit_date.isoformat()
    assert data["message"] is None
    assert [s["time"] for s in data["slots"]] == [t.strftime("%H:%M") for t in TIME_SLOTS]
    assert data["slots"][0]["time"] == "12:00"
    assert data["slots"][-1]["time"] == "20:00"
    for slot in data["slots"]:
        assert slot["capacity"] == 2
        assert slot["booked"] == 0
        assert slot["available"] == 2
        assert slot["is_available"] is True


@pytest.mark.asyncio
async def test_availability_counts_active_bookings(client: AsyncClient, exhibition, visit_date, add_booking):
    """Confirmed, completed and no-show bookings hold capacity; cancelled ones do not."""
    await add_booking(exhibition, visit_date, time(14, 0), telegram_id=1)
    await add_booking(exhibition, visit_date, time(14, 0), status="no_show", telegram_id=2)
    await add_booking(exhibition, visit_date, time(15, 0), status="cancelled", telegram_id=3)
    await add_booking(exhibition, visit_date, time(16, 0), status="completed", telegram_id=4)

    response = await client.get(
        "/api/bookings/availability",
        params={"exhibition_id": exhibition.id, "date": visit_date.isoformat()},
    )
    slots = {s["time"]: s for s in response.json()["slots"]}

    assert slots["14:00"]["booked"] == 2
    assert slots["14:00"]["available"] == 0
    assert slots["14:00"]["is_available"] is False
    assert slots["15:00"]["booked"] == 0
    assert slots["15:00"]["is_available"] is True
    assert slots["16:00"]["booked"] == 1
    assert slots["16:00"]["available"] == 1


@pytest.mark.asyncio
async def test_availability_ignores_other_days(client: AsyncClient, exhibition, visit_date, add_booking):
    await add_booking(exhibition, visit_date + timedelta(days=1), time(12, 0))

    response = await client.get(
        "/api/bookings/availability",
        params={"exhibition_id": exhibition.id, "date": visit_date.isoformat()},
    )
    assert all(s["booked"] == 0 for s in response.json()["slots"])


@pytest.mark.asyncio
async def test_availability_non_operating_day(client: AsyncClient, solo_exhibition, date_on):
    """A weekday outside the schedule returns no slots and a message."""
    tuesday = date_on(2)
    response = await client.get(
        "/api/bookings/availability",
        params={"exhibition_id": solo_exhibition.id, "date": tuesday.isoformat()},
    )
    assert response.status_code == 200
    data = response.json()
    assert data["slots"] == []
    assert data["message"] == "Выставка не работает в этот день"


@pytest.mark.asyncio
async def test_availability_operating_day(client: AsyncClient, solo_exhibition, date_on):
    saturday = date_on(6)
    response = await client.get(
        "/api/bookings/availability",
        params={"exhibition_id": solo_exhibition.id, "date": saturday.isoformat()},
    )
    data = response.json()
    assert len(data["slots"]) == len(TIME_SLOTS)
    assert data["slots"][0]["capacity"] == 1


@pytest.mark.asyncio
async def test_availability_unknown_exhibition(client: AsyncClient, visit_date):
    response = await client.get(
        "/api/bookings/availability",
        params={"exhibition_id": 424242, "date": visit_date.isoformat()},
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_availability_malformed_date(client: AsyncClient, exhibition):
    """Malformed query parameters are a 400, not FastAPI's default 422."""
    response = await client.get(
        "/api/bookings/availability",
        params={"exhibition_id": exhibition.id, "date": "15-06-2026"},
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_weekday_mask_uses_sunday_zero(client: AsyncClient, db_session, date_on):
    """schedule_days [1..5] means Monday to Friday."""
    weekdays_only = Exhibition(
        name="Будни",
        duration_minutes=60,
        price=1000,
        capacity=3,
        schedule_days=[1, 2, 3, 4, 5],
    )
    db_session.add(weekdays_only)
    await db_session.commit()

    monday = await client.get(
        "/api/bookings/availability",
        params={"exhibition_id": weekdays_only.id, "date": date_on(1).isoformat()},
    )
    saturday = await client.get(
        "/api/bookings/availability",
        params={"exhibition_id": weekdays_only.id, "date": date_on(6).isoformat()},
    )
    sunday = await client.get(
        "/api/bookings/availability",
        params={"exhibition_id": weekdays_only.id, "date": date_on(0).isoformat()},
    )

    assert len(monday.json()["slots"]) == len(TIME_SLOTS)
    assert saturday.json()["slots"] == []
    assert sunday.json()["slots"] == []


def test_calendar_weekday_numbering():
    assert day_index(date(2030, 6, 9)) == 0
    assert day_index(date(2030, 6, 10)) == 1
    assert day_index(date(2030, 6, 15)) == 6
    assert schedule_text([1, 2, 3, 4, 5]) == "понедельник, вторник, среда, четверг, пятница"
    assert format_long_date(date(2030, 6, 9)) == "воскресенье, 9 июня"
