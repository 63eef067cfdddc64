"""
Tests for the next-day reminder sweep and its scheduler.
"""

import asyncio
from datetime import datetime, time, timedelta
from zoneinfo import ZoneInfo

import pytest
from sqlalchemy import select

from app.models.booking import Booking
from app.services.reminder_service import send_reminders
from app.tasks.reminders import seconds_until


@pytest.mark.asyncio
async def test_sweep_reminds_tomorrows_confirmed_bookings(
    exhibition, visit_date, add_booking, session_factory, notifier
):
    today = visit_date - timedelta(days=1)
    due = await add_booking(exhibition, visit_date, time(15, 0), telegram_id=1)
    await add_booking(exhibition, visit_date, time(12, 0), status="cancelled", telegram_id=2)
    await add_booking(exhibition, visit_date, time(13, 0), status="completed", telegram_id=3)
    await add_booking(exhibition, visit_date + timedelta(days=1), time(12, 0), telegram_id=4)

    result = await send_reminders(session_factory, notifier, today=today)

    assert result.target_date == visit_date
    assert result.sent == 1
    assert result.failed == 0
    assert [tg_id for tg_id, _ in notifier.reminders] == [1]
    assert notifier.reminders[0][1].booking_time == time(15, 0)
    assert notifier.reminders[0][1].exhibition_name == exhibition.name

    async with session_factory() as db:
        stored = await db.get(Booking, due.id)
    assert stored.reminded_at is not None


@pytest.mark.asyncio
async def test_sweep_runs_at_most_once_per_booking(exhibition, visit_date, add_booking, session_factory, notifier):
    """A second sweep for the same day sends nothing."""
    today = visit_date - timedelta(days=1)
    await add_booking(exhibition, visit_date, time(14, 0), telegram_id=1)
    await add_booking(exhibition, visit_date, time(14, 0), telegram_id=2)

    first = await send_reminders(session_factory, notifier, today=today)
    second = await send_reminders(session_factory, notifier, today=today)

    assert first.sent == 2
    assert second.sent == 0
    assert len(notifier.reminders) == 2


@pytest.mark.asyncio
async def test_sweep_continues_after_failed_send(
    exhibition, visit_date, add_booking, session_factory, failing_notifier_cls
):
    """A failed send is counted and not retried; the rest still go out."""
    today = visit_date - timedelta(days=1)
    await add_booking(exhibition, visit_date, time(12, 0), telegram_id=1)
    await add_booking(exhibition, visit_date, time(13, 0), telegram_id=2)
    await add_booking(exhibition, visit_date, time(14, 0), telegram_id=3)
    notifier = failing_notifier_cls(broken={2})

    result = await send_reminders(session_factory, notifier, today=today)
    assert result.sent == 2
    assert result.failed == 1
    assert notifier.delivered == [1, 3]

    retry = await send_reminders(session_factory, notifier, today=today)
    assert retry.sent == 0
    assert retry.failed == 0

    async with session_factory() as db:
        reminded = (
            await db.execute(select(Booking.reminded_at).where(Booking.booking_date == visit_date))
        ).scalars().all()
    assert all(value is not None for value in reminded)


@pytest.mark.asyncio
async def test_sweep_with_nothing_due(session_factory, notifier, visit_date):
    result = await send_reminders(session_factory, notifier, today=visit_date)
    assert result.sent == 0
    assert notifier.reminders == []


class TestSecondsUntil:
    tz = ZoneInfo("Europe/Moscow")

    def test_later_today(self):
        now = datetime(2026, 6, 10, 8, 30, tzinfo=self.tz)
        assert seconds_until(now, 10) == 90 * 60

    def test_already_passed(self):
        now = datetime(2026, 6, 10, 10, 0, tzinfo=self.tz)
        assert seconds_until(now, 10) == 24 * 3600

    def test_after_hour(self):
        now = datetime(2026, 6, 10, 23, 0, tzinfo=self.tz)
        assert seconds_until(now, 10) == 11 * 3600


@pytest.mark.asyncio
async def test_overlapping_sweeps_remind_once(exhibition, visit_date, add_booking, session_factory, notifier):
    """Two sweeps running at the same time still send one reminder per booking."""
    today = visit_date - timedelta(days=1)
    for telegram_id in range(1, 5):
        await add_booking(exhibition, visit_date, time(12 + telegram_id, 0), telegram_id=telegram_id)

    first, second = await asyncio.gather(
        send_reminders(session_factory, notifier, today=today),
        send_reminders(session_factory, notifier, today=today),
    )

    assert first.sent + second.sent == 4
    assert first.failed == second.failed == 0
    assert sorted(tg_id for tg_id, _ in notifier.reminders) == [1, 2, 3, 4]
