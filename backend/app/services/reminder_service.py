"""
Daily reminder sweep.

Finds confirmed bookings dated tomorrow that have not been reminded yet and
messages each visitor once.

At-most-once delivery:
  Each booking is *claimed* before sending with

    UPDATE bookings SET reminded_at = now()
    WHERE id = :id AND reminded_at IS NULL AND status = 'confirmed'

  committed on its own. A retried or overlapping sweep finds the row already
  claimed (rowcount 0) and skips it. A send that fails after the claim is
  logged and not retried; a duplicate reminder is worse than a missing one.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.calendar import venue_today
from app.core.logging import get_logger
from app.core.metrics import record_reminder
from app.models.booking import Booking, BookingStatus
from app.models.exhibition import Exhibition
from app.models.user import User
from app.services.interfaces.notifier import BookingDetails, Notifier

logger = get_logger(__name__)


@dataclass
class ReminderSweepResult:
    target_date: date
    sent: int = 0
    failed: int = 0
    skipped: int = 0


async def _due_reminders(db: AsyncSession, target_date: date):
    result = await db.execute(
        select(
            Booking.id,
            Booking.booking_date,
            Booking.booking_time,
            Exhibition.name.label("exhibition_name"),
            User.telegram_id,
        )
        .join(User, Booking.user_id == User.id)
        .join(Exhibition, Booking.exhibition_id == Exhibition.id)
        .where(
            Booking.booking_date == target_date,
            Booking.status == BookingStatus.CONFIRMED.value,
            Booking.reminded_at.is_(None),
        )
        .order_by(Booking.booking_time, Booking.id)
    )
    return result.all()


async def _claim(db: AsyncSession, booking_id: int) -> bool:
    result = await db.execute(
        update(Booking)
        .where(
            Booking.id == booking_id,
            Booking.reminded_at.is_(None),
            Booking.status == BookingStatus.CONFIRMED.value,
        )
        .values(reminded_at=datetime.now(timezone.utc))
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    return result.rowcount == 1


async def send_reminders(
    session_factory: async_sessionmaker[AsyncSession],
    notifier: Notifier,
    today: Optional[date] = None,
) -> ReminderSweepResult:
    today = today or venue_today()
    sweep = ReminderSweepResult(target_date=today + timedelta(days=1))

    async with session_factory() as db:
        due = await _due_reminders(db, sweep.target_date)

    logger.info("reminder_sweep_started", target_date=sweep.target_date.isoformat(), due=len(due))

    for row in due:
        async with session_factory() as db:
            claimed = await _claim(db, row.id)
        if not claimed:
            sweep.skipped += 1
            record_reminder("skipped")
            continue

        details = BookingDetails(
            exhibition_name=row.exhibition_name,
            booking_date=row.booking_date,
            booking_time=row.booking_time,
        )
        try:
            await notifier.notify_reminder(row.telegram_id, details)
        except Exception as e:
            sweep.failed += 1
            record_reminder("failed")
            logger.error("reminder_failed", booking_id=row.id, telegram_id=row.telegram_id, error=str(e))
            continue

        sweep.sent += 1
        record_reminder("sent")
        logger.info("reminder_sent", booking_id=row.id, telegram_id=row.telegram_id)

    logger.info(
        "reminder_sweep_finished",
        target_date=sweep.target_date.isoformat(),
        sent=sweep.sent,
        failed=sweep.failed,
        skipped=sweep.skipped,
    )
    return sweep
