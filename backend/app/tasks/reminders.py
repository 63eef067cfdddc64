"""
In-process daily trigger for the reminder sweep.

Sleeps until REMINDER_HOUR in the venue timezone, runs one sweep, repeats.
Deployments that prefer an external cron can leave REMINDER_ENABLED off and
run `python -m app.tasks.reminders` instead; the sweep is safe to overlap.
"""

import asyncio
from datetime import datetime, time, timedelta
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.calendar import venue_now
from app.core.config import get_settings
from app.core.logging import get_logger, setup_logging
from app.db.session import AsyncSessionLocal, engine
from app.infrastructure.telegram import build_notifier
from app.services.interfaces.notifier import Notifier
from app.services.reminder_service import send_reminders

logger = get_logger(__name__)


def seconds_until(now: datetime, hour: int) -> float:
    """Seconds from `now` (tz-aware) to the next occurrence of `hour`:00."""
    target = datetime.combine(now.date(), time(hour, 0), tzinfo=now.tzinfo)
    if target <= now:
        target += timedelta(days=1)
    return (target - now).total_seconds()


class ReminderScheduler:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        notifier: Notifier,
        hour: int,
    ):
        self.session_factory = session_factory
        self.notifier = notifier
        self.hour = hour
        self._task: Optional[asyncio.Task] = None

    def start(self) -> None:
        if self._task is None:
            self._task = asyncio.create_task(self._loop(), name="reminder-scheduler")
            logger.info("reminder_scheduler_started", hour=self.hour)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("reminder_scheduler_stopped")

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(seconds_until(venue_now(), self.hour))
            try:
                await send_reminders(self.session_factory, self.notifier)
            except Exception:
                logger.exception("reminder_sweep_crashed")


async def main() -> None:
    """One-shot sweep for external schedulers."""
    settings = get_settings()
    setup_logging(settings)
    notifier, bot = build_notifier(settings)
    try:
        await send_reminders(AsyncSessionLocal, notifier)
    finally:
        if bot is not None:
            await bot.session.close()
        await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
