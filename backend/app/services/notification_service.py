"""
Notification dispatch.

NotificationDispatcher
======================

Booking confirmation must never delay or fail the HTTP response:

  1. The allocator commits the booking
  2. It hands the confirmation to `dispatch_confirmation`, which starts an
     asyncio task and returns immediately
  3. The task logs its own outcome; exceptions stop there

Tasks are tracked in a set so they are not garbage collected mid-flight and
so shutdown can `drain()` them instead of abandoning queued messages.

The dispatcher and its notifier are created once in the application lifespan
and reach request handlers through `get_dispatcher`.
"""

import asyncio
from typing import Awaitable

from aiogram import Bot, html
from fastapi import Request

from app.core.calendar import format_long_date, format_slot
from app.core.config import Settings
from app.core.logging import get_logger
from app.core.metrics import record_notification
from app.services.interfaces.notifier import BookingDetails, Notifier

logger = get_logger(__name__)


class TelegramNotifier(Notifier):
    """Sends booking messages as HTML through the Bot API."""

    def __init__(self, bot: Bot, settings: Settings):
        self.bot = bot
        self.address = settings.VENUE_ADDRESS
        self.phone = settings.VENUE_PHONE

    def confirmation_text(self, details: BookingDetails) -> str:
        return (
            f"✅ {html.bold('Бронирование подтверждено!')}\n\n"
            f"🎭 {html.bold('Выставка:')} {html.quote(details.exhibition_name)}\n"
            f"📅 {html.bold('Дата:')} {format_long_date(details.booking_date)}\n"
            f"⏰ {html.bold('Время:')} {format_slot(details.booking_time)}\n\n"
            f"📍 {html.bold('Адрес:')} {html.quote(self.address)}\n"
            f"📞 {html.bold('Контакт:')} {html.quote(self.phone)}\n\n"
            "Ждём вас! Напоминание придёт за день до визита."
        )

    def reminder_text(self, details: BookingDetails) -> str:
        return (
            f"⏰ {html.bold('Напоминание о визите!')}\n\n"
            f"Завтра в {html.bold(format_slot(details.booking_time))} у вас запись на выставку "
            f"{html.bold('«' + html.quote(details.exhibition_name) + '»')}.\n\n"
            f"📍 {html.bold('Адрес:')} {html.quote(self.address)}\n\n"
            f"Если планы изменились, позвоните: {html.quote(self.phone)}"
        )

    async def notify_confirmed(self, telegram_id: int, details: BookingDetails) -> None:
        await self.bot.send_message(telegram_id, self.confirmation_text(details), parse_mode="HTML")

    async def notify_reminder(self, telegram_id: int, details: BookingDetails) -> None:
        await self.bot.send_message(telegram_id, self.reminder_text(details), parse_mode="HTML")


class NotificationDispatcher:
    """Runs notifications as tracked, best-effort background tasks."""

    def __init__(self, notifier: Notifier, drain_timeout: float = 10.0):
        self.notifier = notifier
        self.drain_timeout = drain_timeout
        self._tasks: set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def dispatch_confirmation(self, telegram_id: int, details: BookingDetails) -> asyncio.Task:
        return self._spawn(
            "confirmation",
            telegram_id,
            self.notifier.notify_confirmed(telegram_id, details),
        )

    def _spawn(self, kind: str, telegram_id: int, send: Awaitable[None]) -> asyncio.Task:
        task = asyncio.create_task(self._run(kind, telegram_id, send))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run(self, kind: str, telegram_id: int, send: Awaitable[None]) -> None:
        try:
            await send
        except asyncio.CancelledError:
            logger.warning("notification_cancelled", kind=kind, telegram_id=telegram_id)
            raise
        except Exception as e:
            record_notification(kind, sent=False)
            logger.error("notification_failed", kind=kind, telegram_id=telegram_id, error=str(e))
        else:
            record_notification(kind, sent=True)
            logger.info("notification_sent", kind=kind, telegram_id=telegram_id)

    async def drain(self) -> None:
        """Wait for in-flight notifications; cancel what outlives the timeout."""
        if not self._tasks:
            return
        tasks = set(self._tasks)
        logger.info("notifications_draining", pending=len(tasks))
        _, pending = await asyncio.wait(tasks, timeout=self.drain_timeout)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
            logger.warning("notifications_abandoned", count=len(pending))


def get_dispatcher(request: Request) -> NotificationDispatcher:
    """Dependency: the process-wide dispatcher created at startup."""
    return request.app.state.dispatcher
