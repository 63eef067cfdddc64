"""
Logging notifier - no outbound channel.
"""

from app.core.logging import get_logger
from app.services.interfaces.notifier import BookingDetails, Notifier

logger = get_logger(__name__)


class LogNotifier(Notifier):
    """
    Records notifications in the log instead of sending them.

    Use when:
    - TELEGRAM_BOT_TOKEN is not configured
    - Running locally against a throwaway database
    """

    async def notify_confirmed(self, telegram_id: int, details: BookingDetails) -> None:
        logger.info(
            "notification_skipped",
            kind="confirmation",
            telegram_id=telegram_id,
            exhibition=details.exhibition_name,
            date=details.booking_date.isoformat(),
        )

    async def notify_reminder(self, telegram_id: int, details: BookingDetails) -> None:
        logger.info(
            "notification_skipped",
            kind="reminder",
            telegram_id=telegram_id,
            exhibition=details.exhibition_name,
            date=details.booking_date.isoformat(),
        )
