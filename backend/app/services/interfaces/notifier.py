"""
Notification channel interface.
Allows swapping the Telegram bot for a logging or recording implementation.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date, time


@dataclass(frozen=True)
class BookingDetails:
    exhibition_name: str
    booking_date: date
    booking_time: time


class Notifier(ABC):
    """
    Outbound messages to a visitor's messaging identity.

    Implementations:
    - TelegramNotifier: sends through the Telegram Bot API
    - LogNotifier: logs only, for environments without a bot token

    Implementations may raise; callers (the dispatcher, the reminder sweep)
    log failures and never let them reach a booking result.
    """

    @abstractmethod
    async def notify_confirmed(self, telegram_id: int, details: BookingDetails) -> None:
        """Tell the visitor their booking is confirmed."""
        pass

    @abstractmethod
    async def notify_reminder(self, telegram_id: int, details: BookingDetails) -> None:
        """Remind the visitor about tomorrow's visit."""
        pass
