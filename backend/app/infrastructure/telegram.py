"""
Telegram Bot API client construction.
Separated from business logic: services only see the Notifier interface.
"""

from typing import Optional

from aiogram import Bot

from app.core.config import Settings
from app.core.logging import get_logger
from app.services.interfaces.log_notifier import LogNotifier
from app.services.interfaces.notifier import Notifier
from app.services.notification_service import TelegramNotifier

logger = get_logger(__name__)


def create_bot(token: str) -> Bot:
    return Bot(token=token)


def build_notifier(settings: Settings) -> tuple[Notifier, Optional[Bot]]:
    """
    Pick the notification channel for this process.
    The caller owns the returned bot and must close its session on shutdown.
    """
    if not settings.TELEGRAM_BOT_TOKEN:
        logger.warning("telegram_disabled", message="TELEGRAM_BOT_TOKEN not set, notifications are logged only")
        return LogNotifier(), None

    bot = create_bot(settings.TELEGRAM_BOT_TOKEN)
    return TelegramNotifier(bot, settings), bot
