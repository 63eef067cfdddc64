"""
Runs the bot's long polling inside the API process.
"""

import asyncio
from typing import Optional

from aiogram import Bot, Dispatcher
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.bot.handlers import router
from app.core.config import Settings
from app.core.logging import get_logger

logger = get_logger(__name__)


def create_dispatcher(settings: Settings, session_factory: async_sessionmaker[AsyncSession]) -> Dispatcher:
    dispatcher = Dispatcher()
    dispatcher.include_router(router)
    dispatcher.workflow_data["settings"] = settings
    dispatcher.workflow_data["session_factory"] = session_factory
    return dispatcher


class BotPoller:
    def __init__(self, bot: Bot, dispatcher: Dispatcher):
        self.bot = bot
        self.dispatcher = dispatcher
        self._task: Optional[asyncio.Task] = None

    def start(self) -> None:
        self._task = asyncio.create_task(
            self.dispatcher.start_polling(self.bot, handle_signals=False, close_bot_session=False),
            name="bot-polling",
        )
        logger.info("bot_polling_started")

    async def stop(self) -> None:
        if self._task is None:
            return
        if not self._task.done():
            try:
                await self.dispatcher.stop_polling()
            except RuntimeError:
                # Polling had not acquired its lock yet
                self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        except Exception:
            logger.exception("bot_polling_crashed")
        self._task = None
        logger.info("bot_polling_stopped")
