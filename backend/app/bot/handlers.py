"""
Telegram bot commands: /start opens the booking Mini App, /mybookings lists
the visitor's recent bookings.
"""

from datetime import date, time

from aiogram import F, Router, html
from aiogram.filters import Command, CommandStart
from aiogram.types import InlineKeyboardButton, InlineKeyboardMarkup, Message, WebAppInfo
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.calendar import format_short_date, format_slot
from app.core.config import Settings
from app.core.logging import get_logger
from app.models.booking import BookingStatus
from app.services.booking_query_service import get_user_booking_summary

logger = get_logger(__name__)
router = Router(name="visitor")

NO_BOOKINGS_TEXT = "У вас пока нет записей. Нажмите /start чтобы записаться на выставку."
ERROR_TEXT = "Произошла ошибка. Попробуйте позже."


def welcome_text(first_name: str, frontend_url: str) -> str:
    text = (
        f"Привет, {html.quote(first_name)}! 👋\n\n"
        "Добро пожаловать в Галерею Путь — пространство психологических выставок в темноте.\n\n"
    )
    if frontend_url.startswith("https://"):
        return text + "Нажмите кнопку ниже, чтобы записаться на выставку:"
    # Telegram only opens Mini Apps over https
    return text + f"🔧 {html.bold('Режим разработки')}\nFrontend: {html.quote(frontend_url)}\n\nДля записи нужен HTTPS URL."


def booking_keyboard(frontend_url: str) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(
        inline_keyboard=[[
            InlineKeyboardButton(text="📅 Записаться на выставку", web_app=WebAppInfo(url=frontend_url)),
        ]]
    )


def format_booking_summary(bookings: list[dict]) -> str:
    lines = [f"📋 {html.bold('Ваши записи:')}", ""]
    for index, booking in enumerate(bookings, start=1):
        booking_date: date = booking["booking_date"]
        booking_time: time = booking["booking_time"]
        mark = "✅" if booking["status"] == BookingStatus.CONFIRMED.value else "✔️"
        lines.append(f"{index}. {mark} {html.bold(html.quote(booking['exhibition_name']))}")
        lines.append(f"   📅 {format_short_date(booking_date)} в {format_slot(booking_time)}")
        lines.append("")
    return "\n".join(lines).rstrip()


@router.message(CommandStart())
async def handle_start(message: Message, settings: Settings) -> None:
    first_name = message.from_user.first_name if message.from_user else "друг"
    url = settings.FRONTEND_URL
    markup = booking_keyboard(url) if url.startswith("https://") else None
    await message.answer(welcome_text(first_name, url), parse_mode="HTML", reply_markup=markup)


@router.message(Command("mybookings"), F.from_user)
async def handle_my_bookings(
    message: Message,
    session_factory: async_sessionmaker[AsyncSession],
) -> None:
    telegram_id = message.from_user.id
    try:
        async with session_factory() as db:
            bookings = await get_user_booking_summary(db, telegram_id)
    except Exception:
        logger.exception("bot_bookings_failed", telegram_id=telegram_id)
        await message.answer(ERROR_TEXT)
        return

    if not bookings:
        await message.answer(NO_BOOKINGS_TEXT)
        return
    await message.answer(format_booking_summary(bookings), parse_mode="HTML")
