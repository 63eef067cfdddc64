"""
Venue calendar: the fixed daily slot grid, weekday names and "today" in the
venue's timezone.
"""

from datetime import date, datetime, time
from zoneinfo import ZoneInfo

from app.core.config import get_settings

# Hourly slots from midday to evening
TIME_SLOTS: tuple[time, ...] = tuple(time(hour, 0) for hour in range(12, 21))

# Sunday = 0, the numbering the Mini App stores in schedule_days
DAY_NAMES = {
    0: "воскресенье",
    1: "понедельник",
    2: "вторник",
    3: "среда",
    4: "четверг",
    5: "пятница",
    6: "суббота",
}

MONTH_NAMES_GENITIVE = {
    1: "января",
    2: "февраля",
    3: "марта",
    4: "апреля",
    5: "мая",
    6: "июня",
    7: "июля",
    8: "августа",
    9: "сентября",
    10: "октября",
    11: "ноября",
    12: "декабря",
}


def venue_tz() -> ZoneInfo:
    return ZoneInfo(get_settings().TIMEZONE)


def venue_now() -> datetime:
    return datetime.now(venue_tz())


def venue_today() -> date:
    return venue_now().date()


def day_index(value: date) -> int:
    """Weekday number with Sunday = 0 ... Saturday = 6."""
    return value.isoweekday() % 7


def is_slot(value: time) -> bool:
    return value in TIME_SLOTS


def format_slot(value: time) -> str:
    return value.strftime("%H:%M")


def schedule_text(schedule_days: list[int]) -> str:
    days = sorted(set(schedule_days))
    if len(days) == 7:
        return "ежедневно"
    return ", ".join(DAY_NAMES[d] for d in days)


def format_long_date(value: date) -> str:
    """'понедельник, 10 июня' style date used in notifications."""
    return f"{DAY_NAMES[day_index(value)]}, {value.day} {MONTH_NAMES_GENITIVE[value.month]}"


def format_short_date(value: date) -> str:
    return value.strftime("%d.%m.%Y")
