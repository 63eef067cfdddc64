"""
Pytest fixtures for test database, client, and Telegram authentication.

Each test gets a fresh SQLite database file, so concurrent requests inside a
test go through separate connections exactly like production sessions do.
Init data is signed with a test bot token by the same routine the API uses
to verify it.
"""

import json
import os
import tempfile
import time
from datetime import date, time as slot_time, timedelta
from typing import AsyncGenerator, Optional
from urllib.parse import urlencode

_TEST_DIR = tempfile.mkdtemp(prefix="gallery-booking-tests-")
TEST_BOT_TOKEN = "123456789:TEST-bot-token"

# Settings are cached on first use, so the environment must be set before
# anything imports the application.
os.environ.update({
    "DATABASE_URL": f"sqlite+aiosqlite:///{_TEST_DIR}/app.db",
    "TELEGRAM_BOT_TOKEN": TEST_BOT_TOKEN,
    "ENVIRONMENT": "test",
    "REDIS_ENABLED": "false",
    "REMINDER_ENABLED": "false",
    "BOT_POLLING": "false",
})

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event, select
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker

from app.main import app
from app.core.calendar import day_index, venue_today
from app.core.security import sign_init_data
from app.db.base import Base
from app.db.session import get_db
from app.models import Admin, Booking, Exhibition, User
from app.services.interfaces.notifier import BookingDetails, Notifier
from app.services.notification_service import NotificationDispatcher, get_dispatcher

ADMIN_TELEGRAM_ID = 900001
VISITOR_TELEGRAM_ID = 100001


class RecordingNotifier(Notifier):
    def __init__(self):
        self.confirmations: list[tuple[int, BookingDetails]] = []
        self.reminders: list[tuple[int, BookingDetails]] = []

    async def notify_confirmed(self, telegram_id: int, details: BookingDetails) -> None:
        self.confirmations.append((telegram_id, details))

    async def notify_reminder(self, telegram_id: int, details: BookingDetails) -> None:
        self.reminders.append((telegram_id, details))


class FailingNotifier(Notifier):
    """Fails for the telegram ids in `broken`, records the rest."""

    def __init__(self, broken: Optional[set[int]] = None):
        self.broken = broken
        self.delivered: list[int] = []

    async def _send(self, telegram_id: int) -> None:
        if self.broken is None or telegram_id in self.broken:
            raise RuntimeError("Forbidden: bot was blocked by the user")
        self.delivered.append(telegram_id)

    async def notify_confirmed(self, telegram_id: int, details: BookingDetails) -> None:
        await self._send(telegram_id)

    async def notify_reminder(self, telegram_id: int, details: BookingDetails) -> None:
        await self._send(telegram_id)


def build_init_data(
    telegram_id: int,
    first_name: str = "Test",
    username: Optional[str] = None,
    auth_date: Optional[int] = None,
    bot_token: str = TEST_BOT_TOKEN,
) -> str:
    user = {"id": telegram_id, "first_name": first_name, "language_code": "ru"}
    if username:
        user["username"] = username
    fields = {
        "query_id": f"AAH{telegram_id}",
        "user": json.dumps(user, separators=(",", ":"), ensure_ascii=False),
        "auth_date": str(auth_date if auth_date is not None else int(time.time())),
    }
    fields["hash"] = sign_init_data(fields, bot_token)
    return urlencode(fields)


def future_date(weekday: Optional[int] = None, min_days: int = 2) -> date:
    """A date at least `min_days` ahead, optionally on a given weekday."""
    day = venue_today() + timedelta(days=min_days)
    if weekday is not None:
        day += timedelta(days=(weekday - day_index(day)) % 7)
    return day


@pytest.fixture
def make_headers():
    def _make(telegram_id: int = VISITOR_TELEGRAM_ID, first_name: str = "Test", **kwargs) -> dict:
        return {"X-Telegram-Init-Data": build_init_data(telegram_id, first_name, **kwargs)}
    return _make


@pytest.fixture
def auth_headers(make_headers) -> dict:
    return make_headers(VISITOR_TELEGRAM_ID, "Visitor", username="visitor")


@pytest.fixture
def admin_headers(make_headers, admin) -> dict:
    return make_headers(ADMIN_TELEGRAM_ID, "Operator")


@pytest_asyncio.fixture(scope="function")
async def test_engine(tmp_path):
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path}/test.db",
        echo=False,
        connect_args={"timeout": 5},
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _fast_sqlite(dbapi_connection, connection_record):
        # Throwaway file: skip fsync on every commit
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA synchronous=OFF")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def dispatcher(notifier) -> NotificationDispatcher:
    return NotificationDispatcher(notifier, drain_timeout=5)


@pytest_asyncio.fixture(scope="function")
async def client(session_factory, dispatcher) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client with a session per request and the recording dispatcher."""

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_dispatcher] = lambda: dispatcher

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    await dispatcher.drain()
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def exhibition(db_session: AsyncSession) -> Exhibition:
    """Open every day, two visitors per slot."""
    exhibition = Exhibition(
        name="Путь в темноте",
        description="A walk through a dark gallery",
        duration_minutes=60,
        price=1500,
        capacity=2,
        schedule_days=list(range(7)),
        is_active=True,
    )
    db_session.add(exhibition)
    await db_session.commit()
    await db_session.refresh(exhibition)
    return exhibition


@pytest_asyncio.fixture
async def solo_exhibition(db_session: AsyncSession) -> Exhibition:
    """One visitor per slot, weekends only."""
    exhibition = Exhibition(
        name="Комната одного",
        duration_minutes=45,
        price=2000,
        capacity=1,
        schedule_days=[0, 6],
        is_active=True,
    )
    db_session.add(exhibition)
    await db_session.commit()
    await db_session.refresh(exhibition)
    return exhibition


@pytest_asyncio.fixture
async def inactive_exhibition(db_session: AsyncSession) -> Exhibition:
    exhibition = Exhibition(
        name="Архив",
        duration_minutes=60,
        price=0,
        capacity=5,
        schedule_days=list(range(7)),
        is_active=False,
    )
    db_session.add(exhibition)
    await db_session.commit()
    await db_session.refresh(exhibition)
    return exhibition


@pytest_asyncio.fixture
async def admin(db_session: AsyncSession) -> Admin:
    operator = Admin(telegram_id=ADMIN_TELEGRAM_ID, admin_level=1)
    db_session.add(operator)
    await db_session.commit()
    return operator


@pytest.fixture
def add_booking(db_session: AsyncSession):
    """Insert a booking directly, bypassing the allocator."""

    async def _add(
        exhibition: Exhibition,
        booking_date: date,
        booking_time: slot_time = slot_time(14, 0),
        status: str = "confirmed",
        telegram_id: int = VISITOR_TELEGRAM_ID,
    ) -> Booking:
        result = await db_session.execute(select(User).where(User.telegram_id == telegram_id))
        user = result.scalar_one_or_none()
        if user is None:
            user = User(telegram_id=telegram_id, first_name=f"User {telegram_id}", phone="+79990000000")
            db_session.add(user)
            await db_session.flush()

        booking = Booking(
            user_id=user.id,
            exhibition_id=exhibition.id,
            booking_date=booking_date,
            booking_time=booking_time,
            status=status,
            phone="+79990000000",
        )
        db_session.add(booking)
        await db_session.commit()
        await db_session.refresh(booking)
        return booking

    return _add


@pytest.fixture
def visit_date() -> date:
    return future_date()


@pytest.fixture
def date_on():
    """Callable returning an upcoming date on the given weekday (Sunday = 0)."""
    return future_date


@pytest.fixture
def recording_notifier_cls():
    return RecordingNotifier


@pytest.fixture
def failing_notifier_cls():
    return FailingNotifier
