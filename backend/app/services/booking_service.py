"""
Booking allocator: the only code that creates, moves, cancels or deletes
bookings.

CONCURRENCY STRATEGY: Per-slot lock row
=======================================

Problem:
  Capacity is a COUNT over bookings, not a column we can decrement.
  Two visitors request the last place in a slot at the same time.
  Both count `capacity - 1` active bookings, both insert.
  Result: Overbooking.

Solution:
  Every create/reschedule transaction first writes the slot's row in
  `slot_locks`, keyed by (exhibition_id, date, time):

  1. INSERT INTO slot_locks ... ON CONFLICT DO NOTHING   (row exists)
  2. UPDATE slot_locks SET version = version + 1 WHERE <slot key>
  3. SELECT COUNT(*) of non-cancelled bookings in the slot
  4. INSERT / UPDATE the booking, COMMIT

  Step 2 holds the row lock (PostgreSQL) or the database write lock (SQLite)
  until commit, so a second writer on the same slot blocks there and runs its
  count only after the first one committed. Writers on different slots do not
  contend on PostgreSQL.

  Store-level conflicts (deadlock, serialization failure, busy database)
  roll the whole transaction back and are retried up to MAX_RETRY_ATTEMPTS
  before surfacing as 409.

Alternatives considered:
  - SERIALIZABLE isolation: correct, but every conflict becomes a retry and
    SQLite cannot express it per transaction.
  - Denormalized per-slot counter with CHECK constraint: operators may set any
    status (including un-cancelling), which would need counter repair on every
    path.
"""

import time as perf
from datetime import date, time
from typing import Awaitable, Callable, Optional, TypeVar

from fastapi import HTTPException, status
from sqlalchemy import func, select, update
from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.calendar import format_slot
from app.core.logging import get_logger
from app.core.metrics import booking_latency, record_booking_attempt, record_transition, slot_lock_retries
from app.db.dialect import upsert_insert
from app.models.booking import Booking, BookingAudit, BookingStatus, OWNER_FINAL_STATUSES, SlotLock
from app.models.exhibition import Exhibition
from app.models.user import User
from app.schemas.admin import RescheduleRequest
from app.schemas.booking import BookingCreate, BookingResponse
from app.schemas.user import TelegramUser
from app.services.availability_service import active_bookings_filter
from app.services.exhibition_service import get_exhibition
from app.services.interfaces.notifier import BookingDetails
from app.services.notification_service import NotificationDispatcher
from app.services.user_service import upsert_user

logger = get_logger(__name__)

MAX_RETRY_ATTEMPTS = 3

# deadlock_detected, serialization_failure, lock_not_available
RETRYABLE_SQLSTATES = {"40P01", "40001", "55P03"}

# SQLite reports lock contention only through the message
RETRYABLE_SQLITE_MESSAGES = ("database is locked", "database is busy")

T = TypeVar("T")


def _is_retryable(exc: DBAPIError) -> bool:
    """Lock and serialization conflicts only; any other store failure is a 500."""
    orig = exc.orig
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if code in RETRYABLE_SQLSTATES:
        return True
    if isinstance(exc, OperationalError) and code is None:
        message = str(orig).lower()
        return any(marker in message for marker in RETRYABLE_SQLITE_MESSAGES)
    return False


async def _in_slot_transaction(
    db: AsyncSession,
    operation: Callable[[], Awaitable[T]],
    action: str,
) -> T:
    """
    Run `operation` and commit, rolling back on any failure.
    Store-level conflicts are retried; HTTP errors raised by the operation
    (404, 409 slot full, ...) are final.
    """
    for attempt in range(1, MAX_RETRY_ATTEMPTS + 1):
        try:
            result = await operation()
            await db.commit()
            return result
        except DBAPIError as e:
            await db.rollback()
            if not _is_retryable(e):
                raise
            slot_lock_retries.inc()
            logger.info("slot_transaction_retry", action=action, attempt=attempt, error=str(e.orig))
            if attempt == MAX_RETRY_ATTEMPTS:
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail="Booking failed due to high demand. Please try again.",
                )
        except Exception:
            await db.rollback()
            raise

    # Unreachable: the last attempt either returns or raises
    raise HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Booking failed unexpectedly",
    )


async def lock_slot(db: AsyncSession, exhibition_id: int, slot_date: date, slot_time: time) -> None:
    """Take the slot's write lock for the rest of the transaction."""
    key = {"exhibition_id": exhibition_id, "slot_date": slot_date, "slot_time": slot_time}
    await db.execute(
        upsert_insert(db, SlotLock)
        .values(version=0, **key)
        .on_conflict_do_nothing(index_elements=["exhibition_id", "slot_date", "slot_time"])
    )
    await db.execute(
        update(SlotLock)
        .where(
            SlotLock.exhibition_id == exhibition_id,
            SlotLock.slot_date == slot_date,
            SlotLock.slot_time == slot_time,
        )
        .values(version=SlotLock.version + 1)
        .execution_options(synchronize_session=False)
    )


async def count_active(
    db: AsyncSession,
    exhibition_id: int,
    slot_date: date,
    slot_time: time,
    exclude_booking_id: Optional[int] = None,
) -> int:
    query = select(func.count(Booking.id)).where(
        *active_bookings_filter(exhibition_id, slot_date, slot_time)
    )
    if exclude_booking_id is not None:
        query = query.where(Booking.id != exclude_booking_id)
    return (await db.execute(query)).scalar_one()


def _ensure_operating(exhibition: Exhibition, booking_date: date) -> None:
    if not exhibition.operates_on(booking_date):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Exhibition does not operate on the selected day",
        )


async def create_booking(
    db: AsyncSession,
    dispatcher: NotificationDispatcher,
    tg_user: TelegramUser,
    data: BookingCreate,
) -> BookingResponse:
    """
    Book one place in an exhibition slot.
    The visitor's confirmation message is queued only after commit.
    """
    started = perf.perf_counter()

    async def allocate() -> tuple[Booking, Exhibition]:
        user_id = await upsert_user(db, tg_user, phone=data.phone)
        exhibition = await get_exhibition(db, data.exhibition_id)
        _ensure_operating(exhibition, data.booking_date)

        await lock_slot(db, exhibition.id, data.booking_date, data.booking_time)
        booked = await count_active(db, exhibition.id, data.booking_date, data.booking_time)
        if booked >= exhibition.capacity:
            logger.warning(
                "booking_slot_full",
                exhibition_id=exhibition.id,
                date=data.booking_date.isoformat(),
                time=data.booking_time.isoformat(),
                booked=booked,
                capacity=exhibition.capacity,
            )
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="This time slot is already full. Please choose another time.",
            )

        booking = Booking(
            user_id=user_id,
            exhibition_id=exhibition.id,
            booking_date=data.booking_date,
            booking_time=data.booking_time,
            phone=data.phone,
            status=BookingStatus.CONFIRMED.value,
        )
        db.add(booking)
        await db.flush()
        await db.refresh(booking)
        return booking, exhibition

    try:
        booking, exhibition = await _in_slot_transaction(db, allocate, action="create")
    except HTTPException as e:
        record_booking_attempt(_outcome(e.status_code))
        raise
    except Exception:
        record_booking_attempt("error")
        logger.exception("booking_create_failed", telegram_id=tg_user.id)
        raise
    finally:
        booking_latency.observe(perf.perf_counter() - started)

    record_booking_attempt("success")
    logger.info(
        "booking_created",
        booking_id=booking.id,
        telegram_id=tg_user.id,
        exhibition_id=exhibition.id,
        date=booking.booking_date.isoformat(),
        time=booking.booking_time.isoformat(),
    )

    dispatcher.dispatch_confirmation(
        tg_user.id,
        BookingDetails(
            exhibition_name=exhibition.name,
            booking_date=booking.booking_date,
            booking_time=booking.booking_time,
        ),
    )

    return BookingResponse(
        id=booking.id,
        exhibition_id=exhibition.id,
        exhibition_name=exhibition.name,
        booking_date=booking.booking_date,
        booking_time=booking.booking_time,
        phone=booking.phone,
        status=booking.status,
        created_at=booking.created_at,
    )


def _outcome(status_code: int) -> str:
    return {
        status.HTTP_400_BAD_REQUEST: "invalid",
        status.HTTP_404_NOT_FOUND: "not_found",
        status.HTTP_409_CONFLICT: "conflict",
    }.get(status_code, "error")


async def _get_booking(db: AsyncSession, booking_id: int) -> Booking:
    result = await db.execute(select(Booking).where(Booking.id == booking_id))
    booking = result.scalar_one_or_none()
    if not booking:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Booking not found",
        )
    return booking


def _audit(db: AsyncSession, booking_id: int, actor_id: int, action: str, old, new) -> None:
    db.add(
        BookingAudit(
            booking_id=booking_id,
            actor_telegram_id=actor_id,
            action=action,
            old_value=None if old is None else str(old),
            new_value=None if new is None else str(new),
        )
    )


async def reschedule_booking(
    db: AsyncSession,
    booking_id: int,
    data: RescheduleRequest,
    actor_id: int,
) -> Booking:
    """
    Move a booking to another slot of the same exhibition (operator only).
    The destination count excludes the booking itself, so moving it within
    its own slot never conflicts with itself.
    """

    async def move() -> Booking:
        booking = await _get_booking(db, booking_id)
        result = await db.execute(select(Exhibition).where(Exhibition.id == booking.exhibition_id))
        exhibition = result.scalar_one()
        _ensure_operating(exhibition, data.booking_date)

        await lock_slot(db, exhibition.id, data.booking_date, data.booking_time)
        booked = await count_active(
            db, exhibition.id, data.booking_date, data.booking_time, exclude_booking_id=booking.id
        )
        if booked >= exhibition.capacity:
            logger.warning(
                "reschedule_slot_full",
                booking_id=booking.id,
                date=data.booking_date.isoformat(),
                time=data.booking_time.isoformat(),
            )
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="New time slot is fully booked",
            )

        old_slot = f"{booking.booking_date.isoformat()} {format_slot(booking.booking_time)}"
        new_slot = f"{data.booking_date.isoformat()} {format_slot(data.booking_time)}"
        if booking.booking_date != data.booking_date:
            # The reminder belongs to the old date
            booking.reminded_at = None
        booking.booking_date = data.booking_date
        booking.booking_time = data.booking_time
        _audit(db, booking.id, actor_id, "reschedule", old_slot, new_slot)

        await db.flush()
        await db.refresh(booking)
        return booking

    booking = await _in_slot_transaction(db, move, action="reschedule")
    record_transition("reschedule")
    logger.info("booking_rescheduled", booking_id=booking.id, actor=actor_id)
    return booking


async def cancel_booking(db: AsyncSession, booking_id: int, telegram_id: int) -> tuple[int, str]:
    """
    Owner cancel. One conditional UPDATE: the booking must belong to the
    caller and must not already be cancelled or completed.
    """
    owner_id = select(User.id).where(User.telegram_id == telegram_id).scalar_subquery()
    result = await db.execute(
        update(Booking)
        .where(
            Booking.id == booking_id,
            Booking.user_id == owner_id,
            Booking.status.not_in(OWNER_FINAL_STATUSES),
        )
        .values(status=BookingStatus.CANCELLED.value, updated_at=func.now())
        .returning(Booking.id, Booking.status)
        .execution_options(synchronize_session=False)
    )
    row = result.first()

    if row is None:
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Booking not found or cannot be cancelled",
        )

    await db.commit()
    record_transition("cancel")
    logger.info("booking_cancelled", booking_id=booking_id, telegram_id=telegram_id)
    return row.id, row.status


async def set_booking_status(
    db: AsyncSession,
    booking_id: int,
    new_status: BookingStatus,
    actor_id: int,
) -> Booking:
    """
    Operator override: any status to any status. Recorded in booking_audit.
    """
    try:
        booking = await _get_booking(db, booking_id)
        old_status = booking.status
        booking.status = new_status.value
        _audit(db, booking.id, actor_id, "status", old_status, new_status.value)
        await db.flush()
        await db.refresh(booking)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    record_transition("status")
    logger.info(
        "booking_status_set",
        booking_id=booking.id,
        old_status=old_status,
        new_status=booking.status,
        actor=actor_id,
    )
    return booking


async def delete_booking(db: AsyncSession, booking_id: int, actor_id: int) -> None:
    """Operator hard delete, for data correction only."""
    try:
        booking = await _get_booking(db, booking_id)
        summary = f"{booking.exhibition_id}:{booking.booking_date.isoformat()}:{booking.status}"
        await db.delete(booking)
        _audit(db, booking_id, actor_id, "delete", summary, None)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    record_transition("delete")
    logger.warning("booking_deleted", booking_id=booking_id, actor=actor_id)
