import asyncio
import logging
import weakref
from datetime import UTC, date, datetime

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from vetdirectory.api.schemas.appointment import BookedSlotPublic, BookingConfirmation
from vetdirectory.core.errors import (
    BookingNotFound,
    InvalidStatusTransition,
    MissingField,
    PastDate,
    PersistenceFailure,
    SlotAlreadyBooked,
    SlotNotOffered,
)
from vetdirectory.models.booking import ALLOWED_TRANSITIONS, BookedSlot, BookingStatus
from vetdirectory.models.clinic import Clinic
from vetdirectory.services.clinic_service import get_active_clinic, get_clinic
from vetdirectory.services.slot_service import (
    CLOSED_MESSAGE,
    find_rule,
    get_availability,
    parse_date,
    parse_time,
    slot_times_for_date,
)

logger = logging.getLogger(__name__)

# One lock per clinic, dropped once no booking holds a reference to it.
_clinic_locks: "weakref.WeakValueDictionary[int, asyncio.Lock]" = weakref.WeakValueDictionary()


def clinic_lock(clinic_id: int) -> asyncio.Lock:
    lock = _clinic_locks.get(clinic_id)
    if lock is None:
        lock = asyncio.Lock()
        _clinic_locks[clinic_id] = lock
    return lock


def _utc_naive_now() -> datetime:
    """Naive UTC for comparison with TIMESTAMP WITHOUT TIME ZONE."""
    return datetime.now(UTC).replace(tzinfo=None)


def booking_to_public(b: BookedSlot) -> BookedSlotPublic:
    return BookedSlotPublic(
        id=b.id,
        clinic_id=b.clinic_id,
        date=b.slot_date,
        time=b.slot_time,
        pet_id=b.pet_id,
        service=b.service,
        status=b.status,
        created_at=b.created_at,
        updated_at=b.updated_at,
    )


def booking_confirmation(clinic: Clinic, b: BookedSlot) -> BookingConfirmation:
    return BookingConfirmation(
        clinic=clinic.name,
        date=b.slot_date.isoformat(),
        time=b.slot_time,
        service=b.service,
        pet_id=b.pet_id,
    )


async def is_slot_booked(session: AsyncSession, clinic_id: int, d: date, time: str) -> bool:
    result = await session.execute(
        select(BookedSlot.id).where(
            BookedSlot.clinic_id == clinic_id,
            BookedSlot.slot_date == d,
            BookedSlot.slot_time == time,
            BookedSlot.status == BookingStatus.BOOKED.value,
        )
    )
    return result.first() is not None


async def book_appointment(
    session: AsyncSession,
    clinic_id: int,
    date_str: str | None,
    time_str: str | None,
    pet_id: str | None,
    service: str | None,
    not_before: date | None = None,
) -> tuple[BookedSlot, Clinic]:
    """Book one slot. Raises SlotAlreadyBooked if an active booking holds it.

    The conflict check, insert and commit run under the clinic's lock, and the
    partial unique index on booked_slots rejects anything that slips past it
    from another process. The session is committed here, not by the caller.
    """
    fields = (("date", date_str), ("time", time_str), ("petId", pet_id), ("service", service))
    missing = [name for name, value in fields if value is None or not str(value).strip()]
    if missing:
        raise MissingField(missing)
    d = parse_date(date_str, strict=True)
    time_str = time_str.strip()
    parse_time(time_str)
    if not_before is not None and d < not_before:
        raise PastDate()

    clinic = await get_active_clinic(session, clinic_id)
    rules = await get_availability(session, clinic_id)
    if find_rule(rules, d) is None:
        raise SlotNotOffered(CLOSED_MESSAGE)
    if time_str not in slot_times_for_date(rules, d):
        raise SlotNotOffered()

    async with clinic_lock(clinic_id):
        if await is_slot_booked(session, clinic_id, d, time_str):
            logger.info("Booking conflict clinic=%s date=%s time=%s", clinic_id, d, time_str)
            raise SlotAlreadyBooked()
        booking = BookedSlot(
            clinic_id=clinic_id,
            slot_date=d,
            slot_time=time_str,
            pet_id=pet_id.strip(),
            service=service.strip(),
            status=BookingStatus.BOOKED.value,
        )
        session.add(booking)
        try:
            await session.commit()
        except IntegrityError as e:
            await session.rollback()
            logger.info("Booking conflict (constraint) clinic=%s date=%s time=%s", clinic_id, d, time_str)
            raise SlotAlreadyBooked() from e
        except SQLAlchemyError as e:
            await session.rollback()
            logger.exception("Booking write failed clinic=%s date=%s time=%s", clinic_id, d, time_str)
            raise PersistenceFailure() from e
    logger.info("Booked clinic=%s date=%s time=%s pet=%s", clinic_id, d, time_str, booking.pet_id)
    return booking, clinic


async def list_bookings(
    session: AsyncSession,
    clinic_id: int,
    d: date | None = None,
    status: BookingStatus | None = None,
) -> list[BookedSlot]:
    await get_clinic(session, clinic_id)
    q = (
        select(BookedSlot)
        .where(BookedSlot.clinic_id == clinic_id)
        .order_by(BookedSlot.slot_date, BookedSlot.slot_time, BookedSlot.id)
    )
    if d is not None:
        q = q.where(BookedSlot.slot_date == d)
    if status is not None:
        q = q.where(BookedSlot.status == status.value)
    result = await session.execute(q)
    return list(result.scalars().all())


async def update_booking_status(
    session: AsyncSession, clinic_id: int, booking_id: int, status: BookingStatus
) -> BookedSlot:
    """booked -> completed | cancelled. A cancelled booking frees its slot."""
    await get_clinic(session, clinic_id)
    result = await session.execute(
        select(BookedSlot).where(BookedSlot.id == booking_id, BookedSlot.clinic_id == clinic_id)
    )
    booking = result.scalar_one_or_none()
    if not booking:
        raise BookingNotFound()
    if status.value not in ALLOWED_TRANSITIONS[booking.status]:
        raise InvalidStatusTransition(booking.status, status.value)
    booking.status = status.value
    booking.updated_at = _utc_naive_now()
    session.add(booking)
    await session.flush()
    logger.info("Booking %s status -> %s (clinic=%s)", booking.id, booking.status, clinic_id)
    return booking
