from collections.abc import Iterable, Iterator, Sequence
from datetime import date

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from vetdirectory.core.config import settings
from vetdirectory.core.errors import InvalidDate, InvalidTime
from vetdirectory.core.wallclock import WallClockError, day_of_week, format_minutes
from vetdirectory.core.wallclock import parse_date as _parse_date
from vetdirectory.core.wallclock import parse_time as _parse_time
from vetdirectory.models.booking import BookedSlot, BookingStatus
from vetdirectory.models.clinic import AvailabilityRule
from vetdirectory.services.clinic_service import get_active_clinic

CLOSED_MESSAGE = "Clinic is closed on this day"


def parse_date(value: str | date | None, strict: bool = False) -> date:
    if value is None or (isinstance(value, str) and not value.strip()):
        raise InvalidDate("Date parameter is required")
    try:
        return _parse_date(value, strict=strict)
    except WallClockError as e:
        raise InvalidDate() from e


def parse_time(value: str | None) -> int:
    """HH:MM -> minutes since midnight."""
    try:
        return _parse_time(value)
    except WallClockError as e:
        raise InvalidTime() from e


def find_rule(rules: Iterable[AvailabilityRule], d: date) -> AvailabilityRule | None:
    """Open rule for the weekday of d, or None when the clinic is closed."""
    dow = day_of_week(d)
    for rule in rules:
        if rule.day_of_week == dow:
            return rule if rule.is_available else None
    return None


def iter_slot_times(start_time: str, end_time: str, step_minutes: int | None = None) -> Iterator[str]:
    """Yield slot start times in the half-open window [start_time, end_time)."""
    step = step_minutes or settings.slot_duration_minutes
    current = parse_time(start_time)
    end = parse_time(end_time)
    while current < end:
        yield format_minutes(current)
        current += step


def slot_times_for_date(
    rules: Iterable[AvailabilityRule], d: date, step_minutes: int | None = None
) -> list[str]:
    rule = find_rule(rules, d)
    if rule is None:
        return []
    return list(iter_slot_times(rule.start_time, rule.end_time, step_minutes))


def booked_times_on(bookings: Iterable[BookedSlot], d: date) -> set[str]:
    return {
        b.slot_time
        for b in bookings
        if b.slot_date == d and b.status == BookingStatus.BOOKED.value
    }


def compute_available_slots(
    rules: Sequence[AvailabilityRule],
    bookings: Iterable[BookedSlot],
    d: date,
    step_minutes: int | None = None,
) -> list[tuple[str, bool]]:
    """Returns [(time, available)] in ascending order; empty when closed on d."""
    times = slot_times_for_date(rules, d, step_minutes)
    if not times:
        return []
    booked = booked_times_on(bookings, d)
    return [(t, t not in booked) for t in times]


async def get_availability(session: AsyncSession, clinic_id: int) -> list[AvailabilityRule]:
    result = await session.execute(
        select(AvailabilityRule)
        .where(AvailabilityRule.clinic_id == clinic_id)
        .order_by(AvailabilityRule.day_of_week)
    )
    return list(result.scalars().all())


async def get_active_bookings_on(session: AsyncSession, clinic_id: int, d: date) -> list[BookedSlot]:
    result = await session.execute(
        select(BookedSlot).where(
            BookedSlot.clinic_id == clinic_id,
            BookedSlot.slot_date == d,
            BookedSlot.status == BookingStatus.BOOKED.value,
        )
    )
    return list(result.scalars().all())


async def get_available_slots_for_date(
    session: AsyncSession, clinic_id: int, d: date
) -> tuple[list[tuple[str, bool]], str | None]:
    """Returns (slots, message). message is set when the clinic is closed on d."""
    await get_active_clinic(session, clinic_id)
    rules = await get_availability(session, clinic_id)
    if find_rule(rules, d) is None:
        return [], CLOSED_MESSAGE
    bookings = await get_active_bookings_on(session, clinic_id, d)
    return compute_available_slots(rules, bookings, d), None
