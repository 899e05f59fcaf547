from datetime import UTC, date, datetime
from enum import Enum

from sqlalchemy import Index, text
from sqlmodel import Field, SQLModel


def _utc_naive_now() -> datetime:
    """Naive UTC for TIMESTAMP WITHOUT TIME ZONE columns."""
    return datetime.now(UTC).replace(tzinfo=None)


class BookingStatus(str, Enum):
    BOOKED = "booked"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# booked -> completed | cancelled; both are terminal
ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    BookingStatus.BOOKED.value: frozenset({BookingStatus.COMPLETED.value, BookingStatus.CANCELLED.value}),
    BookingStatus.COMPLETED.value: frozenset(),
    BookingStatus.CANCELLED.value: frozenset(),
}

_ACTIVE_ONLY = text("status = 'booked'")


class BookedSlot(SQLModel, table=True):
    __tablename__ = "booked_slots"
    # at most one active booking per clinic/date/time; cancelled rows free the slot
    __table_args__ = (
        Index(
            "uq_booked_slots_active",
            "clinic_id",
            "slot_date",
            "slot_time",
            unique=True,
            postgresql_where=_ACTIVE_ONLY,
            sqlite_where=_ACTIVE_ONLY,
        ),
    )
    id: int | None = Field(default=None, primary_key=True)
    clinic_id: int = Field(foreign_key="clinics.id", index=True)
    slot_date: date = Field(index=True)  # naive calendar date, no time-of-day
    slot_time: str  # HH:MM
    pet_id: str
    service: str
    status: str = Field(default=BookingStatus.BOOKED.value)
    created_at: datetime = Field(default_factory=_utc_naive_now)
    updated_at: datetime = Field(default_factory=_utc_naive_now)
