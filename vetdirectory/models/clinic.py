from datetime import UTC, datetime
from enum import Enum

from sqlalchemy import JSON, Column, UniqueConstraint
from sqlmodel import Field, SQLModel


def _utc_naive_now() -> datetime:
    """Naive UTC for TIMESTAMP WITHOUT TIME ZONE columns."""
    return datetime.now(UTC).replace(tzinfo=None)


class ClinicType(str, Enum):
    GOVERNMENT = "government"
    PRIVATE = "private"


class VerificationStatus(str, Enum):
    PENDING = "pending"
    VERIFIED = "verified"


LOCATIONS = (
    "colombo",
    "kandy",
    "galle",
    "gampaha",
    "kalutara",
    "matara",
    "kurunegala",
    "kegalle",
    "ratnapura",
    "jaffna",
    "batticaloa",
    "anuradhapura",
    "badulla",
)


class Clinic(SQLModel, table=True):
    __tablename__ = "clinics"
    id: int | None = Field(default=None, primary_key=True)
    name: str = Field(index=True)
    type: str = Field(index=True)
    location: str = Field(index=True)
    address: str
    phone: str
    email: str = Field(unique=True, index=True)
    latitude: float = 0.0
    longitude: float = 0.0
    weekday_open: str | None = "09:00"
    weekday_close: str | None = "17:00"
    weekend_open: str | None = "10:00"
    weekend_close: str | None = "16:00"
    emergency: bool = Field(default=False, index=True)
    services: list[dict] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    service_names: str = ""  # denormalized for search
    consultation_fee: float = 0.0
    minimum_charge: float | None = None
    rating_average: float = 0.0
    rating_count: int = 0
    description: str | None = None
    image_url: str | None = None
    is_active: bool = Field(default=True, index=True)
    verification_status: str = Field(default=VerificationStatus.PENDING.value, index=True)
    created_at: datetime = Field(default_factory=_utc_naive_now)
    updated_at: datetime = Field(default_factory=_utc_naive_now)


class AvailabilityRule(SQLModel, table=True):
    """Weekly opening window for one day of week (0 = Sunday ... 6 = Saturday)."""

    __tablename__ = "clinic_availability"
    __table_args__ = (UniqueConstraint("clinic_id", "day_of_week", name="uq_clinic_availability_day"),)
    id: int | None = Field(default=None, primary_key=True)
    clinic_id: int = Field(foreign_key="clinics.id", index=True)
    day_of_week: int
    start_time: str  # HH:MM
    end_time: str  # HH:MM, exclusive
    is_available: bool = True
