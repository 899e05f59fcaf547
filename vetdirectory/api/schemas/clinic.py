import re
from datetime import datetime
from typing import Annotated

from pydantic import AfterValidator, Field, field_validator, model_validator

from vetdirectory.api.schemas.common import CamelModel
from vetdirectory.core.wallclock import WallClockError, parse_time
from vetdirectory.models.clinic import LOCATIONS, ClinicType

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_PHONE_RE = re.compile(r"^[\d\s\-\+\(\)]{7,}$")

REQUIRED_CLINIC_FIELDS = ("name", "type", "location", "address", "phone", "email")


def _check_hhmm(value: str) -> str:
    try:
        parse_time(value)
    except WallClockError as e:
        raise ValueError("time must be HH:MM (24h)") from e
    return value.strip()


HHMM = Annotated[str, AfterValidator(_check_hhmm)]


class AvailabilityRuleIn(CamelModel):
    day_of_week: int = Field(ge=0, le=6)
    start_time: HHMM
    end_time: HHMM
    is_available: bool = True

    @model_validator(mode="after")
    def _start_before_end(self) -> "AvailabilityRuleIn":
        if self.is_available and parse_time(self.start_time) >= parse_time(self.end_time):
            raise ValueError("startTime must be before endTime")
        return self


class AvailabilityRuleOut(CamelModel):
    day_of_week: int
    start_time: str
    end_time: str
    is_available: bool


class Coordinates(CamelModel):
    latitude: float = Field(default=0.0, ge=-90, le=90)
    longitude: float = Field(default=0.0, ge=-180, le=180)


class DayHours(CamelModel):
    open: HHMM | None = None
    close: HHMM | None = None


class Hours(CamelModel):
    weekday: DayHours = Field(default_factory=lambda: DayHours(open="09:00", close="17:00"))
    weekend: DayHours = Field(default_factory=lambda: DayHours(open="10:00", close="16:00"))
    emergency: bool = False


class ClinicServiceItem(CamelModel):
    name: str = Field(min_length=1)
    description: str | None = None
    fee: float | None = Field(default=None, ge=0)


class Fees(CamelModel):
    consultation: float = Field(default=0.0, ge=0)
    minimum_charge: float | None = Field(default=None, ge=0)


class Rating(CamelModel):
    average: float
    count: int


class _ClinicFields(CamelModel):
    """Every field an admin may write. verificationStatus and bookings are not here."""

    name: str | None = None
    type: ClinicType | None = None
    location: str | None = None
    address: str | None = None
    phone: str | None = None
    email: str | None = None
    coordinates: Coordinates | None = None
    hours: Hours | None = None
    services: list[ClinicServiceItem] | None = None
    fees: Fees | None = None
    description: str | None = None
    image_url: str | None = None
    availability: list[AvailabilityRuleIn] | None = None

    @field_validator("name", "address", "phone", "email", "location")
    @classmethod
    def _strip(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        return v or None

    @field_validator("location")
    @classmethod
    def _known_location(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.lower()
        if v not in LOCATIONS:
            raise ValueError(f"location must be one of: {', '.join(LOCATIONS)}")
        return v

    @field_validator("email")
    @classmethod
    def _valid_email(cls, v: str | None) -> str | None:
        if v is None:
            return v
        if not _EMAIL_RE.match(v):
            raise ValueError("Invalid email format")
        return v.lower()

    @field_validator("phone")
    @classmethod
    def _valid_phone(cls, v: str | None) -> str | None:
        if v is not None and not _PHONE_RE.match(v):
            raise ValueError("Invalid phone number format")
        return v

    @field_validator("availability")
    @classmethod
    def _one_rule_per_day(cls, v: list[AvailabilityRuleIn] | None) -> list[AvailabilityRuleIn] | None:
        if v is None:
            return v
        days = [r.day_of_week for r in v]
        if len(days) != len(set(days)):
            raise ValueError("at most one availability rule per dayOfWeek")
        return sorted(v, key=lambda r: r.day_of_week)


class ClinicCreate(_ClinicFields):
    def missing_fields(self) -> list[str]:
        return [f for f in REQUIRED_CLINIC_FIELDS if getattr(self, f) is None]


class ClinicUpdate(_ClinicFields):
    pass


class ClinicPublic(CamelModel):
    id: int
    name: str
    type: str
    location: str
    address: str
    phone: str
    email: str
    coordinates: Coordinates
    hours: Hours
    services: list[ClinicServiceItem]
    fees: Fees
    rating: Rating
    description: str | None = None
    image_url: str | None = None
    is_active: bool
    verification_status: str
    availability: list[AvailabilityRuleOut]
    created_at: datetime
    updated_at: datetime


class RateClinicRequest(CamelModel):
    rating: float | None = None


class ClinicStats(CamelModel):
    total_clinics: int
    verified_clinics: int
    pending_clinics: int
    government_clinics: int
    private_clinics: int
