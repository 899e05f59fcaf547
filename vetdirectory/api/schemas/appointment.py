import datetime as dt

from vetdirectory.api.schemas.common import CamelModel
from vetdirectory.models.booking import BookingStatus


class SlotInfo(CamelModel):
    time: str  # HH:MM
    is_available: bool


class BookAppointmentRequest(CamelModel):
    # all optional here so a missing field is reported by name, not as a schema error
    date: str | None = None
    time: str | None = None
    pet_id: str | None = None
    service: str | None = None


class BookingConfirmation(CamelModel):
    clinic: str
    date: str  # YYYY-MM-DD
    time: str
    service: str
    pet_id: str


class BookedSlotPublic(CamelModel):
    id: int
    clinic_id: int
    date: dt.date
    time: str
    pet_id: str
    service: str
    status: BookingStatus
    created_at: dt.datetime
    updated_at: dt.datetime


class BookingStatusUpdate(CamelModel):
    status: BookingStatus
