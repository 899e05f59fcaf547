from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from vetdirectory.api.deps import get_session
from vetdirectory.api.schemas.appointment import BookAppointmentRequest, BookingConfirmation, SlotInfo
from vetdirectory.api.schemas.common import ApiResponse
from vetdirectory.core.config import settings
from vetdirectory.services.appointment_service import book_appointment, booking_confirmation
from vetdirectory.services.slot_service import get_available_slots_for_date, parse_date

router = APIRouter(prefix="/clinics", tags=["slots"])


@router.get("/{clinic_id}/slots", response_model=ApiResponse[list[SlotInfo]])
async def available_slots(
    clinic_id: int,
    date_param: str | None = Query(None, alias="date"),
    session: AsyncSession = Depends(get_session),
) -> ApiResponse[list[SlotInfo]]:
    """All 30-minute slots of the clinic's opening window on the given date, with availability."""
    d = parse_date(date_param)
    slots, message = await get_available_slots_for_date(session, clinic_id, d)
    return ApiResponse(
        data=[SlotInfo(time=t, is_available=avail) for t, avail in slots],
        message=message,
    )


@router.post("/{clinic_id}/book", response_model=ApiResponse[BookingConfirmation])
async def book(
    clinic_id: int,
    body: BookAppointmentRequest,
    session: AsyncSession = Depends(get_session),
) -> ApiResponse[BookingConfirmation]:
    not_before = date.today() if settings.reject_past_bookings else None
    booking, clinic = await book_appointment(
        session,
        clinic_id,
        date_str=body.date,
        time_str=body.time,
        pet_id=body.pet_id,
        service=body.service,
        not_before=not_before,
    )
    return ApiResponse(
        message="Appointment booked successfully",
        data=booking_confirmation(clinic, booking),
    )
