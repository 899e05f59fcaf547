from datetime import date
from typing import Literal

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from vetdirectory.api.deps import get_current_admin, get_session
from vetdirectory.api.schemas.appointment import BookedSlotPublic, BookingStatusUpdate
from vetdirectory.api.schemas.clinic import ClinicCreate, ClinicPublic, ClinicStats, ClinicUpdate
from vetdirectory.api.schemas.common import ApiResponse, PageResponse
from vetdirectory.core.config import settings
from vetdirectory.models.booking import BookingStatus
from vetdirectory.services.appointment_service import booking_to_public, list_bookings, update_booking_status
from vetdirectory.services.clinic_service import (
    clinic_stats,
    create_clinic,
    delete_clinic,
    get_clinic,
    list_clinics_admin,
    to_public,
    to_public_list,
    update_clinic,
    verify_clinic,
)
from vetdirectory.services.slot_service import parse_date

router = APIRouter(
    prefix="/admin/clinics",
    tags=["admin"],
    dependencies=[Depends(get_current_admin)],
)


@router.get("", response_model=PageResponse[ClinicPublic])
async def list_all_clinics_admin(
    type_: Literal["government", "private", "all"] = Query("all", alias="type"),
    status_: Literal["verified", "pending", "all"] = Query("all", alias="status"),
    search: str | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    session: AsyncSession = Depends(get_session),
) -> PageResponse[ClinicPublic]:
    """Dashboard listing: includes inactive clinics, newest first."""
    clinics, pagination = await list_clinics_admin(
        session, type_=type_, status=status_, search=search, page=page, limit=limit
    )
    return PageResponse(data=await to_public_list(session, clinics), pagination=pagination)


@router.get("/stats", response_model=ApiResponse[ClinicStats])
async def stats(session: AsyncSession = Depends(get_session)) -> ApiResponse[ClinicStats]:
    return ApiResponse(data=await clinic_stats(session))


@router.post("", response_model=ApiResponse[ClinicPublic], status_code=status.HTTP_201_CREATED)
async def add_clinic(
    body: ClinicCreate,
    session: AsyncSession = Depends(get_session),
) -> ApiResponse[ClinicPublic]:
    clinic = await create_clinic(session, body)
    return ApiResponse(message="Clinic added successfully", data=await to_public(session, clinic))


@router.get("/{clinic_id}", response_model=ApiResponse[ClinicPublic])
async def clinic_details(
    clinic_id: int,
    session: AsyncSession = Depends(get_session),
) -> ApiResponse[ClinicPublic]:
    clinic = await get_clinic(session, clinic_id)
    return ApiResponse(data=await to_public(session, clinic))


@router.put("/{clinic_id}", response_model=ApiResponse[ClinicPublic])
async def edit_clinic(
    clinic_id: int,
    body: ClinicUpdate,
    session: AsyncSession = Depends(get_session),
) -> ApiResponse[ClinicPublic]:
    clinic = await update_clinic(session, clinic_id, body)
    return ApiResponse(message="Clinic updated successfully", data=await to_public(session, clinic))


@router.delete("/{clinic_id}", response_model=ApiResponse[ClinicPublic])
async def remove_clinic(
    clinic_id: int,
    session: AsyncSession = Depends(get_session),
) -> ApiResponse[ClinicPublic]:
    clinic = await delete_clinic(session, clinic_id)
    return ApiResponse(message="Clinic deleted successfully", data=await to_public(session, clinic))


@router.patch("/{clinic_id}/verify", response_model=ApiResponse[ClinicPublic])
async def verify(
    clinic_id: int,
    session: AsyncSession = Depends(get_session),
) -> ApiResponse[ClinicPublic]:
    clinic = await verify_clinic(session, clinic_id)
    return ApiResponse(message="Clinic verified successfully", data=await to_public(session, clinic))


@router.get("/{clinic_id}/bookings", response_model=ApiResponse[list[BookedSlotPublic]])
async def clinic_bookings(
    clinic_id: int,
    date_param: str | None = Query(None, alias="date"),
    status_: BookingStatus | None = Query(None, alias="status"),
    session: AsyncSession = Depends(get_session),
) -> ApiResponse[list[BookedSlotPublic]]:
    d: date | None = parse_date(date_param) if date_param else None
    bookings = await list_bookings(session, clinic_id, d=d, status=status_)
    return ApiResponse(data=[booking_to_public(b) for b in bookings])


@router.patch("/{clinic_id}/bookings/{booking_id}", response_model=ApiResponse[BookedSlotPublic])
async def change_booking_status(
    clinic_id: int,
    booking_id: int,
    body: BookingStatusUpdate,
    session: AsyncSession = Depends(get_session),
) -> ApiResponse[BookedSlotPublic]:
    booking = await update_booking_status(session, clinic_id, booking_id, body.status)
    return ApiResponse(message=f"Booking marked {booking.status}", data=booking_to_public(booking))
