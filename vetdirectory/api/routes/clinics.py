from typing import Literal

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from vetdirectory.api.deps import get_session
from vetdirectory.api.schemas.clinic import ClinicPublic, RateClinicRequest, Rating
from vetdirectory.api.schemas.common import ApiResponse, PageResponse
from vetdirectory.core.config import settings
from vetdirectory.services.clinic_service import (
    get_active_clinic,
    list_clinics,
    list_clinics_by_location,
    list_emergency_clinics,
    rate_clinic,
    search_clinics,
    to_public,
    to_public_list,
)

router = APIRouter(prefix="/clinics", tags=["clinics"])

TypeFilter = Literal["government", "private", "all"]
SortBy = Literal["name", "location", "type", "rating"]


@router.get("", response_model=PageResponse[ClinicPublic])
async def get_clinics(
    type_: TypeFilter | None = Query(None, alias="type"),
    location: str | None = Query(None),
    search: str | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    sort_by: SortBy = Query("name", alias="sortBy"),
    session: AsyncSession = Depends(get_session),
) -> PageResponse[ClinicPublic]:
    clinics, pagination = await list_clinics(
        session, type_=type_, location=location, search=search, page=page, limit=limit, sort_by=sort_by
    )
    return PageResponse(data=await to_public_list(session, clinics), pagination=pagination)


@router.get("/search", response_model=ApiResponse[list[ClinicPublic]])
async def search(
    query: str | None = Query(None),
    type_: TypeFilter | None = Query(None, alias="type"),
    location: str | None = Query(None),
    session: AsyncSession = Depends(get_session),
) -> ApiResponse[list[ClinicPublic]]:
    clinics = await search_clinics(session, query=query, type_=type_, location=location)
    return ApiResponse(data=await to_public_list(session, clinics))


@router.get("/emergency", response_model=ApiResponse[list[ClinicPublic]])
async def emergency(
    location: str | None = Query(None),
    session: AsyncSession = Depends(get_session),
) -> ApiResponse[list[ClinicPublic]]:
    clinics = await list_emergency_clinics(session, location=location)
    return ApiResponse(data=await to_public_list(session, clinics))


@router.get("/location/{location}", response_model=ApiResponse[list[ClinicPublic]])
async def by_location(
    location: str,
    session: AsyncSession = Depends(get_session),
) -> ApiResponse[list[ClinicPublic]]:
    clinics = await list_clinics_by_location(session, location)
    return ApiResponse(data=await to_public_list(session, clinics))


@router.get("/{clinic_id}", response_model=ApiResponse[ClinicPublic])
async def get_clinic_by_id(
    clinic_id: int,
    session: AsyncSession = Depends(get_session),
) -> ApiResponse[ClinicPublic]:
    clinic = await get_active_clinic(session, clinic_id)
    return ApiResponse(data=await to_public(session, clinic))


@router.post("/{clinic_id}/rate", response_model=ApiResponse[Rating])
async def rate(
    clinic_id: int,
    body: RateClinicRequest,
    session: AsyncSession = Depends(get_session),
) -> ApiResponse[Rating]:
    clinic = await rate_clinic(session, clinic_id, body.rating)
    return ApiResponse(
        message="Rating added successfully",
        data=Rating(average=clinic.rating_average, count=clinic.rating_count),
    )
