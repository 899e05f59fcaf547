import logging
import math
from collections import defaultdict
from datetime import UTC, datetime

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from vetdirectory.api.schemas.clinic import (
    AvailabilityRuleIn,
    AvailabilityRuleOut,
    ClinicCreate,
    ClinicPublic,
    ClinicServiceItem,
    ClinicStats,
    ClinicUpdate,
    Coordinates,
    DayHours,
    Fees,
    Hours,
    Rating,
)
from vetdirectory.api.schemas.common import Pagination
from vetdirectory.core.errors import ClinicNotFound, DuplicateClinic, MissingField, ServiceError
from vetdirectory.models.clinic import AvailabilityRule, Clinic, ClinicType, VerificationStatus

logger = logging.getLogger(__name__)

ALL = "all"

_SORT_OPTIONS = {
    "name": (Clinic.name.asc(),),
    "location": (Clinic.location.asc(),),
    "type": (Clinic.type.asc(),),
    "rating": (Clinic.rating_average.desc(),),
}
SORT_KEYS = tuple(_SORT_OPTIONS)


def _utc_naive_now() -> datetime:
    return datetime.now(UTC).replace(tzinfo=None)


def _contains(column, term: str):
    """Case-insensitive substring match; LIKE wildcards in term are literal."""
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return column.ilike(f"%{escaped}%", escape="\\")


def _service_names(services: list[dict]) -> str:
    return " | ".join(s.get("name", "") for s in services)


def paginate(total: int, page: int, limit: int) -> Pagination:
    return Pagination(total=total, page=page, limit=limit, pages=math.ceil(total / limit) if limit else 0)


def clinic_to_public(clinic: Clinic, rules: list[AvailabilityRule]) -> ClinicPublic:
    return ClinicPublic(
        id=clinic.id,
        name=clinic.name,
        type=clinic.type,
        location=clinic.location,
        address=clinic.address,
        phone=clinic.phone,
        email=clinic.email,
        coordinates=Coordinates(latitude=clinic.latitude, longitude=clinic.longitude),
        hours=Hours(
            weekday=DayHours(open=clinic.weekday_open, close=clinic.weekday_close),
            weekend=DayHours(open=clinic.weekend_open, close=clinic.weekend_close),
            emergency=clinic.emergency,
        ),
        services=[ClinicServiceItem(**s) for s in clinic.services or []],
        fees=Fees(consultation=clinic.consultation_fee, minimum_charge=clinic.minimum_charge),
        rating=Rating(average=clinic.rating_average, count=clinic.rating_count),
        description=clinic.description,
        image_url=clinic.image_url,
        is_active=clinic.is_active,
        verification_status=clinic.verification_status,
        availability=[AvailabilityRuleOut.model_validate(r) for r in rules],
        created_at=clinic.created_at,
        updated_at=clinic.updated_at,
    )


async def get_clinic(session: AsyncSession, clinic_id: int) -> Clinic:
    clinic = await session.get(Clinic, clinic_id)
    if clinic is None:
        raise ClinicNotFound()
    return clinic


async def get_active_clinic(session: AsyncSession, clinic_id: int) -> Clinic:
    """Soft-deleted clinics are invisible to the public API."""
    clinic = await get_clinic(session, clinic_id)
    if not clinic.is_active:
        raise ClinicNotFound()
    return clinic


async def get_availability_map(
    session: AsyncSession, clinic_ids: list[int]
) -> dict[int, list[AvailabilityRule]]:
    if not clinic_ids:
        return {}
    result = await session.execute(
        select(AvailabilityRule)
        .where(AvailabilityRule.clinic_id.in_(clinic_ids))
        .order_by(AvailabilityRule.clinic_id, AvailabilityRule.day_of_week)
    )
    out: dict[int, list[AvailabilityRule]] = defaultdict(list)
    for rule in result.scalars().all():
        out[rule.clinic_id].append(rule)
    return out


async def to_public_list(session: AsyncSession, clinics: list[Clinic]) -> list[ClinicPublic]:
    rules = await get_availability_map(session, [c.id for c in clinics])
    return [clinic_to_public(c, rules.get(c.id, [])) for c in clinics]


async def to_public(session: AsyncSession, clinic: Clinic) -> ClinicPublic:
    return (await to_public_list(session, [clinic]))[0]


def _public_filters(
    type_: str | None = None,
    location: str | None = None,
    search: str | None = None,
) -> list:
    filters = [Clinic.is_active.is_(True)]
    if type_ and type_ != ALL:
        filters.append(Clinic.type == type_)
    if location and location != ALL:
        filters.append(Clinic.location == location.lower())
    if search:
        filters.append(
            _contains(Clinic.name, search)
            | _contains(Clinic.address, search)
            | _contains(Clinic.service_names, search)
        )
    return filters


async def _count(session: AsyncSession, filters: list) -> int:
    result = await session.execute(select(func.count()).select_from(Clinic).where(*filters))
    return result.scalar_one()


async def list_clinics(
    session: AsyncSession,
    type_: str | None = None,
    location: str | None = None,
    search: str | None = None,
    page: int = 1,
    limit: int = 10,
    sort_by: str = "name",
) -> tuple[list[Clinic], Pagination]:
    filters = _public_filters(type_, location, search)
    order = _SORT_OPTIONS.get(sort_by, _SORT_OPTIONS["name"])
    result = await session.execute(
        select(Clinic)
        .where(*filters)
        .order_by(*order, Clinic.id)
        .offset((page - 1) * limit)
        .limit(limit)
    )
    total = await _count(session, filters)
    return list(result.scalars().all()), paginate(total, page, limit)


async def search_clinics(
    session: AsyncSession,
    query: str | None = None,
    type_: str | None = None,
    location: str | None = None,
) -> list[Clinic]:
    result = await session.execute(
        select(Clinic)
        .where(*_public_filters(type_, location, query))
        .order_by(Clinic.rating_average.desc(), Clinic.id)
    )
    return list(result.scalars().all())


async def list_emergency_clinics(session: AsyncSession, location: str | None = None) -> list[Clinic]:
    filters = _public_filters(location=location)
    filters.append(Clinic.emergency.is_(True))
    result = await session.execute(
        select(Clinic).where(*filters).order_by(Clinic.rating_average.desc(), Clinic.id)
    )
    return list(result.scalars().all())


async def list_clinics_by_location(session: AsyncSession, location: str) -> list[Clinic]:
    result = await session.execute(
        select(Clinic)
        .where(Clinic.is_active.is_(True), Clinic.location == location.lower())
        .order_by(Clinic.rating_average.desc(), Clinic.id)
    )
    return list(result.scalars().all())


async def rate_clinic(session: AsyncSession, clinic_id: int, rating: float | None) -> Clinic:
    if rating is None or not 0 <= rating <= 5:
        raise ServiceError("Rating must be a number between 0 and 5")
    clinic = await get_active_clinic(session, clinic_id)
    total = clinic.rating_average * clinic.rating_count + rating
    clinic.rating_count += 1
    clinic.rating_average = total / clinic.rating_count
    clinic.updated_at = _utc_naive_now()
    session.add(clinic)
    await session.flush()
    return clinic


# --- Admin ---

async def list_clinics_admin(
    session: AsyncSession,
    type_: str | None = None,
    status: str | None = None,
    search: str | None = None,
    page: int = 1,
    limit: int = 10,
) -> tuple[list[Clinic], Pagination]:
    filters = []
    if type_ and type_ != ALL:
        filters.append(Clinic.type == type_)
    if status and status != ALL:
        filters.append(Clinic.verification_status == status)
    if search:
        filters.append(
            _contains(Clinic.name, search)
            | _contains(Clinic.address, search)
            | _contains(Clinic.phone, search)
        )
    result = await session.execute(
        select(Clinic)
        .where(*filters)
        .order_by(Clinic.created_at.desc(), Clinic.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    total = await _count(session, filters)
    return list(result.scalars().all()), paginate(total, page, limit)


async def _email_taken(session: AsyncSession, email: str, exclude_id: int | None = None) -> bool:
    q = select(Clinic.id).where(Clinic.email == email)
    if exclude_id is not None:
        q = q.where(Clinic.id != exclude_id)
    result = await session.execute(q)
    return result.first() is not None


def _apply_fields(clinic: Clinic, data: ClinicCreate | ClinicUpdate) -> None:
    """Copy allow-listed fields that were sent; nested objects are flattened onto columns."""
    sent = data.model_fields_set
    for field in ("name", "location", "address", "phone", "email"):
        if field in sent and getattr(data, field) is not None:
            setattr(clinic, field, getattr(data, field))
    # optional text fields may be cleared with an explicit null
    for field in ("description", "image_url"):
        if field in sent:
            setattr(clinic, field, getattr(data, field))
    if "type" in sent and data.type is not None:
        clinic.type = data.type.value
    if "coordinates" in sent and data.coordinates is not None:
        clinic.latitude = data.coordinates.latitude
        clinic.longitude = data.coordinates.longitude
    if "hours" in sent and data.hours is not None:
        clinic.weekday_open = data.hours.weekday.open
        clinic.weekday_close = data.hours.weekday.close
        clinic.weekend_open = data.hours.weekend.open
        clinic.weekend_close = data.hours.weekend.close
        clinic.emergency = data.hours.emergency
    if "services" in sent and data.services is not None:
        clinic.services = [s.model_dump() for s in data.services]
        clinic.service_names = _service_names(clinic.services)
    if "fees" in sent and data.fees is not None:
        clinic.consultation_fee = data.fees.consultation
        clinic.minimum_charge = data.fees.minimum_charge


async def replace_availability(
    session: AsyncSession, clinic_id: int, rules: list[AvailabilityRuleIn]
) -> list[AvailabilityRule]:
    # explicit DELETE first: the unit of work would flush inserts before deletes
    await session.execute(delete(AvailabilityRule).where(AvailabilityRule.clinic_id == clinic_id))
    rows = [
        AvailabilityRule(
            clinic_id=clinic_id,
            day_of_week=r.day_of_week,
            start_time=r.start_time,
            end_time=r.end_time,
            is_available=r.is_available,
        )
        for r in rules
    ]
    session.add_all(rows)
    await session.flush()
    return rows


async def create_clinic(session: AsyncSession, data: ClinicCreate) -> Clinic:
    missing = data.missing_fields()
    if missing:
        raise MissingField(missing)
    if await _email_taken(session, data.email):
        raise DuplicateClinic()
    clinic = Clinic(
        name=data.name,
        type=data.type.value,
        location=data.location,
        address=data.address,
        phone=data.phone,
        email=data.email,
        verification_status=VerificationStatus.PENDING.value,
    )
    _apply_fields(clinic, data)
    session.add(clinic)
    try:
        await session.flush()
    except IntegrityError as e:
        raise DuplicateClinic() from e
    await session.refresh(clinic)
    if data.availability:
        await replace_availability(session, clinic.id, data.availability)
    logger.info("Clinic created id=%s email=%s", clinic.id, clinic.email)
    return clinic


async def update_clinic(session: AsyncSession, clinic_id: int, data: ClinicUpdate) -> Clinic:
    clinic = await get_clinic(session, clinic_id)
    if data.email and data.email != clinic.email and await _email_taken(session, data.email, clinic_id):
        raise DuplicateClinic()
    _apply_fields(clinic, data)
    clinic.updated_at = _utc_naive_now()
    session.add(clinic)
    try:
        await session.flush()
    except IntegrityError as e:
        raise DuplicateClinic() from e
    if "availability" in data.model_fields_set and data.availability is not None:
        await replace_availability(session, clinic.id, data.availability)
    logger.info("Clinic updated id=%s fields=%s", clinic.id, sorted(data.model_fields_set))
    return clinic


async def delete_clinic(session: AsyncSession, clinic_id: int) -> Clinic:
    clinic = await get_clinic(session, clinic_id)
    clinic.is_active = False
    clinic.updated_at = _utc_naive_now()
    session.add(clinic)
    await session.flush()
    logger.info("Clinic deactivated id=%s", clinic.id)
    return clinic


async def verify_clinic(session: AsyncSession, clinic_id: int) -> Clinic:
    clinic = await get_clinic(session, clinic_id)
    clinic.verification_status = VerificationStatus.VERIFIED.value
    clinic.updated_at = _utc_naive_now()
    session.add(clinic)
    await session.flush()
    logger.info("Clinic verified id=%s", clinic.id)
    return clinic


async def clinic_stats(session: AsyncSession) -> ClinicStats:
    active = Clinic.is_active.is_(True)
    return ClinicStats(
        total_clinics=await _count(session, [active]),
        verified_clinics=await _count(session, [active, Clinic.verification_status == VerificationStatus.VERIFIED.value]),
        pending_clinics=await _count(session, [active, Clinic.verification_status == VerificationStatus.PENDING.value]),
        government_clinics=await _count(session, [active, Clinic.type == ClinicType.GOVERNMENT.value]),
        private_clinics=await _count(session, [active, Clinic.type == ClinicType.PRIVATE.value]),
    )
