"""
Unit tests for booking: conflicts, concurrency, grid enforcement, status changes.
"""

import asyncio
from datetime import date

import pytest
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, OperationalError

from vetdirectory.core.db import async_session_maker
from vetdirectory.core.errors import (
    BookingNotFound,
    ClinicNotFound,
    InvalidDate,
    InvalidStatusTransition,
    InvalidTime,
    MissingField,
    PastDate,
    PersistenceFailure,
    SlotAlreadyBooked,
    SlotNotOffered,
)
from vetdirectory.models.booking import BookedSlot, BookingStatus
from vetdirectory.services import appointment_service
from vetdirectory.services.appointment_service import book_appointment, list_bookings, update_booking_status
from vetdirectory.services.slot_service import get_available_slots_for_date

TUESDAY = "2025-06-10"


async def _rows(clinic_id: int, time: str = "09:00") -> list[BookedSlot]:
    async with async_session_maker() as s:
        result = await s.execute(
            select(BookedSlot).where(
                BookedSlot.clinic_id == clinic_id,
                BookedSlot.slot_date == date(2025, 6, 10),
                BookedSlot.slot_time == time,
            )
        )
        return list(result.scalars().all())


class TestBookAppointment:
    """Happy path and conflicts."""

    @pytest.mark.asyncio
    async def test_round_trip_marks_only_booked_slot(self, session, make_clinic):
        clinic = await make_clinic()
        booking, owner = await book_appointment(session, clinic.id, TUESDAY, "09:00", "pet1", "Vaccination")
        assert booking.id is not None
        assert booking.status == BookingStatus.BOOKED.value
        assert owner.name == clinic.name

        slots, _ = await get_available_slots_for_date(session, clinic.id, date(2025, 6, 10))
        assert slots == [("09:00", False), ("09:30", True)]

    @pytest.mark.asyncio
    async def test_second_booking_conflicts(self, session, make_clinic):
        clinic = await make_clinic()
        await book_appointment(session, clinic.id, TUESDAY, "09:00", "pet1", "Vaccination")
        with pytest.raises(SlotAlreadyBooked):
            await book_appointment(session, clinic.id, TUESDAY, "09:00", "pet2", "Surgery")
        rows = await _rows(clinic.id)
        assert len(rows) == 1
        assert rows[0].pet_id == "pet1"

    @pytest.mark.asyncio
    async def test_same_time_other_clinic_is_independent(self, session, make_clinic):
        first = await make_clinic()
        second = await make_clinic()
        await book_appointment(session, first.id, TUESDAY, "09:00", "pet1", "Vaccination")
        booking, _ = await book_appointment(session, second.id, TUESDAY, "09:00", "pet2", "Vaccination")
        assert booking.clinic_id == second.id

    @pytest.mark.asyncio
    async def test_concurrent_bookings_yield_exactly_one(self, db, make_clinic):
        clinic = await make_clinic()
        n = 8

        async def attempt(i: int):
            async with async_session_maker() as s:
                return await book_appointment(s, clinic.id, TUESDAY, "09:30", f"pet{i}", "Checkup")

        results = await asyncio.gather(*(attempt(i) for i in range(n)), return_exceptions=True)
        successes = [r for r in results if not isinstance(r, BaseException)]
        conflicts = [r for r in results if isinstance(r, SlotAlreadyBooked)]
        assert len(successes) == 1
        assert len(conflicts) == n - 1
        assert len(await _rows(clinic.id, "09:30")) == 1

    @pytest.mark.asyncio
    async def test_unique_index_backs_up_the_check(self, session, make_clinic, monkeypatch):
        """A booking that slips past the in-process check is still rejected by the database."""
        clinic = await make_clinic()
        await book_appointment(session, clinic.id, TUESDAY, "09:00", "pet1", "Vaccination")

        async def never_booked(*args, **kwargs):
            return False

        monkeypatch.setattr(appointment_service, "is_slot_booked", never_booked)
        with pytest.raises(SlotAlreadyBooked) as exc:
            await book_appointment(session, clinic.id, TUESDAY, "09:00", "pet2", "Surgery")
        assert isinstance(exc.value.__cause__, IntegrityError)
        assert len(await _rows(clinic.id)) == 1

    @pytest.mark.asyncio
    async def test_write_failure_leaves_no_row(self, session, make_clinic, monkeypatch):
        clinic = await make_clinic()

        async def broken_commit():
            raise OperationalError("INSERT INTO booked_slots", {}, Exception("disk I/O error"))

        monkeypatch.setattr(session, "commit", broken_commit)
        with pytest.raises(PersistenceFailure):
            await book_appointment(session, clinic.id, TUESDAY, "09:00", "pet1", "Vaccination")
        assert await _rows(clinic.id) == []

    @pytest.mark.asyncio
    async def test_retry_after_success_reports_conflict(self, session, make_clinic):
        clinic = await make_clinic()
        args = (session, clinic.id, TUESDAY, "09:00", "pet1", "Vaccination")
        await book_appointment(*args)
        with pytest.raises(SlotAlreadyBooked):
            await book_appointment(*args)


class TestBookingValidation:
    """Inputs are checked before anything is written."""

    @pytest.mark.asyncio
    async def test_missing_fields_are_named(self, session, make_clinic):
        clinic = await make_clinic()
        with pytest.raises(MissingField) as exc:
            await book_appointment(session, clinic.id, TUESDAY, None, "  ", "Vaccination")
        assert exc.value.fields == ["time", "petId"]
        assert exc.value.message == "Missing required fields: time, petId"

    @pytest.mark.asyncio
    async def test_invalid_date(self, session, make_clinic):
        clinic = await make_clinic()
        with pytest.raises(InvalidDate):
            await book_appointment(session, clinic.id, "10-06-2025", "09:00", "pet1", "Vaccination")

    @pytest.mark.asyncio
    async def test_invalid_time(self, session, make_clinic):
        clinic = await make_clinic()
        with pytest.raises(InvalidTime):
            await book_appointment(session, clinic.id, TUESDAY, "9am", "pet1", "Vaccination")

    @pytest.mark.asyncio
    async def test_past_date_rejected_when_cutoff_given(self, session, make_clinic):
        clinic = await make_clinic()
        with pytest.raises(PastDate):
            await book_appointment(
                session, clinic.id, TUESDAY, "09:00", "pet1", "Vaccination", not_before=date(2025, 6, 11)
            )

    @pytest.mark.asyncio
    async def test_booking_at_end_time_rejected(self, session, make_clinic):
        clinic = await make_clinic()
        with pytest.raises(SlotNotOffered):
            await book_appointment(session, clinic.id, TUESDAY, "10:00", "pet1", "Vaccination")

    @pytest.mark.asyncio
    async def test_off_grid_time_rejected(self, session, make_clinic):
        clinic = await make_clinic()
        with pytest.raises(SlotNotOffered):
            await book_appointment(session, clinic.id, TUESDAY, "09:17", "pet1", "Vaccination")

    @pytest.mark.asyncio
    async def test_closed_day_rejected(self, session, make_clinic):
        clinic = await make_clinic()
        with pytest.raises(SlotNotOffered) as exc:
            await book_appointment(session, clinic.id, "2025-06-08", "09:00", "pet1", "Vaccination")
        assert exc.value.message == "Clinic is closed on this day"

    @pytest.mark.asyncio
    async def test_unknown_clinic(self, session):
        with pytest.raises(ClinicNotFound):
            await book_appointment(session, 404, TUESDAY, "09:00", "pet1", "Vaccination")


class TestBookingStatus:
    """booked -> completed | cancelled, both terminal."""

    @pytest.mark.asyncio
    async def test_cancel_frees_slot(self, session, make_clinic):
        clinic = await make_clinic()
        booking, _ = await book_appointment(session, clinic.id, TUESDAY, "09:00", "pet1", "Vaccination")
        await update_booking_status(session, clinic.id, booking.id, BookingStatus.CANCELLED)
        await session.commit()

        rebooked, _ = await book_appointment(session, clinic.id, TUESDAY, "09:00", "pet2", "Surgery")
        assert rebooked.id != booking.id
        statuses = sorted(b.status for b in await _rows(clinic.id))
        assert statuses == ["booked", "cancelled"]

    @pytest.mark.asyncio
    async def test_complete_then_terminal(self, session, make_clinic):
        clinic = await make_clinic()
        booking, _ = await book_appointment(session, clinic.id, TUESDAY, "09:00", "pet1", "Vaccination")
        done = await update_booking_status(session, clinic.id, booking.id, BookingStatus.COMPLETED)
        assert done.status == "completed"
        with pytest.raises(InvalidStatusTransition):
            await update_booking_status(session, clinic.id, booking.id, BookingStatus.CANCELLED)
        with pytest.raises(InvalidStatusTransition):
            await update_booking_status(session, clinic.id, booking.id, BookingStatus.BOOKED)

    @pytest.mark.asyncio
    async def test_booking_of_other_clinic_not_found(self, session, make_clinic):
        first = await make_clinic()
        second = await make_clinic()
        booking, _ = await book_appointment(session, first.id, TUESDAY, "09:00", "pet1", "Vaccination")
        with pytest.raises(BookingNotFound):
            await update_booking_status(session, second.id, booking.id, BookingStatus.CANCELLED)

    @pytest.mark.asyncio
    async def test_list_bookings_filters(self, session, make_clinic):
        clinic = await make_clinic()
        a, _ = await book_appointment(session, clinic.id, TUESDAY, "09:30", "pet1", "Vaccination")
        b, _ = await book_appointment(session, clinic.id, TUESDAY, "09:00", "pet2", "Checkup")
        await update_booking_status(session, clinic.id, a.id, BookingStatus.CANCELLED)
        await session.commit()

        all_rows = await list_bookings(session, clinic.id)
        assert [r.slot_time for r in all_rows] == ["09:00", "09:30"]
        booked = await list_bookings(session, clinic.id, status=BookingStatus.BOOKED)
        assert [r.id for r in booked] == [b.id]
        assert await list_bookings(session, clinic.id, d=date(2025, 6, 11)) == []
