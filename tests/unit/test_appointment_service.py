"""Test the appointment lifecycle against an in-memory database."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from app.core.locks import LocalSlotLocker
from app.models.appointment import AppointmentStatus, BookingSource
from app.models.service import Service, ServiceLocation
from app.schemas.appointment import (
    AppointmentCreate,
    AppointmentFilters,
    AppointmentUpdate,
    PublicAppointmentCreate,
)
from app.schemas.scheduling import AppointmentWindowRequest
from app.services.appointment import AppointmentService
from app.utils.timezones import as_utc
from app.utils.validation import (
    AppointmentConflictError,
    InactiveEntityError,
    InvalidContactError,
    InvalidDurationError,
    InvalidStatusError,
    NotFoundError,
    OutsideWorkingHoursError,
    PastDateError,
    SlotLockedError,
    StaffNotQualifiedError,
    UnalignedTimeError,
)
from tests.conftest import NOW
from tests.fixtures.booking_fixtures import MONDAY, OTHER_TENANT_ID, TENANT_ID

UTC = timezone.utc


def monday(hour: int, minute: int = 0) -> datetime:
    return datetime(2030, 1, 7, hour, minute, tzinfo=UTC)


def booking(location, service, staff, start, schema=AppointmentCreate, **overrides):
    data = dict(
        location_id=location.id,
        service_id=service.id,
        staff_id=staff.id,
        customer_name="Ada Customer",
        customer_phone="+15551234567",
        customer_email="ada@example.com",
        start_time=start,
    )
    data.update(overrides)
    return schema(**data)


@pytest.fixture
def appointments(db, clock, publisher, locker) -> AppointmentService:
    return AppointmentService(db, clock=clock, publisher=publisher, locker=locker)


class TestCreateAppointment:
    async def test_creates_pending_booking(
        self, appointments, publisher, location, service, staff
    ):
        appointment = await appointments.create_appointment(
            TENANT_ID, booking(location, service, staff, monday(9, 30))
        )

        assert appointment.status == AppointmentStatus.PENDING.value
        assert appointment.booking_source == BookingSource.ADMIN.value
        assert as_utc(appointment.start_time) == monday(9, 30)
        assert as_utc(appointment.end_time) == monday(10, 30)
        assert appointment.timezone == "UTC"
        assert publisher.types == ["appointment.created"]
        assert publisher.events[0].appointment_id == str(appointment.id)

    async def test_initial_status_can_be_confirmed(
        self, appointments, location, service, staff
    ):
        appointment = await appointments.create_appointment(
            TENANT_ID,
            booking(location, service, staff, monday(9), status=AppointmentStatus.CONFIRMED),
        )

        assert appointment.status == "confirmed"

    async def test_outside_staff_hours(
        self, appointments, publisher, location, service, staff
    ):
        with pytest.raises(OutsideWorkingHoursError):
            await appointments.create_appointment(
                TENANT_ID, booking(location, service, staff, monday(14))
            )

        assert await appointments.get_appointments(TENANT_ID) == []
        assert publisher.events == []

    async def test_past_start(self, appointments, location, service, staff):
        with pytest.raises(PastDateError):
            await appointments.create_appointment(
                TENANT_ID, booking(location, service, staff, NOW - timedelta(days=6))
            )

    async def test_invalid_contact(self, appointments, location, service, staff):
        with pytest.raises(InvalidContactError) as exc_info:
            await appointments.create_appointment(
                TENANT_ID,
                booking(location, service, staff, monday(9), customer_phone="call me"),
            )

        assert exc_info.value.details["errors"] == ["Invalid phone number format"]

    async def test_start_between_minutes_is_rejected(
        self, appointments, publisher, location, service, staff
    ):
        # Staff works Monday 09:00-13:00; 12:00:30 would end at 13:00:30
        with pytest.raises(UnalignedTimeError):
            await appointments.create_appointment(
                TENANT_ID,
                booking(location, service, staff, monday(12).replace(second=30)),
            )

        assert await appointments.get_appointments(TENANT_ID) == []
        assert publisher.types == []

    async def test_double_booking_is_rejected(self, appointments, location, service, staff):
        first = await appointments.create_appointment(
            TENANT_ID, booking(location, service, staff, monday(9))
        )

        with pytest.raises(AppointmentConflictError) as exc_info:
            await appointments.create_appointment(
                TENANT_ID, booking(location, service, staff, monday(9, 30))
            )

        assert exc_info.value.details["conflicting_appointment_id"] == str(first.id)

    async def test_back_to_back_bookings(self, appointments, location, service, staff):
        await appointments.create_appointment(
            TENANT_ID, booking(location, service, staff, monday(9))
        )
        second = await appointments.create_appointment(
            TENANT_ID, booking(location, service, staff, monday(10))
        )

        assert as_utc(second.start_time) == monday(10)

    async def test_buffer_time_is_respected(
        self, appointments, location, service, long_service, staff
    ):
        # Colour 09:00-10:30, cleanup until 10:45
        await appointments.create_appointment(
            TENANT_ID, booking(location, long_service, staff, monday(9))
        )

        with pytest.raises(AppointmentConflictError):
            await appointments.create_appointment(
                TENANT_ID, booking(location, service, staff, monday(10, 30))
            )
        await appointments.create_appointment(
            TENANT_ID, booking(location, service, staff, monday(10, 45))
        )

    async def test_naive_start_is_location_local(
        self, db, appointments, location, service, staff
    ):
        location.timezone = "America/New_York"
        await db.commit()

        appointment = await appointments.create_appointment(
            TENANT_ID, booking(location, service, staff, datetime(2030, 1, 7, 9, 0))
        )

        assert as_utc(appointment.start_time) == monday(14)
        assert appointment.timezone == "America/New_York"

    async def test_staff_must_perform_service(
        self, db, appointments, location, staff
    ):
        massage = Service(
            tenant_id=TENANT_ID, name="Massage", duration_minutes=60, price=Decimal("50")
        )
        massage.service_locations = [
            ServiceLocation(tenant_id=TENANT_ID, location_id=location.id)
        ]
        db.add(massage)
        await db.commit()

        with pytest.raises(StaffNotQualifiedError):
            await appointments.create_appointment(
                TENANT_ID, booking(location, massage, staff, monday(9))
            )

    async def test_inactive_staff(self, db, appointments, location, service, staff):
        staff.is_active = False
        await db.commit()

        with pytest.raises(InactiveEntityError) as exc_info:
            await appointments.create_appointment(
                TENANT_ID, booking(location, service, staff, monday(9))
            )

        assert exc_info.value.details["entity"] == "staff member"

    async def test_public_booking_needs_public_service(
        self, db, appointments, location, service, staff
    ):
        service.is_public = False
        await db.commit()

        with pytest.raises(InactiveEntityError):
            await appointments.create_appointment(
                TENANT_ID,
                booking(location, service, staff, monday(9), schema=PublicAppointmentCreate),
                booking_source=BookingSource.PUBLIC,
            )

    async def test_public_booking_source_is_recorded(
        self, appointments, location, service, staff
    ):
        appointment = await appointments.create_appointment(
            TENANT_ID,
            booking(location, service, staff, monday(9), schema=PublicAppointmentCreate),
            booking_source=BookingSource.PUBLIC,
        )

        assert appointment.booking_source == "public"
        assert appointment.status == "pending"

    async def test_other_tenant_entities_are_invisible(
        self, appointments, location, service, staff
    ):
        with pytest.raises(NotFoundError):
            await appointments.create_appointment(
                OTHER_TENANT_ID, booking(location, service, staff, monday(9))
            )

    async def test_held_slot_lock(self, db, clock, publisher, location, service, staff):
        locker = LocalSlotLocker(wait_seconds=0.05)
        appointments = AppointmentService(db, clock=clock, publisher=publisher, locker=locker)

        async with locker.hold(TENANT_ID, staff.id, MONDAY):
            with pytest.raises(SlotLockedError):
                await appointments.create_appointment(
                    TENANT_ID, booking(location, service, staff, monday(9))
                )


class TestRescheduleAppointment:
    async def test_moves_and_counts(self, appointments, publisher, location, service, staff):
        appointment = await appointments.create_appointment(
            TENANT_ID, booking(location, service, staff, monday(9))
        )

        moved = await appointments.reschedule_appointment(
            TENANT_ID, appointment.id, monday(11)
        )

        assert as_utc(moved.start_time) == monday(11)
        assert as_utc(moved.end_time) == monday(12)
        assert moved.reschedule_count == 1
        assert publisher.types == ["appointment.created", "appointment.rescheduled"]

    async def test_overlapping_its_own_old_time(self, appointments, location, service, staff):
        appointment = await appointments.create_appointment(
            TENANT_ID, booking(location, service, staff, monday(9))
        )

        moved = await appointments.reschedule_appointment(
            TENANT_ID, appointment.id, monday(9, 30)
        )

        assert as_utc(moved.start_time) == monday(9, 30)

    async def test_conflict_keeps_original_time(
        self, appointments, location, service, staff
    ):
        first = await appointments.create_appointment(
            TENANT_ID, booking(location, service, staff, monday(9))
        )
        await appointments.create_appointment(
            TENANT_ID, booking(location, service, staff, monday(11))
        )

        with pytest.raises(AppointmentConflictError):
            await appointments.reschedule_appointment(TENANT_ID, first.id, monday(11, 30))

        reloaded = await appointments.get_appointment(TENANT_ID, first.id)
        assert as_utc(reloaded.start_time) == monday(9)
        assert reloaded.reschedule_count == 0

    async def test_explicit_end_must_match_duration(
        self, appointments, location, service, staff
    ):
        appointment = await appointments.create_appointment(
            TENANT_ID, booking(location, service, staff, monday(9))
        )

        with pytest.raises(InvalidDurationError):
            await appointments.reschedule_appointment(
                TENANT_ID, appointment.id, monday(10), monday(10, 30)
            )

    async def test_sub_minute_target_keeps_original_time(
        self, appointments, location, service, staff
    ):
        appointment = await appointments.create_appointment(
            TENANT_ID, booking(location, service, staff, monday(9))
        )

        with pytest.raises(UnalignedTimeError):
            await appointments.reschedule_appointment(
                TENANT_ID, appointment.id, monday(10).replace(microsecond=500)
            )

        assert as_utc(appointment.start_time) == monday(9)
        assert appointment.reschedule_count == 0

    async def test_cancelled_cannot_move(self, appointments, location, service, staff):
        appointment = await appointments.create_appointment(
            TENANT_ID, booking(location, service, staff, monday(9))
        )
        await appointments.cancel_appointment(TENANT_ID, appointment.id)

        with pytest.raises(InvalidStatusError):
            await appointments.reschedule_appointment(TENANT_ID, appointment.id, monday(10))


class TestCancelAppointment:
    async def test_cancel_frees_slot(self, appointments, publisher, location, service, staff):
        appointment = await appointments.create_appointment(
            TENANT_ID, booking(location, service, staff, monday(9))
        )

        cancelled = await appointments.cancel_appointment(TENANT_ID, appointment.id)

        assert cancelled.status == "cancelled"
        assert as_utc(cancelled.cancelled_at) == NOW
        rebooked = await appointments.create_appointment(
            TENANT_ID, booking(location, service, staff, monday(9))
        )
        assert rebooked.id != appointment.id
        assert publisher.types == [
            "appointment.created",
            "appointment.cancelled",
            "appointment.created",
        ]

    async def test_cancel_is_idempotent(self, appointments, publisher, location, service, staff):
        appointment = await appointments.create_appointment(
            TENANT_ID, booking(location, service, staff, monday(9))
        )

        await appointments.cancel_appointment(TENANT_ID, appointment.id)
        await appointments.cancel_appointment(TENANT_ID, appointment.id)

        assert publisher.types.count("appointment.cancelled") == 1


class TestUpdateAppointment:
    async def test_status_change_publishes(
        self, appointments, publisher, location, service, staff
    ):
        appointment = await appointments.create_appointment(
            TENANT_ID, booking(location, service, staff, monday(9))
        )

        updated = await appointments.update_appointment(
            TENANT_ID, appointment.id, AppointmentUpdate(status=AppointmentStatus.CONFIRMED)
        )

        assert updated.status == "confirmed"
        assert publisher.types[-1] == "appointment.status_changed"

    async def test_notes_only(self, appointments, publisher, location, service, staff):
        appointment = await appointments.create_appointment(
            TENANT_ID, booking(location, service, staff, monday(9))
        )

        updated = await appointments.update_appointment(
            TENANT_ID, appointment.id, AppointmentUpdate(notes="Prefers scissors")
        )

        assert updated.notes == "Prefers scissors"
        assert publisher.types == ["appointment.created"]

    async def test_time_change_is_validated(self, appointments, location, service, staff):
        appointment = await appointments.create_appointment(
            TENANT_ID, booking(location, service, staff, monday(9))
        )

        with pytest.raises(OutsideWorkingHoursError):
            await appointments.update_appointment(
                TENANT_ID, appointment.id, AppointmentUpdate(start_time=monday(15))
            )

        moved = await appointments.update_appointment(
            TENANT_ID, appointment.id, AppointmentUpdate(start_time=monday(12))
        )
        assert as_utc(moved.start_time) == monday(12)

    async def test_cancel_through_update(self, appointments, publisher, location, service, staff):
        appointment = await appointments.create_appointment(
            TENANT_ID, booking(location, service, staff, monday(9))
        )

        updated = await appointments.update_appointment(
            TENANT_ID,
            appointment.id,
            AppointmentUpdate(status=AppointmentStatus.CANCELLED, notes="Customer called"),
        )

        assert updated.status == "cancelled"
        assert updated.notes == "Customer called"
        assert publisher.types[-1] == "appointment.cancelled"

    async def test_notes_on_already_cancelled_are_saved(
        self, db, appointments, publisher, location, service, staff
    ):
        appointment = await appointments.create_appointment(
            TENANT_ID, booking(location, service, staff, monday(9))
        )
        await appointments.cancel_appointment(TENANT_ID, appointment.id)

        updated = await appointments.update_appointment(
            TENANT_ID,
            appointment.id,
            AppointmentUpdate(status=AppointmentStatus.CANCELLED, notes="customer called"),
        )
        await db.rollback()
        stored = await appointments.get_appointment(TENANT_ID, appointment.id)

        assert updated.notes == "customer called"
        assert stored.notes == "customer called"
        assert stored.status == "cancelled"
        assert publisher.types.count("appointment.cancelled") == 1

    async def test_cancelled_cannot_reopen(self, appointments, location, service, staff):
        appointment = await appointments.create_appointment(
            TENANT_ID, booking(location, service, staff, monday(9))
        )
        await appointments.cancel_appointment(TENANT_ID, appointment.id)

        with pytest.raises(InvalidStatusError):
            await appointments.update_appointment(
                TENANT_ID, appointment.id, AppointmentUpdate(status=AppointmentStatus.PENDING)
            )


class TestQueries:
    async def test_filters_by_window_and_status(self, appointments, location, service, staff):
        early = await appointments.create_appointment(
            TENANT_ID, booking(location, service, staff, monday(9))
        )
        late = await appointments.create_appointment(
            TENANT_ID, booking(location, service, staff, monday(11))
        )
        await appointments.cancel_appointment(TENANT_ID, late.id)

        in_window = await appointments.get_appointments(
            TENANT_ID, AppointmentFilters(start=monday(8), end=monday(10))
        )
        cancelled = await appointments.get_appointments(
            TENANT_ID, AppointmentFilters(status=AppointmentStatus.CANCELLED)
        )
        everything = await appointments.get_appointments(TENANT_ID)

        assert [a.id for a in in_window] == [early.id]
        assert [a.id for a in cancelled] == [late.id]
        assert [a.id for a in everything] == [early.id, late.id]
        assert await appointments.get_appointments(OTHER_TENANT_ID) == []

    async def test_end_filter_needs_appointment_to_be_over(
        self, appointments, location, service, staff
    ):
        await appointments.create_appointment(
            TENANT_ID, booking(location, service, staff, monday(9))
        )

        running = await appointments.get_appointments(
            TENANT_ID, AppointmentFilters(start=monday(8), end=monday(9, 30))
        )
        finished = await appointments.get_appointments(
            TENANT_ID, AppointmentFilters(start=monday(8), end=monday(10))
        )

        assert running == []
        assert len(finished) == 1

    async def test_stats(self, appointments, location, service, staff):
        await appointments.create_appointment(
            TENANT_ID, booking(location, service, staff, monday(9))
        )
        second = await appointments.create_appointment(
            TENANT_ID, booking(location, service, staff, monday(10))
        )
        await appointments.cancel_appointment(TENANT_ID, second.id)

        stats = await appointments.get_appointment_stats(TENANT_ID)

        assert stats.total == 2
        assert stats.pending == 1
        assert stats.cancelled == 1
        assert stats.confirmed == 0

    async def test_get_from_other_tenant(self, appointments, location, service, staff):
        appointment = await appointments.create_appointment(
            TENANT_ID, booking(location, service, staff, monday(9))
        )

        with pytest.raises(NotFoundError):
            await appointments.get_appointment(OTHER_TENANT_ID, appointment.id)


class TestCheckWindow:
    async def test_reports_rejection_without_saving(
        self, appointments, location, service, staff
    ):
        response = await appointments.check_window(
            TENANT_ID,
            AppointmentWindowRequest(
                location_id=location.id,
                staff_id=staff.id,
                service_id=service.id,
                start_time=monday(14),
            ),
        )

        assert response.is_valid is False
        assert response.error.code == "outside_working_hours"
        assert response.duration_minutes == 60
        assert await appointments.get_appointments(TENANT_ID) == []

    async def test_accepts_free_window(self, appointments, location, service, staff):
        response = await appointments.check_window(
            TENANT_ID,
            AppointmentWindowRequest(
                location_id=location.id,
                staff_id=staff.id,
                service_id=service.id,
                start_time=monday(9, 30),
            ),
        )

        assert response.is_valid is True
        assert response.error is None
        assert response.end_time == monday(10, 30)

    async def test_inactive_staff_is_reported(self, db, appointments, location, service, staff):
        staff.is_active = False
        await db.commit()

        response = await appointments.check_window(
            TENANT_ID,
            AppointmentWindowRequest(
                location_id=location.id,
                staff_id=staff.id,
                service_id=service.id,
                start_time=monday(9, 30),
            ),
        )

        assert response.is_valid is False
        assert response.error.code == "inactive"

    async def test_service_not_offered_is_reported(
        self, db, appointments, location, service, staff
    ):
        service.service_locations = []
        await db.commit()

        response = await appointments.check_window(
            TENANT_ID,
            AppointmentWindowRequest(
                location_id=location.id,
                staff_id=staff.id,
                service_id=service.id,
                start_time=monday(9, 30),
            ),
        )

        assert response.is_valid is False
        assert response.error.code == "service_not_offered"

    async def test_sub_minute_start_is_reported(self, appointments, location, service, staff):
        response = await appointments.check_window(
            TENANT_ID,
            AppointmentWindowRequest(
                location_id=location.id,
                staff_id=staff.id,
                service_id=service.id,
                start_time=monday(12).replace(second=30),
            ),
        )

        assert response.is_valid is False
        assert response.error.code == "unaligned_time"
