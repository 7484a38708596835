from datetime import datetime, timedelta
from typing import List, Optional
from uuid import UUID

import structlog
from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.clock import Clock, system_clock
from app.core.locks import LocalSlotLocker, SlotLocker
from app.models.appointment import Appointment, AppointmentStatus, BookingSource
from app.models.location import Location
from app.models.service import Service
from app.models.staff import StaffMember
from app.schemas.appointment import (
    AppointmentBase,
    AppointmentFilters,
    AppointmentStats,
    AppointmentUpdate,
)
from app.schemas.scheduling import (
    AppointmentWindowRequest,
    AppointmentWindowResponse,
    ValidationErrorDetail,
)
from app.services.availability import AvailabilityService
from app.services.conflicts import check_appointment_overlap, validate_appointment_window
from app.services.events import (
    AppointmentEvent,
    AppointmentEventType,
    EventPublisher,
    LoggingEventPublisher,
)
from app.services.lookups import get_appointment, get_location, get_service, get_staff
from app.utils.timezones import as_utc, resolve_zone, to_local
from app.utils.validation import (
    InactiveEntityError,
    InvalidStatusError,
    SchedulingError,
    ServiceNotOfferedError,
    StaffNotQualifiedError,
    ValidationResult,
    validate_contact_and_raise,
)

logger = structlog.get_logger(__name__)


class AppointmentService:
    """Appointment lifecycle: create, reschedule, cancel and PATCH updates.

    Every time change takes the slot lock for the staff member's day, then
    re-validates against the schedules and the staff member's other bookings
    before committing.
    """

    def __init__(
        self,
        db: AsyncSession,
        clock: Clock = system_clock,
        publisher: Optional[EventPublisher] = None,
        locker: Optional[SlotLocker] = None,
    ):
        self.db = db
        self.clock = clock
        self.publisher = publisher or LoggingEventPublisher()
        self.locker = locker or LocalSlotLocker()
        self.availability = AvailabilityService(db, clock)

    async def create_appointment(
        self,
        tenant_id: str,
        appointment_data: AppointmentBase,
        booking_source: BookingSource = BookingSource.ADMIN,
    ) -> Appointment:
        """Validate and persist a new booking; ``end_time`` comes from the service."""
        validate_contact_and_raise(
            appointment_data.customer_name,
            appointment_data.customer_phone,
            appointment_data.customer_email,
        )

        location = await get_location(self.db, tenant_id, appointment_data.location_id)
        start = to_local(appointment_data.start_time, location.timezone)

        async with self.locker.hold(tenant_id, appointment_data.staff_id, start.date()):
            staff = await get_staff(self.db, tenant_id, appointment_data.staff_id)
            service = await get_service(self.db, tenant_id, appointment_data.service_id)

            self._check_bookable(location, staff, service)
            if booking_source is BookingSource.PUBLIC and not service.is_public:
                raise InactiveEntityError("service", service.name)

            end = start + timedelta(minutes=service.duration_minutes)
            result = await self._evaluate(tenant_id, location, staff, service, start, end)
            result.unwrap()

            status = getattr(appointment_data, "status", AppointmentStatus.PENDING)
            appointment = Appointment(
                tenant_id=tenant_id,
                location_id=location.id,
                service_id=service.id,
                staff_id=staff.id,
                customer_name=appointment_data.customer_name.strip(),
                customer_phone=appointment_data.customer_phone.strip(),
                customer_email=appointment_data.customer_email,
                start_time=as_utc(start),
                end_time=as_utc(end),
                timezone=location.timezone,
                status=status.value,
                notes=appointment_data.notes,
                booking_source=booking_source.value,
            )
            self.db.add(appointment)
            await self.db.commit()
            await self.db.refresh(appointment)

        logger.info(
            "Appointment created",
            appointment_id=str(appointment.id),
            tenant_id=tenant_id,
            staff_id=str(staff.id),
            start_time=appointment.start_time.isoformat(),
        )
        self._publish(AppointmentEventType.CREATED, appointment)
        return appointment

    async def get_appointment(self, tenant_id: str, appointment_id: UUID) -> Appointment:
        return await get_appointment(self.db, tenant_id, appointment_id)

    async def get_appointments(
        self, tenant_id: str, filters: Optional[AppointmentFilters] = None
    ) -> List[Appointment]:
        """Appointments of a tenant ordered by start time.

        ``start``/``end`` select appointments that start at or after ``start``
        and are over by ``end``.
        """
        query = select(Appointment).where(Appointment.tenant_id == tenant_id)

        if filters:
            conditions = []
            if filters.start:
                conditions.append(Appointment.start_time >= as_utc(filters.start))
            if filters.end:
                conditions.append(Appointment.end_time <= as_utc(filters.end))
            if filters.staff_id:
                conditions.append(Appointment.staff_id == filters.staff_id)
            if filters.service_id:
                conditions.append(Appointment.service_id == filters.service_id)
            if filters.location_id:
                conditions.append(Appointment.location_id == filters.location_id)
            if filters.status:
                conditions.append(Appointment.status == filters.status.value)
            if conditions:
                query = query.where(and_(*conditions))

        query = query.order_by(Appointment.start_time)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def reschedule_appointment(
        self,
        tenant_id: str,
        appointment_id: UUID,
        new_start: datetime,
        new_end: Optional[datetime] = None,
    ) -> Appointment:
        """Move an appointment, re-running every scheduling check.

        Without ``new_end`` the service duration is kept. Cancelled and
        completed appointments cannot be moved.
        """
        appointment = await get_appointment(self.db, tenant_id, appointment_id)
        if not appointment.can_reschedule:
            raise InvalidStatusError(
                f"Cannot reschedule a {appointment.status} appointment",
                status=appointment.status,
            )

        location = await get_location(self.db, tenant_id, appointment.location_id)
        start = to_local(new_start, location.timezone)

        async with self.locker.hold(tenant_id, appointment.staff_id, start.date()):
            staff = await get_staff(self.db, tenant_id, appointment.staff_id)
            service = await get_service(self.db, tenant_id, appointment.service_id)

            if new_end is not None:
                end = to_local(new_end, location.timezone)
            else:
                end = start + timedelta(minutes=service.duration_minutes)

            result = await self._evaluate(
                tenant_id, location, staff, service, start, end, appointment.id
            )
            result.unwrap()

            previous_start = appointment.start_time
            appointment.start_time = as_utc(start)
            appointment.end_time = as_utc(end)
            appointment.timezone = location.timezone
            appointment.reschedule_count = (appointment.reschedule_count or 0) + 1
            await self.db.commit()
            await self.db.refresh(appointment)

        logger.info(
            "Appointment rescheduled",
            appointment_id=str(appointment.id),
            tenant_id=tenant_id,
            previous_start=as_utc(previous_start).isoformat(),
            start_time=as_utc(appointment.start_time).isoformat(),
        )
        self._publish(AppointmentEventType.RESCHEDULED, appointment)
        return appointment

    async def cancel_appointment(self, tenant_id: str, appointment_id: UUID) -> Appointment:
        """Mark as cancelled; the row is kept and the slot frees up."""
        appointment = await get_appointment(self.db, tenant_id, appointment_id)
        if appointment.status == AppointmentStatus.CANCELLED.value:
            return appointment

        appointment.mark_cancelled(self.clock.now())
        await self.db.commit()
        await self.db.refresh(appointment)

        logger.info(
            "Appointment cancelled",
            appointment_id=str(appointment.id),
            tenant_id=tenant_id,
        )
        self._publish(AppointmentEventType.CANCELLED, appointment)
        return appointment

    async def update_appointment(
        self, tenant_id: str, appointment_id: UUID, update_data: AppointmentUpdate
    ) -> Appointment:
        """PATCH: time change first (validated), then status and notes."""
        appointment = await get_appointment(self.db, tenant_id, appointment_id)

        new_status = update_data.status
        if new_status is not None:
            self._check_status_change(appointment, new_status)

        if update_data.start_time is not None:
            appointment = await self.reschedule_appointment(
                tenant_id, appointment_id, update_data.start_time, update_data.end_time
            )

        if new_status is AppointmentStatus.CANCELLED:
            if update_data.notes is not None:
                # cancel_appointment leaves an already cancelled row untouched
                appointment.notes = update_data.notes
                await self.db.commit()
            return await self.cancel_appointment(tenant_id, appointment_id)

        event_type = None
        if new_status is not None and new_status.value != appointment.status:
            appointment.status = new_status.value
            event_type = AppointmentEventType.STATUS_CHANGED
        if update_data.notes is not None:
            appointment.notes = update_data.notes

        if event_type is not None or update_data.notes is not None:
            await self.db.commit()
            await self.db.refresh(appointment)

        if event_type is not None:
            logger.info(
                "Appointment status changed",
                appointment_id=str(appointment.id),
                status=appointment.status,
            )
            self._publish(event_type, appointment)
        return appointment

    async def get_appointment_stats(
        self,
        tenant_id: str,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> AppointmentStats:
        """Count appointments per status."""
        query = (
            select(Appointment.status, func.count(Appointment.id))
            .where(Appointment.tenant_id == tenant_id)
            .group_by(Appointment.status)
        )
        if start_date:
            query = query.where(Appointment.start_time >= as_utc(start_date))
        if end_date:
            query = query.where(Appointment.start_time < as_utc(end_date))

        result = await self.db.execute(query)
        counts = {status: count for status, count in result.all()}

        return AppointmentStats(
            total=sum(counts.values()),
            pending=counts.get(AppointmentStatus.PENDING.value, 0),
            confirmed=counts.get(AppointmentStatus.CONFIRMED.value, 0),
            completed=counts.get(AppointmentStatus.COMPLETED.value, 0),
            cancelled=counts.get(AppointmentStatus.CANCELLED.value, 0),
            no_show=counts.get(AppointmentStatus.NO_SHOW.value, 0),
        )

    async def check_window(
        self, tenant_id: str, request: AppointmentWindowRequest
    ) -> AppointmentWindowResponse:
        """Run the booking checks for a proposed window without saving anything."""
        location = await get_location(self.db, tenant_id, request.location_id)
        staff = await get_staff(self.db, tenant_id, request.staff_id)
        service = await get_service(self.db, tenant_id, request.service_id)

        start = to_local(request.start_time, location.timezone)
        if request.end_time is not None:
            end = to_local(request.end_time, location.timezone)
        else:
            end = start + timedelta(minutes=service.duration_minutes)

        try:
            self._check_bookable(location, staff, service)
        except SchedulingError as exc:
            result = ValidationResult.failure(exc)
        else:
            result = await self._evaluate(
                tenant_id, location, staff, service, start, end,
                request.exclude_appointment_id,
            )
        error = None
        if not result.ok:
            error = ValidationErrorDetail(**result.error.to_dict())

        return AppointmentWindowResponse(
            is_valid=result.ok,
            start_time=start,
            end_time=end,
            duration_minutes=int((end - start).total_seconds() // 60),
            error=error,
        )

    async def _evaluate(
        self,
        tenant_id: str,
        location: Location,
        staff: StaffMember,
        service: Service,
        start: datetime,
        end: datetime,
        exclude_appointment_id: Optional[UUID] = None,
    ) -> ValidationResult[None]:
        result = validate_appointment_window(
            location.weekly_hours,
            staff.schedule_for(location.id),
            service.duration_minutes,
            start,
            end,
            self.clock.now(),
        )
        if not result.ok:
            logger.info(
                "Appointment window rejected",
                code=result.error.code,
                staff_id=str(staff.id),
                start_time=start.isoformat(),
            )
            return result

        zone = resolve_zone(location.timezone)
        busy = await self.availability.busy_intervals(
            tenant_id, staff.id, start.date(), zone, exclude_appointment_id
        )
        occupied_end = end + timedelta(minutes=service.buffer_time_minutes or 0)
        result = check_appointment_overlap(busy, start, occupied_end)
        if not result.ok:
            logger.info(
                "Appointment overlaps an existing booking",
                staff_id=str(staff.id),
                start_time=start.isoformat(),
            )
        return result

    def _check_bookable(
        self, location: Location, staff: StaffMember, service: Service
    ) -> None:
        if not location.is_active:
            raise InactiveEntityError("location", location.name)
        if not staff.is_active:
            raise InactiveEntityError("staff member", staff.name)
        if not service.is_active:
            raise InactiveEntityError("service", service.name)
        if not service.is_offered_at(location.id):
            raise ServiceNotOfferedError(service.name, location.name)
        if not staff.performs(service.id):
            raise StaffNotQualifiedError(staff.name, service.name)

    def _check_status_change(
        self, appointment: Appointment, new_status: AppointmentStatus
    ) -> None:
        if (
            appointment.status == AppointmentStatus.CANCELLED.value
            and new_status is not AppointmentStatus.CANCELLED
        ):
            raise InvalidStatusError(
                "A cancelled appointment cannot be reopened; book a new one",
                status=appointment.status,
                requested=new_status.value,
            )

    def _publish(self, event_type: AppointmentEventType, appointment: Appointment) -> None:
        self.publisher.publish(AppointmentEvent.of(event_type, appointment))
