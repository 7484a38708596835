from datetime import date, datetime, time, timedelta
from typing import Iterable, Iterator, List, NamedTuple, Optional
from uuid import UUID
import logging

from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.clock import Clock, system_clock
from app.models.appointment import Appointment, AppointmentStatus
from app.models.service import Service
from app.schemas.scheduling import AvailableSlot, WeeklySchedule, blocks_for, day_of_week
from app.services.conflicts import BusyInterval, find_conflicting_appointment
from app.services.lookups import get_location, get_service, get_staff
from app.utils.time_ranges import contains
from app.utils.timezones import as_utc, resolve_zone
from app.utils.validation import InactiveEntityError


logger = logging.getLogger(__name__)


class CandidateSlot(NamedTuple):
    start: datetime
    end: datetime
    staff_id: object


def resolve_slots(
    location_hours: WeeklySchedule,
    staff_schedule: Optional[WeeklySchedule],
    service,
    on_date: date,
    staff_id,
    slot_step: Optional[int] = None,
    busy: Iterable[BusyInterval] = (),
    tzinfo=None,
) -> Iterator[CandidateSlot]:
    """Yield the bookable start times for one staff member on one date.

    ``service`` needs ``duration_minutes`` and ``buffer_time_minutes``. A
    candidate must leave room for the buffer before the staff block ends, and
    its ``[start, start + duration]`` must also sit inside one location block
    in case the staff schedule went stale against the location hours.

    ``slot_step`` defaults to the service duration. Candidates whose occupied
    time (duration plus buffer) overlaps a ``busy`` interval are skipped.
    Filtering out past times is the caller's job.
    """
    day = day_of_week(on_date)

    location_blocks = blocks_for(location_hours, day)
    if not location_blocks:
        logger.debug(f"Location closed on {on_date}")
        return

    if staff_schedule is None:
        logger.debug(f"Staff {staff_id} has no schedule at this location")
        return

    staff_blocks = sorted(blocks_for(staff_schedule, day), key=lambda b: b.start_minutes)
    if not staff_blocks:
        logger.debug(f"Staff {staff_id} not working on {on_date}")
        return

    duration = service.duration_minutes
    buffer = service.buffer_time_minutes or 0
    step = slot_step or duration
    if step < 1:
        raise ValueError("slot step must be at least one minute")

    busy = list(busy)
    midnight = datetime.combine(on_date, time(0, 0), tzinfo=tzinfo)

    for block in staff_blocks:
        start = block.start_minutes
        while start + duration + buffer <= block.end_minutes:
            end = start + duration
            in_location = any(
                contains(lb.start_minutes, lb.end_minutes, start, end)
                for lb in location_blocks
            )
            if in_location:
                slot_start = midnight + timedelta(minutes=start)
                occupied_end = slot_start + timedelta(minutes=duration + buffer)
                if find_conflicting_appointment(busy, slot_start, occupied_end) is None:
                    yield CandidateSlot(
                        slot_start, slot_start + timedelta(minutes=duration), staff_id
                    )
            start += step


class AvailabilityService:
    """Loads entities and existing bookings, then runs ``resolve_slots``."""

    def __init__(self, db: AsyncSession, clock: Clock = system_clock):
        self.db = db
        self.clock = clock

    async def get_available_slots(
        self,
        tenant_id: str,
        location_id: UUID,
        staff_id: UUID,
        service_id: UUID,
        on_date: date,
        slot_step: Optional[int] = None,
        public: bool = False,
    ) -> List[AvailableSlot]:
        location = await get_location(self.db, tenant_id, location_id)
        staff = await get_staff(self.db, tenant_id, staff_id)
        service = await get_service(self.db, tenant_id, service_id)

        if public:
            for entity, obj in (
                ("location", location),
                ("staff member", staff),
                ("service", service),
            ):
                if not obj.is_active:
                    raise InactiveEntityError(entity, obj.name)
            if not service.is_public:
                raise InactiveEntityError("service", service.name)

        if not service.is_offered_at(location.id) or not staff.performs(service.id):
            logger.debug(
                f"Staff {staff.id} / service {service.id} not bookable at {location.id}"
            )
            return []

        zone = resolve_zone(location.timezone)
        busy = await self.busy_intervals(tenant_id, staff.id, on_date, zone)

        now = self.clock.now()
        slots = [
            AvailableSlot(start_time=c.start, end_time=c.end, staff_id=c.staff_id)
            for c in resolve_slots(
                location.weekly_hours,
                staff.schedule_for(location.id),
                service,
                on_date,
                staff.id,
                slot_step=slot_step,
                busy=busy,
                tzinfo=zone,
            )
            if c.start >= now
        ]
        logger.info(f"Found {len(slots)} slots for staff {staff.id} on {on_date}")
        return slots

    async def busy_intervals(
        self,
        tenant_id: str,
        staff_id: UUID,
        on_date: date,
        zone,
        exclude_appointment_id: Optional[UUID] = None,
    ) -> List[BusyInterval]:
        """Non-cancelled appointments of the staff member touching ``on_date``.

        Each interval is extended by its service's buffer time and expressed
        in ``zone``.
        """
        day_start = datetime.combine(on_date, time(0, 0), tzinfo=zone)
        # One day of slack either side covers long appointments and DST shifts
        window_start = as_utc(day_start - timedelta(days=1))
        window_end = as_utc(day_start + timedelta(days=2))

        conditions = [
            Appointment.tenant_id == tenant_id,
            Appointment.staff_id == staff_id,
            Appointment.status != AppointmentStatus.CANCELLED.value,
            Appointment.start_time < window_end,
            Appointment.end_time > window_start,
        ]
        if exclude_appointment_id is not None:
            conditions.append(Appointment.id != exclude_appointment_id)

        query = (
            select(Appointment, Service.buffer_time_minutes)
            .join(Service, Service.id == Appointment.service_id)
            .where(and_(*conditions))
            .order_by(Appointment.start_time)
        )
        result = await self.db.execute(query)

        intervals = []
        for appointment, buffer in result.all():
            start = as_utc(appointment.start_time).astimezone(zone)
            end = as_utc(appointment.end_time).astimezone(zone)
            intervals.append(
                BusyInterval(appointment.id, start, end + timedelta(minutes=buffer or 0))
            )
        return intervals
