from functools import lru_cache

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.clock import Clock, system_clock
from app.core.database import get_db
from app.core.locks import SlotLocker, build_slot_locker
from app.services.appointment import AppointmentService
from app.services.availability import AvailabilityService
from app.services.events import EventPublisher, build_event_publisher


def get_clock() -> Clock:
    return system_clock


@lru_cache
def get_event_publisher() -> EventPublisher:
    return build_event_publisher()


@lru_cache
def get_slot_locker() -> SlotLocker:
    # One locker per process so in-process locks are shared between requests
    return build_slot_locker()


def get_appointment_service(
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
    publisher: EventPublisher = Depends(get_event_publisher),
    locker: SlotLocker = Depends(get_slot_locker),
) -> AppointmentService:
    return AppointmentService(db, clock=clock, publisher=publisher, locker=locker)


def get_availability_service(
    db: AsyncSession = Depends(get_db), clock: Clock = Depends(get_clock)
) -> AvailabilityService:
    return AvailabilityService(db, clock=clock)
