from dataclasses import asdict, dataclass
from enum import Enum
from typing import List, Protocol

import structlog

from app.core.config import settings

logger = structlog.get_logger(__name__)


class AppointmentEventType(str, Enum):
    CREATED = "appointment.created"
    RESCHEDULED = "appointment.rescheduled"
    CANCELLED = "appointment.cancelled"
    STATUS_CHANGED = "appointment.status_changed"


@dataclass(frozen=True)
class AppointmentEvent:
    type: str
    appointment_id: str
    tenant_id: str

    @classmethod
    def of(cls, event_type: AppointmentEventType, appointment) -> "AppointmentEvent":
        return cls(
            type=event_type.value,
            appointment_id=str(appointment.id),
            tenant_id=appointment.tenant_id,
        )

    def to_dict(self) -> dict:
        return asdict(self)


class EventPublisher(Protocol):
    def publish(self, event: AppointmentEvent) -> None: ...


class CeleryEventPublisher:
    """Enqueue events on the Celery notifications queue."""

    def publish(self, event: AppointmentEvent) -> None:
        from app.tasks.notifications import dispatch_appointment_event

        try:
            dispatch_appointment_event.delay(event.to_dict())
        except Exception as e:
            # Appointment is already committed; a broker outage must not fail the request
            logger.error(
                "Failed to enqueue appointment event",
                event_type=event.type,
                appointment_id=event.appointment_id,
                error=str(e),
            )
            return

        logger.info(
            "Appointment event enqueued",
            event_type=event.type,
            appointment_id=event.appointment_id,
        )


class LoggingEventPublisher:
    """Used when EVENTS_ENABLED is off: events are only logged."""

    def publish(self, event: AppointmentEvent) -> None:
        logger.info(
            "Appointment event (not dispatched)",
            event_type=event.type,
            appointment_id=event.appointment_id,
            tenant_id=event.tenant_id,
        )


class RecordingEventPublisher:
    """Keeps published events in memory."""

    def __init__(self):
        self.events: List[AppointmentEvent] = []

    def publish(self, event: AppointmentEvent) -> None:
        self.events.append(event)

    @property
    def types(self) -> List[str]:
        return [e.type for e in self.events]


def build_event_publisher() -> EventPublisher:
    if settings.EVENTS_ENABLED:
        return CeleryEventPublisher()
    return LoggingEventPublisher()
