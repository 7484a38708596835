import structlog

from app.core.celery import celery_app

logger = structlog.get_logger(__name__)


@celery_app.task(name="app.tasks.notifications.dispatch_appointment_event")
def dispatch_appointment_event(event: dict) -> dict:
    """Hand an appointment domain event to the external notifier.

    Message formatting and delivery live outside this service; the task only
    records that the event reached the notifications queue.
    """
    logger.info(
        "Appointment event received",
        event_type=event.get("type"),
        appointment_id=event.get("appointment_id"),
        tenant_id=event.get("tenant_id"),
    )
    return event
