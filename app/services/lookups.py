from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.appointment import Appointment
from app.models.location import Location
from app.models.service import Service
from app.models.staff import StaffMember
from app.utils.validation import NotFoundError


async def _get_scoped(db: AsyncSession, model, entity: str, tenant_id: str, entity_id):
    result = await db.execute(
        select(model).where(model.id == entity_id, model.tenant_id == tenant_id)
    )
    obj = result.scalar_one_or_none()
    if obj is None:
        raise NotFoundError(entity, entity_id)
    return obj


async def get_location(db: AsyncSession, tenant_id: str, location_id: UUID) -> Location:
    return await _get_scoped(db, Location, "location", tenant_id, location_id)


async def get_staff(db: AsyncSession, tenant_id: str, staff_id: UUID) -> StaffMember:
    return await _get_scoped(db, StaffMember, "staff member", tenant_id, staff_id)


async def get_service(db: AsyncSession, tenant_id: str, service_id: UUID) -> Service:
    return await _get_scoped(db, Service, "service", tenant_id, service_id)


async def get_appointment(
    db: AsyncSession, tenant_id: str, appointment_id: UUID
) -> Appointment:
    return await _get_scoped(db, Appointment, "appointment", tenant_id, appointment_id)
