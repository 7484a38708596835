from typing import Optional
from uuid import UUID

import structlog
from sqlalchemy import exists, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.appointment import Appointment
from app.models.service import Service, ServiceLocation
from app.models.staff import StaffMember
from app.models.staff_service import StaffService
from app.schemas.service import ServiceCreate, ServiceUpdate
from app.services.lookups import get_location, get_service

logger = structlog.get_logger(__name__)


class ServiceCatalogService:
    """Business logic for bookable services and the locations offering them."""

    @staticmethod
    async def get_services(
        db: AsyncSession,
        tenant_id: str,
        location_id: Optional[UUID] = None,
        is_active: Optional[bool] = None,
        is_public: Optional[bool] = None,
    ) -> list[Service]:
        """Get services, optionally only those offered at ``location_id``."""
        stmt = select(Service).filter(Service.tenant_id == tenant_id)
        if location_id is not None:
            stmt = stmt.join(
                ServiceLocation, ServiceLocation.service_id == Service.id
            ).filter(ServiceLocation.location_id == location_id)
        if is_active is not None:
            stmt = stmt.filter(Service.is_active == is_active)
        if is_public is not None:
            stmt = stmt.filter(Service.is_public == is_public)
        stmt = stmt.order_by(Service.name)

        result = await db.execute(stmt)
        return list(result.scalars().unique().all())

    @staticmethod
    async def get_service(db: AsyncSession, tenant_id: str, service_id: UUID) -> Service:
        return await get_service(db, tenant_id, service_id)

    @staticmethod
    async def create_service(
        db: AsyncSession, tenant_id: str, service_data: ServiceCreate
    ) -> Service:
        for location_id in set(service_data.location_ids):
            await get_location(db, tenant_id, location_id)

        service = Service(
            tenant_id=tenant_id,
            **service_data.model_dump(exclude={"location_ids"}),
        )
        service.service_locations = [
            ServiceLocation(tenant_id=tenant_id, location_id=location_id)
            for location_id in dict.fromkeys(service_data.location_ids)
        ]
        db.add(service)
        await db.commit()
        await db.refresh(service)

        logger.info("Service created", service_id=str(service.id), tenant_id=tenant_id)
        return service

    @staticmethod
    async def update_service(
        db: AsyncSession, tenant_id: str, service_id: UUID, service_data: ServiceUpdate
    ) -> Service:
        service = await get_service(db, tenant_id, service_id)

        update_data = service_data.model_dump(exclude_unset=True)
        location_ids = update_data.pop("location_ids", None)

        for field, value in update_data.items():
            if value is None and field not in ("description", "color"):
                continue
            setattr(service, field, value)

        if location_ids is not None:
            for location_id in set(location_ids):
                await get_location(db, tenant_id, location_id)
            wanted = list(dict.fromkeys(location_ids))
            kept = [sl for sl in service.service_locations if sl.location_id in wanted]
            present = {sl.location_id for sl in kept}
            service.service_locations = kept + [
                ServiceLocation(tenant_id=tenant_id, location_id=location_id)
                for location_id in wanted
                if location_id not in present
            ]

        await db.commit()
        await db.refresh(service)
        return service

    @staticmethod
    async def delete_service(db: AsyncSession, tenant_id: str, service_id: UUID) -> bool:
        """Delete a service, or deactivate it when appointments reference it.

        Staff assignments for the service are removed either way. Returns True
        when the row was removed.
        """
        service = await get_service(db, tenant_id, service_id)

        staff_members = await db.execute(
            select(StaffMember)
            .join(StaffService, StaffService.staff_id == StaffMember.id)
            .where(StaffService.service_id == service.id)
        )
        for member in staff_members.scalars().unique():
            member.staff_services = [
                ss for ss in member.staff_services if ss.service_id != service.id
            ]

        has_appointments = await db.scalar(
            select(exists().where(Appointment.service_id == service.id))
        )
        if has_appointments:
            service.is_active = False
            await db.commit()
            logger.info("Service deactivated", service_id=str(service.id))
            return False

        await db.delete(service)
        await db.commit()
        logger.info("Service deleted", service_id=str(service_id), tenant_id=tenant_id)
        return True
