from typing import Optional
from uuid import UUID

import structlog
from sqlalchemy import exists, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.appointment import Appointment
from app.models.location import Location
from app.models.service import Service, ServiceLocation
from app.models.staff import StaffLocationSchedule, StaffMember
from app.schemas.location import LocationCreate, LocationUpdate
from app.services.lookups import get_location

logger = structlog.get_logger(__name__)


class LocationService:
    """Business logic for locations and their operating hours."""

    @staticmethod
    async def get_locations(
        db: AsyncSession, tenant_id: str, is_active: Optional[bool] = None
    ) -> list[Location]:
        stmt = select(Location).filter(Location.tenant_id == tenant_id)
        if is_active is not None:
            stmt = stmt.filter(Location.is_active == is_active)
        stmt = stmt.order_by(Location.name)

        result = await db.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def get_location(db: AsyncSession, tenant_id: str, location_id: UUID) -> Location:
        return await get_location(db, tenant_id, location_id)

    @staticmethod
    async def create_location(
        db: AsyncSession, tenant_id: str, location_data: LocationCreate
    ) -> Location:
        data = location_data.model_dump(exclude={"operating_hours"})
        location = Location(
            tenant_id=tenant_id,
            operating_hours=location_data.operating_hours.to_storage(),
            **data,
        )
        db.add(location)
        await db.commit()
        await db.refresh(location)

        logger.info("Location created", location_id=str(location.id), tenant_id=tenant_id)
        return location

    @staticmethod
    async def update_location(
        db: AsyncSession,
        tenant_id: str,
        location_id: UUID,
        location_data: LocationUpdate,
    ) -> Location:
        """Partial update.

        New operating hours are not checked against existing staff schedules;
        booking checks still require both to agree.
        """
        location = await get_location(db, tenant_id, location_id)

        update_data = location_data.model_dump(exclude_unset=True)
        if "operating_hours" in update_data:
            update_data.pop("operating_hours")
            if location_data.operating_hours is not None:
                location.operating_hours = location_data.operating_hours.to_storage()

        for field, value in update_data.items():
            if value is None and field in ("name", "timezone", "is_active"):
                continue
            setattr(location, field, value)

        await db.commit()
        await db.refresh(location)
        return location

    @staticmethod
    async def delete_location(db: AsyncSession, tenant_id: str, location_id: UUID) -> bool:
        """Delete a location and every service offering and staff schedule at it.

        A location with appointments is deactivated instead, so the booking
        history keeps its reference. Returns True when the row was removed.
        """
        location = await get_location(db, tenant_id, location_id)

        services = await db.execute(
            select(Service)
            .join(ServiceLocation, ServiceLocation.service_id == Service.id)
            .where(ServiceLocation.location_id == location.id)
        )
        for service in services.scalars().unique():
            service.service_locations = [
                sl for sl in service.service_locations if sl.location_id != location.id
            ]

        staff_members = await db.execute(
            select(StaffMember)
            .join(StaffLocationSchedule, StaffLocationSchedule.staff_id == StaffMember.id)
            .where(StaffLocationSchedule.location_id == location.id)
        )
        for member in staff_members.scalars().unique():
            member.location_schedules = [
                ls for ls in member.location_schedules if ls.location_id != location.id
            ]

        # Join rows go first; nothing on Location cascades to them
        await db.flush()

        has_appointments = await db.scalar(
            select(exists().where(Appointment.location_id == location.id))
        )
        if has_appointments:
            location.is_active = False
            await db.commit()
            logger.info("Location deactivated", location_id=str(location.id))
            return False

        await db.delete(location)
        await db.commit()
        logger.info("Location deleted", location_id=str(location_id), tenant_id=tenant_id)
        return True
