from typing import Dict, Optional
from uuid import UUID

import structlog
from sqlalchemy import exists, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.appointment import Appointment
from app.models.location import Location
from app.models.staff import StaffLocationSchedule, StaffMember
from app.models.staff_service import StaffService
from app.schemas.scheduling import WeeklySchedule
from app.schemas.staff import StaffCreate, StaffUpdate
from app.services import schedule_editing
from app.services.conflicts import validate_staff_schedule
from app.services.lookups import get_location, get_service, get_staff
from app.utils.validation import NotFoundError, ValidationResult

logger = structlog.get_logger(__name__)


class StaffManagementService:
    def __init__(self, db: AsyncSession):
        self.db = db

    # Staff CRUD Operations
    async def get_staff_members(
        self,
        tenant_id: str,
        location_id: Optional[UUID] = None,
        service_id: Optional[UUID] = None,
        is_active: Optional[bool] = None,
    ) -> list[StaffMember]:
        """Staff of a tenant, optionally only those working at a location or performing a service."""
        query = select(StaffMember).where(StaffMember.tenant_id == tenant_id)
        if location_id is not None:
            query = query.join(
                StaffLocationSchedule, StaffLocationSchedule.staff_id == StaffMember.id
            ).where(StaffLocationSchedule.location_id == location_id)
        if service_id is not None:
            query = query.join(
                StaffService, StaffService.staff_id == StaffMember.id
            ).where(StaffService.service_id == service_id)
        if is_active is not None:
            query = query.where(StaffMember.is_active == is_active)
        query = query.order_by(StaffMember.name)

        result = await self.db.execute(query)
        return list(result.scalars().unique().all())

    async def get_staff(self, tenant_id: str, staff_id: UUID) -> StaffMember:
        return await get_staff(self.db, tenant_id, staff_id)

    async def create_staff(self, tenant_id: str, staff_data: StaffCreate) -> StaffMember:
        """Create a staff member with their services and per-location schedules.

        Each schedule must fit inside the operating hours of its location.
        """
        await self._check_services(tenant_id, staff_data.service_ids)
        await self._check_schedules(tenant_id, staff_data.schedules_by_location)

        staff = StaffMember(
            tenant_id=tenant_id,
            **staff_data.model_dump(exclude={"service_ids", "schedules_by_location"}),
        )
        staff.staff_services = [
            StaffService(tenant_id=tenant_id, service_id=service_id)
            for service_id in dict.fromkeys(staff_data.service_ids)
        ]
        staff.location_schedules = [
            StaffLocationSchedule(
                tenant_id=tenant_id,
                location_id=location_id,
                schedule=schedule.to_storage(),
            )
            for location_id, schedule in staff_data.schedules_by_location.items()
        ]
        self.db.add(staff)
        await self.db.commit()
        await self.db.refresh(staff)

        logger.info("Staff member created", staff_id=str(staff.id), tenant_id=tenant_id)
        return staff

    async def update_staff(
        self, tenant_id: str, staff_id: UUID, staff_data: StaffUpdate
    ) -> StaffMember:
        staff = await get_staff(self.db, tenant_id, staff_id)

        update_data = staff_data.model_dump(
            exclude_unset=True, exclude={"service_ids", "schedules_by_location"}
        )
        for field, value in update_data.items():
            if value is None and field in ("name", "is_active"):
                continue
            setattr(staff, field, value)

        if staff_data.service_ids is not None:
            await self._check_services(tenant_id, staff_data.service_ids)
            wanted = list(dict.fromkeys(staff_data.service_ids))
            kept = [ss for ss in staff.staff_services if ss.service_id in wanted]
            present = {ss.service_id for ss in kept}
            staff.staff_services = kept + [
                StaffService(tenant_id=tenant_id, service_id=service_id)
                for service_id in wanted
                if service_id not in present
            ]

        if staff_data.schedules_by_location is not None:
            schedules = staff_data.schedules_by_location
            await self._check_schedules(tenant_id, schedules)

            # Update rows in place; replacing them would trip the unique constraint
            kept = []
            for row in staff.location_schedules:
                if row.location_id in schedules:
                    row.schedule = schedules[row.location_id].to_storage()
                    kept.append(row)
            present = {row.location_id for row in kept}
            staff.location_schedules = kept + [
                StaffLocationSchedule(
                    tenant_id=tenant_id,
                    location_id=location_id,
                    schedule=schedule.to_storage(),
                )
                for location_id, schedule in schedules.items()
                if location_id not in present
            ]

        await self.db.commit()
        await self.db.refresh(staff)
        return staff

    async def delete_staff(self, tenant_id: str, staff_id: UUID) -> bool:
        """Delete a staff member, or deactivate them when they have appointments."""
        staff = await get_staff(self.db, tenant_id, staff_id)

        has_appointments = await self.db.scalar(
            select(exists().where(Appointment.staff_id == staff.id))
        )
        if has_appointments:
            staff.is_active = False
            await self.db.commit()
            logger.info("Staff member deactivated", staff_id=str(staff.id))
            return False

        await self.db.delete(staff)
        await self.db.commit()
        logger.info("Staff member deleted", staff_id=str(staff_id), tenant_id=tenant_id)
        return True

    # Schedule editing
    async def get_location_schedule(
        self, tenant_id: str, staff_id: UUID, location_id: UUID
    ) -> WeeklySchedule:
        staff = await get_staff(self.db, tenant_id, staff_id)
        await get_location(self.db, tenant_id, location_id)
        return staff.schedule_for(location_id) or WeeklySchedule.closed()

    async def toggle_day(
        self,
        tenant_id: str,
        staff_id: UUID,
        location_id: UUID,
        day: int,
        enabled: bool,
    ) -> WeeklySchedule:
        return await self._edit_schedule(
            tenant_id,
            staff_id,
            location_id,
            lambda location, current: schedule_editing.toggle_day(
                location.weekly_hours, current, day, enabled
            ),
        )

    async def add_block(
        self, tenant_id: str, staff_id: UUID, location_id: UUID, day: int
    ) -> WeeklySchedule:
        return await self._edit_schedule(
            tenant_id,
            staff_id,
            location_id,
            lambda location, current: schedule_editing.add_block(
                location.weekly_hours, current, day
            ),
        )

    async def remove_block(
        self, tenant_id: str, staff_id: UUID, location_id: UUID, day: int, index: int
    ) -> WeeklySchedule:
        return await self._edit_schedule(
            tenant_id,
            staff_id,
            location_id,
            lambda location, current: schedule_editing.remove_block(current, day, index),
        )

    async def update_block(
        self,
        tenant_id: str,
        staff_id: UUID,
        location_id: UUID,
        day: int,
        index: int,
        field: str,
        value: str,
    ) -> WeeklySchedule:
        return await self._edit_schedule(
            tenant_id,
            staff_id,
            location_id,
            lambda location, current: schedule_editing.with_block_updated(
                location.weekly_hours, current, day, index, field, value
            ),
        )

    async def _edit_schedule(self, tenant_id: str, staff_id: UUID, location_id: UUID, edit):
        """Apply a copy-on-write edit and store the result; nothing is saved on failure."""
        staff = await get_staff(self.db, tenant_id, staff_id)
        location = await get_location(self.db, tenant_id, location_id)
        current = staff.schedule_for(location.id) or WeeklySchedule.closed()

        try:
            result: ValidationResult[WeeklySchedule] = edit(location, current)
        except IndexError:
            raise NotFoundError("time block", "at that position")
        updated = result.unwrap()

        row = next(
            (ls for ls in staff.location_schedules if ls.location_id == location.id), None
        )
        if row is None:
            staff.location_schedules.append(
                StaffLocationSchedule(
                    tenant_id=tenant_id,
                    location_id=location.id,
                    schedule=updated.to_storage(),
                )
            )
        else:
            row.schedule = updated.to_storage()

        await self.db.commit()
        logger.info(
            "Staff schedule updated",
            staff_id=str(staff.id),
            location_id=str(location.id),
        )
        return updated

    async def _check_services(self, tenant_id: str, service_ids) -> None:
        for service_id in set(service_ids):
            await get_service(self.db, tenant_id, service_id)

    async def _check_schedules(
        self, tenant_id: str, schedules: Dict[UUID, WeeklySchedule]
    ) -> None:
        for location_id, schedule in schedules.items():
            location: Location = await get_location(self.db, tenant_id, location_id)
            validate_staff_schedule(location.weekly_hours, schedule).unwrap()
