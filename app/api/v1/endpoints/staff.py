from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Path, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps.tenant import TenantContext, get_tenant_from_header
from app.core.database import get_db
from app.schemas.scheduling import ScheduleBlockEdit, ScheduleDayToggle, WeeklySchedule
from app.schemas.staff import Staff, StaffCreate, StaffUpdate
from app.services.staff_management import StaffManagementService

router = APIRouter()

DayPath = Path(..., ge=0, le=6, description="Day of week, 0 = Sunday")


@router.get("/", response_model=list[Staff])
async def get_staff_members(
    location_id: Optional[UUID] = None,
    service_id: Optional[UUID] = None,
    is_active: Optional[bool] = None,
    db: AsyncSession = Depends(get_db),
    tenant: TenantContext = Depends(get_tenant_from_header),
):
    """List staff, optionally only those working at a location and/or performing a service."""
    return await StaffManagementService(db).get_staff_members(
        tenant.tenant_id, location_id=location_id, service_id=service_id, is_active=is_active
    )


@router.post("/", response_model=Staff, status_code=status.HTTP_201_CREATED)
async def create_staff(
    staff_data: StaffCreate,
    db: AsyncSession = Depends(get_db),
    tenant: TenantContext = Depends(get_tenant_from_header),
):
    """Create a staff member; schedules must fit their locations' hours."""
    return await StaffManagementService(db).create_staff(tenant.tenant_id, staff_data)


@router.get("/{staff_id}", response_model=Staff)
async def get_staff(
    staff_id: UUID,
    db: AsyncSession = Depends(get_db),
    tenant: TenantContext = Depends(get_tenant_from_header),
):
    return await StaffManagementService(db).get_staff(tenant.tenant_id, staff_id)


@router.put("/{staff_id}", response_model=Staff)
async def update_staff(
    staff_id: UUID,
    staff_data: StaffUpdate,
    db: AsyncSession = Depends(get_db),
    tenant: TenantContext = Depends(get_tenant_from_header),
):
    return await StaffManagementService(db).update_staff(
        tenant.tenant_id, staff_id, staff_data
    )


@router.delete("/{staff_id}")
async def delete_staff(
    staff_id: UUID,
    db: AsyncSession = Depends(get_db),
    tenant: TenantContext = Depends(get_tenant_from_header),
):
    if await StaffManagementService(db).delete_staff(tenant.tenant_id, staff_id):
        return {"message": "Staff member deleted successfully"}
    return {"message": "Staff member has appointments and was deactivated"}


# Per-location weekly schedule editing
@router.get("/{staff_id}/schedules/{location_id}", response_model=WeeklySchedule)
async def get_staff_schedule(
    staff_id: UUID,
    location_id: UUID,
    db: AsyncSession = Depends(get_db),
    tenant: TenantContext = Depends(get_tenant_from_header),
):
    return await StaffManagementService(db).get_location_schedule(
        tenant.tenant_id, staff_id, location_id
    )


@router.put(
    "/{staff_id}/schedules/{location_id}/days/{day}", response_model=WeeklySchedule
)
async def toggle_schedule_day(
    staff_id: UUID,
    location_id: UUID,
    toggle: ScheduleDayToggle,
    day: int = DayPath,
    db: AsyncSession = Depends(get_db),
    tenant: TenantContext = Depends(get_tenant_from_header),
):
    """Enable a day (one block spanning the location's hours) or disable it."""
    return await StaffManagementService(db).toggle_day(
        tenant.tenant_id, staff_id, location_id, day, toggle.enabled
    )


@router.post(
    "/{staff_id}/schedules/{location_id}/days/{day}/blocks",
    response_model=WeeklySchedule,
)
async def add_schedule_block(
    staff_id: UUID,
    location_id: UUID,
    day: int = DayPath,
    db: AsyncSession = Depends(get_db),
    tenant: TenantContext = Depends(get_tenant_from_header),
):
    """Add a block after the latest one, up to the location's closing time."""
    return await StaffManagementService(db).add_block(
        tenant.tenant_id, staff_id, location_id, day
    )


@router.patch(
    "/{staff_id}/schedules/{location_id}/days/{day}/blocks/{index}",
    response_model=WeeklySchedule,
)
async def update_schedule_block(
    staff_id: UUID,
    location_id: UUID,
    edit: ScheduleBlockEdit,
    day: int = DayPath,
    index: int = Path(..., ge=0),
    db: AsyncSession = Depends(get_db),
    tenant: TenantContext = Depends(get_tenant_from_header),
):
    """Move the start or end of one block; rejected edits leave the schedule unchanged."""
    return await StaffManagementService(db).update_block(
        tenant.tenant_id, staff_id, location_id, day, index, edit.field, edit.value
    )


@router.delete(
    "/{staff_id}/schedules/{location_id}/days/{day}/blocks/{index}",
    response_model=WeeklySchedule,
)
async def remove_schedule_block(
    staff_id: UUID,
    location_id: UUID,
    day: int = DayPath,
    index: int = Path(..., ge=0),
    db: AsyncSession = Depends(get_db),
    tenant: TenantContext = Depends(get_tenant_from_header),
):
    return await StaffManagementService(db).remove_block(
        tenant.tenant_id, staff_id, location_id, day, index
    )
