from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from app.api.deps.booking import get_appointment_service
from app.api.deps.tenant import TenantContext, get_tenant_from_header
from app.schemas.appointment import (
    Appointment,
    AppointmentCreate,
    AppointmentFilters,
    AppointmentList,
    AppointmentReschedule,
    AppointmentStats,
    AppointmentStatus,
    AppointmentUpdate,
)
from app.services.appointment import AppointmentService

router = APIRouter()


@router.post("/", response_model=Appointment, status_code=status.HTTP_201_CREATED)
async def create_appointment(
    appointment_data: AppointmentCreate,
    tenant: TenantContext = Depends(get_tenant_from_header),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Create new appointment; end time is derived from the service duration."""
    return await service.create_appointment(tenant.tenant_id, appointment_data)


@router.get("/", response_model=AppointmentList)
async def get_appointments(
    start: Optional[datetime] = Query(None, description="Appointments starting at or after"),
    end: Optional[datetime] = Query(None, description="Appointments ending at or before"),
    staff_id: Optional[UUID] = Query(None),
    service_id: Optional[UUID] = Query(None),
    location_id: Optional[UUID] = Query(None),
    status: Optional[AppointmentStatus] = Query(None),
    tenant: TenantContext = Depends(get_tenant_from_header),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Get appointments ordered by start time."""
    filters = AppointmentFilters(
        start=start,
        end=end,
        staff_id=staff_id,
        service_id=service_id,
        location_id=location_id,
        status=status,
    )
    appointments = await service.get_appointments(tenant.tenant_id, filters)
    return AppointmentList(
        appointments=[Appointment.model_validate(a) for a in appointments],
        total=len(appointments),
    )


@router.get("/stats", response_model=AppointmentStats)
async def get_appointment_stats(
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    tenant: TenantContext = Depends(get_tenant_from_header),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Get appointment counts per status."""
    return await service.get_appointment_stats(tenant.tenant_id, start_date, end_date)


@router.get("/{appointment_id}", response_model=Appointment)
async def get_appointment(
    appointment_id: UUID,
    tenant: TenantContext = Depends(get_tenant_from_header),
    service: AppointmentService = Depends(get_appointment_service),
):
    return await service.get_appointment(tenant.tenant_id, appointment_id)


@router.patch("/{appointment_id}", response_model=Appointment)
async def update_appointment(
    appointment_id: UUID,
    update_data: AppointmentUpdate,
    tenant: TenantContext = Depends(get_tenant_from_header),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Update time, status or notes; a time change is validated like a new booking."""
    return await service.update_appointment(tenant.tenant_id, appointment_id, update_data)


@router.post("/{appointment_id}/reschedule", response_model=Appointment)
async def reschedule_appointment(
    appointment_id: UUID,
    reschedule_data: AppointmentReschedule,
    tenant: TenantContext = Depends(get_tenant_from_header),
    service: AppointmentService = Depends(get_appointment_service),
):
    return await service.reschedule_appointment(
        tenant.tenant_id, appointment_id, reschedule_data.start_time
    )


@router.post("/{appointment_id}/cancel", response_model=Appointment)
async def cancel_appointment(
    appointment_id: UUID,
    tenant: TenantContext = Depends(get_tenant_from_header),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Cancel appointment; the record is kept and its slot becomes free."""
    return await service.cancel_appointment(tenant.tenant_id, appointment_id)
