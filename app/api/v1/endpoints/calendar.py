from datetime import date
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from app.api.deps.booking import get_appointment_service, get_availability_service
from app.api.deps.tenant import TenantContext, get_tenant_from_header
from app.schemas.scheduling import (
    AppointmentWindowRequest,
    AppointmentWindowResponse,
    AvailableSlotsResponse,
)
from app.services.appointment import AppointmentService
from app.services.availability import AvailabilityService

router = APIRouter()


@router.get("/available-slots", response_model=AvailableSlotsResponse)
async def get_available_slots(
    service_id: UUID,
    staff_id: UUID,
    location_id: UUID,
    slot_date: date = Query(..., alias="date"),
    step: Optional[int] = Query(
        None, ge=1, le=24 * 60, description="Minutes between slots; defaults to the service duration"
    ),
    tenant: TenantContext = Depends(get_tenant_from_header),
    availability: AvailabilityService = Depends(get_availability_service),
):
    """Bookable start times for one staff member, service and location on a date."""
    slots = await availability.get_available_slots(
        tenant.tenant_id, location_id, staff_id, service_id, slot_date, slot_step=step
    )
    return AvailableSlotsResponse(
        slot_date=slot_date,
        location_id=location_id,
        staff_id=staff_id,
        service_id=service_id,
        slots=slots,
    )


@router.post("/validate", response_model=AppointmentWindowResponse)
async def validate_appointment_window(
    request: AppointmentWindowRequest,
    tenant: TenantContext = Depends(get_tenant_from_header),
    appointments: AppointmentService = Depends(get_appointment_service),
):
    """Check a proposed appointment time without booking it."""
    return await appointments.check_window(tenant.tenant_id, request)
