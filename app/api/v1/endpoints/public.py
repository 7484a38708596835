from datetime import date
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps.booking import get_appointment_service, get_availability_service
from app.api.deps.tenant import TenantContext, get_tenant_from_path
from app.core.config import settings
from app.core.database import get_db
from app.models.appointment import BookingSource
from app.schemas.appointment import Appointment, PublicAppointmentCreate
from app.schemas.location import Location
from app.schemas.scheduling import AvailableSlotsResponse
from app.schemas.service import Service
from app.schemas.staff import Staff
from app.services.appointment import AppointmentService
from app.services.availability import AvailabilityService
from app.services.catalog import ServiceCatalogService
from app.services.location import LocationService
from app.services.staff_management import StaffManagementService

router = APIRouter()


@router.get("/{tenant_id}/locations", response_model=list[Location])
async def get_public_locations(
    db: AsyncSession = Depends(get_db),
    tenant: TenantContext = Depends(get_tenant_from_path),
):
    """Active locations a customer can book at."""
    return await LocationService.get_locations(db, tenant.tenant_id, is_active=True)


@router.get("/{tenant_id}/services", response_model=list[Service])
async def get_public_services(
    location_id: Optional[UUID] = None,
    db: AsyncSession = Depends(get_db),
    tenant: TenantContext = Depends(get_tenant_from_path),
):
    """Active, public services, optionally only those offered at a location."""
    return await ServiceCatalogService.get_services(
        db, tenant.tenant_id, location_id=location_id, is_active=True, is_public=True
    )


@router.get("/{tenant_id}/staff", response_model=list[Staff])
async def get_public_staff(
    location_id: UUID,
    service_id: UUID,
    db: AsyncSession = Depends(get_db),
    tenant: TenantContext = Depends(get_tenant_from_path),
):
    """Active staff scheduled at the location who perform the service."""
    return await StaffManagementService(db).get_staff_members(
        tenant.tenant_id, location_id=location_id, service_id=service_id, is_active=True
    )


@router.get("/{tenant_id}/available-slots", response_model=AvailableSlotsResponse)
async def get_public_available_slots(
    service_id: UUID,
    staff_id: UUID,
    location_id: UUID,
    slot_date: date = Query(..., alias="date"),
    tenant: TenantContext = Depends(get_tenant_from_path),
    availability: AvailabilityService = Depends(get_availability_service),
):
    """Bookable start times on the public page's fixed grid."""
    slots = await availability.get_available_slots(
        tenant.tenant_id,
        location_id,
        staff_id,
        service_id,
        slot_date,
        slot_step=settings.PUBLIC_SLOT_STEP_MINUTES,
        public=True,
    )
    return AvailableSlotsResponse(
        slot_date=slot_date,
        location_id=location_id,
        staff_id=staff_id,
        service_id=service_id,
        slots=slots,
    )


@router.post(
    "/{tenant_id}/appointments",
    response_model=Appointment,
    status_code=status.HTTP_201_CREATED,
)
async def create_public_appointment(
    appointment_data: PublicAppointmentCreate,
    tenant: TenantContext = Depends(get_tenant_from_path),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Book an appointment from the public page; it starts out pending."""
    return await service.create_appointment(
        tenant.tenant_id, appointment_data, booking_source=BookingSource.PUBLIC
    )
