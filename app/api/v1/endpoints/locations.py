from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps.tenant import TenantContext, get_tenant_from_header
from app.core.database import get_db
from app.schemas.location import Location, LocationCreate, LocationUpdate
from app.services.location import LocationService

router = APIRouter()


@router.get("/", response_model=list[Location])
async def get_locations(
    is_active: Optional[bool] = None,
    db: AsyncSession = Depends(get_db),
    tenant: TenantContext = Depends(get_tenant_from_header),
):
    """List the tenant's locations."""
    return await LocationService.get_locations(db, tenant.tenant_id, is_active)


@router.post("/", response_model=Location, status_code=status.HTTP_201_CREATED)
async def create_location(
    location_data: LocationCreate,
    db: AsyncSession = Depends(get_db),
    tenant: TenantContext = Depends(get_tenant_from_header),
):
    """Create a location with its weekly operating hours."""
    return await LocationService.create_location(db, tenant.tenant_id, location_data)


@router.get("/{location_id}", response_model=Location)
async def get_location(
    location_id: UUID,
    db: AsyncSession = Depends(get_db),
    tenant: TenantContext = Depends(get_tenant_from_header),
):
    return await LocationService.get_location(db, tenant.tenant_id, location_id)


@router.put("/{location_id}", response_model=Location)
async def update_location(
    location_id: UUID,
    location_data: LocationUpdate,
    db: AsyncSession = Depends(get_db),
    tenant: TenantContext = Depends(get_tenant_from_header),
):
    return await LocationService.update_location(
        db, tenant.tenant_id, location_id, location_data
    )


@router.delete("/{location_id}")
async def delete_location(
    location_id: UUID,
    db: AsyncSession = Depends(get_db),
    tenant: TenantContext = Depends(get_tenant_from_header),
):
    """Delete location; its service offerings and staff schedules go with it."""
    if await LocationService.delete_location(db, tenant.tenant_id, location_id):
        return {"message": "Location deleted successfully"}
    return {"message": "Location has appointments and was deactivated"}
