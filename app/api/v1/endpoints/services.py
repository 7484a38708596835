from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps.tenant import TenantContext, get_tenant_from_header
from app.core.database import get_db
from app.schemas.service import Service, ServiceCreate, ServiceUpdate
from app.services.catalog import ServiceCatalogService

router = APIRouter()


@router.get("/", response_model=list[Service])
async def get_services(
    location_id: Optional[UUID] = None,
    is_active: Optional[bool] = None,
    db: AsyncSession = Depends(get_db),
    tenant: TenantContext = Depends(get_tenant_from_header),
):
    """Get services, optionally only those offered at a location."""
    return await ServiceCatalogService.get_services(
        db, tenant.tenant_id, location_id=location_id, is_active=is_active
    )


@router.post("/", response_model=Service, status_code=status.HTTP_201_CREATED)
async def create_service(
    service_data: ServiceCreate,
    db: AsyncSession = Depends(get_db),
    tenant: TenantContext = Depends(get_tenant_from_header),
):
    """Create new service."""
    return await ServiceCatalogService.create_service(db, tenant.tenant_id, service_data)


@router.get("/{service_id}", response_model=Service)
async def get_service(
    service_id: UUID,
    db: AsyncSession = Depends(get_db),
    tenant: TenantContext = Depends(get_tenant_from_header),
):
    return await ServiceCatalogService.get_service(db, tenant.tenant_id, service_id)


@router.put("/{service_id}", response_model=Service)
async def update_service(
    service_id: UUID,
    service_data: ServiceUpdate,
    db: AsyncSession = Depends(get_db),
    tenant: TenantContext = Depends(get_tenant_from_header),
):
    """Update service; ``location_ids`` replaces the set of offering locations."""
    return await ServiceCatalogService.update_service(
        db, tenant.tenant_id, service_id, service_data
    )


@router.delete("/{service_id}")
async def delete_service(
    service_id: UUID,
    db: AsyncSession = Depends(get_db),
    tenant: TenantContext = Depends(get_tenant_from_header),
):
    """Delete service."""
    if await ServiceCatalogService.delete_service(db, tenant.tenant_id, service_id):
        return {"message": "Service deleted successfully"}
    return {"message": "Service has appointments and was deactivated"}
