from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class ServiceBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    duration_minutes: int = Field(..., ge=1)
    buffer_time_minutes: int = Field(0, ge=0)
    price: Decimal = Field(Decimal("0"), ge=0)
    capacity: int = Field(1, ge=1)
    is_active: bool = True
    is_public: bool = True
    color: Optional[str] = Field(None, pattern=r"^#[0-9A-Fa-f]{6}$")


class ServiceCreate(ServiceBase):
    location_ids: List[UUID] = Field(
        default_factory=list, description="Locations offering this service"
    )


class ServiceUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    duration_minutes: Optional[int] = Field(None, ge=1)
    buffer_time_minutes: Optional[int] = Field(None, ge=0)
    price: Optional[Decimal] = Field(None, ge=0)
    capacity: Optional[int] = Field(None, ge=1)
    is_active: Optional[bool] = None
    is_public: Optional[bool] = None
    color: Optional[str] = Field(None, pattern=r"^#[0-9A-Fa-f]{6}$")
    location_ids: Optional[List[UUID]] = None


class Service(ServiceBase):
    id: UUID
    tenant_id: str
    location_ids: List[UUID] = Field(default_factory=list)
    total_duration_minutes: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
