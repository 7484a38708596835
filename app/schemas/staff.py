from datetime import datetime
from typing import Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from app.schemas.scheduling import WeeklySchedule


class StaffBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=50)
    color: Optional[str] = Field(None, pattern=r"^#[0-9A-Fa-f]{6}$")
    is_active: bool = True


class StaffCreate(StaffBase):
    service_ids: List[UUID] = Field(default_factory=list)
    schedules_by_location: Dict[UUID, WeeklySchedule] = Field(default_factory=dict)


class StaffUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=50)
    color: Optional[str] = Field(None, pattern=r"^#[0-9A-Fa-f]{6}$")
    is_active: Optional[bool] = None
    service_ids: Optional[List[UUID]] = None
    # Replaces every location schedule when given
    schedules_by_location: Optional[Dict[UUID, WeeklySchedule]] = None


class Staff(StaffBase):
    id: UUID
    tenant_id: str
    service_ids: List[UUID] = Field(default_factory=list)
    schedules_by_location: Dict[UUID, WeeklySchedule] = Field(default_factory=dict)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
