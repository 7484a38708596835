from datetime import datetime
from typing import Annotated, Optional
from uuid import UUID
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import AfterValidator, BaseModel, EmailStr, Field

from app.schemas.scheduling import WeeklySchedule


def _check_timezone(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    try:
        ZoneInfo(v)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValueError(f"Unknown timezone '{v}'")
    return v


TimezoneName = Annotated[str, AfterValidator(_check_timezone)]


class LocationBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    address: Optional[str] = None
    phone: Optional[str] = Field(None, max_length=50)
    email: Optional[EmailStr] = None
    timezone: TimezoneName = Field("UTC", max_length=64)
    operating_hours: WeeklySchedule = Field(default_factory=WeeklySchedule.closed)
    is_active: bool = True


class LocationCreate(LocationBase):
    pass


class LocationUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    address: Optional[str] = None
    phone: Optional[str] = Field(None, max_length=50)
    email: Optional[EmailStr] = None
    timezone: Optional[TimezoneName] = Field(None, max_length=64)
    operating_hours: Optional[WeeklySchedule] = None
    is_active: Optional[bool] = None


class Location(LocationBase):
    id: UUID
    tenant_id: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
