from datetime import datetime
from typing import List, Optional
from uuid import UUID
from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

# Import enums from the model to avoid duplication
from app.models.appointment import AppointmentStatus, BookingSource
from app.utils.timezones import as_utc


# Base appointment schemas
class AppointmentBase(BaseModel):
    location_id: UUID
    service_id: UUID
    staff_id: UUID
    customer_name: str = Field(..., min_length=1, max_length=255)
    customer_phone: str = Field(..., min_length=1, max_length=50)
    customer_email: Optional[EmailStr] = None
    start_time: datetime = Field(
        ..., description="ISO-8601; values without an offset are location-local"
    )
    notes: Optional[str] = None


class AppointmentCreate(AppointmentBase):
    status: AppointmentStatus = AppointmentStatus.PENDING

    @field_validator("status")
    @classmethod
    def validate_initial_status(cls, v):
        if v not in (AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED):
            raise ValueError("New appointments must be pending or confirmed")
        return v


class PublicAppointmentCreate(AppointmentBase):
    pass


class AppointmentUpdate(BaseModel):
    """PATCH body; a time change re-runs scheduling validation."""

    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    status: Optional[AppointmentStatus] = None
    notes: Optional[str] = None

    @model_validator(mode="after")
    def validate_end_needs_start(self):
        if self.end_time is not None and self.start_time is None:
            raise ValueError("end_time can only be changed together with start_time")
        return self


class AppointmentReschedule(BaseModel):
    start_time: datetime


class Appointment(BaseModel):
    id: UUID
    tenant_id: str
    location_id: UUID
    service_id: UUID
    staff_id: UUID
    customer_name: str
    customer_phone: str
    customer_email: Optional[str] = None
    start_time: datetime
    end_time: datetime
    timezone: str
    status: AppointmentStatus
    notes: Optional[str] = None
    booking_source: BookingSource = BookingSource.ADMIN
    reschedule_count: int = 0
    cancelled_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("start_time", "end_time", "cancelled_at")
    @classmethod
    def ensure_utc(cls, v):
        return as_utc(v) if v is not None else v

    class Config:
        from_attributes = True


class AppointmentFilters(BaseModel):
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    staff_id: Optional[UUID] = None
    service_id: Optional[UUID] = None
    location_id: Optional[UUID] = None
    status: Optional[AppointmentStatus] = None


class AppointmentList(BaseModel):
    appointments: List[Appointment]
    total: int


# Summary and analytics schemas
class AppointmentStats(BaseModel):
    total: int = 0
    pending: int = 0
    confirmed: int = 0
    completed: int = 0
    cancelled: int = 0
    no_show: int = 0
