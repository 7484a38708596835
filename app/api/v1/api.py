from fastapi import APIRouter

from app.api.v1.endpoints import (
    appointments,
    calendar,
    locations,
    public,
    services,
    staff,
)

api_router = APIRouter()

# Location management endpoints
api_router.include_router(locations.router, prefix="/locations", tags=["locations"])

# Service management endpoints
api_router.include_router(services.router, prefix="/services", tags=["services"])

# Staff management and schedule editing endpoints
api_router.include_router(staff.router, prefix="/staff", tags=["staff"])

# Appointment management endpoints
api_router.include_router(
    appointments.router, prefix="/appointments", tags=["appointments"]
)

# Availability and validation endpoints
api_router.include_router(calendar.router, prefix="/calendar", tags=["calendar"])

# Public booking endpoints (customer-facing)
api_router.include_router(public.router, prefix="/public", tags=["public"])
