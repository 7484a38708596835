# Import all models to ensure they are registered with SQLAlchemy
from . import (
    appointment,
    location,
    service,
    staff,
    staff_service,
)

__all__ = [
    "appointment",
    "location",
    "service",
    "staff",
    "staff_service",
]
