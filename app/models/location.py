import uuid

from sqlalchemy import JSON, Boolean, Column, DateTime, Index, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func

from app.core.database import Base
from app.schemas.scheduling import WeeklySchedule


class Location(Base):
    """A tenant's physical site with its weekly operating hours."""

    __tablename__ = "locations"

    # Core identity
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id = Column(String(64), nullable=False, index=True)
    name = Column(String(255), nullable=False)

    # Contact details
    address = Column(Text, nullable=True)
    phone = Column(String(50), nullable=True)
    email = Column(String(255), nullable=True)
    timezone = Column(String(64), nullable=False, default="UTC")

    # {"0": {"enabled": false, "blocks": []}, "1": {...}, ...}
    operating_hours = Column(JSON, nullable=False, default=dict)

    is_active = Column(Boolean, default=True, nullable=False)

    # Audit timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (Index("ix_locations_tenant_name", "tenant_id", "name"),)

    @property
    def weekly_hours(self) -> WeeklySchedule:
        return WeeklySchedule(self.operating_hours or {})

    def __repr__(self):
        return f"<Location(id={self.id}, name='{self.name}', tz={self.timezone})>"
