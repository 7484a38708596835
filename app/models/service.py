import uuid

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.core.database import Base


class Service(Base):
    """Bookable service with duration, buffer and the locations offering it."""

    __tablename__ = "services"

    # Core identity
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id = Column(String(64), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)

    # Service details
    duration_minutes = Column(Integer, nullable=False)
    buffer_time_minutes = Column(Integer, nullable=False, default=0)  # Cleanup time
    price = Column(Numeric(10, 2), nullable=False, default=0)
    capacity = Column(Integer, nullable=False, default=1)  # Stored, not enforced

    # Service behavior
    is_active = Column(Boolean, default=True, nullable=False)
    is_public = Column(Boolean, default=True, nullable=False)
    color = Column(String(7), nullable=True)  # Hex color code

    # Audit timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        CheckConstraint("duration_minutes >= 1", name="check_service_duration"),
        CheckConstraint("buffer_time_minutes >= 0", name="check_service_buffer"),
    )

    # Relationships
    service_locations = relationship(
        "ServiceLocation",
        back_populates="service",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def location_ids(self) -> list:
        return [sl.location_id for sl in self.service_locations]

    @property
    def total_duration_minutes(self):
        """Time the staff member is occupied, buffer included."""
        return self.duration_minutes + (self.buffer_time_minutes or 0)

    def is_offered_at(self, location_id) -> bool:
        return location_id in self.location_ids

    def __repr__(self):
        return (
            f"<Service(id={self.id}, name='{self.name}', "
            f"duration={self.duration_minutes}min, buffer={self.buffer_time_minutes}min)>"
        )


class ServiceLocation(Base):
    """Join row: ``service`` is offered at ``location``."""

    __tablename__ = "service_locations"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id = Column(String(64), nullable=False, index=True)
    service_id = Column(
        UUID(as_uuid=True), ForeignKey("services.id", ondelete="CASCADE"), nullable=False
    )
    location_id = Column(
        UUID(as_uuid=True), ForeignKey("locations.id", ondelete="CASCADE"), nullable=False
    )

    __table_args__ = (
        UniqueConstraint("service_id", "location_id", name="uq_service_location"),
    )

    service = relationship("Service", back_populates="service_locations")

    def __repr__(self):
        return (
            f"<ServiceLocation(service_id={self.service_id}, "
            f"location_id={self.location_id})>"
        )
