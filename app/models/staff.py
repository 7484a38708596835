import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    String,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.core.database import Base
from app.schemas.scheduling import WeeklySchedule


class StaffMember(Base):
    """Staff member with per-location weekly schedules and the services they perform."""

    __tablename__ = "staff_members"

    # Core identity
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id = Column(String(64), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    color = Column(String(7), nullable=True)  # Calendar color

    is_active = Column(Boolean, default=True, nullable=False)

    # Audit timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # Relationships
    staff_services = relationship(
        "StaffService",
        back_populates="staff",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    location_schedules = relationship(
        "StaffLocationSchedule",
        back_populates="staff",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def service_ids(self) -> list:
        return [ss.service_id for ss in self.staff_services]

    @property
    def schedules_by_location(self) -> dict:
        """``{location_id: WeeklySchedule}`` for every location worked."""
        return {ls.location_id: ls.weekly_schedule for ls in self.location_schedules}

    def schedule_for(self, location_id):
        """Weekly schedule at ``location_id``, or None if not scheduled there."""
        for ls in self.location_schedules:
            if ls.location_id == location_id:
                return ls.weekly_schedule
        return None

    def performs(self, service_id) -> bool:
        return service_id in self.service_ids

    def __repr__(self):
        return (
            f"<StaffMember(id={self.id}, name='{self.name}', "
            f"active={self.is_active})>"
        )


class StaffLocationSchedule(Base):
    """A staff member's weekly schedule at one location."""

    __tablename__ = "staff_location_schedules"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id = Column(String(64), nullable=False, index=True)
    staff_id = Column(
        UUID(as_uuid=True),
        ForeignKey("staff_members.id", ondelete="CASCADE"),
        nullable=False,
    )
    location_id = Column(
        UUID(as_uuid=True), ForeignKey("locations.id", ondelete="CASCADE"), nullable=False
    )
    schedule = Column(JSON, nullable=False, default=dict)

    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        UniqueConstraint("staff_id", "location_id", name="uq_staff_location_schedule"),
    )

    staff = relationship("StaffMember", back_populates="location_schedules")

    @property
    def weekly_schedule(self) -> WeeklySchedule:
        return WeeklySchedule(self.schedule or {})

    def __repr__(self):
        return (
            f"<StaffLocationSchedule(staff_id={self.staff_id}, "
            f"location_id={self.location_id})>"
        )
