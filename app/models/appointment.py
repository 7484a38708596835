from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func
from app.core.database import Base
import enum
import uuid
from datetime import datetime
from typing import Optional


class AppointmentStatus(enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"
    NO_SHOW = "no_show"


# Statuses whose time can no longer be moved
CLOSED_STATUSES = (AppointmentStatus.CANCELLED.value, AppointmentStatus.COMPLETED.value)


class BookingSource(enum.Enum):
    ADMIN = "admin"
    PUBLIC = "public"


class Appointment(Base):
    """A customer booking of one service with one staff member at one location."""

    __tablename__ = "appointments"

    # Core identity
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id = Column(String(64), nullable=False, index=True)

    # Appointment participants
    service_id = Column(UUID(as_uuid=True), ForeignKey("services.id"), nullable=False)
    staff_id = Column(UUID(as_uuid=True), ForeignKey("staff_members.id"), nullable=False)
    location_id = Column(UUID(as_uuid=True), ForeignKey("locations.id"), nullable=False)

    # Customer contact
    customer_name = Column(String(255), nullable=False)
    customer_phone = Column(String(50), nullable=False)
    customer_email = Column(String(255), nullable=True)

    # Scheduling details, stored in UTC
    start_time = Column(DateTime(timezone=True), nullable=False, index=True)
    end_time = Column(DateTime(timezone=True), nullable=False)
    timezone = Column(String(64), nullable=False, default="UTC")

    # Status management
    status = Column(
        String(20), nullable=False, default=AppointmentStatus.PENDING.value, index=True
    )
    notes = Column(Text, nullable=True)
    booking_source = Column(String(20), default=BookingSource.ADMIN.value)

    # Rescheduling / cancellation
    reschedule_count = Column(Integer, default=0, nullable=False)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)

    # Audit timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # Constraints
    __table_args__ = (
        CheckConstraint("end_time > start_time", name="check_end_after_start"),
        CheckConstraint(
            "reschedule_count >= 0", name="check_non_negative_reschedule_count"
        ),
        Index("ix_appointments_staff_start", "tenant_id", "staff_id", "start_time"),
    )

    def mark_cancelled(self, at: datetime) -> None:
        self.status = AppointmentStatus.CANCELLED.value
        self.cancelled_at = at

    @property
    def is_active(self) -> bool:
        """Whether this appointment still occupies its slot."""
        return self.status != AppointmentStatus.CANCELLED.value

    @property
    def can_reschedule(self) -> bool:
        return self.status not in CLOSED_STATUSES

    @property
    def duration_minutes(self) -> Optional[int]:
        if self.start_time is None or self.end_time is None:
            return None
        return int((self.end_time - self.start_time).total_seconds() // 60)

    def __repr__(self):
        return (
            f"<Appointment(id={self.id}, status='{self.status}', "
            f"start='{self.start_time}', staff_id={self.staff_id})>"
        )
