import re
from dataclasses import dataclass
from typing import Any, Dict, Generic, List, Optional, TypeVar

T = TypeVar("T")


class SchedulingError(Exception):
    """Base class for recoverable, user-facing scheduling failures."""

    code = "scheduling_error"

    def __init__(self, message: str, **details: Any):
        self.message = message
        self.details = details
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}


class ParseError(SchedulingError):
    code = "parse_error"

    def __init__(self, value: Any):
        super().__init__(
            f"Invalid time '{value}': expected HH:MM between 00:00 and 23:59",
            value=value,
        )


class PastDateError(SchedulingError):
    code = "past_date"

    def __init__(self, message: str = "Cannot book appointments in the past"):
        super().__init__(message)


class InvalidDurationError(SchedulingError):
    code = "invalid_duration"

    def __init__(self, expected_minutes: int, actual_minutes: int):
        super().__init__(
            f"Appointment must last {expected_minutes} minutes "
            f"(got {actual_minutes})",
            expected_minutes=expected_minutes,
            actual_minutes=actual_minutes,
        )


class UnalignedTimeError(SchedulingError):
    code = "unaligned_time"

    def __init__(self, value: str):
        super().__init__(
            f"Appointment times must fall on a whole minute (got {value})",
            value=value,
        )


class LocationClosedError(SchedulingError):
    code = "location_closed"

    def __init__(self, day_name: str):
        super().__init__(f"This location is closed on {day_name}", day_name=day_name)


class StaffUnavailableError(SchedulingError):
    code = "staff_unavailable"

    def __init__(self, day_name: str, working_days: List[str]):
        if working_days:
            summary = "; ".join(working_days)
            message = (
                f"Staff member does not work on {day_name} at this location. "
                f"Working days: {summary}"
            )
        else:
            message = "Staff member has no working days at this location"
        super().__init__(message, day_name=day_name, working_days=working_days)


class OutsideWorkingHoursError(SchedulingError):
    code = "outside_working_hours"

    def __init__(self, available_blocks: List[str], scope: str = "staff"):
        subject = "Staff member" if scope == "staff" else "Location"
        available = ", ".join(available_blocks) or "none"
        super().__init__(
            f"{subject} is not available at this time. Available: {available}",
            available_blocks=available_blocks,
            scope=scope,
        )


class OutOfLocationRangeError(SchedulingError):
    code = "out_of_location_range"

    def __init__(self, min_time: str, max_time: str):
        super().__init__(
            f"Time must be between {min_time} and {max_time}",
            min=min_time,
            max=max_time,
        )


class InvertedRangeError(SchedulingError):
    code = "inverted_range"

    def __init__(self, start: str, end: str):
        super().__init__(
            f"Start time {start} must be earlier than end time {end}",
            start=start,
            end=end,
        )


class OverlappingBlocksError(SchedulingError):
    code = "overlapping_blocks"

    def __init__(self, block: str, other: str):
        super().__init__(
            f"Block {block} overlaps block {other}; blocks on the same day "
            f"cannot overlap",
            block=block,
            other=other,
        )


class AppointmentConflictError(SchedulingError):
    code = "appointment_conflict"

    def __init__(self, conflicting_id: Any, start: str, end: str):
        super().__init__(
            f"Staff member already has an appointment from {start} to {end}",
            conflicting_appointment_id=str(conflicting_id),
            start=start,
            end=end,
        )


class InvalidStatusError(SchedulingError):
    code = "invalid_status"


class InvalidContactError(SchedulingError):
    code = "invalid_contact"


class ServiceNotOfferedError(SchedulingError):
    code = "service_not_offered"

    def __init__(self, service_name: str, location_name: str):
        super().__init__(
            f"Service '{service_name}' is not offered at '{location_name}'",
            service=service_name,
            location=location_name,
        )


class StaffNotQualifiedError(SchedulingError):
    code = "staff_not_qualified"

    def __init__(self, staff_name: str, service_name: str):
        super().__init__(
            f"{staff_name} does not perform '{service_name}'",
            staff=staff_name,
            service=service_name,
        )


class InactiveEntityError(SchedulingError):
    code = "inactive"

    def __init__(self, entity: str, name: str):
        super().__init__(
            f"{entity.capitalize()} '{name}' is not accepting bookings",
            entity=entity,
            name=name,
        )


class NotFoundError(Exception):
    """A referenced location, staff member, service or appointment is missing."""

    def __init__(self, entity: str, entity_id: Any):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity.capitalize()} {entity_id} not found")


class SlotLockedError(Exception):
    """Another booking for the same staff member and day is in progress."""

    def __init__(self, lock_key: str):
        self.lock_key = lock_key
        super().__init__("Another booking for this staff member is in progress, retry")


@dataclass(frozen=True)
class ValidationResult(Generic[T]):
    """Outcome of a pure validation: either a value or a SchedulingError."""

    value: Optional[T] = None
    error: Optional[SchedulingError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: Optional[T] = None) -> "ValidationResult[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: SchedulingError) -> "ValidationResult[T]":
        return cls(error=error)

    def unwrap(self) -> Optional[T]:
        """Return the value, raising the carried error on failure."""
        if self.error is not None:
            raise self.error
        return self.value


def validate_phone_number(phone: str) -> bool:
    """Validate phone number format (international or local)."""
    if not phone:
        return False

    phone_pattern = r"^[\+]?[1-9][\d\-\s\(\)\.]{6,18}$"
    return bool(re.match(phone_pattern, phone.strip()))


def validate_email_format(email: Optional[str]) -> bool:
    """Validate email format."""
    if not email:
        return True  # Optional field

    email_pattern = r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"
    return bool(re.match(email_pattern, email))


def validate_customer_contact(
    customer_name: str, customer_phone: str, customer_email: Optional[str] = None
) -> List[str]:
    """Collect problems with the customer contact fields of a booking."""
    errors = []

    if not customer_name or not customer_name.strip():
        errors.append("Customer name is required")

    if not validate_phone_number(customer_phone):
        errors.append("Invalid phone number format")

    if not validate_email_format(customer_email):
        errors.append("Invalid email format")

    return errors


def validate_contact_and_raise(
    customer_name: str, customer_phone: str, customer_email: Optional[str] = None
) -> None:
    """Validate customer contact fields and raise if any are invalid."""
    errors = validate_customer_contact(customer_name, customer_phone, customer_email)
    if errors:
        raise InvalidContactError("; ".join(errors), errors=errors)
