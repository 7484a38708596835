"""Pure scheduling checks for appointment windows and staff schedule edits.

Nothing here touches the database or the wall clock: callers pass snapshots
of the location hours and staff schedule plus the current time, and get back a
ValidationResult. Appointment datetimes must be aware and expressed in the
location's timezone so that their day-of-week and minute-of-day are the
location's wall-clock values.
"""

import logging
from datetime import datetime
from typing import Iterable, NamedTuple, Optional, Sequence

from app.schemas.scheduling import (
    DaySchedule,
    TimeBlock,
    WeeklySchedule,
    blocks_for,
    day_name,
    day_of_week,
    is_day_enabled,
)
from app.utils.time_ranges import (
    contains,
    format_minutes,
    ranges_overlap,
    to_minutes,
    union_range,
)
from app.utils.timezones import minutes_of_day
from app.utils.validation import (
    AppointmentConflictError,
    InvalidDurationError,
    InvertedRangeError,
    LocationClosedError,
    OutOfLocationRangeError,
    OutsideWorkingHoursError,
    OverlappingBlocksError,
    PastDateError,
    SchedulingError,
    StaffUnavailableError,
    UnalignedTimeError,
    ValidationResult,
)

logger = logging.getLogger(__name__)


class BusyInterval(NamedTuple):
    """Time already taken by a non-cancelled appointment, buffer included."""

    appointment_id: object
    start: datetime
    end: datetime


def validate_appointment_window(
    location_hours: WeeklySchedule,
    staff_schedule: Optional[WeeklySchedule],
    service_duration: Optional[int],
    start_time: datetime,
    end_time: datetime,
    now: datetime,
) -> ValidationResult[None]:
    """Decide whether an appointment may occupy ``[start_time, end_time]``.

    Checks run in a fixed order and the first failure is returned:

    1. the start is not in the past
    2. both ends fall on a whole minute, the end is after the start and
       matches ``service_duration``
    3. the location is open that day
    4. the staff member works that day at this location
    5. the interval fits inside one staff block, and inside one location block

    ``staff_schedule`` is None when the staff member has no schedule at the
    location at all, which is reported like a day off.
    """
    if start_time < now:
        logger.debug(f"Window rejected: start {start_time} is before {now}")
        return ValidationResult.failure(PastDateError())

    for moment in (start_time, end_time):
        if moment.second or moment.microsecond:
            logger.debug(f"Window rejected: {moment} is not on a whole minute")
            return ValidationResult.failure(UnalignedTimeError(moment.isoformat()))

    duration = int((end_time - start_time).total_seconds() // 60)
    if end_time <= start_time or (
        service_duration is not None and duration != service_duration
    ):
        logger.debug(f"Window rejected: duration {duration}min != {service_duration}min")
        return ValidationResult.failure(
            InvalidDurationError(service_duration or 0, duration)
        )

    day = day_of_week(start_time.date())
    name = day_name(day)

    if not is_day_enabled(location_hours, day):
        logger.debug(f"Window rejected: location closed on {name}")
        return ValidationResult.failure(LocationClosedError(name))

    if staff_schedule is None or not is_day_enabled(staff_schedule, day):
        working_days = staff_schedule.working_days_summary() if staff_schedule else []
        logger.debug(f"Window rejected: staff not working on {name}")
        return ValidationResult.failure(StaffUnavailableError(name, working_days))

    start_minutes = minutes_of_day(start_time)
    # Overnight windows run past every block end
    end_minutes = start_minutes + duration

    staff_blocks = blocks_for(staff_schedule, day)
    if not _inside_any(staff_blocks, start_minutes, end_minutes):
        logger.debug("Window rejected: outside staff blocks")
        return ValidationResult.failure(
            OutsideWorkingHoursError([b.label for b in staff_blocks], scope="staff")
        )

    location_blocks = blocks_for(location_hours, day)
    if not _inside_any(location_blocks, start_minutes, end_minutes):
        logger.debug("Window rejected: staff block escapes location hours")
        return ValidationResult.failure(
            OutsideWorkingHoursError(
                [b.label for b in location_blocks], scope="location"
            )
        )

    logger.debug(f"Window {start_time} - {end_time} accepted")
    return ValidationResult.success()


def _inside_any(blocks: Iterable[TimeBlock], start: int, end: int) -> bool:
    return any(
        contains(block.start_minutes, block.end_minutes, start, end) for block in blocks
    )


def validate_schedule_edit(
    location_day: DaySchedule,
    existing_blocks: Sequence[TimeBlock],
    index: int,
    field: str,
    new_value: str,
    day_label: str = "this day",
) -> ValidationResult[TimeBlock]:
    """Validate moving one boundary of a staff block.

    Returns the edited block on success. On failure the caller keeps the
    block it already has; nothing here is mutated.

    The new value is bounded by the union range of the location's blocks for
    the day, so a value inside a location lunch break is accepted.
    """
    if field not in ("start", "end"):
        raise ValueError(f"field must be 'start' or 'end', not {field!r}")
    if not 0 <= index < len(existing_blocks):
        raise IndexError(f"no time block at position {index}")

    try:
        value = to_minutes(new_value)
    except SchedulingError as e:
        return ValidationResult.failure(e)

    if not location_day.enabled or not location_day.blocks:
        return ValidationResult.failure(LocationClosedError(day_label))

    min_start, max_end = union_range(location_day.blocks)
    if value < min_start or value > max_end:
        logger.debug(f"Edit rejected: {new_value} outside location range")
        return ValidationResult.failure(
            OutOfLocationRangeError(format_minutes(min_start), format_minutes(max_end))
        )

    current = existing_blocks[index]
    start = value if field == "start" else current.start_minutes
    end = value if field == "end" else current.end_minutes
    if start >= end:
        return ValidationResult.failure(
            InvertedRangeError(format_minutes(start), format_minutes(end))
        )

    edited = TimeBlock(start=format_minutes(start), end=format_minutes(end))
    for position, other in enumerate(existing_blocks):
        if position == index:
            continue
        if ranges_overlap(start, end, other.start_minutes, other.end_minutes):
            logger.debug(f"Edit rejected: {edited.label} overlaps {other.label}")
            return ValidationResult.failure(
                OverlappingBlocksError(edited.label, other.label)
            )

    return ValidationResult.success(edited)


def validate_staff_schedule(
    location_hours: WeeklySchedule, staff_schedule: WeeklySchedule
) -> ValidationResult[WeeklySchedule]:
    """Check a whole staff schedule against the location it applies to.

    Every enabled staff day must be open at the location and every staff
    block must lie within the location's union range for that day. Block
    order and overlap inside a day are already guaranteed by DaySchedule.
    """
    for day in staff_schedule.enabled_days():
        name = day_name(day)
        if not is_day_enabled(location_hours, day):
            return ValidationResult.failure(LocationClosedError(name))

        min_start, max_end = union_range(blocks_for(location_hours, day))
        for block in blocks_for(staff_schedule, day):
            if block.start_minutes < min_start or block.end_minutes > max_end:
                logger.debug(f"Schedule rejected: {name} {block.label} out of range")
                return ValidationResult.failure(
                    OutOfLocationRangeError(
                        format_minutes(min_start), format_minutes(max_end)
                    )
                )

    return ValidationResult.success(staff_schedule)


def find_conflicting_appointment(
    busy: Iterable[BusyInterval], start: datetime, end: datetime
) -> Optional[BusyInterval]:
    """First busy interval overlapping ``[start, end]``; touching is allowed."""
    for interval in busy:
        if start < interval.end and interval.start < end:
            return interval
    return None


def check_appointment_overlap(
    busy: Iterable[BusyInterval], start: datetime, end: datetime
) -> ValidationResult[None]:
    conflict = find_conflicting_appointment(busy, start, end)
    if conflict is None:
        return ValidationResult.success()
    return ValidationResult.failure(
        AppointmentConflictError(
            conflict.appointment_id,
            conflict.start.strftime("%H:%M"),
            conflict.end.strftime("%H:%M"),
        )
    )
