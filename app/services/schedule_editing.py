"""Copy-on-write edits of a staff member's weekly schedule at one location.

Every function takes the location's operating hours and the current staff
schedule, and returns a ValidationResult carrying a *new* WeeklySchedule.
The input schedule is never modified, so on failure the caller simply keeps
what it had.
"""

from app.schemas.scheduling import DaySchedule, TimeBlock, WeeklySchedule, day_name
from app.services.conflicts import validate_schedule_edit
from app.utils.time_ranges import format_minutes, union_range
from app.utils.validation import (
    LocationClosedError,
    OutOfLocationRangeError,
    ValidationResult,
)


def _location_range(location_hours: WeeklySchedule, day: int):
    location_day = location_hours.day(day)
    if not location_day.enabled or not location_day.blocks:
        return None
    return union_range(location_day.blocks)


def toggle_day(
    location_hours: WeeklySchedule,
    staff_schedule: WeeklySchedule,
    day: int,
    enabled: bool,
) -> ValidationResult[WeeklySchedule]:
    """Enable or disable a staff day.

    Enabling seeds a single block spanning the location's whole range for
    that day; it fails when the location is closed.
    """
    if not enabled:
        return ValidationResult.success(staff_schedule.with_day(day, DaySchedule.closed()))

    span = _location_range(location_hours, day)
    if span is None:
        return ValidationResult.failure(LocationClosedError(day_name(day)))

    if staff_schedule.day(day).enabled:
        return ValidationResult.success(staff_schedule)

    block = TimeBlock(start=format_minutes(span[0]), end=format_minutes(span[1]))
    return ValidationResult.success(
        staff_schedule.with_day(day, DaySchedule(enabled=True, blocks=(block,)))
    )


def add_block(
    location_hours: WeeklySchedule, staff_schedule: WeeklySchedule, day: int
) -> ValidationResult[WeeklySchedule]:
    """Append a block after the latest one, running to the location's closing time.

    The new block starts one minute after the latest staff block ends. On a
    day the staff member does not work yet, this behaves like enabling it.
    """
    span = _location_range(location_hours, day)
    if span is None:
        return ValidationResult.failure(LocationClosedError(day_name(day)))

    current = staff_schedule.day(day)
    if not current.enabled:
        return toggle_day(location_hours, staff_schedule, day, True)

    min_start, max_end = span
    new_start = max(block.end_minutes for block in current.blocks) + 1
    if new_start >= max_end:
        return ValidationResult.failure(
            OutOfLocationRangeError(format_minutes(min_start), format_minutes(max_end))
        )

    block = TimeBlock(start=format_minutes(new_start), end=format_minutes(max_end))
    updated = DaySchedule(enabled=True, blocks=current.blocks + (block,))
    return ValidationResult.success(staff_schedule.with_day(day, updated))


def remove_block(
    staff_schedule: WeeklySchedule, day: int, index: int
) -> ValidationResult[WeeklySchedule]:
    """Drop one block; removing the last one disables the day."""
    current = staff_schedule.day(day)
    if not 0 <= index < len(current.blocks):
        raise IndexError(f"no time block at position {index}")

    remaining = current.blocks[:index] + current.blocks[index + 1:]
    if not remaining:
        return ValidationResult.success(staff_schedule.with_day(day, DaySchedule.closed()))
    return ValidationResult.success(
        staff_schedule.with_day(day, DaySchedule(enabled=True, blocks=remaining))
    )


def with_block_updated(
    location_hours: WeeklySchedule,
    staff_schedule: WeeklySchedule,
    day: int,
    index: int,
    field: str,
    value: str,
) -> ValidationResult[WeeklySchedule]:
    """Move the ``field`` boundary of block ``index`` on ``day`` to ``value``."""
    current = staff_schedule.day(day)
    result = validate_schedule_edit(
        location_hours.day(day), current.blocks, index, field, value, day_name(day)
    )
    if not result.ok:
        return ValidationResult.failure(result.error)

    blocks = list(current.blocks)
    blocks[index] = result.value
    return ValidationResult.success(
        staff_schedule.with_day(day, DaySchedule(enabled=True, blocks=tuple(blocks)))
    )
