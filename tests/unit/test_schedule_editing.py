"""Test copy-on-write staff schedule edits."""

import pytest

from app.schemas.scheduling import TimeBlock, WeeklySchedule
from app.services.schedule_editing import (
    add_block,
    remove_block,
    toggle_day,
    with_block_updated,
)
from app.utils.validation import (
    LocationClosedError,
    OutOfLocationRangeError,
    OverlappingBlocksError,
)
from tests.fixtures.booking_fixtures import LOCATION_HOURS, STAFF_SCHEDULE, weekly


@pytest.fixture
def location_hours() -> WeeklySchedule:
    return WeeklySchedule(LOCATION_HOURS)


@pytest.fixture
def staff_schedule() -> WeeklySchedule:
    return WeeklySchedule(STAFF_SCHEDULE)


def labels(schedule: WeeklySchedule, day: int) -> list:
    return [block.label for block in schedule.day(day).blocks]


class TestToggleDay:
    def test_enabling_seeds_the_location_range(self, location_hours, staff_schedule):
        # Thursday is open 09-18 and not worked yet
        result = toggle_day(location_hours, staff_schedule, 4, True)

        assert labels(result.value, 4) == ["09:00-18:00"]
        assert not staff_schedule.day(4).enabled

    def test_enabling_split_day_uses_union_range(self, location_hours):
        result = toggle_day(location_hours, WeeklySchedule.closed(), 2, True)

        assert labels(result.value, 2) == ["08:00-17:00"]

    def test_enabling_closed_day_fails(self, location_hours, staff_schedule):
        result = toggle_day(location_hours, staff_schedule, 0, True)

        assert isinstance(result.error, LocationClosedError)
        assert result.error.details["day_name"] == "Sunday"

    def test_enabling_worked_day_keeps_blocks(self, location_hours, staff_schedule):
        result = toggle_day(location_hours, staff_schedule, 1, True)

        assert result.value is staff_schedule

    def test_disabling_clears_blocks(self, location_hours, staff_schedule):
        result = toggle_day(location_hours, staff_schedule, 1, False)

        assert not result.value.day(1).enabled
        assert labels(result.value, 1) == []
        assert labels(staff_schedule, 1) == ["09:00-13:00"]


class TestAddBlock:
    def test_appends_after_latest_block(self, location_hours, staff_schedule):
        result = add_block(location_hours, staff_schedule, 1)

        assert labels(result.value, 1) == ["09:00-13:00", "13:01-18:00"]

    def test_no_room_left(self, location_hours):
        staff = WeeklySchedule(weekly({1: [("09:00", "18:00")]}))

        result = add_block(location_hours, staff, 1)

        assert isinstance(result.error, OutOfLocationRangeError)
        assert result.error.details == {"min": "09:00", "max": "18:00"}

    def test_disabled_day_is_enabled(self, location_hours, staff_schedule):
        result = add_block(location_hours, staff_schedule, 5)

        assert labels(result.value, 5) == ["09:00-18:00"]

    def test_closed_location(self, location_hours, staff_schedule):
        result = add_block(location_hours, staff_schedule, 6)

        assert isinstance(result.error, LocationClosedError)


class TestRemoveBlock:
    def test_removes_one_block(self, location_hours):
        staff = WeeklySchedule(weekly({1: [("09:00", "11:00"), ("12:00", "14:00")]}))

        result = remove_block(staff, 1, 0)

        assert labels(result.value, 1) == ["12:00-14:00"]
        assert result.value.day(1).enabled

    def test_removing_last_block_disables_day(self, staff_schedule):
        result = remove_block(staff_schedule, 3, 0)

        assert not result.value.day(3).enabled

    def test_bad_index(self, staff_schedule):
        with pytest.raises(IndexError):
            remove_block(staff_schedule, 3, 1)


class TestWithBlockUpdated:
    def test_moves_boundary(self, location_hours, staff_schedule):
        result = with_block_updated(location_hours, staff_schedule, 1, 0, "end", "14:00")

        assert labels(result.value, 1) == ["09:00-14:00"]
        assert labels(staff_schedule, 1) == ["09:00-13:00"]

    def test_rejected_edit_leaves_schedule_alone(self, location_hours):
        staff = WeeklySchedule(weekly({3: [("10:30", "11:30"), ("10:00", "10:30")]}))

        result = with_block_updated(location_hours, staff, 3, 1, "end", "11:00")

        assert isinstance(result.error, OverlappingBlocksError)
        assert result.value is None
        assert staff.day(3).blocks[1] == TimeBlock(start="10:00", end="10:30")

    def test_out_of_range_start(self, location_hours, staff_schedule):
        result = with_block_updated(location_hours, staff_schedule, 2, 0, "start", "07:30")

        assert isinstance(result.error, OutOfLocationRangeError)
        assert result.error.details == {"min": "08:00", "max": "17:00"}

    def test_edit_on_closed_location_day(self, location_hours):
        staff = WeeklySchedule(weekly({6: [("10:00", "12:00")]}))

        result = with_block_updated(location_hours, staff, 6, 0, "end", "13:00")

        assert isinstance(result.error, LocationClosedError)
        assert result.error.details["day_name"] == "Saturday"
