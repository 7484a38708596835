from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Tuple
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, RootModel, field_validator, model_validator

from app.utils.time_ranges import format_minutes, ranges_overlap, to_minutes


class WeekDay(int, Enum):
    """Day-of-week keys used by every weekly schedule (0 = Sunday)."""

    SUNDAY = 0
    MONDAY = 1
    TUESDAY = 2
    WEDNESDAY = 3
    THURSDAY = 4
    FRIDAY = 5
    SATURDAY = 6

    @property
    def label(self) -> str:
        return self.name.capitalize()


DAYS_IN_WEEK = 7


def day_of_week(day: date) -> int:
    """Weekday of ``day`` with Sunday as 0."""
    return (day.weekday() + 1) % DAYS_IN_WEEK


def day_name(day_index: int) -> str:
    return WeekDay(day_index).label


class TimeBlock(BaseModel):
    """A same-day working span, e.g. 09:00-13:00."""

    model_config = ConfigDict(frozen=True)

    start: str
    end: str

    @field_validator("start", "end")
    @classmethod
    def normalize_time(cls, v: str) -> str:
        # ParseError is not a ValueError, pydantic would not report it
        try:
            return format_minutes(to_minutes(v))
        except Exception as exc:
            raise ValueError(str(exc)) from exc

    @model_validator(mode="after")
    def check_order(self):
        if self.start_minutes >= self.end_minutes:
            raise ValueError(f"start {self.start} must be before end {self.end}")
        return self

    @property
    def start_minutes(self) -> int:
        return to_minutes(self.start)

    @property
    def end_minutes(self) -> int:
        return to_minutes(self.end)

    @property
    def label(self) -> str:
        return f"{self.start}-{self.end}"


class DaySchedule(BaseModel):
    """Whether a day is worked, and the disjoint blocks worked on it."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = False
    blocks: Tuple[TimeBlock, ...] = ()

    @model_validator(mode="before")
    @classmethod
    def drop_blocks_when_disabled(cls, data: Any):
        if isinstance(data, dict) and not data.get("enabled", False):
            data = {**data, "blocks": ()}
        return data

    @model_validator(mode="after")
    def check_blocks(self):
        if not self.enabled:
            return self

        if not self.blocks:
            raise ValueError("an enabled day needs at least one time block")

        for i, block in enumerate(self.blocks):
            for other in self.blocks[i + 1:]:
                if ranges_overlap(
                    block.start_minutes,
                    block.end_minutes,
                    other.start_minutes,
                    other.end_minutes,
                ):
                    raise ValueError(
                        f"blocks {block.label} and {other.label} overlap"
                    )
        return self

    @classmethod
    def closed(cls) -> "DaySchedule":
        return cls(enabled=False, blocks=())

    def summary(self) -> str:
        return ", ".join(block.label for block in self.blocks)


class WeeklySchedule(RootModel[Dict[int, DaySchedule]]):
    """Seven day schedules keyed 0 (Sunday) to 6 (Saturday).

    Used both for a location's operating hours and for a staff member's
    schedule at one location. Missing days are filled in as closed.
    """

    model_config = ConfigDict(frozen=True)

    root: Dict[int, DaySchedule] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def fill_missing_days(cls, data: Any):
        if data is None:
            data = {}
        if isinstance(data, WeeklySchedule):
            return data.root
        if not isinstance(data, dict):
            raise ValueError("weekly schedule must be a mapping of day -> schedule")

        days = {}
        for key, value in data.items():
            try:
                index = int(key)
            except (TypeError, ValueError):
                raise ValueError(f"invalid day key {key!r}")
            if not 0 <= index < DAYS_IN_WEEK:
                raise ValueError(f"day key {index} must be between 0 and 6")
            days[index] = value

        for index in range(DAYS_IN_WEEK):
            days.setdefault(index, {"enabled": False, "blocks": []})
        return days

    @classmethod
    def closed(cls) -> "WeeklySchedule":
        return cls({})

    def day(self, day_index: int) -> DaySchedule:
        return self.root.get(day_index) or DaySchedule.closed()

    def with_day(self, day_index: int, schedule: DaySchedule) -> "WeeklySchedule":
        """Copy of this schedule with one day replaced."""
        days = dict(self.root)
        days[day_index] = schedule
        return WeeklySchedule(days)

    def enabled_days(self) -> List[int]:
        return [i for i in range(DAYS_IN_WEEK) if self.day(i).enabled]

    def working_days_summary(self) -> List[str]:
        """Human-readable ``"Monday: 09:00-13:00"`` lines for enabled days."""
        return [f"{day_name(i)}: {self.day(i).summary()}" for i in self.enabled_days()]

    def to_storage(self) -> Dict[str, Any]:
        """JSON-column shape: string day keys, plain dicts."""
        return {
            str(i): self.day(i).model_dump(mode="json") for i in range(DAYS_IN_WEEK)
        }


def is_day_enabled(schedule: WeeklySchedule, day_index: int) -> bool:
    return schedule.day(day_index).enabled


def blocks_for(schedule: WeeklySchedule, day_index: int) -> Tuple[TimeBlock, ...]:
    day = schedule.day(day_index)
    return day.blocks if day.enabled else ()


# API payloads


class AvailableSlot(BaseModel):
    start_time: datetime
    end_time: datetime
    staff_id: UUID


class AvailableSlotsResponse(BaseModel):
    slot_date: date
    location_id: UUID
    staff_id: UUID
    service_id: UUID
    slots: List[AvailableSlot] = Field(default_factory=list)


class AppointmentWindowRequest(BaseModel):
    location_id: UUID
    staff_id: UUID
    service_id: UUID
    start_time: datetime
    end_time: Optional[datetime] = None
    exclude_appointment_id: Optional[UUID] = None


class ValidationErrorDetail(BaseModel):
    code: str
    message: str
    details: Dict[str, Any] = Field(default_factory=dict)


class AppointmentWindowResponse(BaseModel):
    is_valid: bool
    start_time: datetime
    end_time: datetime
    duration_minutes: int
    error: Optional[ValidationErrorDetail] = None


class ScheduleBlockEdit(BaseModel):
    field: Literal["start", "end"]
    value: str


class ScheduleDayToggle(BaseModel):
    enabled: bool
