"""
Time-of-day and day-selector primitives used by the shift resolver and the
leave conflict validator.

Every interval here is half-open: [start, end). Two intervals that only touch
at an endpoint do not overlap.
"""

from dataclasses import dataclass
from datetime import date, datetime, time
from enum import Enum
from functools import total_ordering
from typing import Protocol, Union

from .errors import ValidationFailed
from .validators import TIME_OF_DAY_PATTERN


@total_ordering
@dataclass(frozen=True)
class TimeOfDay:
    hour: int
    minute: int = 0

    def __post_init__(self):
        if not (0 <= self.hour <= 23) or not (0 <= self.minute <= 59):
            raise ValidationFailed(f"Invalid time of day {self.hour}:{self.minute}")

    @classmethod
    def parse(cls, value: Union[str, "TimeOfDay", time], field: str | None = None) -> "TimeOfDay":
        if isinstance(value, TimeOfDay):
            return value
        if isinstance(value, time):
            return cls(value.hour, value.minute)
        if not isinstance(value, str) or not TIME_OF_DAY_PATTERN.match(value.strip()):
            raise ValidationFailed(
                f"Invalid time '{value}'. Expected HH:MM 24-hour format", field=field
            )
        hours, minutes = value.strip().split(":")
        return cls(int(hours), int(minutes))

    @property
    def minutes(self) -> int:
        return self.hour * 60 + self.minute

    def to_time(self) -> time:
        return time(self.hour, self.minute)

    def on(self, day: date) -> datetime:
        """Combine with a calendar date"""
        return datetime.combine(day, self.to_time())

    def __lt__(self, other):
        if not isinstance(other, TimeOfDay):
            return NotImplemented
        return self.minutes < other.minutes

    def __str__(self) -> str:
        return f"{self.hour:02d}:{self.minute:02d}"


def time_to_minutes(t: Union[TimeOfDay, str]) -> int:
    """Minutes since midnight, the basis of every time comparison"""
    return TimeOfDay.parse(t).minutes


@dataclass(frozen=True)
class TimeRange:
    start: TimeOfDay
    end: TimeOfDay

    def __post_init__(self):
        if self.start >= self.end:
            raise ValidationFailed(
                f"Start time {self.start} must be before end time {self.end}",
                field="startTime",
            )

    @classmethod
    def parse(cls, start: Union[str, TimeOfDay], end: Union[str, TimeOfDay]) -> "TimeRange":
        return cls(TimeOfDay.parse(start, field="startTime"), TimeOfDay.parse(end, field="endTime"))

    @property
    def duration_minutes(self) -> int:
        return self.end.minutes - self.start.minutes

    def __str__(self) -> str:
        return f"{self.start}-{self.end}"


def overlaps(a, b) -> bool:
    """
    Half-open overlap test: a.start < b.end and a.end > b.start.

    Accepts TimeRange objects or (start, end) tuples of comparable endpoints
    (TimeOfDay, datetime, minutes).
    """
    a_start, a_end = (a.start, a.end) if hasattr(a, "start") else a
    b_start, b_end = (b.start, b.end) if hasattr(b, "start") else b
    return a_start < b_end and a_end > b_start


def date_ranges_overlap(a_start: date, a_end: date, b_start: date, b_end: date) -> bool:
    """Inclusive calendar-date overlap: both endpoints count as part of the range"""
    return a_start <= b_end and a_end >= b_start


class Weekday(str, Enum):
    MONDAY = "Monday"
    TUESDAY = "Tuesday"
    WEDNESDAY = "Wednesday"
    THURSDAY = "Thursday"
    FRIDAY = "Friday"
    SATURDAY = "Saturday"
    SUNDAY = "Sunday"

    @classmethod
    def from_date(cls, day: date) -> "Weekday":
        return WEEK[day.weekday()]

    @classmethod
    def parse(cls, value: Union[str, "Weekday"]) -> "Weekday":
        if isinstance(value, Weekday):
            return value
        for member in cls:
            if member.value.lower() == str(value).strip().lower():
                return member
        raise ValidationFailed(f"Invalid day of week '{value}'", field="dayOfWeek")


WEEK = list(Weekday)


@dataclass(frozen=True)
class SpecificDate:
    date: date

    def matches(self, target: date) -> bool:
        return self.date == target

    def __str__(self) -> str:
        return f"on {self.date.isoformat()}"


@dataclass(frozen=True)
class WeeklyDay:
    weekday: Weekday

    def matches(self, target: date) -> bool:
        return Weekday.from_date(target) == self.weekday

    def __str__(self) -> str:
        return f"({self.weekday.value}s)"


DateSelector = Union[SpecificDate, WeeklyDay]


def selector_from_fields(specific_date: date | None, day_of_week: Union[str, Weekday, None]) -> DateSelector:
    """Build a selector from the two nullable storage columns; exactly one must be set"""
    if specific_date is not None and day_of_week:
        raise ValidationFailed(
            "Either date or dayOfWeek must be specified, but not both", field="date"
        )
    if specific_date is not None:
        return SpecificDate(specific_date)
    if day_of_week:
        return WeeklyDay(Weekday.parse(day_of_week))
    raise ValidationFailed("Either date or dayOfWeek must be specified", field="date")


class _Selectable(Protocol):
    selector: DateSelector


def matches_selector(record: _Selectable, target: date) -> bool:
    """
    True when the record applies to target: a specific date equal to it, or a
    weekly weekday equal to its weekday. A dated record never falls back to
    weekday matching.
    """
    return record.selector.matches(target)
