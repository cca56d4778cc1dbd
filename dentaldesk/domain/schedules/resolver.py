"""
Room shift resolution.

Given every shift of a room, work out who is effectively assigned on a target
date. Three rules decide between records that overlap in time:

1. Date-specific shifts beat weekly recurring shifts, whatever their priority.
2. Inside a tier, an override suppresses every record it overlaps. The
   suppressed record is dropped whole, never split around the override.
3. Overlapping records that are not overrides are all kept and reported as
   conflicts; resolving them is left to the person editing the schedule.

Day overrides (closures) are applied on top of the resolved shifts.

Nothing in this module touches the database or logs.
"""

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from itertools import combinations
from typing import Iterable, Optional, Sequence

from ...shared.errors import ValidationFailed
from ...shared.intervals import (
    DateSelector,
    SpecificDate,
    TimeRange,
    WeeklyDay,
    matches_selector,
    overlaps,
    selector_from_fields,
)

TIER_DATE = "date"
TIER_WEEKLY = "weekly"

SUPPRESSED_BY_OVERRIDE = "override"
SUPPRESSED_BY_DATE = "date_precedence"
SUPPRESSED_BY_CLOSURE = "day_override"


@dataclass(frozen=True)
class ShiftRecord:
    id: str
    schedule_id: str
    room_number: int
    practitioner_id: str
    time_range: TimeRange
    selector: DateSelector
    side_practitioner_id: Optional[str] = None
    priority: int = 0
    is_override: bool = False
    reason: Optional[str] = None
    created_at: Optional[datetime] = None

    def __post_init__(self):
        if self.room_number < 1:
            raise ValidationFailed("Room number must be at least 1", field="roomNumber")

    @classmethod
    def from_model(cls, shift) -> "ShiftRecord":
        return cls(
            id=shift.id,
            schedule_id=shift.schedule_id,
            room_number=shift.room_number,
            practitioner_id=shift.practitioner_id,
            side_practitioner_id=shift.side_practitioner_id,
            time_range=TimeRange.parse(shift.start_time, shift.end_time),
            selector=selector_from_fields(shift.date, shift.day_of_week),
            priority=shift.priority or 0,
            is_override=bool(shift.is_override),
            reason=shift.reason,
            created_at=shift.created_at,
        )

    @property
    def start_time(self):
        return self.time_range.start

    @property
    def end_time(self):
        return self.time_range.end

    @property
    def is_dated(self) -> bool:
        return isinstance(self.selector, SpecificDate)

    def describe(self) -> str:
        return f"{self.time_range} {self.selector}"


@dataclass(frozen=True)
class DayOverride:
    id: str
    date: date
    is_unavailable: bool
    room_number: Optional[int] = None
    practitioner_id: Optional[str] = None
    time_range: Optional[TimeRange] = None
    reason: Optional[str] = None

    @classmethod
    def from_model(cls, override) -> "DayOverride":
        window = None
        if override.start_time and override.end_time:
            window = TimeRange.parse(override.start_time, override.end_time)
        return cls(
            id=override.id,
            date=override.date,
            is_unavailable=bool(override.is_unavailable),
            room_number=override.room_number,
            practitioner_id=override.practitioner_id,
            time_range=window,
            reason=override.reason,
        )

    def applies_to_room(self, room_number: int) -> bool:
        return self.room_number is None or self.room_number == room_number


@dataclass(frozen=True)
class EffectiveShift:
    record: ShiftRecord
    tier: str
    conflicts_with: tuple[str, ...] = ()


@dataclass(frozen=True)
class Suppression:
    record: ShiftRecord
    reason: str
    suppressed_by: Optional[str] = None


@dataclass
class ResolvedShifts:
    shifts: list[EffectiveShift] = field(default_factory=list)
    suppressed: list[Suppression] = field(default_factory=list)


@dataclass
class RoomDaySchedule:
    schedule_id: str
    room_number: int
    date: date
    shifts: list[EffectiveShift] = field(default_factory=list)
    suppressed: list[Suppression] = field(default_factory=list)
    is_available: bool = True
    closures: list[DayOverride] = field(default_factory=list)
    custom_hours: list[DayOverride] = field(default_factory=list)

    @property
    def conflicts(self) -> list[tuple[str, str]]:
        pairs = set()
        for shift in self.shifts:
            for other in shift.conflicts_with:
                pairs.add(tuple(sorted((shift.record.id, other))))
        return sorted(pairs)


def _ranked(records: Sequence[ShiftRecord]) -> list[ShiftRecord]:
    # Overrides first, then priority, then the most recently inserted
    indexed = list(enumerate(records))
    indexed.sort(
        key=lambda pair: (
            pair[1].is_override,
            pair[1].priority,
            pair[1].created_at or datetime.min,
            pair[0],
        ),
        reverse=True,
    )
    return [record for _, record in indexed]


def _resolve_tier(records: Sequence[ShiftRecord], tier: str) -> ResolvedShifts:
    kept: list[ShiftRecord] = []
    suppressed: list[Suppression] = []

    for record in _ranked(records):
        blocker = next(
            (k for k in kept if k.is_override and overlaps(k.time_range, record.time_range)),
            None,
        )
        if blocker is not None:
            suppressed.append(Suppression(record, SUPPRESSED_BY_OVERRIDE, blocker.id))
            continue
        kept.append(record)

    conflicts: dict[str, list[str]] = {r.id: [] for r in kept}
    for a, b in combinations(kept, 2):
        if overlaps(a.time_range, b.time_range):
            conflicts[a.id].append(b.id)
            conflicts[b.id].append(a.id)

    return ResolvedShifts(
        shifts=[EffectiveShift(r, tier, tuple(conflicts[r.id])) for r in kept],
        suppressed=suppressed,
    )


def _ordered(shifts: Iterable[EffectiveShift]) -> list[EffectiveShift]:
    return sorted(shifts, key=lambda s: (s.record.start_time.minutes, -s.record.priority))


def resolve_shifts(records: Iterable[ShiftRecord], target_date: date) -> ResolvedShifts:
    """
    Effective shifts of one room on target_date, ordered by start time
    (priority descending on ties).
    """
    matching = [r for r in records if matches_selector(r, target_date)]
    dated = [r for r in matching if r.is_dated]
    weekly = [r for r in matching if not r.is_dated]

    dated_result = _resolve_tier(dated, TIER_DATE)

    surviving_weekly = []
    suppressed = list(dated_result.suppressed)
    for record in weekly:
        covering = next(
            (
                s.record
                for s in dated_result.shifts
                if overlaps(s.record.time_range, record.time_range)
            ),
            None,
        )
        if covering is not None:
            suppressed.append(Suppression(record, SUPPRESSED_BY_DATE, covering.id))
        else:
            surviving_weekly.append(record)

    weekly_result = _resolve_tier(surviving_weekly, TIER_WEEKLY)
    suppressed.extend(weekly_result.suppressed)

    return ResolvedShifts(
        shifts=_ordered(dated_result.shifts + weekly_result.shifts),
        suppressed=suppressed,
    )


def apply_day_overrides(
    resolved: ResolvedShifts,
    overrides: Iterable[DayOverride],
    room_number: int,
    target_date: date,
) -> tuple[ResolvedShifts, bool, list[DayOverride], list[DayOverride]]:
    """
    Apply unavailability overrides for one room/date.

    Returns (result, is_available, closures, custom_hours). Custom-hours
    overrides are only reported.
    """
    relevant = [
        o for o in overrides if o.date == target_date and o.applies_to_room(room_number)
    ]
    closures = [o for o in relevant if o.is_unavailable]
    custom_hours = [o for o in relevant if not o.is_unavailable]

    shifts = list(resolved.shifts)
    suppressed = list(resolved.suppressed)
    is_available = True

    for closure in closures:
        remaining = []
        for shift in shifts:
            record = shift.record
            in_window = closure.time_range is None or overlaps(closure.time_range, record.time_range)
            if closure.practitioner_id is None:
                if in_window:
                    suppressed.append(Suppression(record, SUPPRESSED_BY_CLOSURE, closure.id))
                    continue
            elif in_window and record.practitioner_id == closure.practitioner_id:
                suppressed.append(Suppression(record, SUPPRESSED_BY_CLOSURE, closure.id))
                continue
            elif in_window and record.side_practitioner_id == closure.practitioner_id:
                shift = replace(shift, record=replace(record, side_practitioner_id=None))
            remaining.append(shift)
        shifts = remaining

        if closure.practitioner_id is None and closure.time_range is None:
            is_available = False

    return ResolvedShifts(shifts=shifts, suppressed=suppressed), is_available, closures, custom_hours


def resolve_room_day(
    schedule_id: str,
    room_number: int,
    target_date: date,
    records: Iterable[ShiftRecord],
    overrides: Iterable[DayOverride] = (),
) -> RoomDaySchedule:
    """Shift resolution followed by day overrides, for a single room"""
    room_records = [
        r for r in records if r.schedule_id == schedule_id and r.room_number == room_number
    ]
    resolved = resolve_shifts(room_records, target_date)
    resolved, is_available, closures, custom_hours = apply_day_overrides(
        resolved, overrides, room_number, target_date
    )
    return RoomDaySchedule(
        schedule_id=schedule_id,
        room_number=room_number,
        date=target_date,
        shifts=resolved.shifts,
        suppressed=resolved.suppressed,
        is_available=is_available,
        closures=closures,
        custom_hours=custom_hours,
    )


def _same_selector_class(candidate: ShiftRecord, other: ShiftRecord) -> bool:
    if isinstance(candidate.selector, SpecificDate):
        return isinstance(other.selector, SpecificDate) and other.selector.date == candidate.selector.date
    if isinstance(candidate.selector, WeeklyDay):
        # Dated shifts never count against a weekly pattern
        return isinstance(other.selector, WeeklyDay) and other.selector.weekday == candidate.selector.weekday
    return False


def find_overlapping_shifts(
    candidate: ShiftRecord, existing: Iterable[ShiftRecord]
) -> list[ShiftRecord]:
    """
    Existing shifts of the same room and selector class whose time overlaps the
    candidate. Overlaps are informational: callers warn and still save.
    """
    overlapping = [
        other
        for other in existing
        if other.id != candidate.id
        and other.schedule_id == candidate.schedule_id
        and other.room_number == candidate.room_number
        and _same_selector_class(candidate, other)
        and candidate.start_time.minutes < other.end_time.minutes
        and candidate.end_time.minutes > other.start_time.minutes
    ]
    return sorted(overlapping, key=lambda r: r.start_time.minutes)
