"""Weekly view of a room's recurring shifts, as edited in the week editor"""

from dataclasses import replace
from typing import Iterable

from ...shared.intervals import WEEK, Weekday, WeeklyDay
from .resolver import ShiftRecord


class WeekSchedule:
    """Recurring shifts bucketed by weekday, each day kept ordered by start time"""

    def __init__(self, shifts: Iterable[ShiftRecord] = ()):
        self.days: dict[Weekday, list[ShiftRecord]] = {day: [] for day in WEEK}
        for shift in shifts:
            if isinstance(shift.selector, WeeklyDay):
                self.days[shift.selector.weekday].append(shift)
        for day in WEEK:
            self._sort(day)

    def _sort(self, day: Weekday) -> None:
        self.days[day].sort(key=lambda s: s.start_time.minutes)

    def add(self, shift: ShiftRecord, day: Weekday | None = None) -> None:
        if day is None:
            if not isinstance(shift.selector, WeeklyDay):
                raise ValueError("Only weekly shifts can be placed in a week schedule")
            day = shift.selector.weekday
        day = Weekday.parse(day)
        if shift.selector != WeeklyDay(day):
            shift = replace(shift, selector=WeeklyDay(day))
        self.days[day].append(shift)
        self._sort(day)

    def shifts_for(self, day: Weekday | str) -> list[ShiftRecord]:
        return list(self.days[Weekday.parse(day)])

    def all_shifts(self) -> list[ShiftRecord]:
        return [shift for day in WEEK for shift in self.days[day]]

    def summary(self) -> dict:
        shifts = self.all_shifts()
        practitioners = set()
        for shift in shifts:
            practitioners.add(shift.practitioner_id)
            if shift.side_practitioner_id:
                practitioners.add(shift.side_practitioner_id)

        return {
            "total_shifts": len(shifts),
            "days_with_shifts": sum(1 for day in WEEK if self.days[day]),
            "override_count": sum(1 for s in shifts if s.is_override),
            "practitioner_count": len(practitioners),
        }
