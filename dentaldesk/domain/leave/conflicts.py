"""
Leave conflict validation for appointments.

Callers pass leave that already blocks scheduling (APPROVED or
ALTERNATIVE_ACCEPTED); nothing here filters by status or reads the database.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Iterable, Optional

from ...shared.intervals import TimeRange, date_ranges_overlap, overlaps
from .workflow import LeaveType


def format_leave_type(leave_type: str) -> str:
    """SICK_LEAVE -> Sick Leave"""
    return " ".join(word.capitalize() for word in str(leave_type).split("_"))


@dataclass(frozen=True)
class LeaveBlock:
    """A span of time during which a practitioner cannot be booked"""

    id: str
    resource_id: str
    user_name: str
    leave_type: str
    start: date
    end: date
    title: Optional[str] = None
    time_range: Optional[TimeRange] = None

    @property
    def is_partial_day(self) -> bool:
        return self.time_range is not None

    @property
    def is_personal(self) -> bool:
        return self.leave_type == LeaveType.PERSONAL.value

    @classmethod
    def from_request(cls, request) -> "LeaveBlock":
        start, end = request.effective_dates
        user = getattr(request, "user", None)
        return cls(
            id=request.id,
            resource_id=request.user_id,
            user_name=user.display_name if user is not None else request.user_id,
            leave_type=request.leave_type,
            start=start,
            end=end,
            title=request.title,
            time_range=request.partial_time_range,
        )

    def describe(self) -> str:
        if self.time_range is not None:
            return (
                f"{self.user_name} is on {format_leave_type(self.leave_type)} "
                f"from {self.time_range.start} to {self.time_range.end}"
            )
        return (
            f"{self.user_name} is on {format_leave_type(self.leave_type)} "
            f"until {self.end.strftime('%m/%d/%Y')}"
        )


@dataclass(frozen=True)
class AppointmentValidation:
    is_valid: bool
    blocking_record: Optional[LeaveBlock] = None
    error: Optional[str] = None


def _blocks(
    block: LeaveBlock, appointment_date: date, start_dt: datetime, end_dt: datetime
) -> bool:
    if block.time_range is not None:
        if appointment_date != block.start:
            return False
        window = (block.time_range.start.on(block.start), block.time_range.end.on(block.start))
        return overlaps((start_dt, end_dt), window)
    # Full-day leave blocks the whole calendar day whatever the appointment time
    return date_ranges_overlap(block.start, block.end, appointment_date, appointment_date)


def validate_appointment(
    appointment_date: date,
    start_dt: datetime,
    end_dt: datetime,
    practitioner_id: str,
    leave_blocks: Iterable[LeaveBlock],
) -> AppointmentValidation:
    """Check a proposed appointment against the practitioner's leave; first hit wins"""
    for block in leave_blocks:
        if block.resource_id != practitioner_id:
            continue
        if _blocks(block, appointment_date, start_dt, end_dt):
            return AppointmentValidation(is_valid=False, blocking_record=block, error=block.describe())
    return AppointmentValidation(is_valid=True)


def day_has_leave(day: date, leave_blocks: Iterable[LeaveBlock], resource_id: Optional[str] = None) -> bool:
    """Whether any block touches day; partial blocks count for their date"""
    return any(
        date_ranges_overlap(block.start, block.end, day, day)
        for block in leave_blocks
        if resource_id is None or block.resource_id == resource_id
    )


@dataclass(frozen=True)
class LeaveEvent:
    id: str
    title: str
    start: datetime
    end: datetime
    resource_id: str
    is_personal: bool


def _event_title(block: LeaveBlock) -> str:
    if block.is_personal and block.title:
        return f"🚫 {block.title}"
    return f"🚫 {block.user_name} - {format_leave_type(block.leave_type)}"


def leave_blocks_to_events(leave_blocks: Iterable[LeaveBlock]) -> list[LeaveEvent]:
    """
    Expand blocks into calendar events: one timed event for a partial-day
    block, one whole-day event per day of a full-day range.
    """
    events = []
    for block in leave_blocks:
        title = _event_title(block)
        if block.time_range is not None:
            events.append(
                LeaveEvent(
                    id=f"leave-{block.id}",
                    title=title,
                    start=block.time_range.start.on(block.start),
                    end=block.time_range.end.on(block.start),
                    resource_id=block.resource_id,
                    is_personal=block.is_personal,
                )
            )
            continue

        for i in range((block.end - block.start).days + 1):
            day = block.start + timedelta(days=i)
            events.append(
                LeaveEvent(
                    id=f"leave-{block.id}-day-{i}",
                    title=title,
                    start=datetime.combine(day, time.min),
                    end=datetime.combine(day, time.max),
                    resource_id=block.resource_id,
                    is_personal=block.is_personal,
                )
            )
    return events
