"""Clinic schedule domain schemas - Pydantic models for validation"""

import datetime as dt
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from ...shared.intervals import TimeRange, Weekday, selector_from_fields
from ...shared.validators import parse_date, validate_date_range, validate_time_string


def _time_field(v):
    if v is None:
        return v
    return validate_time_string(v)


def _date_field(v):
    if v is None or v == "":
        return None
    return parse_date(v)


# ============================================================================
# SCHEDULES
# ============================================================================


class ScheduleCreate(BaseModel):
    """Schema for creating a clinic schedule period"""

    name: str = Field(..., min_length=1)
    startDate: dt.date
    endDate: dt.date
    roomCount: int = Field(..., ge=1, le=50)

    @field_validator("startDate", "endDate", mode="before")
    @classmethod
    def validate_dates(cls, v):
        return parse_date(v)

    @model_validator(mode="after")
    def validate_range(self):
        validate_date_range(self.startDate, self.endDate)
        return self


class ScheduleUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    startDate: Optional[dt.date] = None
    endDate: Optional[dt.date] = None
    roomCount: Optional[int] = Field(None, ge=1, le=50)
    isActive: Optional[bool] = None

    @field_validator("startDate", "endDate", mode="before")
    @classmethod
    def validate_dates(cls, v):
        return _date_field(v)


class ScheduleResponse(BaseModel):
    id: str
    name: str
    startDate: dt.date
    endDate: dt.date
    roomCount: int
    isActive: bool
    createdAt: Optional[dt.datetime] = None


# ============================================================================
# SHIFTS
# ============================================================================


class ShiftCreate(BaseModel):
    """Schema for creating a room shift; exactly one of date/dayOfWeek"""

    scheduleId: str
    roomNumber: int = Field(..., ge=1)
    practitionerId: str
    sidePractitionerId: Optional[str] = None
    startTime: str
    endTime: str
    date: Optional[dt.date] = None
    dayOfWeek: Optional[str] = None
    priority: int = 0
    isOverride: bool = False
    reason: Optional[str] = None

    @field_validator("startTime", "endTime")
    @classmethod
    def validate_times(cls, v):
        return _time_field(v)

    @field_validator("date", mode="before")
    @classmethod
    def validate_date(cls, v):
        return _date_field(v)

    @field_validator("dayOfWeek")
    @classmethod
    def validate_day_of_week(cls, v):
        if not v:
            return None
        return Weekday.parse(v).value

    @model_validator(mode="after")
    def validate_shift(self):
        selector_from_fields(self.date, self.dayOfWeek)
        TimeRange.parse(self.startTime, self.endTime)
        return self


class ShiftUpdate(BaseModel):
    """Partial update; setting date or dayOfWeek replaces the selector"""

    roomNumber: Optional[int] = Field(None, ge=1)
    practitionerId: Optional[str] = None
    sidePractitionerId: Optional[str] = None
    startTime: Optional[str] = None
    endTime: Optional[str] = None
    date: Optional[dt.date] = None
    dayOfWeek: Optional[str] = None
    priority: Optional[int] = None
    isOverride: Optional[bool] = None
    reason: Optional[str] = None

    @field_validator("startTime", "endTime")
    @classmethod
    def validate_times(cls, v):
        return _time_field(v)

    @field_validator("date", mode="before")
    @classmethod
    def validate_date(cls, v):
        return _date_field(v)

    @field_validator("dayOfWeek")
    @classmethod
    def validate_day_of_week(cls, v):
        if not v:
            return None
        return Weekday.parse(v).value

    @model_validator(mode="after")
    def validate_shift(self):
        if self.date is not None and self.dayOfWeek:
            raise ValueError("Cannot specify both date and dayOfWeek")
        if self.startTime and self.endTime:
            TimeRange.parse(self.startTime, self.endTime)
        return self


class PractitionerSummary(BaseModel):
    id: str
    firstName: Optional[str] = None
    lastName: Optional[str] = None
    role: Optional[str] = None


class ShiftResponse(BaseModel):
    id: str
    scheduleId: str
    roomNumber: int
    practitionerId: str
    sidePractitionerId: Optional[str] = None
    startTime: str
    endTime: str
    date: Optional[dt.date] = None
    dayOfWeek: Optional[str] = None
    priority: int
    isOverride: bool
    reason: Optional[str] = None
    practitioner: Optional[PractitionerSummary] = None
    sidePractitioner: Optional[PractitionerSummary] = None


class ShiftOverlapWarning(BaseModel):
    shiftId: str
    startTime: str
    endTime: str
    date: Optional[dt.date] = None
    dayOfWeek: Optional[str] = None
    message: str


class ShiftSaveResponse(BaseModel):
    """A saved shift plus any overlaps with existing shifts (informational only)"""

    shift: ShiftResponse
    warnings: list[ShiftOverlapWarning] = []


# ============================================================================
# OVERRIDES
# ============================================================================


class OverrideCreate(BaseModel):
    scheduleId: str
    date: dt.date
    roomNumber: Optional[int] = Field(None, ge=1)
    practitionerId: Optional[str] = None
    startTime: Optional[str] = None
    endTime: Optional[str] = None
    isUnavailable: bool = False
    reason: Optional[str] = None

    @field_validator("date", mode="before")
    @classmethod
    def validate_date(cls, v):
        return parse_date(v)

    @field_validator("startTime", "endTime")
    @classmethod
    def validate_times(cls, v):
        return _time_field(v)

    @model_validator(mode="after")
    def validate_window(self):
        if bool(self.startTime) != bool(self.endTime):
            raise ValueError("startTime and endTime must be given together")
        if self.startTime and self.endTime:
            TimeRange.parse(self.startTime, self.endTime)
        if not self.isUnavailable and not self.startTime:
            raise ValueError("Custom hours require startTime and endTime")
        if self.isUnavailable and not (self.reason and self.reason.strip()):
            raise ValueError("A reason is required when marking unavailability")
        return self


class DayOfWeekOverrideCreate(BaseModel):
    """Applies to every matching weekday inside the schedule period"""

    scheduleId: str
    dayOfWeek: str
    roomNumber: Optional[int] = Field(None, ge=1)
    practitionerId: Optional[str] = None
    startTime: Optional[str] = None
    endTime: Optional[str] = None
    isUnavailable: bool
    reason: Optional[str] = None

    @field_validator("dayOfWeek")
    @classmethod
    def validate_day_of_week(cls, v):
        return Weekday.parse(v).value

    @field_validator("startTime", "endTime")
    @classmethod
    def validate_times(cls, v):
        return _time_field(v)

    @model_validator(mode="after")
    def validate_window(self):
        if bool(self.startTime) != bool(self.endTime):
            raise ValueError("startTime and endTime must be given together")
        if self.startTime and self.endTime:
            TimeRange.parse(self.startTime, self.endTime)
        if not self.isUnavailable and not self.startTime:
            raise ValueError("Custom hours require startTime and endTime")
        if self.isUnavailable and not (self.reason and self.reason.strip()):
            raise ValueError("A reason is required when marking unavailability")
        return self


class OverrideResponse(BaseModel):
    id: str
    scheduleId: str
    date: dt.date
    roomNumber: Optional[int] = None
    practitionerId: Optional[str] = None
    startTime: Optional[str] = None
    endTime: Optional[str] = None
    isUnavailable: bool
    reason: Optional[str] = None


class DayOfWeekOverrideResult(BaseModel):
    message: str
    dates: list[dt.date]


# ============================================================================
# RESOLVED VIEWS
# ============================================================================


class EffectiveShiftResponse(BaseModel):
    id: str
    roomNumber: int
    practitionerId: str
    sidePractitionerId: Optional[str] = None
    startTime: str
    endTime: str
    priority: int
    isOverride: bool
    source: str  # "date" or "weekly"
    conflictsWith: list[str] = []


class SuppressedShiftResponse(BaseModel):
    id: str
    reason: str
    suppressedBy: Optional[str] = None


class RoomDayScheduleResponse(BaseModel):
    scheduleId: str
    roomNumber: int
    date: dt.date
    isAvailable: bool
    shifts: list[EffectiveShiftResponse]
    suppressed: list[SuppressedShiftResponse] = []
    conflicts: list[list[str]] = []
    closures: list[OverrideResponse] = []
    customHours: list[OverrideResponse] = []


class ActiveScheduleResponse(BaseModel):
    schedule: Optional[ScheduleResponse] = None
    rooms: Optional[list[RoomDayScheduleResponse]] = None
    message: Optional[str] = None


class WeekSummary(BaseModel):
    totalShifts: int
    daysWithShifts: int
    overrideCount: int
    practitionerCount: int


class WeekViewResponse(BaseModel):
    scheduleId: str
    roomNumber: int
    days: dict[str, list[EffectiveShiftResponse]]
    summary: WeekSummary
