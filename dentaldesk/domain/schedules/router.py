"""Clinic schedule router - FastAPI endpoints for schedules, shifts and overrides"""

import datetime as dt
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import SessionContext, get_current_session, require_manager
from ...database import get_db
from ...models import ClinicSchedule, RoomShift, ScheduleOverride
from ...shared.intervals import WEEK
from .resolver import TIER_WEEKLY, DayOverride, EffectiveShift, RoomDaySchedule, ShiftRecord
from .schemas import (
    ActiveScheduleResponse,
    DayOfWeekOverrideCreate,
    DayOfWeekOverrideResult,
    EffectiveShiftResponse,
    OverrideCreate,
    OverrideResponse,
    PractitionerSummary,
    RoomDayScheduleResponse,
    ScheduleCreate,
    ScheduleResponse,
    ScheduleUpdate,
    ShiftCreate,
    ShiftOverlapWarning,
    ShiftResponse,
    ShiftSaveResponse,
    ShiftUpdate,
    SuppressedShiftResponse,
    WeekSummary,
    WeekViewResponse,
)
from .service import ScheduleService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/clinic-schedules", tags=["Clinic Schedules"])


def get_schedule_service(db: Session = Depends(get_db)) -> ScheduleService:
    """Dependency injection for ScheduleService"""
    return ScheduleService(db)


def schedule_response(s: ClinicSchedule) -> ScheduleResponse:
    return ScheduleResponse(
        id=s.id,
        name=s.name,
        startDate=s.start_date,
        endDate=s.end_date,
        roomCount=s.room_count,
        isActive=s.is_active,
        createdAt=s.created_at,
    )


def _practitioner(user) -> Optional[PractitionerSummary]:
    if user is None:
        return None
    return PractitionerSummary(
        id=user.id, firstName=user.first_name, lastName=user.last_name, role=user.role
    )


def shift_response(s: RoomShift) -> ShiftResponse:
    return ShiftResponse(
        id=s.id,
        scheduleId=s.schedule_id,
        roomNumber=s.room_number,
        practitionerId=s.practitioner_id,
        sidePractitionerId=s.side_practitioner_id,
        startTime=s.start_time,
        endTime=s.end_time,
        date=s.date,
        dayOfWeek=s.day_of_week,
        priority=s.priority,
        isOverride=s.is_override,
        reason=s.reason,
        practitioner=_practitioner(s.practitioner),
        sidePractitioner=_practitioner(s.side_practitioner),
    )


def overlap_warning(r: ShiftRecord) -> ShiftOverlapWarning:
    dated = r.is_dated
    return ShiftOverlapWarning(
        shiftId=r.id,
        startTime=str(r.start_time),
        endTime=str(r.end_time),
        date=r.selector.date if dated else None,
        dayOfWeek=None if dated else r.selector.weekday.value,
        message=f"Overlaps existing shift {r.describe()}",
    )


def override_response(o: ScheduleOverride) -> OverrideResponse:
    return OverrideResponse(
        id=o.id,
        scheduleId=o.schedule_id,
        date=o.date,
        roomNumber=o.room_number,
        practitionerId=o.practitioner_id,
        startTime=o.start_time,
        endTime=o.end_time,
        isUnavailable=o.is_unavailable,
        reason=o.reason,
    )


def _day_override_response(schedule_id: str, o: DayOverride) -> OverrideResponse:
    return OverrideResponse(
        id=o.id,
        scheduleId=schedule_id,
        date=o.date,
        roomNumber=o.room_number,
        practitionerId=o.practitioner_id,
        startTime=str(o.time_range.start) if o.time_range else None,
        endTime=str(o.time_range.end) if o.time_range else None,
        isUnavailable=o.is_unavailable,
        reason=o.reason,
    )


def effective_shift_response(s: EffectiveShift) -> EffectiveShiftResponse:
    r = s.record
    return EffectiveShiftResponse(
        id=r.id,
        roomNumber=r.room_number,
        practitionerId=r.practitioner_id,
        sidePractitionerId=r.side_practitioner_id,
        startTime=str(r.start_time),
        endTime=str(r.end_time),
        priority=r.priority,
        isOverride=r.is_override,
        source=s.tier,
        conflictsWith=list(s.conflicts_with),
    )


def room_day_response(day: RoomDaySchedule) -> RoomDayScheduleResponse:
    return RoomDayScheduleResponse(
        scheduleId=day.schedule_id,
        roomNumber=day.room_number,
        date=day.date,
        isAvailable=day.is_available,
        shifts=[effective_shift_response(s) for s in day.shifts],
        suppressed=[
            SuppressedShiftResponse(id=s.record.id, reason=s.reason, suppressedBy=s.suppressed_by)
            for s in day.suppressed
        ],
        conflicts=[list(pair) for pair in day.conflicts],
        closures=[_day_override_response(day.schedule_id, o) for o in day.closures],
        customHours=[_day_override_response(day.schedule_id, o) for o in day.custom_hours],
    )


# ============================================================================
# SCHEDULES
# ============================================================================


@router.get("", response_model=list[ScheduleResponse])
async def get_schedules(
    session: SessionContext = Depends(get_current_session),
    service: ScheduleService = Depends(get_schedule_service),
):
    """List clinic schedules of the organization, newest first"""
    return [schedule_response(s) for s in service.get_schedules(session)]


@router.get("/active", response_model=ActiveScheduleResponse)
async def get_active_schedule(
    date: Optional[dt.date] = Query(None, description="Resolve every room for this date"),
    session: SessionContext = Depends(get_current_session),
    service: ScheduleService = Depends(get_schedule_service),
):
    """Get the active schedule, with per-room availability when a date is given"""
    schedule, rooms = service.get_active_schedule(session, date)
    if not schedule:
        return ActiveScheduleResponse(message="No active schedule found")
    return ActiveScheduleResponse(
        schedule=schedule_response(schedule),
        rooms=[room_day_response(r) for r in rooms] if rooms is not None else None,
    )


@router.post("", response_model=ScheduleResponse)
async def create_schedule(
    data: ScheduleCreate,
    session: SessionContext = Depends(require_manager),
    service: ScheduleService = Depends(get_schedule_service),
):
    """Create a schedule; it replaces the current active schedule"""
    return schedule_response(service.create_schedule(data, session))


# ============================================================================
# SHIFTS
# ============================================================================


@router.get("/shifts/{shift_id}", response_model=ShiftResponse)
async def get_shift(
    shift_id: str,
    session: SessionContext = Depends(get_current_session),
    service: ScheduleService = Depends(get_schedule_service),
):
    return shift_response(service.get_shift(shift_id, session))


@router.post("/shifts", response_model=ShiftSaveResponse)
async def create_shift(
    data: ShiftCreate,
    session: SessionContext = Depends(require_manager),
    service: ScheduleService = Depends(get_schedule_service),
):
    """Create a room shift. Overlapping shifts are saved and reported as warnings"""
    shift, overlapping = service.create_shift(data, session)
    return ShiftSaveResponse(
        shift=shift_response(shift), warnings=[overlap_warning(r) for r in overlapping]
    )


@router.patch("/shifts/{shift_id}", response_model=ShiftSaveResponse)
async def update_shift(
    shift_id: str,
    data: ShiftUpdate,
    session: SessionContext = Depends(require_manager),
    service: ScheduleService = Depends(get_schedule_service),
):
    shift, overlapping = service.update_shift(shift_id, data, session)
    return ShiftSaveResponse(
        shift=shift_response(shift), warnings=[overlap_warning(r) for r in overlapping]
    )


@router.delete("/shifts/{shift_id}")
async def delete_shift(
    shift_id: str,
    session: SessionContext = Depends(require_manager),
    service: ScheduleService = Depends(get_schedule_service),
):
    return service.delete_shift(shift_id, session)


# ============================================================================
# OVERRIDES
# ============================================================================


@router.post("/overrides", response_model=OverrideResponse)
async def upsert_override(
    data: OverrideCreate,
    session: SessionContext = Depends(require_manager),
    service: ScheduleService = Depends(get_schedule_service),
):
    """Create or replace the override for (schedule, date, room, practitioner)"""
    return override_response(service.upsert_override(data, session))


@router.post("/day-of-week-overrides", response_model=DayOfWeekOverrideResult)
async def apply_day_of_week_override(
    data: DayOfWeekOverrideCreate,
    session: SessionContext = Depends(require_manager),
    service: ScheduleService = Depends(get_schedule_service),
):
    """Apply an override to every matching weekday of the schedule period"""
    dates = service.apply_day_of_week_override(data, session)
    return DayOfWeekOverrideResult(
        message=f"Override applied to {len(dates)} {data.dayOfWeek}(s)", dates=dates
    )


@router.delete("/overrides/{override_id}")
async def delete_override(
    override_id: str,
    session: SessionContext = Depends(require_manager),
    service: ScheduleService = Depends(get_schedule_service),
):
    return service.delete_override(override_id, session)


# ============================================================================
# SCHEDULE DETAIL
# ============================================================================


@router.patch("/{schedule_id}", response_model=ScheduleResponse)
async def update_schedule(
    schedule_id: str,
    data: ScheduleUpdate,
    session: SessionContext = Depends(require_manager),
    service: ScheduleService = Depends(get_schedule_service),
):
    return schedule_response(service.update_schedule(schedule_id, data, session))


@router.delete("/{schedule_id}")
async def delete_schedule(
    schedule_id: str,
    session: SessionContext = Depends(require_manager),
    service: ScheduleService = Depends(get_schedule_service),
):
    return service.delete_schedule(schedule_id, session)


@router.get("/{schedule_id}", response_model=ScheduleResponse)
async def get_schedule(
    schedule_id: str,
    session: SessionContext = Depends(get_current_session),
    service: ScheduleService = Depends(get_schedule_service),
):
    return schedule_response(service.get_schedule(schedule_id, session))


@router.get("/{schedule_id}/shifts", response_model=list[ShiftResponse])
async def get_shifts(
    schedule_id: str,
    room_number: Optional[int] = Query(None, ge=1),
    date: Optional[dt.date] = Query(None),
    day_of_week: Optional[str] = Query(None),
    session: SessionContext = Depends(get_current_session),
    service: ScheduleService = Depends(get_schedule_service),
):
    """List shifts of a schedule, optionally filtered by room, date or weekday"""
    shifts = service.get_shifts(schedule_id, session, room_number, date, day_of_week)
    return [shift_response(s) for s in shifts]


@router.get("/{schedule_id}/overrides", response_model=list[OverrideResponse])
async def get_overrides(
    schedule_id: str,
    start_date: Optional[dt.date] = Query(None),
    end_date: Optional[dt.date] = Query(None),
    session: SessionContext = Depends(get_current_session),
    service: ScheduleService = Depends(get_schedule_service),
):
    overrides = service.get_overrides(schedule_id, session, start_date, end_date)
    return [override_response(o) for o in overrides]


@router.get("/{schedule_id}/rooms/{room_number}/day", response_model=RoomDayScheduleResponse)
async def resolve_room_day(
    schedule_id: str,
    room_number: int,
    date: dt.date = Query(..., description="Target date (YYYY-MM-DD)"),
    session: SessionContext = Depends(get_current_session),
    service: ScheduleService = Depends(get_schedule_service),
):
    """Effective shifts of one room on one date, after overrides and closures"""
    return room_day_response(service.resolve_room_schedule(schedule_id, room_number, date, session))


@router.get("/{schedule_id}/rooms/{room_number}/week", response_model=WeekViewResponse)
async def get_week_view(
    schedule_id: str,
    room_number: int,
    session: SessionContext = Depends(get_current_session),
    service: ScheduleService = Depends(get_schedule_service),
):
    """Recurring weekly shifts of a room, grouped by weekday"""
    week = service.get_week_view(schedule_id, room_number, session)
    summary = week.summary()
    return WeekViewResponse(
        scheduleId=schedule_id,
        roomNumber=room_number,
        days={
            day.value: [
                effective_shift_response(EffectiveShift(record=s, tier=TIER_WEEKLY))
                for s in week.shifts_for(day)
            ]
            for day in WEEK
        },
        summary=WeekSummary(
            totalShifts=summary["total_shifts"],
            daysWithShifts=summary["days_with_shifts"],
            overrideCount=summary["override_count"],
            practitionerCount=summary["practitioner_count"],
        ),
    )
