"""Clinic schedule service - Business logic for schedules, room shifts and overrides"""

import logging
from datetime import date, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from ...auth import SessionContext
from ...models import ClinicSchedule, RoomShift, ScheduleOverride, generate_id
from ...shared.errors import NotFoundError, ValidationFailed
from ...shared.intervals import TimeRange, Weekday, selector_from_fields
from .repository import ScheduleRepository
from .resolver import (
    DayOverride,
    RoomDaySchedule,
    ShiftRecord,
    find_overlapping_shifts,
    resolve_room_day,
)
from .schemas import (
    DayOfWeekOverrideCreate,
    OverrideCreate,
    ScheduleCreate,
    ScheduleUpdate,
    ShiftCreate,
    ShiftUpdate,
)
from .week import WeekSchedule

logger = logging.getLogger(__name__)


def describe_overlaps(overlapping: list[ShiftRecord]) -> str:
    return ", ".join(record.describe() for record in overlapping)


class ScheduleService:
    """Service layer for clinic schedule business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = ScheduleRepository()

    # ========================================================================
    # SCHEDULES
    # ========================================================================

    def get_schedules(self, session: SessionContext) -> list[ClinicSchedule]:
        return self.repo.get_schedules(self.db, session.organization_id)

    def get_schedule(self, schedule_id: str, session: SessionContext) -> ClinicSchedule:
        schedule = self.repo.get_schedule(self.db, schedule_id, session.organization_id)
        if not schedule:
            raise NotFoundError("Schedule not found", {"scheduleId": schedule_id})
        return schedule

    def create_schedule(self, data: ScheduleCreate, session: SessionContext) -> ClinicSchedule:
        """
        Create a schedule and make it the active one.

        The previously active schedule is deactivated and its date overrides
        are copied into the new schedule, all in one transaction.
        """
        logger.info(f"📥 Creating clinic schedule '{data.name}' for org {session.organization_id}")

        previous = self.repo.get_active_schedule(self.db, session.organization_id)
        try:
            if previous:
                previous.is_active = False

            schedule = ClinicSchedule(
                id=generate_id(),
                organization_id=session.organization_id,
                name=data.name,
                start_date=data.startDate,
                end_date=data.endDate,
                room_count=data.roomCount,
                is_active=True,
            )
            self.repo.add(self.db, schedule)

            copied = 0
            if previous:
                for o in previous.schedule_overrides:
                    self.repo.add(
                        self.db,
                        ScheduleOverride(
                            schedule_id=schedule.id,
                            date=o.date,
                            room_number=o.room_number,
                            practitioner_id=o.practitioner_id,
                            start_time=o.start_time,
                            end_time=o.end_time,
                            is_unavailable=o.is_unavailable,
                            reason=o.reason,
                        ),
                    )
                    copied += 1

            self.repo.save(self.db, schedule)
        except Exception:
            self.db.rollback()
            raise

        if previous:
            logger.info(
                f"🔄 Schedule {previous.id} deactivated, {copied} override(s) copied to {schedule.id}"
            )
        logger.info(f"✅ Clinic schedule created: {schedule.id}")
        return schedule

    def update_schedule(
        self, schedule_id: str, data: ScheduleUpdate, session: SessionContext
    ) -> ClinicSchedule:
        schedule = self.get_schedule(schedule_id, session)

        start = data.startDate or schedule.start_date
        end = data.endDate or schedule.end_date
        if start > end:
            raise ValidationFailed("Start date cannot be after end date", field="startDate")

        if data.name is not None:
            schedule.name = data.name
        schedule.start_date = start
        schedule.end_date = end
        if data.roomCount is not None:
            schedule.room_count = data.roomCount
        if data.isActive is not None:
            if data.isActive:
                active = self.repo.get_active_schedule(self.db, session.organization_id)
                if active and active.id != schedule.id:
                    active.is_active = False
                    logger.info(f"🔄 Schedule {active.id} deactivated")
            schedule.is_active = data.isActive

        return self.repo.save(self.db, schedule)

    def delete_schedule(self, schedule_id: str, session: SessionContext) -> dict:
        schedule = self.get_schedule(schedule_id, session)
        self.repo.delete(self.db, schedule)
        logger.info(f"🗑️ Clinic schedule deleted: {schedule_id}")
        return {"message": "Schedule deleted successfully"}

    def get_active_schedule(
        self, session: SessionContext, target_date: Optional[date] = None
    ) -> tuple[Optional[ClinicSchedule], Optional[list[RoomDaySchedule]]]:
        """Active schedule, plus every room resolved for target_date when one is given"""
        schedule = self.repo.get_active_schedule(self.db, session.organization_id)
        if not schedule or target_date is None:
            return schedule, None

        weekday = Weekday.from_date(target_date).value
        records = [
            ShiftRecord.from_model(s)
            for s in self.repo.get_room_shifts_for_date(
                self.db, schedule.id, None, target_date, weekday
            )
        ]
        overrides = [
            DayOverride.from_model(o)
            for o in self.repo.get_overrides(self.db, schedule.id, target_date, target_date)
        ]
        rooms = [
            resolve_room_day(schedule.id, room, target_date, records, overrides)
            for room in range(1, schedule.room_count + 1)
        ]
        return schedule, rooms

    # ========================================================================
    # SHIFTS
    # ========================================================================

    def _check_practitioners(self, session: SessionContext, *user_ids: Optional[str]) -> None:
        for user_id in user_ids:
            if user_id and not self.repo.get_org_user(self.db, user_id, session.organization_id):
                raise NotFoundError("Practitioner not found", {"practitionerId": user_id})

    def get_shifts(
        self,
        schedule_id: str,
        session: SessionContext,
        room_number: Optional[int] = None,
        on_date: Optional[date] = None,
        day_of_week: Optional[str] = None,
    ) -> list[RoomShift]:
        self.get_schedule(schedule_id, session)
        if day_of_week:
            day_of_week = Weekday.parse(day_of_week).value
        return self.repo.get_shifts(self.db, schedule_id, room_number, on_date, day_of_week)

    def get_shift(self, shift_id: str, session: SessionContext) -> RoomShift:
        shift = self.repo.get_shift(self.db, shift_id, session.organization_id)
        if not shift:
            raise NotFoundError("Shift not found", {"shiftId": shift_id})
        return shift

    def _find_overlaps(self, shift: RoomShift) -> list[ShiftRecord]:
        candidate = ShiftRecord.from_model(shift)
        existing = [
            ShiftRecord.from_model(s)
            for s in self.repo.get_conflict_candidates(
                self.db, shift.schedule_id, shift.room_number, shift.date, shift.day_of_week
            )
        ]
        overlapping = find_overlapping_shifts(candidate, existing)
        if overlapping:
            # Overlaps never block saving; they are reported back as warnings
            logger.warning(
                f"⚠️ Shift {candidate.describe()} in room {shift.room_number} overlaps: "
                f"{describe_overlaps(overlapping)}"
            )
        return overlapping

    def create_shift(
        self, data: ShiftCreate, session: SessionContext
    ) -> tuple[RoomShift, list[ShiftRecord]]:
        """Create a shift; returns it with the existing shifts it overlaps"""
        schedule = self.get_schedule(data.scheduleId, session)
        self._check_practitioners(session, data.practitionerId, data.sidePractitionerId)

        shift = RoomShift(
            id=generate_id(),
            schedule_id=schedule.id,
            room_number=data.roomNumber,
            practitioner_id=data.practitionerId,
            side_practitioner_id=data.sidePractitionerId or None,
            start_time=data.startTime,
            end_time=data.endTime,
            date=data.date,
            day_of_week=data.dayOfWeek or None,
            priority=data.priority or 0,
            is_override=data.isOverride,
            reason=data.reason or None,
        )

        overlapping = self._find_overlaps(shift)

        self.repo.add(self.db, shift)
        self.repo.save(self.db, shift)
        logger.info(f"✅ Room shift created: {shift.id} (room {shift.room_number})")
        return shift, overlapping

    def update_shift(
        self, shift_id: str, data: ShiftUpdate, session: SessionContext
    ) -> tuple[RoomShift, list[ShiftRecord]]:
        shift = self.get_shift(shift_id, session)
        self._check_practitioners(session, data.practitionerId, data.sidePractitionerId)

        updates = data.model_dump(exclude_unset=True)

        start_time = updates.get("startTime") or shift.start_time
        end_time = updates.get("endTime") or shift.end_time
        TimeRange.parse(start_time, end_time)

        # A new date or weekday replaces the selector entirely
        new_date, new_day = shift.date, shift.day_of_week
        if updates.get("date") is not None:
            new_date, new_day = updates["date"], None
        elif updates.get("dayOfWeek"):
            new_date, new_day = None, updates["dayOfWeek"]
        selector_from_fields(new_date, new_day)

        field_map = {
            "roomNumber": "room_number",
            "practitionerId": "practitioner_id",
            "sidePractitionerId": "side_practitioner_id",
            "priority": "priority",
            "isOverride": "is_override",
            "reason": "reason",
        }
        nullable = ("sidePractitionerId", "reason")
        for key, attr in field_map.items():
            if key in updates and (updates[key] is not None or key in nullable):
                setattr(shift, attr, updates[key])
        shift.start_time = start_time
        shift.end_time = end_time
        shift.date = new_date
        shift.day_of_week = new_day

        overlapping = self._find_overlaps(shift)
        self.repo.save(self.db, shift)
        logger.info(f"✅ Room shift updated: {shift.id}")
        return shift, overlapping

    def delete_shift(self, shift_id: str, session: SessionContext) -> dict:
        shift = self.get_shift(shift_id, session)
        self.repo.delete(self.db, shift)
        logger.info(f"🗑️ Room shift deleted: {shift_id}")
        return {"message": "Shift deleted successfully"}

    def resolve_room_schedule(
        self, schedule_id: str, room_number: int, target_date: date, session: SessionContext
    ) -> RoomDaySchedule:
        """Effective shifts of one room on one date"""
        schedule = self.get_schedule(schedule_id, session)
        if room_number < 1:
            raise ValidationFailed("Room number must be at least 1", field="roomNumber")

        weekday = Weekday.from_date(target_date).value
        records = [
            ShiftRecord.from_model(s)
            for s in self.repo.get_room_shifts_for_date(
                self.db, schedule.id, room_number, target_date, weekday
            )
        ]
        overrides = [
            DayOverride.from_model(o)
            for o in self.repo.get_overrides(self.db, schedule.id, target_date, target_date)
        ]
        return resolve_room_day(schedule.id, room_number, target_date, records, overrides)

    def get_week_view(self, schedule_id: str, room_number: int, session: SessionContext) -> WeekSchedule:
        schedule = self.get_schedule(schedule_id, session)
        shifts = self.repo.get_weekly_shifts(self.db, schedule.id, room_number)
        return WeekSchedule(ShiftRecord.from_model(s) for s in shifts)

    # ========================================================================
    # OVERRIDES
    # ========================================================================

    def get_overrides(
        self,
        schedule_id: str,
        session: SessionContext,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> list[ScheduleOverride]:
        self.get_schedule(schedule_id, session)
        return self.repo.get_overrides(self.db, schedule_id, start_date, end_date)

    def _upsert_override(self, schedule_id: str, on_date: date, fields: dict) -> ScheduleOverride:
        override = self.repo.find_override(
            self.db, schedule_id, on_date, fields.get("room_number"), fields.get("practitioner_id")
        )
        if override is None:
            override = ScheduleOverride(schedule_id=schedule_id, date=on_date, **fields)
            self.repo.add(self.db, override)
        else:
            for key, value in fields.items():
                setattr(override, key, value)
        return override

    def upsert_override(self, data: OverrideCreate, session: SessionContext) -> ScheduleOverride:
        schedule = self.get_schedule(data.scheduleId, session)
        self._check_practitioners(session, data.practitionerId)

        override = self._upsert_override(
            schedule.id,
            data.date,
            {
                "room_number": data.roomNumber,
                "practitioner_id": data.practitionerId,
                "start_time": data.startTime,
                "end_time": data.endTime,
                "is_unavailable": data.isUnavailable,
                "reason": data.reason,
            },
        )
        self.repo.save(self.db, override)
        logger.info(f"✅ Schedule override saved for {data.date.isoformat()} on schedule {schedule.id}")
        return override

    def apply_day_of_week_override(
        self, data: DayOfWeekOverrideCreate, session: SessionContext
    ) -> list[date]:
        """
        Expand a weekday override into one dated override for each matching
        day of the active schedule period.
        """
        schedule = self.get_schedule(data.scheduleId, session)
        if not schedule.is_active:
            raise NotFoundError("Schedule not found", {"scheduleId": data.scheduleId})
        self._check_practitioners(session, data.practitionerId)

        target = Weekday.parse(data.dayOfWeek)
        dates = []
        day = schedule.start_date
        while day <= schedule.end_date:
            if Weekday.from_date(day) == target:
                dates.append(day)
            day += timedelta(days=1)

        fields = {
            "room_number": data.roomNumber,
            "practitioner_id": data.practitionerId,
            "start_time": data.startTime,
            "end_time": data.endTime,
            "is_unavailable": data.isUnavailable,
            "reason": data.reason,
        }
        try:
            for day in dates:
                self._upsert_override(schedule.id, day, fields)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            f"✅ {target.value} override applied to {len(dates)} date(s) on schedule {schedule.id}"
        )
        return dates

    def delete_override(self, override_id: str, session: SessionContext) -> dict:
        override = self.repo.get_override(self.db, override_id, session.organization_id)
        if not override:
            raise NotFoundError("Override not found", {"overrideId": override_id})
        self.repo.delete(self.db, override)
        return {"message": "Override deleted successfully"}
