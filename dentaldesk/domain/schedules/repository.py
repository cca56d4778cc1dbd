"""Clinic schedule repository - Database operations for schedules, shifts and overrides"""

from datetime import date
from typing import Optional

from sqlalchemy.orm import Session, joinedload

from ...models import ClinicSchedule, RoomShift, ScheduleOverride, User


class ScheduleRepository:
    """Repository for clinic schedule database operations"""

    # Schedules
    @staticmethod
    def get_schedules(db: Session, organization_id: str) -> list[ClinicSchedule]:
        return (
            db.query(ClinicSchedule)
            .filter(ClinicSchedule.organization_id == organization_id)
            .order_by(ClinicSchedule.created_at.desc())
            .all()
        )

    @staticmethod
    def get_schedule(db: Session, schedule_id: str, organization_id: str) -> Optional[ClinicSchedule]:
        return (
            db.query(ClinicSchedule)
            .filter(
                ClinicSchedule.id == schedule_id,
                ClinicSchedule.organization_id == organization_id,
            )
            .first()
        )

    @staticmethod
    def get_active_schedule(db: Session, organization_id: str) -> Optional[ClinicSchedule]:
        return (
            db.query(ClinicSchedule)
            .filter(
                ClinicSchedule.organization_id == organization_id,
                ClinicSchedule.is_active.is_(True),
            )
            .first()
        )

    @staticmethod
    def add(db: Session, obj) -> None:
        db.add(obj)

    @staticmethod
    def save(db: Session, obj):
        db.commit()
        db.refresh(obj)
        return obj

    @staticmethod
    def delete(db: Session, obj) -> None:
        db.delete(obj)
        db.commit()

    # Shifts
    @staticmethod
    def get_shift(db: Session, shift_id: str, organization_id: str) -> Optional[RoomShift]:
        return (
            db.query(RoomShift)
            .join(ClinicSchedule, RoomShift.schedule_id == ClinicSchedule.id)
            .filter(RoomShift.id == shift_id, ClinicSchedule.organization_id == organization_id)
            .first()
        )

    @staticmethod
    def get_shifts(
        db: Session,
        schedule_id: str,
        room_number: Optional[int] = None,
        on_date: Optional[date] = None,
        day_of_week: Optional[str] = None,
    ) -> list[RoomShift]:
        """List shifts ordered by room, date, weekday, start time and priority"""
        query = (
            db.query(RoomShift)
            .options(joinedload(RoomShift.practitioner), joinedload(RoomShift.side_practitioner))
            .filter(RoomShift.schedule_id == schedule_id)
        )
        if room_number is not None:
            query = query.filter(RoomShift.room_number == room_number)
        if on_date is not None:
            query = query.filter(RoomShift.date == on_date)
        if day_of_week:
            query = query.filter(RoomShift.day_of_week == day_of_week)

        return query.order_by(
            RoomShift.room_number.asc(),
            RoomShift.date.asc(),
            RoomShift.day_of_week.asc(),
            RoomShift.start_time.asc(),
            RoomShift.priority.desc(),
        ).all()

    @staticmethod
    def get_room_shifts_for_date(
        db: Session, schedule_id: str, room_number: Optional[int], target: date, day_of_week: str
    ) -> list[RoomShift]:
        """Shifts dated on target plus weekly shifts for its weekday"""
        query = db.query(RoomShift).filter(
            RoomShift.schedule_id == schedule_id,
            (RoomShift.date == target)
            | ((RoomShift.date.is_(None)) & (RoomShift.day_of_week == day_of_week)),
        )
        if room_number is not None:
            query = query.filter(RoomShift.room_number == room_number)
        return query.all()

    @staticmethod
    def get_conflict_candidates(
        db: Session,
        schedule_id: str,
        room_number: int,
        on_date: Optional[date],
        day_of_week: Optional[str],
    ) -> list[RoomShift]:
        """Shifts of the same room and selector class (weekly candidates exclude dated shifts)"""
        query = db.query(RoomShift).filter(
            RoomShift.schedule_id == schedule_id,
            RoomShift.room_number == room_number,
        )
        if on_date is not None:
            query = query.filter(RoomShift.date == on_date)
        else:
            query = query.filter(RoomShift.day_of_week == day_of_week, RoomShift.date.is_(None))
        return query.all()

    @staticmethod
    def get_weekly_shifts(db: Session, schedule_id: str, room_number: int) -> list[RoomShift]:
        return (
            db.query(RoomShift)
            .filter(
                RoomShift.schedule_id == schedule_id,
                RoomShift.room_number == room_number,
                RoomShift.date.is_(None),
            )
            .all()
        )

    # Overrides
    @staticmethod
    def get_overrides(
        db: Session,
        schedule_id: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> list[ScheduleOverride]:
        query = db.query(ScheduleOverride).filter(ScheduleOverride.schedule_id == schedule_id)
        if start_date is not None:
            query = query.filter(ScheduleOverride.date >= start_date)
        if end_date is not None:
            query = query.filter(ScheduleOverride.date <= end_date)
        return query.order_by(ScheduleOverride.date.asc()).all()

    @staticmethod
    def get_override(db: Session, override_id: str, organization_id: str) -> Optional[ScheduleOverride]:
        return (
            db.query(ScheduleOverride)
            .join(ClinicSchedule, ScheduleOverride.schedule_id == ClinicSchedule.id)
            .filter(
                ScheduleOverride.id == override_id,
                ClinicSchedule.organization_id == organization_id,
            )
            .first()
        )

    @staticmethod
    def find_override(
        db: Session,
        schedule_id: str,
        on_date: date,
        room_number: Optional[int],
        practitioner_id: Optional[str],
    ) -> Optional[ScheduleOverride]:
        """Lookup by the (schedule, date, room, practitioner) key, treating NULL as a value"""
        query = db.query(ScheduleOverride).filter(
            ScheduleOverride.schedule_id == schedule_id,
            ScheduleOverride.date == on_date,
        )
        if room_number is None:
            query = query.filter(ScheduleOverride.room_number.is_(None))
        else:
            query = query.filter(ScheduleOverride.room_number == room_number)
        if practitioner_id is None:
            query = query.filter(ScheduleOverride.practitioner_id.is_(None))
        else:
            query = query.filter(ScheduleOverride.practitioner_id == practitioner_id)
        return query.first()

    # Users
    @staticmethod
    def get_org_user(db: Session, user_id: str, organization_id: str) -> Optional[User]:
        return (
            db.query(User)
            .filter(User.id == user_id, User.organization_id == organization_id)
            .first()
        )
