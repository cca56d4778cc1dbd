import uuid

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base
from .shared.intervals import TimeOfDay, TimeRange


def generate_id():
    """Generate a unique string ID"""
    return str(uuid.uuid4())


class User(Base):
    """Staff member of an organization (practitioners, managers, front desk)"""

    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=generate_id)
    organization_id = Column(String(36), index=True, nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    role = Column(String(50), nullable=False, default="STAFF")
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    leave_requests = relationship(
        "LeaveRequest", back_populates="user", foreign_keys="LeaveRequest.user_id"
    )

    @property
    def display_name(self) -> str:
        name = f"{self.first_name or ''} {self.last_name or ''}".strip()
        return name or self.email


class ClinicSchedule(Base):
    """A schedule period for an organization; at most one is active at a time"""

    __tablename__ = "clinic_schedules"

    id = Column(String(36), primary_key=True, default=generate_id)
    organization_id = Column(String(36), index=True, nullable=False)
    name = Column(String(255), nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    room_count = Column(Integer, nullable=False, default=1)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    room_shifts = relationship(
        "RoomShift", back_populates="schedule", cascade="all, delete-orphan"
    )
    schedule_overrides = relationship(
        "ScheduleOverride", back_populates="schedule", cascade="all, delete-orphan"
    )


class RoomShift(Base):
    """
    A practitioner's assignment to a room, either on one date or every week on
    a given weekday. Exactly one of date/day_of_week is set.
    """

    __tablename__ = "room_shifts"
    __table_args__ = (
        CheckConstraint(
            "(date IS NULL) <> (day_of_week IS NULL)", name="ck_room_shifts_one_selector"
        ),
        CheckConstraint("room_number >= 1", name="ck_room_shifts_room_number"),
        Index("ix_room_shifts_schedule_room", "schedule_id", "room_number"),
    )

    id = Column(String(36), primary_key=True, default=generate_id)
    schedule_id = Column(String(36), ForeignKey("clinic_schedules.id"), nullable=False)
    room_number = Column(Integer, nullable=False)
    practitioner_id = Column(String(36), ForeignKey("users.id"), nullable=False)
    side_practitioner_id = Column(String(36), ForeignKey("users.id"), nullable=True)
    start_time = Column(String(5), nullable=False)  # HH:MM
    end_time = Column(String(5), nullable=False)  # HH:MM
    date = Column(Date, nullable=True)  # specific date
    day_of_week = Column(String(10), nullable=True)  # "Monday".."Sunday" for recurring
    priority = Column(Integer, default=0, nullable=False)
    is_override = Column(Boolean, default=False, nullable=False)
    reason = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    schedule = relationship("ClinicSchedule", back_populates="room_shifts")
    practitioner = relationship("User", foreign_keys=[practitioner_id])
    side_practitioner = relationship("User", foreign_keys=[side_practitioner_id])


class ScheduleOverride(Base):
    """
    A date-specific closure or custom-hours entry, optionally scoped to a room
    and/or practitioner. Weekly overrides are stored expanded, one row per date.
    """

    __tablename__ = "schedule_overrides"
    __table_args__ = (
        Index(
            "ix_schedule_overrides_key",
            "schedule_id",
            "date",
            "room_number",
            "practitioner_id",
        ),
    )

    id = Column(String(36), primary_key=True, default=generate_id)
    schedule_id = Column(String(36), ForeignKey("clinic_schedules.id"), nullable=False)
    date = Column(Date, nullable=False)
    room_number = Column(Integer, nullable=True)
    practitioner_id = Column(String(36), ForeignKey("users.id"), nullable=True)
    start_time = Column(String(5), nullable=True)
    end_time = Column(String(5), nullable=True)
    is_unavailable = Column(Boolean, default=False, nullable=False)
    reason = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    schedule = relationship("ClinicSchedule", back_populates="schedule_overrides")
    practitioner = relationship("User", foreign_keys=[practitioner_id])


class LeaveRequest(Base):
    """
    Staff time-off request.

    Status workflow: PENDING → APPROVED | DENIED | ALTERNATIVE_PROPOSED
    ALTERNATIVE_PROPOSED → ALTERNATIVE_ACCEPTED | ALTERNATIVE_REJECTED
    PENDING | ALTERNATIVE_PROPOSED → CANCELLED (requester only)
    """

    __tablename__ = "leave_requests"
    __table_args__ = (
        CheckConstraint("start_date <= end_date", name="ck_leave_requests_dates"),
        Index("ix_leave_requests_user_status", "user_id", "status"),
    )

    id = Column(String(36), primary_key=True, default=generate_id)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False)
    organization_id = Column(String(36), index=True, nullable=False)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    leave_type = Column(String(30), nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    is_partial_day = Column(Boolean, default=False, nullable=False)
    start_time = Column(String(5), nullable=True)  # HH:MM, partial days only
    end_time = Column(String(5), nullable=True)
    total_days = Column(Float, nullable=False, default=1.0)
    status = Column(String(30), default="PENDING", nullable=False, index=True)

    # Review
    reviewed_by_id = Column(String(36), ForeignKey("users.id"), nullable=True)
    reviewed_at = Column(DateTime, nullable=True)
    review_comments = Column(Text, nullable=True)

    # Alternative proposal
    has_alternative = Column(Boolean, default=False, nullable=False)
    alternative_start_date = Column(Date, nullable=True)
    alternative_end_date = Column(Date, nullable=True)
    alternative_comments = Column(Text, nullable=True)
    alternative_accepted = Column(Boolean, nullable=True)
    alternative_responded_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="leave_requests", foreign_keys=[user_id])
    reviewed_by = relationship("User", foreign_keys=[reviewed_by_id])

    @property
    def effective_dates(self) -> tuple:
        """(start, end) the leave actually occupies; an accepted alternative replaces the requested dates"""
        if self.status == "ALTERNATIVE_ACCEPTED" and self.alternative_start_date and self.alternative_end_date:
            return self.alternative_start_date, self.alternative_end_date
        return self.start_date, self.end_date

    @property
    def partial_time_range(self) -> TimeRange | None:
        if self.is_partial_day and self.start_time and self.end_time:
            return TimeRange(TimeOfDay.parse(self.start_time), TimeOfDay.parse(self.end_time))
        return None


class Appointment(Base):
    """Patient appointment; only written after the leave conflict check passes"""

    __tablename__ = "appointments"

    id = Column(String(36), primary_key=True, default=generate_id)
    organization_id = Column(String(36), index=True, nullable=False)
    practitioner_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    patient_name = Column(String(255), nullable=True)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)
    status = Column(String(30), default="SCHEDULED", nullable=False)
    notes = Column(Text, nullable=True)
    created_by_id = Column(String(36), ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    practitioner = relationship("User", foreign_keys=[practitioner_id])
