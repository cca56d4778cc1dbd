"""Appointment service - Leave-aware appointment booking"""

import logging

from sqlalchemy.orm import Session

from ...auth import SessionContext
from ...models import Appointment, generate_id
from ...shared.errors import LEAVE_CONFLICT, ConflictError, NotFoundError
from ..leave.conflicts import AppointmentValidation, LeaveBlock, validate_appointment
from ..leave.workflow import BLOCKING_STATUSES
from .repository import AppointmentRepository
from .schemas import AppointmentCheck, AppointmentCreate

logger = logging.getLogger(__name__)


def blocking_record_details(block: LeaveBlock) -> dict:
    return {
        "id": block.id,
        "userName": block.user_name,
        "leaveType": block.leave_type,
        "title": block.title,
        "startDate": block.start.isoformat(),
        "endDate": block.end.isoformat(),
        "isPartialDay": block.is_partial_day,
        "startTime": str(block.time_range.start) if block.time_range else None,
        "endTime": str(block.time_range.end) if block.time_range else None,
    }


class AppointmentService:
    """Service layer for appointment business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = AppointmentRepository()

    def validate_appointment(self, data: AppointmentCheck, session: SessionContext) -> AppointmentValidation:
        """Check a slot against the practitioner's approved leave"""
        if not self.repo.get_org_user(self.db, data.practitionerId, session.organization_id):
            raise NotFoundError("Practitioner not found", {"practitionerId": data.practitionerId})

        leave = self.repo.get_practitioner_leave(
            self.db,
            session.organization_id,
            data.practitionerId,
            [s.value for s in BLOCKING_STATUSES],
        )
        return validate_appointment(
            data.date,
            data.startTime,
            data.endTime,
            data.practitionerId,
            [LeaveBlock.from_request(r) for r in leave],
        )

    def create_appointment(self, data: AppointmentCreate, session: SessionContext) -> Appointment:
        """Persist an appointment unless it falls on the practitioner's approved leave"""
        result = self.validate_appointment(data, session)
        if not result.is_valid:
            logger.warning(
                f"⚠️ Appointment for {data.practitionerId} at {data.startTime.isoformat()} "
                f"blocked by leave {result.blocking_record.id}"
            )
            raise ConflictError(
                result.error,
                {"blockingRecord": blocking_record_details(result.blocking_record)},
                code=LEAVE_CONFLICT,
            )

        appointment = self.repo.create(
            self.db,
            Appointment(
                id=generate_id(),
                organization_id=session.organization_id,
                practitioner_id=data.practitionerId,
                patient_name=data.patientName,
                start_time=data.startTime,
                end_time=data.endTime,
                notes=data.notes,
                created_by_id=session.user_id,
            ),
        )
        logger.info(f"✅ Appointment created: {appointment.id}")
        return appointment
