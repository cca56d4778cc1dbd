"""Appointment router - FastAPI endpoints for leave-aware booking"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...auth import SessionContext, get_current_session
from ...database import get_db
from .schemas import (
    AppointmentCheck,
    AppointmentCreate,
    AppointmentResponse,
    AppointmentValidationResponse,
    BlockingLeaveResponse,
)
from .service import AppointmentService, blocking_record_details

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/appointments", tags=["Appointments"])


def get_appointment_service(db: Session = Depends(get_db)) -> AppointmentService:
    """Dependency injection for AppointmentService"""
    return AppointmentService(db)


@router.post("/validate", response_model=AppointmentValidationResponse)
async def validate_appointment(
    data: AppointmentCheck,
    session: SessionContext = Depends(get_current_session),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Advisory check of a slot against approved leave; nothing is saved"""
    result = service.validate_appointment(data, session)
    return AppointmentValidationResponse(
        isValid=result.is_valid,
        error=result.error,
        blockingRecord=(
            BlockingLeaveResponse(**blocking_record_details(result.blocking_record))
            if result.blocking_record
            else None
        ),
    )


@router.post("", response_model=AppointmentResponse, status_code=201)
async def create_appointment(
    data: AppointmentCreate,
    session: SessionContext = Depends(get_current_session),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Create an appointment; refused with LEAVE_CONFLICT when the practitioner is on leave"""
    a = service.create_appointment(data, session)
    return AppointmentResponse(
        id=a.id,
        practitionerId=a.practitioner_id,
        patientName=a.patient_name,
        startTime=a.start_time,
        endTime=a.end_time,
        status=a.status,
        notes=a.notes,
        createdAt=a.created_at,
    )
