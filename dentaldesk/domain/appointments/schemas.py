"""Appointment domain schemas - Pydantic models for validation"""

import datetime as dt
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from ...shared.errors import ValidationFailed


class AppointmentCheck(BaseModel):
    """A proposed appointment slot for one practitioner"""

    practitionerId: str
    startTime: dt.datetime
    endTime: dt.datetime

    @field_validator("startTime", "endTime")
    @classmethod
    def clinic_local_time(cls, v: dt.datetime):
        # Slots are compared in clinic wall-clock time, like leave hours
        return v.replace(tzinfo=None)

    @model_validator(mode="after")
    def validate_slot(self):
        if self.startTime >= self.endTime:
            raise ValidationFailed("Start time must be before end time", field="startTime")
        return self

    @property
    def date(self) -> dt.date:
        return self.startTime.date()


class AppointmentCreate(AppointmentCheck):
    patientName: Optional[str] = Field(None, max_length=255)
    notes: Optional[str] = None


class BlockingLeaveResponse(BaseModel):
    id: str
    userName: str
    leaveType: str
    title: Optional[str] = None
    startDate: dt.date
    endDate: dt.date
    isPartialDay: bool
    startTime: Optional[str] = None
    endTime: Optional[str] = None


class AppointmentValidationResponse(BaseModel):
    isValid: bool
    error: Optional[str] = None
    blockingRecord: Optional[BlockingLeaveResponse] = None


class AppointmentResponse(BaseModel):
    id: str
    practitionerId: str
    patientName: Optional[str] = None
    startTime: dt.datetime
    endTime: dt.datetime
    status: str
    notes: Optional[str] = None
    createdAt: Optional[dt.datetime] = None
