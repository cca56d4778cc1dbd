"""Leave request domain schemas - Pydantic models for validation"""

import datetime as dt
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from ...shared.validators import parse_date, validate_time_string
from .workflow import LeaveType, ReviewAction, validate_submission


def _optional_date(v):
    if v is None or v == "":
        return None
    return parse_date(v)


def _optional_time(v):
    if not v:
        return None
    return validate_time_string(v)


class LeaveRequestCreate(BaseModel):
    """Schema for submitting a leave request"""

    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    leaveType: LeaveType
    startDate: dt.date
    endDate: dt.date
    isPartialDay: bool = False
    startTime: Optional[str] = None
    endTime: Optional[str] = None

    @field_validator("startDate", "endDate", mode="before")
    @classmethod
    def validate_dates(cls, v):
        return parse_date(v)

    @field_validator("startTime", "endTime")
    @classmethod
    def validate_times(cls, v):
        return _optional_time(v)

    @model_validator(mode="after")
    def validate_request(self):
        validate_submission(
            self.startDate, self.endDate, self.isPartialDay, self.startTime, self.endTime
        )
        if not self.isPartialDay:
            self.startTime = None
            self.endTime = None
        return self


class PersonalBlockCreate(BaseModel):
    """Personal busy time, stored as a self-approved PERSONAL leave request"""

    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    startDate: dt.date
    endDate: dt.date
    isPartialDay: bool = False
    startTime: Optional[str] = None
    endTime: Optional[str] = None

    @field_validator("startDate", "endDate", mode="before")
    @classmethod
    def validate_dates(cls, v):
        return parse_date(v)

    @field_validator("startTime", "endTime")
    @classmethod
    def validate_times(cls, v):
        return _optional_time(v)

    @model_validator(mode="after")
    def validate_request(self):
        validate_submission(
            self.startDate, self.endDate, self.isPartialDay, self.startTime, self.endTime
        )
        return self

    def to_leave_request(self) -> LeaveRequestCreate:
        return LeaveRequestCreate(
            title=self.title,
            description=self.description,
            leaveType=LeaveType.PERSONAL,
            startDate=self.startDate,
            endDate=self.endDate,
            isPartialDay=self.isPartialDay,
            startTime=self.startTime,
            endTime=self.endTime,
        )


class LeaveReviewRequest(BaseModel):
    """Manager review: approve, deny or propose other dates"""

    action: ReviewAction
    reviewComments: Optional[str] = None
    alternativeStartDate: Optional[dt.date] = None
    alternativeEndDate: Optional[dt.date] = None
    alternativeComments: Optional[str] = None

    @field_validator("alternativeStartDate", "alternativeEndDate", mode="before")
    @classmethod
    def validate_dates(cls, v):
        return _optional_date(v)


class AlternativeResponseRequest(BaseModel):
    accepted: bool


class LeaveUserSummary(BaseModel):
    id: str
    firstName: Optional[str] = None
    lastName: Optional[str] = None
    email: Optional[str] = None
    role: Optional[str] = None


class LeaveRequestResponse(BaseModel):
    id: str
    userId: str
    title: str
    description: Optional[str] = None
    leaveType: str
    startDate: dt.date
    endDate: dt.date
    isPartialDay: bool
    startTime: Optional[str] = None
    endTime: Optional[str] = None
    totalDays: float
    status: str
    reviewedById: Optional[str] = None
    reviewedAt: Optional[dt.datetime] = None
    reviewComments: Optional[str] = None
    hasAlternative: bool = False
    alternativeStartDate: Optional[dt.date] = None
    alternativeEndDate: Optional[dt.date] = None
    alternativeComments: Optional[str] = None
    alternativeAccepted: Optional[bool] = None
    alternativeRespondedAt: Optional[dt.datetime] = None
    createdAt: Optional[dt.datetime] = None
    user: Optional[LeaveUserSummary] = None
    reviewedBy: Optional[LeaveUserSummary] = None


class LeaveRequestListResponse(BaseModel):
    leaveRequests: list[LeaveRequestResponse]


class LeaveEventResponse(BaseModel):
    id: str
    title: str
    start: dt.datetime
    end: dt.datetime
    resourceId: str
    isPersonal: bool
    isLeaveBlock: bool = True


class LeaveDayResponse(BaseModel):
    date: dt.date
    resourceId: Optional[str] = None
    hasLeave: bool
