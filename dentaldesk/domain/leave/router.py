"""Leave request router - FastAPI endpoints for leave submission and review"""

import datetime as dt
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import SessionContext, get_current_session
from ...database import get_db
from ...models import LeaveRequest
from .schemas import (
    AlternativeResponseRequest,
    LeaveDayResponse,
    LeaveEventResponse,
    LeaveRequestCreate,
    LeaveRequestListResponse,
    LeaveRequestResponse,
    LeaveReviewRequest,
    LeaveUserSummary,
    PersonalBlockCreate,
)
from .service import LeaveService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/leave-requests", tags=["Leave Requests"])


def get_leave_service(db: Session = Depends(get_db)) -> LeaveService:
    """Dependency injection for LeaveService"""
    return LeaveService(db)


def _user_summary(user) -> Optional[LeaveUserSummary]:
    if user is None:
        return None
    return LeaveUserSummary(
        id=user.id,
        firstName=user.first_name,
        lastName=user.last_name,
        email=user.email,
        role=user.role,
    )


def leave_request_response(r: LeaveRequest) -> LeaveRequestResponse:
    return LeaveRequestResponse(
        id=r.id,
        userId=r.user_id,
        title=r.title,
        description=r.description,
        leaveType=r.leave_type,
        startDate=r.start_date,
        endDate=r.end_date,
        isPartialDay=r.is_partial_day,
        startTime=r.start_time,
        endTime=r.end_time,
        totalDays=r.total_days,
        status=r.status,
        reviewedById=r.reviewed_by_id,
        reviewedAt=r.reviewed_at,
        reviewComments=r.review_comments,
        hasAlternative=r.has_alternative,
        alternativeStartDate=r.alternative_start_date,
        alternativeEndDate=r.alternative_end_date,
        alternativeComments=r.alternative_comments,
        alternativeAccepted=r.alternative_accepted,
        alternativeRespondedAt=r.alternative_responded_at,
        createdAt=r.created_at,
        user=_user_summary(r.user),
        reviewedBy=_user_summary(r.reviewed_by),
    )


@router.get("", response_model=LeaveRequestListResponse)
async def get_leave_requests(
    view: str = Query("user", description="user, manager or calendar"),
    status: Optional[str] = Query(None, description="Status filter; 'approved' includes accepted alternatives"),
    user_id: Optional[str] = Query(None, description="Manager view only"),
    session: SessionContext = Depends(get_current_session),
    service: LeaveService = Depends(get_leave_service),
):
    """List leave requests for the chosen view"""
    requests = service.get_leave_requests(session, view=view, status=status, user_id=user_id)
    return LeaveRequestListResponse(leaveRequests=[leave_request_response(r) for r in requests])


@router.post("", response_model=LeaveRequestResponse, status_code=201)
async def submit_leave_request(
    data: LeaveRequestCreate,
    session: SessionContext = Depends(get_current_session),
    service: LeaveService = Depends(get_leave_service),
):
    """Submit a leave request; it starts PENDING"""
    return leave_request_response(service.submit_leave_request(data, session))


@router.post("/personal-block", response_model=LeaveRequestResponse, status_code=201)
async def block_personal_time(
    data: PersonalBlockCreate,
    session: SessionContext = Depends(get_current_session),
    service: LeaveService = Depends(get_leave_service),
):
    """Block personal busy time on the caller's own calendar"""
    return leave_request_response(service.block_personal_time(data, session))


@router.get("/events", response_model=list[LeaveEventResponse])
async def get_leave_events(
    resource_id: Optional[str] = Query(None, description="Only this practitioner's leave"),
    session: SessionContext = Depends(get_current_session),
    service: LeaveService = Depends(get_leave_service),
):
    """Approved leave as calendar events"""
    return [
        LeaveEventResponse(
            id=e.id,
            title=e.title,
            start=e.start,
            end=e.end,
            resourceId=e.resource_id,
            isPersonal=e.is_personal,
        )
        for e in service.get_leave_events(session, resource_id)
    ]


@router.get("/days/{day}", response_model=LeaveDayResponse)
async def get_leave_day(
    day: dt.date,
    resource_id: Optional[str] = Query(None, description="Only this practitioner's leave"),
    session: SessionContext = Depends(get_current_session),
    service: LeaveService = Depends(get_leave_service),
):
    """Whether approved leave falls on a calendar day"""
    return LeaveDayResponse(date=day, resourceId=resource_id, hasLeave=service.has_leave_on(session, day, resource_id))


@router.get("/{request_id}", response_model=LeaveRequestResponse)
async def get_leave_request(
    request_id: str,
    session: SessionContext = Depends(get_current_session),
    service: LeaveService = Depends(get_leave_service),
):
    return leave_request_response(service.get_leave_request(request_id, session))


@router.post("/{request_id}/review", response_model=LeaveRequestResponse)
async def review_leave_request(
    request_id: str,
    data: LeaveReviewRequest,
    session: SessionContext = Depends(get_current_session),
    service: LeaveService = Depends(get_leave_service),
):
    """Approve, deny or propose alternative dates (managers, or self-approval of personal time)"""
    return leave_request_response(service.review_leave_request(request_id, data, session))


@router.post("/{request_id}/respond", response_model=LeaveRequestResponse)
async def respond_to_alternative(
    request_id: str,
    data: AlternativeResponseRequest,
    session: SessionContext = Depends(get_current_session),
    service: LeaveService = Depends(get_leave_service),
):
    """Accept or reject proposed alternative dates (requester only)"""
    return leave_request_response(service.respond_to_alternative(request_id, data, session))


@router.post("/{request_id}/cancel", response_model=LeaveRequestResponse)
async def cancel_leave_request(
    request_id: str,
    session: SessionContext = Depends(get_current_session),
    service: LeaveService = Depends(get_leave_service),
):
    return leave_request_response(service.cancel_leave_request(request_id, session))
