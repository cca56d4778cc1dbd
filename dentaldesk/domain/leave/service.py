"""Leave request service - Business logic for leave submission and review"""

import logging
from datetime import date, datetime
from typing import Optional

from sqlalchemy.orm import Session

from ...auth import SessionContext
from ...config import NOMINAL_WORKDAY_HOURS
from ...models import LeaveRequest, generate_id
from ...shared.errors import (
    OVERLAPPING_REQUEST,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    UnauthorizedError,
    ValidationFailed,
)
from .conflicts import LeaveBlock, LeaveEvent, day_has_leave, leave_blocks_to_events
from .repository import LeaveRepository
from .schemas import (
    AlternativeResponseRequest,
    LeaveRequestCreate,
    LeaveReviewRequest,
    PersonalBlockCreate,
)
from .workflow import (
    BLOCKING_STATUSES,
    OPEN_STATUSES,
    SELF_APPROVAL_COMMENT,
    LeaveStatus,
    ReviewAction,
    apply_alternative_response,
    apply_cancel,
    apply_review,
    calculate_total_days,
    validate_submission,
)

logger = logging.getLogger(__name__)

VIEW_USER = "user"
VIEW_MANAGER = "manager"
VIEW_CALENDAR = "calendar"


def status_filter(status: Optional[str]) -> Optional[list[str]]:
    """Map the ?status= query value to stored statuses; "approved" covers both approved states"""
    if not status:
        return None
    if status.lower() == "approved":
        return [s.value for s in BLOCKING_STATUSES]
    try:
        return [LeaveStatus(status.upper()).value]
    except ValueError:
        raise ValidationFailed(f"Unknown leave status '{status}'", field="status") from None


class LeaveService:
    """Service layer for leave request business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = LeaveRepository()

    def _stage_leave_request(self, data: LeaveRequestCreate, session: SessionContext) -> LeaveRequest:
        """
        Lock the requester's row, check for overlapping leave and flush a new
        PENDING request. The caller commits.
        """
        partial_range = validate_submission(
            data.startDate, data.endDate, data.isPartialDay, data.startTime, data.endTime
        )

        try:
            user = self.repo.lock_user(self.db, session.user_id)
            if not user:
                raise UnauthorizedError("Unknown user for session")

            existing = self.repo.find_overlapping(
                self.db,
                session.user_id,
                data.startDate,
                data.endDate,
                [s.value for s in OPEN_STATUSES],
            )
            if existing:
                existing_start, existing_end = existing.effective_dates
                logger.warning(
                    f"⚠️ Leave request for user {session.user_id} overlaps {existing.id} ({existing.status})"
                )
                raise ConflictError(
                    "You already have a leave request for overlapping dates",
                    {
                        "conflictingRequest": {
                            "id": existing.id,
                            "title": existing.title,
                            "status": existing.status,
                            "startDate": existing_start.isoformat(),
                            "endDate": existing_end.isoformat(),
                        }
                    },
                    code=OVERLAPPING_REQUEST,
                )

            leave_request = LeaveRequest(
                id=generate_id(),
                user_id=session.user_id,
                organization_id=session.organization_id,
                title=data.title,
                description=data.description,
                leave_type=data.leaveType.value,
                start_date=data.startDate,
                end_date=data.endDate,
                is_partial_day=data.isPartialDay,
                start_time=data.startTime if data.isPartialDay else None,
                end_time=data.endTime if data.isPartialDay else None,
                total_days=calculate_total_days(
                    data.startDate, data.endDate, partial_range, NOMINAL_WORKDAY_HOURS
                ),
                status=LeaveStatus.PENDING.value,
            )
            self.repo.add(self.db, leave_request)
            self.db.flush()
        except Exception:
            self.db.rollback()
            raise
        return leave_request

    def submit_leave_request(self, data: LeaveRequestCreate, session: SessionContext) -> LeaveRequest:
        """Create a PENDING request; the overlap check and the insert share one transaction"""
        leave_request = self._stage_leave_request(data, session)
        try:
            self.repo.save(self.db, leave_request)
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            f"✅ Leave request {leave_request.id} submitted by {session.user_id} "
            f"({leave_request.leave_type}, {leave_request.total_days} day(s))"
        )
        return leave_request

    def get_leave_requests(
        self,
        session: SessionContext,
        view: str = VIEW_USER,
        status: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> list[LeaveRequest]:
        """
        List leave requests.

        - user: the caller's own requests
        - manager: every request in the organization (managers only)
        - calendar: approved leave of everyone, for scheduling views
        """
        statuses = status_filter(status)

        if view == VIEW_CALENDAR:
            return self.repo.get_leave_requests(
                self.db, session.organization_id, statuses=[s.value for s in BLOCKING_STATUSES]
            )

        if view == VIEW_MANAGER:
            if not session.is_manager:
                logger.warning(f"⚠️ User {session.user_id} requested the manager leave view")
                raise ForbiddenError("Insufficient permissions")
            return self.repo.get_leave_requests(
                self.db, session.organization_id, user_id=user_id, statuses=statuses
            )

        if view != VIEW_USER:
            raise ValidationFailed(f"Unknown view '{view}'", field="view")
        return self.repo.get_leave_requests(
            self.db, session.organization_id, user_id=session.user_id, statuses=statuses
        )

    def get_leave_request(self, request_id: str, session: SessionContext) -> LeaveRequest:
        leave_request = self.repo.get_leave_request(self.db, request_id, session.organization_id)
        if not leave_request:
            raise NotFoundError("Leave request not found", {"leaveRequestId": request_id})
        if leave_request.user_id != session.user_id and not session.is_manager:
            raise ForbiddenError("Insufficient permissions")
        return leave_request

    def _load(self, request_id: str, session: SessionContext) -> LeaveRequest:
        leave_request = self.repo.get_leave_request(self.db, request_id, session.organization_id)
        if not leave_request:
            raise NotFoundError("Leave request not found", {"leaveRequestId": request_id})
        return leave_request

    def review_leave_request(
        self, request_id: str, data: LeaveReviewRequest, session: SessionContext
    ) -> LeaveRequest:
        leave_request = self._load(request_id, session)

        try:
            apply_review(
                leave_request,
                data.action,
                actor_id=session.user_id,
                actor_role=session.role,
                now=datetime.now(),
                comments=data.reviewComments,
                alternative_start_date=data.alternativeStartDate,
                alternative_end_date=data.alternativeEndDate,
                alternative_comments=data.alternativeComments,
            )
        except ForbiddenError:
            logger.warning(
                f"⚠️ User {session.user_id} ({session.role}) denied review of leave request {request_id}"
            )
            raise

        self.repo.save(self.db, leave_request)
        logger.info(
            f"✅ Leave request {request_id} reviewed by {session.user_id}: {leave_request.status}"
        )
        return leave_request

    def respond_to_alternative(
        self, request_id: str, data: AlternativeResponseRequest, session: SessionContext
    ) -> LeaveRequest:
        leave_request = self._load(request_id, session)
        apply_alternative_response(leave_request, session.user_id, data.accepted, datetime.now())
        self.repo.save(self.db, leave_request)
        logger.info(f"✅ Alternative for leave request {request_id}: {leave_request.status}")
        return leave_request

    def cancel_leave_request(self, request_id: str, session: SessionContext) -> LeaveRequest:
        leave_request = self._load(request_id, session)
        apply_cancel(leave_request, session.user_id)
        self.repo.save(self.db, leave_request)
        logger.info(f"🚫 Leave request {request_id} cancelled")
        return leave_request

    def block_personal_time(self, data: PersonalBlockCreate, session: SessionContext) -> LeaveRequest:
        """
        Block the caller's own calendar: a PERSONAL request that approves itself.

        Submission and self-approval commit together, so a failed approval
        leaves no PENDING row behind.
        """
        leave_request = self._stage_leave_request(data.to_leave_request(), session)
        try:
            apply_review(
                leave_request,
                ReviewAction.APPROVE,
                actor_id=session.user_id,
                actor_role=session.role,
                now=datetime.now(),
                comments=SELF_APPROVAL_COMMENT,
            )
            self.repo.save(self.db, leave_request)
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"🔒 Personal time {leave_request.id} blocked for {session.user_id}")
        return leave_request

    def get_leave_events(
        self, session: SessionContext, resource_id: Optional[str] = None
    ) -> list[LeaveEvent]:
        """Approved leave of the organization expanded into calendar events"""
        blocks = [
            LeaveBlock.from_request(r)
            for r in self.get_leave_requests(session, view=VIEW_CALENDAR)
            if resource_id is None or r.user_id == resource_id
        ]
        return leave_blocks_to_events(blocks)

    def has_leave_on(self, session: SessionContext, day: date, resource_id: Optional[str] = None) -> bool:
        """Whether approved leave touches day, for marking whole days in calendar views"""
        blocks = [LeaveBlock.from_request(r) for r in self.get_leave_requests(session, view=VIEW_CALENDAR)]
        return day_has_leave(day, blocks, resource_id)
