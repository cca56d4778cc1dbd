"""
Leave request lifecycle.

    PENDING -> APPROVED | DENIED | ALTERNATIVE_PROPOSED | CANCELLED
    ALTERNATIVE_PROPOSED -> ALTERNATIVE_ACCEPTED | ALTERNATIVE_REJECTED | CANCELLED

Everything else is terminal. APPROVED and ALTERNATIVE_ACCEPTED block
scheduling; see conflicts.py.

The functions here validate and mutate a request object in memory. They
never touch the database; the service commits.
"""

from datetime import date, datetime
from enum import Enum
from typing import Optional

from ...shared.errors import (
    INVALID_TRANSITION,
    ConflictError,
    ForbiddenError,
    ValidationFailed,
)
from ...shared.intervals import TimeOfDay, TimeRange
from ...shared.roles import has_manager_permissions


class LeaveStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    DENIED = "DENIED"
    ALTERNATIVE_PROPOSED = "ALTERNATIVE_PROPOSED"
    ALTERNATIVE_ACCEPTED = "ALTERNATIVE_ACCEPTED"
    ALTERNATIVE_REJECTED = "ALTERNATIVE_REJECTED"
    CANCELLED = "CANCELLED"


class LeaveType(str, Enum):
    VACATION = "VACATION"
    SICK_LEAVE = "SICK_LEAVE"
    PERSONAL = "PERSONAL"
    MATERNITY = "MATERNITY"
    PATERNITY = "PATERNITY"
    BEREAVEMENT = "BEREAVEMENT"
    EMERGENCY = "EMERGENCY"
    UNPAID = "UNPAID"
    COMPENSATORY = "COMPENSATORY"
    STUDY = "STUDY"
    OTHER = "OTHER"


class ReviewAction(str, Enum):
    APPROVE = "APPROVE"
    DENY = "DENY"
    PROPOSE_ALTERNATIVE = "PROPOSE_ALTERNATIVE"


# Statuses whose leave blocks appointments
BLOCKING_STATUSES = frozenset({LeaveStatus.APPROVED, LeaveStatus.ALTERNATIVE_ACCEPTED})

# Statuses that stop a new request for overlapping dates
OPEN_STATUSES = frozenset(
    {
        LeaveStatus.PENDING,
        LeaveStatus.APPROVED,
        LeaveStatus.ALTERNATIVE_PROPOSED,
        LeaveStatus.ALTERNATIVE_ACCEPTED,
    }
)

TRANSITIONS: dict[LeaveStatus, frozenset[LeaveStatus]] = {
    LeaveStatus.PENDING: frozenset(
        {
            LeaveStatus.APPROVED,
            LeaveStatus.DENIED,
            LeaveStatus.ALTERNATIVE_PROPOSED,
            LeaveStatus.CANCELLED,
        }
    ),
    LeaveStatus.ALTERNATIVE_PROPOSED: frozenset(
        {
            LeaveStatus.ALTERNATIVE_ACCEPTED,
            LeaveStatus.ALTERNATIVE_REJECTED,
            LeaveStatus.CANCELLED,
        }
    ),
}

SELF_APPROVAL_COMMENT = "Auto-approved personal blocked time"

_REVIEW_OUTCOME = {
    ReviewAction.APPROVE: LeaveStatus.APPROVED,
    ReviewAction.DENY: LeaveStatus.DENIED,
    ReviewAction.PROPOSE_ALTERNATIVE: LeaveStatus.ALTERNATIVE_PROPOSED,
}


def ensure_transition(current, target: LeaveStatus) -> None:
    """Raise CONFLICT/INVALID_TRANSITION unless current -> target is allowed"""
    current = LeaveStatus(current)
    if target not in TRANSITIONS.get(current, frozenset()):
        raise ConflictError(
            f"Cannot move a leave request from {current.value} to {target.value}",
            {"currentStatus": current.value, "requestedStatus": target.value},
            code=INVALID_TRANSITION,
        )


def calculate_total_days(
    start_date: date,
    end_date: date,
    partial_range: Optional[TimeRange] = None,
    workday_hours: int = 8,
) -> float:
    """
    Inclusive day count for full-day leave. Partial-day leave counts as its
    length over a nominal workday, so 09:00-13:00 is 0.5 of an 8 hour day.
    """
    if partial_range is not None:
        return partial_range.duration_minutes / (workday_hours * 60)
    return float((end_date - start_date).days + 1)


def validate_submission(
    start_date: date,
    end_date: date,
    is_partial_day: bool,
    start_time: Optional[str] = None,
    end_time: Optional[str] = None,
) -> Optional[TimeRange]:
    """
    Check the dates and times of a new request.

    Returns the partial-day time range, or None for full-day leave.
    """
    if start_date > end_date:
        raise ValidationFailed("Start date cannot be after end date", field="startDate")

    if not is_partial_day:
        return None

    if not start_time or not end_time:
        raise ValidationFailed(
            "Start time and end time are required for partial day leave",
            field="startTime" if not start_time else "endTime",
        )
    if start_date != end_date:
        raise ValidationFailed(
            "Partial day leave must start and end on the same date", field="endDate"
        )
    return TimeRange(
        TimeOfDay.parse(start_time, field="startTime"), TimeOfDay.parse(end_time, field="endTime")
    )


def is_self_approval(request, actor_id: str, comments: Optional[str]) -> bool:
    """The one case where a non-manager may review: blocking their own personal time"""
    return (
        request.user_id == actor_id
        and request.leave_type == LeaveType.PERSONAL.value
        and comments == SELF_APPROVAL_COMMENT
    )


def can_review(request, actor_id: str, actor_role: str, comments: Optional[str]) -> bool:
    return has_manager_permissions(actor_role) or is_self_approval(request, actor_id, comments)


def apply_review(
    request,
    action: ReviewAction,
    actor_id: str,
    actor_role: str,
    now: datetime,
    comments: Optional[str] = None,
    alternative_start_date: Optional[date] = None,
    alternative_end_date: Optional[date] = None,
    alternative_comments: Optional[str] = None,
):
    """Approve, deny or propose alternative dates for a PENDING request"""
    action = ReviewAction(action)
    if not can_review(request, actor_id, actor_role, comments):
        raise ForbiddenError(
            "Only managers can review leave requests", {"leaveRequestId": request.id}
        )

    target = _REVIEW_OUTCOME[action]
    ensure_transition(request.status, target)

    if action == ReviewAction.PROPOSE_ALTERNATIVE:
        if not alternative_start_date or not alternative_end_date:
            raise ValidationFailed(
                "Alternative dates are required when proposing alternative",
                field="alternativeStartDate" if not alternative_start_date else "alternativeEndDate",
            )
        if alternative_start_date > alternative_end_date:
            raise ValidationFailed(
                "Alternative start date cannot be after alternative end date",
                field="alternativeStartDate",
            )
        if request.is_partial_day and alternative_start_date != alternative_end_date:
            raise ValidationFailed(
                "A partial-day request can only be moved to a single date",
                field="alternativeEndDate",
            )
        request.has_alternative = True
        request.alternative_start_date = alternative_start_date
        request.alternative_end_date = alternative_end_date
        request.alternative_comments = alternative_comments

    request.status = target.value
    request.reviewed_by_id = actor_id
    request.reviewed_at = now
    request.review_comments = comments
    return request


def _ensure_requester(request, actor_id: str, action: str) -> None:
    if request.user_id != actor_id:
        raise ForbiddenError(
            f"Only the requester can {action} this leave request", {"leaveRequestId": request.id}
        )


def apply_alternative_response(request, actor_id: str, accepted: bool, now: datetime):
    _ensure_requester(request, actor_id, "respond to")
    target = LeaveStatus.ALTERNATIVE_ACCEPTED if accepted else LeaveStatus.ALTERNATIVE_REJECTED
    ensure_transition(request.status, target)

    request.status = target.value
    request.alternative_accepted = accepted
    request.alternative_responded_at = now
    return request


def apply_cancel(request, actor_id: str):
    _ensure_requester(request, actor_id, "cancel")
    ensure_transition(request.status, LeaveStatus.CANCELLED)
    request.status = LeaveStatus.CANCELLED.value
    return request
