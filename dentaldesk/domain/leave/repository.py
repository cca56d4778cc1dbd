"""Leave request repository - Database operations for leave requests"""

from datetime import date
from typing import Iterable, Optional

from sqlalchemy import case
from sqlalchemy.orm import Session, joinedload

from ...models import LeaveRequest, User
from .workflow import LeaveStatus

# An accepted alternative replaces the dates originally asked for
_accepted = LeaveRequest.status == LeaveStatus.ALTERNATIVE_ACCEPTED.value
effective_start_date = case((_accepted, LeaveRequest.alternative_start_date), else_=LeaveRequest.start_date)
effective_end_date = case((_accepted, LeaveRequest.alternative_end_date), else_=LeaveRequest.end_date)


class LeaveRepository:
    """Repository for leave request database operations"""

    @staticmethod
    def lock_user(db: Session, user_id: str) -> Optional[User]:
        """
        SELECT ... FOR UPDATE on the requesting user, so concurrent submissions
        for the same user run their overlap checks one after the other.
        """
        return db.query(User).filter(User.id == user_id).with_for_update().first()

    @staticmethod
    def find_overlapping(
        db: Session,
        user_id: str,
        start_date: date,
        end_date: date,
        statuses: Iterable[str],
    ) -> Optional[LeaveRequest]:
        """First request of the user in one of statuses whose effective dates intersect [start, end]"""
        return (
            db.query(LeaveRequest)
            .filter(
                LeaveRequest.user_id == user_id,
                LeaveRequest.status.in_(list(statuses)),
                effective_start_date <= end_date,
                effective_end_date >= start_date,
            )
            .order_by(effective_start_date.asc())
            .first()
        )

    @staticmethod
    def get_leave_request(db: Session, request_id: str, organization_id: str) -> Optional[LeaveRequest]:
        return (
            db.query(LeaveRequest)
            .options(joinedload(LeaveRequest.user), joinedload(LeaveRequest.reviewed_by))
            .filter(
                LeaveRequest.id == request_id,
                LeaveRequest.organization_id == organization_id,
            )
            .first()
        )

    @staticmethod
    def get_leave_requests(
        db: Session,
        organization_id: str,
        user_id: Optional[str] = None,
        statuses: Optional[Iterable[str]] = None,
    ) -> list[LeaveRequest]:
        query = (
            db.query(LeaveRequest)
            .options(joinedload(LeaveRequest.user), joinedload(LeaveRequest.reviewed_by))
            .filter(LeaveRequest.organization_id == organization_id)
        )
        if user_id:
            query = query.filter(LeaveRequest.user_id == user_id)
        if statuses is not None:
            query = query.filter(LeaveRequest.status.in_(list(statuses)))
        return query.order_by(LeaveRequest.created_at.desc()).all()

    @staticmethod
    def get_org_user(db: Session, user_id: str, organization_id: str) -> Optional[User]:
        return (
            db.query(User)
            .filter(User.id == user_id, User.organization_id == organization_id)
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
