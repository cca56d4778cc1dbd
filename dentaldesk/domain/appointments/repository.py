"""Appointment repository - Database operations for appointments"""

from typing import Iterable, Optional

from sqlalchemy.orm import Session, joinedload

from ...models import Appointment, LeaveRequest, User


class AppointmentRepository:
    """Repository for appointment database operations"""

    @staticmethod
    def get_practitioner_leave(
        db: Session, organization_id: str, practitioner_id: str, statuses: Iterable[str]
    ) -> list[LeaveRequest]:
        return (
            db.query(LeaveRequest)
            .options(joinedload(LeaveRequest.user))
            .filter(
                LeaveRequest.organization_id == organization_id,
                LeaveRequest.user_id == practitioner_id,
                LeaveRequest.status.in_(list(statuses)),
            )
            .order_by(LeaveRequest.start_date.asc())
            .all()
        )

    @staticmethod
    def get_org_user(db: Session, user_id: str, organization_id: str) -> Optional[User]:
        return (
            db.query(User)
            .filter(User.id == user_id, User.organization_id == organization_id)
            .first()
        )

    @staticmethod
    def create(db: Session, appointment: Appointment) -> Appointment:
        db.add(appointment)
        db.commit()
        db.refresh(appointment)
        return appointment
