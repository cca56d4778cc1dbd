"""
Error taxonomy for the clinic API.

Services and the pure scheduling/leave modules raise these; main.py turns them
into JSON responses of the form {"error": code, "message": ..., "details": {...}}.
"""

from typing import Any, Optional


class ClinicError(Exception):
    """Base class for errors surfaced to API callers"""

    code = "INTERNAL_ERROR"
    status_code = 500

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        if code:
            self.code = code

    def to_dict(self) -> dict:
        return {"error": self.code, "message": self.message, "details": self.details}


class ValidationFailed(ClinicError, ValueError):
    """
    Malformed input: bad time format, missing field, inverted range.

    Also a ValueError so pydantic validators report it as a field error.
    """

    code = "VALIDATION_ERROR"
    status_code = 422

    def __init__(self, message: str, field: Optional[str] = None, details: Optional[dict] = None):
        details = dict(details or {})
        if field:
            details.setdefault("field", field)
        super().__init__(message, details)
        self.field = field


class ConflictError(ClinicError):
    code = "CONFLICT"
    status_code = 409


class ForbiddenError(ClinicError):
    code = "FORBIDDEN"
    status_code = 403


class NotFoundError(ClinicError):
    code = "NOT_FOUND"
    status_code = 404


class UnauthorizedError(ClinicError):
    code = "UNAUTHORIZED"
    status_code = 401


# Conflict subcodes
OVERLAPPING_REQUEST = "OVERLAPPING_REQUEST"
INVALID_TRANSITION = "INVALID_TRANSITION"
LEAVE_CONFLICT = "LEAVE_CONFLICT"
