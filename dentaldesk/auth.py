import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from jose import jwt as jose_jwt
from sqlalchemy.orm import Session

from .config import SECRET_KEY, SESSION_TOKEN_ALGORITHM, SESSION_TOKEN_TTL_MINUTES
from .database import get_db
from .models import User
from .shared.errors import ForbiddenError, UnauthorizedError
from .shared.roles import has_manager_permissions

logger = logging.getLogger(__name__)

# auto_error=False so a missing header becomes our own UNAUTHORIZED response
security = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class SessionContext:
    """Who is making the request"""

    user_id: str
    organization_id: str
    role: str

    @property
    def is_manager(self) -> bool:
        return has_manager_permissions(self.role)


def create_session_token(
    user_id: str,
    organization_id: str,
    role: str,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Create a signed session token.

    Args:
        user_id: ID of the authenticated user
        organization_id: Tenant the session is bound to
        role: User role at the time of login
        expires_delta: Token lifetime (default SESSION_TOKEN_TTL_MINUTES)
    """
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=SESSION_TOKEN_TTL_MINUTES)
    )
    to_encode: dict[str, Any] = {"sub": user_id, "org": organization_id, "role": role, "exp": expire}
    return jose_jwt.encode(to_encode, SECRET_KEY, algorithm=SESSION_TOKEN_ALGORITHM)


def decode_session_token(token: str) -> SessionContext:
    """Verify a session token and return its context"""
    try:
        payload = jose_jwt.decode(token, SECRET_KEY, algorithms=[SESSION_TOKEN_ALGORITHM])
    except JWTError as e:
        logger.warning(f"⚠️ Session token verification failed: {e}")
        raise UnauthorizedError("Invalid or expired session token") from e

    user_id = payload.get("sub")
    organization_id = payload.get("org")
    if not user_id or not organization_id:
        logger.error(f"❌ Session token missing claims. Available claims: {list(payload.keys())}")
        raise UnauthorizedError("Invalid session token claims")

    return SessionContext(
        user_id=user_id, organization_id=organization_id, role=payload.get("role") or "STAFF"
    )


async def get_current_session(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> SessionContext:
    """Resolve the session for the request; the user must still exist in the organization"""
    if not credentials or not credentials.credentials:
        raise UnauthorizedError(
            "Not authenticated. Please provide a valid Bearer token in the Authorization header."
        )

    session = decode_session_token(credentials.credentials)

    user = db.query(User).filter(User.id == session.user_id).first()
    if not user or user.organization_id != session.organization_id:
        logger.warning(f"⚠️ Session for unknown user {session.user_id} rejected")
        raise UnauthorizedError("Unknown user for session")

    # The stored role wins over the role captured at login
    if user.role != session.role:
        session = SessionContext(
            user_id=session.user_id, organization_id=session.organization_id, role=user.role
        )

    logger.debug(f"✅ Session resolved: user={session.user_id} role={session.role}")
    return session


async def require_manager(session: SessionContext = Depends(get_current_session)) -> SessionContext:
    """Use this dependency for routes reserved to organization owners and managers"""
    if not session.is_manager:
        logger.warning(f"⚠️ User {session.user_id} ({session.role}) attempted a manager-only action")
        raise ForbiddenError("Insufficient permissions")
    return session
