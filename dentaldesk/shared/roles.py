"""Staff roles and the permission checks built on them"""

from enum import Enum
from typing import Union


class Role(str, Enum):
    ORGANIZATION_OWNER = "ORGANIZATION_OWNER"
    MANAGER = "MANAGER"
    DENTIST = "DENTIST"
    HYGIENIST = "HYGIENIST"
    ORTHODONTIST = "ORTHODONTIST"
    PERIODONTOLOGIST = "PERIODONTOLOGIST"
    IMPLANTOLOGIST = "IMPLANTOLOGIST"
    ENDODONTIST = "ENDODONTIST"
    ANESTHESIOLOGIST = "ANESTHESIOLOGIST"
    ASSISTANT = "ASSISTANT"
    RECEPTIONIST = "RECEPTIONIST"
    STAFF = "STAFF"


MANAGER_ROLES = frozenset({Role.ORGANIZATION_OWNER, Role.MANAGER})


def _coerce(role: Union[str, Role, None]) -> Role | None:
    if role is None:
        return None
    if isinstance(role, Role):
        return role
    try:
        return Role(str(role).upper())
    except ValueError:
        return None


def has_manager_permissions(role: Union[str, Role, None]) -> bool:
    """True for organization owners and managers"""
    return _coerce(role) in MANAGER_ROLES
