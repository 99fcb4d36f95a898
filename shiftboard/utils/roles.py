"""Role resolution helpers."""
from typing import List, Optional

from shiftboard.config import settings
from shiftboard.schemas.schedule import AssignedUser
from shiftboard.schemas.user import DirectoryUser


def is_any_role(role: Optional[str]) -> bool:
    """True for the shift wildcard that lets every role take the shift."""
    return role in settings.any_role_labels


def is_all_roles(role: Optional[str]) -> bool:
    """True for the task wildcard that applies a task to every role."""
    return role in settings.all_roles_labels


def effective_roles(assigned_user: AssignedUser, directory_user: Optional[DirectoryUser]) -> List[str]:
    """
    Resolve the roles a user holds on one shift.

    Precedence: the shift-level assigned_role override wins outright;
    otherwise the directory's primary role plus secondary roles. A user
    missing from the directory without an override holds no role.
    """
    if assigned_user.assigned_role:
        return [assigned_user.assigned_role]
    if directory_user is None:
        return []
    return directory_user.roles


def role_applies(applies_to_role: str, roles: List[str]) -> bool:
    """Whether a task for applies_to_role is the concern of someone holding roles."""
    return is_all_roles(applies_to_role) or applies_to_role in roles


def holds_role(user: DirectoryUser, role: str) -> bool:
    """Whether a directory user holds a role as primary or secondary role."""
    return role in user.roles
