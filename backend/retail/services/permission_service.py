# Overview: Role-based permission checks and security event logging.

"""
Permission Checking and Security Event Logging

- Fail closed: unknown roles and inactive users hold no permissions
- Log denials only: grants are not logged
- Resolution is a pure lookup in the role policy table (retail.permissions)
"""

from ..extensions import db
from ..models import SecurityEvent, User
from ..permissions import permissions_for_role
from retail.time_utils import utcnow


class PermissionDeniedError(Exception):
    """Raised when user lacks required permission."""
    pass


def log_security_event(
    user_id: int | None,
    event_type: str,
    success: bool,
    resource: str | None = None,
    action: str | None = None,
    reason: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> SecurityEvent:
    """
    Append a row to the security audit trail.

    event_type examples: PERMISSION_DENIED, LOGIN_FAILED, LOGIN_SUCCESS
    """
    event = SecurityEvent(
        user_id=user_id,
        event_type=event_type,
        resource=resource,
        action=action,
        success=success,
        reason=reason,
        ip_address=ip_address,
        user_agent=user_agent,
        occurred_at=utcnow()
    )

    db.session.add(event)
    db.session.commit()

    return event


def get_user_permissions(user: User) -> set[str]:
    if not user or not user.is_active:
        return set()
    return permissions_for_role(user.role)


def user_has_permission(user: User, permission_code: str) -> bool:
    return permission_code in get_user_permissions(user)


def require_permission(
    user: User,
    permission_code: str,
    resource: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> None:
    """Raise PermissionDeniedError (and log it) unless the user's role grants the code."""
    if user_has_permission(user, permission_code):
        return

    log_security_event(
        user_id=user.id if user else None,
        event_type="PERMISSION_DENIED",
        success=False,
        resource=resource,
        action=permission_code,
        reason=f"Role '{user.role if user else None}' lacks permission {permission_code}",
        ip_address=ip_address,
        user_agent=user_agent,
    )
    raise PermissionDeniedError(f"Permission {permission_code} required")
