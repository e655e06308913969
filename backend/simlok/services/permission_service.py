# Overview: Service-layer operations for permission checks and security event logging.

"""
Permission Checking and Security Event Logging

WHY: Enforce role-based access control and create audit trail.

Each user carries one workflow role; the role maps to a fixed set of
permission codes (permissions/roles.py). Routes check codes, never role
names, so a role's reach can change in one place.

DESIGN PRINCIPLES:
- Fail closed: unknown roles get no permissions
- Log denials only: Permission grants are not logged
"""

from ..extensions import db
from ..models import User, SecurityEvent
from ..permissions import get_role_permissions
from simlok.time_utils import utcnow


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
    Log security event to audit trail.

    event_type examples:
    - PERMISSION_DENIED
    - LOGIN_FAILED
    - LOGOUT
    - USER_CREATED
    - USER_DEACTIVATED
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
    """Permission codes for the user's role; empty when inactive."""
    if user is None or not user.is_active:
        return set()
    return get_role_permissions(user.role)


def user_has_permission(user: User, permission_code: str) -> bool:
    return permission_code in get_user_permissions(user)


def require_permission(
    user: User,
    permission_code: str,
    resource: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> None:
    """
    Require user to have permission, raise PermissionDeniedError if not.

    Denials are logged to security_events.

    Usage:
        require_permission(g.current_user, "FINALIZE_SUBMISSION", resource=request.path)
    """
    if not user_has_permission(user, permission_code):
        log_security_event(
            user_id=user.id if user else None,
            event_type="PERMISSION_DENIED",
            success=False,
            resource=resource,
            action=permission_code,
            reason=f"Missing permission: {permission_code}",
            ip_address=ip_address,
            user_agent=user_agent,
        )
        raise PermissionDeniedError(f"Permission denied: {permission_code}")
