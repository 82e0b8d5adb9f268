# Overview: Permission enforcement and security event logging for the current tenant.

"""
Permission checks with an audit trail.

DESIGN PRINCIPLES:
- Fail closed: deny unless an effective grant allows the (resource, action)
- Log denials only; grants are not logged
- Tenant isolation: every event carries org_id
"""

from __future__ import annotations

import logging

from ..errors import AuthorizationError
from ..extensions import db
from ..models import SecurityEvent, User
from ..permissions import has_permission
from ..time_utils import utcnow
from .concurrency import defer_until_unit_ends, in_unit_of_work

logger = logging.getLogger(__name__)


def log_security_event(
    user_id: int | None,
    event_type: str,
    success: bool,
    resource: str | None = None,
    action: str | None = None,
    reason: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
    org_id: int | None = None,
) -> SecurityEvent:
    """
    Append an event to the security log and commit it.

    Inside run_in_transaction the event is not added to the session; it is
    written once the unit of work ends, so the caller's writes are neither
    committed early nor able to take the event down with their rollback.

    event_type examples:
    - PERMISSION_DENIED
    - LOGIN_FAILED
    - LOGIN_SUCCESS
    - LOGOUT
    - ROLE_ASSIGNED
    - CROSS_TENANT_ACCESS_DENIED
    """
    event = SecurityEvent(
        user_id=user_id,
        org_id=org_id,
        event_type=event_type,
        resource=resource,
        action=action,
        success=success,
        reason=reason,
        ip_address=ip_address,
        user_agent=user_agent,
        occurred_at=utcnow(),
    )

    if in_unit_of_work():
        defer_until_unit_ends(event)
    else:
        db.session.add(event)
        db.session.commit()

    if not success:
        logger.warning(
            "Security event %s org=%s user=%s resource=%s action=%s: %s",
            event_type, org_id, user_id, resource, action, reason,
        )
    return event


def user_has_permission(user: User, resource: str, action: str) -> bool:
    from .role_service import get_user_grants
    return has_permission(get_user_grants(user), resource, action)


def require_permission(
    user: User,
    resource: str,
    action: str,
    *,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> None:
    """
    Raise AuthorizationError unless the user's effective grants allow
    `action` on `resource`. Denials are written to security_events.
    """
    if user_has_permission(user, resource, action):
        return

    log_security_event(
        user_id=user.id,
        event_type="PERMISSION_DENIED",
        success=False,
        resource=resource,
        action=action,
        reason=f"Missing permission: {resource}:{action}",
        ip_address=ip_address,
        user_agent=user_agent,
        org_id=user.org_id,
    )
    raise AuthorizationError(f"Permission denied: {resource}:{action}")


def get_security_events(org_id: int, *, event_type: str | None = None, limit: int = 100) -> list[SecurityEvent]:
    query = db.session.query(SecurityEvent).filter(SecurityEvent.org_id == org_id)
    if event_type:
        query = query.filter(SecurityEvent.event_type == event_type)
    return query.order_by(SecurityEvent.occurred_at.desc(), SecurityEvent.id.desc()).limit(limit).all()
