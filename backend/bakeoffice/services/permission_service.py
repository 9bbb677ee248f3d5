# Overview: Service-layer operations for permission; role checks and security event logging.

"""
Role Checks and Security Event Logging

WHY: Enforce role-based access control and keep an audit trail of denials,
cross-tenant access attempts, logins and data resets.

DESIGN PRINCIPLES:
- Fail closed: a role that is not explicitly allowed is denied
- Log denials only: grants are not logged
- Roles are resolved per restaurant, never globally
"""

from __future__ import annotations

from typing import Callable

from flask import current_app, has_request_context, request

from ..errors import ForbiddenError
from ..extensions import db
from ..models import SecurityEvent
from ..time_utils import utcnow


def log_security_event(
    user_id: int | None,
    event_type: str,
    success: bool,
    resource: str | None = None,
    action: str | None = None,
    reason: str | None = None,
    restaurant_id: int | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> SecurityEvent:
    """
    Append a security event and commit it.

    Always called outside (or after) the business transaction, so an event
    survives the rollback of the operation it describes.

    event_type examples:
    - PERMISSION_DENIED
    - CROSS_TENANT_ACCESS_DENIED
    - LOGIN_SUCCESS / LOGIN_FAILED
    - LOGOUT
    - DATA_RESET
    """
    if has_request_context():
        ip_address = ip_address or request.remote_addr
        user_agent = user_agent or request.headers.get("User-Agent")
        resource = resource or request.path
        action = action or request.method

    event = SecurityEvent(
        user_id=user_id,
        restaurant_id=restaurant_id,
        event_type=event_type,
        resource=resource,
        action=action,
        success=success,
        reason=reason,
        ip_address=ip_address,
        user_agent=user_agent,
        occurred_at=utcnow(),
    )
    db.session.add(event)
    db.session.commit()

    if not success:
        current_app.logger.warning(
            "Security event %s user=%s restaurant=%s: %s",
            event_type, user_id, restaurant_id, reason,
        )
    return event


def require_role(ctx, predicate: Callable[[str | None], bool], action: str) -> None:
    """
    Raise ForbiddenError unless the context's role satisfies predicate.

    Services call this before touching the database, so a denial never
    leaves partial state behind.
    """
    if not predicate(ctx.role):
        raise ForbiddenError(
            f"Role {ctx.role} is not allowed to {action}",
            requiredPermission=predicate.__name__,
        )


def get_security_events(restaurant_id: int, event_type: str | None = None, limit: int = 100) -> list[SecurityEvent]:
    query = db.session.query(SecurityEvent).filter(SecurityEvent.restaurant_id == restaurant_id)
    if event_type:
        query = query.filter(SecurityEvent.event_type == event_type)
    return query.order_by(SecurityEvent.occurred_at.desc(), SecurityEvent.id.desc()).limit(limit).all()
