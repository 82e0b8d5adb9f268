"""
Multi-Tenant Service: tenant validation and scoping helpers.

SECURITY INVARIANTS:
1. Every authenticated request has g.org_id set
2. IDs from client input are resolved through require_in_org before use
3. An entity owned by another organization is reported exactly like a
   missing one (NotFoundError, same message); the attempt is logged
4. Inside a unit of work (run_in_transaction), resolve every id before
   staging writes; a NotFoundError rolls back the whole unit, and the
   cross-tenant event is written after it ends
"""

from __future__ import annotations

from flask import g, has_request_context

from ..errors import NotFoundError
from ..extensions import db
from .permission_service import log_security_event


def require_in_org(model, entity_id, org_id: int, label: str | None = None):
    """
    Load `model` by primary key, scoped to org_id.

    Raises NotFoundError when the row is missing or belongs to another
    organization. Cross-tenant hits are written to security_events.
    """
    label = label or model.__name__
    try:
        entity_id = int(entity_id)
    except (TypeError, ValueError):
        raise NotFoundError(f"{label} not found")

    entity = db.session.get(model, entity_id)
    if entity is None:
        raise NotFoundError(f"{label} not found")

    if entity.org_id != org_id:
        _log_cross_tenant_attempt(
            f"{label} {entity_id} belongs to org {entity.org_id}, not {org_id}",
            org_id=org_id,
            resource=model.__tablename__,
        )
        raise NotFoundError(f"{label} not found")  # Don't reveal it exists in another org

    return entity


def require_many_in_org(model, entity_ids, org_id: int, label: str | None = None) -> dict:
    """Batch form of require_in_org; returns {id: entity}."""
    return {int(i): require_in_org(model, i, org_id, label) for i in dict.fromkeys(entity_ids)}


def _log_cross_tenant_attempt(reason: str, org_id: int, resource: str | None = None) -> None:
    user_id = None
    if has_request_context():
        current_user = getattr(g, "current_user", None)
        user_id = current_user.id if current_user is not None else None
    log_security_event(
        user_id=user_id,
        event_type="CROSS_TENANT_ACCESS_DENIED",
        success=False,
        resource=resource,
        reason=reason,
        org_id=org_id,
    )
