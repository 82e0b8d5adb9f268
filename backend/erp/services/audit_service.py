# Overview: Entity change audit trail (who created, updated or deleted what).

from __future__ import annotations

from flask import has_request_context, request

from ..extensions import db
from ..models import AuditLog

AUDIT_ACTIONS = ("create", "update", "delete")

# Bookkeeping columns that change on every write and say nothing about intent
_IGNORED_FIELDS = {"id", "updated_at", "version_id"}


def calculate_changes(old: dict, new: dict) -> dict:
    """
    Field-level diff of two to_dict() snapshots: {field: {"old": a, "new": b}}.
    Only fields present in `new` are compared.
    """
    changes = {}
    for key, new_value in new.items():
        if key in _IGNORED_FIELDS:
            continue
        old_value = old.get(key)
        if old_value != new_value:
            changes[key] = {"old": old_value, "new": new_value}
    return changes


def record_audit(
    org_id: int,
    user_id: int | None,
    action: str,
    entity_type: str,
    entity_id: int,
    changes: dict | None = None,
) -> AuditLog:
    """
    Stage an audit row in the caller's unit of work.

    Does not commit: the row lands together with the change it describes,
    or not at all.
    """
    if action not in AUDIT_ACTIONS:
        raise ValueError(f"Unknown audit action: {action}")

    ip_address = user_agent = None
    if has_request_context():
        ip_address = request.remote_addr
        user_agent = request.headers.get("User-Agent")

    entry = AuditLog(
        org_id=org_id,
        user_id=user_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        changes=changes or None,
        ip_address=ip_address,
        user_agent=user_agent,
    )
    db.session.add(entry)
    return entry


def list_audit_logs(
    org_id: int,
    *,
    entity_type: str | None = None,
    entity_id: int | None = None,
    limit: int = 100,
) -> list[AuditLog]:
    query = db.session.query(AuditLog).filter(AuditLog.org_id == org_id)
    if entity_type:
        query = query.filter(AuditLog.entity_type == entity_type)
    if entity_id is not None:
        query = query.filter(AuditLog.entity_id == entity_id)
    return query.order_by(AuditLog.created_at.desc(), AuditLog.id.desc()).limit(limit).all()
