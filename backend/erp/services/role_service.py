# Overview: Custom role lifecycle, role assignment and effective permission resolution.

"""
Role Service

MULTI-TENANT: roles belong to one organization; every function takes
org_id first and resolves ids through tenant_service.

RESOLUTION: a user's effective grants are the grants of their custom role
when it exists, belongs to their organization and is active. Otherwise the
static defaults of their system role apply. How the two combine is the
PERMISSION_MERGE_STRATEGY setting (replace by default).

SYSTEM ROLES: admin/manager/employee/user are seeded per organization,
permanently active, and can be neither modified nor deleted.
"""

from __future__ import annotations

import logging

from flask import current_app, has_app_context
from sqlalchemy.exc import IntegrityError

from ..errors import AuthorizationError, ConflictError, ValidationError
from ..extensions import db
from ..models import Role, User
from ..permissions import (
    MergeStrategy,
    SYSTEM_ROLES,
    accessible_resources,
    get_system_role_grants,
    merge_grants,
)
from ..validation import ModelValidationPolicy, enforce_rules_role, validate_payload
from .audit_service import calculate_changes, record_audit
from .concurrency import lock_for_update
from .permission_service import log_security_event
from .tenant_service import require_in_org

logger = logging.getLogger(__name__)

ROLE_POLICY = ModelValidationPolicy(
    writable_fields={"name", "description", "grants", "is_active"},
    required_on_create={"name", "grants"},
)


def _merge_strategy() -> str:
    if has_app_context():
        return current_app.config.get("PERMISSION_MERGE_STRATEGY", MergeStrategy.REPLACE)
    return MergeStrategy.REPLACE


def _active_custom_role(user: User) -> Role | None:
    if not user.custom_role_id:
        return None
    role = db.session.get(Role, user.custom_role_id)
    # A dangling or inactive reference counts as "no custom role"
    if role is None or not role.is_active or role.org_id != user.org_id:
        return None
    return role


def get_user_grants(user: User, strategy: str | None = None) -> list[dict]:
    """Effective grant list for a user."""
    role = _active_custom_role(user)
    custom = list(role.grants or []) if role is not None else None
    return merge_grants(user.role, custom, strategy or _merge_strategy())


def get_user_permissions(org_id: int, user_id: int) -> dict:
    user = require_in_org(User, user_id, org_id, "User")
    role = _active_custom_role(user)
    grants = get_user_grants(user)
    return {
        "user_id": user.id,
        "role": user.role,
        "custom_role": role.to_dict() if role is not None else None,
        "permissions": grants,
        "modules": accessible_resources(grants),
    }


def initialize_system_roles(org_id: int) -> list[Role]:
    """
    Seed the four system roles for an organization.

    Idempotent: existing roles are left untouched. Caller commits.
    """
    existing = {
        r.name: r
        for r in db.session.query(Role).filter(Role.org_id == org_id, Role.is_system.is_(True)).all()
    }
    roles = []
    for name in SYSTEM_ROLES:
        role = existing.get(name)
        if role is None:
            role = Role(
                org_id=org_id,
                name=name,
                description=f"System {name} role",
                grants=get_system_role_grants(name),
                is_system=True,
                is_active=True,
            )
            db.session.add(role)
            logger.info("Seeded system role %s for org %s", name, org_id)
        roles.append(role)
    db.session.flush()
    return roles


def list_roles(org_id: int, *, include_system: bool = True, include_inactive: bool = True) -> list[Role]:
    query = db.session.query(Role).filter(Role.org_id == org_id)
    if not include_system:
        query = query.filter(Role.is_system.is_(False))
    if not include_inactive:
        query = query.filter(Role.is_active.is_(True))
    return query.order_by(Role.name.asc()).all()


def get_role(org_id: int, role_id: int) -> Role:
    return require_in_org(Role, role_id, org_id, "Role")


def _normalize_payload(payload: dict | None) -> dict:
    data = dict(payload or {})
    # API callers say "permissions"; the column is "grants"
    if "permissions" in data:
        data["grants"] = data.pop("permissions")
    return data


def _name_taken(org_id: int, name: str, exclude_id: int | None = None) -> bool:
    query = db.session.query(Role.id).filter(Role.org_id == org_id, Role.name == name)
    if exclude_id is not None:
        query = query.filter(Role.id != exclude_id)
    return query.first() is not None


def create_role(org_id: int, payload: dict, *, user_id: int | None = None) -> Role:
    patch = validate_payload(model=Role, payload=_normalize_payload(payload), policy=ROLE_POLICY, partial=False)
    enforce_rules_role(patch, creating=True)

    if _name_taken(org_id, patch["name"]):
        raise ConflictError("Role with this name already exists")

    role = Role(org_id=org_id, is_system=False, **patch)
    db.session.add(role)
    try:
        db.session.flush()
        record_audit(org_id, user_id, "create", "role", role.id)
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Role with this name already exists")

    logger.info("Created role %s (%s) in org %s", role.id, role.name, org_id)
    return role


def update_role(org_id: int, role_id: int, payload: dict, *, user_id: int | None = None) -> Role:
    role = get_role(org_id, role_id)
    if role.is_system:
        raise AuthorizationError("System roles cannot be modified")

    patch = validate_payload(model=Role, payload=_normalize_payload(payload), policy=ROLE_POLICY, partial=True)
    enforce_rules_role(patch, creating=False)
    if "grants" in patch and not patch["grants"]:
        raise ValidationError("At least one permission is required")

    if "name" in patch and _name_taken(org_id, patch["name"], exclude_id=role.id):
        raise ConflictError("Role with this name already exists")

    before = role.to_dict()
    for k, v in patch.items():
        setattr(role, k, v)

    try:
        db.session.flush()
        changes = calculate_changes(before, role.to_dict())
        if changes:
            record_audit(org_id, user_id, "update", "role", role.id, changes)
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Role with this name already exists")

    return role


def delete_role(org_id: int, role_id: int, *, user_id: int | None = None) -> None:
    """
    Delete a custom role.

    Blocked for system roles (AuthorizationError) and for roles any user
    still references (ConflictError). The reference count is taken inside
    the deleting transaction, under a lock on the role row.
    """
    role = get_role(org_id, role_id)
    if role.is_system:
        raise AuthorizationError("System roles cannot be deleted")

    lock_for_update(db.session.query(Role).filter(Role.id == role.id)).one()
    assigned = db.session.query(User).filter(User.custom_role_id == role.id).count()
    if assigned > 0:
        db.session.rollback()
        raise ConflictError(
            f"Cannot delete role. {assigned} user(s) are assigned to this role.",
            details={"assigned_users": assigned},
        )

    record_audit(org_id, user_id, "delete", "role", role.id, {"name": {"old": role.name, "new": None}})
    db.session.delete(role)
    db.session.commit()
    logger.info("Deleted role %s in org %s", role_id, org_id)


def assign_role_to_user(org_id: int, user_id: int, role_id: int, *, assigned_by_user_id: int | None = None) -> User:
    role = get_role(org_id, role_id)
    if not role.is_active:
        raise ValidationError("Cannot assign an inactive role")
    user = require_in_org(User, user_id, org_id, "User")

    user.custom_role_id = role.id
    db.session.commit()

    log_security_event(
        user_id=assigned_by_user_id,
        event_type="ROLE_ASSIGNED",
        success=True,
        resource="roles",
        action="assign",
        reason=f"Role {role.name} assigned to user {user.id}",
        org_id=org_id,
    )
    return user


def remove_role_from_user(org_id: int, user_id: int, *, removed_by_user_id: int | None = None) -> User:
    user = require_in_org(User, user_id, org_id, "User")
    previous = user.custom_role_id
    user.custom_role_id = None
    db.session.commit()

    if previous is not None:
        log_security_event(
            user_id=removed_by_user_id,
            event_type="ROLE_REMOVED",
            success=True,
            resource="roles",
            action="unassign",
            reason=f"Role {previous} removed from user {user.id}",
            org_id=org_id,
        )
    return user
