# Overview: Flask API routes for custom roles and role assignment (admin only).

"""
Role management routes.

MULTI-TENANT: roles and users are resolved inside g.org_id only; an id from
another organization is a 404.

SECURITY: every route requires an authenticated admin.
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_auth, require_admin
from ..errors import ServiceError, ValidationError, error_response
from ..services import role_service
from ..validation import coerce_int


roles_bp = Blueprint("roles", __name__, url_prefix="/api/roles")


def _flag(name: str, default: bool) -> bool:
    raw = request.args.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes")


@roles_bp.get("")
@require_auth
@require_admin
def list_roles_route():
    """
    Query params:
    - include_system: bool (default true)
    - include_inactive: bool (default true)
    """
    try:
        roles = role_service.list_roles(
            g.org_id,
            include_system=_flag("include_system", True),
            include_inactive=_flag("include_inactive", True),
        )
        return jsonify({"items": [r.to_dict() for r in roles], "count": len(roles)}), 200
    except Exception:
        current_app.logger.exception("Failed to list roles")
        return jsonify({"error": "Internal server error"}), 500


@roles_bp.post("")
@require_auth
@require_admin
def create_role_route():
    """Body: {"name", "description"?, "permissions": [{"resource", "actions"}]}"""
    try:
        payload = request.get_json(silent=True) or {}
        role = role_service.create_role(g.org_id, payload, user_id=g.current_user.id)
        return jsonify({"role": role.to_dict(), "message": "Role created successfully"}), 201
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create role")
        return jsonify({"error": "Internal server error"}), 500


@roles_bp.get("/<int:role_id>")
@require_auth
@require_admin
def get_role_route(role_id: int):
    try:
        role = role_service.get_role(g.org_id, role_id)
        return jsonify({"role": role.to_dict()}), 200
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to get role")
        return jsonify({"error": "Internal server error"}), 500


@roles_bp.patch("/<int:role_id>")
@require_auth
@require_admin
def update_role_route(role_id: int):
    try:
        payload = request.get_json(silent=True) or {}
        role = role_service.update_role(g.org_id, role_id, payload, user_id=g.current_user.id)
        return jsonify({"role": role.to_dict(), "message": "Role updated successfully"}), 200
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update role")
        return jsonify({"error": "Internal server error"}), 500


@roles_bp.delete("/<int:role_id>")
@require_auth
@require_admin
def delete_role_route(role_id: int):
    try:
        role_service.delete_role(g.org_id, role_id, user_id=g.current_user.id)
        return jsonify({"message": "Role deleted successfully"}), 200
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete role")
        return jsonify({"error": "Internal server error"}), 500


@roles_bp.post("/assign")
@require_auth
@require_admin
def assign_role_route():
    """Body: {"user_id", "role_id"}"""
    try:
        data = request.get_json(silent=True) or {}
        if data.get("user_id") is None or data.get("role_id") is None:
            raise ValidationError("user_id and role_id are required")
        user = role_service.assign_role_to_user(
            g.org_id,
            coerce_int("user_id", data["user_id"]),
            coerce_int("role_id", data["role_id"]),
            assigned_by_user_id=g.current_user.id,
        )
        return jsonify({"user": user.to_dict(), "message": "Role assigned successfully"}), 200
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to assign role")
        return jsonify({"error": "Internal server error"}), 500


@roles_bp.delete("/assign")
@require_auth
@require_admin
def unassign_role_route():
    """Query params: user_id (required)"""
    try:
        raw_user_id = request.args.get("user_id")
        if raw_user_id is None:
            raise ValidationError("user_id is required")
        user = role_service.remove_role_from_user(
            g.org_id,
            coerce_int("user_id", raw_user_id),
            removed_by_user_id=g.current_user.id,
        )
        return jsonify({"user": user.to_dict(), "message": "Role removed successfully"}), 200
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to remove role")
        return jsonify({"error": "Internal server error"}), 500
