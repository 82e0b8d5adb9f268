# Overview: Flask API routes for users; effective permissions and the organization's user list.

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_auth, require_permission
from ..errors import ServiceError, error_response
from ..permissions import Action, Resource
from ..services import auth_service
from ..services.role_service import get_user_permissions


users_bp = Blueprint("users", __name__, url_prefix="/api/users")


@users_bp.get("/me/permissions")
@require_auth
def my_permissions_route():
    """Effective grants of the caller (custom role if active, else system defaults)."""
    try:
        return jsonify(get_user_permissions(g.org_id, g.current_user.id)), 200
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to load permissions")
        return jsonify({"error": "Internal server error"}), 500


@users_bp.get("")
@require_auth
@require_permission(Resource.USERS, Action.READ)
def list_users_route():
    try:
        users = auth_service.list_users(g.org_id)
        return jsonify({"items": [u.to_dict() for u in users], "count": len(users)}), 200
    except Exception:
        current_app.logger.exception("Failed to list users")
        return jsonify({"error": "Internal server error"}), 500


@users_bp.post("")
@require_auth
@require_permission(Resource.USERS, Action.CREATE)
def create_user_route():
    """Body: {"name", "email", "password", "role"?}"""
    try:
        data = request.get_json(silent=True) or {}
        user = auth_service.create_user(
            g.org_id,
            data.get("name"),
            data.get("email"),
            data.get("password"),
            data.get("role") or "user",
        )
        return jsonify({"user": user.to_dict()}), 201
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create user")
        return jsonify({"error": "Internal server error"}), 500
