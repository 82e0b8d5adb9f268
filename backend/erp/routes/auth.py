# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

"""
Authentication API routes

- Registration creates an organization, seeds its system roles and makes the
  first user its admin
- Login issues an opaque bearer token (stored hashed)
- Logout revokes the presented token
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_auth
from ..errors import ServiceError, error_response
from ..services import auth_service
from ..services import session_service
from ..services import permission_service
from ..services.role_service import get_user_grants


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header.split(" ", 1)[1]


@auth_bp.post("/register")
def register_route():
    """
    Self-service signup.

    Body: {"organization_name", "name", "email", "password"}
    """
    try:
        data = request.get_json(silent=True) or {}
        org_name = data.get("organization_name") or data.get("organization")
        name = data.get("name")
        email = data.get("email")
        password = data.get("password")

        if not all([org_name, name, email, password]):
            return jsonify({"error": "organization_name, name, email and password required"}), 400

        org, user = auth_service.register_organization(org_name, name, email, password)
        return jsonify({
            "organization": org.to_dict(),
            "user": user.to_dict(),
            "message": "Registration successful",
        }), 201

    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to register organization")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and create session token.

    Token must be included in the Authorization header for protected routes.
    """
    try:
        data = request.get_json(silent=True) or {}
        email = data.get("email")
        password = data.get("password")

        if not all([email, password]):
            return jsonify({"error": "email and password required"}), 400

        user_agent = request.headers.get("User-Agent")
        ip_address = request.remote_addr

        user = auth_service.authenticate(email, password)

        if not user:
            permission_service.log_security_event(
                user_id=None,
                event_type="LOGIN_FAILED",
                success=False,
                resource="/api/auth/login",
                action="POST",
                reason="Invalid credentials",
                ip_address=ip_address,
                user_agent=user_agent,
            )
            return jsonify({"error": "Invalid credentials"}), 401

        session, token = session_service.create_session(
            user_id=user.id,
            user_agent=user_agent,
            ip_address=ip_address
        )

        return jsonify({
            "user": user.to_dict(),
            "permissions": get_user_grants(user),
            "token": token,
            "session": session.to_dict(),
            "org_id": session.org_id,
            "message": "Login successful"
        }), 200

    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/logout")
def logout_route():
    """Revoke the presented session token."""
    try:
        token = _bearer_token()
        if not token:
            return jsonify({"error": "Authorization header required"}), 401

        revoked = session_service.revoke_session(token, reason="User logout")

        if not revoked:
            return jsonify({"error": "Invalid or expired token"}), 401

        return jsonify({"message": "Logout successful"}), 200

    except Exception:
        current_app.logger.exception("Failed to logout user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.get("/me")
@require_auth
def me_route():
    """Current user with tenant context and effective grants."""
    try:
        user = g.current_user
        return jsonify({
            "user": user.to_dict(),
            "org_id": g.org_id,
            "role": g.system_role,
            "custom_role": user.custom_role.to_dict() if user.custom_role else None,
            "permissions": get_user_grants(user),
        }), 200

    except Exception:
        current_app.logger.exception("Failed to load current user")
        return jsonify({"error": "Internal server error"}), 500
