# Overview: Request and permission decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .errors import AuthorizationError
from .permissions import SystemRole, has_all_permissions, has_any_permission
from .services import session_service, permission_service
from .services.role_service import get_user_grants


def _is_authenticated() -> bool:
    return hasattr(g, 'current_user') and hasattr(g, 'org_id')


def _client():
    return request.remote_addr, request.headers.get("User-Agent")


def _format_checks(checks) -> str:
    return ", ".join(f"{resource}:{action}" for resource, action in checks)


def require_auth(f):
    """
    Require authentication and establish tenant context.

    MULTI-TENANT: Sets the following Flask g attributes:
    - g.current_user: The authenticated User object
    - g.org_id: The organization ID (tenant context) - REQUIRED
    - g.system_role: The user's system role name
    - g.session_context: The full SessionContext object

    SECURITY: Returns 401 if:
    - No Authorization header
    - Invalid, expired, idle or revoked token
    - User account deactivated
    - Organization deactivated
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        auth_header = request.headers.get("Authorization")

        if not auth_header or not auth_header.startswith("Bearer "):
            return jsonify({"error": "Authentication required"}), 401

        token = auth_header.split(" ", 1)[1]

        context = session_service.validate_session(token)

        if not context:
            return jsonify({"error": "Invalid or expired token"}), 401

        g.current_user = context.user
        g.org_id = context.org_id
        g.system_role = context.system_role
        g.session_context = context

        return f(*args, **kwargs)

    return decorated_function


def require_permission(resource: str, action: str):
    """
    Require `action` on `resource` in the caller's effective grants.

    Denials are written to security_events with the caller's org_id.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            # Ensure @require_auth was called first
            if not _is_authenticated():
                return jsonify({"error": "Authentication required"}), 401

            ip_address, user_agent = _client()
            try:
                permission_service.require_permission(
                    g.current_user,
                    resource,
                    action,
                    ip_address=ip_address,
                    user_agent=user_agent,
                )
            except AuthorizationError as e:
                return jsonify({
                    "error": "Permission denied",
                    "required_permission": f"{resource}:{action}",
                    "message": str(e)
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator


def require_any_permission(*checks):
    """
    Require any of the given (resource, action) pairs.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return jsonify({"error": "Authentication required"}), 401

            user = g.current_user
            if not has_any_permission(get_user_grants(user), checks):
                ip_address, user_agent = _client()
                permission_service.log_security_event(
                    user_id=user.id,
                    event_type="PERMISSION_DENIED",
                    success=False,
                    resource=request.path,
                    action=f"ANY_OF:{_format_checks(checks)}",
                    reason=f"Missing any of: {_format_checks(checks)}",
                    ip_address=ip_address,
                    user_agent=user_agent,
                    org_id=g.org_id,
                )
                return jsonify({
                    "error": "Permission denied",
                    "required_permissions": [f"{r}:{a}" for r, a in checks],
                    "message": f"Requires any of: {_format_checks(checks)}"
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator


def require_all_permissions(*checks):
    """
    Require all of the given (resource, action) pairs.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return jsonify({"error": "Authentication required"}), 401

            user = g.current_user
            if not has_all_permissions(get_user_grants(user), checks):
                ip_address, user_agent = _client()
                permission_service.log_security_event(
                    user_id=user.id,
                    event_type="PERMISSION_DENIED",
                    success=False,
                    resource=request.path,
                    action=f"ALL_OF:{_format_checks(checks)}",
                    reason=f"Missing one of: {_format_checks(checks)}",
                    ip_address=ip_address,
                    user_agent=user_agent,
                    org_id=g.org_id,
                )
                return jsonify({
                    "error": "Permission denied",
                    "required_permissions": [f"{r}:{a}" for r, a in checks],
                    "message": f"Requires all of: {_format_checks(checks)}"
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator


def require_admin(f):
    """Require the authenticated user's system role to be admin."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not _is_authenticated():
            return jsonify({"error": "Authentication required"}), 401
        if g.system_role != SystemRole.ADMIN:
            ip_address, user_agent = _client()
            permission_service.log_security_event(
                user_id=g.current_user.id,
                event_type="ADMIN_REQUIRED",
                success=False,
                resource=request.path,
                action=request.method,
                reason="Admin access required",
                ip_address=ip_address,
                user_agent=user_agent,
                org_id=g.org_id,
            )
            return jsonify({"error": "Admin access required"}), 403
        return f(*args, **kwargs)
    return decorated_function
