# Overview: Flask API routes for the audit trail and security events (admin only).

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_auth, require_admin
from ..errors import ServiceError, error_response
from ..services import audit_service
from ..services import permission_service
from ..validation import coerce_int


audit_bp = Blueprint("audit", __name__, url_prefix="/api/audit")


def _limit(default: int = 100, maximum: int = 500) -> int:
    raw = request.args.get("limit")
    if not raw:
        return default
    return min(max(coerce_int("limit", raw), 1), maximum)


@audit_bp.get("")
@require_auth
@require_admin
def list_audit_logs_route():
    """Query params: entity_type, entity_id, limit"""
    try:
        raw_entity_id = request.args.get("entity_id")
        logs = audit_service.list_audit_logs(
            g.org_id,
            entity_type=request.args.get("entity_type") or None,
            entity_id=coerce_int("entity_id", raw_entity_id) if raw_entity_id else None,
            limit=_limit(),
        )
        return jsonify({"items": [log.to_dict() for log in logs], "count": len(logs)}), 200
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list audit logs")
        return jsonify({"error": "Internal server error"}), 500


@audit_bp.get("/security-events")
@require_auth
@require_admin
def list_security_events_route():
    """Query params: event_type, limit"""
    try:
        events = permission_service.get_security_events(
            g.org_id,
            event_type=request.args.get("event_type") or None,
            limit=_limit(),
        )
        return jsonify({"items": [e.to_dict() for e in events], "count": len(events)}), 200
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list security events")
        return jsonify({"error": "Internal server error"}), 500
