# Overview: Flask API routes for dashboard KPIs and charts.

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_auth, require_permission
from ..errors import ServiceError, error_response
from ..permissions import Action, Resource
from ..services import dashboard_service
from ..validation import coerce_int


dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/api/dashboard")


@dashboard_bp.get("/metrics")
@require_auth
@require_permission(Resource.DASHBOARD, Action.READ)
def metrics_route():
    try:
        return jsonify(dashboard_service.get_metrics(g.org_id)), 200
    except Exception:
        current_app.logger.exception("Failed to fetch dashboard metrics")
        return jsonify({"error": "Internal server error"}), 500


@dashboard_bp.get("/revenue")
@require_auth
@require_permission(Resource.DASHBOARD, Action.READ)
def revenue_route():
    try:
        return jsonify({"items": dashboard_service.get_revenue_data(g.org_id)}), 200
    except Exception:
        current_app.logger.exception("Failed to fetch revenue data")
        return jsonify({"error": "Internal server error"}), 500


@dashboard_bp.get("/sales-overview")
@require_auth
@require_permission(Resource.DASHBOARD, Action.READ)
def sales_overview_route():
    try:
        return jsonify({"items": dashboard_service.get_sales_overview(g.org_id)}), 200
    except Exception:
        current_app.logger.exception("Failed to fetch sales overview")
        return jsonify({"error": "Internal server error"}), 500


@dashboard_bp.get("/recent-activity")
@require_auth
@require_permission(Resource.DASHBOARD, Action.READ)
def recent_activity_route():
    """Query params: limit (default 10, max 50)"""
    try:
        raw = request.args.get("limit")
        limit = min(max(coerce_int("limit", raw), 1), 50) if raw else 10
        return jsonify({"items": dashboard_service.get_recent_activity(g.org_id, limit)}), 200
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to fetch recent activity")
        return jsonify({"error": "Internal server error"}), 500
