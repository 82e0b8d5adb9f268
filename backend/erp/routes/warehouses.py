# Overview: Flask API routes for warehouses.

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_auth, require_permission
from ..errors import ServiceError, error_response
from ..permissions import Action, Resource
from ..services import warehouse_service


warehouses_bp = Blueprint("warehouses", __name__, url_prefix="/api/warehouses")


@warehouses_bp.get("")
@require_auth
@require_permission(Resource.INVENTORY, Action.READ)
def list_warehouses_route():
    """Query params: include_inactive (bool, default false)"""
    try:
        include_inactive = (request.args.get("include_inactive") or "").lower() in ("1", "true", "yes")
        warehouses = warehouse_service.list_warehouses(g.org_id, include_inactive=include_inactive)
        return jsonify({"items": [w.to_dict() for w in warehouses], "count": len(warehouses)}), 200
    except Exception:
        current_app.logger.exception("Failed to list warehouses")
        return jsonify({"error": "Internal server error"}), 500


@warehouses_bp.post("")
@require_auth
@require_permission(Resource.INVENTORY, Action.CREATE)
def create_warehouse_route():
    try:
        warehouse = warehouse_service.create_warehouse(g.org_id, request.get_json(silent=True) or {})
        return jsonify({"warehouse": warehouse.to_dict()}), 201
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create warehouse")
        return jsonify({"error": "Internal server error"}), 500


@warehouses_bp.get("/<int:warehouse_id>")
@require_auth
@require_permission(Resource.INVENTORY, Action.READ)
def get_warehouse_route(warehouse_id: int):
    try:
        warehouse = warehouse_service.get_warehouse(g.org_id, warehouse_id)
        return jsonify({"warehouse": warehouse.to_dict()}), 200
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to get warehouse")
        return jsonify({"error": "Internal server error"}), 500


@warehouses_bp.patch("/<int:warehouse_id>")
@require_auth
@require_permission(Resource.INVENTORY, Action.UPDATE)
def update_warehouse_route(warehouse_id: int):
    try:
        warehouse = warehouse_service.update_warehouse(
            g.org_id, warehouse_id, request.get_json(silent=True) or {}
        )
        return jsonify({"warehouse": warehouse.to_dict()}), 200
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update warehouse")
        return jsonify({"error": "Internal server error"}), 500


@warehouses_bp.delete("/<int:warehouse_id>")
@require_auth
@require_permission(Resource.INVENTORY, Action.DELETE)
def deactivate_warehouse_route(warehouse_id: int):
    try:
        warehouse = warehouse_service.deactivate_warehouse(g.org_id, warehouse_id)
        return jsonify({"warehouse": warehouse.to_dict(), "message": "Warehouse deactivated"}), 200
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to deactivate warehouse")
        return jsonify({"error": "Internal server error"}), 500
