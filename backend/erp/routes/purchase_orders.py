# Overview: Flask API routes for purchase orders; receiving posts stock movements.

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_auth, require_permission
from ..errors import ServiceError, ValidationError, error_response
from ..permissions import Action, Resource
from ..services import purchase_service
from ..validation import coerce_int


purchase_orders_bp = Blueprint("purchase_orders", __name__, url_prefix="/api/purchase-orders")


@purchase_orders_bp.get("")
@require_auth
@require_permission(Resource.PURCHASES, Action.READ)
def list_purchase_orders_route():
    try:
        result = purchase_service.list_purchase_orders(
            g.org_id,
            status=request.args.get("status") or None,
            page=request.args.get("page"),
            limit=request.args.get("limit"),
        )
        return jsonify(result), 200
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list purchase orders")
        return jsonify({"error": "Internal server error"}), 500


@purchase_orders_bp.post("")
@require_auth
@require_permission(Resource.PURCHASES, Action.CREATE)
def create_purchase_order_route():
    """
    Body: {"supplier_name", "items": [{"product_id", "quantity", "unit_cost_cents"}],
           "expected_delivery"?, "notes"?}
    """
    try:
        po = purchase_service.create_purchase_order(
            g.org_id, request.get_json(silent=True) or {}, user_id=g.current_user.id
        )
        return jsonify(po.to_dict()), 201
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create purchase order")
        return jsonify({"error": "Internal server error"}), 500


@purchase_orders_bp.get("/<int:po_id>")
@require_auth
@require_permission(Resource.PURCHASES, Action.READ)
def get_purchase_order_route(po_id: int):
    try:
        return jsonify(purchase_service.get_purchase_order(g.org_id, po_id).to_dict()), 200
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to get purchase order")
        return jsonify({"error": "Internal server error"}), 500


@purchase_orders_bp.post("/<int:po_id>/status")
@require_auth
@require_permission(Resource.PURCHASES, Action.UPDATE)
def update_purchase_order_status_route(po_id: int):
    """Body: {"status", "warehouse_id" (required when receiving)}"""
    try:
        data = request.get_json(silent=True) or {}
        status = data.get("status")
        if not status:
            raise ValidationError("status is required")
        warehouse_id = data.get("warehouse_id")
        po = purchase_service.update_purchase_order_status(
            g.org_id,
            po_id,
            status,
            warehouse_id=coerce_int("warehouse_id", warehouse_id) if warehouse_id is not None else None,
            user_id=g.current_user.id,
        )
        return jsonify(po.to_dict()), 200
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update purchase order status")
        return jsonify({"error": "Internal server error"}), 500
