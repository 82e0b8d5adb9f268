# Overview: Flask API routes for sales orders; shipping posts stock movements.

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_auth, require_permission
from ..errors import ServiceError, ValidationError, error_response
from ..permissions import Action, Resource
from ..services import sales_service
from ..validation import coerce_int


sales_orders_bp = Blueprint("sales_orders", __name__, url_prefix="/api/sales-orders")


@sales_orders_bp.get("")
@require_auth
@require_permission(Resource.ORDERS, Action.READ)
def list_sales_orders_route():
    """Query params: status, customer_id, page, limit"""
    try:
        raw_customer = request.args.get("customer_id")
        result = sales_service.list_sales_orders(
            g.org_id,
            status=request.args.get("status") or None,
            customer_id=coerce_int("customer_id", raw_customer) if raw_customer else None,
            page=request.args.get("page"),
            limit=request.args.get("limit"),
        )
        return jsonify(result), 200
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list sales orders")
        return jsonify({"error": "Internal server error"}), 500


@sales_orders_bp.post("")
@require_auth
@require_permission(Resource.ORDERS, Action.CREATE)
def create_sales_order_route():
    """
    Body: {"customer_id", "items": [{"product_id", "quantity", "unit_price_cents",
           "discount_cents"?, "tax_rate_bps"?}], "shipping_cents"?, "order_date"?,
           "shipping_address"?, "payment_status"?, "notes"?}
    """
    try:
        order = sales_service.create_sales_order(
            g.org_id, request.get_json(silent=True) or {}, user_id=g.current_user.id
        )
        return jsonify(order.to_dict()), 201
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create sales order")
        return jsonify({"error": "Internal server error"}), 500


@sales_orders_bp.get("/<int:order_id>")
@require_auth
@require_permission(Resource.ORDERS, Action.READ)
def get_sales_order_route(order_id: int):
    try:
        return jsonify(sales_service.get_sales_order(g.org_id, order_id).to_dict()), 200
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to get sales order")
        return jsonify({"error": "Internal server error"}), 500


@sales_orders_bp.post("/<int:order_id>/status")
@require_auth
@require_permission(Resource.ORDERS, Action.UPDATE)
def update_sales_order_status_route(order_id: int):
    """Body: {"status", "warehouse_id" (required when shipping)}"""
    try:
        data = request.get_json(silent=True) or {}
        status = data.get("status")
        if not status:
            raise ValidationError("status is required")
        warehouse_id = data.get("warehouse_id")
        order = sales_service.update_order_status(
            g.org_id,
            order_id,
            status,
            warehouse_id=coerce_int("warehouse_id", warehouse_id) if warehouse_id is not None else None,
            user_id=g.current_user.id,
        )
        return jsonify(order.to_dict()), 200
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update sales order status")
        return jsonify({"error": "Internal server error"}), 500


@sales_orders_bp.post("/<int:order_id>/payment-status")
@require_auth
@require_permission(Resource.ORDERS, Action.UPDATE)
def update_payment_status_route(order_id: int):
    """Body: {"payment_status": pending | partial | paid}"""
    try:
        data = request.get_json(silent=True) or {}
        order = sales_service.update_payment_status(g.org_id, order_id, data.get("payment_status"))
        return jsonify(order.to_dict()), 200
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update payment status")
        return jsonify({"error": "Internal server error"}), 500
