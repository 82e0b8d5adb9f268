# Overview: Flask API routes for the inventory ledger and low-stock analysis.

"""
Inventory routes.

MULTI-TENANT: every lookup is scoped to g.org_id; ids from another
organization come back as 404.

SECURITY:
- Reads require inventory:read; valuation also needs products:read
- Recording a transaction requires inventory:create
- Transfers and adjustments require inventory:update
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_all_permissions, require_auth, require_permission
from ..errors import ServiceError, ValidationError, error_response
from ..permissions import Action, Resource
from ..services import inventory_service
from ..services import low_stock_service
from ..validation import coerce_int


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


def _required(data: dict, *keys: str) -> None:
    missing = [k for k in keys if data.get(k) is None]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")


def _optional_int_arg(name: str) -> int | None:
    raw = request.args.get(name)
    if raw is None or raw == "":
        return None
    return coerce_int(name, raw)


@inventory_bp.post("/transactions")
@require_auth
@require_permission(Resource.INVENTORY, Action.CREATE)
def record_transaction_route():
    """
    Body: {"product_id", "warehouse_id", "type", "quantity", "reference_type",
           "reference_id"?, "notes"?}
    """
    try:
        data = request.get_json(silent=True) or {}
        _required(data, "product_id", "warehouse_id", "type", "quantity", "reference_type")
        tx = inventory_service.record_transaction(
            g.org_id,
            product_id=coerce_int("product_id", data["product_id"]),
            warehouse_id=coerce_int("warehouse_id", data["warehouse_id"]),
            tx_type=data["type"],
            quantity=data["quantity"],
            reference_type=data["reference_type"],
            reference_id=data.get("reference_id"),
            user_id=g.current_user.id,
            notes=data.get("notes"),
        )
        return jsonify({"transaction": tx.to_dict()}), 201
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to record inventory transaction")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.get("/transactions")
@require_auth
@require_permission(Resource.INVENTORY, Action.READ)
def transaction_history_route():
    """
    Query params: product_id, warehouse_id, type, start, end (ISO-8601), limit
    """
    try:
        rows = inventory_service.get_transaction_history(
            g.org_id,
            product_id=_optional_int_arg("product_id"),
            warehouse_id=_optional_int_arg("warehouse_id"),
            tx_type=request.args.get("type") or None,
            start=request.args.get("start") or None,
            end=request.args.get("end") or None,
            limit=request.args.get("limit") or None,
        )
        return jsonify({"items": [tx.to_dict() for tx in rows], "count": len(rows)}), 200
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to load transaction history")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.get("/stock-levels")
@require_auth
@require_permission(Resource.INVENTORY, Action.READ)
def stock_levels_route():
    """Query params: product_id (required)"""
    try:
        product_id = _optional_int_arg("product_id")
        if product_id is None:
            raise ValidationError("product_id is required")
        levels = inventory_service.get_stock_levels(g.org_id, product_id)
        return jsonify({
            "product_id": product_id,
            "items": [level.to_dict() for level in levels],
            "total_stock": sum(level.quantity for level in levels),
        }), 200
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to load stock levels")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.post("/transfer")
@require_auth
@require_permission(Resource.INVENTORY, Action.UPDATE)
def transfer_route():
    """Body: {"product_id", "from_warehouse_id", "to_warehouse_id", "quantity", "notes"?}"""
    try:
        data = request.get_json(silent=True) or {}
        _required(data, "product_id", "from_warehouse_id", "to_warehouse_id", "quantity")
        result = inventory_service.transfer_stock(
            g.org_id,
            product_id=coerce_int("product_id", data["product_id"]),
            from_warehouse_id=coerce_int("from_warehouse_id", data["from_warehouse_id"]),
            to_warehouse_id=coerce_int("to_warehouse_id", data["to_warehouse_id"]),
            quantity=data["quantity"],
            user_id=g.current_user.id,
            notes=data.get("notes"),
        )
        return jsonify({
            "reference_id": result["reference_id"],
            "out": result["out"].to_dict(),
            "in": result["in"].to_dict(),
            "message": "Stock transferred successfully",
        }), 201
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to transfer stock")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.post("/adjust")
@require_auth
@require_permission(Resource.INVENTORY, Action.UPDATE)
def adjust_route():
    """Body: {"product_id", "warehouse_id", "new_quantity", "notes"?}"""
    try:
        data = request.get_json(silent=True) or {}
        _required(data, "product_id", "warehouse_id", "new_quantity")
        tx = inventory_service.adjust_stock(
            g.org_id,
            product_id=coerce_int("product_id", data["product_id"]),
            warehouse_id=coerce_int("warehouse_id", data["warehouse_id"]),
            new_quantity=data["new_quantity"],
            user_id=g.current_user.id,
            notes=data.get("notes"),
        )
        if tx is None:
            return jsonify({"transaction": None, "message": "Stock level unchanged"}), 200
        return jsonify({"transaction": tx.to_dict(), "message": "Stock adjusted successfully"}), 201
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to adjust stock")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.get("/valuation")
@require_auth
@require_all_permissions((Resource.INVENTORY, Action.READ), (Resource.PRODUCTS, Action.READ))
def valuation_route():
    try:
        return jsonify(inventory_service.get_inventory_valuation(g.org_id)), 200
    except Exception:
        current_app.logger.exception("Failed to compute inventory valuation")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.get("/low-stock")
@require_auth
@require_permission(Resource.INVENTORY, Action.READ)
def low_stock_route():
    try:
        products = low_stock_service.get_low_stock_products(g.org_id)
        return jsonify({"items": products, "count": len(products)}), 200
    except Exception:
        current_app.logger.exception("Failed to load low-stock products")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.get("/low-stock/stats")
@require_auth
@require_permission(Resource.INVENTORY, Action.READ)
def low_stock_stats_route():
    try:
        return jsonify(low_stock_service.get_low_stock_stats(g.org_id)), 200
    except Exception:
        current_app.logger.exception("Failed to load low-stock stats")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.get("/reorder-suggestions")
@require_auth
@require_permission(Resource.INVENTORY, Action.READ)
def reorder_suggestions_route():
    try:
        suggestions = low_stock_service.get_reorder_suggestions(g.org_id)
        return jsonify({"items": suggestions, "count": len(suggestions)}), 200
    except Exception:
        current_app.logger.exception("Failed to compute reorder suggestions")
        return jsonify({"error": "Internal server error"}), 500
