# Overview: Flask API routes for products operations; parses input and returns JSON responses.

"""
Product management routes with multi-tenant support.

MULTI-TENANT: All product operations are scoped to the caller's organization.
The org_id is derived from g.org_id (set by @require_auth).

SECURITY: All routes require authentication.
- Read operations require products:read (low-stock also accepts inventory:read)
- Write operations require products:create / products:update / products:delete
"""
from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_any_permission, require_auth, require_permission
from ..errors import ServiceError, error_response
from ..permissions import Action, Resource
from ..services import low_stock_service
from ..services import products_service


products_bp = Blueprint("products", __name__, url_prefix="/api/products")


def _bool_arg(name: str) -> bool | None:
    raw = request.args.get(name)
    if raw is None or raw == "":
        return None
    return raw.strip().lower() in ("1", "true", "yes")


@products_bp.get("")
@require_auth
@require_permission(Resource.PRODUCTS, Action.READ)
def list_products_route():
    """
    Query params:
    - search: matches sku, name, description, category
    - category
    - is_active: bool
    - page: int (1-indexed), limit: int (max MAX_PAGE_SIZE)
    """
    try:
        result = products_service.list_products(
            g.org_id,
            search=request.args.get("search") or None,
            category=request.args.get("category") or None,
            is_active=_bool_arg("is_active"),
            page=request.args.get("page"),
            limit=request.args.get("limit"),
        )
        return jsonify(result), 200
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list products")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.post("")
@require_auth
@require_permission(Resource.PRODUCTS, Action.CREATE)
def create_product_route():
    try:
        created = products_service.create_product(
            g.org_id, request.get_json(silent=True) or {}, user_id=g.current_user.id
        )
        return jsonify(created), 201
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.get("/categories")
@require_auth
@require_permission(Resource.PRODUCTS, Action.READ)
def categories_route():
    try:
        return jsonify({"categories": products_service.get_categories(g.org_id)}), 200
    except Exception:
        current_app.logger.exception("Failed to list product categories")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.get("/low-stock")
@require_auth
@require_any_permission((Resource.PRODUCTS, Action.READ), (Resource.INVENTORY, Action.READ))
def low_stock_products_route():
    try:
        products = low_stock_service.get_low_stock_products(g.org_id)
        return jsonify({"items": products, "count": len(products)}), 200
    except Exception:
        current_app.logger.exception("Failed to list low-stock products")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.get("/<int:product_id>")
@require_auth
@require_permission(Resource.PRODUCTS, Action.READ)
def get_product_route(product_id: int):
    try:
        return jsonify(products_service.get_product(g.org_id, product_id)), 200
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to get product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.put("/<int:product_id>")
@require_auth
@require_permission(Resource.PRODUCTS, Action.UPDATE)
def update_product_route(product_id: int):
    try:
        updated = products_service.update_product(
            g.org_id, product_id, request.get_json(silent=True) or {}, user_id=g.current_user.id
        )
        return jsonify(updated), 200
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.delete("/<int:product_id>")
@require_auth
@require_permission(Resource.PRODUCTS, Action.DELETE)
def delete_product_route(product_id: int):
    try:
        return jsonify(products_service.delete_product(g.org_id, product_id, user_id=g.current_user.id)), 200
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete product")
        return jsonify({"error": "Internal server error"}), 500
