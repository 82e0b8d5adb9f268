# Overview: Flask API routes for customers.

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_auth, require_permission
from ..errors import ServiceError, error_response
from ..permissions import Action, Resource
from ..services import customers_service


customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.get("")
@require_auth
@require_permission(Resource.CUSTOMERS, Action.READ)
def list_customers_route():
    """
    Query params:
    - search: name, email, company, phone
    - type: individual | company
    - is_active: bool
    - tags: comma-separated, any-of
    - page, limit
    """
    try:
        raw_active = request.args.get("is_active")
        is_active = None if not raw_active else raw_active.lower() in ("1", "true", "yes")
        raw_tags = request.args.get("tags")
        tags = [t.strip() for t in raw_tags.split(",") if t.strip()] if raw_tags else None

        result = customers_service.list_customers(
            g.org_id,
            search=request.args.get("search") or None,
            customer_type=request.args.get("type") or None,
            is_active=is_active,
            tags=tags,
            page=request.args.get("page"),
            limit=request.args.get("limit"),
        )
        return jsonify(result), 200
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list customers")
        return jsonify({"error": "Internal server error"}), 500


@customers_bp.post("")
@require_auth
@require_permission(Resource.CUSTOMERS, Action.CREATE)
def create_customer_route():
    try:
        customer = customers_service.create_customer(
            g.org_id, request.get_json(silent=True) or {}, user_id=g.current_user.id
        )
        return jsonify(customer.to_dict()), 201
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create customer")
        return jsonify({"error": "Internal server error"}), 500


@customers_bp.get("/tags")
@require_auth
@require_permission(Resource.CUSTOMERS, Action.READ)
def customer_tags_route():
    try:
        return jsonify({"tags": customers_service.get_tags(g.org_id)}), 200
    except Exception:
        current_app.logger.exception("Failed to list customer tags")
        return jsonify({"error": "Internal server error"}), 500


@customers_bp.get("/stats")
@require_auth
@require_permission(Resource.CUSTOMERS, Action.READ)
def customer_stats_route():
    try:
        return jsonify(customers_service.get_customer_stats(g.org_id)), 200
    except Exception:
        current_app.logger.exception("Failed to compute customer stats")
        return jsonify({"error": "Internal server error"}), 500


@customers_bp.get("/<int:customer_id>")
@require_auth
@require_permission(Resource.CUSTOMERS, Action.READ)
def get_customer_route(customer_id: int):
    try:
        return jsonify(customers_service.get_customer(g.org_id, customer_id).to_dict()), 200
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to get customer")
        return jsonify({"error": "Internal server error"}), 500


@customers_bp.put("/<int:customer_id>")
@require_auth
@require_permission(Resource.CUSTOMERS, Action.UPDATE)
def update_customer_route(customer_id: int):
    try:
        customer = customers_service.update_customer(
            g.org_id, customer_id, request.get_json(silent=True) or {}, user_id=g.current_user.id
        )
        return jsonify(customer.to_dict()), 200
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update customer")
        return jsonify({"error": "Internal server error"}), 500


@customers_bp.delete("/<int:customer_id>")
@require_auth
@require_permission(Resource.CUSTOMERS, Action.DELETE)
def delete_customer_route(customer_id: int):
    try:
        return jsonify(customers_service.delete_customer(g.org_id, customer_id, user_id=g.current_user.id)), 200
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete customer")
        return jsonify({"error": "Internal server error"}), 500
