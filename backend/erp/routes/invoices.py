# Overview: Flask API routes for invoices; every lookup is scoped to the caller's organization.

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_auth, require_permission
from ..errors import ServiceError, ValidationError, error_response
from ..permissions import Action, Resource
from ..services import invoice_service
from ..validation import coerce_int


invoices_bp = Blueprint("invoices", __name__, url_prefix="/api/invoices")


@invoices_bp.get("")
@require_auth
@require_permission(Resource.INVOICES, Action.READ)
def list_invoices_route():
    """Query params: status, customer_id, page, limit"""
    try:
        raw_customer = request.args.get("customer_id")
        result = invoice_service.list_invoices(
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
        current_app.logger.exception("Failed to list invoices")
        return jsonify({"error": "Internal server error"}), 500


@invoices_bp.post("")
@require_auth
@require_permission(Resource.INVOICES, Action.CREATE)
def create_invoice_route():
    """
    Body: {"sales_order_id"} or {"customer_id", "amount_cents", "tax_cents"?},
    plus optional "issue_date", "due_date", "notes".
    """
    try:
        invoice = invoice_service.create_invoice(
            g.org_id, request.get_json(silent=True) or {}, user_id=g.current_user.id
        )
        return jsonify(invoice.to_dict()), 201
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create invoice")
        return jsonify({"error": "Internal server error"}), 500


@invoices_bp.get("/<int:invoice_id>")
@require_auth
@require_permission(Resource.INVOICES, Action.READ)
def get_invoice_route(invoice_id: int):
    try:
        return jsonify(invoice_service.get_invoice(g.org_id, invoice_id).to_dict()), 200
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to get invoice")
        return jsonify({"error": "Internal server error"}), 500


@invoices_bp.put("/<int:invoice_id>")
@require_auth
@require_permission(Resource.INVOICES, Action.UPDATE)
def update_invoice_route(invoice_id: int):
    try:
        invoice = invoice_service.update_invoice(g.org_id, invoice_id, request.get_json(silent=True) or {})
        return jsonify(invoice.to_dict()), 200
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update invoice")
        return jsonify({"error": "Internal server error"}), 500


@invoices_bp.post("/<int:invoice_id>/status")
@require_auth
@require_permission(Resource.INVOICES, Action.UPDATE)
def update_invoice_status_route(invoice_id: int):
    """Body: {"status": sent | paid | void}"""
    try:
        data = request.get_json(silent=True) or {}
        if not data.get("status"):
            raise ValidationError("status is required")
        invoice = invoice_service.update_invoice_status(g.org_id, invoice_id, data["status"])
        return jsonify(invoice.to_dict()), 200
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update invoice status")
        return jsonify({"error": "Internal server error"}), 500


@invoices_bp.delete("/<int:invoice_id>")
@require_auth
@require_permission(Resource.INVOICES, Action.DELETE)
def delete_invoice_route(invoice_id: int):
    try:
        invoice_service.delete_invoice(g.org_id, invoice_id)
        return jsonify({"message": "Invoice deleted successfully"}), 200
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete invoice")
        return jsonify({"error": "Internal server error"}), 500


@invoices_bp.get("/overdue")
@require_auth
@require_permission(Resource.INVOICES, Action.READ)
def overdue_invoices_route():
    try:
        invoices = invoice_service.overdue_invoices(g.org_id)
        return jsonify({"items": [i.to_dict() for i in invoices], "count": len(invoices)}), 200
    except Exception:
        current_app.logger.exception("Failed to list overdue invoices")
        return jsonify({"error": "Internal server error"}), 500
