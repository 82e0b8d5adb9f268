# Overview: Flask API routes for employee records.

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_auth, require_permission
from ..errors import ServiceError, ValidationError, error_response
from ..permissions import Action, Resource
from ..services import employee_service


employees_bp = Blueprint("employees", __name__, url_prefix="/api/employees")


@employees_bp.get("")
@require_auth
@require_permission(Resource.EMPLOYEES, Action.READ)
def list_employees_route():
    """Query params: status, department, search, page, limit"""
    try:
        result = employee_service.list_employees(
            g.org_id,
            status=request.args.get("status") or None,
            department=request.args.get("department") or None,
            search=request.args.get("search") or None,
            page=request.args.get("page"),
            limit=request.args.get("limit"),
        )
        return jsonify(result), 200
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list employees")
        return jsonify({"error": "Internal server error"}), 500


@employees_bp.post("")
@require_auth
@require_permission(Resource.EMPLOYEES, Action.CREATE)
def create_employee_route():
    try:
        employee = employee_service.create_employee(g.org_id, request.get_json(silent=True) or {})
        return jsonify(employee.to_dict()), 201
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create employee")
        return jsonify({"error": "Internal server error"}), 500


@employees_bp.get("/<int:employee_id>")
@require_auth
@require_permission(Resource.EMPLOYEES, Action.READ)
def get_employee_route(employee_id: int):
    try:
        return jsonify(employee_service.get_employee(g.org_id, employee_id).to_dict()), 200
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to get employee")
        return jsonify({"error": "Internal server error"}), 500


@employees_bp.put("/<int:employee_id>")
@require_auth
@require_permission(Resource.EMPLOYEES, Action.UPDATE)
def update_employee_route(employee_id: int):
    try:
        employee = employee_service.update_employee(g.org_id, employee_id, request.get_json(silent=True) or {})
        return jsonify(employee.to_dict()), 200
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update employee")
        return jsonify({"error": "Internal server error"}), 500


@employees_bp.post("/<int:employee_id>/status")
@require_auth
@require_permission(Resource.EMPLOYEES, Action.UPDATE)
def set_employee_status_route(employee_id: int):
    """Body: {"status": active | inactive | terminated}"""
    try:
        data = request.get_json(silent=True) or {}
        if not data.get("status"):
            raise ValidationError("status is required")
        employee = employee_service.set_employee_status(g.org_id, employee_id, data["status"])
        return jsonify(employee.to_dict()), 200
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update employee status")
        return jsonify({"error": "Internal server error"}), 500


@employees_bp.delete("/<int:employee_id>")
@require_auth
@require_permission(Resource.EMPLOYEES, Action.DELETE)
def terminate_employee_route(employee_id: int):
    try:
        employee = employee_service.terminate_employee(g.org_id, employee_id)
        return jsonify({"employee": employee.to_dict(), "message": "Employee terminated"}), 200
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to terminate employee")
        return jsonify({"error": "Internal server error"}), 500
