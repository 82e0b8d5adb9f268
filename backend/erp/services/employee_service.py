"""
Employees Service

employee_code is unique per organization; when omitted on create it is
allocated from the EMP document sequence. Termination is terminal.
"""
from __future__ import annotations

import logging

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError

from ..errors import ConflictError, ValidationError
from ..extensions import db
from ..models import Employee
from ..time_utils import utcnow
from ..validation import ModelValidationPolicy, enforce_rules_employee, validate_payload
from .document_service import next_document_number
from .lifecycle_service import EMPLOYEE_TRANSITIONS, LifecycleError, require_transition
from .pagination import paginate
from .tenant_service import require_in_org

logger = logging.getLogger(__name__)

EMPLOYMENT_TYPES = {"full-time", "part-time", "contract", "intern"}

EMPLOYEE_POLICY = ModelValidationPolicy(
    writable_fields={
        "employee_code", "first_name", "last_name", "email", "phone",
        "date_of_birth", "hire_date", "department", "job_title", "salary_cents",
        "employment_type", "address", "emergency_contact",
    },
    required_on_create={"first_name", "last_name", "email", "hire_date", "department", "job_title"},
    choices={"employment_type": EMPLOYMENT_TYPES},
)

CODE_CONFLICT = "Employee with this code already exists"


def _code_taken(org_id: int, code: str, exclude_id: int | None = None) -> bool:
    query = db.session.query(Employee.id).filter(
        Employee.org_id == org_id, Employee.employee_code == code
    )
    if exclude_id is not None:
        query = query.filter(Employee.id != exclude_id)
    return query.first() is not None


def list_employees(
    org_id: int,
    *,
    status: str | None = None,
    department: str | None = None,
    search: str | None = None,
    page=None,
    limit=None,
) -> dict:
    query = db.session.query(Employee).filter(Employee.org_id == org_id)
    if status:
        if status not in EMPLOYEE_TRANSITIONS:
            raise ValidationError(f"status must be one of: {', '.join(sorted(EMPLOYEE_TRANSITIONS))}")
        query = query.filter(Employee.status == status)
    if department:
        query = query.filter(Employee.department == department)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(or_(
            Employee.first_name.ilike(pattern),
            Employee.last_name.ilike(pattern),
            Employee.email.ilike(pattern),
            Employee.employee_code.ilike(pattern),
        ))
    query = query.order_by(Employee.last_name.asc(), Employee.first_name.asc(), Employee.id.asc())
    return paginate(query, page, limit)


def get_employee(org_id: int, employee_id: int) -> Employee:
    return require_in_org(Employee, employee_id, org_id, "Employee")


def create_employee(org_id: int, payload: dict) -> Employee:
    patch = validate_payload(model=Employee, payload=payload, policy=EMPLOYEE_POLICY, partial=False)
    enforce_rules_employee(patch)

    code = patch.pop("employee_code", None)
    if code:
        if _code_taken(org_id, code):
            raise ConflictError(CODE_CONFLICT)
    else:
        code = next_document_number(org_id=org_id, document_type="employee")

    employee = Employee(org_id=org_id, employee_code=code, status="active", **patch)
    db.session.add(employee)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError(CODE_CONFLICT)

    logger.info("Created employee %s (%s) in org %s", employee.id, employee.employee_code, org_id)
    return employee


def update_employee(org_id: int, employee_id: int, payload: dict) -> Employee:
    employee = get_employee(org_id, employee_id)
    if employee.status == "terminated":
        raise LifecycleError("Terminated employees cannot be edited")

    patch = validate_payload(model=Employee, payload=payload, policy=EMPLOYEE_POLICY, partial=True)
    enforce_rules_employee(patch)

    for k in EMPLOYEE_POLICY.required_on_create | {"employee_code"}:
        if k in patch and patch[k] in (None, ""):
            raise ValidationError(f"{k} cannot be empty")

    if "employee_code" in patch and _code_taken(org_id, patch["employee_code"], exclude_id=employee.id):
        raise ConflictError(CODE_CONFLICT)

    for k, v in patch.items():
        setattr(employee, k, v)

    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError(CODE_CONFLICT)
    return employee


def set_employee_status(org_id: int, employee_id: int, status: str) -> Employee:
    employee = get_employee(org_id, employee_id)
    require_transition(EMPLOYEE_TRANSITIONS, employee.status, status, label="Employee")

    employee.status = status
    if status == "terminated":
        employee.terminated_at = utcnow()
    db.session.commit()
    logger.info("Employee %s is now %s", employee.employee_code, status)
    return employee


def terminate_employee(org_id: int, employee_id: int) -> Employee:
    return set_employee_status(org_id, employee_id, "terminated")
