"""
Customers Service

MULTI-TENANT: org_id first on every call. Email is unique per organization
when present. Deletes are soft (is_active = False).
"""
from __future__ import annotations

from sqlalchemy import Text, case, cast, func, or_
from sqlalchemy.exc import IntegrityError

from ..errors import ConflictError
from ..extensions import db
from ..models import Customer
from ..validation import ModelValidationPolicy, enforce_rules_customer, validate_payload
from .audit_service import calculate_changes, record_audit
from .pagination import paginate
from .tenant_service import require_in_org

CUSTOMER_TYPES = {"individual", "company"}

CUSTOMER_POLICY = ModelValidationPolicy(
    writable_fields={
        "type", "name", "email", "phone", "company", "address", "tax_id",
        "payment_terms_days", "credit_limit_cents", "tags", "is_active",
    },
    required_on_create={"name"},
    choices={"type": CUSTOMER_TYPES},
)

EMAIL_CONFLICT = "Customer with this email already exists"


def list_customers(
    org_id: int,
    *,
    search: str | None = None,
    customer_type: str | None = None,
    is_active: bool | None = None,
    tags: list[str] | None = None,
    page=None,
    limit=None,
) -> dict:
    query = db.session.query(Customer).filter(Customer.org_id == org_id)

    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(or_(
            Customer.name.ilike(pattern),
            Customer.email.ilike(pattern),
            Customer.company.ilike(pattern),
            Customer.phone.ilike(pattern),
        ))
    if customer_type:
        query = query.filter(Customer.type == customer_type)
    if is_active is not None:
        query = query.filter(Customer.is_active.is_(is_active))
    if tags:
        # Any-of match against the JSON-encoded list
        tags_text = cast(Customer.tags, Text)
        query = query.filter(or_(*[tags_text.like(f'%"{tag}"%') for tag in tags]))

    query = query.order_by(Customer.created_at.desc(), Customer.id.desc())
    return paginate(query, page, limit)


def get_customer(org_id: int, customer_id: int) -> Customer:
    return require_in_org(Customer, customer_id, org_id, "Customer")


def _email_taken(org_id: int, email: str | None, exclude_id: int | None = None) -> bool:
    if not email:
        return False
    query = db.session.query(Customer.id).filter(Customer.org_id == org_id, Customer.email == email)
    if exclude_id is not None:
        query = query.filter(Customer.id != exclude_id)
    return query.first() is not None


def create_customer(org_id: int, payload: dict, *, user_id: int | None = None) -> Customer:
    patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=False)
    enforce_rules_customer(patch)

    if _email_taken(org_id, patch.get("email")):
        raise ConflictError(EMAIL_CONFLICT)

    customer = Customer(org_id=org_id, **patch)
    db.session.add(customer)
    try:
        db.session.flush()
        record_audit(org_id, user_id, "create", "customer", customer.id)
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError(EMAIL_CONFLICT)
    return customer


def update_customer(org_id: int, customer_id: int, payload: dict, *, user_id: int | None = None) -> Customer:
    customer = get_customer(org_id, customer_id)
    patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=True)
    enforce_rules_customer(patch)

    if "email" in patch and _email_taken(org_id, patch["email"], exclude_id=customer.id):
        raise ConflictError(EMAIL_CONFLICT)

    before = customer.to_dict()
    for k, v in patch.items():
        setattr(customer, k, v)

    try:
        db.session.flush()
        changes = calculate_changes(before, customer.to_dict())
        if changes:
            record_audit(org_id, user_id, "update", "customer", customer.id, changes)
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError(EMAIL_CONFLICT)
    return customer


def delete_customer(org_id: int, customer_id: int, *, user_id: int | None = None) -> dict:
    customer = get_customer(org_id, customer_id)
    if customer.is_active:
        customer.is_active = False
        record_audit(org_id, user_id, "delete", "customer", customer.id)
        db.session.commit()
    return {"message": "Customer deleted successfully"}


def get_tags(org_id: int) -> list[str]:
    rows = (
        db.session.query(Customer.tags)
        .filter(Customer.org_id == org_id, Customer.is_active.is_(True))
        .all()
    )
    tags = set()
    for (row_tags,) in rows:
        tags.update(row_tags or [])
    return sorted(tags)


def get_customer_stats(org_id: int) -> dict:
    total, active, individual, company = (
        db.session.query(
            func.count(Customer.id),
            func.coalesce(func.sum(case((Customer.is_active.is_(True), 1), else_=0)), 0),
            func.coalesce(func.sum(case((Customer.type == "individual", 1), else_=0)), 0),
            func.coalesce(func.sum(case((Customer.type == "company", 1), else_=0)), 0),
        )
        .filter(Customer.org_id == org_id)
        .one()
    )
    return {
        "total": int(total or 0),
        "active": int(active or 0),
        "individual": int(individual or 0),
        "company": int(company or 0),
    }
