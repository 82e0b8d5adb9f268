# Overview: Warehouse master data for an organization.

from __future__ import annotations

from sqlalchemy.exc import IntegrityError

from ..errors import ConflictError
from ..extensions import db
from ..models import Warehouse
from ..validation import ModelValidationPolicy, validate_payload
from .tenant_service import require_in_org

WAREHOUSE_POLICY = ModelValidationPolicy(
    writable_fields={"name", "location", "is_active"},
    required_on_create={"name"},
)


def list_warehouses(org_id: int, *, include_inactive: bool = False) -> list[Warehouse]:
    query = db.session.query(Warehouse).filter(Warehouse.org_id == org_id)
    if not include_inactive:
        query = query.filter(Warehouse.is_active.is_(True))
    return query.order_by(Warehouse.name.asc()).all()


def get_warehouse(org_id: int, warehouse_id: int) -> Warehouse:
    return require_in_org(Warehouse, warehouse_id, org_id, "Warehouse")


def _name_taken(org_id: int, name: str, exclude_id: int | None = None) -> bool:
    query = db.session.query(Warehouse.id).filter(Warehouse.org_id == org_id, Warehouse.name == name)
    if exclude_id is not None:
        query = query.filter(Warehouse.id != exclude_id)
    return query.first() is not None


def create_warehouse(org_id: int, payload: dict) -> Warehouse:
    patch = validate_payload(model=Warehouse, payload=payload, policy=WAREHOUSE_POLICY, partial=False)
    if _name_taken(org_id, patch["name"]):
        raise ConflictError("Warehouse with this name already exists")

    warehouse = Warehouse(org_id=org_id, **patch)
    db.session.add(warehouse)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Warehouse with this name already exists")
    return warehouse


def update_warehouse(org_id: int, warehouse_id: int, payload: dict) -> Warehouse:
    warehouse = get_warehouse(org_id, warehouse_id)
    patch = validate_payload(model=Warehouse, payload=payload, policy=WAREHOUSE_POLICY, partial=True)
    if "name" in patch and _name_taken(org_id, patch["name"], exclude_id=warehouse.id):
        raise ConflictError("Warehouse with this name already exists")

    for k, v in patch.items():
        setattr(warehouse, k, v)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Warehouse with this name already exists")
    return warehouse


def deactivate_warehouse(org_id: int, warehouse_id: int) -> Warehouse:
    """Soft delete. Stock levels and ledger rows keep pointing at it."""
    warehouse = get_warehouse(org_id, warehouse_id)
    warehouse.is_active = False
    db.session.commit()
    return warehouse
