"""
Products Service with Multi-Tenant Support

MULTI-TENANT: every function takes org_id first.
- SKU is unique per organization (the same SKU may exist in another tenant)
- Deleting a product is a soft delete (is_active = False); ledger rows keep
  referencing it
- Stock is never read from Product; get_product joins in StockLevel
"""
from __future__ import annotations

import logging

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError

from ..errors import ConflictError
from ..extensions import db
from ..models import Product
from ..validation import ModelValidationPolicy, enforce_rules_product, validate_payload
from .audit_service import calculate_changes, record_audit
from .inventory_service import get_stock_levels
from .pagination import paginate
from .tenant_service import require_in_org

logger = logging.getLogger(__name__)

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={
        "sku", "name", "description", "category", "unit", "barcode", "images",
        "cost_price_cents", "selling_price_cents", "reorder_level", "is_active",
    },
    required_on_create={"sku", "name", "category", "cost_price_cents", "selling_price_cents"},
)

SKU_CONFLICT = "Product with this SKU already exists"


def list_products(
    org_id: int,
    *,
    search: str | None = None,
    category: str | None = None,
    is_active: bool | None = None,
    page=None,
    limit=None,
) -> dict:
    query = db.session.query(Product).filter(Product.org_id == org_id)

    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(or_(
            Product.sku.ilike(pattern),
            Product.name.ilike(pattern),
            Product.description.ilike(pattern),
            Product.category.ilike(pattern),
        ))
    if category:
        query = query.filter(Product.category == category)
    if is_active is not None:
        query = query.filter(Product.is_active.is_(is_active))

    query = query.order_by(Product.created_at.desc(), Product.id.desc())
    return paginate(query, page, limit)


def get_product(org_id: int, product_id: int) -> dict:
    """Product with its per-warehouse stock levels and total stock."""
    product = require_in_org(Product, product_id, org_id, "Product")
    levels = [level.to_dict() for level in get_stock_levels(org_id, product.id)]
    data = product.to_dict()
    data["stock_levels"] = levels
    data["total_stock"] = sum(level["quantity"] for level in levels)
    return data


def _sku_taken(org_id: int, sku: str, exclude_id: int | None = None) -> bool:
    query = db.session.query(Product.id).filter(Product.org_id == org_id, Product.sku == sku)
    if exclude_id is not None:
        query = query.filter(Product.id != exclude_id)
    return query.first() is not None


def create_product(org_id: int, payload: dict, *, user_id: int | None = None) -> dict:
    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
    enforce_rules_product(patch)

    if _sku_taken(org_id, patch["sku"]):
        raise ConflictError(SKU_CONFLICT)

    product = Product(org_id=org_id, **patch)
    db.session.add(product)
    try:
        db.session.flush()
        record_audit(org_id, user_id, "create", "product", product.id)
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError(SKU_CONFLICT)

    logger.info("Created product %s sku=%s in org %s", product.id, product.sku, org_id)
    return product.to_dict()


def update_product(org_id: int, product_id: int, payload: dict, *, user_id: int | None = None) -> dict:
    product = require_in_org(Product, product_id, org_id, "Product")
    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
    enforce_rules_product(patch)

    if "sku" in patch and _sku_taken(org_id, patch["sku"], exclude_id=product.id):
        raise ConflictError(SKU_CONFLICT)

    before = product.to_dict()
    for k, v in patch.items():
        setattr(product, k, v)

    try:
        db.session.flush()
        changes = calculate_changes(before, product.to_dict())
        if changes:
            record_audit(org_id, user_id, "update", "product", product.id, changes)
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError(SKU_CONFLICT)

    return product.to_dict()


def delete_product(org_id: int, product_id: int, *, user_id: int | None = None) -> dict:
    """Soft delete."""
    product = require_in_org(Product, product_id, org_id, "Product")
    if product.is_active:
        product.is_active = False
        record_audit(org_id, user_id, "delete", "product", product.id)
        db.session.commit()
    return {"message": "Product deleted successfully"}


def get_categories(org_id: int) -> list[str]:
    rows = (
        db.session.query(Product.category)
        .filter(Product.org_id == org_id, Product.is_active.is_(True))
        .distinct()
        .all()
    )
    return sorted(r[0] for r in rows if r[0])

