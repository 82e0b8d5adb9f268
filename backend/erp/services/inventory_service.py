# Overview: Inventory ledger writes (record, transfer, adjust) and stock queries.

"""
Inventory Ledger Invariants (authoritative)

Model:
- InventoryTransaction is append-only. It is the source of truth for stock.
- StockLevel(org, product, warehouse).quantity == SUM(quantity_delta) for that key.
- _record_transaction_inner is the ONLY code that writes StockLevel. Transfer,
  adjust, sales shipping and purchase receiving all go through it.

Signed delta:
- in          -> +quantity   (quantity >= 1)
- out         -> -quantity   (quantity >= 1)
- adjustment  -> quantity as given (signed, non-zero)

Atomicity:
- One public call == one database transaction. The StockLevel row is read
  with SELECT ... FOR UPDATE, incremented, and checked for >= 0 before
  commit. Any failure rolls the whole unit back.
- A transfer's out and in legs share one transaction and one reference_id.

Time:
- created_at is UTC-naive; history filters are inclusive on both ends.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime

from flask import current_app, has_app_context
from sqlalchemy import func

from ..errors import InsufficientStockError, ValidationError
from ..extensions import db
from ..models import InventoryTransaction, Product, StockLevel, Warehouse
from ..time_utils import parse_iso_datetime
from ..validation import coerce_int
from .concurrency import lock_for_update, run_in_transaction
from .tenant_service import require_in_org

logger = logging.getLogger(__name__)

TRANSACTION_TYPES = ("in", "out", "adjustment")
REFERENCE_TYPES = ("purchase", "sale", "transfer", "adjustment")


def signed_delta(tx_type: str, quantity: int) -> int:
    if tx_type == "in":
        return quantity
    if tx_type == "out":
        return -quantity
    return quantity


def _validate_entry(tx_type, quantity, reference_type) -> int:
    if tx_type not in TRANSACTION_TYPES:
        raise ValidationError(f"type must be one of: {', '.join(TRANSACTION_TYPES)}")
    if reference_type not in REFERENCE_TYPES:
        raise ValidationError(f"reference_type must be one of: {', '.join(REFERENCE_TYPES)}")
    quantity = coerce_int("quantity", quantity)
    if tx_type in ("in", "out") and quantity < 1:
        raise ValidationError("quantity must be a positive integer")
    if tx_type == "adjustment" and quantity == 0:
        raise ValidationError("adjustment quantity must be non-zero")
    return quantity


def _resolve_product(org_id: int, product_id) -> Product:
    return require_in_org(Product, product_id, org_id, "Product")


def _resolve_warehouse(org_id: int, warehouse_id, *, require_active: bool = True) -> Warehouse:
    warehouse = require_in_org(Warehouse, warehouse_id, org_id, "Warehouse")
    if require_active and not warehouse.is_active:
        raise ValidationError("Warehouse is inactive")
    return warehouse


def _find_stock_level(org_id: int, product_id: int, warehouse_id: int) -> StockLevel | None:
    """Locked StockLevel row for the key, or None if it was never stocked."""
    query = db.session.query(StockLevel).filter_by(
        org_id=org_id,
        product_id=product_id,
        warehouse_id=warehouse_id,
    )
    return lock_for_update(query).first()


def _lock_stock_level(org_id: int, product_id: int, warehouse_id: int) -> StockLevel:
    """Locked StockLevel row for the key, created at zero if it does not exist yet."""
    level = _find_stock_level(org_id, product_id, warehouse_id)
    if level is None:
        level = StockLevel(org_id=org_id, product_id=product_id, warehouse_id=warehouse_id, quantity=0)
        db.session.add(level)
        db.session.flush()
    return level


def _record_transaction_inner(
    *,
    org_id: int,
    product: Product,
    warehouse: Warehouse,
    tx_type: str,
    quantity: int,
    reference_type: str,
    reference_id: str | None = None,
    user_id: int | None = None,
    notes: str | None = None,
) -> InventoryTransaction:
    """Core ledger append without commit. Caller owns the transaction."""
    delta = signed_delta(tx_type, quantity)

    level = _lock_stock_level(org_id, product.id, warehouse.id)
    resulting = level.quantity + delta
    if resulting < 0:
        logger.warning(
            "Rejected %s of %s for product %s at warehouse %s: on hand %s",
            tx_type, quantity, product.id, warehouse.id, level.quantity,
        )
        raise InsufficientStockError(
            "Insufficient stock",
            available=level.quantity,
            requested=-delta,
        )

    level.quantity = resulting

    tx = InventoryTransaction(
        org_id=org_id,
        product_id=product.id,
        warehouse_id=warehouse.id,
        type=tx_type,
        quantity=quantity,
        quantity_delta=delta,
        reference_type=reference_type,
        reference_id=reference_id,
        performed_by_user_id=user_id,
        notes=notes,
    )
    db.session.add(tx)
    db.session.flush()

    logger.info(
        "Ledger %s product=%s warehouse=%s delta=%+d on_hand=%s",
        tx_type, product.id, warehouse.id, delta, resulting,
    )
    return tx


def record_transaction(
    org_id: int,
    *,
    product_id: int,
    warehouse_id: int,
    tx_type: str,
    quantity: int,
    reference_type: str,
    reference_id: str | None = None,
    user_id: int | None = None,
    notes: str | None = None,
) -> InventoryTransaction:
    """
    Append one ledger entry and apply it to the stock level.

    Raises NotFoundError (product/warehouse missing or in another org),
    ValidationError (bad type/quantity) or InsufficientStockError (result < 0).
    """
    quantity = _validate_entry(tx_type, quantity, reference_type)

    def _op():
        product = _resolve_product(org_id, product_id)
        warehouse = _resolve_warehouse(org_id, warehouse_id)
        return _record_transaction_inner(
            org_id=org_id,
            product=product,
            warehouse=warehouse,
            tx_type=tx_type,
            quantity=quantity,
            reference_type=reference_type,
            reference_id=reference_id,
            user_id=user_id,
            notes=notes,
        )

    return run_in_transaction(_op)


def transfer_stock(
    org_id: int,
    *,
    product_id: int,
    from_warehouse_id: int,
    to_warehouse_id: int,
    quantity: int,
    user_id: int | None = None,
    notes: str | None = None,
) -> dict:
    """
    Move stock between two warehouses of the same organization.

    Both legs land in one transaction or neither does.
    Returns {"reference_id", "out": tx, "in": tx}.
    """
    quantity = coerce_int("quantity", quantity)
    if quantity < 1:
        raise ValidationError("quantity must be a positive integer")
    if coerce_int("from_warehouse_id", from_warehouse_id) == coerce_int("to_warehouse_id", to_warehouse_id):
        raise ValidationError("Source and destination warehouses must be different")

    reference_id = f"TRF-{uuid.uuid4().hex[:12]}"

    def _op():
        product = _resolve_product(org_id, product_id)
        source = _resolve_warehouse(org_id, from_warehouse_id)
        destination = _resolve_warehouse(org_id, to_warehouse_id)

        out_tx = _record_transaction_inner(
            org_id=org_id,
            product=product,
            warehouse=source,
            tx_type="out",
            quantity=quantity,
            reference_type="transfer",
            reference_id=reference_id,
            user_id=user_id,
            notes=notes or f"Transfer to warehouse {destination.name}",
        )
        in_tx = _record_transaction_inner(
            org_id=org_id,
            product=product,
            warehouse=destination,
            tx_type="in",
            quantity=quantity,
            reference_type="transfer",
            reference_id=reference_id,
            user_id=user_id,
            notes=notes or f"Transfer from warehouse {source.name}",
        )
        return {"reference_id": reference_id, "out": out_tx, "in": in_tx}

    return run_in_transaction(_op)


def adjust_stock(
    org_id: int,
    *,
    product_id: int,
    warehouse_id: int,
    new_quantity: int,
    user_id: int | None = None,
    notes: str | None = None,
) -> InventoryTransaction | None:
    """
    Set the stock level to new_quantity by appending one adjustment entry
    with the signed difference. Returns None (and writes nothing) when the
    level already equals new_quantity.
    """
    new_quantity = coerce_int("new_quantity", new_quantity)
    if new_quantity < 0:
        raise ValidationError("new_quantity must be >= 0")

    def _op():
        product = _resolve_product(org_id, product_id)
        warehouse = _resolve_warehouse(org_id, warehouse_id)

        level = _find_stock_level(org_id, product.id, warehouse.id)
        current = level.quantity if level is not None else 0
        delta = new_quantity - current
        if delta == 0:
            return None

        return _record_transaction_inner(
            org_id=org_id,
            product=product,
            warehouse=warehouse,
            tx_type="adjustment",
            quantity=delta,
            reference_type="adjustment",
            user_id=user_id,
            notes=notes or f"Adjusted from {current} to {new_quantity}",
        )

    return run_in_transaction(_op)


def get_stock_levels(org_id: int, product_id: int) -> list[StockLevel]:
    product = _resolve_product(org_id, product_id)
    return (
        db.session.query(StockLevel)
        .filter(StockLevel.org_id == org_id, StockLevel.product_id == product.id)
        .order_by(StockLevel.warehouse_id.asc())
        .all()
    )


def _history_limit(limit) -> int:
    default, maximum = 100, 500
    if has_app_context():
        default = current_app.config.get("TRANSACTION_HISTORY_DEFAULT_LIMIT", default)
        maximum = current_app.config.get("TRANSACTION_HISTORY_MAX_LIMIT", maximum)
    if limit is None:
        return default
    limit = coerce_int("limit", limit)
    if limit < 1:
        raise ValidationError("limit must be >= 1")
    return min(limit, maximum)


def _as_datetime(key: str, value) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    try:
        return parse_iso_datetime(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{key} must be an ISO-8601 datetime")


def get_transaction_history(
    org_id: int,
    *,
    product_id: int | None = None,
    warehouse_id: int | None = None,
    tx_type: str | None = None,
    start=None,
    end=None,
    limit=None,
) -> list[InventoryTransaction]:
    """Ledger entries newest first, filtered and always capped."""
    start_dt = _as_datetime("start", start)
    end_dt = _as_datetime("end", end)
    if tx_type is not None and tx_type not in TRANSACTION_TYPES:
        raise ValidationError(f"type must be one of: {', '.join(TRANSACTION_TYPES)}")
    limit = _history_limit(limit)

    query = db.session.query(InventoryTransaction).filter(InventoryTransaction.org_id == org_id)
    if product_id is not None:
        product = _resolve_product(org_id, product_id)
        query = query.filter(InventoryTransaction.product_id == product.id)
    if warehouse_id is not None:
        warehouse = _resolve_warehouse(org_id, warehouse_id, require_active=False)
        query = query.filter(InventoryTransaction.warehouse_id == warehouse.id)
    if tx_type is not None:
        query = query.filter(InventoryTransaction.type == tx_type)
    if start_dt is not None:
        query = query.filter(InventoryTransaction.created_at >= start_dt)
    if end_dt is not None:
        query = query.filter(InventoryTransaction.created_at <= end_dt)

    return (
        query.order_by(InventoryTransaction.created_at.desc(), InventoryTransaction.id.desc())
        .limit(limit)
        .all()
    )


def get_inventory_valuation(org_id: int) -> dict:
    """Stock on hand valued at cost and at selling price (cents)."""
    row = (
        db.session.query(
            func.coalesce(func.sum(StockLevel.quantity * Product.cost_price_cents), 0),
            func.coalesce(func.sum(StockLevel.quantity * Product.selling_price_cents), 0),
            func.coalesce(func.sum(StockLevel.quantity), 0),
        )
        .join(Product, Product.id == StockLevel.product_id)
        .filter(StockLevel.org_id == org_id, Product.org_id == org_id)
        .one()
    )
    total_cost, total_selling, total_units = (int(v or 0) for v in row)
    return {
        "total_cost_value_cents": total_cost,
        "total_selling_value_cents": total_selling,
        "potential_profit_cents": total_selling - total_cost,
        "total_items": total_units,
    }
