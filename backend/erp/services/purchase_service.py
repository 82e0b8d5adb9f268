# Overview: Purchase orders and receiving stock into a warehouse.

"""
Purchase Orders

Receiving (ordered -> received) posts one in/purchase ledger entry per line
at the receiving warehouse. Entries and the status change commit together.
"""

from __future__ import annotations

import logging
from datetime import date

from ..errors import ValidationError
from ..extensions import db
from ..models import Product, PurchaseOrder, PurchaseOrderLine
from ..time_utils import utcnow
from ..validation import validate_line_items
from .concurrency import lock_for_update, run_in_transaction
from .document_service import next_document_number
from .inventory_service import _record_transaction_inner, _resolve_warehouse
from .lifecycle_service import PURCHASE_ORDER_TRANSITIONS, require_transition
from .pagination import paginate
from .tenant_service import require_in_org, require_many_in_org

logger = logging.getLogger(__name__)

PO_STATUSES = tuple(PURCHASE_ORDER_TRANSITIONS)


def create_purchase_order(org_id: int, payload: dict, *, user_id: int | None = None) -> PurchaseOrder:
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    supplier_name = payload.get("supplier_name")
    if not isinstance(supplier_name, str) or not supplier_name.strip():
        raise ValidationError("supplier_name is required")

    items = validate_line_items(payload.get("items"), price_key="unit_cost_cents")

    expected_delivery = None
    if payload.get("expected_delivery"):
        try:
            expected_delivery = date.fromisoformat(str(payload["expected_delivery"]))
        except ValueError:
            raise ValidationError("expected_delivery must be an ISO-8601 date")

    notes = payload.get("notes")

    def _op():
        require_many_in_org(Product, [item["product_id"] for item in items], org_id, "Product")

        po = PurchaseOrder(
            org_id=org_id,
            po_number=next_document_number(org_id=org_id, document_type="purchase_order"),
            supplier_name=supplier_name.strip(),
            status="draft",
            expected_delivery=expected_delivery,
            notes=notes,
            created_by_user_id=user_id,
        )
        total = 0
        for item in items:
            line_total = item["quantity"] * item["unit_cost_cents"]
            total += line_total
            po.lines.append(PurchaseOrderLine(
                product_id=item["product_id"],
                quantity=item["quantity"],
                unit_cost_cents=item["unit_cost_cents"],
                line_total_cents=line_total,
            ))
        po.total_cents = total
        db.session.add(po)
        db.session.flush()
        return po

    po = run_in_transaction(_op)
    logger.info("Created purchase order %s (%s) in org %s", po.id, po.po_number, org_id)
    return po


def list_purchase_orders(org_id: int, *, status: str | None = None, page=None, limit=None) -> dict:
    query = db.session.query(PurchaseOrder).filter(PurchaseOrder.org_id == org_id)
    if status:
        if status not in PO_STATUSES:
            raise ValidationError(f"status must be one of: {', '.join(PO_STATUSES)}")
        query = query.filter(PurchaseOrder.status == status)
    query = query.order_by(PurchaseOrder.order_date.desc(), PurchaseOrder.id.desc())
    return paginate(query, page, limit, serialize=lambda po: po.to_dict(include_lines=False))


def get_purchase_order(org_id: int, po_id: int) -> PurchaseOrder:
    return require_in_org(PurchaseOrder, po_id, org_id, "Purchase order")


def update_purchase_order_status(
    org_id: int,
    po_id: int,
    status: str,
    *,
    warehouse_id: int | None = None,
    user_id: int | None = None,
) -> PurchaseOrder:
    if status == "received" and warehouse_id is None:
        raise ValidationError("warehouse_id is required to receive a purchase order")

    def _op():
        po = get_purchase_order(org_id, po_id)
        lock_for_update(db.session.query(PurchaseOrder).filter(PurchaseOrder.id == po.id)).one()
        require_transition(PURCHASE_ORDER_TRANSITIONS, po.status, status, label="Purchase order")

        now = utcnow()
        if status == "received":
            warehouse = _resolve_warehouse(org_id, warehouse_id)
            for line in po.lines:
                _record_transaction_inner(
                    org_id=org_id,
                    product=line.product,
                    warehouse=warehouse,
                    tx_type="in",
                    quantity=line.quantity,
                    reference_type="purchase",
                    reference_id=po.po_number,
                    user_id=user_id,
                    notes=f"Received on {po.po_number} from {po.supplier_name}",
                )
            po.received_warehouse_id = warehouse.id
            po.received_at = now
        elif status == "cancelled":
            po.cancelled_at = now

        po.status = status
        db.session.flush()
        return po

    po = run_in_transaction(_op)
    logger.info("Purchase order %s moved to %s", po.po_number, status)
    return po
