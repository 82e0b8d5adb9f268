# Overview: Sales orders: creation with computed totals, status lifecycle, shipping to the ledger.

"""
Sales Orders

Totals (integer cents, computed once at creation):
    line base      = quantity * unit_price_cents
    line taxable   = base - discount_cents          (discount may not exceed base)
    line tax       = taxable * tax_rate_bps / 10000 (half-up)
    line total     = taxable + tax
    order subtotal = sum(base)
    order total    = subtotal - sum(discount) + sum(tax) + shipping_cents

Shipping (confirmed -> shipped) posts one out/sale ledger entry per line at
the chosen warehouse. All entries and the status change commit together;
if any line lacks stock, nothing ships.
"""

from __future__ import annotations

import logging

from ..errors import ValidationError
from ..extensions import db
from ..models import Customer, Product, SalesOrder, SalesOrderLine
from ..time_utils import parse_iso_datetime, utcnow
from ..validation import MAX_PRICE_CENTS, coerce_int, validate_address, validate_line_items
from .concurrency import lock_for_update, run_in_transaction
from .document_service import next_document_number
from .inventory_service import _record_transaction_inner, _resolve_warehouse
from .lifecycle_service import SALES_ORDER_TRANSITIONS, require_transition
from .pagination import paginate
from .tenant_service import require_in_org, require_many_in_org

logger = logging.getLogger(__name__)

ORDER_STATUSES = tuple(SALES_ORDER_TRANSITIONS)
PAYMENT_STATUSES = ("pending", "partial", "paid")


def _tax_cents(taxable: int, tax_rate_bps: int) -> int:
    return (taxable * tax_rate_bps + 5000) // 10000


def compute_line(item: dict) -> dict:
    base = item["quantity"] * item["unit_price_cents"]
    discount = item["discount_cents"]
    if discount > base:
        raise ValidationError("Line discount cannot exceed the line amount")
    taxable = base - discount
    tax = _tax_cents(taxable, item["tax_rate_bps"])
    return {**item, "base_cents": base, "tax_cents": tax, "line_total_cents": taxable + tax}


def compute_totals(lines: list[dict], shipping_cents: int = 0) -> dict:
    subtotal = sum(line["base_cents"] for line in lines)
    discount = sum(line["discount_cents"] for line in lines)
    tax = sum(line["tax_cents"] for line in lines)
    return {
        "subtotal_cents": subtotal,
        "discount_cents": discount,
        "tax_cents": tax,
        "shipping_cents": shipping_cents,
        "total_cents": subtotal - discount + tax + shipping_cents,
    }


def create_sales_order(org_id: int, payload: dict, *, user_id: int | None = None) -> SalesOrder:
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    items = validate_line_items(payload.get("items"), price_key="unit_price_cents")
    lines = [compute_line(item) for item in items]

    shipping = coerce_int("shipping_cents", payload.get("shipping_cents") or 0)
    if shipping < 0 or shipping > MAX_PRICE_CENTS:
        raise ValidationError("shipping_cents must be between 0 and 999999999")

    order_date = None
    if payload.get("order_date"):
        try:
            order_date = parse_iso_datetime(payload["order_date"])
        except (TypeError, ValueError):
            raise ValidationError("order_date must be an ISO-8601 datetime")

    shipping_address = None
    if payload.get("shipping_address") is not None:
        shipping_address = validate_address(payload["shipping_address"], key="shipping_address")

    payment_status = payload.get("payment_status", "pending")
    if payment_status not in PAYMENT_STATUSES:
        raise ValidationError(f"payment_status must be one of: {', '.join(PAYMENT_STATUSES)}")

    notes = payload.get("notes")
    customer_id = payload.get("customer_id")
    if customer_id is None:
        raise ValidationError("customer_id is required")

    def _op():
        customer = require_in_org(Customer, customer_id, org_id, "Customer")
        if not customer.is_active:
            raise ValidationError("Customer is inactive")
        require_many_in_org(Product, [line["product_id"] for line in lines], org_id, "Product")

        order = SalesOrder(
            org_id=org_id,
            customer_id=customer.id,
            order_number=next_document_number(org_id=org_id, document_type="sales_order"),
            order_date=order_date or utcnow(),
            status="draft",
            payment_status=payment_status,
            shipping_address=shipping_address,
            notes=notes,
            created_by_user_id=user_id,
            **compute_totals(lines, shipping),
        )
        for line in lines:
            order.lines.append(SalesOrderLine(
                product_id=line["product_id"],
                quantity=line["quantity"],
                unit_price_cents=line["unit_price_cents"],
                discount_cents=line["discount_cents"],
                tax_rate_bps=line["tax_rate_bps"],
                tax_cents=line["tax_cents"],
                line_total_cents=line["line_total_cents"],
            ))
        db.session.add(order)
        db.session.flush()
        return order

    order = run_in_transaction(_op)
    logger.info("Created sales order %s (%s) in org %s", order.id, order.order_number, org_id)
    return order


def list_sales_orders(
    org_id: int,
    *,
    status: str | None = None,
    customer_id: int | None = None,
    page=None,
    limit=None,
) -> dict:
    query = db.session.query(SalesOrder).filter(SalesOrder.org_id == org_id)
    if status:
        if status not in ORDER_STATUSES:
            raise ValidationError(f"status must be one of: {', '.join(ORDER_STATUSES)}")
        query = query.filter(SalesOrder.status == status)
    if customer_id is not None:
        query = query.filter(SalesOrder.customer_id == customer_id)
    query = query.order_by(SalesOrder.order_date.desc(), SalesOrder.id.desc())
    return paginate(query, page, limit, serialize=lambda o: o.to_dict(include_lines=False))


def get_sales_order(org_id: int, order_id: int) -> SalesOrder:
    return require_in_org(SalesOrder, order_id, org_id, "Sales order")


def update_order_status(
    org_id: int,
    order_id: int,
    status: str,
    *,
    warehouse_id: int | None = None,
    user_id: int | None = None,
) -> SalesOrder:
    """
    Move an order along its lifecycle. Shipping requires warehouse_id and
    posts the stock movements in the same transaction.
    """
    if status == "shipped" and warehouse_id is None:
        raise ValidationError("warehouse_id is required to ship an order")

    def _op():
        order = get_sales_order(org_id, order_id)
        lock_for_update(db.session.query(SalesOrder).filter(SalesOrder.id == order.id)).one()
        require_transition(SALES_ORDER_TRANSITIONS, order.status, status, label="Sales order")

        now = utcnow()
        if status == "shipped":
            warehouse = _resolve_warehouse(org_id, warehouse_id)
            for line in order.lines:
                _record_transaction_inner(
                    org_id=org_id,
                    product=line.product,
                    warehouse=warehouse,
                    tx_type="out",
                    quantity=line.quantity,
                    reference_type="sale",
                    reference_id=order.order_number,
                    user_id=user_id,
                    notes=f"Shipped on order {order.order_number}",
                )
            order.shipped_from_warehouse_id = warehouse.id
            order.shipped_at = now
        elif status == "cancelled":
            order.cancelled_at = now

        order.status = status
        db.session.flush()
        return order

    order = run_in_transaction(_op)
    logger.info("Sales order %s moved to %s", order.order_number, status)
    return order


def update_payment_status(org_id: int, order_id: int, payment_status: str) -> SalesOrder:
    if payment_status not in PAYMENT_STATUSES:
        raise ValidationError(f"payment_status must be one of: {', '.join(PAYMENT_STATUSES)}")
    order = get_sales_order(org_id, order_id)
    if order.status == "cancelled":
        raise ValidationError("Cannot change payment status of a cancelled order")
    order.payment_status = payment_status
    db.session.commit()
    return order
