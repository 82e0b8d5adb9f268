# Overview: Invoices: creation (standalone or from a sales order), draft edits, lifecycle.

from __future__ import annotations

import logging
from datetime import date, timedelta

from ..errors import ValidationError
from ..extensions import db
from ..models import Customer, Invoice, SalesOrder
from ..time_utils import utcnow
from ..validation import ModelValidationPolicy, validate_payload
from .concurrency import run_in_transaction
from .document_service import next_document_number
from .lifecycle_service import INVOICE_TRANSITIONS, LifecycleError, require_transition
from .pagination import paginate
from .tenant_service import require_in_org

logger = logging.getLogger(__name__)

INVOICE_STATUSES = tuple(INVOICE_TRANSITIONS)

# Fields editable while the invoice is a draft
INVOICE_POLICY = ModelValidationPolicy(
    writable_fields={"amount_cents", "tax_cents", "issue_date", "due_date", "notes"},
)


def _check_amounts(amount: int, tax: int) -> None:
    if amount < 0 or tax < 0:
        raise ValidationError("amount_cents and tax_cents must be >= 0")


def create_invoice(org_id: int, payload: dict, *, user_id: int | None = None) -> Invoice:
    """
    With sales_order_id: customer and amounts are taken from the order.
    Without: customer_id and amount_cents are required, tax_cents optional.
    due_date defaults to issue_date + the customer's payment terms.
    """
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    payload = dict(payload)
    sales_order_id = payload.pop("sales_order_id", None)
    customer_id = payload.pop("customer_id", None)
    patch = validate_payload(model=Invoice, payload=payload, policy=INVOICE_POLICY, partial=True)

    def _op():
        order = None
        if sales_order_id is not None:
            order = require_in_org(SalesOrder, sales_order_id, org_id, "Sales order")
            if order.status in ("draft", "cancelled"):
                raise ValidationError(f"Cannot invoice a {order.status} order")
            customer = order.customer
            amount = order.subtotal_cents - order.discount_cents + order.shipping_cents
            tax = order.tax_cents
        else:
            if customer_id is None:
                raise ValidationError("customer_id or sales_order_id is required")
            if "amount_cents" not in patch:
                raise ValidationError("amount_cents is required")
            customer = require_in_org(Customer, customer_id, org_id, "Customer")
            amount = patch["amount_cents"]
            tax = patch.get("tax_cents") or 0
        _check_amounts(amount, tax)

        issue_date = patch.get("issue_date") or utcnow().date()
        due_date = patch.get("due_date") or issue_date + timedelta(days=customer.payment_terms_days)
        if due_date < issue_date:
            raise ValidationError("due_date cannot be before issue_date")

        invoice = Invoice(
            org_id=org_id,
            invoice_number=next_document_number(org_id=org_id, document_type="invoice"),
            customer_id=customer.id,
            sales_order_id=order.id if order is not None else None,
            amount_cents=amount,
            tax_cents=tax,
            total_cents=amount + tax,
            status="draft",
            issue_date=issue_date,
            due_date=due_date,
            notes=patch.get("notes"),
            created_by_user_id=user_id,
        )
        db.session.add(invoice)
        db.session.flush()
        return invoice

    invoice = run_in_transaction(_op)
    logger.info("Created invoice %s (%s) in org %s", invoice.id, invoice.invoice_number, org_id)
    return invoice


def list_invoices(
    org_id: int,
    *,
    status: str | None = None,
    customer_id: int | None = None,
    page=None,
    limit=None,
) -> dict:
    query = db.session.query(Invoice).filter(Invoice.org_id == org_id)
    if status:
        if status not in INVOICE_STATUSES:
            raise ValidationError(f"status must be one of: {', '.join(INVOICE_STATUSES)}")
        query = query.filter(Invoice.status == status)
    if customer_id is not None:
        query = query.filter(Invoice.customer_id == customer_id)
    query = query.order_by(Invoice.issue_date.desc(), Invoice.id.desc())
    return paginate(query, page, limit)


def get_invoice(org_id: int, invoice_id: int) -> Invoice:
    return require_in_org(Invoice, invoice_id, org_id, "Invoice")


def update_invoice(org_id: int, invoice_id: int, payload: dict) -> Invoice:
    invoice = get_invoice(org_id, invoice_id)
    if invoice.status != "draft":
        raise LifecycleError("Only draft invoices can be edited")

    patch = validate_payload(model=Invoice, payload=payload, policy=INVOICE_POLICY, partial=True)
    for k in ("amount_cents", "tax_cents", "issue_date", "due_date"):
        if k in patch and patch[k] is None:
            raise ValidationError(f"{k} cannot be null")

    amount = patch.get("amount_cents", invoice.amount_cents)
    tax = patch.get("tax_cents", invoice.tax_cents)
    _check_amounts(amount, tax)
    if patch.get("due_date", invoice.due_date) < patch.get("issue_date", invoice.issue_date):
        raise ValidationError("due_date cannot be before issue_date")

    for k, v in patch.items():
        setattr(invoice, k, v)
    invoice.total_cents = amount + tax
    db.session.commit()
    return invoice


def update_invoice_status(org_id: int, invoice_id: int, status: str) -> Invoice:
    invoice = get_invoice(org_id, invoice_id)
    require_transition(INVOICE_TRANSITIONS, invoice.status, status, label="Invoice")

    now = utcnow()
    if status == "sent":
        invoice.sent_at = now
    elif status == "paid":
        invoice.paid_at = now
    elif status == "void":
        invoice.voided_at = now
    invoice.status = status
    db.session.commit()
    return invoice


def delete_invoice(org_id: int, invoice_id: int) -> None:
    """Only drafts can be deleted; anything issued must be voided instead."""
    invoice = get_invoice(org_id, invoice_id)
    if invoice.status != "draft":
        raise LifecycleError("Only draft invoices can be deleted; void it instead")
    db.session.delete(invoice)
    db.session.commit()


def overdue_invoices(org_id: int, as_of: date | None = None) -> list[Invoice]:
    as_of = as_of or utcnow().date()
    return (
        db.session.query(Invoice)
        .filter(Invoice.org_id == org_id, Invoice.status == "sent", Invoice.due_date < as_of)
        .order_by(Invoice.due_date.asc())
        .all()
    )
