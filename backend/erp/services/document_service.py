# Overview: Sequential, per-organization document numbers.

from __future__ import annotations

from sqlalchemy import update

from ..extensions import db
from ..models import DocumentSequence

PREFIXES = {
    "sales_order": "SO",
    "purchase_order": "PO",
    "invoice": "INV",
    "employee": "EMP",
}


def next_document_number(*, org_id: int, document_type: str, pad: int = 5) -> str:
    """
    Allocate the next number for (org, document_type) inside the caller's
    transaction.

    The counter row is bumped with a single UPDATE, which takes a row lock
    until the caller commits. Two callers racing to create the first row
    collide on the unique constraint; run_in_transaction retries that.
    """
    prefix = PREFIXES[document_type]

    stmt = (
        update(DocumentSequence)
        .where(
            DocumentSequence.org_id == org_id,
            DocumentSequence.document_type == document_type,
        )
        .values(next_number=DocumentSequence.next_number + 1)
    )

    result = db.session.execute(stmt)
    if result.rowcount:
        current = (
            db.session.query(DocumentSequence.next_number)
            .filter_by(org_id=org_id, document_type=document_type)
            .scalar()
        )
        next_num = current - 1
    else:
        db.session.add(DocumentSequence(org_id=org_id, document_type=document_type, next_number=2))
        db.session.flush()
        next_num = 1

    return f"{prefix}-{next_num:0{pad}d}"
