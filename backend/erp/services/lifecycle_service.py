# Overview: Status state machines for orders, purchase orders, invoices and employees.

"""
Document lifecycles.

Each document type has an explicit table of allowed transitions. Anything
not in the table is rejected with LifecycleError (a 409 conflict: the
request is well-formed, the document is just in the wrong state).

SALES ORDER:
    draft -> confirmed -> shipped -> delivered -> completed
    draft | confirmed -> cancelled

PURCHASE ORDER:
    draft -> ordered -> received
    draft | ordered -> cancelled

INVOICE:
    draft -> sent -> paid
    draft | sent -> void

EMPLOYEE:
    active <-> inactive, active | inactive -> terminated
"""

from __future__ import annotations

from ..errors import ConflictError, ValidationError

SALES_ORDER_TRANSITIONS = {
    "draft": {"confirmed", "cancelled"},
    "confirmed": {"shipped", "cancelled"},
    "shipped": {"delivered"},
    "delivered": {"completed"},
    "completed": set(),
    "cancelled": set(),
}

PURCHASE_ORDER_TRANSITIONS = {
    "draft": {"ordered", "cancelled"},
    "ordered": {"received", "cancelled"},
    "received": set(),
    "cancelled": set(),
}

INVOICE_TRANSITIONS = {
    "draft": {"sent", "void"},
    "sent": {"paid", "void"},
    "paid": set(),
    "void": set(),
}

EMPLOYEE_TRANSITIONS = {
    "active": {"inactive", "terminated"},
    "inactive": {"active", "terminated"},
    "terminated": set(),
}


class LifecycleError(ConflictError):
    """An operation the document's current status does not allow."""


def require_transition(table: dict, current: str, target: str, *, label: str = "Document") -> None:
    if target not in table:
        raise ValidationError(
            f"Invalid status '{target}'. Must be one of: {', '.join(sorted(table))}"
        )
    if target not in table.get(current, set()):
        raise LifecycleError(f"{label} cannot move from {current} to {target}")

