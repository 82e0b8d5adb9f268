from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow


class PurchaseOrder(db.Model):
    """
    Order placed with a supplier.

    LIFECYCLE: draft -> ordered -> received, draft/ordered -> cancelled.
    Receiving posts in/purchase entries to the ledger at one warehouse.
    """
    __tablename__ = "purchase_orders"
    __table_args__ = (
        db.UniqueConstraint("org_id", "po_number", name="uq_purchase_orders_org_number"),
        db.Index("ix_purchase_orders_org_status", "org_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    org_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=False, index=True)
    po_number = db.Column(db.String(32), nullable=False)

    supplier_name = db.Column(db.String(255), nullable=False)
    status = db.Column(db.String(16), nullable=False, default="draft")

    order_date = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    expected_delivery = db.Column(db.Date, nullable=True)
    total_cents = db.Column(db.Integer, nullable=False, default=0)
    notes = db.Column(db.Text, nullable=True)

    received_at = db.Column(db.DateTime(timezone=True), nullable=True)
    received_warehouse_id = db.Column(db.Integer, db.ForeignKey("warehouses.id"), nullable=True)
    cancelled_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    lines = db.relationship(
        "PurchaseOrderLine",
        backref="purchase_order",
        lazy=True,
        order_by="PurchaseOrderLine.id",
        cascade="all, delete-orphan",
    )

    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self, include_lines: bool = True) -> dict:
        data = {
            "id": self.id,
            "org_id": self.org_id,
            "po_number": self.po_number,
            "supplier_name": self.supplier_name,
            "status": self.status,
            "order_date": to_utc_z(self.order_date),
            "expected_delivery": self.expected_delivery.isoformat() if self.expected_delivery else None,
            "total_cents": self.total_cents,
            "notes": self.notes,
            "received_at": to_utc_z(self.received_at) if self.received_at else None,
            "received_warehouse_id": self.received_warehouse_id,
            "cancelled_at": to_utc_z(self.cancelled_at) if self.cancelled_at else None,
            "created_by_user_id": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
            "version_id": self.version_id,
        }
        if include_lines:
            data["items"] = [line.to_dict() for line in self.lines]
        return data


class PurchaseOrderLine(db.Model):
    __tablename__ = "purchase_order_lines"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    purchase_order_id = db.Column(db.Integer, db.ForeignKey("purchase_orders.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    unit_cost_cents = db.Column(db.Integer, nullable=False)
    line_total_cents = db.Column(db.Integer, nullable=False)

    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "purchase_order_id": self.purchase_order_id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "quantity": self.quantity,
            "unit_cost_cents": self.unit_cost_cents,
            "line_total_cents": self.line_total_cents,
        }
