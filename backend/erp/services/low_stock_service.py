# Overview: Read-only low-stock analysis and reorder suggestions over stock levels.

"""
Low stock: an active product whose total stock across all warehouses is
at or below its reorder level. Critical: total stock is exactly zero.
A product that was never stocked has a total of zero and is critical.

Suggested reorder quantities come from a ReorderPolicy so the heuristic
can be swapped without touching the query side.
"""

from __future__ import annotations

import logging

from ..extensions import db
from ..models import Product, StockLevel, Warehouse

logger = logging.getLogger(__name__)


class ReorderPolicy:
    """
    Fixed-multiple heuristic: max(multiplier * reorder_level, minimum).

    Not a demand forecast. Subclass and override suggest() for anything
    smarter.
    """

    def __init__(self, multiplier: int = 2, minimum: int = 10):
        self.multiplier = multiplier
        self.minimum = minimum

    def suggest(self, *, reorder_level: int, current_stock: int) -> int:
        return max(self.multiplier * reorder_level, self.minimum)


default_reorder_policy = ReorderPolicy()


def _stock_levels_by_product(org_id: int) -> dict[int, list[dict]]:
    rows = (
        db.session.query(StockLevel, Warehouse.name)
        .join(Warehouse, Warehouse.id == StockLevel.warehouse_id)
        .filter(StockLevel.org_id == org_id)
        .order_by(StockLevel.warehouse_id.asc())
        .all()
    )
    levels: dict[int, list[dict]] = {}
    for level, warehouse_name in rows:
        levels.setdefault(level.product_id, []).append({
            "warehouse_id": level.warehouse_id,
            "warehouse_name": warehouse_name,
            "quantity": level.quantity,
        })
    return levels


def get_low_stock_products(org_id: int) -> list[dict]:
    """Low-stock rows sorted by total stock ascending (most urgent first)."""
    levels = _stock_levels_by_product(org_id)
    products = (
        db.session.query(Product)
        .filter(Product.org_id == org_id, Product.is_active.is_(True))
        .order_by(Product.id.asc())
        .all()
    )

    rows = []
    for product in products:
        stock_levels = levels.get(product.id, [])
        total = sum(level["quantity"] for level in stock_levels)
        if total > product.reorder_level:
            continue
        row = product.to_dict()
        row["total_stock"] = total
        row["stock_levels"] = stock_levels
        row["stock_status"] = "critical" if total == 0 else "low"
        rows.append(row)

    rows.sort(key=lambda r: r["total_stock"])
    return rows


def get_low_stock_stats(org_id: int) -> dict:
    products = get_low_stock_products(org_id)
    critical = [p for p in products if p["total_stock"] == 0]
    low = [p for p in products if 0 < p["total_stock"] <= p["reorder_level"]]
    return {
        "total": len(products),
        "critical": len(critical),
        "low": len(low),
        "products": products,
    }


def get_reorder_suggestions(org_id: int, policy: ReorderPolicy | None = None) -> list[dict]:
    policy = policy or default_reorder_policy
    return [
        {
            "product_id": p["id"],
            "product_name": p["name"],
            "sku": p["sku"],
            "current_stock": p["total_stock"],
            "reorder_level": p["reorder_level"],
            "suggested_quantity": policy.suggest(
                reorder_level=p["reorder_level"],
                current_stock=p["total_stock"],
            ),
            "stock_levels": p["stock_levels"],
        }
        for p in get_low_stock_products(org_id)
    ]


def check_and_notify(org_id: int) -> dict:
    """
    Emit one low-stock alert per product. Alerts go to the log; there is
    no outbound notification channel.
    """
    notifications = []
    for p in get_low_stock_products(org_id):
        message = (
            f"Low stock: {p['name']} ({p['sku']}) has {p['total_stock']} "
            f"units, reorder level {p['reorder_level']}"
        )
        logger.warning("org=%s %s", org_id, message)
        notifications.append({
            "type": "low_stock",
            "product_id": p["id"],
            "product_name": p["name"],
            "current_stock": p["total_stock"],
            "reorder_level": p["reorder_level"],
            "message": message,
        })
    return {"count": len(notifications), "notifications": notifications}
