# Overview: Dashboard KPIs, revenue chart, sales-by-status and recent activity.

from __future__ import annotations

from datetime import datetime

from sqlalchemy import func

from ..extensions import db
from ..models import Customer, Product, SalesOrder, SalesOrderLine
from ..time_utils import month_start, to_utc_z, utcnow

# Orders that count as realised revenue
REVENUE_STATUSES = ("completed", "delivered")

MONTH_NAMES = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")

STATUS_LABELS = {
    "draft": "Draft",
    "confirmed": "Confirmed",
    "shipped": "Shipped",
    "delivered": "Delivered",
    "completed": "Completed",
    "cancelled": "Cancelled",
}


def _change_pct(current: int, previous: int) -> float:
    if previous <= 0:
        return 0.0
    return round((current - previous) / previous * 100, 2)


def _revenue(org_id: int, start: datetime, end: datetime | None) -> int:
    query = db.session.query(func.coalesce(func.sum(SalesOrder.total_cents), 0)).filter(
        SalesOrder.org_id == org_id,
        SalesOrder.status.in_(REVENUE_STATUSES),
        SalesOrder.order_date >= start,
    )
    if end is not None:
        query = query.filter(SalesOrder.order_date < end)
    return int(query.scalar() or 0)


def _cost_of_goods(org_id: int, start: datetime, end: datetime | None) -> int:
    query = (
        db.session.query(
            func.coalesce(func.sum(SalesOrderLine.quantity * Product.cost_price_cents), 0)
        )
        .join(SalesOrder, SalesOrder.id == SalesOrderLine.order_id)
        .join(Product, Product.id == SalesOrderLine.product_id)
        .filter(
            SalesOrder.org_id == org_id,
            SalesOrder.status.in_(REVENUE_STATUSES),
            SalesOrder.order_date >= start,
        )
    )
    if end is not None:
        query = query.filter(SalesOrder.order_date < end)
    return int(query.scalar() or 0)


def _sales_count(org_id: int, start: datetime, end: datetime | None) -> int:
    query = db.session.query(func.count(SalesOrder.id)).filter(
        SalesOrder.org_id == org_id,
        SalesOrder.status != "cancelled",
        SalesOrder.order_date >= start,
    )
    if end is not None:
        query = query.filter(SalesOrder.order_date < end)
    return int(query.scalar() or 0)


def _new_customers(org_id: int, start: datetime, end: datetime | None) -> int:
    query = db.session.query(func.count(Customer.id)).filter(
        Customer.org_id == org_id,
        Customer.created_at >= start,
    )
    if end is not None:
        query = query.filter(Customer.created_at < end)
    return int(query.scalar() or 0)


def get_metrics(org_id: int, *, now: datetime | None = None) -> dict:
    """
    Month-to-date KPIs against the whole previous month.

    change is a percentage; 0 when the previous month had nothing.
    """
    now = now or utcnow()
    this_month = month_start(now)
    last_month = month_start(now, 1)

    metrics = {}
    for key, fn in (
        ("revenue", _revenue),
        ("expenses", _cost_of_goods),
        ("sales", _sales_count),
        ("customers", _new_customers),
    ):
        current = fn(org_id, this_month, None)
        previous = fn(org_id, last_month, this_month)
        metrics[key] = {"total": current, "change": _change_pct(current, previous)}
    return metrics


def get_revenue_data(org_id: int, *, now: datetime | None = None) -> list[dict]:
    """Realised revenue per month for the current and five previous months (months with none omitted)."""
    now = now or utcnow()
    start = month_start(now, 5)

    rows = (
        db.session.query(SalesOrder.order_date, SalesOrder.total_cents)
        .filter(
            SalesOrder.org_id == org_id,
            SalesOrder.status.in_(REVENUE_STATUSES),
            SalesOrder.order_date >= start,
        )
        .all()
    )

    buckets: dict[tuple[int, int], int] = {}
    for order_date, total in rows:
        key = (order_date.year, order_date.month)
        buckets[key] = buckets.get(key, 0) + int(total or 0)

    return [
        {"month": MONTH_NAMES[month - 1], "revenue": buckets[(year, month)]}
        for year, month in sorted(buckets)
    ]


def get_sales_overview(org_id: int, *, now: datetime | None = None) -> list[dict]:
    now = now or utcnow()
    rows = (
        db.session.query(SalesOrder.status, func.count(SalesOrder.id))
        .filter(SalesOrder.org_id == org_id, SalesOrder.order_date >= month_start(now))
        .group_by(SalesOrder.status)
        .order_by(SalesOrder.status.asc())
        .all()
    )
    return [{"name": STATUS_LABELS.get(status, status), "value": int(count)} for status, count in rows]


def get_recent_activity(org_id: int, limit: int = 10) -> list[dict]:
    orders = (
        db.session.query(SalesOrder)
        .filter(SalesOrder.org_id == org_id)
        .order_by(SalesOrder.created_at.desc(), SalesOrder.id.desc())
        .limit(limit)
        .all()
    )
    return [
        {
            "id": order.id,
            "type": "sale",
            "description": f"New order {order.order_number} from "
                           f"{order.customer.name if order.customer else 'Unknown'}",
            "amount_cents": order.total_cents,
            "timestamp": to_utc_z(order.created_at),
        }
        for order in orders
    ]
