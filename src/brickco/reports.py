"""Dashboard metrics and exportable reports."""

import csv
import io
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Callable

from .errors import ReportNotFoundError
from .models import Database, Order, OrderStatus, money_to_json, parse_timestamp
from .orders import UNKNOWN_BRICK
from .store import DataStore

RECENT_ORDERS_LIMIT = 5
DASHBOARD_TREND_MONTHS = 6


def _order_date(order: Order) -> datetime | None:
    try:
        return parse_timestamp(order.created_at)
    except ValueError:
        return None


def _placed_in(order: Order, month: date) -> bool:
    d = _order_date(order)
    return d is not None and (d.year, d.month) == (month.year, month.month)


def _month_start(year: int, month: int, months_back: int) -> date:
    index = year * 12 + (month - 1) - months_back
    return date(index // 12, index % 12 + 1, 1)


def to_csv(rows: list[dict[str, Any]], fields: list[str]) -> str:
    """Render rows as CSV with a header line; missing fields are blank."""
    buf = io.StringIO()
    writer = csv.DictWriter(buf, fieldnames=fields, extrasaction="ignore", lineterminator="\n")
    writer.writeheader()
    for row in rows:
        writer.writerow(row)
    return buf.getvalue()


def dashboard_metrics(db: Database, now: datetime | None = None) -> dict[str, Any]:
    """Stock, revenue and six-month trends for the admin dashboard."""
    now = now or datetime.now(timezone.utc)

    completed = [o for o in db.orders if o.status is OrderStatus.DONE]
    recent = sorted(completed, key=lambda o: o.created_at, reverse=True)[:RECENT_ORDERS_LIMIT]

    recent_orders = []
    for order in recent:
        data = order.to_dict()
        customer = db.find_customer(order.customer_id)
        data["customer"] = customer.name if customer else "Unknown Customer"
        recent_orders.append(data)

    trends = []
    for back in range(DASHBOARD_TREND_MONTHS - 1, -1, -1):
        start = _month_start(now.year, now.month, back)
        in_month = [o for o in completed if _placed_in(o, start)]
        trends.append({
            "month": start.strftime("%b %y"),
            "orders": len(in_month),
            "revenue": money_to_json(sum((o.amount for o in in_month), Decimal("0"))),
        })

    return {
        "totalStock": sum(b.stock for b in db.bricks),
        "lowStockCount": sum(1 for b in db.bricks if b.is_low_stock),
        "totalOrders": len(completed),
        "totalRevenue": money_to_json(sum((o.amount for o in completed), Decimal("0"))),
        "recentOrders": recent_orders,
        "monthlyOrdersTrend": [{"month": t["month"], "orders": t["orders"]} for t in trends],
        "monthlyRevenueTrend": [{"month": t["month"], "revenue": t["revenue"]} for t in trends],
    }


def monthly_trends(db: Database) -> list[dict[str, Any]]:
    """
    Revenue, order count and expenses per month that has orders.

    Cancelled orders count toward neither revenue nor order count; expenses
    come from the spend recorded for the same month.
    """
    months: dict[str, dict[str, Any]] = {}
    for order in db.orders:
        d = _order_date(order)
        if d is None:
            continue
        key = f"{d.year}-{d.month:02d}"
        row = months.setdefault(key, {
            "month": key,
            "revenue": Decimal("0"),
            "orderCount": 0,
            "expenses": Decimal("0"),
        })
        if order.status is not OrderStatus.CANCELLED:
            row["revenue"] += order.amount
            row["orderCount"] += 1

    for spend in db.spends:
        row = months.get(spend.month_key)
        if row is not None:
            row["expenses"] = spend.total

    result = []
    for key in sorted(months):
        row = months[key]
        row["netRevenue"] = row["revenue"] - row["expenses"]
        result.append(row)
    return result


def trends_report(db: Database) -> dict[str, Any]:
    trends = monthly_trends(db)
    return {
        "monthlyRevenueTrend": [
            {"month": t["month"], "value": money_to_json(t["netRevenue"])} for t in trends
        ],
        "monthlyOrdersTrend": [
            {"month": t["month"], "value": t["orderCount"]} for t in trends
        ],
    }


def orders_report(db: Database) -> list[dict[str, Any]]:
    rows = []
    for order in db.orders:
        customer = db.find_customer(order.customer_id)
        names = []
        for item in order.items:
            brick = db.find_brick(item.brick_id)
            names.append(brick.name if brick else (item.name or UNKNOWN_BRICK))
        rows.append({
            "orderId": order.id,
            "customerName": customer.name if customer else "Unknown",
            "customerEmail": customer.email if customer else "Unknown",
            "brickName": ", ".join(names),
            "quantity": order.quantity,
            "amount": money_to_json(order.amount),
            "status": order.status.value,
            "createdAt": order.created_at,
        })
    return rows


def customers_report(db: Database) -> list[dict[str, Any]]:
    rows = []
    for customer in db.customers:
        orders = [o for o in db.orders if o.customer_id == customer.id]
        active = [o for o in orders if o.status is not OrderStatus.CANCELLED]
        rows.append({
            "customerId": customer.id,
            "name": customer.name,
            "email": customer.email,
            "phone": customer.phone or "N/A",
            "address": customer.address or "N/A",
            "totalOrders": len(orders),
            "activeOrders": len(active),
            "totalSpent": money_to_json(sum((o.amount for o in active), Decimal("0"))),
        })
    return rows


def revenue_report(db: Database) -> list[dict[str, Any]]:
    rows = []
    for t in monthly_trends(db):
        average = t["revenue"] / t["orderCount"] if t["orderCount"] else Decimal("0")
        rows.append({
            "month": t["month"],
            "revenue": money_to_json(t["revenue"]),
            "expenses": money_to_json(t["expenses"]),
            "netRevenue": money_to_json(t["netRevenue"]),
            "orderCount": t["orderCount"],
            "averageOrderValue": money_to_json(average.quantize(Decimal("0.01"))),
        })
    return rows


def spends_report(db: Database) -> list[dict[str, Any]]:
    return [s.to_dict() for s in db.spends]


def stock_history_report(db: Database) -> list[dict[str, Any]]:
    return [e.to_dict() for e in db.stock_history]


# name -> (builder, CSV columns)
REPORTS: dict[str, tuple[Callable[[Database], list[dict[str, Any]]], list[str]]] = {
    "orders": (
        orders_report,
        ["orderId", "customerName", "customerEmail", "brickName", "quantity", "amount", "status", "createdAt"],
    ),
    "customers": (
        customers_report,
        ["customerId", "name", "email", "phone", "address", "totalOrders", "activeOrders", "totalSpent"],
    ),
    "revenue": (
        revenue_report,
        ["month", "revenue", "expenses", "netRevenue", "orderCount", "averageOrderValue"],
    ),
    "spends": (
        spends_report,
        ["id", "labour", "clay", "coal", "transport", "other", "month", "year", "total", "createdAt"],
    ),
    "stock-history": (
        stock_history_report,
        ["id", "brickId", "brickName", "quantity", "type", "source", "timestamp"],
    ),
}


class Reports:
    """Builds reports from a consistent snapshot of the store."""

    def __init__(self, store: DataStore):
        self.store = store

    def dashboard(self, now: datetime | None = None) -> dict[str, Any]:
        return dashboard_metrics(self.store.read(), now=now)

    def trends(self) -> dict[str, Any]:
        return trends_report(self.store.read())

    def _report(self, name: str) -> tuple[Callable[[Database], list[dict[str, Any]]], list[str]]:
        """
        Raises:
            ReportNotFoundError: If name is not a known report.
        """
        if name not in REPORTS:
            raise ReportNotFoundError(name)
        return REPORTS[name]

    def rows(self, name: str) -> list[dict[str, Any]]:
        builder, _ = self._report(name)
        return builder(self.store.read())

    def csv(self, name: str) -> str:
        builder, fields = self._report(name)
        return to_csv(builder(self.store.read()), fields)
