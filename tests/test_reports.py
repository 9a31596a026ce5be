"""Tests for dashboard metrics and reports."""

import csv
import io
from datetime import datetime, timezone

import pytest

from brickco.errors import ReportNotFoundError
from brickco.orders import OrderBook
from brickco.reports import Reports, to_csv
from brickco.spends import SpendLog


@pytest.fixture
def history(store, customer, red_brick, fire_brick):
    """Orders spread over early 2024: two done, one pending, one cancelled."""
    book = OrderBook(store)
    placed = [
        (red_brick.id, 10, "done", "2024-01-15T09:00:00Z"),    # 25.00
        (fire_brick.id, 2, "done", "2024-03-02T09:00:00Z"),    # 8.00
        (red_brick.id, 4, "pending", "2024-03-20T09:00:00Z"),  # 10.00
        (red_brick.id, 1, "cancelled", "2024-03-21T09:00:00Z"),
    ]
    for brick_id, quantity, status, created_at in placed:
        order = book.create_order(customer.id, brick_id, quantity)
        if status != "pending":
            book.set_status(order.id, status)
        with store.transaction() as db:
            db.find_order(order.id).created_at = created_at

    SpendLog(store).save_spend({"month": 3, "year": 2024, "labour": 5, "clay": 1})
    return store


class TestDashboard:
    def test_counts_only_done_orders(self, history):
        metrics = Reports(history).dashboard(now=datetime(2024, 3, 31, tzinfo=timezone.utc))

        assert metrics["totalOrders"] == 2
        assert metrics["totalRevenue"] == 33
        assert metrics["totalStock"] == 90 + 8
        assert metrics["lowStockCount"] == 0
        assert [o["customer"] for o in metrics["recentOrders"]] == ["Alice Mason", "Alice Mason"]

    def test_six_month_trend_oldest_first(self, history):
        metrics = Reports(history).dashboard(now=datetime(2024, 3, 31, tzinfo=timezone.utc))

        months = [t["month"] for t in metrics["monthlyOrdersTrend"]]
        assert months == ["Oct 23", "Nov 23", "Dec 23", "Jan 24", "Feb 24", "Mar 24"]
        assert [t["orders"] for t in metrics["monthlyOrdersTrend"]] == [0, 0, 0, 1, 0, 1]
        assert metrics["monthlyRevenueTrend"][-1]["revenue"] == 8


class TestReports:
    def test_trends_net_of_spends(self, history):
        trends = Reports(history).trends()

        assert trends["monthlyOrdersTrend"] == [
            {"month": "2024-01", "value": 1},
            {"month": "2024-03", "value": 2},
        ]
        # March: 8 + 10 revenue less 6 spent
        assert trends["monthlyRevenueTrend"][-1] == {"month": "2024-03", "value": 12}

    def test_revenue_rows(self, history):
        rows = Reports(history).rows("revenue")

        march = rows[-1]
        assert march["revenue"] == 18
        assert march["expenses"] == 6
        assert march["averageOrderValue"] == 9

    def test_customer_rows(self, history):
        row = Reports(history).rows("customers")[0]

        assert row["totalOrders"] == 4
        assert row["activeOrders"] == 3
        assert row["totalSpent"] == 43
        assert row["address"] == "N/A"

    def test_orders_csv(self, history):
        text = Reports(history).csv("orders")
        rows = list(csv.DictReader(io.StringIO(text)))

        assert len(rows) == 4
        assert rows[0]["customerName"] == "Alice Mason"
        assert {r["status"] for r in rows} == {"done", "pending", "cancelled"}

    def test_stock_history_csv_header(self, history):
        header = Reports(history).csv("stock-history").splitlines()[0]
        assert header == "id,brickId,brickName,quantity,type,source,timestamp"

    def test_unknown_report(self, store):
        with pytest.raises(ReportNotFoundError):
            Reports(store).rows("profits")
        with pytest.raises(ReportNotFoundError):
            Reports(store).csv("profits")


def test_to_csv_blank_for_missing_fields():
    text = to_csv([{"a": 1}], ["a", "b"])
    assert text == "a,b\n1,\n"
