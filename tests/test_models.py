"""Tests for data models."""

from decimal import Decimal

import pytest

from brickco.errors import InvalidMovementTypeError, InvalidStatusError
from brickco.models import (
    Brick,
    Order,
    OrderItem,
    OrderStatus,
    Spend,
    StockHistoryEntry,
    StockMovement,
    money_to_json,
)


class TestStockMovement:
    @pytest.mark.parametrize("name", ["credit", "add", "added", "ADDED"])
    def test_credit_names(self, name):
        assert StockMovement.parse(name) is StockMovement.CREDIT

    @pytest.mark.parametrize("name", ["debit", "remove", "deducted"])
    def test_debit_names(self, name):
        assert StockMovement.parse(name) is StockMovement.DEBIT

    def test_unknown_name(self):
        with pytest.raises(InvalidMovementTypeError):
            StockMovement.parse("teleported")

    def test_entry_delta_sign(self):
        credit = StockHistoryEntry.create("b1", 5, StockMovement.CREDIT, "manual_update")
        debit = StockHistoryEntry.create("b1", 5, StockMovement.DEBIT, "order")

        assert credit.delta == 5
        assert debit.delta == -5

    def test_legacy_entry_loads_as_canonical(self):
        entry = StockHistoryEntry.from_dict({
            "id": "e1", "brickId": "b1", "quantity": 3,
            "type": "deducted", "source": "order", "timestamp": "2024-01-01T00:00:00Z",
        })

        assert entry.type is StockMovement.DEBIT
        assert entry.to_dict()["type"] == "debit"


class TestOrderStatus:
    def test_parse_known(self):
        assert OrderStatus.parse("processing") is OrderStatus.PROCESSING

    @pytest.mark.parametrize("value", ["shipped", "", None, "DONE"])
    def test_parse_unknown(self, value):
        with pytest.raises(InvalidStatusError):
            OrderStatus.parse(value)


class TestBrick:
    def test_unknown_attributes_round_trip(self):
        brick = Brick.from_dict({
            "id": "b1", "name": "Red", "price": 1.2, "stock": 4,
            "color": "red", "dimensions": {"l": 20},
        })

        data = brick.to_dict()
        assert data["color"] == "red"
        assert data["dimensions"] == {"l": 20}
        assert brick.price == Decimal("1.2")

    def test_low_stock(self):
        brick = Brick.create(name="Red", price=Decimal("1"), stock=4, min_stock_threshold=5)
        assert brick.is_low_stock
        brick.stock = 5
        assert not brick.is_low_stock


class TestOrder:
    def test_amount_is_exact(self):
        order = Order.create(
            customer_id="c1",
            items=[
                OrderItem(brick_id="b1", quantity=3, price=Decimal("0.1")),
                OrderItem(brick_id="b2", quantity=1, price=Decimal("0.2")),
            ],
        )

        assert order.amount == Decimal("0.50")
        assert order.quantity == 4
        assert order.to_dict()["total"] == 0.5

    def test_single_brick_record_loads(self):
        order = Order.from_dict({
            "id": "o1", "customerId": "c1", "brickId": "b1",
            "quantity": 4, "amount": 10, "status": "done",
            "createdAt": "2024-03-01T10:00:00Z",
        })

        assert order.items[0].brick_id == "b1"
        assert order.items[0].price == Decimal("2.5")
        assert order.amount == Decimal("10")
        # A done single-brick order already had its stock deducted
        assert order.stock_committed is True
        assert order.to_dict()["brickId"] == "b1"

    def test_pending_single_brick_record_not_committed(self):
        order = Order.from_dict({
            "id": "o1", "customerId": "c1", "brickId": "b1",
            "quantity": 4, "amount": 10, "status": "pending",
        })
        assert order.stock_committed is False

    def test_checkout_record_defaults_to_committed(self):
        order = Order.from_dict({
            "id": "o1", "customerId": "u1", "status": "pending",
            "items": [{"brickId": "b1", "quantity": 2, "price": 3}],
        })
        assert order.stock_committed is True
        assert order.amount == Decimal("6")


class TestMoney:
    def test_whole_amounts_are_ints(self):
        assert money_to_json(Decimal("12.00")) == 12
        assert isinstance(money_to_json(Decimal("12.00")), int)

    def test_fractional_amounts_are_floats(self):
        assert money_to_json(Decimal("12.50")) == 12.5

    def test_spend_total(self):
        spend = Spend.from_dict({
            "id": "s1", "month": 3, "year": 2024,
            "labour": 100, "clay": 50.5, "coal": 0, "transport": 10,
        })
        assert spend.total == Decimal("160.5")
        assert spend.month_key == "2024-03"
