"""Tests for BrickInventory."""

from decimal import Decimal

import pytest

from brickco.errors import BrickNotFoundError, StockValidationError, ValidationError
from brickco.models import StockMovement

from .conftest import stock_of


class TestCreateBrick:
    def test_create_ledgers_initial_stock(self, inventory, red_brick):
        entries = inventory.ledger.entries()

        assert len(entries) == 1
        assert entries[0].brick_id == red_brick.id
        assert entries[0].type is StockMovement.CREDIT
        assert entries[0].quantity == 100
        assert entries[0].source == "initial_stock"

    def test_create_without_stock_has_no_entry(self, inventory):
        inventory.create_brick({"name": "Empty", "price": 1})
        assert inventory.ledger.entries() == []

    def test_keeps_unknown_attributes(self, inventory):
        brick = inventory.create_brick({"name": "Blue", "price": 1, "color": "blue"})
        assert inventory.get_brick(brick.id).extra == {"color": "blue"}

    @pytest.mark.parametrize("data", [
        {"price": 1},
        {"name": "X", "stock": -1},
        {"name": "X", "stock": 2.5},
        {"name": "X", "price": "cheap"},
        {"name": "X", "price": "NaN"},
        {"name": "X", "price": "Infinity"},
        {"name": "X", "price": "-Infinity"},
    ])
    def test_invalid_data(self, inventory, data):
        with pytest.raises(ValidationError):
            inventory.create_brick(data)


class TestUpdateBrick:
    def test_stock_change_is_ledgered_as_manual_update(self, store, inventory, red_brick):
        inventory.update_brick(red_brick.id, {"stock": 80, "price": 3})

        assert stock_of(store, red_brick.id) == 80
        assert inventory.get_brick(red_brick.id).price == Decimal("3")
        entry = inventory.ledger.entries(source="manual_update")[0]
        assert entry.type is StockMovement.DEBIT
        assert entry.quantity == 20

    def test_same_stock_has_no_entry(self, inventory, red_brick):
        inventory.update_brick(red_brick.id, {"stock": 100, "name": "Renamed"})

        assert inventory.get_brick(red_brick.id).name == "Renamed"
        assert inventory.ledger.entries(source="manual_update") == []

    def test_unknown_brick(self, inventory):
        with pytest.raises(BrickNotFoundError):
            inventory.update_brick("missing", {"stock": 1})


class TestAdjust:
    def test_decrement(self, store, inventory, red_brick):
        inventory.adjust(red_brick.id, -40)
        assert stock_of(store, red_brick.id) == 60

    def test_clamps_at_zero_and_ledgers_applied_delta(self, store, inventory, fire_brick):
        inventory.adjust(fire_brick.id, -25)

        assert stock_of(store, fire_brick.id) == 0
        entry = inventory.ledger.entries(source="bulk_update")[0]
        assert entry.quantity == 10
        assert inventory.ledger.reconcile() == []

    def test_zero_delta_has_no_entry(self, inventory, red_brick):
        inventory.adjust(red_brick.id, 0)
        assert len(inventory.ledger.entries()) == 1

    def test_unknown_brick(self, inventory):
        with pytest.raises(BrickNotFoundError):
            inventory.adjust("missing", 5)


class TestDeleteBrick:
    def test_delete_ledgers_remaining_stock(self, inventory, red_brick):
        inventory.delete_brick(red_brick.id)

        assert inventory.list_bricks() == []
        entry = inventory.ledger.entries(source="brick_deleted")[0]
        assert entry.quantity == 100
        assert inventory.ledger.reconcile() == []

    def test_delete_unknown(self, inventory):
        with pytest.raises(BrickNotFoundError):
            inventory.delete_brick("missing")


class TestStockChecks:
    def test_validate_stock_passes(self, inventory, red_brick, fire_brick):
        inventory.validate_stock([
            {"brickId": red_brick.id, "quantity": 100},
            {"brickId": fire_brick.id, "quantity": 1},
        ])

    def test_validate_stock_lists_every_problem(self, inventory, red_brick, fire_brick):
        with pytest.raises(StockValidationError) as exc_info:
            inventory.validate_stock([
                {"brickId": red_brick.id, "quantity": 5},
                {"brickId": fire_brick.id, "quantity": 11},
                {"brickId": "missing", "quantity": 1},
            ])

        assert exc_info.value.invalid_items == [
            {"brickId": fire_brick.id, "requested": 11, "available": 10},
            {"brickId": "missing", "requested": 1, "available": 0},
        ]

    def test_bulk_update_skips_unknown_bricks(self, store, inventory, red_brick, fire_brick):
        changed = inventory.update_stock([
            {"brickId": red_brick.id, "quantity": -10},
            {"brickId": "missing", "quantity": 5},
            {"brickId": fire_brick.id, "quantity": 5},
        ])

        assert [b.id for b in changed] == [red_brick.id, fire_brick.id]
        assert stock_of(store, red_brick.id) == 90
        assert stock_of(store, fire_brick.id) == 15

    def test_low_stock(self, inventory, red_brick, fire_brick):
        inventory.adjust(fire_brick.id, -6)
        assert [b.id for b in inventory.low_stock_bricks()] == [fire_brick.id]
