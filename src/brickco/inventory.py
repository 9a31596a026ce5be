"""Brick catalog and on-hand stock."""

import logging
from decimal import Decimal, InvalidOperation
from typing import Any

from .errors import BrickNotFoundError, StockValidationError, ValidationError
from .ledger import (
    SOURCE_BRICK_DELETED,
    SOURCE_BULK_UPDATE,
    SOURCE_INITIAL_STOCK,
    SOURCE_MANUAL_UPDATE,
    StockLedger,
)
from .models import Brick, StockMovement, _utc_now, parse_count, to_decimal
from .store import DataStore

logger = logging.getLogger(__name__)


def _parse_price(value: Any) -> Decimal:
    try:
        price = to_decimal(value)
    except (InvalidOperation, ValueError):
        raise ValidationError(f"Invalid price: {value}")
    if not price.is_finite():
        raise ValidationError(f"Invalid price: {value}")
    if price < 0:
        raise ValidationError("Price must not be negative")
    return price


class BrickInventory:
    """Manages bricks and every change to their stock."""

    def __init__(self, store: DataStore):
        self.store = store
        self.ledger = StockLedger(store)

    def list_bricks(self) -> list[Brick]:
        return list(self.store.read().bricks)

    def low_stock_bricks(self) -> list[Brick]:
        """Bricks whose stock is below their advisory threshold."""
        return [b for b in self.list_bricks() if b.is_low_stock]

    def get_brick(self, brick_id: str) -> Brick:
        """
        Raises:
            BrickNotFoundError: If brick doesn't exist.
        """
        brick = self.store.read().find_brick(brick_id)
        if brick is None:
            raise BrickNotFoundError(brick_id)
        return brick

    def create_brick(self, data: dict[str, Any]) -> Brick:
        """
        Add a brick to the catalog and ledger its initial stock.

        Unknown attributes in data are kept on the brick as-is.
        """
        name = data.get("name")
        if not name or not isinstance(name, str):
            raise ValidationError("Brick name is required")

        stock = parse_count(data.get("stock", 0), "stock")
        if stock < 0:
            raise ValidationError("Stock must not be negative")

        extra = {k: v for k, v in data.items() if k not in Brick.KNOWN_KEYS}
        brick = Brick.create(
            name=name,
            price=_parse_price(data.get("price", 0)),
            stock=stock,
            min_stock_threshold=parse_count(data.get("minStockThreshold", 0), "minStockThreshold"),
            category=data.get("category"),
            extra=extra,
        )

        with self.store.transaction() as db:
            db.bricks.append(brick)
            if brick.stock > 0:
                self.ledger.record(
                    brick.id, brick.stock, StockMovement.CREDIT,
                    SOURCE_INITIAL_STOCK, brick_name=brick.name,
                )

        logger.info("Created brick %s (%s) with stock %d", brick.id, brick.name, brick.stock)
        return brick

    def update_brick(self, brick_id: str, changes: dict[str, Any]) -> Brick:
        """
        Merge changes into a brick.

        A change of stock is an absolute set: the observed delta is ledgered
        as a manual update.
        """
        with self.store.transaction() as db:
            brick = db.find_brick(brick_id)
            if brick is None:
                raise BrickNotFoundError(brick_id)

            new_stock = None
            if "stock" in changes and changes["stock"] is not None:
                new_stock = parse_count(changes["stock"], "stock")
                if new_stock < 0:
                    raise ValidationError("Stock must not be negative")
            if "price" in changes and changes["price"] is not None:
                brick.price = _parse_price(changes["price"])
            if "minStockThreshold" in changes and changes["minStockThreshold"] is not None:
                brick.min_stock_threshold = parse_count(
                    changes["minStockThreshold"], "minStockThreshold"
                )
            if changes.get("name"):
                brick.name = changes["name"]
            if "category" in changes:
                brick.category = changes["category"]
            for key, value in changes.items():
                if key not in Brick.KNOWN_KEYS:
                    brick.extra[key] = value

            brick.updated_at = _utc_now()
            if new_stock is not None:
                self.set_absolute(brick_id, new_stock)

        return brick

    def set_absolute(self, brick_id: str, new_stock: int, source: str = SOURCE_MANUAL_UPDATE) -> Brick:
        """Set stock to new_stock and ledger the difference, if any."""
        with self.store.transaction() as db:
            brick = db.find_brick(brick_id)
            if brick is None:
                raise BrickNotFoundError(brick_id)
            delta = new_stock - brick.stock
            if delta == 0:
                return brick
            brick.stock = new_stock
            brick.updated_at = _utc_now()
            self.ledger.record(
                brick.id,
                abs(delta),
                StockMovement.CREDIT if delta > 0 else StockMovement.DEBIT,
                source,
                brick_name=brick.name,
            )
        return brick

    def delete_brick(self, brick_id: str) -> Brick:
        """Remove a brick, ledgering the stock that leaves with it."""
        with self.store.transaction() as db:
            brick = db.find_brick(brick_id)
            if brick is None:
                raise BrickNotFoundError(brick_id)
            db.bricks.remove(brick)
            if brick.stock > 0:
                self.ledger.record(
                    brick.id, brick.stock, StockMovement.DEBIT,
                    SOURCE_BRICK_DELETED, brick_name=brick.name,
                )
        logger.info("Deleted brick %s (%s)", brick.id, brick.name)
        return brick

    def adjust(self, brick_id: str, delta: int, source: str = SOURCE_BULK_UPDATE) -> Brick:
        """
        Apply a signed stock delta, clamping at zero.

        The ledger gets the delta that was actually applied, so an
        over-decrement never shows up as drift.

        Raises:
            BrickNotFoundError: If brick doesn't exist.
        """
        with self.store.transaction() as db:
            brick = db.find_brick(brick_id)
            if brick is None:
                raise BrickNotFoundError(brick_id)
            new_stock = max(0, brick.stock + delta)
            applied = new_stock - brick.stock
            brick.stock = new_stock
            brick.updated_at = _utc_now()
            if applied:
                self.ledger.record(
                    brick.id,
                    abs(applied),
                    StockMovement.CREDIT if applied > 0 else StockMovement.DEBIT,
                    source,
                    brick_name=brick.name,
                )
        return brick

    def find_unavailable(self, items: list[dict[str, Any]]) -> list[dict[str, Any]]:
        """Items whose brick is missing or has less stock than requested."""
        db = self.store.read()
        invalid_items = []
        for item in items:
            brick = db.find_brick(item.get("brickId"))
            quantity = item.get("quantity", 0)
            if brick is None or brick.stock < quantity:
                invalid_items.append({
                    "brickId": item.get("brickId"),
                    "requested": quantity,
                    "available": brick.stock if brick else 0,
                })
        return invalid_items

    def validate_stock(self, items: list[dict[str, Any]]) -> None:
        """
        Raises:
            StockValidationError: Listing every item that can't be fulfilled.
        """
        invalid_items = self.find_unavailable(items)
        if invalid_items:
            raise StockValidationError(invalid_items)

    def update_stock(self, updates: list[dict[str, Any]]) -> list[Brick]:
        """
        Apply signed deltas to several bricks in one transaction.

        Updates for unknown bricks are skipped. Returns the bricks changed.
        """
        changed = []
        with self.store.transaction() as db:
            for update in updates:
                brick_id = update.get("brickId")
                if db.find_brick(brick_id) is None:
                    logger.info("Skipping stock update for unknown brick %s", brick_id)
                    continue
                delta = parse_count(update.get("quantity", 0), "quantity")
                source = update.get("source") or SOURCE_BULK_UPDATE
                changed.append(self.adjust(brick_id, delta, source=source))
        return changed
