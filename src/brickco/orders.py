"""Order lifecycle: creation, status transitions, cancellation and deletion."""

import logging
from typing import Any

from .errors import (
    BrickNotFoundError,
    InsufficientStockError,
    InvalidTransitionError,
    OrderAlreadyCancelledError,
    OrderNotFoundError,
    StockRestoreError,
    ValidationError,
)
from .inventory import BrickInventory
from .ledger import SOURCE_ORDER
from .models import STATUS_RANK, Database, Order, OrderItem, OrderStatus, _utc_now, parse_count
from .store import DataStore

UNKNOWN_CUSTOMER = "Unknown Customer"
UNKNOWN_BRICK = "Unknown Brick"

logger = logging.getLogger(__name__)


def enrich_order(order: Order, db: Database) -> dict[str, Any]:
    """Order dict with customer and brick display names resolved."""
    data = order.to_dict()
    customer = db.find_customer(order.customer_id)
    data["customerName"] = customer.name if customer else UNKNOWN_CUSTOMER

    names = []
    for item, item_data in zip(order.items, data["items"]):
        brick = db.find_brick(item.brick_id)
        name = brick.name if brick else (item.name or UNKNOWN_BRICK)
        item_data["brickName"] = name
        names.append(name)
    data["brickName"] = ", ".join(names) if names else UNKNOWN_BRICK
    return data


def _restorable(order: Order) -> bool:
    # Only done orders give their stock back; a checkout order that is still
    # pending or processing keeps its deduction when cancelled.
    return order.status is OrderStatus.DONE and order.stock_committed


class OrderBook:
    """Drives orders through pending -> processing -> done, or cancelled."""

    def __init__(self, store: DataStore):
        self.store = store
        self.inventory = BrickInventory(store)

    def _get(self, db: Database, order_id: str) -> Order:
        order = db.find_order(order_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        return order

    def get_order(self, order_id: str) -> Order:
        """
        Raises:
            OrderNotFoundError: If order doesn't exist.
        """
        return self._get(self.store.read(), order_id)

    def list_orders(self, customer_id: str | None = None) -> list[dict[str, Any]]:
        """
        List enriched orders, newest first.

        Args:
            customer_id: Only orders of this customer.
        """
        db = self.store.read()
        orders = db.orders
        if customer_id is not None:
            orders = [o for o in orders if o.customer_id == customer_id]
        orders = sorted(orders, key=lambda o: o.created_at, reverse=True)
        return [enrich_order(o, db) for o in orders]

    def create_order(self, customer_id: str | None, brick_id: str | None, quantity: Any) -> Order:
        """
        Place a single-brick order.

        The order starts pending and stock is only deducted when it is
        marked done.
        """
        if not customer_id or not brick_id or quantity is None:
            raise ValidationError("Missing required fields")

        quantity = parse_count(quantity, "quantity")
        if quantity <= 0:
            raise ValidationError("Invalid quantity")

        with self.store.transaction() as db:
            if db.find_customer(customer_id) is None:
                raise ValidationError("Invalid customer")
            brick = db.find_brick(brick_id)
            if brick is None:
                raise ValidationError("Invalid brick")

            order = Order.create(
                customer_id=customer_id,
                items=[OrderItem(brick_id=brick.id, quantity=quantity, price=brick.price, name=brick.name)],
            )
            db.orders.append(order)

        logger.info("Created order %s for customer %s", order.id, customer_id)
        return order

    def set_status(self, order_id: str, status: OrderStatus | str | None) -> Order:
        """
        Move an order to a new status.

        Marking an order done deducts its stock unless that already happened
        at checkout. Moving to cancelled behaves like cancel() without a
        stock restore.

        Raises:
            InvalidStatusError: If status is not a known status.
            OrderNotFoundError: If order doesn't exist.
            InvalidTransitionError: If the order can't reach status from its current one.
            InsufficientStockError: If a brick can't cover a line when marking done.
        """
        new_status = OrderStatus.parse(status)

        if new_status is OrderStatus.CANCELLED:
            return self.cancel_order(order_id, restore_stock=False)

        with self.store.transaction() as db:
            order = self._get(db, order_id)

            if order.status is new_status:
                return order
            if order.status is OrderStatus.CANCELLED:
                raise InvalidTransitionError(order.status.value, new_status.value)
            if STATUS_RANK[new_status] < STATUS_RANK[order.status]:
                raise InvalidTransitionError(order.status.value, new_status.value)

            if new_status is OrderStatus.DONE and not order.stock_committed:
                self._deduct_stock(db, order)

            previous = order.status
            order.status = new_status
            order.updated_at = _utc_now()

        logger.info("Order %s: %s -> %s", order.id, previous.value, new_status.value)
        return order

    def _deduct_stock(self, db: Database, order: Order) -> None:
        """Check every line first, then deduct and ledger each one."""
        for item in order.items:
            brick = db.find_brick(item.brick_id)
            if brick is None:
                raise ValidationError("Brick not found")
            if brick.stock < item.quantity:
                raise InsufficientStockError(brick.id, item.quantity, brick.stock)

        for item in order.items:
            self.inventory.adjust(item.brick_id, -item.quantity, source=SOURCE_ORDER)
        order.stock_committed = True

    def _restore_stock(self, order: Order) -> None:
        try:
            for item in order.items:
                self.inventory.adjust(item.brick_id, item.quantity, source=SOURCE_ORDER)
        except BrickNotFoundError as e:
            raise StockRestoreError(order.id, str(e))
        order.stock_committed = False

    def cancel_order(self, order_id: str, restore_stock: bool = False) -> Order:
        """
        Cancel an order.

        Args:
            restore_stock: Put the order's quantities back on the shelf if
                it was done.

        Raises:
            OrderAlreadyCancelledError: If the order is already cancelled.
            StockRestoreError: If a brick to restore no longer exists; the
                order is left unchanged.
        """
        with self.store.transaction() as db:
            order = self._get(db, order_id)
            if order.status is OrderStatus.CANCELLED:
                raise OrderAlreadyCancelledError(order_id)

            if restore_stock and _restorable(order):
                self._restore_stock(order)

            order.status = OrderStatus.CANCELLED
            order.updated_at = _utc_now()

        logger.info("Cancelled order %s (restore_stock=%s)", order.id, restore_stock)
        return order

    def delete_order(self, order_id: str, restore_stock: bool = False) -> Order:
        """
        Delete an order, optionally restoring the stock of a done order first.

        Raises:
            StockRestoreError: If a brick to restore no longer exists; the
                order is kept.
        """
        with self.store.transaction() as db:
            order = self._get(db, order_id)
            if restore_stock and _restorable(order):
                self._restore_stock(order)
            db.orders.remove(order)

        logger.info("Deleted order %s (restore_stock=%s)", order.id, restore_stock)
        return order
