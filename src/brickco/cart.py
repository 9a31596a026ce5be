"""Per-user carts and checkout."""

import logging
from typing import Any

from .errors import (
    BrickNotFoundError,
    CartNotFoundError,
    EmptyCartError,
    InsufficientStockError,
    ValidationError,
)
from .inventory import BrickInventory
from .ledger import SOURCE_ORDER
from .models import Cart, CartItem, Database, Order, OrderItem, _utc_now, money_to_json, parse_count
from .store import DataStore

logger = logging.getLogger(__name__)


def enrich_cart(cart: Cart, db: Database) -> dict[str, Any]:
    """Cart dict with the current name, price and stock of each brick."""
    data = cart.to_dict()
    for item_data in data["items"]:
        brick = db.find_brick(item_data["brickId"])
        item_data["name"] = brick.name if brick else None
        item_data["price"] = money_to_json(brick.price) if brick else None
        item_data["currentStock"] = brick.stock if brick else None
    return data


class CartService:
    """Manages carts and turns them into orders."""

    def __init__(self, store: DataStore):
        self.store = store
        self.inventory = BrickInventory(store)

    def get_cart(self, user_id: str) -> Cart:
        """Return the user's cart, or a new empty one (not saved)."""
        db = self.store.read()
        return db.carts.get(user_id) or Cart(user_id=user_id)

    def view_cart(self, user_id: str) -> dict[str, Any]:
        db = self.store.read()
        return enrich_cart(db.carts.get(user_id) or Cart(user_id=user_id), db)

    def add_item(self, user_id: str | None, brick_id: str | None, quantity: Any) -> Cart:
        """
        Add a brick to the cart, merging with an existing line.

        Raises:
            ValidationError: If a field is missing.
            BrickNotFoundError: If the brick doesn't exist.
            InsufficientStockError: If the resulting quantity exceeds stock.
        """
        if not user_id or not brick_id or not quantity:
            raise ValidationError("Missing required fields")
        quantity = parse_count(quantity, "quantity")
        if quantity <= 0:
            raise ValidationError("Invalid quantity")

        with self.store.transaction() as db:
            brick = db.find_brick(brick_id)
            if brick is None:
                raise BrickNotFoundError(brick_id)
            if brick.stock < quantity:
                raise InsufficientStockError(brick_id, quantity, brick.stock)

            cart = db.carts.get(user_id) or Cart(user_id=user_id)
            existing = cart.find_item(brick_id)
            if existing is not None:
                new_quantity = existing.quantity + quantity
                if new_quantity > brick.stock:
                    raise InsufficientStockError(brick_id, new_quantity, brick.stock)
                existing.quantity = new_quantity
            else:
                cart.items.append(CartItem(brick_id=brick_id, quantity=quantity))

            cart.updated_at = _utc_now()
            db.carts[user_id] = cart

        return cart

    def remove_item(self, user_id: str | None, brick_id: str | None) -> Cart:
        """
        Raises:
            ValidationError: If a field is missing.
            CartNotFoundError: If the user has no cart.
        """
        if not user_id or not brick_id:
            raise ValidationError("Missing required fields")

        with self.store.transaction() as db:
            cart = db.carts.get(user_id)
            if cart is None:
                raise CartNotFoundError(user_id)
            cart.items = [i for i in cart.items if i.brick_id != brick_id]
            cart.updated_at = _utc_now()

        return cart

    def checkout(self, user_id: str | None, customer_info: dict[str, Any] | None) -> Order:
        """
        Convert the user's cart into one pending order.

        Every line is validated before anything changes; then stock is
        deducted and ledgered per line, the order is stored and the cart is
        removed, all in one transaction.

        Raises:
            ValidationError: If a field is missing.
            EmptyCartError: If the cart is missing or has no items.
            InsufficientStockError: For the first line that can't be covered.
        """
        if not user_id or not customer_info:
            raise ValidationError("Missing required fields")

        with self.store.transaction() as db:
            cart = db.carts.get(user_id)
            if cart is None or not cart.items:
                raise EmptyCartError(user_id)

            order_items = []
            for item in cart.items:
                brick = db.find_brick(item.brick_id)
                if brick is None or brick.stock < item.quantity:
                    raise InsufficientStockError(
                        item.brick_id, item.quantity, brick.stock if brick else 0
                    )
                order_items.append(
                    OrderItem(
                        brick_id=brick.id,
                        quantity=item.quantity,
                        price=brick.price,
                        name=brick.name,
                    )
                )

            for item in order_items:
                self.inventory.adjust(item.brick_id, -item.quantity, source=SOURCE_ORDER)

            order = Order.create(
                customer_id=user_id,
                items=order_items,
                stock_committed=True,
                customer_info=customer_info,
            )
            db.orders.append(order)
            del db.carts[user_id]

        logger.info(
            "Checked out cart of %s into order %s (%d items, total %s)",
            user_id, order.id, len(order.items), order.amount,
        )
        return order
