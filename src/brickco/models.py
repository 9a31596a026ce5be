"""Data models for brickco."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any
import uuid

from .errors import InvalidMovementTypeError, InvalidStatusError, ValidationError

CENT = Decimal("0.01")


def _utc_now() -> str:
    """Return current UTC time as ISO 8601 string."""
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _generate_id() -> str:
    """Generate a new record ID."""
    return str(uuid.uuid4())


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO 8601 timestamp as written by _utc_now (or a JS client)."""
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def to_decimal(value: Any) -> Decimal:
    """Convert a JSON number to Decimal without binary float noise."""
    if isinstance(value, Decimal):
        return value
    if value is None or value == "":
        return Decimal("0")
    return Decimal(str(value))


def money(value: Decimal) -> Decimal:
    """Round to the currency's minor unit."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def money_to_json(value: Decimal) -> float | int:
    """Render a Decimal amount as a JSON number."""
    if value == value.to_integral_value():
        return int(value)
    return float(value)


def parse_count(value: Any, name: str) -> int:
    """
    Convert a JSON number or numeric string to a whole count.

    Raises:
        ValidationError: If value is not a whole number; fractions are
            rejected, not truncated.
    """
    if isinstance(value, bool):
        raise ValidationError(f"Invalid {name}: {value}")
    try:
        count = int(value)
    except (TypeError, ValueError, OverflowError):
        raise ValidationError(f"Invalid {name}: {value}")
    if count != value and not isinstance(value, str):
        raise ValidationError(f"Invalid {name}: {value}")
    return count


class StockMovement(str, Enum):
    """Direction of a stock history entry."""

    CREDIT = "credit"
    DEBIT = "debit"

    @classmethod
    def parse(cls, value: "str | StockMovement | None") -> "StockMovement":
        """
        Map canonical or legacy type names to a movement.

        Legacy names: 'add'/'added' are credits, 'remove'/'deducted' are debits.

        Raises:
            InvalidMovementTypeError: If the value is unknown.
        """
        if isinstance(value, StockMovement):
            return value
        movement = LEGACY_MOVEMENT_NAMES.get((value or "").strip().lower())
        if movement is None:
            raise InvalidMovementTypeError(value)
        return movement

    def sign(self) -> int:
        return 1 if self is StockMovement.CREDIT else -1


LEGACY_MOVEMENT_NAMES: dict[str, StockMovement] = {
    "credit": StockMovement.CREDIT,
    "add": StockMovement.CREDIT,
    "added": StockMovement.CREDIT,
    "debit": StockMovement.DEBIT,
    "remove": StockMovement.DEBIT,
    "deducted": StockMovement.DEBIT,
}


class OrderStatus(str, Enum):
    """Lifecycle state of an order."""

    PENDING = "pending"
    PROCESSING = "processing"
    DONE = "done"
    CANCELLED = "cancelled"

    @classmethod
    def parse(cls, value: "str | OrderStatus | None") -> "OrderStatus":
        """
        Raises:
            InvalidStatusError: If the value is not a known status.
        """
        if isinstance(value, OrderStatus):
            return value
        try:
            return cls(value)
        except ValueError:
            raise InvalidStatusError(value)


# Forward progress rank; cancelled sits outside the chain.
STATUS_RANK = {
    OrderStatus.PENDING: 0,
    OrderStatus.PROCESSING: 1,
    OrderStatus.DONE: 2,
}


@dataclass
class Brick:
    """A catalog brick with its on-hand stock."""

    id: str
    name: str
    price: Decimal
    stock: int
    min_stock_threshold: int = 0
    category: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)  # client attributes we don't model
    created_at: str = field(default_factory=_utc_now)
    updated_at: str = field(default_factory=_utc_now)

    KNOWN_KEYS = (
        "id", "name", "price", "stock", "minStockThreshold", "category",
        "createdAt", "updatedAt",
    )

    @property
    def is_low_stock(self) -> bool:
        return self.stock < self.min_stock_threshold

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = dict(self.extra)
        result.update({
            "id": self.id,
            "name": self.name,
            "price": money_to_json(self.price),
            "stock": self.stock,
            "minStockThreshold": self.min_stock_threshold,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        })
        if self.category is not None:
            result["category"] = self.category
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Brick":
        return cls(
            id=str(data["id"]),
            name=data.get("name", ""),
            price=to_decimal(data.get("price", 0)),
            stock=int(data.get("stock", 0)),
            min_stock_threshold=int(data.get("minStockThreshold", 0)),
            category=data.get("category"),
            extra={k: v for k, v in data.items() if k not in cls.KNOWN_KEYS},
            created_at=data.get("createdAt", ""),
            updated_at=data.get("updatedAt", ""),
        )

    @classmethod
    def create(
        cls,
        name: str,
        price: Decimal,
        stock: int,
        min_stock_threshold: int = 0,
        category: str | None = None,
        extra: dict[str, Any] | None = None,
    ) -> "Brick":
        """Create a new brick with generated ID and timestamps."""
        now = _utc_now()
        return cls(
            id=_generate_id(),
            name=name,
            price=price,
            stock=stock,
            min_stock_threshold=min_stock_threshold,
            category=category,
            extra=extra or {},
            created_at=now,
            updated_at=now,
        )


@dataclass
class StockHistoryEntry:
    """One append-only ledger record of a stock change."""

    id: str
    brick_id: str
    quantity: int  # magnitude, direction is in type
    type: StockMovement
    source: str
    timestamp: str = field(default_factory=_utc_now)
    brick_name: str | None = None

    @property
    def delta(self) -> int:
        return self.type.sign() * self.quantity

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "id": self.id,
            "brickId": self.brick_id,
            "quantity": self.quantity,
            "type": self.type.value,
            "source": self.source,
            "timestamp": self.timestamp,
        }
        if self.brick_name is not None:
            result["brickName"] = self.brick_name
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "StockHistoryEntry":
        return cls(
            id=str(data["id"]),
            brick_id=str(data["brickId"]),
            quantity=int(data["quantity"]),
            type=StockMovement.parse(data["type"]),
            source=data.get("source", ""),
            timestamp=data.get("timestamp", ""),
            brick_name=data.get("brickName"),
        )

    @classmethod
    def create(
        cls,
        brick_id: str,
        quantity: int,
        movement: StockMovement,
        source: str,
        brick_name: str | None = None,
    ) -> "StockHistoryEntry":
        """Create a new entry with generated ID and timestamp."""
        return cls(
            id=_generate_id(),
            brick_id=brick_id,
            quantity=quantity,
            type=movement,
            source=source,
            timestamp=_utc_now(),
            brick_name=brick_name,
        )


@dataclass
class OrderItem:
    """A line of an order, priced at the time it was placed."""

    brick_id: str
    quantity: int
    price: Decimal
    name: str | None = None

    @property
    def total(self) -> Decimal:
        return money(self.price * self.quantity)

    def to_dict(self) -> dict[str, Any]:
        return {
            "brickId": self.brick_id,
            "name": self.name,
            "quantity": self.quantity,
            "price": money_to_json(self.price),
            "total": money_to_json(self.total),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "OrderItem":
        return cls(
            brick_id=str(data["brickId"]),
            quantity=int(data["quantity"]),
            price=to_decimal(data.get("price", 0)),
            name=data.get("name"),
        )


@dataclass
class Order:
    """A customer order of one or more bricks."""

    id: str
    customer_id: str
    items: list[OrderItem]
    status: OrderStatus = OrderStatus.PENDING
    stock_committed: bool = False
    customer_info: dict[str, Any] | None = None
    created_at: str = field(default_factory=_utc_now)
    updated_at: str = field(default_factory=_utc_now)

    @property
    def amount(self) -> Decimal:
        return money(sum((item.price * item.quantity for item in self.items), Decimal("0")))

    @property
    def quantity(self) -> int:
        return sum(item.quantity for item in self.items)

    def to_dict(self) -> dict[str, Any]:
        amount = money_to_json(self.amount)
        result: dict[str, Any] = {
            "id": self.id,
            "customerId": self.customer_id,
            "items": [item.to_dict() for item in self.items],
            "amount": amount,
            "total": amount,
            "quantity": self.quantity,
            "status": self.status.value,
            "stockCommitted": self.stock_committed,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }
        if len(self.items) == 1:
            result["brickId"] = self.items[0].brick_id
        if self.customer_info is not None:
            result["customerInfo"] = self.customer_info
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Order":
        status = OrderStatus.parse(data.get("status", "pending"))
        if "items" in data:
            items = [OrderItem.from_dict(i) for i in data["items"]]
            # Checkout orders deduct stock when they are placed
            committed = data.get("stockCommitted", True)
        else:
            # Single-brick record: unit price derived from the stored amount
            quantity = int(data["quantity"])
            amount = to_decimal(data.get("amount", 0))
            items = [
                OrderItem(
                    brick_id=str(data["brickId"]),
                    quantity=quantity,
                    price=amount / quantity if quantity else Decimal("0"),
                )
            ]
            committed = data.get("stockCommitted", status is OrderStatus.DONE)
        return cls(
            id=str(data["id"]),
            customer_id=str(data["customerId"]),
            items=items,
            status=status,
            stock_committed=bool(committed),
            customer_info=data.get("customerInfo"),
            created_at=data.get("createdAt", ""),
            updated_at=data.get("updatedAt", data.get("createdAt", "")),
        )

    @classmethod
    def create(
        cls,
        customer_id: str,
        items: list[OrderItem],
        stock_committed: bool = False,
        customer_info: dict[str, Any] | None = None,
    ) -> "Order":
        """Create a new pending order with generated ID and timestamps."""
        now = _utc_now()
        return cls(
            id=_generate_id(),
            customer_id=customer_id,
            items=items,
            status=OrderStatus.PENDING,
            stock_committed=stock_committed,
            customer_info=customer_info,
            created_at=now,
            updated_at=now,
        )


@dataclass
class CartItem:
    brick_id: str
    quantity: int
    added_at: str = field(default_factory=_utc_now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "brickId": self.brick_id,
            "quantity": self.quantity,
            "addedAt": self.added_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CartItem":
        return cls(
            brick_id=str(data["brickId"]),
            quantity=int(data["quantity"]),
            added_at=data.get("addedAt", ""),
        )


@dataclass
class Cart:
    """A user's cart; one per user, removed on checkout."""

    user_id: str
    items: list[CartItem] = field(default_factory=list)
    updated_at: str = field(default_factory=_utc_now)

    def find_item(self, brick_id: str) -> CartItem | None:
        for item in self.items:
            if item.brick_id == brick_id:
                return item
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "items": [i.to_dict() for i in self.items],
            "updatedAt": self.updated_at,
        }

    @classmethod
    def from_dict(cls, user_id: str, data: dict[str, Any]) -> "Cart":
        return cls(
            user_id=user_id,
            items=[CartItem.from_dict(i) for i in data.get("items", [])],
            updated_at=data.get("updatedAt", ""),
        )


@dataclass
class Customer:
    id: str
    name: str
    email: str
    phone: str | None = None
    address: str | None = None
    created_at: str = field(default_factory=_utc_now)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "createdAt": self.created_at,
        }
        if self.phone is not None:
            result["phone"] = self.phone
        if self.address is not None:
            result["address"] = self.address
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Customer":
        return cls(
            id=str(data["id"]),
            name=data.get("name", ""),
            email=data.get("email", ""),
            phone=data.get("phone"),
            address=data.get("address"),
            created_at=data.get("createdAt", ""),
        )


SPEND_HEADS = ("labour", "clay", "coal", "transport", "other")


@dataclass
class Spend:
    """Operating expenses for one calendar month."""

    id: str
    month: int
    year: int
    labour: Decimal = Decimal("0")
    clay: Decimal = Decimal("0")
    coal: Decimal = Decimal("0")
    transport: Decimal = Decimal("0")
    other: Decimal = Decimal("0")
    created_at: str = field(default_factory=_utc_now)

    @property
    def total(self) -> Decimal:
        return sum((getattr(self, head) for head in SPEND_HEADS), Decimal("0"))

    @property
    def month_key(self) -> str:
        return f"{self.year}-{self.month:02d}"

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"id": self.id}
        for head in SPEND_HEADS:
            result[head] = money_to_json(getattr(self, head))
        result.update({
            "month": self.month,
            "year": self.year,
            "total": money_to_json(self.total),
            "createdAt": self.created_at,
        })
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Spend":
        return cls(
            id=str(data["id"]),
            month=int(data["month"]),
            year=int(data["year"]),
            created_at=data.get("createdAt", ""),
            **{head: to_decimal(data.get(head, 0)) for head in SPEND_HEADS},
        )


@dataclass
class Database:
    """All tables of the data file, loaded together and saved together."""

    schema_version: int
    bricks: list[Brick] = field(default_factory=list)
    orders: list[Order] = field(default_factory=list)
    customers: list[Customer] = field(default_factory=list)
    carts: dict[str, Cart] = field(default_factory=dict)
    spends: list[Spend] = field(default_factory=list)
    stock_history: list[StockHistoryEntry] = field(default_factory=list)

    def find_brick(self, brick_id: str) -> Brick | None:
        for brick in self.bricks:
            if brick.id == brick_id:
                return brick
        return None

    def find_order(self, order_id: str) -> Order | None:
        for order in self.orders:
            if order.id == order_id:
                return order
        return None

    def find_customer(self, customer_id: str) -> Customer | None:
        for customer in self.customers:
            if customer.id == customer_id:
                return customer
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "schema_version": self.schema_version,
            "bricks": [b.to_dict() for b in self.bricks],
            "orders": [o.to_dict() for o in self.orders],
            "customers": [c.to_dict() for c in self.customers],
            "carts": {user_id: c.to_dict() for user_id, c in self.carts.items()},
            "spends": [s.to_dict() for s in self.spends],
            "stock_history": [e.to_dict() for e in self.stock_history],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Database":
        return cls(
            schema_version=data["schema_version"],
            bricks=[Brick.from_dict(b) for b in data.get("bricks", [])],
            orders=[Order.from_dict(o) for o in data.get("orders", [])],
            customers=[Customer.from_dict(c) for c in data.get("customers", [])],
            carts={
                user_id: Cart.from_dict(user_id, c)
                for user_id, c in data.get("carts", {}).items()
            },
            spends=[Spend.from_dict(s) for s in data.get("spends", [])],
            stock_history=[
                StockHistoryEntry.from_dict(e) for e in data.get("stock_history", [])
            ],
        )

    @classmethod
    def create(cls, schema_version: int) -> "Database":
        return cls(schema_version=schema_version)
