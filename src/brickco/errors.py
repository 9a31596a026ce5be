"""Custom exceptions for brickco."""

from typing import Any


class BrickcoError(Exception):
    """Base exception for all brickco errors."""

    def details(self) -> dict[str, Any]:
        """Extra fields merged into the JSON error body."""
        return {}


class DataExistsError(BrickcoError):
    """Raised when trying to init but the data file already exists."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Data file already exists at {path}. Use --force to overwrite.")


class InvalidSchemaVersionError(BrickcoError):
    """Raised when the data file has an unsupported schema version."""

    def __init__(self, found: int, supported: int):
        self.found = found
        self.supported = supported
        super().__init__(
            f"Unsupported schema version {found}. This tool supports version {supported}."
        )


class ValidationError(BrickcoError):
    """Raised when a request is missing fields or carries malformed values."""

    pass


class CustomerValidationError(ValidationError):
    """Raised when customer data fails one or more field checks."""

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__("; ".join(errors))

    def details(self) -> dict[str, Any]:
        return {"errors": self.errors}


class InvalidStatusError(ValidationError):
    """Raised when an order status is not part of the status enum."""

    def __init__(self, status: str | None):
        self.status = status
        super().__init__("Invalid status")


class InvalidMovementTypeError(ValidationError):
    """Raised when a stock history type can't be mapped to credit/debit."""

    def __init__(self, value: str | None, allowed: list[str] | None = None):
        self.value = value
        msg = f"Invalid type: {value}"
        if allowed:
            msg = f"Invalid type. Must be {' or '.join(repr(a) for a in allowed)}"
        super().__init__(msg)


class InvalidSourceError(ValidationError):
    """Raised when a raw stock history entry has an unsupported source."""

    def __init__(self, value: str | None, allowed: list[str]):
        self.value = value
        super().__init__(
            f"Invalid source. Must be {' or '.join(repr(a) for a in allowed)}"
        )


class BrickNotFoundError(BrickcoError):
    """Raised when a brick ID doesn't exist."""

    def __init__(self, brick_id: str):
        self.brick_id = brick_id
        super().__init__(f"Brick not found: {brick_id}")


class OrderNotFoundError(BrickcoError):
    """Raised when an order ID doesn't exist."""

    def __init__(self, order_id: str):
        self.order_id = order_id
        super().__init__(f"Order not found: {order_id}")


class CustomerNotFoundError(BrickcoError):
    """Raised when a customer ID doesn't exist."""

    def __init__(self, customer_id: str):
        self.customer_id = customer_id
        super().__init__(f"Customer not found: {customer_id}")


class CartNotFoundError(BrickcoError):
    """Raised when a user has no cart."""

    def __init__(self, user_id: str):
        self.user_id = user_id
        super().__init__(f"Cart not found for user: {user_id}")


class SpendNotFoundError(BrickcoError):
    """Raised when no spend exists for a month."""

    def __init__(self, year: int, month: int):
        self.year = year
        self.month = month
        super().__init__(f"Spend not found for {year}-{month:02d}")


class InsufficientStockError(BrickcoError):
    """Raised when a brick can't cover the requested quantity."""

    def __init__(self, brick_id: str, requested: int, available: int):
        self.brick_id = brick_id
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient stock. Available: {available}, Required: {requested}"
        )

    def details(self) -> dict[str, Any]:
        return {
            "brickId": self.brick_id,
            "requested": self.requested,
            "available": self.available,
        }


class StockValidationError(BrickcoError):
    """Raised when one or more items of a stock check can't be fulfilled."""

    def __init__(self, invalid_items: list[dict[str, Any]]):
        self.invalid_items = invalid_items
        super().__init__("Insufficient stock")

    def details(self) -> dict[str, Any]:
        return {"invalidItems": self.invalid_items}


class InvalidTransitionError(BrickcoError):
    """Raised when an order can't move from its current status to the requested one."""

    def __init__(self, current: str, requested: str):
        self.current = current
        self.requested = requested
        super().__init__(f"Cannot change order status from '{current}' to '{requested}'")


class OrderAlreadyCancelledError(BrickcoError):
    """Raised when cancelling an order that is already cancelled."""

    def __init__(self, order_id: str):
        self.order_id = order_id
        super().__init__("Order is already cancelled")


class StockRestoreError(BrickcoError):
    """Raised when stock of a cancelled or deleted order can't be put back."""

    def __init__(self, order_id: str, reason: str | None = None):
        self.order_id = order_id
        self.reason = reason
        super().__init__("Failed to restore brick stock")


class EmptyCartError(BrickcoError):
    """Raised when checking out a cart without items."""

    def __init__(self, user_id: str):
        self.user_id = user_id
        super().__init__("Cart is empty")


class DuplicateEmailError(BrickcoError):
    """Raised when an email is already used by another customer."""

    def __init__(self, email: str):
        self.email = email
        super().__init__("Email address already exists")


class CustomerHasOrdersError(BrickcoError):
    """Raised when deleting a customer that still has orders."""

    def __init__(self, customer_id: str):
        self.customer_id = customer_id
        super().__init__(
            "Cannot delete customer with existing orders. Please delete all orders first."
        )


class ReportNotFoundError(BrickcoError):
    """Raised when an analytics report name is unknown."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Unknown report: {name}")
