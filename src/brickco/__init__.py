"""BrickCo back-office API: bricks, orders, carts and the stock ledger."""

__version__ = "0.1.0"
