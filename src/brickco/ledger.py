"""Append-only stock ledger and reconciliation."""

import logging
from dataclasses import dataclass
from typing import Any

from .errors import InvalidMovementTypeError, InvalidSourceError, ValidationError
from .models import Database, StockHistoryEntry, StockMovement, parse_count
from .store import DataStore

SOURCE_INITIAL_STOCK = "initial_stock"
SOURCE_MANUAL_UPDATE = "manual_update"
SOURCE_BULK_UPDATE = "bulk_update"
SOURCE_ORDER = "order"
SOURCE_INVENTORY = "inventory"
SOURCE_BRICK_DELETED = "brick_deleted"

# Sources accepted for entries posted directly to the ledger
RAW_ENTRY_SOURCES = [SOURCE_INVENTORY, SOURCE_ORDER]
RAW_ENTRY_TYPES = ["added", "deducted"]

logger = logging.getLogger(__name__)


@dataclass
class Discrepancy:
    """A brick whose ledger balance doesn't match its stock."""

    brick_id: str
    brick_name: str | None
    stock: int
    ledger_balance: int

    @property
    def difference(self) -> int:
        return self.stock - self.ledger_balance

    def to_dict(self) -> dict[str, Any]:
        return {
            "brickId": self.brick_id,
            "brickName": self.brick_name,
            "stock": self.stock,
            "ledgerBalance": self.ledger_balance,
            "difference": self.difference,
        }


class StockLedger:
    """Records and reads stock history entries."""

    def __init__(self, store: DataStore):
        self.store = store

    def record(
        self,
        brick_id: str,
        quantity: int,
        movement: StockMovement | str,
        source: str,
        brick_name: str | None = None,
    ) -> StockHistoryEntry:
        """
        Append one entry to the ledger.

        Runs inside the caller's transaction when there is one, so the entry
        commits together with the stock change it describes.

        Args:
            brick_id: Brick the movement applies to (not checked for existence).
            quantity: Magnitude of the movement.
            movement: Credit/debit, or a legacy type name.
            source: Provenance tag, e.g. 'order' or 'manual_update'.
        """
        entry = StockHistoryEntry.create(
            brick_id=brick_id,
            quantity=quantity,
            movement=StockMovement.parse(movement),
            source=source,
            brick_name=brick_name,
        )
        with self.store.transaction() as db:
            db.stock_history.append(entry)
        logger.info(
            "Ledger %s %d of brick %s (%s)",
            entry.type.value, entry.quantity, brick_id, source,
        )
        return entry

    def record_raw(self, payload: dict[str, Any]) -> StockHistoryEntry:
        """
        Append an entry posted directly by a client.

        Every field is required, type must be 'added'/'deducted' (or the
        canonical 'credit'/'debit') and source must be 'inventory'/'order'.
        """
        brick_id = payload.get("brickId")
        brick_name = payload.get("brickName")
        quantity = payload.get("quantity")
        type_name = payload.get("type")
        source = payload.get("source")

        if not brick_id or not brick_name or not quantity or not type_name or not source:
            raise ValidationError("Missing required fields")

        if type_name not in RAW_ENTRY_TYPES and type_name not in (
            StockMovement.CREDIT.value, StockMovement.DEBIT.value
        ):
            raise InvalidMovementTypeError(type_name, RAW_ENTRY_TYPES)

        if source not in RAW_ENTRY_SOURCES:
            raise InvalidSourceError(source, RAW_ENTRY_SOURCES)

        quantity = parse_count(quantity, "quantity")
        if quantity <= 0:
            raise ValidationError("Invalid quantity")

        return self.record(brick_id, quantity, type_name, source, brick_name=brick_name)

    def entries(
        self,
        movement: StockMovement | str | None = None,
        source: str | None = None,
    ) -> list[StockHistoryEntry]:
        """
        List ledger entries in insertion order.

        Args:
            movement: Only entries of this direction (legacy names accepted).
            source: Only entries with this source tag.
        """
        db = self.store.read()
        history = db.stock_history
        if movement:
            wanted = StockMovement.parse(movement)
            history = [e for e in history if e.type is wanted]
        if source:
            history = [e for e in history if e.source == source]
        return list(history)

    def balances(self, db: Database | None = None) -> dict[str, int]:
        """Net ledger movement per brick ID."""
        db = db or self.store.read()
        totals: dict[str, int] = {}
        for entry in db.stock_history:
            totals[entry.brick_id] = totals.get(entry.brick_id, 0) + entry.delta
        return totals

    def reconcile(self) -> list[Discrepancy]:
        """
        Compare ledger balances with current stock.

        A brick that was deleted counts as stock 0. Returns one Discrepancy
        per brick whose balance and stock disagree.
        """
        db = self.store.read()
        balances = self.balances(db)
        names = {e.brick_id: e.brick_name for e in db.stock_history}
        stock = {b.id: b for b in db.bricks}

        discrepancies: list[Discrepancy] = []
        for brick_id in list(stock) + [b for b in balances if b not in stock]:
            brick = stock.get(brick_id)
            on_hand = brick.stock if brick else 0
            balance = balances.get(brick_id, 0)
            if on_hand != balance:
                discrepancies.append(
                    Discrepancy(
                        brick_id=brick_id,
                        brick_name=brick.name if brick else names.get(brick_id),
                        stock=on_hand,
                        ledger_balance=balance,
                    )
                )

        for d in discrepancies:
            logger.warning(
                "Stock drift on brick %s: stock=%d ledger=%d",
                d.brick_id, d.stock, d.ledger_balance,
            )
        return discrepancies
