"""Monthly operating spends."""

from decimal import InvalidOperation
from typing import Any

from .errors import SpendNotFoundError, ValidationError
from .models import SPEND_HEADS, Spend, _generate_id, _utc_now, to_decimal
from .store import DataStore


class SpendLog:
    """One spend record per calendar month; saving a month again replaces it."""

    def __init__(self, store: DataStore):
        self.store = store

    def list_spends(self) -> list[Spend]:
        return list(self.store.read().spends)

    def get_spend(self, year: int, month: int) -> Spend:
        """
        Raises:
            SpendNotFoundError: If nothing was recorded for that month.
        """
        for spend in self.store.read().spends:
            if spend.year == year and spend.month == month:
                return spend
        raise SpendNotFoundError(year, month)

    def save_spend(self, data: dict[str, Any]) -> Spend:
        """Create or replace the spend for data's month and year."""
        if not data.get("month") or not data.get("year"):
            raise ValidationError("Month and year are required")
        try:
            month = int(data["month"])
            year = int(data["year"])
            amounts = {head: to_decimal(data.get(head) or 0) for head in SPEND_HEADS}
        except (TypeError, ValueError, InvalidOperation):
            raise ValidationError("Invalid spend values")
        if not all(amount.is_finite() for amount in amounts.values()):
            raise ValidationError("Invalid spend values")
        if not 1 <= month <= 12:
            raise ValidationError(f"Invalid month: {month}")

        with self.store.transaction() as db:
            for i, existing in enumerate(db.spends):
                if existing.year == year and existing.month == month:
                    spend = Spend(id=existing.id, month=month, year=year, created_at=_utc_now(), **amounts)
                    db.spends[i] = spend
                    return spend

            spend = Spend(id=_generate_id(), month=month, year=year, created_at=_utc_now(), **amounts)
            db.spends.append(spend)
        return spend
