"""Tests for SpendLog."""

from decimal import Decimal

import pytest

from brickco.errors import SpendNotFoundError, ValidationError
from brickco.spends import SpendLog


class TestSpendLog:
    def test_save_and_get(self, store):
        log = SpendLog(store)
        log.save_spend({"month": 3, "year": 2024, "labour": 1000, "coal": 250.5})

        spend = log.get_spend(2024, 3)
        assert spend.labour == Decimal("1000")
        assert spend.total == Decimal("1250.5")

    def test_save_same_month_replaces(self, store):
        log = SpendLog(store)
        first = log.save_spend({"month": 3, "year": 2024, "labour": 1000})
        second = log.save_spend({"month": "3", "year": "2024", "clay": 40})

        assert second.id == first.id
        assert len(log.list_spends()) == 1
        assert log.get_spend(2024, 3).total == Decimal("40")

    def test_month_and_year_required(self, store):
        with pytest.raises(ValidationError, match="Month and year are required"):
            SpendLog(store).save_spend({"labour": 10})

    def test_month_out_of_range(self, store):
        with pytest.raises(ValidationError):
            SpendLog(store).save_spend({"month": 13, "year": 2024})

    @pytest.mark.parametrize("amount", ["NaN", "Infinity"])
    def test_non_finite_amount(self, store, amount):
        with pytest.raises(ValidationError, match="Invalid spend values"):
            SpendLog(store).save_spend({"month": 1, "year": 2024, "coal": amount})
        assert SpendLog(store).list_spends() == []

    def test_get_missing(self, store):
        with pytest.raises(SpendNotFoundError):
            SpendLog(store).get_spend(2020, 1)
