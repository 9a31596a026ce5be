"""Tests for CustomerDirectory."""

import pytest

from brickco.customers import CustomerDirectory, validate_customer
from brickco.errors import (
    CustomerHasOrdersError,
    CustomerNotFoundError,
    CustomerValidationError,
    DuplicateEmailError,
)
from brickco.orders import OrderBook


@pytest.fixture
def directory(store):
    return CustomerDirectory(store)


class TestValidation:
    def test_valid(self):
        assert validate_customer({"name": "Al", "email": "al@x.io", "phone": "(555) 123-4567"}) == []

    def test_collects_every_error(self):
        errors = validate_customer({"name": "A", "email": "nope", "phone": "12"})

        assert errors == [
            "Name must be at least 2 characters long",
            "Valid email address is required",
            "Phone number format is invalid",
        ]


class TestCustomerDirectory:
    def test_create_and_get(self, directory, customer):
        assert directory.get_customer(customer.id).email == "alice@example.com"

    def test_invalid_create(self, directory):
        with pytest.raises(CustomerValidationError) as exc_info:
            directory.create_customer({"name": "A", "email": "bad"})
        assert len(exc_info.value.errors) == 2

    def test_email_unique_ignoring_case(self, directory, customer):
        with pytest.raises(DuplicateEmailError):
            directory.create_customer({"name": "Other Alice", "email": "ALICE@example.com"})

    def test_update_keeps_own_email(self, directory, customer):
        updated = directory.update_customer(customer.id, {"name": "Alice M.", "email": "Alice@Example.com"})

        assert updated.name == "Alice M."
        assert directory.get_customer(customer.id).email == "Alice@Example.com"

    def test_update_to_taken_email(self, directory, customer):
        other = directory.create_customer({"name": "Bob", "email": "bob@example.com"})

        with pytest.raises(DuplicateEmailError):
            directory.update_customer(other.id, {"email": "alice@EXAMPLE.com"})

    def test_update_unknown(self, directory):
        with pytest.raises(CustomerNotFoundError):
            directory.update_customer("missing", {"name": "Nobody"})

    def test_delete(self, directory, customer):
        directory.delete_customer(customer.id)
        assert directory.list_customers() == []

    def test_delete_with_orders_blocked(self, store, directory, customer, red_brick):
        OrderBook(store).create_order(customer.id, red_brick.id, 1)

        with pytest.raises(CustomerHasOrdersError):
            directory.delete_customer(customer.id)
        assert len(directory.list_customers()) == 1
