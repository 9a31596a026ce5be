"""Customer records."""

import logging
import re
from typing import Any

from .errors import (
    CustomerHasOrdersError,
    CustomerNotFoundError,
    CustomerValidationError,
    DuplicateEmailError,
)
from .models import Customer, Database, _generate_id, _utc_now
from .store import DataStore

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_RE = re.compile(r"^\+?[\d\s\-()]{10,}$")

logger = logging.getLogger(__name__)


def validate_customer(data: dict[str, Any]) -> list[str]:
    """Return every problem found in customer data (empty when valid)."""
    errors = []

    name = data.get("name")
    if not isinstance(name, str) or len(name.strip()) < 2:
        errors.append("Name must be at least 2 characters long")

    email = data.get("email")
    if not isinstance(email, str) or not EMAIL_RE.match(email):
        errors.append("Valid email address is required")

    phone = data.get("phone")
    if phone and isinstance(phone, str) and not PHONE_RE.match(phone):
        errors.append("Phone number format is invalid")

    address = data.get("address")
    if address is not None and not isinstance(address, str):
        errors.append("Address must be a string")

    return errors


def _email_taken(db: Database, email: str, exclude_id: str | None = None) -> bool:
    wanted = email.lower()
    return any(
        c.email.lower() == wanted and c.id != exclude_id for c in db.customers
    )


class CustomerDirectory:
    """Manages customers; emails are unique regardless of case."""

    def __init__(self, store: DataStore):
        self.store = store

    def list_customers(self) -> list[Customer]:
        return list(self.store.read().customers)

    def get_customer(self, customer_id: str) -> Customer:
        """
        Raises:
            CustomerNotFoundError: If customer doesn't exist.
        """
        customer = self.store.read().find_customer(customer_id)
        if customer is None:
            raise CustomerNotFoundError(customer_id)
        return customer

    def create_customer(self, data: dict[str, Any]) -> Customer:
        """
        Raises:
            CustomerValidationError: Listing every invalid field.
            DuplicateEmailError: If another customer has the same email.
        """
        fields = {
            "name": data.get("name"),
            "email": data.get("email"),
            "phone": data.get("phone") or None,
            "address": data.get("address") or None,
        }
        errors = validate_customer(fields)
        if errors:
            raise CustomerValidationError(errors)

        with self.store.transaction() as db:
            if _email_taken(db, fields["email"]):
                raise DuplicateEmailError(fields["email"])
            customer = Customer(
                id=_generate_id(),
                name=fields["name"],
                email=fields["email"],
                phone=fields["phone"],
                address=fields["address"],
                created_at=_utc_now(),
            )
            db.customers.append(customer)

        logger.info("Created customer %s", customer.id)
        return customer

    def update_customer(self, customer_id: str, changes: dict[str, Any]) -> Customer:
        """
        Merge changes into a customer and re-validate the result.

        Raises:
            CustomerNotFoundError: If customer doesn't exist.
            CustomerValidationError: Listing every invalid field.
            DuplicateEmailError: If the new email belongs to another customer.
        """
        with self.store.transaction() as db:
            customer = db.find_customer(customer_id)
            if customer is None:
                raise CustomerNotFoundError(customer_id)

            merged = customer.to_dict()
            merged.update({k: v for k, v in changes.items() if k in ("name", "email", "phone", "address")})
            errors = validate_customer(merged)
            if errors:
                raise CustomerValidationError(errors)

            if _email_taken(db, merged["email"], exclude_id=customer_id):
                raise DuplicateEmailError(merged["email"])

            customer.name = merged["name"]
            customer.email = merged["email"]
            customer.phone = merged.get("phone") or None
            customer.address = merged.get("address") or None

        return customer

    def delete_customer(self, customer_id: str) -> Customer:
        """
        Raises:
            CustomerHasOrdersError: If any order references the customer.
            CustomerNotFoundError: If customer doesn't exist.
        """
        with self.store.transaction() as db:
            if any(o.customer_id == customer_id for o in db.orders):
                raise CustomerHasOrdersError(customer_id)
            customer = db.find_customer(customer_id)
            if customer is None:
                raise CustomerNotFoundError(customer_id)
            db.customers.remove(customer)

        logger.info("Deleted customer %s", customer_id)
        return customer
