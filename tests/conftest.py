"""Pytest fixtures for brickco tests."""

import tempfile
from pathlib import Path

import pytest

from brickco.customers import CustomerDirectory
from brickco.inventory import BrickInventory
from brickco.store import DataStore


@pytest.fixture
def temp_dir():
    """Create a temporary directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def store(temp_dir):
    """An initialized, empty data store."""
    store = DataStore(temp_dir / "data")
    store.init()
    return store


@pytest.fixture
def inventory(store):
    return BrickInventory(store)


@pytest.fixture
def red_brick(inventory):
    """A brick with 100 in stock at 2.50 each."""
    return inventory.create_brick(
        {"name": "Red Brick", "price": 2.5, "stock": 100, "minStockThreshold": 20}
    )


@pytest.fixture
def fire_brick(inventory):
    """A brick with 10 in stock at 4.00 each."""
    return inventory.create_brick(
        {"name": "Fire Brick", "price": 4, "stock": 10, "minStockThreshold": 5}
    )


@pytest.fixture
def customer(store):
    return CustomerDirectory(store).create_customer(
        {"name": "Alice Mason", "email": "alice@example.com", "phone": "+1 555 123 4567"}
    )


@pytest.fixture
def api_client(store):
    """Test client whose requests all go to the temporary store."""
    from fastapi.testclient import TestClient

    from brickco.api import app, get_store

    app.dependency_overrides[get_store] = lambda: store
    yield TestClient(app)
    app.dependency_overrides.clear()


def stock_of(store: DataStore, brick_id: str) -> int:
    """Current stock of a brick, read fresh from disk."""
    return store.read().find_brick(brick_id).stock
