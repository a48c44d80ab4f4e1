"""
Pytest configuration and fixtures.

The document store is an in-memory mongomock-motor client handed to the
services through `MongoStore`, so no MongoDB server is needed.
"""
import os
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, AsyncGenerator

os.environ.setdefault("MONGO_URI", "mongodb://localhost:27017")

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from mongomock_motor import AsyncMongoMockClient

from marketplace.api.main import CATALOG, TRANSACTIONS, create_app
from marketplace.config import Settings
from marketplace.core.receipt_renderer import ReceiptRenderer
from marketplace.core.transaction_workflow import TransactionWorkflow
from marketplace.database.connection import MongoStore
from marketplace.database.models import Customer, Product
from marketplace.database.product_store import ProductStore
from marketplace.database.transaction_store import TransactionStore


class StepClock:
    """Deterministic clock that advances one second per reading."""

    def __init__(self, start: datetime | None = None) -> None:
        self.current = start or datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        value = self.current
        self.current = self.current + timedelta(seconds=1)
        return value


@pytest.fixture
def test_settings(tmp_path: Any) -> Settings:
    """Create test settings."""
    return Settings(
        _env_file=None,
        mongo_uri="mongodb://localhost:27017",
        database_name=f"marketplace_test_{uuid.uuid4().hex[:8]}",
        receipts_dir=str(tmp_path / "receipts"),
        store_connect_max_attempts=3,
        store_connect_base_delay=0,
        store_connect_max_delay=0,
        app_name="marketplace-test",
        app_env="test",
        log_level="DEBUG",
        debug=True,
    )


@pytest.fixture
def store(test_settings: Settings) -> MongoStore:
    """In-memory store handle."""
    return MongoStore(AsyncMongoMockClient(), test_settings)


@pytest.fixture
def clock() -> StepClock:
    return StepClock()


@pytest.fixture
def renderer(test_settings: Settings) -> ReceiptRenderer:
    return ReceiptRenderer(test_settings)


@pytest.fixture
def product_store(store: MongoStore) -> ProductStore:
    return ProductStore(store)


@pytest.fixture
def transaction_store(store: MongoStore) -> TransactionStore:
    return TransactionStore(store)


@pytest_asyncio.fixture
async def workflow(
    transaction_store: TransactionStore, renderer: ReceiptRenderer, clock: StepClock
) -> AsyncGenerator[TransactionWorkflow, Any]:
    """Transaction workflow over the in-memory store."""
    workflow = TransactionWorkflow(transaction_store, renderer, clock=clock)
    yield workflow
    await workflow.drain()


@pytest.fixture
def catalog_app(test_settings: Settings, store: MongoStore) -> FastAPI:
    return create_app(CATALOG, settings=test_settings, store=store)


@pytest.fixture
def transactions_app(test_settings: Settings, store: MongoStore, clock: StepClock) -> FastAPI:
    app = create_app(TRANSACTIONS, settings=test_settings, store=store)
    app.state.workflow.clock = clock
    return app


@pytest_asyncio.fixture
async def catalog_client(catalog_app: FastAPI) -> AsyncGenerator[AsyncClient, Any]:
    """HTTP client for the catalog service."""
    transport = ASGITransport(app=catalog_app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def transactions_client(
    transactions_app: FastAPI,
) -> AsyncGenerator[AsyncClient, Any]:
    """HTTP client for the transactions service."""
    transport = ASGITransport(app=transactions_app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    await transactions_app.state.workflow.drain()


@pytest.fixture
def sample_cart() -> list[Product]:
    return [Product(name="Widget", price=9.99), Product(name="Gadget", price=5.00)]


@pytest.fixture
def sample_customer() -> Customer:
    return Customer(id="c1", name="Ann", email="a@x.com")


@pytest.fixture
def sample_transaction_data() -> dict[str, Any]:
    """Sample create-transaction request body."""
    return {
        "cartItems": [
            {"name": "Widget", "price": 9.99},
            {"name": "Gadget", "price": 5.00},
        ],
        "customer": {"id": "c1", "name": "Ann", "email": "a@x.com"},
    }


@pytest.fixture
def sample_payment_form() -> dict[str, Any]:
    """Sample card payment form."""
    return {
        "cardNumber": "4242 4242 4242 4242",
        "expirationDate": "12/30",
        "cvv": "123",
        "name": "Ann",
        "address": "1 Main St",
    }
