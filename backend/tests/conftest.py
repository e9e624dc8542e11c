"""
Pytest configuration and shared test fixtures.

Pins the test environment before the application is imported, and provides
the in-memory marketplace used by service tests and a FastAPI test client
whose database session is overridden.
"""

import os

os.environ.setdefault("APP_ENVIRONMENT", "test")
os.environ.setdefault("APP_LOG_LEVEL", "WARNING")

from decimal import Decimal
from typing import Any, Generator
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession

from factories import (
    FakeOrderRepository,
    FakeProductRepository,
    FakeStore,
    FakeUserRepository,
    make_district,
    make_product,
    make_user,
)
from ponno.database.connection import get_db
from ponno.database.models import UserRole
from ponno.main import app
from ponno.services.orders.service import OrderService


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def order_service(store: FakeStore) -> OrderService:
    """
    OrderService wired to the in-memory store.

    Uses a 5.00 commission rate regardless of configuration.
    """
    service = OrderService(AsyncMock(spec=AsyncSession), commission_rate=Decimal("5.00"))
    service.orders = FakeOrderRepository(store)
    service.products = FakeProductRepository(store)
    service.users = FakeUserRepository(store)
    return service


@pytest.fixture
def marketplace(store: FakeStore) -> dict[str, Any]:
    """
    Two districts with a farmer, a product, agents and users of every role.

    Product P is priced 50.00 with 10 units in district D1; agent A works in
    D1 and agent B in D2.
    """
    d1 = make_district("Dhaka")
    d2 = make_district("Sylhet")
    farmer = make_user(UserRole.FARMER, d1.id, name="Farmer F")
    other_farmer = make_user(UserRole.FARMER, d1.id, name="Farmer G")
    customer = make_user(UserRole.CUSTOMER, d1.id, name="Customer C")
    other_customer = make_user(UserRole.CUSTOMER, d1.id, name="Customer E")
    agent_a = make_user(UserRole.AGENT, d1.id, name="Agent A")
    agent_b = make_user(UserRole.AGENT, d2.id, name="Agent B")
    admin = make_user(UserRole.ADMIN, None, name="Admin")
    product = make_product(farmer, d1.id)

    store.add(farmer, other_farmer, customer, other_customer, agent_a, agent_b, admin, product)

    return {
        "d1": d1,
        "d2": d2,
        "farmer": farmer,
        "other_farmer": other_farmer,
        "customer": customer,
        "other_customer": other_customer,
        "agent_a": agent_a,
        "agent_b": agent_b,
        "admin": admin,
        "product": product,
    }


@pytest.fixture
def mock_session() -> AsyncMock:
    return AsyncMock(spec=AsyncSession)


@pytest.fixture
def test_client(mock_session: AsyncMock) -> Generator[TestClient, None, None]:
    """
    Synchronous test client with the database session overridden.

    The lifespan is not entered, so no database connection is attempted.
    Tests authenticate with ``factories.login_as(user)``.
    """

    async def override_get_db():
        yield mock_session

    app.dependency_overrides[get_db] = override_get_db
    client = TestClient(app, raise_server_exceptions=False)
    try:
        yield client
    finally:
        app.dependency_overrides.clear()
