"""
Pytest configuration and shared test fixtures.

This module provides test settings, caller identities, the order lifecycle
service wired to in-memory collaborators, a seeded SQLite database for
repository and API tests, and the FastAPI test client.
"""

import os

# Settings are cached on first use; the test environment must be in place
# before any application module is imported.
os.environ.setdefault("APP_ENVIRONMENT", "test")
os.environ.setdefault("APP_DATABASE_URL", "sqlite://")
os.environ.setdefault("APP_SECRET_KEY", "test-secret-key-for-order-lifecycle-tests")
os.environ.setdefault("APP_RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("APP_LOG_LEVEL", "DEBUG")

from decimal import Decimal
from typing import Dict, Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from restaurant_orders.database.connection import get_db
from restaurant_orders.database.models import (
    Base,
    Product,
    Restaurant,
    User,
)
from restaurant_orders.main import app
from restaurant_orders.services.auth.identity import IdentityContext, UserRole
from restaurant_orders.services.orders.service import OrderLifecycleService
from tests.factories import (
    ADMIN_ID,
    CLIENT_ID,
    OTHER_CLIENT_ID,
    OTHER_OWNER_ID,
    OTHER_RESTAURANT_ID,
    OWNER_ID,
    PRODUCT_ID,
    RESTAURANT_ID,
    SECOND_PRODUCT_ID,
    make_identity,
)
from tests.fakes import (
    FakeClock,
    InMemoryClientLookup,
    InMemoryOrderStore,
    InMemoryProductLookup,
    InMemoryRestaurantLookup,
)


# ============================================================================
# Identities
# ============================================================================


@pytest.fixture
def client_identity() -> IdentityContext:
    return make_identity(CLIENT_ID, UserRole.CLIENTE)


@pytest.fixture
def other_client_identity() -> IdentityContext:
    return make_identity(OTHER_CLIENT_ID, UserRole.CLIENTE)


@pytest.fixture
def owner_identity() -> IdentityContext:
    """RESTAURANTE identity owning restaurant 1."""
    return make_identity(OWNER_ID, UserRole.RESTAURANTE)


@pytest.fixture
def other_owner_identity() -> IdentityContext:
    """RESTAURANTE identity owning restaurant 2 only."""
    return make_identity(OTHER_OWNER_ID, UserRole.RESTAURANTE)


@pytest.fixture
def admin_identity() -> IdentityContext:
    return make_identity(ADMIN_ID, UserRole.ADMIN)


# ============================================================================
# Service fixtures
# ============================================================================


@pytest.fixture
def restaurant_owners() -> Dict[int, int]:
    return {RESTAURANT_ID: OWNER_ID, OTHER_RESTAURANT_ID: OTHER_OWNER_ID}


@pytest.fixture
def order_store(restaurant_owners: Dict[int, int]) -> InMemoryOrderStore:
    return InMemoryOrderStore(restaurant_owners)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def order_service(
    order_store: InMemoryOrderStore,
    restaurant_owners: Dict[int, int],
    clock: FakeClock,
) -> OrderLifecycleService:
    """
    Create OrderLifecycleService wired to in-memory collaborators.

    Restaurant 1 is owned by user 5, restaurant 2 by user 99. Clients 10 and
    11 exist, as do products 1 and 2.
    """
    return OrderLifecycleService(
        orders=order_store,
        restaurants=InMemoryRestaurantLookup(restaurant_owners),
        clients=InMemoryClientLookup([CLIENT_ID, OTHER_CLIENT_ID]),
        products=InMemoryProductLookup([PRODUCT_ID, SECOND_PRODUCT_ID]),
        clock=clock,
    )


# ============================================================================
# Database fixtures
# ============================================================================


@pytest.fixture
def db_engine():
    """
    Create an in-memory SQLite engine with every table.

    StaticPool keeps one connection so the TestClient worker thread sees the
    same database as the test.
    """
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def db_session(db_engine) -> Generator[Session, None, None]:
    """
    Create a database session seeded with users, restaurants and products.

    Seed data mirrors the in-memory fixtures: owners 5 and 99, clients 10
    and 11, admin 1, restaurant 1 "La Esquina" owned by 5, restaurant 2
    "Don Pepe" owned by 99, and products 1 and 2 on restaurant 1.
    """
    factory = sessionmaker(bind=db_engine, expire_on_commit=False, autoflush=False)
    session = factory()

    session.add_all(
        [
            User(id=ADMIN_ID, email="admin@example.com", full_name="Admin", role=UserRole.ADMIN),
            User(id=OWNER_ID, email="owner@example.com", full_name="Owner", role=UserRole.RESTAURANTE),
            User(id=OTHER_OWNER_ID, email="other.owner@example.com", full_name="Other Owner", role=UserRole.RESTAURANTE),
            User(id=CLIENT_ID, email="client@example.com", full_name="Client", role=UserRole.CLIENTE),
            User(id=OTHER_CLIENT_ID, email="other.client@example.com", full_name="Other Client", role=UserRole.CLIENTE),
        ]
    )
    session.flush()
    session.add_all(
        [
            Restaurant(id=RESTAURANT_ID, owner_id=OWNER_ID, name="La Esquina"),
            Restaurant(id=OTHER_RESTAURANT_ID, owner_id=OTHER_OWNER_ID, name="Don Pepe"),
        ]
    )
    session.flush()
    session.add_all(
        [
            Product(id=PRODUCT_ID, restaurant_id=RESTAURANT_ID, name="Empanada", price=Decimal("14.99")),
            Product(id=SECOND_PRODUCT_ID, restaurant_id=RESTAURANT_ID, name="Arepa", price=Decimal("5.50")),
        ]
    )
    session.commit()

    yield session

    session.rollback()
    session.close()


# ============================================================================
# API fixtures
# ============================================================================


@pytest.fixture(scope="function")
def test_client(db_session: Session) -> Generator[TestClient, None, None]:
    """
    Create a test client whose requests use the seeded database session.

    Yields:
        TestClient: Synchronous test client for FastAPI app

    Example:
        def test_health_endpoint(test_client):
            response = test_client.get("/health")
            assert response.status_code == 200
    """

    def override_get_db() -> Generator[Session, None, None]:
        try:
            yield db_session
            db_session.commit()
        except Exception:
            db_session.rollback()
            raise

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()
