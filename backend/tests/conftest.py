"""Pytest fixtures for SecureShop tests.

Provides reusable test fixtures for:
- In-memory SQLite database session, fresh per test
- Test users (alice, bob, an administrator, a disabled user)
- Catalog products
- A TestClient wired to the test session
- Helpers to obtain bearer headers through the real login endpoint

Usage:
    def test_my_orders(client, alice, login):
        headers = login("alice")
        response = client.get("/api/v1/orders", headers=headers)
        assert response.status_code == 200
"""

import sys
import os
from pathlib import Path

# Set environment variables BEFORE any application imports
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("PASSWORD_PEPPER", "test-pepper-secret-key-32-chars-long")
os.environ.setdefault("JWT_SECRET", "test-jwt-secret-key-256-bits-minimum-length-required-for-security")
# Cheap Argon2 parameters keep the suite fast
os.environ.setdefault("ARGON2_TIME_COST", "1")
os.environ.setdefault("ARGON2_MEMORY_COST", "1024")
os.environ.setdefault("ARGON2_PARALLELISM", "1")
# Unreachable Redis: rate limiting degrades to a no-op
os.environ.setdefault("REDIS_URL", "redis://127.0.0.1:1/0")
os.environ.setdefault("LOGIN_MAX_ATTEMPTS", "10000")
os.environ.setdefault("LOCKOUT_THRESHOLD", "10000")
os.environ.setdefault("LOG_JSON", "false")

import pytest
from decimal import Decimal
from typing import Callable, Dict, Generator, Optional

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

backend_src = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(backend_src))

from models.base import Base
from models.user import User
from models.product import Product
from auth.password import hash_password
from database import get_db as database_get_db


DEFAULT_PASSWORD = "MyP@ssw0rd2024!"

# One shared in-memory database for the app and the test code
test_engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


@pytest.fixture(scope="function")
def db_session() -> Generator[Session, None, None]:
    """Create a fresh database session for each test.

    Creates all tables before the test and drops them after.
    """
    Base.metadata.create_all(bind=test_engine)

    session = TestingSessionLocal()

    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=test_engine)


@pytest.fixture(scope="function")
def make_user(db_session: Session) -> Callable[..., User]:
    """Factory for persisted users with DEFAULT_PASSWORD unless given."""

    def _make_user(
        username: str,
        role: str = "USER",
        enabled: bool = True,
        password: str = DEFAULT_PASSWORD,
        email: Optional[str] = None,
    ) -> User:
        user = User(
            username=username,
            email=email or f"{username}@example.com",
            password_hash=hash_password(password),
            role=role,
            enabled=enabled,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make_user


@pytest.fixture(scope="function")
def alice(make_user) -> User:
    return make_user("alice")


@pytest.fixture(scope="function")
def bob(make_user) -> User:
    return make_user("bob")


@pytest.fixture(scope="function")
def admin_user(make_user) -> User:
    return make_user("admin", role="ADMIN")


@pytest.fixture(scope="function")
def disabled_user(make_user) -> User:
    return make_user("mallory", enabled=False)


@pytest.fixture(scope="function")
def make_product(db_session: Session) -> Callable[..., Product]:
    """Factory for persisted catalog products."""

    def _make_product(
        name: str,
        price: str = "19.99",
        stock: int = 10,
        category: str = "gadgets",
        active: bool = True,
        description: Optional[str] = None,
    ) -> Product:
        product = Product(
            name=name,
            description=description,
            price=Decimal(price),
            stock=stock,
            category=category,
            active=active,
        )
        db_session.add(product)
        db_session.commit()
        db_session.refresh(product)
        return product

    return _make_product


@pytest.fixture(scope="function")
def widget(make_product) -> Product:
    return make_product("Widget", price="19.99", stock=10)


@pytest.fixture(scope="function")
def gadget(make_product) -> Product:
    return make_product("Gadget", price="5.50", stock=3, category="tools")


@pytest.fixture(scope="function")
def client(db_session: Session) -> Generator[TestClient, None, None]:
    """Unauthenticated test client bound to the test database session."""
    from main import app

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[database_get_db] = override_get_db

    yield TestClient(app)

    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def login(client: TestClient) -> Callable[..., Dict[str, str]]:
    """Log in through POST /auth/login and return bearer headers."""

    def _login(identifier: str, password: str = DEFAULT_PASSWORD, headers: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        response = client.post(
            "/api/v1/auth/login",
            json={"identifier": identifier, "password": password},
            headers=headers or {},
        )
        assert response.status_code == 200, response.text
        return {"Authorization": f"Bearer {response.json()['access_token']}"}

    return _login


@pytest.fixture(scope="function")
def place_order(client: TestClient) -> Callable[..., dict]:
    """Create an order through the API and return its JSON body."""

    def _place_order(headers: Dict[str, str], product: Product, quantity: int = 1) -> dict:
        response = client.post(
            "/api/v1/orders",
            json={
                "items": [{"product_id": str(product.id), "quantity": quantity}],
                "shipping_address": "1 Main Street, Springfield",
                "receiver_name": "Receiver",
                "receiver_phone": "+1 555-0100",
            },
            headers=headers,
        )
        assert response.status_code == 201, response.text
        return response.json()

    return _place_order
