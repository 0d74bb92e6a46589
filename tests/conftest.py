"""
tests/conftest.py -- Shared fixtures for AutoSales unit and integration tests.

This module provides:
  - stores:      isolated UserStore + SaleStore on a fresh in-memory database
  - codec:       TokenCodec with a fixed test secret
  - make_user:   factory that inserts a user with a known password
  - headers_for: builds the x-auth-token header for a stored user
  - client:      TestClient over the real app with a patched lifespan

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs route handlers in a thread pool, and because the two
stores open separate engines that must see the same database. Each test gets
its own database name, so state never leaks between tests.

The DEBUG env var must be set before any api/ import so get_settings()
auto-generates SECRET_KEY in dev mode rather than raising ValueError.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager

# CRITICAL: Set DEBUG before any api/core import so get_settings() can
# auto-generate SECRET_KEY in dev mode instead of raising ValueError.
os.environ.setdefault("DEBUG", "true")

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.models import User
from auth.store import UserStore
from auth.tokens import TokenCodec, hash_password
from ledger.store import SaleStore

TEST_SECRET = "test-secret-key-that-is-at-least-32-chars"
TEST_PASSWORD = "secret123"
_TEST_HASH = hash_password(TEST_PASSWORD)


def _memory_url() -> str:
    return f"sqlite:///file:test_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true"


def _patch_lifespan(user_store: UserStore, sale_store: SaleStore, codec: TokenCodec):
    """Return an async context manager that replaces the real lifespan.

    Wires the test stores and codec into app.state so routes use isolated
    databases and a known signing key.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.user_store = user_store
        app.state.sale_store = sale_store
        app.state.codec = codec
        app.state.frontend_url = "http://frontend.test"
        yield

    return test_lifespan


@pytest.fixture
def stores() -> Generator[tuple[UserStore, SaleStore], None, None]:
    url = _memory_url()
    user_store = UserStore(url)
    sale_store = SaleStore(url)
    yield user_store, sale_store
    sale_store.close()
    user_store.close()


@pytest.fixture
def user_store(stores) -> UserStore:
    return stores[0]


@pytest.fixture
def sale_store(stores) -> SaleStore:
    return stores[1]


@pytest.fixture
def codec() -> TokenCodec:
    return TokenCodec(TEST_SECRET, access_ttl=5 * 3600, reset_ttl=3600)


@pytest.fixture
def make_user(user_store):
    """Insert a user and return the stored record.

    All seeded users share TEST_PASSWORD; the hash is computed once per
    module import because bcrypt is slow.
    """
    counter = {"n": 0}

    def _make(
        name: str = "",
        role: str = "customer",
        status: str = "active",
        created_by: int | None = None,
        email: str | None = None,
    ) -> User:
        counter["n"] += 1
        name = name or f"{role}{counter['n']}"
        uid = user_store.create_user(
            User(
                name=name,
                email=email or f"{name.lower()}@example.com",
                password_hash=_TEST_HASH,
                phone="5550001111",
                role=role,
                status=status,
                created_by=created_by,
            )
        )
        return user_store.get_by_id(uid)

    return _make


@pytest.fixture
def headers_for(codec):
    def _headers(user: User) -> dict[str, str]:
        return {"x-auth-token": codec.issue_access(user.id, user.role)}

    return _headers


@pytest.fixture
def client(user_store, sale_store, codec) -> Generator[TestClient, None, None]:
    """TestClient over the real app and routes with isolated stores."""
    app.router.lifespan_context = _patch_lifespan(user_store, sale_store, codec)
    with TestClient(app, raise_server_exceptions=True) as c:
        yield c


@pytest.fixture
def sale_body():
    """Factory for a valid POST /api/vehiclesales/create body."""

    def _body(customer_id: int, **overrides) -> dict:
        body = {
            "vehicleDetails": {
                "make": "Toyota",
                "model": "Corolla",
                "year": 2020,
                "vin": "JTDBR32E720012345",
                "price": 15000,
            },
            "customer": customer_id,
            "paymentDetails": {
                "amountPaid": 1000,
                "amountDue": 14000,
                "paymentStatus": "Pending",
                "currency": "USD",
            },
            "estimatedDelivery": "2030-06-01T00:00:00+00:00",
        }
        body.update(overrides)
        return body

    return _body
