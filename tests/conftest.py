"""Shared fixtures for storefront tests."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

import pytest
from fastapi.testclient import TestClient

from storefront.domain.catalog import ProductApplication, ProductRepository
from storefront.domain.identity import UserApplication, UserRepository
from storefront.domain.ordering import OrderApplication, OrderRepository
from storefront.infra.auth import AuthGate, AuthSettings, BcryptPasswordHasher, JWTTokenCodec
from storefront.infra.fastapi import create_app
from storefront.infra.persistence import InMemoryKeyRegistry

if TYPE_CHECKING:
    from collections.abc import Iterator

    from fastapi import FastAPI

POPO_ENV = {"PERSISTENCE_MODULE": "eventsourcing.popo"}
TEST_SECRET = "test-signing-secret-with-at-least-32-bytes"
ADMIN_EMAIL = "admin@storefront.test"
ADMIN_PASSWORD = "AdminPass123"


class FrozenClock:
    """Clock that only moves when a test moves it."""

    def __init__(self, start: datetime) -> None:
        self._now = start

    def now(self) -> datetime:
        return self._now

    def advance(self, delta: timedelta) -> None:
        self._now += delta

    def set(self, moment: datetime) -> None:
        self._now = moment


@pytest.fixture()
def clock() -> FrozenClock:
    return FrozenClock(datetime(2026, 3, 15, 12, 0, tzinfo=UTC))


@pytest.fixture()
def hasher() -> BcryptPasswordHasher:
    """Minimum work factor keeps the suite fast."""
    return BcryptPasswordHasher(rounds=4)


@pytest.fixture()
def codec() -> JWTTokenCodec:
    return JWTTokenCodec(TEST_SECRET)


@pytest.fixture()
def user_repository() -> UserRepository:
    app = UserApplication(env=POPO_ENV)
    return UserRepository(app, InMemoryKeyRegistry("user_email_registry"))


@pytest.fixture()
def order_repository() -> OrderRepository:
    app = OrderApplication(env=POPO_ENV)
    return OrderRepository(
        app,
        InMemoryKeyRegistry("order_number_registry"),
        InMemoryKeyRegistry("order_owner_index"),
    )


@pytest.fixture()
def product_repository() -> ProductRepository:
    app = ProductApplication(env=POPO_ENV)
    return ProductRepository(app, InMemoryKeyRegistry("product_sku_registry"))


@pytest.fixture()
def gate(codec: JWTTokenCodec, user_repository: UserRepository, clock: FrozenClock) -> AuthGate:
    return AuthGate(codec, user_repository, clock, timedelta(days=7))


@pytest.fixture()
def auth_settings() -> AuthSettings:
    return AuthSettings(
        jwt_secret=TEST_SECRET,
        bcrypt_rounds=4,
        rate_limit_attempts=1000,
        bootstrap_admin_email=ADMIN_EMAIL,
        bootstrap_admin_password=ADMIN_PASSWORD,
    )


@pytest.fixture()
def storefront_app(auth_settings: AuthSettings, clock: FrozenClock) -> FastAPI:
    """Fresh application with in-memory persistence for each test."""
    return create_app(auth_settings=auth_settings, clock=clock, persistence_env=POPO_ENV)


@pytest.fixture()
def client(storefront_app: FastAPI) -> Iterator[TestClient]:
    """TestClient for the storefront app (lifespan hooks executed)."""
    with TestClient(storefront_app, raise_server_exceptions=False) as c:
        yield c


def register(client: TestClient, email: str, password: str = "Passw0rdOk") -> dict:
    """Register a customer and return the token response body.

    The credential cookie is dropped so that each request authenticates
    only with the headers it sends explicitly.
    """
    resp = client.post("/auth/register", json={"email": email, "password": password})
    assert resp.status_code == 201, resp.text
    client.cookies.clear()
    return resp.json()


def login(client: TestClient, email: str, password: str) -> dict:
    resp = client.post("/auth/login", json={"email": email, "password": password})
    assert resp.status_code == 200, resp.text
    client.cookies.clear()
    return resp.json()


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def admin_token(client: TestClient) -> str:
    return login(client, ADMIN_EMAIL, ADMIN_PASSWORD)["access_token"]


def list_product(client: TestClient, token: str, sku: str, price: int, stock: int = 10) -> dict:
    """Add a product to the catalog as an administrator."""
    resp = client.post(
        "/products",
        json={
            "sku": sku,
            "name": f"Product {sku}",
            "description": f"Catalog entry for {sku}",
            "brand": "Acme",
            "category": "equipment",
            "price": price,
            "stock": stock,
        },
        headers=bearer(token),
    )
    assert resp.status_code == 201, resp.text
    return resp.json()
