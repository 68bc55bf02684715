"""Pytest fixtures for storefront order service tests."""

import os
import threading
import time
from decimal import Decimal

os.environ.setdefault("DATABASE_URL", "sqlite://")

import jwt
import pytest
from sqlalchemy.orm import sessionmaker

from app.data.database import Base, make_engine
from app.data.models import ProductModel, ProductVariantModel, UserModel
from app.services.lock_service import LockService
from app.utils.settings import JWT_SECRET, JWT_ALGORITHM


class InMemoryRedis:
    """Thread-safe stand-in for the two redis calls LockService makes."""

    def __init__(self):
        self._data = {}
        self._mutex = threading.Lock()

    def set(self, name, value, nx=False, ex=None):
        with self._mutex:
            now = time.monotonic()
            current = self._data.get(name)
            if current and current[1] is not None and current[1] <= now:
                current = None
            if nx and current is not None:
                return None
            self._data[name] = (value, now + ex if ex else None)
            return True

    def get(self, name):
        with self._mutex:
            current = self._data.get(name)
            return current[0] if current else None

    def eval(self, script, numkeys, key, token):
        # compare-and-delete, same contract as the release script
        with self._mutex:
            current = self._data.get(key)
            if current and current[0] == token:
                del self._data[key]
                return 1
            return 0


@pytest.fixture
def engine(tmp_path):
    """File-backed SQLite so sessions in different threads share data."""
    eng = make_engine(f"sqlite:///{tmp_path / 'store.db'}")
    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def redis_client():
    return InMemoryRedis()


@pytest.fixture
def lock_service(redis_client):
    return LockService(client=redis_client)


@pytest.fixture
def catalog(session_factory):
    """Two users and two products.

    Product 1: $10, stock 5.  Product 2: $25, stock 10, with a $30 variant.
    """
    session = session_factory()
    session.add_all([
        UserModel(id=1, name="Alice"),
        UserModel(id=2, name="Bob"),
        UserModel(id=99, name="Admin", is_admin=True),
    ])
    session.add_all([
        ProductModel(
            id=1,
            title="Product A",
            slug="product-a",
            price=Decimal("10.00"),
            images=["/img/a.jpg"],
            stock=5,
        ),
        ProductModel(
            id=2,
            title="Product B",
            slug="product-b",
            price=Decimal("25.00"),
            images=["/img/b.jpg", "/img/b2.jpg"],
            stock=10,
            variants=[
                ProductVariantModel(id=1, name="Zip", image="/img/b-zip.jpg", price=Decimal("30.00")),
            ],
        ),
    ])
    session.commit()
    session.close()


@pytest.fixture
def stock_of(session_factory):
    """Read a product's stock through a fresh session."""
    def _stock(product_id):
        session = session_factory()
        try:
            return session.get(ProductModel, product_id).stock
        finally:
            session.close()
    return _stock


def make_token(user_id, is_admin=False):
    return jwt.encode(
        {"sub": str(user_id), "is_admin": is_admin},
        JWT_SECRET,
        algorithm=JWT_ALGORITHM,
    )


@pytest.fixture
def auth_headers():
    def _headers(user_id=1, is_admin=False):
        return {"Authorization": f"Bearer {make_token(user_id, is_admin)}"}
    return _headers
