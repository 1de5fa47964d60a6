"""Pytest fixtures for storefront tests."""

import os
import tempfile

# Settings are read at import time: point the app at a throwaway SQLite file first
_TMP_DIR = tempfile.mkdtemp(prefix="storefront-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TMP_DIR, 'test.db')}"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["PASSWORD_HASH_ITERATIONS"] = "1000"
os.environ["SMTP_HOST"] = ""

import pytest
from fastapi.testclient import TestClient

from config.database import Base, SessionLocal, engine
from common.security import create_user_token, hash_password
from main import app
from modules.catalog.service import product_service
from modules.user.models import User


@pytest.fixture(autouse=True)
def _reset_schema():
    """Fresh tables for every test."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c


@pytest.fixture
def make_user(db):
    """Create a user directly in the database."""
    counter = {"n": 0}

    def _make(name="Test User", email=None, password="password123"):
        counter["n"] += 1
        user = User(
            name=name,
            email=email or f"user{counter['n']}@example.com",
            password_hash=hash_password(password),
        )
        db.add(user)
        db.commit()
        return user

    return _make


@pytest.fixture
def make_product(db):
    """Create a product; defaults to a Men's T-shirt in all sizes with 10 in stock."""

    def _make(name="Test T-Shirt", price="20.00", stock=10, sizes=("S", "M", "L", "XL"),
              category="Men", description="A test product"):
        product = product_service.create(db, {
            "name": name,
            "description": description,
            "price": price,
            "category": category,
            "sizes": list(sizes),
            "stock": stock,
            "image_url": "https://example.com/img.png",
        })
        db.commit()
        return product

    return _make


@pytest.fixture
def auth_headers():
    def _headers(user):
        return {"Authorization": f"Bearer {create_user_token(user.id)}"}

    return _headers


@pytest.fixture
def user(make_user):
    return make_user()


@pytest.fixture
def headers(user, auth_headers):
    return auth_headers(user)
