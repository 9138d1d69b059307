"""Pytest configuration & fixtures.

Every test gets:
1. A fresh in-memory SQLite database shared by the app and the test through
   ``StaticPool``.
2. A freshly built app (own rate limiter) whose ``get_db`` dependency is
   overridden to use that database.
3. Factory fixtures for users and bearer headers.

Usage:
    def test_my_endpoint(client, auth_headers):
        resp = client.get("/api/assets", headers=auth_headers("operator"))
        assert resp.status_code == 200
"""

import os
import uuid

# Settings are read at import time; configure before importing the app
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENABLE_METRICS"] = "false"
os.environ["RATE_LIMIT"] = "10000/minute"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["JWT_SECRET"] = "test-secret-key-for-jwt-signing-000"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from mis.db import Base, enable_sqlite_foreign_keys, get_db
from mis.main import create_app
from mis.models.models import User
from mis.auth.security import create_access_token, get_password_hash


# =============================================================================
# Database
# =============================================================================

@pytest.fixture
def db_engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    """Short-lived sessions for arranging and inspecting data.

    Use as ``with session_factory() as s:`` so nothing stale survives
    between the test's checks and the app's own sessions.
    """
    return sessionmaker(bind=db_engine, autoflush=False, autocommit=False)


# =============================================================================
# API Client
# =============================================================================

@pytest.fixture
def client(session_factory):
    app = create_app()

    def _override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = _override_get_db
    # No context manager: startup (create_all on the real engine) stays off
    return TestClient(app)


# =============================================================================
# Authentication Fixtures
# =============================================================================

@pytest.fixture
def make_user(session_factory):
    """Factory fixture persisting a user and returning it detached."""

    def _make(role="operator", email=None, password="secret123", plaintext=False, is_active=True):
        email = email or f"{role}-{uuid.uuid4().hex[:8]}@plant.io"
        with session_factory() as s:
            user = User(
                email=email,
                full_name=f"{role.title()} User",
                role=role,
                is_active=is_active,
                password=password if plaintext else get_password_hash(password),
            )
            s.add(user)
            s.commit()
            s.refresh(user)
            s.expunge(user)
        return user

    return _make


def bearer(user) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user)}"}


@pytest.fixture
def auth_headers(make_user):
    """Factory fixture: headers for a new user holding ``role``."""

    def _headers(role="admin"):
        return bearer(make_user(role))

    return _headers


# =============================================================================
# Domain helpers
# =============================================================================

@pytest.fixture
def create_asset(client, auth_headers):
    admin = auth_headers("admin")

    def _create(**fields):
        body = {"asset_code": f"AST-{uuid.uuid4().hex[:6]}", "asset_name": "Test Machine"}
        body.update(fields)
        resp = client.post("/api/assets", json=body, headers=admin)
        assert resp.status_code == 201, resp.text
        return resp.json()

    return _create


@pytest.fixture
def create_spare(client, auth_headers):
    admin = auth_headers("admin")

    def _create(**fields):
        body = {"part_code": f"SP-{uuid.uuid4().hex[:6]}", "part_name": "Bearing", "current_stock": 10, "reorder_level": 2}
        body.update(fields)
        resp = client.post("/api/spares", json=body, headers=admin)
        assert resp.status_code == 201, resp.text
        return resp.json()

    return _create


@pytest.fixture
def headers_for():
    """Bearer headers for an existing user."""
    return bearer
