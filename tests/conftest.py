"""
tests/conftest.py -- Shared test fixtures for unidir unit and integration tests.

This module provides:
  - make_store(): isolated named shared-memory SQLite AccountStore
  - make_account(): insert an account directly through the store
  - _patch_lifespan(): wires test components into app.state, bypassing real startup
  - api_client: TestClient + store + admin token for API integration tests

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs sync route handlers in a thread pool. Plain :memory:
DBs are per-connection and would present a blank schema to each worker thread.
The named URI format (file:name?mode=memory&cache=shared&uri=true) shares
one in-memory instance across all connections in the same process.

The JWT secrets must be in the environment before any api/ import, because
api/main.py reads Settings at import time to configure its middleware.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager
from unittest.mock import MagicMock

# CRITICAL: Set the signing secrets before any api/ or core/ import so
# get_settings() can build a valid Settings instance.
os.environ.setdefault("JWT_SECRET", "test-access-secret-0123456789abcdef0123456789")
os.environ.setdefault("JWT_REFRESH_SECRET", "test-refresh-secret-fedcba9876543210fedcba98")
# Minimum bcrypt cost keeps the suite fast; production default is 10.
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import pytest
from fastapi.testclient import TestClient

from api.limiter import limiter
from api.main import app
from auth.models import Account
from auth.passwords import hash_password
from auth.service import AuthService
from auth.store import AccountStore
from auth.tokens import TokenCodec
from core.config import get_settings
from core.models import AccountStatus, Campus, Role
from directory.service import DirectoryService

TEST_PASSWORD = "Password@123"  # noqa: S105 # nosec B105 -- test fixture credential

# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


def make_store(db_suffix: str | None = None) -> AccountStore:
    """Create an isolated named shared-memory SQLite store.

    Named URIs allow multiple connections (from different threads in TestClient)
    to access the same in-memory database. Plain ':memory:' would give each
    thread a blank schema, causing 'no such table' errors on the first query.

    Args:
        db_suffix: Unique string appended to the DB name so test modules
                   don't share state. Random when omitted.
    """
    suffix = db_suffix or uuid.uuid4().hex
    return AccountStore(db_url=f"sqlite:///file:test_unidir_{suffix}?mode=memory&cache=shared&uri=true")


def make_account(
    store: AccountStore,
    email: str,
    *,
    role: Role = Role.OFFICE_HEAD,
    status: AccountStatus = AccountStatus.ACTIVE,
    password: str = TEST_PASSWORD,
    campus: Campus = Campus.TALISAY,
    **fields,
) -> Account:
    """Insert an account directly, bypassing DirectoryService checks."""
    username = fields.pop("username", email.split("@", 1)[0].replace(".", "_"))
    return store.create(
        Account(
            email=email,
            username=username,
            first_name=fields.pop("first_name", "Test"),
            last_name=fields.pop("last_name", "User"),
            password_hash=hash_password(password, rounds=4),
            role=role,
            status=status,
            campus=campus,
            **fields,
        )
    )


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


# ---------------------------------------------------------------------------
# Component fixtures (unit tests)
# ---------------------------------------------------------------------------


@pytest.fixture()
def settings():
    return get_settings()


@pytest.fixture()
def store() -> Generator[AccountStore, None, None]:
    s = make_store()
    yield s
    s.close()


@pytest.fixture()
def codec(settings) -> TokenCodec:
    return TokenCodec.from_settings(settings)


@pytest.fixture()
def auth_service(store, codec, settings) -> AuthService:
    return AuthService(store, codec, settings)


@pytest.fixture()
def directory(store, settings) -> DirectoryService:
    return DirectoryService(store, bcrypt_rounds=settings.bcrypt_rounds)


@pytest.fixture(autouse=True)
def _reset_rate_limits() -> None:
    """Login tests share one client IP; clear slowapi counters between tests."""
    limiter.reset()


# ---------------------------------------------------------------------------
# App fixtures (integration tests)
# ---------------------------------------------------------------------------


def _patch_lifespan(store: AccountStore, oauth=None):
    """Return an async context manager that replaces the real lifespan.

    Wires the test store and components built from it into app.state so
    TestClient routes see an isolated test DB rather than the production
    database. The OAuth registry is a MagicMock unless a test passes one,
    so no request ever reaches Google.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        settings = get_settings()
        app.state.settings = settings
        app.state.account_store = store
        app.state.token_codec = TokenCodec.from_settings(settings)
        app.state.auth_service = AuthService(store, app.state.token_codec, settings)
        app.state.directory = DirectoryService(store, bcrypt_rounds=settings.bcrypt_rounds)
        app.state.oauth = oauth if oauth is not None else MagicMock()
        yield

    return test_lifespan


@pytest.fixture(scope="module")
def api_client(request) -> Generator[tuple[TestClient, AccountStore, str], None, None]:
    """Yield (client, store, admin_token) for API integration tests.

    The TestClient uses the real FastAPI app with a patched lifespan so
    tests hit real route handlers but use an isolated in-memory store.
    The admin account is created before the client starts and its access
    token is issued for use in Authorization headers.
    """
    store = make_store(request.module.__name__.rsplit(".", 1)[-1])
    admin = make_account(store, "admin@university.edu", role=Role.ADMIN, username="admin")
    token = TokenCodec.from_settings(get_settings()).issue_access(admin.id, admin.email, admin.role)

    app.router.lifespan_context = _patch_lifespan(store)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, store, token

    store.close()
