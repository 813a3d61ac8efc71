"""
tests/conftest.py -- Shared fixtures for the workspace test suite.

This module provides:
  - store / provisioner / issuer / guard: unit fixtures over a private
    in-memory SQLite database per test
  - verifier: CredentialVerifier for admin@x.com / testpass123 (session-scoped,
    bcrypt hashing is deliberately slow)
  - admin_identity / admin_login: the configured principal and its sign-in body
  - count_rows: row counter for asserting what was (not) persisted
  - api_client: TestClient over the real app with a patched lifespan
  - error_client: second client on the same app that returns 500 responses
    instead of re-raising, for checking the generic error envelope

Design: the API fixture uses a named shared-memory SQLite URI (not plain
:memory:) because TestClient runs sync handlers in a thread pool. Plain
:memory: databases are per-connection and would show each worker thread a
blank schema.

DEBUG must be set before any auth/core import so get_settings() generates a
SECRET_KEY instead of raising. The login rate limit is raised so the suite's
own logins never trip it.
"""

from __future__ import annotations

import os
from collections.abc import Callable, Generator
from contextlib import asynccontextmanager

# Must run before any project import reads Settings.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("LOGIN_RATE_LIMIT", "1000/minute")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import text

from api.main import app
from auth.credentials import CredentialVerifier, hash_password
from auth.guard import SessionGuard
from auth.issuer import TokenIssuer
from auth.models import Identity
from orgs.provisioner import OrganizationProvisioner
from orgs.store import OrganizationStore

_ADMIN_EMAIL = "admin@x.com"
_ADMIN_PASSWORD = "testpass123"  # noqa: S105 -- test fixture credential
_ADMIN_ID = "1"
_ADMIN_NAME = "Admin"


# ---------------------------------------------------------------------------
# Unit fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def verifier() -> CredentialVerifier:
    return CredentialVerifier(
        email=_ADMIN_EMAIL,
        password_hash=hash_password(_ADMIN_PASSWORD),
        identity_id=_ADMIN_ID,
        display_name=_ADMIN_NAME,
    )


@pytest.fixture(scope="session")
def admin_identity() -> Identity:
    return Identity(id=_ADMIN_ID, email=_ADMIN_EMAIL, display_name=_ADMIN_NAME)


@pytest.fixture(scope="session")
def admin_login() -> dict[str, str]:
    """Sign-in body for the configured admin; also usable as issuer.sign_in(**admin_login)."""
    return {"email": _ADMIN_EMAIL, "password": _ADMIN_PASSWORD}


@pytest.fixture
def store() -> Generator[OrganizationStore, None, None]:
    s = OrganizationStore("sqlite:///:memory:")
    yield s
    s.close()


@pytest.fixture
def provisioner(store: OrganizationStore) -> OrganizationProvisioner:
    return OrganizationProvisioner(store)


@pytest.fixture
def issuer(verifier: CredentialVerifier, provisioner: OrganizationProvisioner, store: OrganizationStore) -> TokenIssuer:
    return TokenIssuer(verifier, provisioner, store)


@pytest.fixture
def guard(issuer: TokenIssuer) -> SessionGuard:
    return SessionGuard(issuer)


@pytest.fixture
def count_rows() -> Callable[[OrganizationStore, str], int]:
    """Return a function counting rows in one of the store's tables."""

    def _count(s: OrganizationStore, table: str) -> int:
        assert table in {"organizations", "memberships", "default_organizations"}
        with s.engine.connect() as conn:
            return conn.execute(text(f"SELECT COUNT(*) FROM {table}")).scalar()  # noqa: S608

    return _count


# ---------------------------------------------------------------------------
# API fixtures
# ---------------------------------------------------------------------------


def _patch_lifespan(store: OrganizationStore, verifier: CredentialVerifier):
    """Return a lifespan that wires the test store and verifier into app.state."""

    @asynccontextmanager
    async def test_lifespan(app):
        provisioner = OrganizationProvisioner(store)
        issuer = TokenIssuer(verifier, provisioner, store)
        app.state.store = store
        app.state.issuer = issuer
        app.state.guard = SessionGuard(issuer)
        yield

    return test_lifespan


@pytest.fixture(scope="module")
def api_client(request, verifier: CredentialVerifier) -> Generator[tuple[TestClient, str, OrganizationStore], None, None]:
    """Yield (client, token, store) for API integration tests.

    The token comes from a real POST /auth/login, so the admin identity has
    been provisioned before any test runs. The database name is derived from
    the test module so modules never share state.
    """
    suffix = request.module.__name__.rsplit(".", 1)[-1]
    store = OrganizationStore(f"sqlite:///file:test_orgs_{suffix}?mode=memory&cache=shared&uri=true")
    app.router.lifespan_context = _patch_lifespan(store, verifier)

    with TestClient(app, base_url="http://localhost", raise_server_exceptions=True) as client:
        resp = client.post("/api/v1/auth/login", json={"email": _ADMIN_EMAIL, "password": _ADMIN_PASSWORD})
        assert resp.status_code == 200, resp.text
        token = resp.json()["access_token"]
        client.cookies.clear()
        yield client, token, store

    store.close()


@pytest.fixture
def error_client(api_client: tuple[TestClient, str, OrganizationStore]) -> TestClient:
    """Client on the already-started app that lets the catch-all handler answer.

    Not entered as a context manager: api_client's lifespan is still running
    and app.state already holds the module's store.
    """
    return TestClient(app, base_url="http://localhost", raise_server_exceptions=False)
