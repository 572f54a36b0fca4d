"""
tests/conftest.py -- Shared test fixtures for Gatehouse.

This module provides:
  - session: a fresh RecordingSession (tests/fakes.py) for asserting the
    login/logout call order
  - make_context(): RequestContext factory bound to a fresh Authenticator
  - api_client: TestClient over the real app with an isolated in-memory
    UserStore wired in through a patched lifespan

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs route handlers in a thread pool. Plain :memory: DBs
are per-connection and would present a blank schema to each worker thread.

DEBUG must be set before any core/auth/api import so get_settings()
auto-generates SECRET_KEY instead of raising ValueError. The login rate limit
is raised so the route tests never trip it by accident.
"""

from __future__ import annotations

import os
from collections.abc import Generator
from contextlib import asynccontextmanager
from typing import Any

# CRITICAL: before any core/auth/api import
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("LOGIN_RATE_LIMIT", "1000/minute")

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.models import User
from auth.store import UserStore
from auth.tokens import create_access_token, hash_password
from auth.wiring import build_authenticator
from core.authenticator import Authenticator
from tests.fakes import RecordingSession

# ---------------------------------------------------------------------------
# Kernel fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def authenticator() -> Authenticator:
    return Authenticator()


@pytest.fixture
def session() -> RecordingSession:
    return RecordingSession()


@pytest.fixture
def make_context(authenticator):
    """Return a factory building RequestContexts on the fixture authenticator.

    Flash calls are collected into the returned context's `flashes` list.
    """

    def factory(session: Any = None, request: Any = None, with_flash: bool = True):
        flashes: list[tuple[str, str]] = []
        ctx = authenticator.context(
            request,
            session,
            flash=(lambda kind, message: flashes.append((kind, message))) if with_flash else None,
        )
        ctx.flashes = flashes
        return ctx

    return factory


# ---------------------------------------------------------------------------
# API client
# ---------------------------------------------------------------------------


def _make_test_store(db_suffix: str) -> UserStore:
    return UserStore(db_url=f"sqlite:///file:test_auth_{db_suffix}?mode=memory&cache=shared&uri=true")


def _patch_lifespan(user_store: UserStore):
    """Return a lifespan that wires the test store into app.state instead of the real DB."""

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.user_store = user_store
        app.state.authenticator = build_authenticator(user_store)
        yield

    return test_lifespan


@pytest.fixture(scope="module")
def api_client(request) -> Generator[tuple[TestClient, str, int], None, None]:
    """Yield (client, token, user_id) for API integration tests.

    Users created up front:
      testadmin / testpass123  active admin (token belongs to this user)
      disabled  / disabled123  deactivated account
    """
    user_store = _make_test_store(request.module.__name__.rsplit(".", 1)[-1])

    uid = user_store.create_user(User(username="testadmin", hashed_password=hash_password("testpass123"), role="admin"))
    user_store.create_user(User(username="disabled", hashed_password=hash_password("disabled123"), is_active=False))

    token = create_access_token(user_id=uid, username="testadmin", role="admin", expire_seconds=3600)

    app.router.lifespan_context = _patch_lifespan(user_store)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, token, uid

    user_store.close()
