"""
tests/conftest.py -- Shared test fixtures for DevOps API tests.

This module provides:
  - FakeClock: a settable millisecond clock for token expiry tests
  - _make_state(): builds the per-process state the lifespan normally creates
  - _patch_lifespan(): wires that state into app.state, bypassing real startup
  - api_client: TestClient over the real app with isolated state

Env vars must be set before any api/ or core/ import: get_settings() is
cached on first call and api/limiter.py reads it at import time.
"""

from __future__ import annotations

import os
import time
from collections.abc import Generator
from contextlib import asynccontextmanager
from types import SimpleNamespace

# CRITICAL: Set before any api/core import. The login rate limit would
# otherwise trip once a test session has logged in more than 10 times.
os.environ.setdefault("DEBUG", "true")
os.environ["RATE_LIMIT_ENABLED"] = "false"

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.credentials import prepare_records
from auth.models import DEFAULT_USERS
from auth.session import SessionValidator
from auth.store import InMemoryCredentialStore
from auth.tokens import Base64TokenCodec
from core.config import Settings
from metrics.aggregator import MetricsAggregator


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, start_ms: int | None = None) -> None:
        self.now = start_ms if start_ms is not None else int(time.time() * 1000)

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


def _make_state(settings: Settings | None = None, clock: FakeClock | None = None) -> SimpleNamespace:
    """Build isolated app state: in-memory store, base64 codec, fresh metrics."""
    settings = settings or Settings(debug=True)
    clock = clock or FakeClock()
    codec = Base64TokenCodec(clock=clock)
    return SimpleNamespace(
        settings=settings,
        clock=clock,
        credential_store=InMemoryCredentialStore(prepare_records(DEFAULT_USERS, settings.credential_scheme)),
        token_codec=codec,
        session_validator=SessionValidator(codec, clock=clock),
        metrics=MetricsAggregator(),
    )


def _patch_lifespan(state: SimpleNamespace):
    """Return an async context manager that replaces the real lifespan."""

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.settings = state.settings
        app.state.credential_store = state.credential_store
        app.state.token_codec = state.token_codec
        app.state.session_validator = state.session_validator
        app.state.metrics = state.metrics
        yield

    return test_lifespan


def open_client(state: SimpleNamespace, **kwargs) -> TestClient:
    """Point the app at state and return an (unstarted) TestClient.

    Use as a context manager so the patched lifespan runs:
        with open_client(state) as client: ...
    """
    app.router.lifespan_context = _patch_lifespan(state)
    return TestClient(app, **kwargs)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(start_ms=1_700_000_000_000)


@pytest.fixture(scope="module")
def api_state() -> SimpleNamespace:
    return _make_state()


@pytest.fixture(scope="module")
def api_client(api_state: SimpleNamespace) -> Generator[TestClient, None, None]:
    """TestClient over the real app and routes, with isolated module-level state.

    The state's FakeClock starts at the real current time and drives both
    token issuing and validation, so tests can advance it past expiry.
    """
    with open_client(api_state, raise_server_exceptions=True) as client:
        yield client


def login(client: TestClient, username: str, password: str) -> str:
    """Log in and return the token. Fails the test on any non-200."""
    resp = client.post("/api/auth/login", json={"username": username, "password": password})
    assert resp.status_code == 200, f"login failed: {resp.status_code} {resp.text}"
    return resp.json()["token"]


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}
