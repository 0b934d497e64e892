"""
tests/conftest.py -- Shared test fixtures for the account service.

This module provides:
  - settings: deterministic Settings with two fixed signing secrets
  - store / issuer / uploader / sessions: unit-level collaborators
  - registered: a helper that registers an account through SessionManager
  - api_client: TestClient over the real FastAPI app with a patched lifespan

Design: API tests use named shared-memory SQLite URIs (not plain :memory:)
because TestClient runs sync route handlers in a thread pool. Plain :memory:
DBs are per-connection and would present a blank schema to each worker
thread. The named URI format shares one in-memory instance across all
connections in the same process. Each api_client gets a unique name so tests
never see each other's accounts.

The rate limiter is switched off for API tests; login is called far more
than 10 times a minute across the suite.
"""

from __future__ import annotations

import asyncio
import os
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

# Set DEBUG before any core/auth import so a stray get_settings() call in an
# imported module can auto-generate secrets instead of raising.
os.environ.setdefault("DEBUG", "true")

import pytest
from fastapi.testclient import TestClient

from api.limiter import limiter
from api.main import app
from auth.session import SessionManager
from auth.store import AccountStore
from auth.tokens import TokenIssuer
from core.config import Settings
from media.files import TempFileStore
from media.uploader import UploadedAsset

ACCESS_SECRET = "a" * 48
REFRESH_SECRET = "r" * 48
STRONG_PASSWORD = "Abc123!x"


class FakeUploader:
    """In-process stand-in for CloudinaryUploader.

    Returns a deterministic URL per path. Paths listed in `fail` (or every
    path when fail_all=True) come back as None, like a failed upload.
    """

    def __init__(self) -> None:
        self.calls: list[Optional[str]] = []
        self.fail: set[str] = set()
        self.fail_all = False

    async def upload(self, local_path: Optional[str]) -> Optional[UploadedAsset]:
        self.calls.append(local_path)
        if not local_path:
            return None
        if self.fail_all or local_path in self.fail:
            return None
        name = Path(local_path).name
        return UploadedAsset(url=f"https://res.cloudinary.test/{name}", public_id=name)


# ---------------------------------------------------------------------------
# Unit-level fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        debug=False,
        access_token_secret=ACCESS_SECRET,
        refresh_token_secret=REFRESH_SECRET,
        upload_dir=str(tmp_path / "uploads"),
    )


@pytest.fixture
def store() -> Generator[AccountStore, None, None]:
    s = AccountStore("sqlite:///:memory:")
    yield s
    s.close()


@pytest.fixture
def issuer(settings: Settings) -> TokenIssuer:
    return TokenIssuer(settings)


@pytest.fixture
def uploader() -> FakeUploader:
    return FakeUploader()


@pytest.fixture
def sessions(store: AccountStore, issuer: TokenIssuer, uploader: FakeUploader) -> SessionManager:
    return SessionManager(store, issuer, uploader)


@pytest.fixture
def registered(sessions: SessionManager):
    """Return a function that registers an account and returns its AccountView."""

    def _register(username: str = "ana", email: str = "ana@example.com", password: str = STRONG_PASSWORD):
        result = asyncio.run(
            sessions.register(username, email, "Ana Lima", password, "/tmp/avatar.png", None)
        )
        assert result.ok, result
        return result.value

    return _register


# ---------------------------------------------------------------------------
# API fixtures
# ---------------------------------------------------------------------------


def _patch_lifespan(settings: Settings, store: AccountStore, uploader: FakeUploader):
    """Return a lifespan that wires test collaborators into app.state."""

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.settings = settings
        app.state.account_store = store
        app.state.token_issuer = TokenIssuer(settings)
        app.state.uploader = uploader
        app.state.temp_files = TempFileStore(settings.upload_dir, settings.max_upload_size_mb)
        yield

    return test_lifespan


@pytest.fixture
def api_client(settings: Settings) -> Generator[tuple[TestClient, AccountStore, FakeUploader], None, None]:
    """Yield (client, store, uploader) over an isolated shared-memory database."""
    db_url = f"sqlite:///file:test_accounts_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true"
    api_store = AccountStore(db_url)
    api_uploader = FakeUploader()

    app.router.lifespan_context = _patch_lifespan(settings, api_store, api_uploader)
    limiter.enabled = False

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, api_store, api_uploader

    limiter.enabled = True
    api_store.close()
