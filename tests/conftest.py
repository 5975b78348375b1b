"""Shared test fixtures for GuildHub."""

from __future__ import annotations

import secrets

import aiosqlite
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from guildhub.config import settings
from guildhub.db.database import run_migrations
from guildhub.models.user import ProviderIdentity


# ---------------------------------------------------------------------------
# Database fixtures
# ---------------------------------------------------------------------------

# Stable IDs for seed data
MEMBER_ID = 1
MEMBER_EXTERNAL_ID = "123456789012345001"
ADMIN_ID = 2
ADMIN_EXTERNAL_ID = "123456789012345002"
NEW_EXTERNAL_ID = "123456789012345678"

COOKIE = settings.session_cookie_name


@pytest_asyncio.fixture
async def db():
    """In-memory SQLite database with schema + seed data."""
    conn = await aiosqlite.connect(":memory:")
    conn.row_factory = aiosqlite.Row
    await conn.execute("PRAGMA foreign_keys=ON")
    await run_migrations(conn)

    await conn.execute(
        "INSERT INTO users (id, external_id, display_name, email, is_admin) VALUES (?, ?, ?, ?, ?)",
        (MEMBER_ID, MEMBER_EXTERNAL_ID, "member#0001", "member@example.com", 0),
    )
    await conn.execute(
        "INSERT INTO users (id, external_id, display_name, email, is_admin) VALUES (?, ?, ?, ?, ?)",
        (ADMIN_ID, ADMIN_EXTERNAL_ID, "officer", "officer@example.com", 1),
    )
    await conn.commit()
    yield conn
    await conn.close()


# ---------------------------------------------------------------------------
# App / client fixtures
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def app(db):
    """FastAPI app with test DB injected."""
    from guildhub.db import database as db_module
    from guildhub.services.state_store import state_store

    original_db = db_module._db
    db_module._db = db

    from guildhub.main import app as fastapi_app

    state_store.clear()
    yield fastapi_app

    fastapi_app.dependency_overrides.clear()
    state_store.clear()
    db_module._db = original_db


@pytest_asyncio.fixture
async def client(app):
    """Async HTTP client for testing."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


async def create_session(db, user_id: int | None = None, return_to: str | None = None) -> tuple[str, str]:
    """Insert a session row. Returns (session_id, csrf_token)."""
    sid = secrets.token_urlsafe(24)
    token = secrets.token_urlsafe(16)
    await db.execute(
        "INSERT INTO sessions (id, user_id, return_to, csrf_token, expires_at) "
        "VALUES (?, ?, ?, ?, datetime('now', '+1 day'))",
        (sid, user_id, return_to, token),
    )
    await db.commit()
    return sid, token


async def fetch_session(db, session_id: str | None) -> dict | None:
    async with db.execute("SELECT * FROM sessions WHERE id = ?", (session_id,)) as cursor:
        row = await cursor.fetchone()
        return dict(row) if row else None


def session_cookie(client: AsyncClient) -> str | None:
    """Current session id held by the client's cookie jar."""
    for cookie in client.cookies.jar:
        if cookie.name == COOKIE:
            return cookie.value
    return None


async def _signed_in_client(app, db, user_id: int):
    sid, token = await create_session(db, user_id)
    transport = ASGITransport(app=app)
    return AsyncClient(
        transport=transport,
        base_url="http://test",
        cookies={COOKIE: sid},
        headers={"X-CSRF-Token": token},
    )


@pytest_asyncio.fixture
async def member_client(app, db):
    """Client signed in as the seeded non-admin user."""
    async with await _signed_in_client(app, db, MEMBER_ID) as ac:
        yield ac


@pytest_asyncio.fixture
async def admin_client(app, db):
    """Client signed in as the seeded admin user."""
    async with await _signed_in_client(app, db, ADMIN_ID) as ac:
        yield ac


# ---------------------------------------------------------------------------
# Identity provider fakes
# ---------------------------------------------------------------------------

class FakeProvider:
    """Stands in for DiscordOAuthClient; returns or raises a canned result."""

    name = "discord"
    display_name = "Discord"

    def __init__(self, identity: ProviderIdentity | None = None, exc: Exception | None = None):
        self.identity = identity
        self.exc = exc
        self.codes: list[str | None] = []

    def authorize_url(self, state: str) -> str:
        return f"https://discord.example/authorize?state={state}"

    async def fetch_identity(self, code: str | None) -> ProviderIdentity:
        self.codes.append(code)
        if self.exc is not None:
            raise self.exc
        return self.identity


@pytest.fixture
def identity() -> ProviderIdentity:
    return ProviderIdentity(
        external_id=NEW_EXTERNAL_ID,
        name="testuser",
        discriminator="1234",
        email="Test@Example.com ",
        avatar_url="https://cdn.discordapp.com/avatars/123/abc.png",
    )
