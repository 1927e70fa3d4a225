"""Shared test fixtures.

Tests run against a throwaway SQLite file per test (aiosqlite), so every
session gets its own connection and lock contention behaves like a real
multi-connection database.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import datetime, timezone
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from gkey.campaigns.lookup import SqlCampaignLookup
from gkey.config import Settings, get_settings
from gkey.database import close_db, get_engine, get_session_factory, init_db
from gkey.db.base import Base
from gkey.db.models import Campaign
from gkey.keys.catalog import get_catalog
from gkey.keys.service import KeyLeaseManager
from gkey.keys.store import KeyStore
from gkey.main import create_app

MakeCampaign = Callable[..., Awaitable[Campaign]]

USER_ID = "streamer-1"


def _sqlite_url(path: Path) -> str:
    return f"sqlite+aiosqlite:///{path}"


async def _insert_campaign(
    session_factory: async_sessionmaker[AsyncSession],
    campaign_id: str,
    brand_id: str,
    categories: list[str],
    *,
    status: str = "active",
    title: str = "",
    g_key_cooloff_hours: int | None = None,
) -> Campaign:
    campaign = Campaign(
        id=campaign_id,
        brand_id=brand_id,
        categories=categories,
        status=status,
        title=title or f"Campaign {campaign_id}",
        g_key_cooloff_hours=g_key_cooloff_hours,
    )
    async with session_factory() as db:
        db.add(campaign)
        await db.commit()
    return campaign


@pytest.fixture
def now() -> datetime:
    """Fixed reference instant for time-dependent operations."""
    return datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def settings() -> Settings:
    return get_settings()


@pytest_asyncio.fixture
async def session_factory(tmp_path: Path) -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Session factory over a fresh SQLite database with the full schema."""
    engine = create_async_engine(_sqlite_url(tmp_path / "gkeys.db"), connect_args={"timeout": 30})
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture
def store(session_factory: async_sessionmaker[AsyncSession]) -> KeyStore:
    return KeyStore(session_factory)


@pytest.fixture
def campaigns(session_factory: async_sessionmaker[AsyncSession]) -> SqlCampaignLookup:
    return SqlCampaignLookup(session_factory)


@pytest.fixture
def manager(store: KeyStore, campaigns: SqlCampaignLookup, settings: Settings) -> KeyLeaseManager:
    return KeyLeaseManager(store, campaigns, get_catalog(), settings)


@pytest.fixture
def make_campaign(session_factory: async_sessionmaker[AsyncSession]) -> MakeCampaign:
    """Insert a campaign row: ``await make_campaign("c1", "brand-a", ["gaming"])``."""

    async def _make(campaign_id: str, brand_id: str, categories: list[str], **kwargs: object) -> Campaign:
        return await _insert_campaign(session_factory, campaign_id, brand_id, categories, **kwargs)  # type: ignore[arg-type]

    return _make


# ---------------------------------------------------------------------------
# API
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def client(tmp_path: Path) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client against the app, backed by a fresh SQLite database.

    ASGITransport does not run the lifespan, so the database is initialized
    here and Redis is left uninitialized (rate limiting and events disabled).
    """
    await init_db(_sqlite_url(tmp_path / "api.db"))
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    app = create_app()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    await close_db()


@pytest.fixture
def api_campaign(client: AsyncClient) -> MakeCampaign:
    """Insert a campaign into the database the API client uses."""

    async def _make(campaign_id: str, brand_id: str, categories: list[str], **kwargs: object) -> Campaign:
        return await _insert_campaign(get_session_factory(), campaign_id, brand_id, categories, **kwargs)  # type: ignore[arg-type]

    return _make


@pytest.fixture
def streamer_headers() -> dict[str, str]:
    return {"X-User-Id": USER_ID, "X-User-Role": "streamer"}


@pytest.fixture
def brand_headers() -> dict[str, str]:
    return {"X-User-Id": "brand-user-1", "X-User-Role": "brand"}


@pytest.fixture
def admin_headers() -> dict[str, str]:
    return {"X-User-Id": "admin-1", "X-User-Role": "admin"}
