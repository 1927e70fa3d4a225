"""Shared FastAPI dependencies."""

from fastapi import Depends

from gkey.campaigns.lookup import SqlCampaignLookup
from gkey.config import Settings, get_settings
from gkey.database import get_session as _get_session
from gkey.database import get_session_factory
from gkey.keys.catalog import get_catalog
from gkey.keys.service import KeyLeaseManager
from gkey.keys.store import KeyStore
from gkey.redis_client import get_optional_redis

get_db = _get_session


def build_key_manager(settings: Settings | None = None, redis: object | None = None) -> KeyLeaseManager:
    """Wire a KeyLeaseManager against the initialized database."""
    session_factory = get_session_factory()
    return KeyLeaseManager(
        store=KeyStore(session_factory),
        campaigns=SqlCampaignLookup(session_factory),
        catalog=get_catalog(),
        settings=settings or get_settings(),
        redis=redis,
    )


async def get_key_manager(settings: Settings = Depends(get_settings)) -> KeyLeaseManager:  # noqa: B008
    """KeyLeaseManager for the current request."""
    return build_key_manager(settings, get_optional_redis())
