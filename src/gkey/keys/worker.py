"""arq worker for G-Key maintenance.

Hourly cron returns expired cooloffs to available; ``backfill_catalog`` is
enqueued after a catalog change to create the new category's keys for
existing users.
"""

from __future__ import annotations

import logging

import redis.asyncio as aioredis
from arq.connections import RedisSettings
from arq.cron import cron

from gkey.config import get_settings
from gkey.database import close_db, init_db
from gkey.dependencies import build_key_manager
from gkey.keys.service import KeyLeaseManager

logger = logging.getLogger(__name__)


async def run_cooloff_sweep(manager: KeyLeaseManager) -> int:
    """Run one cooloff sweep. Never raises: a failed sweep must not stop the next one."""
    try:
        return await manager.expire_due_cooloffs()
    except Exception:
        logger.exception("G-Key cooloff sweep failed")
        return 0


async def gkey_startup(ctx: dict) -> None:  # type: ignore[type-arg]
    """Open DB and Redis, build the manager once per worker process."""
    settings = get_settings()
    await init_db(settings.database_url)
    redis_client = aioredis.from_url(
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=5,
    )
    ctx["redis_events"] = redis_client
    ctx["manager"] = build_key_manager(settings, redis_client)
    logger.info("G-Key worker started")


async def gkey_shutdown(ctx: dict) -> None:  # type: ignore[type-arg]
    """Clean up on worker shutdown."""
    redis_client: aioredis.Redis | None = ctx.get("redis_events")
    if redis_client:
        await redis_client.aclose()
    await close_db()
    logger.info("G-Key worker shut down")


async def expire_cooloffs(ctx: dict) -> int:  # type: ignore[type-arg]
    """Periodic task: expire due cooloffs."""
    return await run_cooloff_sweep(ctx["manager"])


async def backfill_catalog(ctx: dict) -> int:  # type: ignore[type-arg]
    """One-off task: create missing catalog keys for every known user."""
    manager: KeyLeaseManager = ctx["manager"]
    return await manager.backfill_catalog()


class KeyWorkerSettings:
    """arq worker settings for G-Key maintenance."""

    functions = [expire_cooloffs, backfill_catalog]
    cron_jobs = [
        cron(expire_cooloffs, minute=0, run_at_startup=True),  # top of every hour
    ]
    on_startup = gkey_startup
    on_shutdown = gkey_shutdown
    redis_settings = RedisSettings.from_dsn(get_settings().arq_redis_url)
    max_jobs = 2
    job_timeout = 300
