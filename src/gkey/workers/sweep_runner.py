"""Standalone runner for the cooloff sweep, for deployments without arq.

Usage: python -m gkey.workers.sweep_runner
"""

from __future__ import annotations

import asyncio
import logging
import signal

from gkey.config import get_settings
from gkey.database import close_db, init_db
from gkey.dependencies import build_key_manager
from gkey.keys.service import KeyLeaseManager
from gkey.keys.worker import run_cooloff_sweep
from gkey.middleware.logging import setup_logging
from gkey.redis_client import close_redis, get_redis, init_redis

logger = logging.getLogger(__name__)


async def sweep_forever(manager: KeyLeaseManager, interval_seconds: float, stop: asyncio.Event) -> int:
    """Sweep every interval until stop is set. Returns the number of sweeps run."""
    sweeps = 0
    while not stop.is_set():
        await run_cooloff_sweep(manager)
        sweeps += 1
        try:
            await asyncio.wait_for(stop.wait(), timeout=interval_seconds)
        except asyncio.TimeoutError:
            pass
    return sweeps


async def main() -> None:
    """Run the cooloff sweep loop until SIGINT/SIGTERM."""
    settings = get_settings()
    setup_logging(settings)
    await init_db(settings.database_url)
    await init_redis(settings.redis_url)

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop.set)

    logger.info("Starting cooloff sweep (interval=%ss)", settings.cooloff_sweep_interval_seconds)
    try:
        await sweep_forever(
            build_key_manager(settings, get_redis()),
            settings.cooloff_sweep_interval_seconds,
            stop,
        )
    finally:
        await close_redis()
        await close_db()
        logger.info("Cooloff sweep stopped")


if __name__ == "__main__":
    asyncio.run(main())
