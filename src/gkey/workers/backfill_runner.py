"""One-shot catalog backfill, run at deploy time after adding a category.

Usage: python -m gkey.workers.backfill_runner
"""

from __future__ import annotations

import asyncio
import logging

from gkey.config import get_settings
from gkey.database import close_db, init_db
from gkey.dependencies import build_key_manager
from gkey.middleware.logging import setup_logging

logger = logging.getLogger(__name__)


async def main() -> int:
    """Create missing catalog keys for all existing users."""
    settings = get_settings()
    setup_logging(settings)
    await init_db(settings.database_url)
    try:
        created = await build_key_manager(settings).backfill_catalog()
    finally:
        await close_db()
    logger.info("Backfill complete: %d keys created", created)
    return created


if __name__ == "__main__":
    asyncio.run(main())
