"""SQL-backed key store.

Every method runs in its own short transaction. State transitions are single
conditional UPDATE statements whose WHERE clause encodes the precondition, so
two callers racing for the same key cannot both succeed: the loser's UPDATE
matches zero rows once the winner has committed.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime

from sqlalchemy import and_, or_, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from gkey.db.models import GKey
from gkey.keys.state import AVAILABLE, COOLOFF, LOCKED


class KeyStore:
    """Persisted key records, one per (user_id, category)."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get(self, user_id: str, category: str) -> GKey | None:
        async with self._session_factory() as db:
            result = await db.execute(
                select(GKey).where(GKey.user_id == user_id, GKey.category == category)
            )
            return result.scalar_one_or_none()

    async def list_for_user(self, user_id: str) -> list[GKey]:
        async with self._session_factory() as db:
            result = await db.execute(select(GKey).where(GKey.user_id == user_id).order_by(GKey.id))
            return list(result.scalars().all())

    async def list_user_ids(self) -> list[str]:
        async with self._session_factory() as db:
            result = await db.execute(select(GKey.user_id).distinct().order_by(GKey.user_id))
            return list(result.scalars().all())

    async def find_locked_by_campaign(self, user_id: str, campaign_id: str) -> GKey | None:
        async with self._session_factory() as db:
            result = await db.execute(
                select(GKey)
                .where(
                    GKey.user_id == user_id,
                    GKey.status == LOCKED,
                    GKey.locked_with == campaign_id,
                )
                .order_by(GKey.id)
                .limit(1)
            )
            return result.scalar_one_or_none()

    async def insert_missing(self, user_id: str, categories: Iterable[str], now: datetime) -> int:
        """Insert available keys for the given categories, skipping existing ones.

        Returns the number of rows actually inserted.
        """
        rows = [
            {
                "user_id": user_id,
                "category": category,
                "status": AVAILABLE,
                "usage_count": 0,
                "created_at": now,
                "updated_at": now,
            }
            for category in categories
        ]
        if not rows:
            return 0

        async with self._session_factory() as db:
            insert = pg_insert if db.get_bind().dialect.name == "postgresql" else sqlite_insert
            inserted = 0
            for row in rows:
                stmt = insert(GKey).values(**row).on_conflict_do_nothing(
                    index_elements=["user_id", "category"]
                )
                result = await db.execute(stmt)
                inserted += max(result.rowcount or 0, 0)
            await db.commit()
            return inserted

    async def try_lock(
        self,
        user_id: str,
        category: str,
        campaign_id: str,
        brand_id: str | None,
        now: datetime,
    ) -> GKey | None:
        """Atomically lock a key if it is available or in same-brand cooloff.

        Returns the locked key, or None if no row satisfied the predicate.
        """
        eligible = GKey.status == AVAILABLE
        if brand_id is not None:
            eligible = or_(eligible, and_(GKey.status == COOLOFF, GKey.last_brand_id == brand_id))

        async with self._session_factory() as db:
            result = await db.execute(
                update(GKey)
                .where(GKey.user_id == user_id, GKey.category == category, eligible)
                .values(
                    status=LOCKED,
                    locked_with=campaign_id,
                    locked_at=now,
                    cooloff_ends_at=None,
                    updated_at=now,
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                await db.rollback()
                return None
            locked = await db.execute(
                select(GKey).where(GKey.user_id == user_id, GKey.category == category)
            )
            key = locked.scalar_one()
            await db.commit()
            return key

    async def apply_cooloff(
        self,
        key_id: int,
        campaign_id: str,
        *,
        cooloff_ends_at: datetime,
        last_brand_id: str | None,
        last_brand_cooloff_hours: int,
        now: datetime,
    ) -> GKey | None:
        """Move a key locked with campaign_id into cooloff.

        Returns None if the key is no longer locked with that campaign.
        """
        async with self._session_factory() as db:
            result = await db.execute(
                update(GKey)
                .where(GKey.id == key_id, GKey.status == LOCKED, GKey.locked_with == campaign_id)
                .values(
                    status=COOLOFF,
                    locked_with=None,
                    locked_at=None,
                    last_used=now,
                    usage_count=GKey.usage_count + 1,
                    cooloff_ends_at=cooloff_ends_at,
                    last_brand_id=last_brand_id,
                    last_brand_cooloff_hours=last_brand_cooloff_hours,
                    updated_at=now,
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                await db.rollback()
                return None
            released = await db.execute(select(GKey).where(GKey.id == key_id))
            key = released.scalar_one()
            await db.commit()
            return key

    async def expire_due(self, now: datetime) -> int:
        """Return every cooloff key whose deadline has passed to available."""
        async with self._session_factory() as db:
            result = await db.execute(
                update(GKey)
                .where(GKey.status == COOLOFF, GKey.cooloff_ends_at <= now)
                .values(status=AVAILABLE, cooloff_ends_at=None, updated_at=now)
                .execution_options(synchronize_session=False)
            )
            await db.commit()
            return result.rowcount or 0

    async def reset(self, user_id: str, category: str, now: datetime) -> GKey | None:
        """Unconditionally make a key available. Returns None if it does not exist."""
        async with self._session_factory() as db:
            result = await db.execute(
                update(GKey)
                .where(GKey.user_id == user_id, GKey.category == category)
                .values(
                    status=AVAILABLE,
                    locked_with=None,
                    locked_at=None,
                    cooloff_ends_at=None,
                    updated_at=now,
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                await db.rollback()
                return None
            reset = await db.execute(
                select(GKey).where(GKey.user_id == user_id, GKey.category == category)
            )
            key = reset.scalar_one()
            await db.commit()
            return key
