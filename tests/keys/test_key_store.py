"""KeyStore tests: conditional updates at the SQL level."""

from __future__ import annotations

import warnings
from datetime import timedelta

import pytest
from sqlalchemy.exc import SAWarning

from gkey.keys.state import AVAILABLE, COOLOFF, LOCKED

USER = "streamer-1"


class TestInsertMissing:
    @pytest.mark.asyncio
    async def test_counts_only_new_rows(self, store, now):
        assert await store.insert_missing(USER, ["gaming", "music"], now) == 2
        assert await store.insert_missing(USER, ["gaming", "music", "art"], now) == 1

    @pytest.mark.asyncio
    async def test_empty_is_noop(self, store, now):
        assert await store.insert_missing(USER, [], now) == 0

    @pytest.mark.asyncio
    async def test_list_user_ids(self, store, now):
        await store.insert_missing("b", ["gaming"], now)
        await store.insert_missing("a", ["gaming", "music"], now)
        assert await store.list_user_ids() == ["a", "b"]

    @pytest.mark.asyncio
    async def test_list_user_ids_once_per_user_without_warnings(self, store, now):
        await store.insert_missing("a", ["gaming", "music", "technology"], now)
        with warnings.catch_warnings():
            warnings.simplefilter("error", SAWarning)
            assert await store.list_user_ids() == ["a"]


class TestTryLock:
    @pytest.mark.asyncio
    async def test_missing_row(self, store, now):
        assert await store.try_lock(USER, "gaming", "c1", "brandA", now) is None

    @pytest.mark.asyncio
    async def test_locked_row_is_not_relocked(self, store, now):
        await store.insert_missing(USER, ["gaming"], now)
        assert await store.try_lock(USER, "gaming", "c1", "brandA", now) is not None
        assert await store.try_lock(USER, "gaming", "c2", "brandA", now) is None
        assert (await store.get(USER, "gaming")).locked_with == "c1"

    @pytest.mark.asyncio
    async def test_cooloff_requires_matching_brand(self, store, now):
        await store.insert_missing(USER, ["gaming"], now)
        key = await store.try_lock(USER, "gaming", "c1", "brandA", now)
        await store.apply_cooloff(
            key.id, "c1",
            cooloff_ends_at=now + timedelta(hours=5),
            last_brand_id="brandA",
            last_brand_cooloff_hours=5,
            now=now,
        )

        assert await store.try_lock(USER, "gaming", "c2", None, now) is None
        assert await store.try_lock(USER, "gaming", "c2", "brandB", now) is None
        relocked = await store.try_lock(USER, "gaming", "c2", "brandA", now)
        assert relocked.status == LOCKED
        assert relocked.cooloff_ends_at is None


class TestApplyCooloff:
    @pytest.mark.asyncio
    async def test_wrong_campaign_is_rejected(self, store, now):
        await store.insert_missing(USER, ["gaming"], now)
        key = await store.try_lock(USER, "gaming", "c1", "brandA", now)

        result = await store.apply_cooloff(
            key.id, "c2",
            cooloff_ends_at=now + timedelta(hours=1),
            last_brand_id="brandA",
            last_brand_cooloff_hours=1,
            now=now,
        )

        assert result is None
        assert (await store.get(USER, "gaming")).status == LOCKED

    @pytest.mark.asyncio
    async def test_increments_usage_in_place(self, store, now):
        await store.insert_missing(USER, ["gaming"], now)
        for campaign in ("c1", "c2"):
            key = await store.try_lock(USER, "gaming", campaign, "brandA", now)
            released = await store.apply_cooloff(
                key.id, campaign,
                cooloff_ends_at=now + timedelta(hours=1),
                last_brand_id="brandA",
                last_brand_cooloff_hours=1,
                now=now,
            )
        assert released.status == COOLOFF
        assert released.usage_count == 2


class TestExpireAndReset:
    @pytest.mark.asyncio
    async def test_expire_only_touches_due_cooloffs(self, store, now):
        await store.insert_missing(USER, ["gaming", "music", "art"], now)
        for category, hours in (("gaming", 1), ("music", 10)):
            key = await store.try_lock(USER, category, f"c-{category}", "brandA", now)
            await store.apply_cooloff(
                key.id, f"c-{category}",
                cooloff_ends_at=now + timedelta(hours=hours),
                last_brand_id="brandA",
                last_brand_cooloff_hours=hours,
                now=now,
            )
        await store.try_lock(USER, "art", "c-art", "brandA", now)

        assert await store.expire_due(now + timedelta(hours=2)) == 1
        assert (await store.get(USER, "gaming")).status == AVAILABLE
        assert (await store.get(USER, "music")).status == COOLOFF
        assert (await store.get(USER, "art")).status == LOCKED

    @pytest.mark.asyncio
    async def test_reset_missing(self, store, now):
        assert await store.reset(USER, "gaming", now) is None

    @pytest.mark.asyncio
    async def test_find_locked_by_campaign(self, store, now):
        await store.insert_missing(USER, ["gaming", "music"], now)
        await store.try_lock(USER, "music", "c1", "brandA", now)

        key = await store.find_locked_by_campaign(USER, "c1")
        assert key.category == "music"
        assert await store.find_locked_by_campaign(USER, "c2") is None
        assert await store.find_locked_by_campaign("someone-else", "c1") is None
