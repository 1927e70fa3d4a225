"""G-Key lease manager.

Owns the per-user, per-category key lifecycle:
  available -> locked (campaign join) -> cooloff (campaign leave) -> available (expiry)

The store is the single source of truth; nothing here caches lease state
between calls. Locking and releasing are conditional UPDATEs in the store, so
concurrent joins for one key have exactly one winner.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from datetime import datetime, timedelta, timezone
from typing import Any

from gkey.campaigns.lookup import CampaignLookup
from gkey.config import Settings, get_settings
from gkey.db.models import GKey
from gkey.keys.catalog import CategoryCatalog, get_catalog, normalize_categories, normalize_category
from gkey.keys.errors import (
    CampaignHasNoCategories,
    CampaignNotFound,
    InvalidCooloffPeriod,
    LeaseNotFound,
    NoEligibleKey,
    NoLockedKey,
)
from gkey.keys.schemas import KeyDebugResponse, KeyDetailsResponse, KeysSummaryResponse
from gkey.keys.state import COOLOFF, LOCKED, can_lock, describe_blocker, validate_transition
from gkey.keys.store import KeyStore
from gkey.keys.summary import build_key_debug, build_key_details, build_keys_summary

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class KeyLeaseManager:
    """Consume, release and expire G-Keys for streamers."""

    def __init__(
        self,
        store: KeyStore,
        campaigns: CampaignLookup,
        catalog: CategoryCatalog | None = None,
        settings: Settings | None = None,
        redis: object | None = None,
    ) -> None:
        self._store = store
        self._campaigns = campaigns
        self._catalog = catalog or get_catalog()
        self._settings = settings or get_settings()
        self._redis = redis

    @property
    def catalog(self) -> CategoryCatalog:
        return self._catalog

    # ------------------------------------------------------------------
    # Catalog backfill
    # ------------------------------------------------------------------

    async def ensure_catalog_for_user(self, user_id: str, now: datetime | None = None) -> list[GKey]:
        """Create any missing catalog keys for the user and return the full set.

        Existing keys are never touched, so this is safe to call on every read.
        """
        now = now or _utcnow()
        created = await self._store.insert_missing(user_id, self._catalog.slugs(), now)
        if created:
            logger.info("Initialized %d G-Keys for user %s", created, user_id)
        return self._ordered(await self._store.list_for_user(user_id))

    async def backfill_catalog(self, now: datetime | None = None) -> int:
        """Backfill catalog keys for every user who already owns keys.

        Run after adding a category to the catalog. Returns the number of keys created.
        """
        now = now or _utcnow()
        slugs = self._catalog.slugs()
        created = 0
        for user_id in await self._store.list_user_ids():
            created += await self._store.insert_missing(user_id, slugs, now)
        logger.info("Catalog backfill created %d G-Keys", created)
        return created

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def list_keys(self, user_id: str, now: datetime | None = None) -> list[GKey]:
        """All keys for the user in catalog order, after expiring due cooloffs."""
        now = now or _utcnow()
        await self.expire_due_cooloffs(now)
        return await self.ensure_catalog_for_user(user_id, now)

    async def get_key(self, user_id: str, category: str) -> GKey:
        category = normalize_category(category)
        key = await self._store.get(user_id, category)
        if key is None:
            raise LeaseNotFound(user_id, category)
        return key

    async def get_key_details(
        self, user_id: str, category: str, now: datetime | None = None
    ) -> KeyDetailsResponse:
        key = await self.get_key(user_id, category)
        return build_key_details(key, now or _utcnow())

    async def is_eligible(self, user_id: str, category: str, brand_id: str | None = None) -> bool:
        """Read-only check whether the key could be locked right now."""
        key = await self._store.get(user_id, normalize_category(category))
        if key is None:
            return False
        return can_lock(key, brand_id)

    async def summarize(self, user_id: str, now: datetime | None = None) -> KeysSummaryResponse:
        """Totals by status and per-key cooloff timing for the dashboard.

        Backfills the catalog first, so a new streamer sees every key as available.
        """
        now = now or _utcnow()
        await self.expire_due_cooloffs(now)
        keys = await self.ensure_catalog_for_user(user_id, now)
        return build_keys_summary(keys, now)

    async def debug_key(
        self, user_id: str, category: str, now: datetime | None = None
    ) -> KeyDebugResponse:
        """Key fields cross-referenced with the locking campaign and active campaigns."""
        key = await self.get_key(user_id, category)
        locking = None
        if key.status == LOCKED and key.locked_with:
            locking = await self._campaigns.get(key.locked_with)
        active = await self._campaigns.find_active_in_category(key.category)
        return build_key_debug(key, now or _utcnow(), locking, active)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def consume(
        self,
        user_id: str,
        campaign_id: str,
        campaign_categories: Sequence[str],
        campaign_brand_id: str | None,
        now: datetime | None = None,
    ) -> GKey:
        """Lock the first eligible key among the campaign's categories.

        Categories are tried in the order given. Raises NoEligibleKey when every
        category is missing, locked, or in cooloff for a different brand.
        """
        now = now or _utcnow()
        categories = normalize_categories(campaign_categories)
        if not categories:
            raise CampaignHasNoCategories(campaign_id)

        for category in categories:
            key = await self._store.try_lock(user_id, category, campaign_id, campaign_brand_id, now)
            if key is not None:
                logger.info(
                    "Locked G-Key %s for user %s with campaign %s", category, user_id, campaign_id
                )
                await self._publish("locked", key)
                return key

        blockers = [
            describe_blocker(await self._store.get(user_id, category), category, now)
            for category in categories
        ]
        raise NoEligibleKey(categories, blockers)

    async def consume_for_campaign(
        self, user_id: str, campaign_id: str, now: datetime | None = None
    ) -> GKey:
        """Join flow: resolve the campaign, backfill the user's keys, then consume."""
        now = now or _utcnow()
        campaign = await self._campaigns.get(campaign_id)
        if campaign is None:
            raise CampaignNotFound(campaign_id)
        if not normalize_categories(campaign.categories):
            raise CampaignHasNoCategories(campaign_id)

        await self.ensure_catalog_for_user(user_id, now)
        return await self.consume(user_id, campaign_id, campaign.categories, campaign.brand_id, now)

    async def release(
        self,
        user_id: str,
        campaign_id: str,
        cooloff_hours: int | None = None,
        now: datetime | None = None,
    ) -> GKey:
        """Move the key locked with campaign_id into cooloff.

        Same brand as the previous release: the longest cooloff ever recorded
        for that brand wins. Different brand: the new brand and its cooloff
        replace the old ones.
        """
        now = now or _utcnow()
        key = await self._store.find_locked_by_campaign(user_id, campaign_id)
        if key is None:
            raise NoLockedKey(user_id, campaign_id)

        campaign = await self._campaigns.get(campaign_id)
        if campaign is None:
            raise CampaignNotFound(campaign_id)

        if cooloff_hours is not None:
            self._check_cooloff_range(cooloff_hours)
        base_hours = self._resolve_cooloff_hours(key.category, cooloff_hours, campaign.g_key_cooloff_hours)

        if key.last_brand_id is not None and key.last_brand_id == campaign.brand_id:
            final_hours = max(base_hours, key.last_brand_cooloff_hours or 0)
        else:
            final_hours = base_hours

        validate_transition(key.status, COOLOFF)
        released = await self._store.apply_cooloff(
            key.id,
            campaign_id,
            cooloff_ends_at=now + timedelta(hours=final_hours),
            last_brand_id=campaign.brand_id,
            last_brand_cooloff_hours=final_hours,
            now=now,
        )
        if released is None:
            # Another release won the race
            raise NoLockedKey(user_id, campaign_id)

        logger.info(
            "Released G-Key %s for user %s from campaign %s: %dh cooloff",
            key.category, user_id, campaign_id, final_hours,
        )
        await self._publish("cooloff", released)
        return released

    async def expire_due_cooloffs(self, now: datetime | None = None) -> int:
        """Return every cooloff key past its deadline to available."""
        count = await self._store.expire_due(now or _utcnow())
        if count:
            logger.info("Expired %d G-Key cooloffs", count)
            await self._publish_payload({"event": "cooloffs_expired", "count": count})
        return count

    async def force_unlock(self, user_id: str, category: str, now: datetime | None = None) -> GKey:
        """Admin escape hatch: make the key available regardless of its state."""
        category = normalize_category(category)
        key = await self._store.reset(user_id, category, now or _utcnow())
        if key is None:
            raise LeaseNotFound(user_id, category)
        logger.warning("Force-unlocked G-Key %s for user %s", category, user_id)
        await self._publish("force_unlocked", key)
        return key

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _check_cooloff_range(self, hours: int) -> None:
        minimum = self._settings.cooloff_min_hours
        maximum = self._settings.cooloff_max_hours
        if not minimum <= hours <= maximum:
            raise InvalidCooloffPeriod(hours, minimum, maximum)

    def _resolve_cooloff_hours(
        self, category: str, override: int | None, campaign_hours: int | None
    ) -> int:
        if override is not None:
            return override
        if campaign_hours:
            return campaign_hours
        default = self._catalog.default_cooloff_hours(category)
        if default is None:
            return self._settings.cooloff_fallback_hours
        return default

    def _ordered(self, keys: list[GKey]) -> list[GKey]:
        return sorted(keys, key=lambda k: (self._catalog.position(k.category), k.id))

    async def _publish(self, event: str, key: GKey) -> None:
        await self._publish_payload({
            "event": event,
            "user_id": key.user_id,
            "category": key.category,
            "status": key.status,
            "locked_with": key.locked_with,
            "cooloff_ends_at": key.cooloff_ends_at.isoformat() if key.cooloff_ends_at else None,
        })

    async def _publish_payload(self, payload: dict[str, Any]) -> None:
        if self._redis is None:
            return
        try:
            await self._redis.publish(  # type: ignore[attr-defined]
                self._settings.key_events_channel, json.dumps(payload)
            )
        except Exception:
            logger.warning("Failed to publish G-Key %s event", payload.get("event"), exc_info=True)
