"""Read-only access to the campaign fields the key service needs."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from gkey.db.models import Campaign

# Campaign statuses that count as "running" for debug views
ACTIVE_CAMPAIGN_STATUSES: tuple[str, ...] = ("active", "approved")


@dataclass(frozen=True)
class CampaignInfo:
    id: str
    brand_id: str
    categories: list[str] = field(default_factory=list)
    title: str = ""
    status: str = ""
    g_key_cooloff_hours: int | None = None


class CampaignLookup(Protocol):
    """What the key service needs from the campaign store."""

    async def get(self, campaign_id: str) -> CampaignInfo | None:
        """Return the campaign or None if it does not exist."""

    async def find_active_in_category(self, category: str) -> list[CampaignInfo]:
        """Active/approved campaigns listing the category (case-insensitive)."""


def _to_info(campaign: Campaign) -> CampaignInfo:
    return CampaignInfo(
        id=campaign.id,
        brand_id=str(campaign.brand_id),
        categories=[str(c) for c in (campaign.categories or [])],
        title=campaign.title,
        status=campaign.status,
        g_key_cooloff_hours=campaign.g_key_cooloff_hours,
    )


class SqlCampaignLookup:
    """CampaignLookup over the shared campaigns table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get(self, campaign_id: str) -> CampaignInfo | None:
        async with self._session_factory() as db:
            result = await db.execute(select(Campaign).where(Campaign.id == campaign_id))
            campaign = result.scalar_one_or_none()
            return _to_info(campaign) if campaign else None

    async def find_active_in_category(self, category: str) -> list[CampaignInfo]:
        # categories is a JSON list; match in Python so the query stays portable
        wanted = category.strip().lower()
        async with self._session_factory() as db:
            result = await db.execute(
                select(Campaign)
                .where(Campaign.status.in_(ACTIVE_CAMPAIGN_STATUSES))
                .order_by(Campaign.id)
            )
            return [
                _to_info(c)
                for c in result.scalars()
                if any(str(cat).strip().lower() == wanted for cat in (c.categories or []))
            ]
