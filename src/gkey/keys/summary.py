"""Dashboard read models built from key records.

Pure projections: nothing here touches the store.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime

from gkey.campaigns.lookup import CampaignInfo
from gkey.db.models import GKey
from gkey.keys.schemas import (
    ActiveCampaignEntry,
    CampaignAnalysis,
    CooloffAnalysis,
    KeyDebugResponse,
    KeyDetailsResponse,
    KeyResponse,
    KeysSummaryResponse,
    KeySummaryEntry,
)
from gkey.keys.state import AVAILABLE, COOLOFF, LOCKED, remaining_ms


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit}{'' if count == 1 else 's'}"


def format_cooloff_time(milliseconds: int) -> str:
    """Human-readable duration using the two coarsest units, e.g. '2d 4h', '2h 30m'."""
    if milliseconds <= 0:
        return "0 minutes"

    minutes = milliseconds // 60_000
    hours = minutes // 60
    days = hours // 24

    if days > 0:
        if hours % 24:
            return f"{days}d {hours % 24}h"
        return _plural(days, "day")

    if hours > 0:
        if minutes % 60:
            return f"{hours}h {minutes % 60}m"
        return _plural(hours, "hour")

    if minutes > 0:
        return _plural(minutes, "minute")

    return "< 1 minute"


def build_summary_entry(key: GKey, now: datetime) -> KeySummaryEntry:
    entry = KeySummaryEntry.model_validate(key)
    entry.completion_count = key.usage_count or 0

    if key.status == COOLOFF and key.cooloff_ends_at is not None:
        remaining = remaining_ms(key.cooloff_ends_at, now)
        entry.cooloff_time_remaining_ms = remaining
        entry.cooloff_time_formatted = format_cooloff_time(remaining)

        if key.last_used is not None:
            elapsed = int((now - key.last_used).total_seconds() * 1000)
            entry.cooloff_time_elapsed_ms = elapsed
            entry.cooloff_time_elapsed_formatted = format_cooloff_time(elapsed)

    return entry


def build_keys_summary(keys: Sequence[GKey], now: datetime) -> KeysSummaryResponse:
    """Totals by status plus per-key cooloff timing."""
    return KeysSummaryResponse(
        total=len(keys),
        available=sum(1 for k in keys if k.status == AVAILABLE),
        locked=sum(1 for k in keys if k.status == LOCKED),
        cooloff=sum(1 for k in keys if k.status == COOLOFF),
        keys=[build_summary_entry(k, now) for k in keys],
    )


def build_key_details(key: GKey, now: datetime) -> KeyDetailsResponse:
    details = KeyDetailsResponse(
        category=key.category,
        status=key.status,
        last_brand_id=key.last_brand_id,
        cooloff_ends_at=key.cooloff_ends_at,
    )
    if key.status == COOLOFF and key.cooloff_ends_at is not None:
        details.cooloff_time_remaining_ms = remaining_ms(key.cooloff_ends_at, now)
    return details


def build_key_debug(
    key: GKey,
    now: datetime,
    locking_campaign: CampaignInfo | None,
    active_campaigns: Sequence[CampaignInfo],
) -> KeyDebugResponse:
    """Lease fields plus cooloff and campaign cross-reference analysis."""
    debug = KeyDebugResponse(
        **KeyResponse.model_validate(key).model_dump(),
        active_campaigns_in_category=[
            ActiveCampaignEntry(id=c.id, title=c.title, status=c.status, categories=c.categories)
            for c in active_campaigns
        ],
    )

    if key.status == COOLOFF and key.cooloff_ends_at is not None:
        until = int((key.cooloff_ends_at - now).total_seconds() * 1000)
        debug.cooloff_analysis = CooloffAnalysis(
            has_expired=now > key.cooloff_ends_at,
            time_until_expiry_ms=until,
            minutes_until_expiry=round(until / 60_000),
        )

    if key.status == LOCKED and key.locked_with:
        debug.campaign_analysis = CampaignAnalysis(
            campaign_exists=locking_campaign is not None,
            campaign_title=locking_campaign.title if locking_campaign else None,
            campaign_status=locking_campaign.status if locking_campaign else None,
            campaign_categories=locking_campaign.categories if locking_campaign else None,
        )

    return debug
