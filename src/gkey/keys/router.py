"""G-Key API endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query

from gkey.auth.dependencies import CurrentUser, get_current_user, require_admin
from gkey.dependencies import get_key_manager
from gkey.keys.schemas import (
    AvailabilityResponse,
    CategoriesResponse,
    CategoryEntry,
    CooloffSweepResponse,
    ForceUnlockResponse,
    KeyDebugResponse,
    KeyDetailsResponse,
    KeyResponse,
    KeysSummaryResponse,
    LeaveCampaignRequest,
)
from gkey.keys.service import KeyLeaseManager

router = APIRouter(prefix="/api/v1/g-keys", tags=["G-Keys"])


# ── Streamer endpoints ──


@router.get("", response_model=list[KeyResponse])
async def list_my_keys(
    user: CurrentUser = Depends(get_current_user),
    manager: KeyLeaseManager = Depends(get_key_manager),
):
    """All keys for the caller, backfilled and with due cooloffs expired."""
    if not user.is_streamer:
        return []
    return await manager.list_keys(user.id)


@router.get("/summary", response_model=KeysSummaryResponse)
async def keys_summary(
    user: CurrentUser = Depends(get_current_user),
    manager: KeyLeaseManager = Depends(get_key_manager),
):
    if not user.is_streamer:
        return KeysSummaryResponse()
    return await manager.summarize(user.id)


@router.post("/initialize", response_model=list[KeyResponse])
async def initialize_keys(
    user: CurrentUser = Depends(get_current_user),
    manager: KeyLeaseManager = Depends(get_key_manager),
):
    """Create the caller's catalog keys. Idempotent."""
    if not user.is_streamer:
        raise HTTPException(status_code=400, detail="Only streamers can have G-Keys")
    return await manager.ensure_catalog_for_user(user.id)


@router.get("/category/{category}", response_model=KeyDetailsResponse)
async def key_for_category(
    category: str,
    user: CurrentUser = Depends(get_current_user),
    manager: KeyLeaseManager = Depends(get_key_manager),
):
    return await manager.get_key_details(user.id, category)


@router.get("/available/{category}", response_model=AvailabilityResponse)
async def key_availability(
    category: str,
    brand_id: str | None = Query(default=None),
    user: CurrentUser = Depends(get_current_user),
    manager: KeyLeaseManager = Depends(get_key_manager),
):
    available = await manager.is_eligible(user.id, category, brand_id)
    return AvailabilityResponse(category=category.strip().lower(), available=available)


@router.post("/update-cooloffs", response_model=CooloffSweepResponse)
async def update_cooloffs(
    _user: CurrentUser = Depends(get_current_user),
    manager: KeyLeaseManager = Depends(get_key_manager),
):
    """Run the cooloff sweep now instead of waiting for the scheduler."""
    updated = await manager.expire_due_cooloffs()
    return CooloffSweepResponse(message="Cooloffs updated", updated=updated)


# ── Campaign participation ──


@router.post("/campaigns/{campaign_id}/join", response_model=KeyResponse)
async def join_campaign(
    campaign_id: str,
    user: CurrentUser = Depends(get_current_user),
    manager: KeyLeaseManager = Depends(get_key_manager),
):
    """Lock one of the caller's keys for the campaign."""
    if not user.is_streamer:
        raise HTTPException(status_code=403, detail="Only streamers can join campaigns")
    return await manager.consume_for_campaign(user.id, campaign_id)


@router.post("/campaigns/{campaign_id}/leave", response_model=KeyResponse)
async def leave_campaign(
    campaign_id: str,
    body: LeaveCampaignRequest | None = None,
    user: CurrentUser = Depends(get_current_user),
    manager: KeyLeaseManager = Depends(get_key_manager),
):
    """Release the key locked with the campaign into cooloff."""
    if not user.is_streamer:
        raise HTTPException(status_code=403, detail="Only streamers can leave campaigns")
    cooloff_hours = body.cooloff_hours if body else None
    return await manager.release(user.id, campaign_id, cooloff_hours)


# ── Debug ──


@router.get("/debug/categories", response_model=CategoriesResponse)
async def debug_categories(
    _user: CurrentUser = Depends(get_current_user),
    manager: KeyLeaseManager = Depends(get_key_manager),
):
    entries = [
        CategoryEntry(
            category=info.category,
            display_name=info.display_name,
            description=info.description,
            color=info.color,
            default_cooloff_hours=info.default_cooloff_hours,
            max_usage_per_day=info.max_usage_per_day,
        )
        for info in manager.catalog
    ]
    return CategoriesResponse(total_categories=len(entries), categories=entries)


@router.get("/debug/{category}", response_model=KeyDebugResponse)
async def debug_key(
    category: str,
    user: CurrentUser = Depends(get_current_user),
    manager: KeyLeaseManager = Depends(get_key_manager),
):
    return await manager.debug_key(user.id, category)


# ── Admin ──


@router.post("/admin/users/{user_id}/force-unlock/{category}", response_model=ForceUnlockResponse)
async def force_unlock(
    user_id: str,
    category: str,
    _admin: CurrentUser = Depends(require_admin),
    manager: KeyLeaseManager = Depends(get_key_manager),
):
    """Make a key available regardless of its state."""
    key = await manager.force_unlock(user_id, category)
    return ForceUnlockResponse(
        message=f"Key {key.category} force unlocked",
        key=KeyResponse.model_validate(key),
    )
