"""Pydantic response models for G-Key endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict

# --- Keys ---


class KeyResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: str
    category: str
    status: str
    usage_count: int = 0
    locked_with: str | None = None
    locked_at: datetime | None = None
    cooloff_ends_at: datetime | None = None
    last_used: datetime | None = None
    last_brand_id: str | None = None
    last_brand_cooloff_hours: int | None = None


class KeySummaryEntry(KeyResponse):
    completion_count: int = 0
    cooloff_time_remaining_ms: int | None = None
    cooloff_time_formatted: str | None = None
    cooloff_time_elapsed_ms: int | None = None
    cooloff_time_elapsed_formatted: str | None = None


class KeysSummaryResponse(BaseModel):
    total: int = 0
    available: int = 0
    locked: int = 0
    cooloff: int = 0
    keys: list[KeySummaryEntry] = []


class KeyDetailsResponse(BaseModel):
    category: str
    status: str
    last_brand_id: str | None = None
    cooloff_ends_at: datetime | None = None
    cooloff_time_remaining_ms: int | None = None


class AvailabilityResponse(BaseModel):
    category: str
    available: bool


# --- Debug ---


class CooloffAnalysis(BaseModel):
    has_expired: bool
    time_until_expiry_ms: int
    minutes_until_expiry: int


class CampaignAnalysis(BaseModel):
    campaign_exists: bool
    campaign_title: str | None = None
    campaign_status: str | None = None
    campaign_categories: list[str] | None = None


class ActiveCampaignEntry(BaseModel):
    id: str
    title: str
    status: str
    categories: list[str] = []


class KeyDebugResponse(KeyResponse):
    cooloff_analysis: CooloffAnalysis | None = None
    campaign_analysis: CampaignAnalysis | None = None
    active_campaigns_in_category: list[ActiveCampaignEntry] = []


class CategoryEntry(BaseModel):
    category: str
    display_name: str
    description: str
    color: str
    default_cooloff_hours: int
    max_usage_per_day: int


class CategoriesResponse(BaseModel):
    total_categories: int
    categories: list[CategoryEntry]


# --- Requests / actions ---


class LeaveCampaignRequest(BaseModel):
    cooloff_hours: int | None = None


class CooloffSweepResponse(BaseModel):
    message: str
    updated: int


class ForceUnlockResponse(BaseModel):
    message: str
    key: KeyResponse
