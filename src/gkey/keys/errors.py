"""G-Key domain errors.

All errors derive from ValueError so callers that only care about "the
request was not acceptable" can catch that, while the HTTP layer maps each
kind to its own status code.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any


class GKeyError(ValueError):
    """Base class for key lifecycle errors."""

    status_code = 400
    code = "gkey_error"

    def to_dict(self) -> dict[str, Any]:
        return {"detail": str(self), "code": self.code}


@dataclass(frozen=True)
class KeyBlocker:
    """Why a single category could not be locked."""

    category: str
    reason: str  # "missing", "locked" or "cooloff"
    locked_with: str | None = None
    last_brand_id: str | None = None
    cooloff_ends_at: datetime | None = None
    cooloff_time_remaining_ms: int | None = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        if self.cooloff_ends_at is not None:
            data["cooloff_ends_at"] = self.cooloff_ends_at.isoformat()
        return data


class NoEligibleKey(GKeyError):
    status_code = 409
    code = "no_eligible_key"

    def __init__(self, categories: list[str], blockers: list[KeyBlocker] | None = None) -> None:
        self.categories = categories
        self.blockers = blockers or []
        super().__init__(
            f"No available keys for campaign categories: {', '.join(categories)}. "
            "Key may be locked with another campaign or in cooloff for a different brand."
        )

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["categories"] = self.categories
        data["blockers"] = [b.to_dict() for b in self.blockers]
        return data


class NoLockedKey(GKeyError):
    status_code = 404
    code = "no_locked_key"

    def __init__(self, user_id: str, campaign_id: str) -> None:
        self.user_id = user_id
        self.campaign_id = campaign_id
        super().__init__(f"No locked key found for campaign {campaign_id}")


class LeaseNotFound(GKeyError):
    status_code = 404
    code = "key_not_found"

    def __init__(self, user_id: str, category: str) -> None:
        self.user_id = user_id
        self.category = category
        super().__init__(f"Key not found for category {category}")


class CampaignNotFound(GKeyError):
    status_code = 404
    code = "campaign_not_found"

    def __init__(self, campaign_id: str) -> None:
        self.campaign_id = campaign_id
        super().__init__(f"Campaign {campaign_id} not found")


class CampaignHasNoCategories(GKeyError):
    code = "campaign_has_no_categories"

    def __init__(self, campaign_id: str) -> None:
        self.campaign_id = campaign_id
        super().__init__(f"Campaign {campaign_id} has no categories defined")


class InvalidCooloffPeriod(GKeyError):
    code = "invalid_cooloff_period"

    def __init__(self, hours: int, minimum: int, maximum: int) -> None:
        self.hours = hours
        super().__init__(f"Cooloff period must be between {minimum} and {maximum} hours, got {hours}")
