"""Key state machine.

State progression: available -> locked -> cooloff -> available
A key in cooloff may be re-locked directly by the brand it last worked with
(same-brand exception). Cooloff only ends by expiry; force-unlock is an admin
escape hatch that skips validation entirely.
"""

from __future__ import annotations

from datetime import datetime

from gkey.db.models import GKey
from gkey.keys.errors import KeyBlocker

AVAILABLE = "available"
LOCKED = "locked"
COOLOFF = "cooloff"

KEY_STATUSES: tuple[str, ...] = (AVAILABLE, LOCKED, COOLOFF)

VALID_TRANSITIONS: dict[str, list[str]] = {
    AVAILABLE: [LOCKED],
    LOCKED: [COOLOFF],
    COOLOFF: [AVAILABLE, LOCKED],
}


def validate_transition(current_status: str, target_status: str) -> None:
    """Validate a state transition. Raises ValueError if invalid."""
    valid = VALID_TRANSITIONS.get(current_status, [])
    if target_status not in valid:
        raise ValueError(
            f"Invalid transition: {current_status} -> {target_status}. "
            f"Valid transitions: {valid}"
        )


def can_lock(key: GKey, brand_id: str | None = None) -> bool:
    """Eligibility rule shared by is_eligible and the conditional lock UPDATE."""
    if key.status == AVAILABLE:
        return True
    return key.status == COOLOFF and brand_id is not None and key.last_brand_id == brand_id


def remaining_ms(ends_at: datetime, now: datetime) -> int:
    """Milliseconds until ends_at, floored at 0."""
    return max(0, int((ends_at - now).total_seconds() * 1000))


def describe_blocker(key: GKey | None, category: str, now: datetime) -> KeyBlocker:
    """Explain why a category could not be locked."""
    if key is None:
        return KeyBlocker(category=category, reason="missing")
    if key.status == LOCKED:
        return KeyBlocker(category=category, reason=LOCKED, locked_with=key.locked_with)
    return KeyBlocker(
        category=category,
        reason=key.status,
        last_brand_id=key.last_brand_id,
        cooloff_ends_at=key.cooloff_ends_at,
        cooloff_time_remaining_ms=remaining_ms(key.cooloff_ends_at, now) if key.cooloff_ends_at else None,
    )
