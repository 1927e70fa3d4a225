"""Key state machine tests: transitions, eligibility and blocker descriptions."""

from datetime import datetime, timedelta, timezone

import pytest

from gkey.db.models import GKey
from gkey.keys.state import (
    AVAILABLE,
    COOLOFF,
    LOCKED,
    VALID_TRANSITIONS,
    can_lock,
    describe_blocker,
    remaining_ms,
    validate_transition,
)

NOW = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)


def _key(**fields) -> GKey:
    defaults = {"user_id": "u1", "category": "gaming", "status": AVAILABLE, "usage_count": 0}
    defaults.update(fields)
    return GKey(**defaults)


class TestTransitions:
    @pytest.mark.parametrize(
        ("current", "target"),
        [(AVAILABLE, LOCKED), (LOCKED, COOLOFF), (COOLOFF, AVAILABLE), (COOLOFF, LOCKED)],
    )
    def test_valid(self, current, target):
        validate_transition(current, target)

    @pytest.mark.parametrize(
        ("current", "target"),
        [(AVAILABLE, COOLOFF), (LOCKED, AVAILABLE), (LOCKED, LOCKED), ("unknown", AVAILABLE)],
    )
    def test_invalid(self, current, target):
        with pytest.raises(ValueError, match="Invalid transition"):
            validate_transition(current, target)

    def test_every_status_has_transitions(self):
        assert set(VALID_TRANSITIONS) == {AVAILABLE, LOCKED, COOLOFF}


class TestCanLock:
    def test_available(self):
        assert can_lock(_key()) is True

    def test_locked_never(self):
        key = _key(status=LOCKED, locked_with="c1", last_brand_id="brand-a")
        assert can_lock(key, "brand-a") is False

    def test_cooloff_same_brand(self):
        assert can_lock(_key(status=COOLOFF, last_brand_id="brand-a"), "brand-a") is True

    def test_cooloff_other_brand(self):
        assert can_lock(_key(status=COOLOFF, last_brand_id="brand-a"), "brand-b") is False

    def test_cooloff_without_brand(self):
        assert can_lock(_key(status=COOLOFF, last_brand_id="brand-a")) is False


class TestDescribeBlocker:
    def test_missing(self):
        blocker = describe_blocker(None, "gaming", NOW)
        assert blocker.reason == "missing"

    def test_locked(self):
        blocker = describe_blocker(_key(status=LOCKED, locked_with="c9"), "gaming", NOW)
        assert blocker.reason == LOCKED
        assert blocker.locked_with == "c9"

    def test_cooloff_reports_remaining(self):
        ends = NOW + timedelta(hours=2)
        blocker = describe_blocker(
            _key(status=COOLOFF, last_brand_id="brand-a", cooloff_ends_at=ends), "gaming", NOW
        )
        assert blocker.reason == COOLOFF
        assert blocker.last_brand_id == "brand-a"
        assert blocker.cooloff_time_remaining_ms == 2 * 3_600_000
        assert blocker.to_dict()["cooloff_ends_at"] == ends.isoformat()


def test_remaining_ms_floors_at_zero():
    assert remaining_ms(NOW - timedelta(minutes=5), NOW) == 0
    assert remaining_ms(NOW + timedelta(seconds=90), NOW) == 90_000
