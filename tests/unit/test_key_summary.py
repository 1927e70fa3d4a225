"""Cooloff formatting and summary read model tests."""

from datetime import datetime, timedelta, timezone

import pytest

from gkey.campaigns.lookup import CampaignInfo
from gkey.db.models import GKey
from gkey.keys.state import AVAILABLE, COOLOFF, LOCKED
from gkey.keys.summary import build_key_debug, build_keys_summary, format_cooloff_time

NOW = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)

MINUTE = 60_000
HOUR = 60 * MINUTE
DAY = 24 * HOUR


class TestFormatCooloffTime:
    @pytest.mark.parametrize(
        ("ms", "expected"),
        [
            (0, "0 minutes"),
            (-5000, "0 minutes"),
            (30_000, "< 1 minute"),
            (MINUTE, "1 minute"),
            (45 * MINUTE, "45 minutes"),
            (HOUR, "1 hour"),
            (5 * HOUR, "5 hours"),
            (150 * MINUTE, "2h 30m"),
            (DAY, "1 day"),
            (3 * DAY, "3 days"),
            (2 * DAY + 4 * HOUR, "2d 4h"),
            (2 * DAY + 4 * HOUR + 59 * MINUTE, "2d 4h"),
        ],
    )
    def test_format(self, ms, expected):
        assert format_cooloff_time(ms) == expected


def _key(category: str, status: str, **fields) -> GKey:
    return GKey(user_id="u1", category=category, status=status, usage_count=fields.pop("usage_count", 0), **fields)


class TestBuildKeysSummary:
    def test_counts_and_cooloff_timing(self):
        keys = [
            _key("gaming", COOLOFF, usage_count=2,
                 cooloff_ends_at=NOW + timedelta(minutes=150), last_used=NOW - timedelta(hours=1)),
            _key("music", LOCKED, locked_with="c1", locked_at=NOW),
            _key("art", AVAILABLE),
        ]
        summary = build_keys_summary(keys, NOW)

        assert (summary.total, summary.available, summary.locked, summary.cooloff) == (3, 1, 1, 1)
        gaming = summary.keys[0]
        assert gaming.completion_count == 2
        assert gaming.cooloff_time_remaining_ms == 150 * MINUTE
        assert gaming.cooloff_time_formatted == "2h 30m"
        assert gaming.cooloff_time_elapsed_ms == HOUR
        assert gaming.cooloff_time_elapsed_formatted == "1 hour"

        music = summary.keys[1]
        assert music.cooloff_time_remaining_ms is None
        assert music.cooloff_time_formatted is None

    def test_overdue_cooloff_floors_at_zero(self):
        summary = build_keys_summary(
            [_key("gaming", COOLOFF, cooloff_ends_at=NOW - timedelta(minutes=1))], NOW
        )
        assert summary.keys[0].cooloff_time_remaining_ms == 0
        assert summary.keys[0].cooloff_time_formatted == "0 minutes"


class TestBuildKeyDebug:
    def test_cooloff_analysis(self):
        key = _key("gaming", COOLOFF, cooloff_ends_at=NOW + timedelta(minutes=30))
        debug = build_key_debug(key, NOW, None, [])
        assert debug.cooloff_analysis is not None
        assert debug.cooloff_analysis.has_expired is False
        assert debug.cooloff_analysis.minutes_until_expiry == 30
        assert debug.campaign_analysis is None

    def test_expired_cooloff_is_negative(self):
        key = _key("gaming", COOLOFF, cooloff_ends_at=NOW - timedelta(minutes=10))
        debug = build_key_debug(key, NOW, None, [])
        assert debug.cooloff_analysis.has_expired is True
        assert debug.cooloff_analysis.time_until_expiry_ms == -10 * MINUTE

    def test_locked_with_missing_campaign(self):
        key = _key("gaming", LOCKED, locked_with="gone", locked_at=NOW)
        debug = build_key_debug(key, NOW, None, [])
        assert debug.campaign_analysis is not None
        assert debug.campaign_analysis.campaign_exists is False

    def test_lists_active_campaigns(self):
        key = _key("gaming", LOCKED, locked_with="c1", locked_at=NOW)
        campaign = CampaignInfo(id="c1", brand_id="b1", categories=["Gaming"], title="Launch", status="active")
        debug = build_key_debug(key, NOW, campaign, [campaign])
        assert debug.campaign_analysis.campaign_title == "Launch"
        assert [c.id for c in debug.active_campaigns_in_category] == ["c1"]
