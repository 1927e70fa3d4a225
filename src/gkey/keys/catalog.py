"""G-Key category catalog.

Each streamer holds exactly ONE key per category, because they can only take
part in one campaign per category at a time. The catalog is static
configuration: adding a category is a deployment-time change followed by a
backfill (see KeyLeaseManager.backfill_catalog).
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from functools import lru_cache


@dataclass(frozen=True)
class CategoryInfo:
    category: str
    display_name: str
    description: str
    color: str
    default_cooloff_hours: int
    max_usage_per_day: int = 1  # carried for the dashboard, not enforced


KEY_CATEGORIES: tuple[CategoryInfo, ...] = (
    CategoryInfo("gaming", "Gaming", "Video games, gaming hardware, and esports", "#ec4899", 360),
    CategoryInfo("technology", "Tech", "Software, hardware, and tech services", "#8b5cf6", 720),
    CategoryInfo("lifestyle", "Lifestyle", "Lifestyle products and services", "#14b8a6", 720),
    CategoryInfo(
        "entertainment", "Entertainment", "Movies, music, books, and entertainment services", "#a855f7", 720
    ),
    CategoryInfo("sports", "Sports", "Sports equipment, events, and athletic services", "#dc2626", 1080),
    CategoryInfo("music", "Music", "Music instruments, streaming, and audio equipment", "#7c3aed", 720),
    CategoryInfo(
        "romance", "Romance", "Dating services, romantic gifts, and relationship products", "#e11d48", 1440
    ),
    CategoryInfo("beauty", "Beauty", "Cosmetics, skincare, and beauty services", "#ec4899", 1080),
    CategoryInfo("fashion", "Fashion", "Clothing, accessories, and fashion brands", "#f97316", 1080),
    CategoryInfo("food", "Food", "Food products, restaurants, and culinary services", "#22c55e", 720),
    CategoryInfo("travel", "Travel", "Travel services, hotels, and tourism", "#10b981", 1080),
    CategoryInfo("education", "Education", "Educational institutions and learning platforms", "#0ea5e9", 720),
    CategoryInfo("fitness", "Fitness", "Fitness equipment, gyms, and wellness services", "#06b6d4", 1080),
    CategoryInfo(
        "business", "Business", "Business services, B2B products, and professional tools", "#059669", 1440
    ),
    CategoryInfo("art", "Art", "Art supplies, galleries, and creative services", "#9333ea", 720),
    # Legacy categories kept for older campaigns
    CategoryInfo("retail", "Retail", "General retail and consumer goods", "#3b82f6", 720),
    CategoryInfo(
        "watches-timepieces",
        "Watches & Timepieces",
        "Watches, clocks, and time-related accessories",
        "#f59e0b",
        2160,
    ),
    CategoryInfo("automotive", "Automotive", "Cars, motorcycles, and automotive accessories", "#ef4444", 1440),
    CategoryInfo("food-beverage", "Food & Beverage", "Food products, restaurants, and beverages", "#84cc16", 1080),
    CategoryInfo("fashion-beauty", "Fashion & Beauty", "Clothing, cosmetics, and personal care", "#f43f5e", 1080),
    CategoryInfo(
        "health-fitness", "Health & Fitness", "Healthcare, fitness equipment, and wellness", "#0891b2", 1440
    ),
    CategoryInfo("travel-tourism", "Travel & Tourism", "Travel services, hotels, and tourism", "#059669", 1080),
    CategoryInfo(
        "finance-insurance", "Finance & Insurance", "Banking, insurance, and financial services", "#15803d", 2160
    ),
)


def normalize_category(category: str) -> str:
    """Campaign categories are free-form; catalog slugs are lowercase."""
    return category.strip().lower()


def normalize_categories(categories: Iterable[str]) -> list[str]:
    """Normalize, drop blanks and de-duplicate while keeping campaign order."""
    seen: set[str] = set()
    normalized: list[str] = []
    for raw in categories:
        slug = normalize_category(raw)
        if slug and slug not in seen:
            seen.add(slug)
            normalized.append(slug)
    return normalized


class CategoryCatalog:
    """Immutable, validated view over a list of category descriptors."""

    def __init__(self, categories: Iterable[CategoryInfo]) -> None:
        entries = tuple(categories)
        positions: dict[str, int] = {}
        for index, info in enumerate(entries):
            if info.category != normalize_category(info.category) or not info.category:
                raise ValueError(f"Category slug must be lowercase and non-empty: {info.category!r}")
            if info.category in positions:
                raise ValueError(f"Duplicate category slug: {info.category}")
            if info.default_cooloff_hours <= 0:
                raise ValueError(
                    f"default_cooloff_hours must be > 0 for {info.category}, got {info.default_cooloff_hours}"
                )
            if info.max_usage_per_day <= 0:
                raise ValueError(
                    f"max_usage_per_day must be > 0 for {info.category}, got {info.max_usage_per_day}"
                )
            positions[info.category] = index
        self._entries = entries
        self._positions = positions

    def __iter__(self) -> Iterator[CategoryInfo]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, category: object) -> bool:
        return category in self._positions

    def get(self, category: str) -> CategoryInfo | None:
        index = self._positions.get(category)
        return None if index is None else self._entries[index]

    def slugs(self) -> list[str]:
        return [info.category for info in self._entries]

    def position(self, category: str) -> int:
        """Sort key: catalog order first, unknown categories last."""
        return self._positions.get(category, len(self._entries))

    def default_cooloff_hours(self, category: str) -> int | None:
        """None for categories outside the catalog; callers pick their own fallback."""
        info = self.get(category)
        return info.default_cooloff_hours if info else None


@lru_cache
def get_catalog() -> CategoryCatalog:
    """Catalog loaded once per process."""
    return CategoryCatalog(KEY_CATEGORIES)
