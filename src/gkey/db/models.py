"""ORM models for G-Keys and the campaign fields the key service reads."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, BigInteger, Index, Integer, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from gkey.db.base import Base, UTCDateTime

# ---------------------------------------------------------------------------
# G-Keys
# ---------------------------------------------------------------------------


class GKey(Base):
    """One key per (user_id, category), enforced by UNIQUE(user_id, category).

    Field presence follows the status:
    - available: locked_with, locked_at and cooloff_ends_at are all NULL
    - locked: locked_with and locked_at set, cooloff_ends_at NULL
    - cooloff: cooloff_ends_at set, locked_with and locked_at NULL
    """

    __tablename__ = "g_keys"
    __table_args__ = (
        UniqueConstraint("user_id", "category", name="uq_g_keys_user_category"),
        Index("idx_g_keys_status", "status"),
        Index("idx_g_keys_cooloff_ends_at", "cooloff_ends_at"),
    )

    id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True
    )
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    category: Mapped[str] = mapped_column(String(64), nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, server_default="available")
    usage_count: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    locked_with: Mapped[str | None] = mapped_column(String(64), nullable=True)
    locked_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    cooloff_ends_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    last_used: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    last_brand_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    last_brand_cooloff_hours: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    updated_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)


# ---------------------------------------------------------------------------
# Campaigns (owned by the campaign service, read-only here)
# ---------------------------------------------------------------------------


class Campaign(Base):
    """Subset of the campaigns table needed to gate participation."""

    __tablename__ = "campaigns"
    __table_args__ = (
        Index("idx_campaigns_status", "status"),
        Index("idx_campaigns_brand_id", "brand_id"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    brand_id: Mapped[str] = mapped_column(String(64), nullable=False)
    title: Mapped[str] = mapped_column(String(256), nullable=False, server_default="")
    status: Mapped[str] = mapped_column(String(32), nullable=False, server_default="draft")
    categories: Mapped[list[Any]] = mapped_column(
        JSON().with_variant(JSONB, "postgresql"), nullable=False, default=list
    )
    g_key_cooloff_hours: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
