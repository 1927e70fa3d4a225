"""G-Key tables.

Creates g_keys (one row per user and category) and the campaigns subset
read by the key service.

Revision ID: 001_g_keys
Revises: None
Create Date: 2026-10-19
"""

from collections.abc import Sequence

from alembic import op

revision: str = "001_g_keys"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # --- Campaigns (shared with the campaign service) ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS campaigns (
            id VARCHAR(64) PRIMARY KEY,
            brand_id VARCHAR(64) NOT NULL,
            title VARCHAR(256) NOT NULL DEFAULT '',
            status VARCHAR(32) NOT NULL DEFAULT 'draft',
            categories JSONB NOT NULL DEFAULT '[]',
            g_key_cooloff_hours INTEGER
                CHECK (g_key_cooloff_hours IS NULL OR g_key_cooloff_hours BETWEEN 1 AND 8760),
            created_at TIMESTAMPTZ DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS idx_campaigns_status ON campaigns(status)")
    op.execute("CREATE INDEX IF NOT EXISTS idx_campaigns_brand_id ON campaigns(brand_id)")

    # --- G-Keys ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS g_keys (
            id BIGSERIAL PRIMARY KEY,
            user_id VARCHAR(64) NOT NULL,
            category VARCHAR(64) NOT NULL,
            status VARCHAR(16) NOT NULL DEFAULT 'available'
                CHECK (status IN ('available', 'locked', 'cooloff')),
            usage_count INTEGER NOT NULL DEFAULT 0,
            locked_with VARCHAR(64),
            locked_at TIMESTAMPTZ,
            cooloff_ends_at TIMESTAMPTZ,
            last_used TIMESTAMPTZ,
            last_brand_id VARCHAR(64),
            last_brand_cooloff_hours INTEGER,
            created_at TIMESTAMPTZ DEFAULT NOW(),
            updated_at TIMESTAMPTZ DEFAULT NOW(),
            CONSTRAINT uq_g_keys_user_category UNIQUE (user_id, category)
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS idx_g_keys_status ON g_keys(status)")
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_g_keys_cooloff_ends_at
        ON g_keys(cooloff_ends_at) WHERE status = 'cooloff'
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS g_keys")
    op.execute("DROP TABLE IF EXISTS campaigns")
