"""Baseline: ticket lifecycle and gamification schema.

Creates profiles, points_ledger, tickets, ticket_comments, missions and
user_missions. ``version`` columns back the ORM's optimistic locking.

Revision ID: 001_baseline
Revises: None
Create Date: 2026-10-17
"""

from collections.abc import Sequence

from alembic import op

revision: str = "001_baseline"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # --- Profiles ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS profiles (
            id VARCHAR(64) PRIMARY KEY,
            display_name VARCHAR(64),
            zone VARCHAR(16),
            public_profile BOOLEAN NOT NULL DEFAULT true,
            points INTEGER NOT NULL DEFAULT 0,
            level INTEGER NOT NULL DEFAULT 1,
            streak INTEGER NOT NULL DEFAULT 0 CHECK (streak >= 0),
            last_activity_date DATE,
            badges JSONB NOT NULL DEFAULT '[]',
            tickets_reported INTEGER NOT NULL DEFAULT 0,
            tickets_accepted INTEGER NOT NULL DEFAULT 0,
            tickets_cleaned INTEGER NOT NULL DEFAULT 0,
            tickets_validated INTEGER NOT NULL DEFAULT 0,
            missions_completed INTEGER NOT NULL DEFAULT 0,
            likes_given INTEGER NOT NULL DEFAULT 0,
            likes_received INTEGER NOT NULL DEFAULT 0,
            comments_given INTEGER NOT NULL DEFAULT 0,
            comments_received INTEGER NOT NULL DEFAULT 0,
            version INTEGER NOT NULL DEFAULT 1,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_profiles_leaderboard
        ON profiles(points DESC) WHERE public_profile
    """)

    # --- Points Ledger ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS points_ledger (
            id BIGSERIAL PRIMARY KEY,
            user_id VARCHAR(64) NOT NULL REFERENCES profiles(id) ON DELETE CASCADE,
            amount INTEGER NOT NULL,
            source VARCHAR(32) NOT NULL,
            source_id VARCHAR(128),
            description VARCHAR(256),
            idempotency_key VARCHAR(256) UNIQUE NOT NULL,
            reverses_key VARCHAR(256) UNIQUE,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_points_ledger_user
        ON points_ledger(user_id, created_at DESC)
    """)

    # --- Tickets ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS tickets (
            id VARCHAR(36) PRIMARY KEY,
            title VARCHAR(100) NOT NULL,
            description TEXT NOT NULL,
            latitude DOUBLE PRECISION NOT NULL,
            longitude DOUBLE PRECISION NOT NULL,
            address VARCHAR(256) NOT NULL,
            zone VARCHAR(16),
            type VARCHAR(16) NOT NULL,
            priority VARCHAR(16) NOT NULL,
            estimated_size VARCHAR(16) NOT NULL,
            status VARCHAR(16) NOT NULL DEFAULT 'reported',
            reported_by VARCHAR(64) NOT NULL REFERENCES profiles(id),
            accepted_by VARCHAR(64) REFERENCES profiles(id),
            validated_by VARCHAR(64) REFERENCES profiles(id),
            before_photos JSONB NOT NULL DEFAULT '[]',
            after_photos JSONB NOT NULL DEFAULT '[]',
            cleaning_status VARCHAR(16),
            points_awarded JSONB,
            validation_status VARCHAR(16),
            validated_at TIMESTAMPTZ,
            rejection_reason VARCHAR(500),
            acceptance_count INTEGER NOT NULL DEFAULT 0,
            cleaning_attempts INTEGER NOT NULL DEFAULT 0,
            likes INTEGER NOT NULL DEFAULT 0,
            comments INTEGER NOT NULL DEFAULT 0,
            liked_by JSONB NOT NULL DEFAULT '[]',
            version INTEGER NOT NULL DEFAULT 1,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            accepted_at TIMESTAMPTZ,
            completed_at TIMESTAMPTZ,
            CHECK (accepted_by IS NULL OR accepted_by <> reported_by),
            CHECK (validated_by IS NULL OR validated_by <> accepted_by)
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_tickets_status ON tickets(status)")
    op.execute("CREATE INDEX IF NOT EXISTS ix_tickets_reported_by ON tickets(reported_by)")
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_tickets_zone_status
        ON tickets(zone, status)
    """)

    # --- Comments ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS ticket_comments (
            id VARCHAR(36) PRIMARY KEY,
            ticket_id VARCHAR(36) NOT NULL REFERENCES tickets(id) ON DELETE CASCADE,
            user_id VARCHAR(64) NOT NULL REFERENCES profiles(id) ON DELETE CASCADE,
            content VARCHAR(3000) NOT NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_ticket_comments_ticket_id ON ticket_comments(ticket_id)")

    # --- Missions ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS missions (
            id VARCHAR(36) PRIMARY KEY,
            title VARCHAR(100) NOT NULL,
            description VARCHAR(300) NOT NULL DEFAULT '',
            icon VARCHAR(16),
            type VARCHAR(16) NOT NULL,
            category VARCHAR(16) NOT NULL,
            goal INTEGER NOT NULL CHECK (goal >= 1),
            points INTEGER NOT NULL,
            requirements JSONB NOT NULL DEFAULT '{}',
            expires_at TIMESTAMPTZ,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_missions_type_expiry
        ON missions(type, expires_at)
    """)

    # --- User Missions ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS user_missions (
            id SERIAL PRIMARY KEY,
            user_id VARCHAR(64) NOT NULL REFERENCES profiles(id) ON DELETE CASCADE,
            mission_id VARCHAR(36) NOT NULL REFERENCES missions(id) ON DELETE CASCADE,
            progress INTEGER NOT NULL DEFAULT 0 CHECK (progress >= 0),
            completed BOOLEAN NOT NULL DEFAULT false,
            completed_at TIMESTAMPTZ,
            version INTEGER NOT NULL DEFAULT 1,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT user_missions_user_id_mission_id_key UNIQUE (user_id, mission_id)
        )
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS user_missions CASCADE")
    op.execute("DROP TABLE IF EXISTS missions CASCADE")
    op.execute("DROP TABLE IF EXISTS ticket_comments CASCADE")
    op.execute("DROP TABLE IF EXISTS tickets CASCADE")
    op.execute("DROP TABLE IF EXISTS points_ledger CASCADE")
    op.execute("DROP TABLE IF EXISTS profiles CASCADE")
