"""Progression schema: profiles, quest/plan catalog, assignments, workout logs,
XP ledger, guilds, and challenges.

Uniqueness constraints double as the idempotency keys of the engine:
xp_events(user_id, source_type, source_id), quest_completions(assignment_id),
workout_logs(user_id, log_date), group_members(group_id, user_id), and the
partial index on active quest assignments.

Revision ID: 001_progression_tables
Revises:
Create Date: 2026-10-18
"""

from collections.abc import Sequence

from alembic import op

revision: str = "001_progression_tables"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # --- Profiles ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS profiles (
            id UUID PRIMARY KEY,
            username VARCHAR(64),
            display_name VARCHAR(64),
            path VARCHAR(32) CHECK (path IN ('HEAVENLY_DEMON', 'HUNTER')),
            total_xp INTEGER NOT NULL DEFAULT 0 CHECK (total_xp >= 0),
            current_streak INTEGER NOT NULL DEFAULT 0,
            longest_streak INTEGER NOT NULL DEFAULT 0,
            last_workout_date DATE,
            created_at TIMESTAMPTZ DEFAULT NOW(),
            updated_at TIMESTAMPTZ DEFAULT NOW()
        )
    """)

    # --- Catalog ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS quests (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            title VARCHAR(128) NOT NULL,
            description TEXT NOT NULL DEFAULT '',
            path VARCHAR(32) NOT NULL,
            category VARCHAR(32) NOT NULL DEFAULT 'general',
            difficulty VARCHAR(16) NOT NULL DEFAULT 'easy',
            xp_reward INTEGER NOT NULL DEFAULT 50 CHECK (xp_reward >= 0),
            is_active BOOLEAN NOT NULL DEFAULT true,
            flavor_text TEXT NOT NULL DEFAULT '',
            created_at TIMESTAMPTZ DEFAULT NOW(),
            CONSTRAINT quests_path_title_key UNIQUE (path, title)
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS workout_plans (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            name VARCHAR(128) NOT NULL UNIQUE,
            path VARCHAR(32),
            description TEXT NOT NULL DEFAULT '',
            is_active BOOLEAN NOT NULL DEFAULT true,
            created_at TIMESTAMPTZ DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS workout_plan_days (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            plan_id UUID NOT NULL REFERENCES workout_plans(id) ON DELETE CASCADE,
            day_number INTEGER NOT NULL,
            title VARCHAR(128) NOT NULL,
            template JSONB NOT NULL DEFAULT '{}'::jsonb,
            CONSTRAINT workout_plan_days_plan_day_key UNIQUE (plan_id, day_number)
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS user_workout_plans (
            user_id UUID PRIMARY KEY REFERENCES profiles(id) ON DELETE CASCADE,
            plan_id UUID NOT NULL REFERENCES workout_plans(id) ON DELETE CASCADE,
            selected_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)

    # --- Quest assignments ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS quest_assignments (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            user_id UUID NOT NULL REFERENCES profiles(id) ON DELETE CASCADE,
            quest_id UUID NOT NULL REFERENCES quests(id) ON DELETE CASCADE,
            status VARCHAR(16) NOT NULL DEFAULT 'active'
                CHECK (status IN ('active', 'completed', 'abandoned')),
            selected_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            completed_at TIMESTAMPTZ
        )
    """)
    op.execute("""
        CREATE UNIQUE INDEX IF NOT EXISTS uq_quest_assignments_active
        ON quest_assignments(user_id, quest_id) WHERE status = 'active'
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_quest_assignments_user_status
        ON quest_assignments(user_id, status)
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS quest_completions (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            assignment_id UUID NOT NULL UNIQUE REFERENCES quest_assignments(id) ON DELETE CASCADE,
            user_id UUID NOT NULL REFERENCES profiles(id) ON DELETE CASCADE,
            note TEXT,
            completed_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)

    # --- Workout logs ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS workout_logs (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            user_id UUID NOT NULL REFERENCES profiles(id) ON DELETE CASCADE,
            log_date DATE NOT NULL,
            completed BOOLEAN NOT NULL DEFAULT false,
            payload JSONB NOT NULL DEFAULT '{}'::jsonb,
            created_at TIMESTAMPTZ DEFAULT NOW(),
            updated_at TIMESTAMPTZ DEFAULT NOW(),
            CONSTRAINT workout_logs_user_date_key UNIQUE (user_id, log_date)
        )
    """)

    # --- XP ledger ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS xp_events (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            user_id UUID NOT NULL REFERENCES profiles(id) ON DELETE CASCADE,
            source_type VARCHAR(32) NOT NULL
                CHECK (source_type IN ('quest_completion', 'workout_log')),
            source_id UUID NOT NULL,
            amount INTEGER NOT NULL CHECK (amount >= 0),
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT xp_events_source_key UNIQUE (user_id, source_type, source_id)
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_xp_events_user_created
        ON xp_events(user_id, created_at)
    """)

    # --- Guilds ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS groups (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            name VARCHAR(64) NOT NULL,
            owner_id UUID NOT NULL REFERENCES profiles(id) ON DELETE CASCADE,
            invite_code VARCHAR(8) NOT NULL UNIQUE,
            created_at TIMESTAMPTZ DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS group_members (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            group_id UUID NOT NULL REFERENCES groups(id) ON DELETE CASCADE,
            user_id UUID NOT NULL REFERENCES profiles(id) ON DELETE CASCADE,
            role VARCHAR(16) NOT NULL DEFAULT 'member' CHECK (role IN ('owner', 'member')),
            joined_at TIMESTAMPTZ DEFAULT NOW(),
            CONSTRAINT group_members_group_user_key UNIQUE (group_id, user_id)
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_group_members_user
        ON group_members(user_id)
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS challenges (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            group_id UUID NOT NULL REFERENCES groups(id) ON DELETE CASCADE,
            title VARCHAR(128) NOT NULL,
            starts_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            ends_at TIMESTAMPTZ,
            created_by UUID NOT NULL REFERENCES profiles(id) ON DELETE CASCADE,
            created_at TIMESTAMPTZ DEFAULT NOW(),
            CHECK (ends_at IS NULL OR ends_at >= starts_at)
        )
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS challenges CASCADE")
    op.execute("DROP TABLE IF EXISTS group_members CASCADE")
    op.execute("DROP TABLE IF EXISTS groups CASCADE")
    op.execute("DROP TABLE IF EXISTS xp_events CASCADE")
    op.execute("DROP TABLE IF EXISTS workout_logs CASCADE")
    op.execute("DROP TABLE IF EXISTS quest_completions CASCADE")
    op.execute("DROP TABLE IF EXISTS quest_assignments CASCADE")
    op.execute("DROP TABLE IF EXISTS user_workout_plans CASCADE")
    op.execute("DROP TABLE IF EXISTS workout_plan_days CASCADE")
    op.execute("DROP TABLE IF EXISTS workout_plans CASCADE")
    op.execute("DROP TABLE IF EXISTS quests CASCADE")
    op.execute("DROP TABLE IF EXISTS profiles CASCADE")
