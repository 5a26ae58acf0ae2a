"""Initial schema: users, credit ledger, daily activity, streaks and rewards.

Also creates conversation sessions and the foundation module tables.

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-19
"""

from collections.abc import Sequence

from alembic import op

revision: str = "001_initial_schema"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # --- Users & credits ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS users (
            id BIGSERIAL PRIMARY KEY,
            email VARCHAR(320) NOT NULL,
            display_name VARCHAR(64),
            selected_language VARCHAR(32),
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_users_email UNIQUE (email)
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS credit_balances (
            user_id BIGINT PRIMARY KEY REFERENCES users(id) ON DELETE CASCADE,
            credits INTEGER NOT NULL DEFAULT 0,
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_credit_balances_credits_non_negative CHECK (credits >= 0)
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS credit_transactions (
            id BIGSERIAL PRIMARY KEY,
            user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            type VARCHAR(16) NOT NULL,
            status VARCHAR(16) NOT NULL,
            amount INTEGER NOT NULL,
            price NUMERIC(12, 2),
            currency VARCHAR(8),
            payment_method VARCHAR(32),
            payment_id VARCHAR(128),
            description VARCHAR(256) NOT NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_credit_transactions_payment_id UNIQUE (payment_id)
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS ix_credit_transactions_user_id
        ON credit_transactions(user_id)
    """)

    # --- Activity & streaks ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS daily_activities (
            id BIGSERIAL PRIMARY KEY,
            user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            activity_date DATE NOT NULL,
            has_activity BOOLEAN NOT NULL DEFAULT true,
            conversation_count INTEGER NOT NULL DEFAULT 0,
            module_progress_count INTEGER NOT NULL DEFAULT 0,
            time_spent_seconds INTEGER NOT NULL DEFAULT 0,
            credits_earned INTEGER NOT NULL DEFAULT 0,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_daily_activities_user_date UNIQUE (user_id, activity_date)
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS user_streaks (
            user_id BIGINT PRIMARY KEY REFERENCES users(id) ON DELETE CASCADE,
            current_streak INTEGER NOT NULL DEFAULT 0,
            longest_streak INTEGER NOT NULL DEFAULT 0,
            last_activity_date DATE,
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_user_streaks_longest_gte_current CHECK (longest_streak >= current_streak)
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS streak_rewards (
            id BIGSERIAL PRIMARY KEY,
            user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            streak_days INTEGER NOT NULL,
            credits_awarded INTEGER NOT NULL,
            awarded_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_streak_rewards_user_days UNIQUE (user_id, streak_days)
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS user_milestones (
            id BIGSERIAL PRIMARY KEY,
            user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            milestone_type VARCHAR(64) NOT NULL,
            language VARCHAR(32) NOT NULL DEFAULT '',
            milestone VARCHAR(256) NOT NULL,
            achieved BOOLEAN NOT NULL DEFAULT false,
            achieved_at TIMESTAMPTZ,
            credits_awarded INTEGER NOT NULL DEFAULT 0,
            milestone_metadata JSONB,
            CONSTRAINT uq_user_milestones_user_type_lang UNIQUE (user_id, milestone_type, language)
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS user_achievements (
            id BIGSERIAL PRIMARY KEY,
            user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            achievement_type VARCHAR(64) NOT NULL,
            title VARCHAR(128) NOT NULL,
            description TEXT NOT NULL DEFAULT '',
            badge_icon VARCHAR(16) NOT NULL DEFAULT '🏆',
            badge_color VARCHAR(16) NOT NULL DEFAULT 'gold',
            credits_awarded INTEGER NOT NULL DEFAULT 0,
            unlocked_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_user_achievements_user_type UNIQUE (user_id, achievement_type)
        )
    """)

    # --- Conversations ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS conversation_sessions (
            id BIGSERIAL PRIMARY KEY,
            user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            agent_id VARCHAR(128) NOT NULL DEFAULT '',
            language VARCHAR(32) NOT NULL,
            topic VARCHAR(256),
            status VARCHAR(16) NOT NULL,
            credits_used INTEGER NOT NULL DEFAULT 0,
            duration_seconds INTEGER,
            quality INTEGER,
            feedback TEXT,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            ended_at TIMESTAMPTZ
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS ix_conversation_sessions_user_id
        ON conversation_sessions(user_id)
    """)

    # --- Foundations ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS foundation_modules (
            id BIGSERIAL PRIMARY KEY,
            language VARCHAR(32) NOT NULL,
            module_type VARCHAR(32) NOT NULL,
            title VARCHAR(128) NOT NULL,
            description TEXT NOT NULL DEFAULT '',
            order_index INTEGER NOT NULL DEFAULT 0,
            required_score INTEGER NOT NULL,
            credits_reward INTEGER NOT NULL DEFAULT 0,
            is_active BOOLEAN NOT NULL DEFAULT true,
            CONSTRAINT uq_foundation_modules_lang_type UNIQUE (language, module_type)
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS module_progress (
            id BIGSERIAL PRIMARY KEY,
            user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            module_id BIGINT NOT NULL REFERENCES foundation_modules(id) ON DELETE CASCADE,
            language VARCHAR(32) NOT NULL,
            status VARCHAR(16) NOT NULL,
            progress_percent INTEGER NOT NULL DEFAULT 0,
            time_spent_seconds INTEGER NOT NULL DEFAULT 0,
            best_score INTEGER,
            reward_granted BOOLEAN NOT NULL DEFAULT false,
            completed_at TIMESTAMPTZ,
            last_accessed_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_module_progress_user_module UNIQUE (user_id, module_id)
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS quiz_attempts (
            id BIGSERIAL PRIMARY KEY,
            user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            module_id BIGINT NOT NULL REFERENCES foundation_modules(id) ON DELETE CASCADE,
            language VARCHAR(32) NOT NULL,
            score INTEGER NOT NULL,
            total_questions INTEGER NOT NULL,
            correct_answers INTEGER NOT NULL,
            time_spent_seconds INTEGER NOT NULL DEFAULT 0,
            answers JSONB NOT NULL DEFAULT '[]',
            passed BOOLEAN NOT NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS ix_quiz_attempts_user_id
        ON quiz_attempts(user_id)
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS quiz_attempts CASCADE")
    op.execute("DROP TABLE IF EXISTS module_progress CASCADE")
    op.execute("DROP TABLE IF EXISTS foundation_modules CASCADE")
    op.execute("DROP TABLE IF EXISTS conversation_sessions CASCADE")
    op.execute("DROP TABLE IF EXISTS user_achievements CASCADE")
    op.execute("DROP TABLE IF EXISTS user_milestones CASCADE")
    op.execute("DROP TABLE IF EXISTS streak_rewards CASCADE")
    op.execute("DROP TABLE IF EXISTS user_streaks CASCADE")
    op.execute("DROP TABLE IF EXISTS daily_activities CASCADE")
    op.execute("DROP TABLE IF EXISTS credit_transactions CASCADE")
    op.execute("DROP TABLE IF EXISTS credit_balances CASCADE")
    op.execute("DROP TABLE IF EXISTS users CASCADE")
