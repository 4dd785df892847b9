"""Create streak engine tables.

Revision ID: 0001_streak_engine
Revises:
Create Date: 2026-10-18
"""

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision = "0001_streak_engine"
down_revision = None
branch_labels = None
depends_on = None

SUBSCRIPTION_TIERS = ("starter", "mover", "crusher")
REWARD_TYPES = (
    "badge",
    "trial_mover",
    "trial_coach",
    "trial_crusher",
    "profile_frame",
    "leaderboard_flair",
    "app_icon",
    "points_multiplier",
    "custom",
)
ACTIVITY_TYPES = (
    "steps",
    "workout",
    "active_minutes",
    "rings_closed",
    "competition_goal",
)


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column(
            "subscription_tier",
            sa.Enum(*SUBSCRIPTION_TIERS, name="subscription_tier"),
            server_default="starter",
            nullable=False,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "user_streaks",
        sa.Column("user_id", sa.String(255), nullable=False),
        sa.Column("current_streak", sa.Integer(), server_default="0", nullable=False),
        sa.Column("longest_streak", sa.Integer(), server_default="0", nullable=False),
        sa.Column("last_activity_date", sa.Date(), nullable=True),
        sa.Column("streak_started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "timezone",
            sa.String(64),
            server_default="America/New_York",
            nullable=False,
        ),
        sa.Column(
            "shields_available", sa.Integer(), server_default="1", nullable=False
        ),
        sa.Column(
            "shields_used_this_week", sa.Integer(), server_default="0", nullable=False
        ),
        sa.Column("shield_week_start", sa.Date(), nullable=True),
        sa.Column(
            "total_active_days", sa.Integer(), server_default="0", nullable=False
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("user_id"),
        sa.CheckConstraint("current_streak >= 0", name="ck_user_streaks_current_gte_0"),
        sa.CheckConstraint(
            "longest_streak >= current_streak",
            name="ck_user_streaks_longest_gte_current",
        ),
        sa.CheckConstraint(
            "shields_available >= 0", name="ck_user_streaks_shields_gte_0"
        ),
    )
    op.create_index(
        "ix_user_streaks_last_activity", "user_streaks", ["last_activity_date"]
    )

    op.create_table(
        "streak_milestones",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("day_number", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), server_default="", nullable=False),
        sa.Column(
            "reward_type",
            sa.Enum(*REWARD_TYPES, name="streak_reward_type"),
            nullable=False,
        ),
        sa.Column(
            "reward_value",
            postgresql.JSONB(),
            server_default=sa.text("'{}'::jsonb"),
            nullable=False,
        ),
        sa.Column("icon_name", sa.String(64), nullable=True),
        sa.Column("celebration_type", sa.String(32), nullable=True),
        sa.Column(
            "is_repeatable", sa.Boolean(), server_default=sa.false(), nullable=False
        ),
        sa.Column("repeat_interval", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("day_number", name="uq_streak_milestones_day_number"),
        sa.CheckConstraint("day_number > 0", name="ck_streak_milestones_day_gt_0"),
        sa.CheckConstraint(
            "NOT is_repeatable OR repeat_interval > 0",
            name="ck_streak_milestones_repeat_interval",
        ),
    )

    op.create_table(
        "user_milestone_progress",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.String(255), nullable=False),
        sa.Column("milestone_id", sa.Integer(), nullable=False),
        sa.Column("occurrence_key", sa.String(32), nullable=False),
        sa.Column("earned_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "reward_claimed", sa.Boolean(), server_default=sa.false(), nullable=False
        ),
        sa.Column("reward_claimed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("reward_expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(
            ["milestone_id"], ["streak_milestones.id"], ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "user_id",
            "milestone_id",
            "occurrence_key",
            name="uq_user_milestone_progress_occurrence",
        ),
    )
    op.create_index(
        "ix_user_milestone_progress_user_earned",
        "user_milestone_progress",
        ["user_id", "earned_at"],
    )
    op.create_index(
        "ix_user_milestone_progress_unclaimed",
        "user_milestone_progress",
        ["user_id"],
        postgresql_where=sa.text("reward_claimed = false"),
    )

    op.create_table(
        "streak_activity_log",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.String(255), nullable=False),
        sa.Column("activity_date", sa.Date(), nullable=False),
        sa.Column(
            "activity_type",
            sa.Enum(*ACTIVITY_TYPES, name="streak_activity_type"),
            nullable=False,
        ),
        sa.Column("activity_value", sa.Integer(), server_default="0", nullable=False),
        sa.Column(
            "qualifies_for_streak",
            sa.Boolean(),
            server_default=sa.false(),
            nullable=False,
        ),
        sa.Column("source", sa.String(32), server_default="manual", nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_streak_activity_log_user_date",
        "streak_activity_log",
        ["user_id", "activity_date"],
    )
    op.create_index(
        "ix_streak_activity_log_qualifies",
        "streak_activity_log",
        ["user_id", "activity_date"],
        postgresql_where=sa.text("qualifies_for_streak = true"),
    )

    op.create_table(
        "coin_transactions",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.String(255), nullable=False),
        sa.Column("transaction_type", sa.String(64), nullable=False),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("reference_type", sa.String(64), nullable=True),
        sa.Column("reference_id", sa.String(255), nullable=False),
        sa.Column(
            "metadata",
            postgresql.JSONB(),
            server_default=sa.text("'{}'::jsonb"),
            nullable=False,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "user_id",
            "transaction_type",
            "reference_id",
            name="uq_coin_transactions_reference",
        ),
    )
    op.create_index(
        "ix_coin_transactions_user_id", "coin_transactions", ["user_id"]
    )

    op.create_table(
        "user_trials",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.String(255), nullable=False),
        sa.Column("trial_type", sa.String(32), nullable=False),
        sa.Column("milestone_progress_id", sa.Integer(), nullable=True),
        sa.Column(
            "source", sa.String(32), server_default="streak_milestone", nullable=False
        ),
        sa.Column("activated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(
            ["milestone_progress_id"],
            ["user_milestone_progress.id"],
            ondelete="SET NULL",
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "trial_type", name="uq_user_trials_type"),
    )


def downgrade() -> None:
    op.drop_table("user_trials")
    op.drop_index("ix_coin_transactions_user_id", table_name="coin_transactions")
    op.drop_table("coin_transactions")
    op.drop_index(
        "ix_streak_activity_log_qualifies", table_name="streak_activity_log"
    )
    op.drop_index(
        "ix_streak_activity_log_user_date", table_name="streak_activity_log"
    )
    op.drop_table("streak_activity_log")
    op.drop_index(
        "ix_user_milestone_progress_unclaimed", table_name="user_milestone_progress"
    )
    op.drop_index(
        "ix_user_milestone_progress_user_earned",
        table_name="user_milestone_progress",
    )
    op.drop_table("user_milestone_progress")
    op.drop_table("streak_milestones")
    op.drop_index("ix_user_streaks_last_activity", table_name="user_streaks")
    op.drop_table("user_streaks")
    op.drop_table("users")

    sa.Enum(name="streak_activity_type").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="streak_reward_type").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="subscription_tier").drop(op.get_bind(), checkfirst=True)
