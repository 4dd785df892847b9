"""SQLAlchemy models for streak tracking, milestones and streak rewards."""

from datetime import UTC, date, datetime
from enum import Enum as PyEnum
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, declared_attr, mapped_column, relationship

from core.database import Base

# JSONB on PostgreSQL, plain JSON elsewhere
JSONType = JSON().with_variant(JSONB(), "postgresql")


def utcnow() -> datetime:
    """Return current UTC time (timezone-aware)."""
    return datetime.now(UTC)


class TimestampMixin:
    """Mixin that adds created_at and updated_at timestamp columns."""

    @declared_attr
    def created_at(cls) -> Mapped[datetime]:
        return mapped_column(DateTime(timezone=True), default=utcnow)

    @declared_attr
    def updated_at(cls) -> Mapped[datetime]:
        return mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)


class SubscriptionTier(str, PyEnum):
    """Subscription tiers, owned by the billing service."""

    STARTER = "starter"
    MOVER = "mover"
    CRUSHER = "crusher"


class StreakRewardType(str, PyEnum):
    """What a milestone grants when it is earned."""

    BADGE = "badge"
    TRIAL_MOVER = "trial_mover"
    TRIAL_COACH = "trial_coach"
    TRIAL_CRUSHER = "trial_crusher"
    PROFILE_FRAME = "profile_frame"
    LEADERBOARD_FLAIR = "leaderboard_flair"
    APP_ICON = "app_icon"
    POINTS_MULTIPLIER = "points_multiplier"
    CUSTOM = "custom"

    @property
    def is_trial(self) -> bool:
        return self in TRIAL_REWARD_TYPES


TRIAL_REWARD_TYPES: frozenset[StreakRewardType] = frozenset(
    {
        StreakRewardType.TRIAL_MOVER,
        StreakRewardType.TRIAL_COACH,
        StreakRewardType.TRIAL_CRUSHER,
    }
)


class StreakActivityType(str, PyEnum):
    """Kinds of activity the health integrations log."""

    STEPS = "steps"
    WORKOUT = "workout"
    ACTIVE_MINUTES = "active_minutes"
    RINGS_CLOSED = "rings_closed"
    COMPETITION_GOAL = "competition_goal"


class CoinTransactionType(str, PyEnum):
    """Ledger entry types written by the streak engine."""

    EARN_STREAK_MILESTONE = "earn_streak_milestone"


class User(TimestampMixin, Base):
    """User profile - owned by the accounts service, read for tier lookups."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(255), primary_key=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    subscription_tier: Mapped[SubscriptionTier] = mapped_column(
        Enum(
            SubscriptionTier,
            name="subscription_tier",
            values_callable=lambda e: [m.value for m in e],
        ),
        default=SubscriptionTier.STARTER,
        server_default=SubscriptionTier.STARTER.value,
    )


class UserStreak(TimestampMixin, Base):
    """A user's streak state. Created lazily on first processing."""

    __tablename__ = "user_streaks"
    __table_args__ = (
        CheckConstraint("current_streak >= 0", name="ck_user_streaks_current_gte_0"),
        CheckConstraint(
            "longest_streak >= current_streak",
            name="ck_user_streaks_longest_gte_current",
        ),
        CheckConstraint(
            "shields_available >= 0", name="ck_user_streaks_shields_gte_0"
        ),
        Index("ix_user_streaks_last_activity", "last_activity_date"),
    )

    user_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    current_streak: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    longest_streak: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_activity_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    streak_started_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    timezone: Mapped[str] = mapped_column(
        String(64), default="America/New_York", nullable=False
    )
    shields_available: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    shields_used_this_week: Mapped[int] = mapped_column(
        Integer, default=0, nullable=False
    )
    shield_week_start: Mapped[date | None] = mapped_column(Date, nullable=True)
    total_active_days: Mapped[int] = mapped_column(Integer, default=0, nullable=False)


class StreakMilestone(Base):
    """Milestone definition (reference data, managed by admins / seed)."""

    __tablename__ = "streak_milestones"
    __table_args__ = (
        UniqueConstraint("day_number", name="uq_streak_milestones_day_number"),
        CheckConstraint("day_number > 0", name="ck_streak_milestones_day_gt_0"),
        CheckConstraint(
            "NOT is_repeatable OR repeat_interval > 0",
            name="ck_streak_milestones_repeat_interval",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    day_number: Mapped[int] = mapped_column(Integer, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    reward_type: Mapped[StreakRewardType] = mapped_column(
        Enum(
            StreakRewardType,
            name="streak_reward_type",
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
    )
    reward_value: Mapped[dict[str, Any]] = mapped_column(
        JSONType, nullable=False, default=dict
    )
    icon_name: Mapped[str | None] = mapped_column(String(64), nullable=True)
    celebration_type: Mapped[str | None] = mapped_column(String(32), nullable=True)
    is_repeatable: Mapped[bool] = mapped_column(Boolean, default=False)
    repeat_interval: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


class MilestoneProgress(Base):
    """One row per milestone-earning event.

    occurrence_key is "once" for one-time milestones and the user's local
    calendar date (ISO) for repeatable ones, so the unique constraint gives
    "at most one per user" and "at most one per user per day" respectively.
    """

    __tablename__ = "user_milestone_progress"
    __table_args__ = (
        UniqueConstraint(
            "user_id",
            "milestone_id",
            "occurrence_key",
            name="uq_user_milestone_progress_occurrence",
        ),
        Index("ix_user_milestone_progress_user_earned", "user_id", "earned_at"),
        Index(
            "ix_user_milestone_progress_unclaimed",
            "user_id",
            postgresql_where=text("reward_claimed = false"),
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(255), nullable=False)
    milestone_id: Mapped[int] = mapped_column(
        ForeignKey("streak_milestones.id", ondelete="CASCADE"), nullable=False
    )
    occurrence_key: Mapped[str] = mapped_column(String(32), nullable=False)
    earned_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    reward_claimed: Mapped[bool] = mapped_column(Boolean, default=False)
    reward_claimed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    reward_expires_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    milestone: Mapped["StreakMilestone"] = relationship(lazy="joined", innerjoin=True)


class StreakActivityLog(Base):
    """Qualifying-activity facts written by the health integrations."""

    __tablename__ = "streak_activity_log"
    __table_args__ = (
        Index("ix_streak_activity_log_user_date", "user_id", "activity_date"),
        Index(
            "ix_streak_activity_log_qualifies",
            "user_id",
            "activity_date",
            postgresql_where=text("qualifies_for_streak = true"),
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(255), nullable=False)
    activity_date: Mapped[date] = mapped_column(Date, nullable=False)
    activity_type: Mapped[StreakActivityType] = mapped_column(
        Enum(
            StreakActivityType,
            name="streak_activity_type",
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
    )
    activity_value: Mapped[int] = mapped_column(Integer, default=0)
    qualifies_for_streak: Mapped[bool] = mapped_column(Boolean, default=False)
    source: Mapped[str] = mapped_column(String(32), default="manual")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


class CoinTransaction(Base):
    """Append-only coin ledger. (user, type, reference) is the idempotency key."""

    __tablename__ = "coin_transactions"
    __table_args__ = (
        UniqueConstraint(
            "user_id",
            "transaction_type",
            "reference_id",
            name="uq_coin_transactions_reference",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    transaction_type: Mapped[str] = mapped_column(String(64), nullable=False)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    reference_type: Mapped[str | None] = mapped_column(String(64), nullable=True)
    reference_id: Mapped[str] = mapped_column(String(255), nullable=False)
    # "metadata" is reserved on declarative classes
    details: Mapped[dict[str, Any]] = mapped_column(
        "metadata", JSONType, nullable=False, default=dict
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


class UserTrial(Base):
    """Time-boxed entitlement granted by activating a trial milestone reward."""

    __tablename__ = "user_trials"
    __table_args__ = (
        UniqueConstraint("user_id", "trial_type", name="uq_user_trials_type"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(255), nullable=False)
    trial_type: Mapped[str] = mapped_column(String(32), nullable=False)
    milestone_progress_id: Mapped[int | None] = mapped_column(
        ForeignKey("user_milestone_progress.id", ondelete="SET NULL"), nullable=True
    )
    source: Mapped[str] = mapped_column(String(32), default="streak_milestone")
    activated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow
    )
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
