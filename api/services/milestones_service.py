"""Milestone detection and the "next milestone" lookup.

A milestone is either one-time (earned when the streak hits day_number)
or repeating (earned at day_number and every repeat_interval days after).
Each earning event is one MilestoneProgress row keyed by an occurrence:
"once" for one-time milestones, the local calendar date for repeating ones.
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from core.logger import get_logger
from core.wide_event import set_wide_event_fields
from models import MilestoneProgress, StreakMilestone, StreakRewardType
from repositories.milestone_repository import (
    ONCE,
    MilestoneProgressRepository,
    MilestoneRepository,
)

logger = get_logger(__name__)

DEFAULT_TRIAL_DAYS = 1


@dataclass(frozen=True)
class EarnedMilestone:
    progress_id: int
    milestone_id: int
    day_number: int
    name: str
    description: str
    reward_type: StreakRewardType
    reward_value: dict[str, Any]
    icon_name: str | None
    celebration_type: str | None
    occurrence_key: str
    reward_expires_at: datetime | None


@dataclass(frozen=True)
class NextMilestone:
    day_number: int
    name: str
    days_away: int


@dataclass(frozen=True)
class EarnedMilestoneRecord:
    """A progress row joined with its milestone, for history views."""

    progress_id: int
    milestone_id: int
    day_number: int
    name: str
    reward_type: StreakRewardType
    earned_at: datetime
    reward_claimed: bool
    reward_claimed_at: datetime | None
    reward_expires_at: datetime | None


def repeat_interval_of(milestone: StreakMilestone) -> int | None:
    """The usable repeat interval, or None for one-time behaviour.

    A repeatable milestone without a positive interval is one-time.
    """
    if not milestone.is_repeatable:
        return None
    interval = milestone.repeat_interval
    if interval is None or interval <= 0:
        return None
    return interval


def occurrence_key(milestone: StreakMilestone, local_date: date) -> str:
    if repeat_interval_of(milestone) is None:
        return ONCE
    return local_date.isoformat()


def is_due(milestone: StreakMilestone, current_streak: int) -> bool:
    """Whether the streak length lands exactly on an occurrence."""
    interval = repeat_interval_of(milestone)
    if interval is None:
        return current_streak == milestone.day_number
    if current_streak < milestone.day_number:
        return False
    return (current_streak - milestone.day_number) % interval == 0


def trial_days_of(reward_value: dict[str, Any] | None) -> int:
    value = (reward_value or {}).get("trial_days")
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        return DEFAULT_TRIAL_DAYS
    return value


def reward_expiry(milestone: StreakMilestone, now: datetime) -> datetime | None:
    """Trial rewards expire trial_days after being earned; others never do."""
    if not StreakRewardType(milestone.reward_type).is_trial:
        return None
    return now + timedelta(days=trial_days_of(milestone.reward_value))


def next_target(milestone: StreakMilestone, current_streak: int) -> int | None:
    """The next day_number strictly after current_streak at which this fires."""
    if current_streak < milestone.day_number:
        return milestone.day_number
    interval = repeat_interval_of(milestone)
    if interval is None:
        return None
    occurrences = (current_streak - milestone.day_number) // interval + 1
    return milestone.day_number + occurrences * interval


def find_next_milestone(
    milestones: Iterable[StreakMilestone],
    current_streak: int,
    earned_once_ids: set[int],
) -> NextMilestone | None:
    """Closest upcoming milestone across one-time and repeating definitions."""
    best: NextMilestone | None = None
    for milestone in milestones:
        if repeat_interval_of(milestone) is None and milestone.id in earned_once_ids:
            continue
        target = next_target(milestone, current_streak)
        if target is None:
            continue
        if best is None or target < best.day_number:
            best = NextMilestone(
                day_number=target,
                name=milestone.name,
                days_away=target - current_streak,
            )
    return best


async def evaluate_milestones(
    db: AsyncSession,
    user_id: str,
    *,
    current_streak: int,
    today: date,
    now: datetime,
) -> list[EarnedMilestone]:
    """Record every milestone the streak reaches today.

    Only called after the streak changed. A progress row that already
    exists (earlier run, or a concurrent one that won the insert) is not
    reported again.
    """
    milestone_repo = MilestoneRepository(db)
    progress_repo = MilestoneProgressRepository(db)

    earned: list[EarnedMilestone] = []
    for milestone in await milestone_repo.list_up_to(current_streak):
        if not is_due(milestone, current_streak):
            continue

        key = occurrence_key(milestone, today)
        if await progress_repo.exists(user_id, milestone.id, key):
            continue

        expires_at = reward_expiry(milestone, now)
        progress_id = await progress_repo.record(
            user_id,
            milestone.id,
            key,
            earned_at=now,
            reward_expires_at=expires_at,
        )
        if progress_id is None:
            logger.info(
                "streak.milestone.already_recorded",
                user_id=user_id,
                milestone_id=milestone.id,
                occurrence_key=key,
            )
            continue

        earned.append(
            EarnedMilestone(
                progress_id=progress_id,
                milestone_id=milestone.id,
                day_number=milestone.day_number,
                name=milestone.name,
                description=milestone.description or "",
                reward_type=StreakRewardType(milestone.reward_type),
                reward_value=dict(milestone.reward_value or {}),
                icon_name=milestone.icon_name,
                celebration_type=milestone.celebration_type,
                occurrence_key=key,
                reward_expires_at=expires_at,
            )
        )

    if earned:
        set_wide_event_fields(milestones_earned=[m.day_number for m in earned])
    return earned


async def get_next_milestone(
    db: AsyncSession, user_id: str, current_streak: int
) -> NextMilestone | None:
    milestones = await MilestoneRepository(db).list_all()
    earned_once = await MilestoneProgressRepository(db).get_earned_once_ids(user_id)
    return find_next_milestone(milestones, current_streak, earned_once)


async def list_milestones(db: AsyncSession) -> Sequence[StreakMilestone]:
    return await MilestoneRepository(db).list_all()


def _to_record(progress: MilestoneProgress) -> EarnedMilestoneRecord:
    milestone = progress.milestone
    return EarnedMilestoneRecord(
        progress_id=progress.id,
        milestone_id=milestone.id,
        day_number=milestone.day_number,
        name=milestone.name,
        reward_type=StreakRewardType(milestone.reward_type),
        earned_at=progress.earned_at,
        reward_claimed=bool(progress.reward_claimed),
        reward_claimed_at=progress.reward_claimed_at,
        reward_expires_at=progress.reward_expires_at,
    )


async def list_earned_milestones(
    db: AsyncSession, user_id: str
) -> list[EarnedMilestoneRecord]:
    rows = await MilestoneProgressRepository(db).list_by_user(user_id)
    return [_to_record(row) for row in rows]
