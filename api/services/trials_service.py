"""Activation of trial rewards earned from streak milestones.

Trial milestones (trial_mover, trial_coach, trial_crusher) are recorded
unclaimed with an expiry. The user activates one explicitly; activation
grants a UserTrial entitlement that runs until the reward's expiry.
"""

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from core.logger import get_logger
from core.telemetry import track_operation
from core.wide_event import set_wide_event_fields
from models import MilestoneProgress, StreakRewardType
from repositories.milestone_repository import MilestoneProgressRepository
from repositories.trial_repository import TrialRepository
from services.milestones_service import trial_days_of

logger = get_logger(__name__)


class TrialRewardNotFoundError(Exception):
    """No milestone progress row with that id belongs to the user."""


class NotATrialRewardError(Exception):
    """The milestone's reward is not a trial."""


class TrialRewardExpiredError(Exception):
    """The reward's activation window has passed."""


@dataclass(frozen=True)
class TrialActivation:
    progress_id: int
    trial_type: str
    milestone_name: str
    activated_at: datetime
    expires_at: datetime
    already_active: bool


def _activation_from(progress: MilestoneProgress, *, already_active: bool) -> TrialActivation:
    milestone = progress.milestone
    return TrialActivation(
        progress_id=progress.id,
        trial_type=StreakRewardType(milestone.reward_type).value,
        milestone_name=milestone.name,
        activated_at=progress.reward_claimed_at or progress.earned_at,
        expires_at=progress.reward_expires_at,
        already_active=already_active,
    )


@track_operation("trial_activation")
async def activate_trial_reward(
    db: AsyncSession,
    user_id: str,
    progress_id: int,
    *,
    now: datetime | None = None,
) -> TrialActivation:
    """Claim a trial reward and grant the entitlement.

    Activating an already-claimed reward returns it unchanged.

    Raises:
        TrialRewardNotFoundError: unknown id, or owned by another user.
        NotATrialRewardError: the milestone does not grant a trial.
        TrialRewardExpiredError: the reward expired before activation.
    """
    now = now or datetime.now(UTC)
    progress_repo = MilestoneProgressRepository(db)

    progress = await progress_repo.get(progress_id, for_update=True)
    if progress is None or progress.user_id != user_id:
        raise TrialRewardNotFoundError(f"Milestone progress {progress_id} not found")

    reward_type = StreakRewardType(progress.milestone.reward_type)
    if not reward_type.is_trial:
        raise NotATrialRewardError(f"{reward_type.value} is not a trial reward")

    if progress.reward_claimed:
        return _activation_from(progress, already_active=True)

    if progress.reward_expires_at is not None and progress.reward_expires_at <= now:
        raise TrialRewardExpiredError(f"Trial reward {progress_id} has expired")

    expires_at = progress.reward_expires_at or now + timedelta(
        days=trial_days_of(progress.milestone.reward_value)
    )
    await progress_repo.mark_claimed(progress, claimed_at=now, expires_at=expires_at)
    await TrialRepository(db).upsert(
        user_id,
        reward_type.value,
        milestone_progress_id=progress.id,
        activated_at=now,
        expires_at=expires_at,
    )

    set_wide_event_fields(trial_type=reward_type.value, trial_progress_id=progress.id)
    logger.info(
        "streak.trial.activated",
        user_id=user_id,
        progress_id=progress.id,
        trial_type=reward_type.value,
        expires_at=expires_at.isoformat(),
    )
    return _activation_from(progress, already_active=False)


async def get_active_trials(
    db: AsyncSession, user_id: str, *, now: datetime | None = None
) -> list[TrialActivation]:
    """Claimed trial rewards that are still running."""
    now = now or datetime.now(UTC)
    rows = await MilestoneProgressRepository(db).list_claimed_trials(user_id, now)
    return [_activation_from(row, already_active=True) for row in rows]
