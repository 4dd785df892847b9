"""Daily streak processing for one user.

This module handles:
- Processing a user's streak for their local "today" (the main entry point)
- Reading streak status without processing it
- Updating the user's timezone

One invocation runs inside the caller's transaction:
lock row -> resolve local dates -> reconcile shields -> transition ->
milestones -> rewards -> next milestone. The streak row is locked with
SELECT ... FOR UPDATE, so same-user invocations run one after another and
a repeat invocation on the same local day changes nothing.
"""

from dataclasses import dataclass, field
from datetime import UTC, date, datetime

from sqlalchemy.ext.asyncio import AsyncSession

from core.logger import get_logger
from core.telemetry import track_operation
from core.wide_event import set_wide_event_fields, set_wide_event_nested
from repositories.activity_repository import ActivityRepository
from repositories.streak_repository import StreakRepository
from repositories.user_repository import UserRepository
from services.milestones_service import (
    EarnedMilestone,
    NextMilestone,
    evaluate_milestones,
    get_next_milestone,
)
from services.rewards_service import issue_rewards
from services.shields_service import reconcile_shields
from services.streak_rules import StreakRules
from services.streak_transitions import (
    StreakSnapshot,
    TransitionState,
    apply_transition,
)
from services.timezone_service import is_valid_timezone, resolve_local_dates

logger = get_logger(__name__)


class InvalidTimezoneError(ValueError):
    """The timezone is not a known IANA identifier."""


@dataclass(frozen=True)
class StreakProcessResult:
    state: TransitionState
    current_streak: int
    longest_streak: int
    shields_remaining: int
    total_active_days: int
    milestones_earned: list[EarnedMilestone] = field(default_factory=list)
    next_milestone: NextMilestone | None = None

    @property
    def streak_started(self) -> bool:
        return self.state is TransitionState.STARTED

    @property
    def streak_continued(self) -> bool:
        return self.state in (
            TransitionState.CONTINUED,
            TransitionState.SHIELD_PROTECTED,
        )

    @property
    def streak_broken(self) -> bool:
        return self.state is TransitionState.BROKEN

    @property
    def shield_used(self) -> bool:
        return self.state is TransitionState.SHIELD_PROTECTED


@dataclass(frozen=True)
class StreakStatus:
    current_streak: int
    longest_streak: int
    last_activity_date: date | None
    shields_available: int
    total_active_days: int
    timezone: str
    today_qualified: bool
    streak_at_risk: bool
    next_milestone: NextMilestone | None


@track_operation("streak_processing")
async def process_user_streak(
    db: AsyncSession,
    user_id: str,
    *,
    rules: StreakRules | None = None,
    now: datetime | None = None,
) -> StreakProcessResult:
    """Process the user's streak for their local today.

    Safe to call any number of times per day: after the first qualifying
    call the same day returns the same numbers without writing.

    Raises:
        StorageError: the streak store failed; the caller rolls back.
    """
    rules = rules or StreakRules.from_settings()
    now = now or datetime.now(UTC)

    streak_repo = StreakRepository(db)
    streak = await streak_repo.get_or_create_for_update(
        user_id, timezone=rules.default_timezone
    )

    dates = resolve_local_dates(streak.timezone, now)
    tier = await UserRepository(db).get_subscription_tier(user_id)
    shields = reconcile_shields(
        StreakSnapshot.from_record(streak), dates.today, rules.shield_cap(tier)
    )

    has_activity = await ActivityRepository(db).has_qualifying_activity(
        user_id, dates.today
    )
    transition = apply_transition(
        has_activity_today=has_activity,
        snapshot=shields.snapshot,
        today=dates.today,
        yesterday=dates.yesterday,
        now=now,
    )

    changes = {**shields.changes, **transition.changes}
    if changes:
        await streak_repo.update(streak, changes)

    snapshot = transition.snapshot
    earned: list[EarnedMilestone] = []
    if transition.state.mutates:
        earned = await evaluate_milestones(
            db,
            user_id,
            current_streak=snapshot.current_streak,
            today=dates.today,
            now=now,
        )
        if earned:
            await issue_rewards(db, user_id, earned, rules)

    next_milestone = await get_next_milestone(db, user_id, snapshot.current_streak)

    set_wide_event_fields(
        streak_state=transition.state.value,
        current_streak=snapshot.current_streak,
        local_date=dates.today.isoformat(),
    )
    set_wide_event_nested(
        "shields",
        available=snapshot.shields_available,
        used_this_week=snapshot.shields_used_this_week,
        replenished=shields.replenished,
        tier=tier,
    )
    if transition.state.mutates:
        logger.info(
            "streak.processed",
            user_id=user_id,
            state=transition.state.value,
            current_streak=snapshot.current_streak,
            longest_streak=snapshot.longest_streak,
            milestones_earned=len(earned),
        )
    if transition.shield_used:
        logger.info(
            "streak.shield_used",
            user_id=user_id,
            shields_remaining=snapshot.shields_available,
        )

    return StreakProcessResult(
        state=transition.state,
        current_streak=snapshot.current_streak,
        longest_streak=snapshot.longest_streak,
        shields_remaining=snapshot.shields_available,
        total_active_days=snapshot.total_active_days,
        milestones_earned=earned,
        next_milestone=next_milestone,
    )


async def get_streak_status(
    db: AsyncSession,
    user_id: str,
    *,
    rules: StreakRules | None = None,
    now: datetime | None = None,
) -> StreakStatus:
    """Stored streak plus today's standing. Never creates or updates a row."""
    rules = rules or StreakRules.from_settings()
    streak = await StreakRepository(db).get(user_id)
    snapshot = StreakSnapshot.from_record(streak) if streak else StreakSnapshot()
    timezone = streak.timezone if streak else rules.default_timezone

    dates = resolve_local_dates(timezone, now)
    today_qualified = await ActivityRepository(db).has_qualifying_activity(
        user_id, dates.today
    )
    streak_at_risk = (
        snapshot.current_streak > 0
        and snapshot.last_activity_date == dates.yesterday
        and not today_qualified
    )

    return StreakStatus(
        current_streak=snapshot.current_streak,
        longest_streak=snapshot.longest_streak,
        last_activity_date=snapshot.last_activity_date,
        shields_available=snapshot.shields_available,
        total_active_days=snapshot.total_active_days,
        timezone=timezone,
        today_qualified=today_qualified,
        streak_at_risk=streak_at_risk,
        next_milestone=await get_next_milestone(db, user_id, snapshot.current_streak),
    )


async def update_timezone(db: AsyncSession, user_id: str, timezone: str) -> str:
    """Store the user's IANA timezone. Creates the streak row if missing.

    Raises:
        InvalidTimezoneError: timezone is not a known IANA name.
    """
    timezone = timezone.strip()
    if not is_valid_timezone(timezone):
        raise InvalidTimezoneError(f"Unknown timezone: {timezone!r}")

    streak = await StreakRepository(db).set_timezone(user_id, timezone)
    logger.info("streak.timezone.updated", user_id=user_id, timezone=streak.timezone)
    return streak.timezone
