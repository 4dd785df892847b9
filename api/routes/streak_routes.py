"""Streak processing, status, milestone and trial reward endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request

from core import get_logger
from core.auth import StreakSubject, UserId, resolve_streak_subject
from core.database import DbSession
from core.ratelimit import READ_LIMIT, STREAK_PROCESS_LIMIT, limiter
from core.wide_event import set_wide_event_fields
from schemas import (
    EarnedMilestoneSchema,
    MilestoneSchema,
    ProcessStreakRequest,
    StreakProcessResponse,
    StreakStatusResponse,
    TimezoneResponse,
    TimezoneUpdateRequest,
    TrialActivationResponse,
)
from services.milestones_service import list_earned_milestones, list_milestones
from services.streaks_service import (
    InvalidTimezoneError,
    get_streak_status,
    process_user_streak,
    update_timezone,
)
from services.trials_service import (
    NotATrialRewardError,
    TrialRewardExpiredError,
    TrialRewardNotFoundError,
    activate_trial_reward,
    get_active_trials,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/api/streaks", tags=["streaks"])


def get_streak_subject(
    request: Request, body: ProcessStreakRequest | None = None
) -> StreakSubject:
    """Resolve who is being processed before the rate limit is checked."""
    return resolve_streak_subject(request, body.user_id if body else None)


Subject = Annotated[StreakSubject, Depends(get_streak_subject)]


@router.post(
    "/process",
    response_model=StreakProcessResponse,
    responses={
        401: {"description": "No user session and no valid service key"},
        503: {"description": "Streak store unavailable, retry later"},
    },
)
@limiter.limit(STREAK_PROCESS_LIMIT)
async def process_streak(
    request: Request,
    subject: Subject,
    db: DbSession,
) -> StreakProcessResponse:
    """Process the streak for the user's local today.

    Idempotent per local day: repeated calls return the same result.
    """
    result = await process_user_streak(db, subject.user_id)
    return StreakProcessResponse.model_validate(result)


@router.get(
    "/me",
    response_model=StreakStatusResponse,
    responses={401: {"description": "Not authenticated"}},
)
@limiter.limit(READ_LIMIT)
async def get_my_streak(
    request: Request,
    user_id: UserId,
    db: DbSession,
) -> StreakStatusResponse:
    """Current streak state without processing it."""
    streak_status = await get_streak_status(db, user_id)
    set_wide_event_fields(current_streak=streak_status.current_streak)
    return StreakStatusResponse.model_validate(streak_status)


@router.put(
    "/timezone",
    response_model=TimezoneResponse,
    responses={
        401: {"description": "Not authenticated"},
        422: {"description": "Unknown timezone"},
    },
)
@limiter.limit(READ_LIMIT)
async def put_timezone(
    request: Request,
    body: TimezoneUpdateRequest,
    user_id: UserId,
    db: DbSession,
) -> TimezoneResponse:
    try:
        timezone = await update_timezone(db, user_id, body.timezone)
    except InvalidTimezoneError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
    return TimezoneResponse(timezone=timezone)


@router.get("/milestones", response_model=list[MilestoneSchema])
@limiter.limit(READ_LIMIT)
async def get_milestones(request: Request, db: DbSession) -> list[MilestoneSchema]:
    """Milestone catalog, ordered by day."""
    milestones = await list_milestones(db)
    return [MilestoneSchema.model_validate(m) for m in milestones]


@router.get(
    "/milestones/earned",
    response_model=list[EarnedMilestoneSchema],
    responses={401: {"description": "Not authenticated"}},
)
@limiter.limit(READ_LIMIT)
async def get_earned_milestones(
    request: Request,
    user_id: UserId,
    db: DbSession,
) -> list[EarnedMilestoneSchema]:
    """Milestones the user has earned, most recent first."""
    records = await list_earned_milestones(db, user_id)
    return [EarnedMilestoneSchema.model_validate(r) for r in records]


@router.post(
    "/rewards/{progress_id}/activate",
    response_model=TrialActivationResponse,
    responses={
        400: {"description": "Milestone does not grant a trial"},
        401: {"description": "Not authenticated"},
        404: {"description": "Milestone progress not found"},
        410: {"description": "Reward expired"},
    },
)
@limiter.limit(READ_LIMIT)
async def activate_reward(
    request: Request,
    progress_id: int,
    user_id: UserId,
    db: DbSession,
) -> TrialActivationResponse:
    """Activate a trial reward earned from a streak milestone."""
    try:
        activation = await activate_trial_reward(db, user_id, progress_id)
    except TrialRewardNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except NotATrialRewardError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except TrialRewardExpiredError as e:
        raise HTTPException(status_code=410, detail=str(e)) from e

    return TrialActivationResponse.model_validate(activation)


@router.get(
    "/trials",
    response_model=list[TrialActivationResponse],
    responses={401: {"description": "Not authenticated"}},
)
@limiter.limit(READ_LIMIT)
async def get_trials(
    request: Request,
    user_id: UserId,
    db: DbSession,
) -> list[TrialActivationResponse]:
    """Claimed trial rewards that are still running."""
    trials = await get_active_trials(db, user_id)
    return [TrialActivationResponse.model_validate(t) for t in trials]
