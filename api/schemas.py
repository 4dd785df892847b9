"""Pydantic schemas for API request/response validation."""

from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from models import StreakRewardType


class ProcessStreakRequest(BaseModel):
    """Body of POST /api/streaks/process.

    user_id is required for service callers and optional for a user
    processing their own streak.
    """

    user_id: str | None = Field(default=None, max_length=255)


class MilestoneEarnedSchema(BaseModel):
    """A milestone earned by this invocation."""

    model_config = ConfigDict(from_attributes=True)

    milestone_id: int
    day_number: int
    name: str
    description: str
    reward_type: StreakRewardType
    reward_value: dict[str, Any]
    icon_name: str | None = None
    celebration_type: str | None = None
    reward_expires_at: datetime | None = None


class NextMilestoneSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    day_number: int
    name: str
    days_away: int


class StreakProcessResponse(BaseModel):
    """Result of processing a user's streak for their local today."""

    model_config = ConfigDict(from_attributes=True)

    current_streak: int
    longest_streak: int
    streak_continued: bool
    streak_started: bool
    streak_broken: bool
    shield_used: bool
    shields_remaining: int
    milestones_earned: list[MilestoneEarnedSchema]
    next_milestone: NextMilestoneSchema | None
    total_active_days: int


class StreakStatusResponse(BaseModel):
    """Stored streak state plus today's standing."""

    model_config = ConfigDict(from_attributes=True)

    current_streak: int
    longest_streak: int
    last_activity_date: date | None
    shields_available: int
    total_active_days: int
    timezone: str
    today_qualified: bool
    streak_at_risk: bool
    next_milestone: NextMilestoneSchema | None


class MilestoneSchema(BaseModel):
    """Milestone definition from the catalog."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    day_number: int
    name: str
    description: str
    reward_type: StreakRewardType
    reward_value: dict[str, Any]
    icon_name: str | None = None
    celebration_type: str | None = None
    is_repeatable: bool
    repeat_interval: int | None = None


class EarnedMilestoneSchema(BaseModel):
    """A milestone the user has earned, with its reward state."""

    model_config = ConfigDict(from_attributes=True)

    progress_id: int
    milestone_id: int
    day_number: int
    name: str
    reward_type: StreakRewardType
    earned_at: datetime
    reward_claimed: bool
    reward_claimed_at: datetime | None = None
    reward_expires_at: datetime | None = None


class TrialActivationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    progress_id: int
    trial_type: str
    milestone_name: str
    activated_at: datetime
    expires_at: datetime
    already_active: bool


class TimezoneUpdateRequest(BaseModel):
    """IANA timezone name, e.g. "Europe/Berlin"."""

    timezone: str = Field(min_length=1, max_length=64)

    @field_validator("timezone")
    @classmethod
    def strip_timezone(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("timezone must not be blank")
        return v


class TimezoneResponse(BaseModel):
    timezone: str


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    service: str


class PoolStatusResponse(BaseModel):
    pool_size: int
    checked_out: int
    overflow: int
    checked_in: int


class DetailedHealthResponse(BaseModel):
    """Readiness check with component status."""

    status: str
    database: bool
    pool: PoolStatusResponse | None = None
