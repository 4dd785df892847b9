"""Streak state machine.

Pure functions over a StreakSnapshot; nothing here touches the database.
The orchestrator in streaks_service.py applies the returned changes.

Day gap rules (calendar days in the user's timezone):
- last activity yesterday      -> continued
- exactly one missed day       -> shield protected, if a shield is available
- anything longer              -> broken, restart at 1
"""

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from enum import Enum
from typing import Any

from models import UserStreak

# A shield forgives exactly one missed day
SHIELD_GAP_DAYS = 2


class TransitionState(str, Enum):
    UNCHANGED = "unchanged"
    ALREADY_PROCESSED = "already_processed"
    STARTED = "started"
    CONTINUED = "continued"
    SHIELD_PROTECTED = "shield_protected"
    BROKEN = "broken"

    @property
    def mutates(self) -> bool:
        return self not in (
            TransitionState.UNCHANGED,
            TransitionState.ALREADY_PROCESSED,
        )


@dataclass(frozen=True)
class StreakSnapshot:
    """The streak fields the engine reads, detached from the ORM row."""

    current_streak: int = 0
    longest_streak: int = 0
    last_activity_date: date | None = None
    streak_started_at: datetime | None = None
    shields_available: int = 0
    shields_used_this_week: int = 0
    shield_week_start: date | None = None
    total_active_days: int = 0

    @classmethod
    def from_record(cls, streak: UserStreak) -> "StreakSnapshot":
        return cls(
            current_streak=streak.current_streak or 0,
            longest_streak=streak.longest_streak or 0,
            last_activity_date=streak.last_activity_date,
            streak_started_at=streak.streak_started_at,
            shields_available=streak.shields_available or 0,
            shields_used_this_week=streak.shields_used_this_week or 0,
            shield_week_start=streak.shield_week_start,
            total_active_days=streak.total_active_days or 0,
        )

    def with_changes(self, changes: dict[str, Any]) -> "StreakSnapshot":
        return replace(self, **changes)


@dataclass(frozen=True)
class Transition:
    state: TransitionState
    snapshot: StreakSnapshot
    changes: dict[str, Any] = field(default_factory=dict)

    @property
    def shield_used(self) -> bool:
        return self.state is TransitionState.SHIELD_PROTECTED


def apply_transition(
    *,
    has_activity_today: bool,
    snapshot: StreakSnapshot,
    today: date,
    yesterday: date,
    now: datetime,
) -> Transition:
    """Decide the transition for today and compute the resulting snapshot.

    changes holds every field to write; it is empty for UNCHANGED and
    ALREADY_PROCESSED.
    """
    if not has_activity_today:
        return Transition(TransitionState.UNCHANGED, snapshot)

    last = snapshot.last_activity_date
    # A date ahead of today happens when the user moves to a timezone further
    # west; treat it as already counted rather than a gap.
    if last is not None and last >= today:
        return Transition(TransitionState.ALREADY_PROCESSED, snapshot)

    changes: dict[str, Any] = {}
    if last is None:
        state = TransitionState.STARTED
        changes["current_streak"] = 1
        changes["streak_started_at"] = now
    elif last == yesterday:
        state = TransitionState.CONTINUED
        changes["current_streak"] = snapshot.current_streak + 1
    elif (today - last).days == SHIELD_GAP_DAYS and snapshot.shields_available > 0:
        state = TransitionState.SHIELD_PROTECTED
        changes["current_streak"] = snapshot.current_streak + 1
        changes["shields_available"] = snapshot.shields_available - 1
        changes["shields_used_this_week"] = snapshot.shields_used_this_week + 1
    else:
        state = TransitionState.BROKEN
        changes["current_streak"] = 1
        changes["streak_started_at"] = now

    changes["longest_streak"] = max(snapshot.longest_streak, changes["current_streak"])
    changes["total_active_days"] = snapshot.total_active_days + 1
    changes["last_activity_date"] = today

    return Transition(state, snapshot.with_changes(changes), changes)
