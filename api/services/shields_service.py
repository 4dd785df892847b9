"""Weekly shield replenishment."""

from dataclasses import dataclass, field
from datetime import date
from typing import Any

from core.logger import get_logger
from services.streak_transitions import StreakSnapshot

logger = get_logger(__name__)

SHIELD_WEEK_DAYS = 7


@dataclass(frozen=True)
class ShieldReconciliation:
    snapshot: StreakSnapshot
    changes: dict[str, Any] = field(default_factory=dict)
    replenished: bool = False

    @property
    def changed(self) -> bool:
        return bool(self.changes)



def reconcile_shields(
    snapshot: StreakSnapshot, today: date, cap: int
) -> ShieldReconciliation:
    """Start the shield week on first processing, or roll it over after 7 days.

    A rollover grants one shield, never above the tier cap. The first
    processing only starts the week; it grants nothing. A balance above the
    cap (tier downgrade, zero-cap tier) is clamped down to it on any run.
    """
    changes: dict[str, Any] = {}
    replenished = False

    if snapshot.shield_week_start is None:
        changes = {"shield_week_start": today, "shields_used_this_week": 0}
    elif (today - snapshot.shield_week_start).days >= SHIELD_WEEK_DAYS:
        changes = {
            "shield_week_start": today,
            "shields_used_this_week": 0,
            "shields_available": min(snapshot.shields_available + 1, cap),
        }
        replenished = True
        logger.debug(
            "streak.shields.replenished",
            previous=snapshot.shields_available,
            available=changes["shields_available"],
            cap=cap,
        )

    if snapshot.shields_available > cap and "shields_available" not in changes:
        changes["shields_available"] = cap
        logger.info(
            "streak.shields.clamped", previous=snapshot.shields_available, cap=cap
        )

    if not changes:
        return ShieldReconciliation(snapshot)
    return ShieldReconciliation(snapshot.with_changes(changes), changes, replenished)
