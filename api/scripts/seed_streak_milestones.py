#!/usr/bin/env python3
"""Seed the streak_milestones catalog.

Existing day_numbers are left untouched, so the script is safe to re-run.

Usage:
    python -m scripts.seed_streak_milestones

Environment:
    DATABASE_URL - PostgreSQL connection string (required)
"""

import asyncio
import sys
from pathlib import Path
from typing import Any

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.database import (
    create_engine,
    create_session_maker,
    dispose_engine,
    session_scope,
)
from core.logger import configure_logging, get_logger
from models import StreakRewardType
from repositories.milestone_repository import MilestoneRepository

logger = get_logger(__name__)


def _milestone(
    day_number: int,
    name: str,
    description: str,
    reward_type: StreakRewardType,
    reward_value: dict[str, Any],
    icon_name: str,
    celebration_type: str,
    repeat_interval: int | None = None,
) -> dict[str, Any]:
    return {
        "day_number": day_number,
        "name": name,
        "description": description,
        "reward_type": reward_type,
        "reward_value": reward_value,
        "icon_name": icon_name,
        "celebration_type": celebration_type,
        "is_repeatable": repeat_interval is not None,
        "repeat_interval": repeat_interval,
    }


DEFAULT_MILESTONES: list[dict[str, Any]] = [
    _milestone(
        3,
        "First Steps",
        "Three days of consistent activity is a great start.",
        StreakRewardType.BADGE,
        {"badge_id": "first_steps", "badge_name": "First Steps", "badge_tier": "bronze"},
        "footprints",
        "sparkle",
    ),
    _milestone(
        7,
        "Week Warrior",
        "A full week of movement! Unlock a 24-hour preview of Mover features.",
        StreakRewardType.TRIAL_MOVER,
        {
            "trial_days": 1,
            "badge_id": "week_warrior",
            "features": ["unlimited_competitions", "detailed_analytics"],
        },
        "calendar-week",
        "confetti",
    ),
    _milestone(
        14,
        "Fortnight Fighter",
        "Two weeks strong! Earn an exclusive profile frame.",
        StreakRewardType.PROFILE_FRAME,
        {"frame_id": "fortnight_fighter", "frame_rarity": "uncommon"},
        "shield-check",
        "fireworks",
    ),
    _milestone(
        21,
        "Three Week Trek",
        "Three weeks of consistency! Try the AI coach free for 24 hours.",
        StreakRewardType.TRIAL_COACH,
        {"trial_days": 1, "coach_type": "spark", "messages_included": 10},
        "mountain",
        "sparkle",
    ),
    _milestone(
        30,
        "Monthly Mover",
        "One month of movement! Earn a badge and 3 days of Mover access.",
        StreakRewardType.TRIAL_MOVER,
        {"trial_days": 3, "badge_id": "monthly_mover", "badge_tier": "silver"},
        "calendar-check",
        "confetti",
    ),
    _milestone(
        45,
        "Halfway Hero",
        "Halfway to 90 days! Stand out on the leaderboards with special flair.",
        StreakRewardType.LEADERBOARD_FLAIR,
        {"flair_id": "halfway_hero", "flair_color": "#FFD700", "flair_duration_days": 30},
        "star-half",
        "sparkle",
    ),
    _milestone(
        60,
        "Two Month Titan",
        "Two months of dedication! Enjoy 48 hours of AI coaching.",
        StreakRewardType.TRIAL_COACH,
        {"trial_days": 2, "coach_type": "spark", "messages_included": 20},
        "dumbbell",
        "fireworks",
    ),
    _milestone(
        90,
        "Quarter Champion",
        "A full quarter of consistent movement! Unlock an exclusive app icon.",
        StreakRewardType.APP_ICON,
        {"icon_id": "quarter_champion", "icon_rarity": "rare"},
        "trophy",
        "fireworks",
    ),
    _milestone(
        100,
        "Century Club",
        "100 days of movement earns a badge and permanent leaderboard flair.",
        StreakRewardType.CUSTOM,
        {
            "badge_id": "century_club",
            "badge_tier": "gold",
            "flair_id": "century_club",
            "flair_permanent": True,
        },
        "hundred-points",
        "fireworks",
    ),
    _milestone(
        150,
        "Trail Blazer",
        "You're blazing your own trail! 150 days of dedication.",
        StreakRewardType.BADGE,
        {"badge_id": "trail_blazer", "badge_tier": "gold"},
        "fire",
        "confetti",
    ),
    _milestone(
        200,
        "Double Century",
        "200 days! Earn an exclusive profile frame and commemorative badge.",
        StreakRewardType.CUSTOM,
        {"badge_id": "double_century", "frame_id": "double_century"},
        "award",
        "fireworks",
    ),
    _milestone(
        250,
        "Legendary",
        "Legendary status! Enjoy a full week of AI coaching.",
        StreakRewardType.TRIAL_COACH,
        {"trial_days": 7, "coach_type": "spark", "messages_included": 50},
        "crown",
        "fireworks",
    ),
    _milestone(
        300,
        "Movement Master",
        "300 days of movement mastery! Unlock a rare app icon and badge.",
        StreakRewardType.CUSTOM,
        {"badge_id": "movement_master", "icon_id": "movement_master"},
        "gem",
        "fireworks",
    ),
    _milestone(
        365,
        "Year of Movement",
        "A full year of movement! A 14-day Crusher trial and the 365 badge.",
        StreakRewardType.TRIAL_CRUSHER,
        {"trial_days": 14, "badge_id": "year_of_movement", "badge_permanent": True},
        "sun",
        "fireworks",
    ),
    _milestone(
        465,
        "Century Milestone",
        "Another 100 days of movement! Earn a special century badge.",
        StreakRewardType.BADGE,
        {"badge_id": "century_milestone", "shows_count": True},
        "infinity",
        "confetti",
        repeat_interval=100,
    ),
]


async def seed_database(milestones: list[dict[str, Any]] | None = None) -> int:
    """Insert the catalog. Returns the number of new rows."""
    engine = create_engine()
    session_maker = create_session_maker(engine)
    try:
        async with session_scope(session_maker) as db:
            inserted = await MilestoneRepository(db).insert_definitions(
                milestones if milestones is not None else DEFAULT_MILESTONES
            )
    finally:
        await dispose_engine(engine)

    logger.info("milestones.seeded", inserted=inserted)
    return inserted


if __name__ == "__main__":
    configure_logging()
    asyncio.run(seed_database())
