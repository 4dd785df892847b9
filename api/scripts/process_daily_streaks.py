#!/usr/bin/env python3
"""Process today's streak for many users (the scheduled daily job).

Each user runs in its own session and transaction through the same
orchestrator the HTTP endpoint uses. A failure for one user is logged
and counted; it never stops the batch.

Usage:
    python -m scripts.process_daily_streaks [--user-id ID ...] [--concurrency N]

Environment:
    DATABASE_URL - PostgreSQL connection string (required)
"""

import asyncio
import sys
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.database import (
    create_engine,
    create_session_maker,
    dispose_engine,
    session_scope,
)
from core.logger import get_logger
from core.wide_event import wide_event_scope
from repositories.user_repository import UserRepository
from services.streak_rules import StreakRules
from services.streaks_service import process_user_streak

logger = get_logger(__name__)

DEFAULT_CONCURRENCY = 8


@dataclass
class BatchSummary:
    processed: int = 0
    failed_user_ids: list[str] = field(default_factory=list)

    @property
    def failed(self) -> int:
        return len(self.failed_user_ids)


async def process_one(
    session_maker: async_sessionmaker[AsyncSession],
    user_id: str,
    rules: StreakRules,
) -> bool:
    """Process one user in its own transaction. Returns False on failure."""
    with wide_event_scope(job="process-streaks", user_id=user_id) as event:
        try:
            async with session_scope(session_maker) as db:
                result = await process_user_streak(db, user_id, rules=rules)
        except Exception as e:
            event["outcome"] = "error"
            event["exception_type"] = type(e).__name__
            logger.error("streak.batch.user_failed", exc_info=True, **event)
            return False

        event["outcome"] = "success"
        event["milestones_earned_count"] = len(result.milestones_earned)
        logger.info("streak.batch.user_processed", **event)
        return True


async def run_batch(
    session_maker: async_sessionmaker[AsyncSession],
    user_ids: Sequence[str] | None = None,
    *,
    concurrency: int = DEFAULT_CONCURRENCY,
    rules: StreakRules | None = None,
) -> BatchSummary:
    """Process the given users, or every user when none are given."""
    rules = rules or StreakRules.from_settings()
    if not user_ids:
        async with session_scope(session_maker) as db:
            user_ids = await UserRepository(db).list_ids()

    semaphore = asyncio.Semaphore(max(1, concurrency))

    async def _bounded(user_id: str) -> tuple[str, bool]:
        async with semaphore:
            return user_id, await process_one(session_maker, user_id, rules)

    summary = BatchSummary()
    for user_id, ok in await asyncio.gather(*(_bounded(u) for u in user_ids)):
        if ok:
            summary.processed += 1
        else:
            summary.failed_user_ids.append(user_id)

    logger.info(
        "streak.batch.completed",
        processed=summary.processed,
        failed=summary.failed,
    )
    return summary


async def main(
    user_ids: Sequence[str] | None = None, concurrency: int = DEFAULT_CONCURRENCY
) -> BatchSummary:
    engine = create_engine()
    try:
        return await run_batch(
            create_session_maker(engine), user_ids, concurrency=concurrency
        )
    finally:
        await dispose_engine(engine)
