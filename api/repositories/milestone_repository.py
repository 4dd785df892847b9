"""Repositories for milestone definitions and per-user milestone progress."""

from collections.abc import Iterable, Sequence
from datetime import datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from models import (
    TRIAL_REWARD_TYPES,
    MilestoneProgress,
    StreakMilestone,
)
from repositories.utils import storage_operation

# occurrence_key for milestones that can only be earned once
ONCE = "once"


class MilestoneRepository:
    """Milestone definitions (reference data)."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    @storage_operation("milestone.list_all")
    async def list_all(self) -> Sequence[StreakMilestone]:
        result = await self.db.execute(
            select(StreakMilestone).order_by(StreakMilestone.day_number)
        )
        return result.scalars().all()

    @storage_operation("milestone.list_up_to")
    async def list_up_to(self, day_number: int) -> Sequence[StreakMilestone]:
        """Milestones with day_number <= the given day, ascending."""
        result = await self.db.execute(
            select(StreakMilestone)
            .where(StreakMilestone.day_number <= day_number)
            .order_by(StreakMilestone.day_number)
        )
        return result.scalars().all()

    @storage_operation("milestone.insert_definitions")
    async def insert_definitions(self, rows: Iterable[dict[str, Any]]) -> int:
        """Insert definitions, skipping day_numbers that already exist.

        Returns the number of rows inserted.
        """
        inserted = 0
        for row in rows:
            result = await self.db.execute(
                pg_insert(StreakMilestone)
                .values(**row)
                .on_conflict_do_nothing(index_elements=["day_number"])
            )
            inserted += result.rowcount or 0
        return inserted


class MilestoneProgressRepository:
    """Per-user milestone earning events."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    @storage_operation("milestone_progress.exists")
    async def exists(self, user_id: str, milestone_id: int, occurrence_key: str) -> bool:
        result = await self.db.execute(
            select(MilestoneProgress.id).where(
                MilestoneProgress.user_id == user_id,
                MilestoneProgress.milestone_id == milestone_id,
                MilestoneProgress.occurrence_key == occurrence_key,
            )
        )
        return result.first() is not None

    @storage_operation("milestone_progress.record")
    async def record(
        self,
        user_id: str,
        milestone_id: int,
        occurrence_key: str,
        *,
        earned_at: datetime,
        reward_expires_at: datetime | None,
    ) -> int | None:
        """Insert a progress row unless the occurrence is already recorded.

        Returns the new row id, or None when the unique key already existed.
        """
        stmt = (
            pg_insert(MilestoneProgress)
            .values(
                user_id=user_id,
                milestone_id=milestone_id,
                occurrence_key=occurrence_key,
                earned_at=earned_at,
                reward_claimed=False,
                reward_expires_at=reward_expires_at,
            )
            .on_conflict_do_nothing(
                index_elements=["user_id", "milestone_id", "occurrence_key"]
            )
            .returning(MilestoneProgress.id)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    @storage_operation("milestone_progress.earned_once_ids")
    async def get_earned_once_ids(self, user_id: str) -> set[int]:
        """Ids of one-time milestones the user has already earned."""
        result = await self.db.execute(
            select(MilestoneProgress.milestone_id).where(
                MilestoneProgress.user_id == user_id,
                MilestoneProgress.occurrence_key == ONCE,
            )
        )
        return {row[0] for row in result.all()}

    @storage_operation("milestone_progress.get")
    async def get(
        self, progress_id: int, *, for_update: bool = False
    ) -> MilestoneProgress | None:
        query = select(MilestoneProgress).where(MilestoneProgress.id == progress_id)
        if for_update:
            query = query.with_for_update(of=MilestoneProgress)
        result = await self.db.execute(query)
        return result.unique().scalar_one_or_none()

    @storage_operation("milestone_progress.list_by_user")
    async def list_by_user(self, user_id: str) -> Sequence[MilestoneProgress]:
        """All earning events for a user, most recent first."""
        result = await self.db.execute(
            select(MilestoneProgress)
            .where(MilestoneProgress.user_id == user_id)
            .order_by(MilestoneProgress.earned_at.desc(), MilestoneProgress.id.desc())
        )
        return result.unique().scalars().all()

    @storage_operation("milestone_progress.list_claimed_trials")
    async def list_claimed_trials(
        self, user_id: str, now: datetime
    ) -> Sequence[MilestoneProgress]:
        """Claimed trial rewards that have not expired yet."""
        result = await self.db.execute(
            select(MilestoneProgress)
            .join(StreakMilestone, MilestoneProgress.milestone_id == StreakMilestone.id)
            .where(
                MilestoneProgress.user_id == user_id,
                MilestoneProgress.reward_claimed.is_(True),
                StreakMilestone.reward_type.in_(list(TRIAL_REWARD_TYPES)),
                MilestoneProgress.reward_expires_at > now,
            )
            .order_by(MilestoneProgress.reward_claimed_at.desc())
        )
        return result.unique().scalars().all()

    @storage_operation("milestone_progress.mark_claimed")
    async def mark_claimed(
        self,
        progress: MilestoneProgress,
        *,
        claimed_at: datetime,
        expires_at: datetime | None,
    ) -> MilestoneProgress:
        progress.reward_claimed = True
        progress.reward_claimed_at = claimed_at
        progress.reward_expires_at = expires_at
        await self.db.flush()
        return progress
