"""Repository for per-user streak state."""

from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from models import UserStreak
from repositories.utils import storage_operation, upsert_on_conflict


class StreakRepository:
    """Repository for UserStreak rows (one per user, created lazily)."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    @storage_operation("streak.get")
    async def get(self, user_id: str) -> UserStreak | None:
        """Read the streak row without locking. Never creates one."""
        result = await self.db.execute(
            select(UserStreak).where(UserStreak.user_id == user_id)
        )
        return result.scalar_one_or_none()

    @storage_operation("streak.get_or_create_for_update")
    async def get_or_create_for_update(
        self, user_id: str, *, timezone: str
    ) -> UserStreak:
        """Create the row if missing, then lock it for this transaction.

        Uses INSERT ... ON CONFLICT DO NOTHING so two first-time invocations
        for the same user both end up holding the same row. The FOR UPDATE
        lock serializes same-user invocations until the caller commits.
        """
        await self.db.execute(
            pg_insert(UserStreak)
            .values(user_id=user_id, timezone=timezone)
            .on_conflict_do_nothing(index_elements=["user_id"])
        )
        result = await self.db.execute(
            select(UserStreak)
            .where(UserStreak.user_id == user_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return result.scalar_one()

    @storage_operation("streak.update")
    async def update(
        self, streak: UserStreak, changes: Mapping[str, Any]
    ) -> UserStreak:
        """Apply all changes to the row in a single flush."""
        for field, value in changes.items():
            setattr(streak, field, value)
        await self.db.flush()
        return streak

    @storage_operation("streak.set_timezone")
    async def set_timezone(self, user_id: str, timezone: str) -> UserStreak:
        """Set the user's timezone, creating the row if needed."""
        now = datetime.now(UTC)
        streak = await upsert_on_conflict(
            self.db,
            UserStreak,
            values={"user_id": user_id, "timezone": timezone, "updated_at": now},
            index_elements=["user_id"],
            update_fields=["timezone", "updated_at"],
            returning=True,
        )
        assert streak is not None
        return streak
