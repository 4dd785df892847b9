"""Repository for the qualifying-activity log."""

from datetime import date

from sqlalchemy import exists, select
from sqlalchemy.ext.asyncio import AsyncSession

from models import StreakActivityLog
from repositories.utils import storage_operation


class ActivityRepository:
    """Read-only access to streak_activity_log.

    Rows are written by the health integrations; whether an activity
    qualifies is decided there.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    @storage_operation("activity.has_qualifying")
    async def has_qualifying_activity(self, user_id: str, activity_date: date) -> bool:
        """Check if the user logged a qualifying activity on a local date."""
        stmt = exists().where(
            StreakActivityLog.user_id == user_id,
            StreakActivityLog.activity_date == activity_date,
            StreakActivityLog.qualifies_for_streak.is_(True),
        )
        result = await self.db.execute(select(stmt))
        return result.scalar_one()
