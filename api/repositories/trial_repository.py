"""Repository for trial entitlements granted by streak rewards."""

from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from models import UserTrial
from repositories.utils import storage_operation, upsert_on_conflict


class TrialRepository:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    @storage_operation("trial.upsert")
    async def upsert(
        self,
        user_id: str,
        trial_type: str,
        *,
        milestone_progress_id: int,
        activated_at: datetime,
        expires_at: datetime,
    ) -> UserTrial:
        """Grant (or re-grant) a trial. One row per (user, trial_type)."""
        trial = await upsert_on_conflict(
            self.db,
            UserTrial,
            values={
                "user_id": user_id,
                "trial_type": trial_type,
                "milestone_progress_id": milestone_progress_id,
                "source": "streak_milestone",
                "activated_at": activated_at,
                "expires_at": expires_at,
            },
            index_elements=["user_id", "trial_type"],
            update_fields=[
                "milestone_progress_id",
                "source",
                "activated_at",
                "expires_at",
            ],
            returning=True,
        )
        assert trial is not None
        return trial
