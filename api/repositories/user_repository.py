"""User repository for database operations."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from models import User
from repositories.utils import storage_operation


class UserRepository:
    """Read-only access to users. Profiles and tiers are owned elsewhere."""

    def __init__(self, db: AsyncSession):
        self.db = db

    @storage_operation("user.get_subscription_tier")
    async def get_subscription_tier(self, user_id: str) -> str | None:
        """Return the user's tier value, or None if the user is unknown."""
        result = await self.db.execute(
            select(User.subscription_tier).where(User.id == user_id)
        )
        tier = result.scalar_one_or_none()
        if tier is None:
            return None
        return tier.value if hasattr(tier, "value") else str(tier)

    @storage_operation("user.list_ids")
    async def list_ids(self) -> list[str]:
        """All user ids, in a stable order (for batch processing)."""
        result = await self.db.execute(select(User.id).order_by(User.id))
        return [row[0] for row in result.all()]
