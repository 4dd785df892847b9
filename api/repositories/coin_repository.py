"""Repository for the coin ledger."""

from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from models import CoinTransaction
from repositories.utils import insert_or_ignore, storage_operation


class CoinRepository:
    """Append-only coin ledger. Rows are never updated or deleted here."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    @storage_operation("coins.exists")
    async def exists(
        self, user_id: str, transaction_type: str, reference_id: str
    ) -> bool:
        result = await self.db.execute(
            select(CoinTransaction.id).where(
                CoinTransaction.user_id == user_id,
                CoinTransaction.transaction_type == transaction_type,
                CoinTransaction.reference_id == reference_id,
            )
        )
        return result.first() is not None

    @storage_operation("coins.credit")
    async def credit(
        self,
        user_id: str,
        amount: int,
        *,
        transaction_type: str,
        reference_type: str,
        reference_id: str,
        details: dict[str, Any] | None = None,
    ) -> bool:
        """Credit coins once per (user, type, reference).

        Returns False when the ledger already holds that reference.
        """
        return await insert_or_ignore(
            self.db,
            CoinTransaction,
            values={
                "user_id": user_id,
                "transaction_type": transaction_type,
                "amount": amount,
                "reference_type": reference_type,
                "reference_id": reference_id,
                "details": details or {},
            },
            index_elements=["user_id", "transaction_type", "reference_id"],
        )
