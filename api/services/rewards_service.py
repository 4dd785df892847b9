"""Coin rewards for streak milestones.

Every earned milestone credits coins once. The ledger reference is
``streak_<milestone_id>`` for one-time milestones and
``streak_<milestone_id>_<YYYY-MM-DD>`` for repeating ones; the ledger's
unique key on (user, type, reference) makes a retried credit a no-op.

Each credit runs in its own savepoint. A failed credit is logged and
dropped without touching the streak update or the other credits.
"""

from collections.abc import Sequence
from dataclasses import dataclass

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.logger import get_logger
from core.wide_event import set_wide_event_nested
from models import CoinTransactionType
from repositories.coin_repository import CoinRepository
from repositories.milestone_repository import ONCE
from repositories.utils import StorageError
from services.milestones_service import EarnedMilestone
from services.streak_rules import StreakRules

logger = get_logger(__name__)

TRANSACTION_TYPE = CoinTransactionType.EARN_STREAK_MILESTONE.value
REFERENCE_TYPE = "streak_milestone"

MIN_FALLBACK_COINS = 10
FALLBACK_COINS_PER_WEEK = 25


class RewardIssuanceError(Exception):
    """A milestone's coin credit could not be written."""

    def __init__(self, milestone_id: int, reference_id: str, message: str) -> None:
        self.milestone_id = milestone_id
        self.reference_id = reference_id
        super().__init__(f"{reference_id}: {message}")


@dataclass(frozen=True)
class RewardOutcome:
    milestone_id: int
    reference_id: str
    amount: int
    credited: bool


def resolve_coin_amount(day_number: int, rules: StreakRules) -> int:
    """Configured override, then the default table, then a weekly scale."""
    if day_number in rules.coin_overrides:
        return rules.coin_overrides[day_number]
    if day_number in rules.coin_table:
        return rules.coin_table[day_number]
    return max(MIN_FALLBACK_COINS, (day_number // 7) * FALLBACK_COINS_PER_WEEK)


def reward_reference_id(milestone_id: int, occurrence_key: str) -> str:
    if occurrence_key == ONCE:
        return f"streak_{milestone_id}"
    return f"streak_{milestone_id}_{occurrence_key}"


async def issue_milestone_reward(
    db: AsyncSession,
    user_id: str,
    milestone: EarnedMilestone,
    rules: StreakRules,
) -> RewardOutcome:
    """Credit coins for one earned milestone inside a savepoint.

    Raises:
        RewardIssuanceError: the credit failed; the savepoint was rolled back.
    """
    reference_id = reward_reference_id(milestone.milestone_id, milestone.occurrence_key)
    amount = resolve_coin_amount(milestone.day_number, rules)
    coin_repo = CoinRepository(db)

    try:
        async with db.begin_nested():
            if await coin_repo.exists(user_id, TRANSACTION_TYPE, reference_id):
                return RewardOutcome(milestone.milestone_id, reference_id, amount, False)

            credited = await coin_repo.credit(
                user_id,
                amount,
                transaction_type=TRANSACTION_TYPE,
                reference_type=REFERENCE_TYPE,
                reference_id=reference_id,
                details={
                    "milestone_id": milestone.milestone_id,
                    "milestone_name": milestone.name,
                    "day_number": milestone.day_number,
                },
            )
    except (StorageError, SQLAlchemyError) as e:
        raise RewardIssuanceError(milestone.milestone_id, reference_id, str(e)) from e

    return RewardOutcome(milestone.milestone_id, reference_id, amount, credited)


async def issue_rewards(
    db: AsyncSession,
    user_id: str,
    milestones: Sequence[EarnedMilestone],
    rules: StreakRules,
) -> list[RewardOutcome]:
    """Credit every earned milestone. Failures are logged, never raised."""
    outcomes: list[RewardOutcome] = []
    failed = 0
    for milestone in milestones:
        try:
            outcome = await issue_milestone_reward(db, user_id, milestone, rules)
        except RewardIssuanceError as e:
            failed += 1
            logger.error(
                "streak.reward.failed",
                user_id=user_id,
                milestone_id=e.milestone_id,
                reference_id=e.reference_id,
                error=str(e),
            )
            continue

        outcomes.append(outcome)
        if outcome.credited:
            logger.info(
                "streak.reward.credited",
                user_id=user_id,
                reference_id=outcome.reference_id,
                amount=outcome.amount,
            )

    if milestones:
        set_wide_event_nested(
            "rewards",
            credited=sum(1 for o in outcomes if o.credited),
            skipped=sum(1 for o in outcomes if not o.credited),
            failed=failed,
        )
    return outcomes
