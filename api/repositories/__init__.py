"""Repository layer for database operations.

Repositories encapsulate all database queries, keeping services free of SQL:
- Single source of truth for streak, milestone and ledger queries
- Easier testing (services take fakes in place of repositories)
- Storage failures surface as StorageError, never as raw driver errors
"""

from repositories.activity_repository import ActivityRepository
from repositories.coin_repository import CoinRepository
from repositories.milestone_repository import (
    MilestoneProgressRepository,
    MilestoneRepository,
)
from repositories.streak_repository import StreakRepository
from repositories.trial_repository import TrialRepository
from repositories.user_repository import UserRepository
from repositories.utils import StorageError, storage_operation

__all__ = [
    "ActivityRepository",
    "CoinRepository",
    "MilestoneProgressRepository",
    "MilestoneRepository",
    "StorageError",
    "StreakRepository",
    "TrialRepository",
    "UserRepository",
    "storage_operation",
]
