"""Tests for services/trials_service.py - trial reward activation."""

from datetime import UTC, date, datetime, timedelta

import pytest

from services.milestones_service import evaluate_milestones
from services.trials_service import (
    NotATrialRewardError,
    TrialRewardExpiredError,
    TrialRewardNotFoundError,
    activate_trial_reward,
    get_active_trials,
)
from tests.factories import StreakMilestoneFactory, TrialMilestoneFactory

pytestmark = pytest.mark.unit

USER = "user_trials"
EARNED_AT = datetime(2026, 3, 10, 12, 0, tzinfo=UTC)


async def _earn(fake_db, store, milestone) -> int:
    store.add_milestone(milestone)
    [earned] = await evaluate_milestones(
        fake_db,
        USER,
        current_streak=milestone.day_number,
        today=date(2026, 3, 10),
        now=EARNED_AT,
    )
    return earned.progress_id


class TestActivateTrialReward:
    async def test_activation_grants_trial_until_earn_time_expiry(self, fake_db, store):
        progress_id = await _earn(
            fake_db, store, TrialMilestoneFactory.build(reward_value={"trial_days": 7})
        )
        now = EARNED_AT + timedelta(days=2)

        activation = await activate_trial_reward(fake_db, USER, progress_id, now=now)

        assert not activation.already_active
        assert activation.trial_type == "trial_mover"
        assert activation.activated_at == now
        assert activation.expires_at == EARNED_AT + timedelta(days=7)
        trial = store.trials[(USER, "trial_mover")]
        assert trial.milestone_progress_id == progress_id
        assert trial.expires_at == EARNED_AT + timedelta(days=7)
        assert store.progress[0].reward_claimed

    async def test_second_activation_returns_existing(self, fake_db, store):
        progress_id = await _earn(fake_db, store, TrialMilestoneFactory.build())
        first_at = EARNED_AT + timedelta(hours=1)
        await activate_trial_reward(fake_db, USER, progress_id, now=first_at)

        again = await activate_trial_reward(
            fake_db, USER, progress_id, now=first_at + timedelta(hours=1)
        )

        assert again.already_active
        assert again.activated_at == first_at
        assert len(store.trials) == 1

    async def test_missing_expiry_starts_from_activation(self, fake_db, store):
        progress_id = await _earn(
            fake_db, store, TrialMilestoneFactory.build(reward_value={"trial_days": 3})
        )
        store.progress[0].reward_expires_at = None
        now = EARNED_AT + timedelta(days=1)

        activation = await activate_trial_reward(fake_db, USER, progress_id, now=now)

        assert activation.expires_at == now + timedelta(days=3)

    async def test_expired_reward_cannot_be_activated(self, fake_db, store):
        progress_id = await _earn(
            fake_db, store, TrialMilestoneFactory.build(reward_value={"trial_days": 1})
        )

        with pytest.raises(TrialRewardExpiredError):
            await activate_trial_reward(
                fake_db, USER, progress_id, now=EARNED_AT + timedelta(days=1)
            )

        assert store.trials == {}

    async def test_badge_is_not_a_trial(self, fake_db, store):
        progress_id = await _earn(fake_db, store, StreakMilestoneFactory.build())

        with pytest.raises(NotATrialRewardError):
            await activate_trial_reward(fake_db, USER, progress_id, now=EARNED_AT)

    async def test_other_users_reward_is_not_found(self, fake_db, store):
        progress_id = await _earn(fake_db, store, TrialMilestoneFactory.build())

        with pytest.raises(TrialRewardNotFoundError):
            await activate_trial_reward(
                fake_db, "someone_else", progress_id, now=EARNED_AT
            )

    async def test_unknown_id_is_not_found(self, fake_db, store):
        with pytest.raises(TrialRewardNotFoundError):
            await activate_trial_reward(fake_db, USER, 999, now=EARNED_AT)


class TestActiveTrials:
    async def test_lists_only_running_claimed_trials(self, fake_db, store):
        claimed = await _earn(
            fake_db, store, TrialMilestoneFactory.build(reward_value={"trial_days": 7})
        )
        await _earn(fake_db, store, TrialMilestoneFactory.build())
        await activate_trial_reward(fake_db, USER, claimed, now=EARNED_AT)

        running = await get_active_trials(
            fake_db, USER, now=EARNED_AT + timedelta(days=6)
        )
        finished = await get_active_trials(
            fake_db, USER, now=EARNED_AT + timedelta(days=7)
        )

        assert [t.progress_id for t in running] == [claimed]
        assert finished == []
