"""Tests for services/streak_transitions.py - the pure streak state machine."""

from datetime import UTC, date, datetime, timedelta

import pytest

from services.streak_transitions import (
    StreakSnapshot,
    TransitionState,
    apply_transition,
)

pytestmark = pytest.mark.unit

TODAY = date(2026, 3, 10)
YESTERDAY = TODAY - timedelta(days=1)
NOW = datetime(2026, 3, 10, 15, 30, tzinfo=UTC)


def _transition(snapshot: StreakSnapshot, *, has_activity: bool = True):
    return apply_transition(
        has_activity_today=has_activity,
        snapshot=snapshot,
        today=TODAY,
        yesterday=YESTERDAY,
        now=NOW,
    )


class TestNoActivity:
    def test_unchanged_without_activity(self):
        snapshot = StreakSnapshot(
            current_streak=4, longest_streak=9, last_activity_date=TODAY - timedelta(5)
        )

        result = _transition(snapshot, has_activity=False)

        assert result.state is TransitionState.UNCHANGED
        assert result.changes == {}
        assert result.snapshot == snapshot

    def test_unchanged_does_not_reset_stale_streak(self):
        """A broken streak is only reset when the user is active again."""
        snapshot = StreakSnapshot(current_streak=20, last_activity_date=date(2025, 1, 1))

        result = _transition(snapshot, has_activity=False)

        assert result.snapshot.current_streak == 20


class TestAlreadyProcessed:
    def test_same_day_is_already_processed(self):
        snapshot = StreakSnapshot(
            current_streak=3, longest_streak=3, last_activity_date=TODAY
        )

        result = _transition(snapshot)

        assert result.state is TransitionState.ALREADY_PROCESSED
        assert result.changes == {}
        assert not result.state.mutates

    def test_future_date_after_moving_west_is_already_processed(self):
        snapshot = StreakSnapshot(
            current_streak=3, longest_streak=3, last_activity_date=TODAY + timedelta(1)
        )

        result = _transition(snapshot)

        assert result.state is TransitionState.ALREADY_PROCESSED
        assert result.snapshot.current_streak == 3


class TestStarted:
    def test_first_ever_activity_starts_streak(self):
        result = _transition(StreakSnapshot())

        assert result.state is TransitionState.STARTED
        assert result.snapshot.current_streak == 1
        assert result.snapshot.longest_streak == 1
        assert result.snapshot.total_active_days == 1
        assert result.snapshot.last_activity_date == TODAY
        assert result.snapshot.streak_started_at == NOW

    def test_started_keeps_higher_longest(self):
        result = _transition(StreakSnapshot(longest_streak=12))

        assert result.snapshot.longest_streak == 12


class TestContinued:
    def test_activity_yesterday_continues(self):
        started = datetime(2026, 3, 4, tzinfo=UTC)
        snapshot = StreakSnapshot(
            current_streak=6,
            longest_streak=6,
            last_activity_date=YESTERDAY,
            streak_started_at=started,
            total_active_days=30,
        )

        result = _transition(snapshot)

        assert result.state is TransitionState.CONTINUED
        assert result.snapshot.current_streak == 7
        assert result.snapshot.longest_streak == 7
        assert result.snapshot.total_active_days == 31
        assert result.snapshot.streak_started_at == started
        assert "streak_started_at" not in result.changes

    def test_continued_below_longest_keeps_longest(self):
        snapshot = StreakSnapshot(
            current_streak=2, longest_streak=40, last_activity_date=YESTERDAY
        )

        result = _transition(snapshot)

        assert result.snapshot.longest_streak == 40


class TestShieldProtected:
    def test_one_missed_day_consumes_shield(self):
        snapshot = StreakSnapshot(
            current_streak=10,
            longest_streak=10,
            last_activity_date=TODAY - timedelta(days=2),
            shields_available=1,
        )

        result = _transition(snapshot)

        assert result.state is TransitionState.SHIELD_PROTECTED
        assert result.shield_used
        assert result.snapshot.current_streak == 11
        assert result.snapshot.shields_available == 0
        assert result.snapshot.shields_used_this_week == 1

    def test_one_missed_day_without_shield_breaks(self):
        snapshot = StreakSnapshot(
            current_streak=10,
            longest_streak=10,
            last_activity_date=TODAY - timedelta(days=2),
            shields_available=0,
        )

        result = _transition(snapshot)

        assert result.state is TransitionState.BROKEN
        assert result.snapshot.current_streak == 1
        assert result.snapshot.longest_streak == 10

    def test_two_missed_days_break_even_with_shields(self):
        snapshot = StreakSnapshot(
            current_streak=10,
            longest_streak=10,
            last_activity_date=TODAY - timedelta(days=3),
            shields_available=3,
        )

        result = _transition(snapshot)

        assert result.state is TransitionState.BROKEN
        assert result.snapshot.shields_available == 3
        assert "shields_available" not in result.changes


class TestBroken:
    def test_broken_restarts_and_counts_active_day(self):
        snapshot = StreakSnapshot(
            current_streak=5,
            longest_streak=8,
            last_activity_date=TODAY - timedelta(days=10),
            total_active_days=50,
        )

        result = _transition(snapshot)

        assert result.state is TransitionState.BROKEN
        assert result.snapshot.current_streak == 1
        assert result.snapshot.streak_started_at == NOW
        assert result.snapshot.total_active_days == 51


@pytest.mark.parametrize(
    "state,mutates",
    [
        (TransitionState.UNCHANGED, False),
        (TransitionState.ALREADY_PROCESSED, False),
        (TransitionState.STARTED, True),
        (TransitionState.CONTINUED, True),
        (TransitionState.SHIELD_PROTECTED, True),
        (TransitionState.BROKEN, True),
    ],
)
def test_mutates(state: TransitionState, mutates: bool):
    assert state.mutates is mutates
