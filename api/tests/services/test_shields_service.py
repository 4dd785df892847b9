"""Tests for services/shields_service.py - weekly shield replenishment."""

from datetime import date, timedelta

import pytest

from services.shields_service import reconcile_shields
from services.streak_transitions import StreakSnapshot

pytestmark = pytest.mark.unit

TODAY = date(2026, 3, 10)


class TestReconcileShields:
    def test_first_processing_starts_week_without_granting(self):
        snapshot = StreakSnapshot(shields_available=1, shields_used_this_week=0)

        result = reconcile_shields(snapshot, TODAY, cap=2)

        assert result.changed
        assert not result.replenished
        assert result.snapshot.shield_week_start == TODAY
        assert result.snapshot.shields_available == 1
        assert "shields_available" not in result.changes

    def test_within_week_changes_nothing(self):
        snapshot = StreakSnapshot(
            shields_available=0,
            shields_used_this_week=1,
            shield_week_start=TODAY - timedelta(days=6),
        )

        result = reconcile_shields(snapshot, TODAY, cap=2)

        assert not result.changed
        assert result.snapshot == snapshot

    def test_rollover_after_seven_days_grants_one(self):
        snapshot = StreakSnapshot(
            shields_available=0,
            shields_used_this_week=1,
            shield_week_start=TODAY - timedelta(days=7),
        )

        result = reconcile_shields(snapshot, TODAY, cap=2)

        assert result.replenished
        assert result.snapshot.shields_available == 1
        assert result.snapshot.shields_used_this_week == 0
        assert result.snapshot.shield_week_start == TODAY

    def test_rollover_never_exceeds_cap(self):
        snapshot = StreakSnapshot(
            shields_available=2, shield_week_start=TODAY - timedelta(days=30)
        )

        result = reconcile_shields(snapshot, TODAY, cap=2)

        assert result.snapshot.shields_available == 2

    def test_rollover_grants_one_per_rollover_not_per_week_elapsed(self):
        snapshot = StreakSnapshot(
            shields_available=0, shield_week_start=TODAY - timedelta(days=28)
        )

        result = reconcile_shields(snapshot, TODAY, cap=5)

        assert result.snapshot.shields_available == 1

    def test_zero_cap_keeps_zero(self):
        snapshot = StreakSnapshot(
            shields_available=0, shield_week_start=TODAY - timedelta(days=7)
        )

        result = reconcile_shields(snapshot, TODAY, cap=0)

        assert result.snapshot.shields_available == 0

    def test_downgrade_within_week_clamps_to_new_cap(self):
        snapshot = StreakSnapshot(
            shields_available=5,
            shields_used_this_week=0,
            shield_week_start=TODAY - timedelta(days=2),
        )

        result = reconcile_shields(snapshot, TODAY, cap=2)

        assert result.changes == {"shields_available": 2}
        assert not result.replenished
        assert result.snapshot.shield_week_start == TODAY - timedelta(days=2)

    def test_rollover_after_downgrade_lands_on_cap(self):
        snapshot = StreakSnapshot(
            shields_available=5, shield_week_start=TODAY - timedelta(days=7)
        )

        result = reconcile_shields(snapshot, TODAY, cap=2)

        assert result.replenished
        assert result.snapshot.shields_available == 2

    def test_first_processing_with_zero_cap_drops_starting_shield(self):
        snapshot = StreakSnapshot(shields_available=1, shields_used_this_week=0)

        result = reconcile_shields(snapshot, TODAY, cap=0)

        assert result.snapshot.shields_available == 0
        assert result.snapshot.shield_week_start == TODAY
