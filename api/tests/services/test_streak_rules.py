"""Tests for services/streak_rules.py - injected lookup tables."""

import pytest

from core.config import Settings
from services.streak_rules import DEFAULT_COIN_TABLE, DEFAULT_SHIELD_CAPS, StreakRules

pytestmark = pytest.mark.unit


class TestStreakRules:
    def test_defaults(self):
        rules = StreakRules()

        assert rules.shield_caps == DEFAULT_SHIELD_CAPS
        assert rules.coin_table == DEFAULT_COIN_TABLE
        assert dict(rules.coin_overrides) == {}

    @pytest.mark.parametrize(
        "tier,cap", [("starter", 2), ("mover", 3), ("crusher", 5)]
    )
    def test_shield_cap_per_tier(self, tier, cap):
        assert StreakRules().shield_cap(tier) == cap

    @pytest.mark.parametrize("tier", [None, "platinum", ""])
    def test_unknown_tier_uses_default_tier_cap(self, tier):
        assert StreakRules().shield_cap(tier) == 2

    def test_tables_are_read_only(self):
        caps = {"starter": 1}
        rules = StreakRules(shield_caps=caps)

        caps["starter"] = 99
        with pytest.raises(TypeError):
            rules.shield_caps["starter"] = 4  # type: ignore[index]

        assert rules.shield_cap("starter") == 1

    def test_default_tier_must_have_cap(self):
        with pytest.raises(ValueError, match="no shield cap"):
            StreakRules(shield_caps={"mover": 3})

    def test_from_settings(self):
        settings = Settings(
            database_url="postgresql+asyncpg://u:p@localhost/db",
            debug=True,
            shield_caps={"free": 1, "pro": 4},
            default_subscription_tier="free",
            streak_coin_overrides={7: 40},
            default_timezone="Europe/Berlin",
        )

        rules = StreakRules.from_settings(settings)

        assert rules.shield_cap("pro") == 4
        assert rules.shield_cap("starter") == 1
        assert rules.coin_overrides[7] == 40
        assert rules.default_timezone == "Europe/Berlin"
