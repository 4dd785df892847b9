"""Immutable lookup tables for the streak engine.

Built once from settings and passed into the services that need them, so
tests can hand in alternate tables without touching the environment.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from core.config import Settings, get_settings

DEFAULT_SHIELD_CAPS: Mapping[str, int] = MappingProxyType(
    {"starter": 2, "mover": 3, "crusher": 5}
)

# Coins per milestone day when no override is configured
DEFAULT_COIN_TABLE: Mapping[int, int] = MappingProxyType(
    {7: 25, 14: 50, 30: 100, 60: 150, 90: 200, 180: 300, 365: 500}
)


@dataclass(frozen=True)
class StreakRules:
    """Tier -> shield cap, and day number -> coin amount tables."""

    shield_caps: Mapping[str, int] = field(default_factory=lambda: DEFAULT_SHIELD_CAPS)
    default_tier: str = "starter"
    coin_table: Mapping[int, int] = field(default_factory=lambda: DEFAULT_COIN_TABLE)
    coin_overrides: Mapping[int, int] = field(
        default_factory=lambda: MappingProxyType({})
    )
    default_timezone: str = "America/New_York"

    def __post_init__(self) -> None:
        # Freeze caller-supplied dicts too
        for name in ("shield_caps", "coin_table", "coin_overrides"):
            value = getattr(self, name)
            if not isinstance(value, MappingProxyType):
                object.__setattr__(self, name, MappingProxyType(dict(value)))
        if self.default_tier not in self.shield_caps:
            raise ValueError(f"default tier {self.default_tier!r} has no shield cap")

    def shield_cap(self, tier: str | None) -> int:
        """Shield cap for a tier. Unknown or missing tiers get the default's."""
        if tier is not None and tier in self.shield_caps:
            return self.shield_caps[tier]
        return self.shield_caps[self.default_tier]

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "StreakRules":
        settings = settings or get_settings()
        return cls(
            shield_caps=settings.shield_caps,
            default_tier=settings.default_subscription_tier,
            coin_overrides=settings.streak_coin_overrides,
            default_timezone=settings.default_timezone,
        )
