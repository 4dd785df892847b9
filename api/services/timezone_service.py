"""Resolve a user's local calendar dates from their IANA timezone.

Streak days are calendar dates in the user's timezone. Day gaps are plain
date subtraction, so 23- and 25-hour DST days still count as one day.
"""

from dataclasses import dataclass
from datetime import UTC, date, datetime, timedelta
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from core.logger import get_logger

logger = get_logger(__name__)

FALLBACK_TIMEZONE = "UTC"


@dataclass(frozen=True)
class LocalDates:
    """Today/yesterday in the timezone that was actually used."""

    today: date
    yesterday: date
    timezone: str
    fell_back: bool = False


def load_timezone(name: str | None) -> ZoneInfo | None:
    """Return the ZoneInfo for name, or None if it cannot be resolved."""
    if not name or not name.strip():
        return None
    try:
        return ZoneInfo(name.strip())
    except (ZoneInfoNotFoundError, ValueError, OSError):
        return None


def is_valid_timezone(name: str | None) -> bool:
    return load_timezone(name) is not None


def resolve_local_dates(
    timezone_name: str | None, now: datetime | None = None
) -> LocalDates:
    """Compute the user's local today and yesterday.

    Unknown, empty or malformed timezone names fall back to UTC with a
    warning. Never raises for a bad timezone.
    """
    if now is None:
        now = datetime.now(UTC)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=UTC)

    tz = load_timezone(timezone_name)
    if tz is None:
        logger.warning(
            "streak.timezone.fallback",
            timezone=timezone_name,
            fallback=FALLBACK_TIMEZONE,
        )
        today = now.astimezone(UTC).date()
        return LocalDates(
            today=today,
            yesterday=today - timedelta(days=1),
            timezone=FALLBACK_TIMEZONE,
            fell_back=True,
        )

    today = now.astimezone(tz).date()
    return LocalDates(
        today=today,
        yesterday=today - timedelta(days=1),
        timezone=tz.key,
    )
