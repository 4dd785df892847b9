"""Wide Event context for canonical log lines.

One dict per unit of work (an HTTP request, or one user in a CLI batch run)
accumulates context as the streak engine runs. Whoever opened the unit of
work emits it once at the end.

This module only manages the data structure - telemetry.py handles the
request lifecycle and cli.py handles batch runs.

Usage:
    from core.wide_event import set_wide_event_fields

    # In route handlers or services:
    set_wide_event_fields(streak_state="continued", current_streak=12)

    # For nested data:
    set_wide_event_nested("shields", available=1, used_this_week=1)
"""

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any

_wide_event: ContextVar[dict[str, Any]] = ContextVar("wide_event")


def init_wide_event() -> dict[str, Any]:
    """Initialize a new wide event dict for the current async context."""
    event: dict[str, Any] = {}
    _wide_event.set(event)
    return event


def get_wide_event() -> dict[str, Any]:
    """Get the current wide event dict. Returns empty dict if not initialized."""
    try:
        return _wide_event.get()
    except LookupError:
        return {}


def set_wide_event_field(key: str, value: Any) -> None:
    """Set a single field on the current wide event.

    No-op outside a unit of work. Telemetry should never crash the engine.
    """
    event = get_wide_event()
    if event is not None:
        event[key] = value


def set_wide_event_fields(**kwargs: Any) -> None:
    """Set multiple fields on the current wide event (no-op when unset)."""
    event = get_wide_event()
    if event is not None:
        event.update(kwargs)


def set_wide_event_nested(category: str, **kwargs: Any) -> None:
    """Set fields in a nested category (e.g., shields, rewards).

    Example:
        set_wide_event_nested("shields", available=2, cap=3)
        # Results in: {"shields": {"available": 2, "cap": 3}}
    """
    event = get_wide_event()
    event.setdefault(category, {}).update(kwargs)


def clear_wide_event() -> None:
    """Clear the wide event for the current context."""
    _wide_event.set({})


@contextmanager
def wide_event_scope(**fields: Any) -> Iterator[dict[str, Any]]:
    """Open a wide event outside of a request (batch jobs, scripts).

    Yields the event dict so the caller can emit it when the work finishes.
    """
    token = _wide_event.set(dict(fields))
    try:
        yield _wide_event.get()
    finally:
        _wide_event.reset(token)
