"""Core utilities for the streak engine API.

Logging and wide-event helpers used across services and scripts:
    from core import get_logger, set_wide_event_nested, track_operation
"""

from core.logger import configure_logging, get_logger
from core.telemetry import track_operation
from core.wide_event import (
    get_wide_event,
    set_wide_event_fields,
    set_wide_event_nested,
    wide_event_scope,
)

__all__ = [
    "configure_logging",
    "get_logger",
    "get_wide_event",
    "set_wide_event_fields",
    "set_wide_event_nested",
    "track_operation",
    "wide_event_scope",
]
