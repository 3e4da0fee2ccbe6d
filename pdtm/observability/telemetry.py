"""
Minimal telemetry helpers.

These wrappers do not send metrics externally; they provide structured
logging and in-memory counters so tests can assert instrumentation.
Callers pass domains and signal codes only, never raw URLs.
"""

from __future__ import annotations

import logging
from typing import Any

logger = logging.getLogger("pdtm.telemetry")

_COUNTERS: dict[str, int] = {}


def log_event(event_name: str, **fields: Any) -> None:
    """
    Structured log event. Caller must ensure fields carry no URL paths or query values.

    Side Effects:
        - Writes to logger (info level)
    """
    logger.info("event=%s %s", event_name, fields)


def counter(name: str, increment: int = 1) -> int:
    """
    Increment an in-memory counter and emit a debug log.

    Side Effects:
        - Modifies _COUNTERS dict (in-memory state)
        - Writes to logger (debug level)
    """
    value = _COUNTERS.get(name, 0) + increment
    _COUNTERS[name] = value
    logger.debug("counter=%s value=%s", name, value)
    return value


def get_counter(name: str) -> int:
    return _COUNTERS.get(name, 0)


def reset_counters() -> None:
    """
    Clear all counters (useful for tests).

    Side Effects:
        - Clears _COUNTERS dict (in-memory state)
    """
    _COUNTERS.clear()
