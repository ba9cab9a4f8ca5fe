"""
Warden - Duration Utilities
===========================

Parsing and formatting of temp role durations.

Usage:
    from warden.utils.duration import parse_duration, format_duration

    seconds = parse_duration("1d12h")   # 129600
    display = format_duration(129600)   # "1d 12h"
"""

import re
from typing import Optional

from warden.core.constants import (
    SECONDS_PER_DAY,
    SECONDS_PER_HOUR,
    SECONDS_PER_MINUTE,
    SECONDS_PER_WEEK,
)


# =============================================================================
# Time Units
# =============================================================================

TIME_MULTIPLIERS = {
    "w": SECONDS_PER_WEEK,
    "d": SECONDS_PER_DAY,
    "h": SECONDS_PER_HOUR,
    "m": SECONDS_PER_MINUTE,
    "s": 1,
}

UNIT_NAMES = {
    "w": ("w", "wk", "wks", "week", "weeks"),
    "d": ("d", "day", "days"),
    "h": ("h", "hr", "hrs", "hour", "hours"),
    "m": ("m", "min", "mins", "minute", "minutes"),
    "s": ("s", "sec", "secs", "second", "seconds"),
}

_UNIT_LOOKUP = {name: unit for unit, names in UNIT_NAMES.items() for name in names}
_UNIT_ORDER = list(TIME_MULTIPLIERS)

_WHOLE = re.compile(r"(?:\d+\s*[a-z]+\s*)+")
_PART = re.compile(r"(\d+)\s*([a-z]+)")


# =============================================================================
# Parsing
# =============================================================================

def parse_duration(duration_str: str) -> Optional[int]:
    """
    Parse a duration string into seconds.

    Accepts "30s", "10m", "1h", "1d", "1w", combined forms ("1d12h30m",
    "2 hours 30 mins"). Units must appear at most once each, largest
    first.

    Returns:
        Duration in seconds, or None if empty, invalid or zero.

    Examples:
        >>> parse_duration("1d12h")
        129600
        >>> parse_duration("30m1h") is None
        True
    """
    if not duration_str:
        return None

    text = duration_str.strip().lower()
    if not _WHOLE.fullmatch(text):
        return None

    total = 0
    last_rank = -1
    for amount, name in _PART.findall(text):
        unit = _UNIT_LOOKUP.get(name)
        if unit is None:
            return None
        rank = _UNIT_ORDER.index(unit)
        if rank <= last_rank:
            return None
        last_rank = rank
        total += int(amount) * TIME_MULTIPLIERS[unit]

    return total or None


# =============================================================================
# Formatting
# =============================================================================

def format_duration(seconds: Optional[float], max_units: int = 3) -> str:
    """
    Format seconds as "1d 2h 3m". Seconds are shown only below a minute.

    Examples:
        >>> format_duration(90061)
        "1d 1h 1m"
        >>> format_duration(45)
        "45s"
    """
    if seconds is None:
        return "Unknown"

    seconds = int(seconds)
    if seconds <= 0:
        return "0s"
    if seconds < SECONDS_PER_MINUTE:
        return f"{seconds}s"

    parts = []
    for unit in ("w", "d", "h", "m"):
        size = TIME_MULTIPLIERS[unit]
        if seconds >= size and len(parts) < max_units:
            value, seconds = divmod(seconds, size)
            parts.append(f"{value}{unit}")

    return " ".join(parts)


def format_remaining(expires_at: float, now: float) -> str:
    """Format time left until ``expires_at``, or "Expired" once it has passed."""
    remaining = expires_at - now
    if remaining <= 0:
        return "Expired"
    return format_duration(remaining)


__all__ = [
    "TIME_MULTIPLIERS",
    "parse_duration",
    "format_duration",
    "format_remaining",
]
