"""Offset durations: the time left on a reinforcement timer.

Two grammars are accepted:

- structured ``D:HH:MM`` (e.g. ``1:02:30``), what the game client shows;
- flexible ``NjNhNm`` (e.g. ``1j 2h 30m``, ``45m``), any subset, any order.
  ``d`` is accepted as well as ``j`` for days.
"""
from __future__ import annotations

import re

from .errors import InvalidDurationError

SECONDS_PER_MINUTE = 60
SECONDS_PER_HOUR = 3600
SECONDS_PER_DAY = 86400

_FLEX_TOKEN_RE = re.compile(r"\s*(\d+)\s*([jdhm])\s*", re.IGNORECASE | re.ASCII)
_DIGITS_RE = re.compile(r"\d+", re.ASCII)
_UNIT_SECONDS = {
    "j": SECONDS_PER_DAY,
    "d": SECONDS_PER_DAY,
    "h": SECONDS_PER_HOUR,
    "m": SECONDS_PER_MINUTE,
}


def parse_structured_duration(s: str) -> int:
    """``D:HH:MM`` → seconds."""
    parts = s.strip().split(":")
    if len(parts) != 3:
        raise InvalidDurationError("Duration must be D:HH:MM")
    if not all(_DIGITS_RE.fullmatch(p) for p in parts):
        raise InvalidDurationError("Duration must be D:HH:MM with whole numbers")
    days, hours, minutes = (int(p) for p in parts)
    if hours > 23:
        raise InvalidDurationError("Hours must be 00 – 23")
    if minutes > 59:
        raise InvalidDurationError("Minutes must be 00 – 59")
    return days * SECONDS_PER_DAY + hours * SECONDS_PER_HOUR + minutes * SECONDS_PER_MINUTE


def parse_flexible_duration(s: str) -> int:
    """``1j2h30m`` style → seconds. Blank text is zero."""
    text = s.strip()
    total = 0
    seen: set[int] = set()
    pos = 0
    while pos < len(text):
        m = _FLEX_TOKEN_RE.match(text, pos)
        if not m:
            raise InvalidDurationError("Duration must look like 1j 2h 30m")
        unit = _UNIT_SECONDS[m.group(2).lower()]
        if unit in seen:
            raise InvalidDurationError(f"'{m.group(2)}' given twice")
        seen.add(unit)
        total += int(m.group(1)) * unit
        pos = m.end()
    return total


def parse_duration(s: str) -> int:
    """Parse either grammar; text with a colon is read as ``D:HH:MM``."""
    if s is None:
        raise InvalidDurationError("Duration is missing")
    if ":" in s:
        return parse_structured_duration(s)
    return parse_flexible_duration(s)


def split_duration(seconds: int) -> tuple[int, int, int]:
    total_minutes = int(seconds) // SECONDS_PER_MINUTE
    days, rest = divmod(total_minutes, 24 * 60)
    hours, minutes = divmod(rest, 60)
    return days, hours, minutes


def format_duration(seconds: float) -> str:
    """Seconds → ``D:HH:MM``; anything not in the future is ``0:00:00``."""
    if seconds <= 0:
        return "0:00:00"
    days, hours, minutes = split_duration(int(seconds))
    return f"{days}:{hours:02d}:{minutes:02d}"


def describe_duration(seconds: float) -> str:
    """Seconds → ``1d 2h 30m`` (zero parts left out)."""
    if seconds <= 0:
        return ""
    days, hours, minutes = split_duration(int(seconds))
    parts = []
    if days > 0:
        parts.append(f"{days}d")
    if hours > 0:
        parts.append(f"{hours}h")
    if minutes > 0:
        parts.append(f"{minutes}m")
    return " ".join(parts)
