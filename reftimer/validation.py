"""Field validators for the timer form.

Each validator returns an error message, or None when the text is fine.
They never raise.
"""
from __future__ import annotations

import re

from .duration import parse_duration
from .errors import TimerInputError
from .timecalc import parse_clock_time

# Letters and digits, then also spaces, hyphens, apostrophes and periods
# (EVE has systems like "1DQ1-A" and "Old Man Star").
SYSTEM_NAME_RE = re.compile(r"^[^\W_](?:[^\W_]|[ \-'.])*$")


def validate_system_name(text: str) -> str | None:
    s = (text or "").strip()
    if not s:
        return "System name is required"
    if not SYSTEM_NAME_RE.match(s):
        return "Use letters, digits, spaces, hyphens, apostrophes or periods"
    return None


def validate_location(text: str) -> str | None:
    if not (text or "").strip():
        return "Location is required"
    return None


def validate_offset(text: str, is_defence: bool = False) -> str | None:
    if not (text or "").strip():
        return "Time remaining is required (D:HH:MM)"
    try:
        seconds = parse_duration(text)
    except TimerInputError as e:
        return str(e)
    if is_defence and seconds <= 0:
        return "A defence timer needs some time remaining"
    return None


def validate_start_time(text: str) -> str | None:
    """Blank is fine (means now)."""
    if not (text or "").strip():
        return None
    try:
        parse_clock_time(text)
    except TimerInputError as e:
        return str(e)
    return None
