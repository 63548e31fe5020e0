"""Anchor resolution, due-date arithmetic and display formatting.

Due dates are computed on instants: the anchor is converted to UTC and the
offset added in seconds, so a DST change between anchor and due date never
shifts the result.
"""
from __future__ import annotations

import re
import time as _time
from datetime import datetime, time, timedelta, timezone, tzinfo
from enum import Enum

try:
    from zoneinfo import ZoneInfo
except Exception:  # Python <3.9 fallback (optional)
    ZoneInfo = None  # type: ignore

from . import config
from .errors import InvalidStartTimeError

DISPLAY_FORMAT = "%d/%m/%Y %H:%M"

_OFFSET_RE = re.compile(r"^([+-])(\d{2}):?(\d{2})$")
_CLOCK_RE = re.compile(r"(\d+):(\d+)", re.ASCII)
_EPOCH = datetime(1970, 1, 1)


class DisplayZone(str, Enum):
    UTC = "utc"
    LOCAL = "local"


# ------------------------------ Timezones ------------------------------ #
class LocalTimezone(tzinfo):
    """The machine's own zone.

    Offsets come from the OS rules for each instant, so dates on the other
    side of a DST change get their own offset.
    """

    def utcoffset(self, dt: datetime | None) -> timedelta:
        return timedelta(seconds=self._struct(dt).tm_gmtoff)

    def dst(self, dt: datetime | None) -> timedelta:
        tt = self._struct(dt)
        if tt.tm_isdst > 0:
            return timedelta(seconds=tt.tm_gmtoff + _time.timezone)
        return timedelta(0)

    def tzname(self, dt: datetime | None) -> str:
        return self._struct(dt).tm_zone

    def fromutc(self, dt: datetime) -> datetime:
        if dt.tzinfo is not self:
            raise ValueError("fromutc: dt.tzinfo is not self")
        seconds = (dt.replace(tzinfo=None) - _EPOCH).total_seconds()
        return dt + timedelta(seconds=_time.localtime(seconds).tm_gmtoff)

    @staticmethod
    def _struct(dt: datetime | None) -> _time.struct_time:
        if dt is None:
            return _time.localtime()
        wall = (dt.year, dt.month, dt.day, dt.hour, dt.minute, dt.second, dt.weekday(), 0, -1)
        return _time.localtime(_time.mktime(wall))

    def __repr__(self) -> str:
        return "LocalTimezone()"


LOCAL_TZ = LocalTimezone()


def resolve_tz(name: str | None) -> tzinfo:
    """``local`` / ``UTC`` / IANA name / ``+02:00`` → tzinfo.

    Raises ValueError for anything else.
    """
    s = (name or "").strip()
    low = s.lower()
    if low in ("", "local", "system"):
        return LOCAL_TZ
    if low in ("utc", "z", "gmt", "eve"):
        return timezone.utc

    m = _OFFSET_RE.match(s)
    if m:
        sign_s, hh_s, mm_s = m.groups()
        hh, mm = int(hh_s), int(mm_s)
        if hh > 23 or mm > 59:
            raise ValueError(f"Invalid timezone offset: {s!r}")
        sign = 1 if sign_s == "+" else -1
        return timezone(sign * timedelta(hours=hh, minutes=mm))

    if ZoneInfo is None:
        raise ValueError(f"Invalid timezone identifier: {s!r} (zoneinfo unavailable)")
    try:
        return ZoneInfo(s)
    except Exception as e:
        raise ValueError(f"Invalid timezone identifier: {s!r}") from e


def default_tz() -> tzinfo:
    try:
        return resolve_tz(config.TIMEZONE)
    except ValueError:
        return resolve_tz(config.DEFAULT_TZ)


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


# ------------------------------- Anchor -------------------------------- #
def parse_clock_time(s: str) -> time:
    """``HH:mm`` → time. Hour must be 0–23 and minute 0–59."""
    s = s.strip()
    if not s:
        raise InvalidStartTimeError("Enter a time like 09:30 or 17:00")
    m = _CLOCK_RE.fullmatch(s)
    if m is None:
        raise InvalidStartTimeError("Time must be HH:MM")
    hh, mm = int(m.group(1)), int(m.group(2))
    if not (0 <= hh < 24 and 0 <= mm < 60):
        raise InvalidStartTimeError("Time must be 00:00 – 23:59")
    return time(hour=hh, minute=mm)


def resolve_anchor(
    start_text: str = "",
    explicit: datetime | None = None,
    now: datetime | None = None,
    tz: tzinfo | None = None,
) -> datetime:
    """Work out the instant the offset counts from.

    - ``explicit`` wins and is used verbatim (naive values are read in ``tz``).
    - ``start_text`` ``HH:mm`` is put on today's date in ``tz``.
    - Otherwise ``now``, truncated to the minute.
    """
    tz = tz or default_tz()
    if explicit is not None:
        return explicit if explicit.tzinfo is not None else explicit.replace(tzinfo=tz)

    current = (now or now_utc()).astimezone(tz)
    if not (start_text or "").strip():
        return current.replace(second=0, microsecond=0)

    clock = parse_clock_time(start_text)
    return datetime.combine(current.date(), clock, tzinfo=tz)


# ------------------------------ Due date ------------------------------- #
def compute_due_date(anchor: datetime, offset_seconds: int) -> datetime:
    """``anchor + offset_seconds`` as instant arithmetic, returned in UTC."""
    if anchor.tzinfo is None:
        anchor = anchor.replace(tzinfo=default_tz())
    return anchor.astimezone(timezone.utc) + timedelta(seconds=offset_seconds)


def format_for_display(
    d: datetime,
    zone: DisplayZone = DisplayZone.UTC,
    local_tz: tzinfo | None = None,
) -> str:
    """``dd/MM/yyyy HH:mm``, 24 hour clock, in UTC or the local zone."""
    if d.tzinfo is None:
        d = d.replace(tzinfo=default_tz())
    target = timezone.utc if zone == DisplayZone.UTC else (local_tz or default_tz())
    return d.astimezone(target).strftime(DISPLAY_FORMAT)
