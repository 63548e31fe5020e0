"""Minimal iCalendar (.ics) writer for timer reminders."""
from __future__ import annotations

from datetime import datetime, timezone

PRODID = "-//EVE Reinforcement Timer//EN"


def _ics_stamp(d: datetime) -> str:
    return d.astimezone(timezone.utc).strftime("%Y%m%dT%H%M%SZ")


def _ics_escape(text: str) -> str:
    return (
        text.replace("\\", "\\\\")
        .replace(";", "\\;")
        .replace(",", "\\,")
        .replace("\r\n", "\\n")
        .replace("\n", "\\n")
    )


def make_ics_timed(
    summary: str,
    start: datetime,
    end: datetime,
    uid: str,
    description: str = "",
    alarms_min: list[int] | None = None,
) -> str:
    """Create a timed VEVENT; DTSTART/DTEND exported in UTC (…Z). Uses CRLF line endings."""
    lines = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        f"PRODID:{PRODID}",
        "CALSCALE:GREGORIAN",
        "BEGIN:VEVENT",
        f"UID:{uid}",
        f"DTSTAMP:{_ics_stamp(datetime.now(timezone.utc))}",
        f"DTSTART:{_ics_stamp(start)}",
        f"DTEND:{_ics_stamp(end)}",
        f"SUMMARY:{_ics_escape(summary)}",
    ]
    if description:
        lines.append(f"DESCRIPTION:{_ics_escape(description)}")

    for minutes in (alarms_min or []):
        lines += [
            "BEGIN:VALARM",
            f"TRIGGER:-PT{abs(int(minutes))}M",
            "ACTION:DISPLAY",
            f"DESCRIPTION:{_ics_escape(summary)}",
            "END:VALARM",
        ]

    lines += [
        "END:VEVENT",
        "END:VCALENDAR",
    ]
    return _ics_join(lines)


def _ics_join(lines: list[str]) -> str:
    """Join ICS lines with CRLF and end with a final CRLF."""
    return "\r\n".join(lines) + "\r\n"
