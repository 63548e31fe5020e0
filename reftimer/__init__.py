"""Reinforcement timer tracker for EVE Online structures."""
from __future__ import annotations

__version__ = "1.2.0"

from .duration import parse_duration
from .errors import ErrorKind
from .model import TimerDraft, TimerPatch, TimerRecord
from .reconcile import save_timer
from .store import EventStore, PickleEventStore
from .timecalc import DisplayZone, compute_due_date, format_for_display, resolve_anchor

__all__ = [
    "DisplayZone",
    "ErrorKind",
    "EventStore",
    "PickleEventStore",
    "TimerDraft",
    "TimerPatch",
    "TimerRecord",
    "compute_due_date",
    "format_for_display",
    "parse_duration",
    "resolve_anchor",
    "save_timer",
]
