"""Form state for adding or editing a timer.

Every change to a source field re-validates the whole form and, when all
fields are valid, recomputes the due date straight away. Subscribers are
called after each recomputation.

States: EMPTY → (edit) VALID | INVALID → (submit) SAVED → (close) EMPTY.
Submitting an invalid form does nothing.
"""
from __future__ import annotations

import logging
from datetime import datetime, tzinfo
from enum import Enum
from typing import Callable

from .duration import format_duration, parse_duration
from .errors import PersistenceError
from .model import TimerDraft, TimerRecord
from .reconcile import save_timer
from .store import EventStore
from .timecalc import (
    DisplayZone,
    compute_due_date,
    default_tz,
    format_for_display,
    now_utc,
    resolve_anchor,
)
from .validation import (
    validate_location,
    validate_offset,
    validate_start_time,
    validate_system_name,
)

logger = logging.getLogger(__name__)

ENTER_DATA = "Enter Information"

FIELDS = ("system_name", "location", "start_time", "offset")


class FormState(str, Enum):
    EMPTY = "empty"
    VALID = "valid"
    INVALID = "invalid"
    SAVED = "saved"


_MISSING = object()


class _Field:
    """Form attribute whose assignment re-runs validation when the value changes."""

    def __set_name__(self, owner, name: str) -> None:
        self.attr = "_" + name

    def __get__(self, obj, objtype=None):
        if obj is None:
            return self
        return getattr(obj, self.attr)

    def __set__(self, obj, value) -> None:
        if getattr(obj, self.attr, _MISSING) == value:
            return
        setattr(obj, self.attr, value)
        obj._field_changed()


class EventForm:
    system_name = _Field()
    location = _Field()
    start_time = _Field()
    explicit_start = _Field()
    offset = _Field()
    is_defence = _Field()
    display_zone = _Field()

    def __init__(
        self,
        store: EventStore,
        editing: TimerRecord | None = None,
        clock: Callable[[], datetime] | None = None,
        tz: tzinfo | None = None,
        display_zone: DisplayZone = DisplayZone.UTC,
    ) -> None:
        self.store = store
        self.editing = editing
        self.tz = tz or default_tz()
        self._clock = clock or now_utc
        self._subscribers: list[Callable[["EventForm"], None]] = []
        self._display_zone = display_zone
        self._reset_fields()
        if editing is not None:
            self._load(editing)

    def _reset_fields(self) -> None:
        self._system_name = ""
        self._location = ""
        self._start_time = ""
        self._explicit_start: datetime | None = None
        self._offset = ""
        self._is_defence = False
        self.errors: dict[str, str | None] = {f: None for f in FIELDS}
        self.state = FormState.EMPTY
        self.result_text = ENTER_DATA
        self.anchor: datetime | None = None
        self.due_date: datetime | None = None
        self.alert: str | None = None
        self.saved_record: TimerRecord | None = None

    def _load(self, record: TimerRecord) -> None:
        self._system_name = record.system_name
        self._location = record.location
        self._explicit_start = record.created_date
        self._offset = format_duration(record.offset_seconds)
        self._is_defence = record.is_defence
        self._field_changed()

    # ---------------------------- Observers ---------------------------- #
    def subscribe(self, callback: Callable[["EventForm"], None]) -> Callable[[], None]:
        """Call ``callback(form)`` after every recomputation. Returns an unsubscribe."""
        self._subscribers.append(callback)
        return lambda: self._subscribers.remove(callback)

    # ---------------------------- Validation --------------------------- #
    @property
    def is_all_valid(self) -> bool:
        return all(err is None for err in self._check().values())

    def validate(self) -> bool:
        self.errors = self._check()
        return all(err is None for err in self.errors.values())

    def _check(self) -> dict[str, str | None]:
        return {
            "system_name": validate_system_name(self._system_name),
            "location": validate_location(self._location),
            "start_time": (
                None if self._explicit_start is not None
                else validate_start_time(self._start_time)
            ),
            "offset": validate_offset(self._offset, self._is_defence),
        }

    def set_start_time(self, text: str) -> None:
        """Typed ``HH:mm`` start; drops an explicit anchor in the same change."""
        if self._explicit_start is None and self._start_time == text:
            return
        self._explicit_start = None
        self._start_time = text
        self._field_changed()

    def _field_changed(self) -> None:
        self.alert = None
        self.saved_record = None
        if self.validate():
            self.state = FormState.VALID
            self.calculate_future_time()
        else:
            self.state = FormState.INVALID
            self.anchor = None
            self.due_date = None
            self.result_text = ENTER_DATA

    def calculate_future_time(self) -> datetime:
        self.anchor = resolve_anchor(
            self._start_time, explicit=self._explicit_start, now=self._clock(), tz=self.tz
        )
        self.due_date = compute_due_date(self.anchor, parse_duration(self._offset))
        self.result_text = format_for_display(self.due_date, self._display_zone, self.tz)
        for callback in list(self._subscribers):
            callback(self)
        return self.due_date

    # ------------------------------ Actions ---------------------------- #
    def draft(self) -> TimerDraft:
        return TimerDraft(
            system_name=self._system_name.strip(),
            location=self._location.strip(),
            created_date=self.anchor,
            offset_seconds=parse_duration(self._offset),
            is_defence=self._is_defence,
        )

    def submit(self) -> TimerRecord | None:
        """Save the timer. Returns the record, or None if nothing was saved."""
        if self.state is not FormState.VALID:
            return None
        try:
            record = save_timer(self.store, self.draft(), self.editing)
        except PersistenceError as e:
            logger.error("Saving timer failed: %s", e)
            self.alert = f"Could not save the timer: {e}"
            return None
        self.saved_record = record
        self.state = FormState.SAVED
        return record

    def close(self) -> None:
        """Back to an empty form, whether or not anything was saved."""
        self.editing = None
        self._reset_fields()

    cancel = close
