"""Owns the timer list, the current selection and calendar sync.

Views subscribe for change notifications instead of sharing a global
"selected timer" object. All store and calendar failures end up as an
OperationResult message; nothing here raises into the GUI.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable

from . import config
from .calendar_bridge import CalendarBridge, reminder_for
from .errors import CalendarAccessDeniedError, CalendarOperationError, PersistenceError
from .form import EventForm
from .model import TimerRecord
from .store import EventStore
from .timecalc import DisplayZone

logger = logging.getLogger(__name__)


@dataclass
class OperationResult:
    ok: bool
    message: str = ""
    record: TimerRecord | None = None
    needs_sync: bool = False


class TimerController:
    def __init__(
        self,
        store: EventStore,
        calendar: CalendarBridge | None = None,
        timeout: float | None = None,
        form_factory: Callable[..., EventForm] = EventForm,
    ) -> None:
        self.store = store
        self.calendar = calendar or CalendarBridge()
        self.timeout = config.CALENDAR_TIMEOUT_SECONDS if timeout is None else timeout
        self.display_zone = DisplayZone.UTC
        self._form_factory = form_factory
        self._selected_id: str | None = None
        self._subscribers: list[Callable[["TimerController"], None]] = []

    # ---------------------------- Observers ---------------------------- #
    def subscribe(self, callback: Callable[["TimerController"], None]) -> Callable[[], None]:
        self._subscribers.append(callback)
        return lambda: self._subscribers.remove(callback)

    def _notify(self) -> None:
        for callback in list(self._subscribers):
            callback(self)

    # ----------------------------- Selection --------------------------- #
    @property
    def events(self) -> list[TimerRecord]:
        return self.store.fetch_events()

    @property
    def selected(self) -> TimerRecord | None:
        return self.store.get(self._selected_id)

    def select(self, record_id: str | None) -> None:
        if record_id is not None and self.store.get(record_id) is None:
            record_id = None
        if record_id != self._selected_id:
            self._selected_id = record_id
            self._notify()

    def set_display_zone(self, zone: DisplayZone) -> None:
        self.display_zone = zone
        self._notify()

    def refresh(self) -> None:
        self._notify()

    # ------------------------------- Form ------------------------------ #
    def open_form(self, edit_selected: bool = False) -> EventForm:
        editing = self.selected if edit_selected else None
        return self._form_factory(self.store, editing=editing, display_zone=self.display_zone)

    def commit(self, form: EventForm) -> OperationResult:
        """Submit ``form`` and select the saved timer.

        A timer that already has a calendar reminder comes back with
        ``needs_sync`` set; pass it to ``sync_calendar`` to move the reminder.
        """
        record = form.submit()
        if record is None:
            return OperationResult(False, form.alert or "Fix the highlighted fields first.")
        self._selected_id = record.id
        self._notify()
        return OperationResult(
            True, "Timer saved.", record=record,
            needs_sync=record.calendar_event_id is not None,
        )

    async def sync_calendar(self, record: TimerRecord) -> OperationResult:
        if record.calendar_event_id is None:
            return OperationResult(True, "Not in the calendar.")
        return await self._push_reminder(record)

    async def delete_selected(self) -> OperationResult:
        record = self.selected
        if record is None:
            return OperationResult(False, "No timer selected.")
        message = "Timer deleted."
        if record.calendar_event_id is not None:
            removed = await self._remove_reminder(record)
            if not removed.ok:
                message = f"Timer deleted, but {removed.message}"
        try:
            self.store.delete_event(record)
        except PersistenceError as e:
            logger.error("Delete failed: %s", e)
            return OperationResult(False, f"Could not delete the timer: {e}")
        self._selected_id = None
        self._notify()
        return OperationResult(True, message)

    # ----------------------------- Calendar ---------------------------- #
    async def add_selected_to_calendar(self) -> OperationResult:
        record = self.selected
        if record is None:
            return OperationResult(False, "No timer selected.")
        if record.calendar_event_id is not None:
            return await self._push_reminder(record)
        try:
            await self._ensure_access()
            r = reminder_for(record)
            event_id = await self._with_timeout(
                self.calendar.add_reminder(r.title, r.start, r.end, r.notes)
            )
        except (CalendarAccessDeniedError, CalendarOperationError) as e:
            logger.error("Failed to add timer %s to calendar: %s", record.id, e)
            return OperationResult(False, f"Failed to add event to calendar: {e}")
        try:
            self.store.set_calendar_event_id(record, event_id)
        except PersistenceError as e:
            return OperationResult(False, f"Failed to add event to calendar: {e}")
        self._notify()
        return OperationResult(True, "Added to calendar.")

    async def remove_selected_from_calendar(self) -> OperationResult:
        record = self.selected
        if record is None:
            return OperationResult(False, "No timer selected.")
        if record.calendar_event_id is None:
            return OperationResult(False, "This timer is not in the calendar.")
        result = await self._remove_reminder(record)
        self._notify()
        return result

    async def _remove_reminder(self, record: TimerRecord) -> OperationResult:
        try:
            await self._ensure_access()
            await self._with_timeout(self.calendar.delete_reminder(record.calendar_event_id))
        except (CalendarAccessDeniedError, CalendarOperationError) as e:
            logger.error("Failed to remove reminder for timer %s: %s", record.id, e)
            return OperationResult(False, f"the calendar reminder could not be removed: {e}")
        try:
            self.store.set_calendar_event_id(record, None)
        except PersistenceError as e:
            return OperationResult(False, f"the calendar link could not be cleared: {e}")
        return OperationResult(True, "Removed from calendar.")

    async def _push_reminder(self, record: TimerRecord) -> OperationResult:
        r = reminder_for(record)
        try:
            await self._ensure_access()
            await self._with_timeout(
                self.calendar.update_reminder(record.calendar_event_id, r.title, r.start, r.end, r.notes)
            )
        except (CalendarAccessDeniedError, CalendarOperationError) as e:
            logger.error("Failed to update reminder for timer %s: %s", record.id, e)
            return OperationResult(False, f"the calendar reminder could not be updated: {e}")
        return OperationResult(True, "Calendar reminder updated.")

    async def _ensure_access(self) -> None:
        granted = await self._with_timeout(self.calendar.request_access())
        if not granted:
            raise CalendarAccessDeniedError("Calendar access was denied.")

    async def _with_timeout(self, awaitable):
        try:
            return await asyncio.wait_for(awaitable, self.timeout)
        except asyncio.TimeoutError as e:
            raise CalendarOperationError("The calendar did not answer in time.") from e
