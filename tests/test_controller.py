from __future__ import annotations

import asyncio
from datetime import datetime, timezone

from reftimer.calendar_bridge import CalendarBridge, GoogleCalendarBridge
from reftimer.controller import TimerController
from reftimer.errors import CalendarOperationError
from reftimer.form import EventForm
from reftimer.timecalc import DisplayZone

UTC = timezone.utc
T0 = datetime(2025, 1, 1, 0, 0, tzinfo=UTC)


class RecordingBridge(CalendarBridge):
    name = "test"

    def __init__(self, granted: bool = True, fail: bool = False, delay: float = 0) -> None:
        self.granted = granted
        self.fail = fail
        self.delay = delay
        self.calls = []

    async def request_access(self) -> bool:
        return self.granted

    async def add_reminder(self, title, start, end, notes) -> str:
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise CalendarOperationError("calendar exploded")
        self.calls.append(("add", title, start))
        return f"evt-{len(self.calls)}"

    async def update_reminder(self, identifier, title, start, end, notes) -> None:
        if self.fail:
            raise CalendarOperationError("calendar exploded")
        self.calls.append(("update", identifier, start))

    async def delete_reminder(self, identifier) -> None:
        if self.fail:
            raise CalendarOperationError("calendar exploded")
        self.calls.append(("delete", identifier))


def make_controller(store, clock, bridge=None, **kw) -> TimerController:
    def form_factory(store, editing=None, display_zone=DisplayZone.UTC):
        return EventForm(store, editing=editing, clock=clock, tz=UTC, display_zone=display_zone)

    return TimerController(store, bridge or RecordingBridge(), form_factory=form_factory, **kw)


def test_selection_notifies_subscribers(store, clock) -> None:
    r = store.add_event("Jita", "4", T0, 60, False)
    controller = make_controller(store, clock)
    seen = []
    controller.subscribe(lambda c: seen.append(c.selected))

    controller.select(r.id)
    controller.select(r.id)
    assert seen == [r]
    controller.select("no-such-id")
    assert controller.selected is None
    assert seen == [r, None]


def test_commit_selects_saved_timer(store, clock) -> None:
    controller = make_controller(store, clock)
    form = controller.open_form()
    form.system_name = "Jita"
    form.location = "4"
    form.offset = "1:00:00"
    result = controller.commit(form)
    assert result.ok
    assert result.needs_sync is False
    assert controller.selected is result.record


def test_commit_invalid_form_reports(store, clock) -> None:
    controller = make_controller(store, clock)
    result = controller.commit(controller.open_form())
    assert not result.ok
    assert len(store) == 0


def test_edit_selected_updates_that_timer(store, clock) -> None:
    jita = store.add_event("Jita", "4", T0, 60, False)
    amarr = store.add_event("Amarr", "8", T0, 120, False)
    controller = make_controller(store, clock)
    controller.select(amarr.id)
    form = controller.open_form(edit_selected=True)
    assert form.editing is amarr
    form.system_name = "Jita"
    form.location = "4"
    assert controller.commit(form).ok
    assert len(store) == 2
    assert jita.system_name == "Jita" and jita.due_date == T0.replace(minute=1)


def test_add_selected_to_calendar_links_record(store, clock) -> None:
    r = store.add_event("Jita", "4", T0, 60, True)
    bridge = RecordingBridge()
    controller = make_controller(store, clock, bridge)
    controller.select(r.id)

    result = asyncio.run(controller.add_selected_to_calendar())
    assert result.ok
    assert r.calendar_event_id == "evt-1"
    assert bridge.calls[0][1] == "Defence timer: Jita - 4"
    assert bridge.calls[0][2] == r.due_date

    # Adding again moves the existing reminder instead of making another.
    assert asyncio.run(controller.add_selected_to_calendar()).ok
    assert bridge.calls[1][0] == "update"


def test_saving_linked_timer_asks_for_sync(store, clock) -> None:
    r = store.add_event("Jita", "4", T0, 60, False)
    bridge = RecordingBridge()
    controller = make_controller(store, clock, bridge)
    controller.select(r.id)
    asyncio.run(controller.add_selected_to_calendar())

    form = controller.open_form(edit_selected=True)
    form.offset = "0:02:00"
    result = controller.commit(form)
    assert result.needs_sync
    assert asyncio.run(controller.sync_calendar(result.record)).ok
    assert bridge.calls[-1] == ("update", "evt-1", r.due_date)
    assert r.calendar_event_id == "evt-1"


def test_calendar_access_denied(store, clock) -> None:
    r = store.add_event("Jita", "4", T0, 60, False)
    controller = make_controller(store, clock, RecordingBridge(granted=False))
    controller.select(r.id)
    result = asyncio.run(controller.add_selected_to_calendar())
    assert not result.ok
    assert "denied" in result.message
    assert r.calendar_event_id is None


def test_calendar_failure_and_timeout_are_reported(store, clock) -> None:
    r = store.add_event("Jita", "4", T0, 60, False)
    controller = make_controller(store, clock, RecordingBridge(fail=True))
    controller.select(r.id)
    result = asyncio.run(controller.add_selected_to_calendar())
    assert not result.ok
    assert "calendar exploded" in result.message

    slow = make_controller(store, clock, RecordingBridge(delay=1), timeout=0.01)
    slow.select(r.id)
    result = asyncio.run(slow.add_selected_to_calendar())
    assert not result.ok
    assert "in time" in result.message
    assert r.calendar_event_id is None


def test_remove_from_calendar_clears_link(store, clock) -> None:
    r = store.add_event("Jita", "4", T0, 60, False)
    bridge = RecordingBridge()
    controller = make_controller(store, clock, bridge)
    controller.select(r.id)
    asyncio.run(controller.add_selected_to_calendar())

    assert asyncio.run(controller.remove_selected_from_calendar()).ok
    assert r.calendar_event_id is None
    assert bridge.calls[-1] == ("delete", "evt-1")
    assert not asyncio.run(controller.remove_selected_from_calendar()).ok


def test_failed_calendar_delete_keeps_link(store, clock) -> None:
    r = store.add_event("Jita", "4", T0, 60, False)
    bridge = RecordingBridge()
    controller = make_controller(store, clock, bridge)
    controller.select(r.id)
    asyncio.run(controller.add_selected_to_calendar())
    bridge.fail = True
    assert not asyncio.run(controller.remove_selected_from_calendar()).ok
    assert r.calendar_event_id == "evt-1"


def test_delete_selected_removes_reminder_and_record(store, clock) -> None:
    r = store.add_event("Jita", "4", T0, 60, False)
    bridge = RecordingBridge()
    controller = make_controller(store, clock, bridge)
    controller.select(r.id)
    asyncio.run(controller.add_selected_to_calendar())

    result = asyncio.run(controller.delete_selected())
    assert result.ok
    assert controller.selected is None
    assert len(store) == 0
    assert ("delete", "evt-1") in bridge.calls
    assert not asyncio.run(controller.delete_selected()).ok


class OfflineRequest:
    def execute(self):
        raise ConnectionError("network unreachable")


class OfflineEvents:
    def insert(self, calendarId, body):
        return OfflineRequest()


class OfflineService:
    def events(self):
        return OfflineEvents()


def test_lost_network_is_reported_not_raised(store, clock) -> None:
    r = store.add_event("Jita", "4", T0, 60, False)
    bridge = GoogleCalendarBridge(service_factory=OfflineService)
    controller = make_controller(store, clock, bridge)
    controller.select(r.id)

    result = asyncio.run(controller.add_selected_to_calendar())
    assert result.ok is False
    assert "network unreachable" in result.message
    assert r.calendar_event_id is None
