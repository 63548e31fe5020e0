from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

import httplib2
import pytest
from googleapiclient.errors import HttpError

from reftimer.calendar_bridge import (
    CalendarBridge,
    GoogleCalendarBridge,
    IcsCalendarBridge,
    reminder_for,
)
from reftimer.errors import CalendarAccessDeniedError, CalendarOperationError
from reftimer.model import TimerRecord

UTC = timezone.utc
START = datetime(2025, 1, 2, 2, 30, tzinfo=UTC)
END = START + timedelta(minutes=15)


def test_reminder_for_record() -> None:
    record = TimerRecord.create("Jita", "4", 95400, True, created_date=datetime(2025, 1, 1, tzinfo=UTC))
    r = reminder_for(record, length_minutes=15)
    assert r.title == "Defence timer: Jita - 4"
    assert r.start == START
    assert r.end == END
    assert "02/01/2025 02:30" in r.notes
    assert "01/01/2025 00:00" in r.notes


def test_disabled_bridge_denies() -> None:
    bridge = CalendarBridge()
    assert asyncio.run(bridge.request_access()) is False
    with pytest.raises(CalendarAccessDeniedError):
        asyncio.run(bridge.add_reminder("t", START, END, ""))


def test_ics_bridge_lifecycle(tmp_path) -> None:
    bridge = IcsCalendarBridge(tmp_path / "reminders", alarms_min=[60, 15])
    assert asyncio.run(bridge.request_access()) is True

    identifier = asyncio.run(bridge.add_reminder("Offence timer: Jita - 4", START, END, "notes; here"))
    text = bridge.path_for(identifier).read_text(encoding="utf-8")
    assert "DTSTART:20250102T023000Z" in text
    assert "DTEND:20250102T024500Z" in text
    assert "TRIGGER:-PT60M" in text
    assert "TRIGGER:-PT15M" in text
    assert r"DESCRIPTION:notes\; here" in text
    assert text.endswith("END:VCALENDAR\r\n")

    later = START + timedelta(hours=1)
    asyncio.run(bridge.update_reminder(identifier, "Moved", later, later + timedelta(minutes=15), ""))
    assert "DTSTART:20250102T033000Z" in bridge.path_for(identifier).read_text(encoding="utf-8")

    asyncio.run(bridge.delete_reminder(identifier))
    assert not bridge.path_for(identifier).exists()


def test_ics_bridge_unknown_identifier(tmp_path) -> None:
    bridge = IcsCalendarBridge(tmp_path)
    with pytest.raises(CalendarOperationError):
        asyncio.run(bridge.update_reminder("missing", "t", START, END, ""))
    with pytest.raises(CalendarOperationError):
        asyncio.run(bridge.delete_reminder("missing"))


# --------------------------- Google (faked) ---------------------------- #
class FakeRequest:
    def __init__(self, result=None, error: Exception | None = None) -> None:
        self.result = result
        self.error = error

    def execute(self):
        if self.error is not None:
            raise self.error
        return self.result


class FakeEvents:
    def __init__(self) -> None:
        self.calls = []
        self.error: Exception | None = None

    def insert(self, calendarId, body):
        self.calls.append(("insert", calendarId, body))
        return FakeRequest({"id": "g-123", "htmlLink": "https://calendar.example/g-123"}, self.error)

    def patch(self, calendarId, eventId, body):
        self.calls.append(("patch", calendarId, eventId, body))
        return FakeRequest({"id": eventId}, self.error)

    def delete(self, calendarId, eventId):
        self.calls.append(("delete", calendarId, eventId))
        return FakeRequest("", self.error)


class FakeService:
    def __init__(self) -> None:
        self._events = FakeEvents()

    def events(self):
        return self._events


def make_google(service: FakeService) -> GoogleCalendarBridge:
    return GoogleCalendarBridge(alarms_min=[30], service_factory=lambda: service)


def test_google_add_update_delete() -> None:
    service = FakeService()
    bridge = make_google(service)
    assert asyncio.run(bridge.request_access()) is True

    identifier = asyncio.run(bridge.add_reminder("Offence timer: Jita - 4", START, END, "n"))
    assert identifier == "g-123"
    kind, calendar_id, body = service.events().calls[0]
    assert (kind, calendar_id) == ("insert", "primary")
    assert body["start"]["dateTime"] == "2025-01-02T02:30:00+00:00"
    assert body["reminders"] == {"useDefault": False, "overrides": [{"method": "popup", "minutes": 30}]}

    asyncio.run(bridge.update_reminder(identifier, "t", START, END, "n"))
    asyncio.run(bridge.delete_reminder(identifier))
    assert [c[0] for c in service.events().calls] == ["insert", "patch", "delete"]
    assert service.events().calls[2][2] == "g-123"


def test_google_api_error_becomes_operation_error() -> None:
    service = FakeService()
    service.events().error = HttpError(httplib2.Response({"status": 404}), b"Not Found")
    bridge = make_google(service)
    with pytest.raises(CalendarOperationError):
        asyncio.run(bridge.update_reminder("gone", "t", START, END, ""))


def test_google_missing_credentials_denies_access(tmp_path) -> None:
    bridge = GoogleCalendarBridge(
        cred_path=tmp_path / "credentials.json", token_path=tmp_path / "token.pickle"
    )
    assert asyncio.run(bridge.request_access()) is False


@pytest.mark.parametrize(
    "error",
    [ConnectionError("network unreachable"), TimeoutError("timed out"), httplib2.ServerNotFoundError("no dns")],
)
def test_google_network_error_becomes_operation_error(error: Exception) -> None:
    service = FakeService()
    service.events().error = error
    bridge = make_google(service)
    with pytest.raises(CalendarOperationError, match="Could not reach Google Calendar"):
        asyncio.run(bridge.add_reminder("t", START, END, ""))


def test_google_access_denied_when_service_cannot_connect() -> None:
    def offline():
        raise httplib2.HttpLib2Error("connection refused")

    bridge = GoogleCalendarBridge(service_factory=offline)
    assert asyncio.run(bridge.request_access()) is False
