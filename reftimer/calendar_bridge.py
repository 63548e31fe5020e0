"""Reminders in an external calendar.

Bridges are async: access prompts and API calls can take a while and must
not hold up the form. Failures raise CalendarAccessDeniedError or
CalendarOperationError; callers turn those into a message for the user.

Google backend requires:
  pip install --upgrade google-api-python-client google-auth-httplib2 google-auth-oauthlib
"""
from __future__ import annotations

import asyncio
import logging
import pickle
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable

import httplib2
from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request
from google_auth_oauthlib.flow import InstalledAppFlow
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from . import config
from .errors import CalendarAccessDeniedError, CalendarOperationError
from .ics import make_ics_timed
from .model import TimerRecord
from .timecalc import format_for_display

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/calendar.events"]


@dataclass(frozen=True)
class Reminder:
    title: str
    start: datetime
    end: datetime
    notes: str


def reminder_for(record: TimerRecord, length_minutes: int | None = None) -> Reminder:
    """Calendar entry for a timer: starts when the timer runs out."""
    length = config.REMINDER_LENGTH_MIN if length_minutes is None else length_minutes
    kind = "Defence" if record.is_defence else "Offence"
    return Reminder(
        title=f"{kind} timer: {record.system_name} - {record.location}",
        start=record.due_date,
        end=record.due_date + timedelta(minutes=length),
        notes=(
            f"Entered reinforcement at {format_for_display(record.created_date)} (EVE time).\n"
            f"Timer ends at {format_for_display(record.due_date)} (EVE time)."
        ),
    )


class CalendarBridge:
    """Base bridge; also the no-op used when calendar sync is switched off."""

    name = "none"

    async def request_access(self) -> bool:
        return False

    async def add_reminder(self, title: str, start: datetime, end: datetime, notes: str) -> str:
        raise CalendarAccessDeniedError("Calendar sync is turned off")

    async def update_reminder(
        self, identifier: str, title: str, start: datetime, end: datetime, notes: str
    ) -> None:
        raise CalendarAccessDeniedError("Calendar sync is turned off")

    async def delete_reminder(self, identifier: str) -> None:
        raise CalendarAccessDeniedError("Calendar sync is turned off")


# ------------------------------ .ics files ----------------------------- #
class IcsCalendarBridge(CalendarBridge):
    """One .ics file per reminder in a folder; open them with any calendar app."""

    name = "ics"

    def __init__(self, directory: Path | str, alarms_min: list[int] | None = None) -> None:
        self.directory = Path(directory)
        self.alarms_min = config.REMINDER_ALARMS_MIN if alarms_min is None else alarms_min

    def path_for(self, identifier: str) -> Path:
        return self.directory / f"{identifier}.ics"

    async def request_access(self) -> bool:
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error("Reminder folder %s not writable: %s", self.directory, e)
            return False
        return True

    def _write(self, identifier: str, title: str, start: datetime, end: datetime, notes: str) -> None:
        ics = make_ics_timed(
            title, start, end, uid=f"{identifier}@eve-reftimer",
            description=notes, alarms_min=self.alarms_min,
        )
        try:
            self.path_for(identifier).write_text(ics, encoding="utf-8", newline="")
        except OSError as e:
            raise CalendarOperationError(f"Could not write reminder: {e}") from e

    async def add_reminder(self, title: str, start: datetime, end: datetime, notes: str) -> str:
        identifier = uuid.uuid4().hex
        self._write(identifier, title, start, end, notes)
        logger.info("Wrote reminder %s", self.path_for(identifier))
        return identifier

    async def update_reminder(
        self, identifier: str, title: str, start: datetime, end: datetime, notes: str
    ) -> None:
        if not self.path_for(identifier).exists():
            logger.error("Reminder %s not found, nothing updated", identifier)
            raise CalendarOperationError(f"Reminder {identifier} not found")
        self._write(identifier, title, start, end, notes)

    async def delete_reminder(self, identifier: str) -> None:
        try:
            self.path_for(identifier).unlink()
        except FileNotFoundError as e:
            logger.error("Reminder %s not found, nothing deleted", identifier)
            raise CalendarOperationError(f"Reminder {identifier} not found") from e
        except OSError as e:
            raise CalendarOperationError(f"Could not delete reminder: {e}") from e


# --------------------------- Google Calendar --------------------------- #
class GoogleCalendarBridge(CalendarBridge):
    name = "google"

    def __init__(
        self,
        cred_path: Path | str = config.CRED_PATH,
        token_path: Path | str = config.TOKEN_PATH,
        calendar_id: str = "primary",
        alarms_min: list[int] | None = None,
        service_factory: Callable[[], Any] | None = None,
    ) -> None:
        self.cred_path = Path(cred_path)
        self.token_path = Path(token_path)
        self.calendar_id = calendar_id
        self.alarms_min = config.REMINDER_ALARMS_MIN if alarms_min is None else alarms_min
        self._service_factory = service_factory or self._build_service
        self._service = None

    def _build_service(self):
        logger.info("[auth] Looking for credentials at: %s", self.cred_path)
        creds = None
        if self.token_path.exists():
            try:
                creds = pickle.loads(self.token_path.read_bytes())
            except Exception as e:
                logger.warning("[auth] token.pickle unreadable, will re-auth: %s", e)

        if not creds or not getattr(creds, "valid", False):
            if creds and getattr(creds, "expired", False) and getattr(creds, "refresh_token", None):
                logger.info("[auth] Refreshing expired token")
                creds.refresh(Request())
            else:
                if not self.cred_path.exists():
                    raise FileNotFoundError(
                        f"credentials.json not found at {self.cred_path}. "
                        "Make sure it's the OAuth *Desktop app* client."
                    )
                logger.info("[auth] Launching OAuth browser flow")
                flow = InstalledAppFlow.from_client_secrets_file(str(self.cred_path), SCOPES)
                creds = flow.run_local_server(port=0)
            self.token_path.parent.mkdir(parents=True, exist_ok=True)
            self.token_path.write_bytes(pickle.dumps(creds))
            logger.info("[auth] Saved token to %s", self.token_path)

        logger.info("[auth] Calendar service ready.")
        return build("calendar", "v3", credentials=creds)

    def _get_service(self):
        if self._service is None:
            self._service = self._service_factory()
        return self._service

    def _event_body(self, title: str, start: datetime, end: datetime, notes: str) -> dict:
        body = {
            "summary": title,
            "description": notes,
            "start": {"dateTime": start.astimezone(timezone.utc).isoformat(), "timeZone": "UTC"},
            "end": {"dateTime": end.astimezone(timezone.utc).isoformat(), "timeZone": "UTC"},
        }
        if self.alarms_min:
            body["reminders"] = {
                "useDefault": False,
                "overrides": [{"method": "popup", "minutes": m} for m in self.alarms_min],
            }
        return body

    async def _execute(self, make_request: Callable[[Any], Any], action: str) -> dict:
        def run():
            return make_request(self._get_service()).execute()

        try:
            return await asyncio.to_thread(run)
        except HttpError as e:
            logger.error("Google Calendar API error while trying to %s: %s", action, e)
            raise CalendarOperationError(f"Google Calendar API error: {e}") from e
        except (GoogleAuthError, FileNotFoundError) as e:
            raise CalendarAccessDeniedError(f"Google Calendar access failed: {e}") from e
        except (OSError, httplib2.HttpLib2Error) as e:
            logger.error("Network error while trying to %s: %s", action, e)
            raise CalendarOperationError(f"Could not reach Google Calendar: {e}") from e

    async def request_access(self) -> bool:
        try:
            await asyncio.to_thread(self._get_service)
        except (GoogleAuthError, OSError, httplib2.HttpLib2Error) as e:
            logger.error("[auth] Google Calendar access not granted: %s", e)
            return False
        return True

    async def add_reminder(self, title: str, start: datetime, end: datetime, notes: str) -> str:
        body = self._event_body(title, start, end, notes)
        created = await self._execute(
            lambda s: s.events().insert(calendarId=self.calendar_id, body=body), "add a reminder"
        )
        logger.info("Event created: %s", created.get("htmlLink", "(no link)"))
        return created["id"]

    async def update_reminder(
        self, identifier: str, title: str, start: datetime, end: datetime, notes: str
    ) -> None:
        body = self._event_body(title, start, end, notes)
        await self._execute(
            lambda s: s.events().patch(calendarId=self.calendar_id, eventId=identifier, body=body),
            "update a reminder",
        )

    async def delete_reminder(self, identifier: str) -> None:
        await self._execute(
            lambda s: s.events().delete(calendarId=self.calendar_id, eventId=identifier),
            "delete a reminder",
        )


def make_bridge(backend: str | None = None) -> CalendarBridge:
    backend = (backend or config.CALENDAR_BACKEND).lower()
    if backend == "google":
        return GoogleCalendarBridge()
    if backend == "ics":
        return IcsCalendarBridge(config.ICS_DIR)
    return CalendarBridge()
