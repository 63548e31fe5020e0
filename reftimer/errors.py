"""Error taxonomy for the timer tracker.

Input errors subclass ValueError so callers that already catch bad user input
as ValueError keep working.
"""
from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    INVALID_DURATION = "invalid_duration"
    INVALID_START_TIME = "invalid_start_time"
    INVALID_SYSTEM_NAME = "invalid_system_name"
    INVALID_LOCATION = "invalid_location"
    PERSISTENCE_FAILURE = "persistence_failure"
    CALENDAR_ACCESS_DENIED = "calendar_access_denied"
    CALENDAR_OPERATION_FAILURE = "calendar_operation_failure"


class TimerError(Exception):
    kind: ErrorKind

    def __init__(self, message: str, kind: ErrorKind | None = None) -> None:
        super().__init__(message)
        if kind is not None:
            self.kind = kind


# ----------------------------- Field input ----------------------------- #
class TimerInputError(TimerError, ValueError):
    """Bad text in one of the form fields."""


class InvalidDurationError(TimerInputError):
    kind = ErrorKind.INVALID_DURATION


class InvalidStartTimeError(TimerInputError):
    kind = ErrorKind.INVALID_START_TIME


class InvalidSystemNameError(TimerInputError):
    kind = ErrorKind.INVALID_SYSTEM_NAME


class InvalidLocationError(TimerInputError):
    kind = ErrorKind.INVALID_LOCATION


# --------------------------- Collaborators ----------------------------- #
class PersistenceError(TimerError):
    kind = ErrorKind.PERSISTENCE_FAILURE


class CalendarAccessDeniedError(TimerError):
    kind = ErrorKind.CALENDAR_ACCESS_DENIED


class CalendarOperationError(TimerError):
    kind = ErrorKind.CALENDAR_OPERATION_FAILURE
