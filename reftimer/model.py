"""Timer records and the value objects used to create and change them."""
from __future__ import annotations

import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta

from .timecalc import compute_due_date, now_utc


def _new_id() -> str:
    return uuid.uuid4().hex


@dataclass
class TimerRecord:
    system_name: str
    location: str
    created_date: datetime
    due_date: datetime
    is_defence: bool = False
    calendar_event_id: str | None = None
    id: str = field(default_factory=_new_id)

    @classmethod
    def create(
        cls,
        system_name: str,
        location: str,
        offset_seconds: int,
        is_defence: bool = False,
        created_date: datetime | None = None,
    ) -> "TimerRecord":
        created = created_date or now_utc()
        return cls(
            system_name=system_name,
            location=location,
            created_date=created,
            due_date=compute_due_date(created, offset_seconds),
            is_defence=is_defence,
        )

    @property
    def natural_key(self) -> tuple[str, str]:
        return (self.system_name, self.location)

    @property
    def offset_seconds(self) -> int:
        return int((self.due_date - self.created_date).total_seconds())

    def remaining(self, now: datetime | None = None) -> timedelta:
        return self.due_date - (now or now_utc())

    def is_past_due(self, now: datetime | None = None) -> bool:
        # Evaluated on every call; a record never remembers being past due.
        return self.due_date < (now or now_utc())

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "TimerRecord":
        return cls(**data)


@dataclass(frozen=True)
class TimerPatch:
    """Partial update. ``None`` leaves the field as it is."""

    system_name: str | None = None
    location: str | None = None
    created_date: datetime | None = None
    offset_seconds: int | None = None
    is_defence: bool | None = None

    def apply(self, record: TimerRecord) -> None:
        offset = record.offset_seconds if self.offset_seconds is None else self.offset_seconds
        if self.system_name is not None:
            record.system_name = self.system_name
        if self.location is not None:
            record.location = self.location
        if self.created_date is not None:
            record.created_date = self.created_date
        if self.is_defence is not None:
            record.is_defence = self.is_defence
        if self.offset_seconds is not None or self.created_date is not None:
            record.due_date = compute_due_date(record.created_date, offset)


@dataclass(frozen=True)
class TimerDraft:
    """What a valid form hands over for saving."""

    system_name: str
    location: str
    created_date: datetime
    offset_seconds: int
    is_defence: bool = False

    @property
    def natural_key(self) -> tuple[str, str]:
        return (self.system_name, self.location)

    def as_patch(self) -> TimerPatch:
        return TimerPatch(
            system_name=self.system_name,
            location=self.location,
            created_date=self.created_date,
            offset_seconds=self.offset_seconds,
            is_defence=self.is_defence,
        )
