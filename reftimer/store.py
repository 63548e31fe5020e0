"""Timer persistence.

``EventStore`` keeps records in memory; ``PickleEventStore`` also writes them
to disk after every change. A change whose write fails is rolled back and
reported as PersistenceError so the caller can show it and let the user retry.

Calendar calls run on worker threads and write back through the same store,
so every read and change holds the store lock.
"""
from __future__ import annotations

import logging
import os
import pickle
import threading
from datetime import datetime
from pathlib import Path
from typing import Callable

from .errors import PersistenceError
from .model import TimerPatch, TimerRecord

logger = logging.getLogger(__name__)

STORE_VERSION = 1


def _restore(record: TimerRecord, snapshot: dict) -> None:
    for name, value in snapshot.items():
        setattr(record, name, value)


class EventStore:
    def __init__(self, records: list[TimerRecord] | None = None) -> None:
        self._lock = threading.RLock()
        self._records: dict[str, TimerRecord] = {}
        for r in records or []:
            self._records[r.id] = r

    # ------------------------------ Queries ---------------------------- #
    def fetch_events(self) -> list[TimerRecord]:
        """All records, soonest due first."""
        with self._lock:
            return sorted(self._records.values(), key=lambda r: r.due_date)

    def get(self, record_id: str | None) -> TimerRecord | None:
        if record_id is None:
            return None
        with self._lock:
            return self._records.get(record_id)

    def find_event(self, system_name: str, location: str) -> TimerRecord | None:
        for r in self.fetch_events():
            if r.natural_key == (system_name, location):
                return r
        return None

    def __len__(self) -> int:
        return len(self._records)

    # ----------------------------- Mutations --------------------------- #
    def add_event(
        self,
        system_name: str,
        location: str,
        created_date: datetime,
        offset_seconds: int,
        is_defence: bool,
    ) -> TimerRecord:
        record = TimerRecord.create(
            system_name, location, offset_seconds, is_defence, created_date=created_date
        )
        with self._lock:
            self._records[record.id] = record
            self._commit(lambda: self._records.pop(record.id, None))
        logger.info("Added timer %s (%s / %s)", record.id, system_name, location)
        return record

    def update_event(self, record: TimerRecord, patch: TimerPatch) -> TimerRecord:
        with self._lock:
            if record.id not in self._records:
                raise PersistenceError(f"Timer {record.id} is not in the store")
            snapshot = record.to_dict()
            patch.apply(record)
            self._commit(lambda: _restore(record, snapshot))
        logger.info("Updated timer %s", record.id)
        return record

    def delete_event(self, record: TimerRecord) -> None:
        with self._lock:
            removed = self._records.pop(record.id, None)
            if removed is None:
                logger.warning("Delete of unknown timer %s ignored", record.id)
                return
            self._commit(lambda: self._records.__setitem__(removed.id, removed))
        logger.info("Deleted timer %s", record.id)

    def set_calendar_event_id(self, record: TimerRecord, event_id: str | None) -> None:
        """The only place a record's calendar link changes."""
        with self._lock:
            previous = record.calendar_event_id
            record.calendar_event_id = event_id
            self._commit(lambda: setattr(record, "calendar_event_id", previous))

    # ----------------------------- Durability -------------------------- #
    def save(self) -> None:
        """Make the current state durable. Nothing to do in memory."""

    def _commit(self, rollback: Callable[[], object]) -> None:
        with self._lock:
            try:
                self.save()
            except PersistenceError:
                rollback()
                raise


class PickleEventStore(EventStore):
    """Store backed by a pickle file, rewritten atomically on each change."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        super().__init__(self._load())

    def _load(self) -> list[TimerRecord]:
        if not self.path.exists():
            logger.info("No timer store at %s yet, starting empty", self.path)
            return []
        try:
            payload = pickle.loads(self.path.read_bytes())
            records = [TimerRecord.from_dict(d) for d in payload["timers"]]
        except Exception as e:
            logger.exception("Timer store %s unreadable", self.path)
            raise PersistenceError(f"Could not read timers from {self.path}: {e}") from e
        logger.info("Loaded %d timer(s) from %s", len(records), self.path)
        return records

    def save(self) -> None:
        with self._lock:
            payload = {
                "version": STORE_VERSION,
                "timers": [r.to_dict() for r in self._records.values()],
            }
            tmp = self.path.with_name(self.path.name + ".tmp")
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                tmp.write_bytes(pickle.dumps(payload))
                os.replace(tmp, self.path)
            except (OSError, pickle.PicklingError) as e:
                logger.error("Save failed: %s", e)
                raise PersistenceError(f"Could not save timers: {e}") from e
