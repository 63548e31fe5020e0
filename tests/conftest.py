from __future__ import annotations

from datetime import datetime, timezone

import pytest

from reftimer.store import EventStore

FIXED_NOW = datetime(2025, 1, 1, 0, 0, 42, tzinfo=timezone.utc)


@pytest.fixture
def clock():
    return lambda: FIXED_NOW


@pytest.fixture
def store() -> EventStore:
    return EventStore()
