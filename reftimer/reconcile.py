"""Turn a valid form into exactly one stored timer."""
from __future__ import annotations

import logging

from .model import TimerDraft, TimerRecord
from .store import EventStore

logger = logging.getLogger(__name__)


def save_timer(
    store: EventStore,
    draft: TimerDraft,
    editing: TimerRecord | None = None,
) -> TimerRecord:
    """Save ``draft`` and return the stored record.

    An explicit ``editing`` record is always the one updated. Without it, a
    record with the same (system name, location) is updated instead of
    adding a second one. PersistenceError from the store propagates.
    """
    target = editing
    if target is None:
        target = store.find_event(*draft.natural_key)
        if target is not None:
            logger.debug("Timer %s matches %s, updating", target.id, draft.natural_key)

    if target is not None:
        return store.update_event(target, draft.as_patch())

    return store.add_event(
        system_name=draft.system_name,
        location=draft.location,
        created_date=draft.created_date,
        offset_seconds=draft.offset_seconds,
        is_defence=draft.is_defence,
    )
