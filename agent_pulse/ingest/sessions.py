"""Session discovery: reading session records and resolving background children."""
from __future__ import annotations

import logging
from typing import Optional

from agent_pulse import config
from agent_pulse.storage.record_store import SESSION_KIND, RecordStore
from agent_pulse.storage.records import StoredSession, iter_valid

logger = logging.getLogger("agent_pulse.ingest")


def read_all_sessions(store: RecordStore) -> list[StoredSession]:
    """Read every valid session record, across project collections and the kind root."""
    sessions: list[StoredSession] = []
    seen: set[str] = set()
    for collection_id in ["", *store.list_collections(SESSION_KIND)]:
        reads = (
            store.read_record(SESSION_KIND, collection_id, record_id)
            for record_id in store.list_entries(SESSION_KIND, collection_id)
        )
        for session in iter_valid(reads, StoredSession.from_raw):
            if session.id in seen:
                continue
            seen.add(session.id)
            sessions.append(session)
    return sessions


def resolve_child_sessions(
    store: RecordStore,
    main_session_id: str,
    limit: Optional[int] = None,
) -> list[str]:
    """Return ids of the most recently updated sessions whose parent is ``main_session_id``.

    Ordered by ``time.updated`` descending (missing counts as 0), then id ascending.
    """
    limit = config.MAX_CHILD_SESSIONS if limit is None else limit
    if not main_session_id:
        return []
    children = [session for session in read_all_sessions(store) if session.parent_id == main_session_id]
    children.sort(key=lambda session: (-(session.updated or 0), session.id))
    child_ids = [session.id for session in children[: max(0, limit)]]
    if len(children) > len(child_ids):
        logger.debug(
            "Capped child sessions of %s at %d (found %d)",
            main_session_id,
            len(child_ids),
            len(children),
        )
    return child_ids
