"""Recency-bounded scans over message and part collections.

Selection happens on file modification time *before* anything is parsed, so
the work per call is bounded by ``limit`` no matter how much history a
session has accumulated. A message that is logically old but was recently
rewritten can displace a newer one.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Optional

from agent_pulse import config
from agent_pulse.observability import record_scan
from agent_pulse.storage.record_store import MESSAGE_KIND, PART_KIND, RecordStore
from agent_pulse.storage.records import RecordRead, StoredMessage, StoredPart, iter_valid

logger = logging.getLogger("agent_pulse.ingest")


@dataclass
class MessageScan:
    messages: list[StoredMessage] = field(default_factory=list)
    total: int = 0
    dropped: int = 0

    def truncated(self, limit: int) -> bool:
        return self.total > limit


def rank_recent_entries(store: RecordStore, kind: str, collection_id: str, limit: int) -> tuple[list[str], int]:
    """Return up to ``limit`` record ids, newest mtime first, plus the uncapped entry count."""
    entries = store.list_entries(kind, collection_id)
    # Entries arrive name-sorted; the stable sort keeps that order for equal mtimes.
    ranked = sorted(
        entries,
        key=lambda record_id: store.modified_time(kind, collection_id, record_id),
        reverse=True,
    )
    return ranked[: max(0, limit)], len(entries)


def scan_recent_messages(
    store: RecordStore,
    session_id: str,
    limit: Optional[int] = None,
) -> MessageScan:
    """Read the ``limit`` most recently modified valid messages of a session."""
    limit = config.MAX_MESSAGES if limit is None else limit
    if not session_id or not store.has_collection(MESSAGE_KIND, session_id):
        return MessageScan()

    started = time.perf_counter()
    selected, total = rank_recent_entries(store, MESSAGE_KIND, session_id, limit)
    skipped: list[RecordRead] = []
    messages = list(
        iter_valid(
            (store.read_record(MESSAGE_KIND, session_id, record_id) for record_id in selected),
            StoredMessage.from_raw,
            on_skip=skipped.append,
        )
    )
    for read in skipped:
        logger.debug("Skipping message %s in session %s: %s", read.record_id, session_id, read.error or "invalid shape")

    record_scan("message", len(selected), len(skipped), (time.perf_counter() - started) * 1000.0)
    return MessageScan(messages=messages, total=total, dropped=len(skipped))


def order_by_created_desc(messages: list[StoredMessage]) -> list[StoredMessage]:
    """Newest ``time.created`` first; ties and untimed messages fall back to id order."""
    return sorted(messages, key=lambda message: (-message.created_sort_key, message.id))


def read_parts(store: RecordStore, message_id: str) -> list[StoredPart]:
    """Read every valid part of a message, in part file-name order."""
    if not message_id:
        return []
    reads = (
        store.read_record(PART_KIND, message_id, record_id)
        for record_id in store.list_entries(PART_KIND, message_id)
    )
    return list(iter_valid(reads, StoredPart.from_raw))


def read_tool_call_parts(store: RecordStore, message_id: str) -> list[StoredPart]:
    return [part for part in read_parts(store, message_id) if part.is_tool_call]


def count_tool_parts(store: RecordStore, message_id: str) -> int:
    return sum(1 for part in read_parts(store, message_id) if part.is_tool)
