"""Recent tool-call feed for a single session.

Summaries carry only display-safe fields. Tool inputs (and any prompt they
embed) and the raw ``state`` object are never copied into a summary; only
``state.output`` and ``state.error`` are forwarded.
"""
from __future__ import annotations

import logging
from typing import Any, Iterable, Optional

from agent_pulse import config
from agent_pulse.ingest.scanner import read_tool_call_parts, scan_recent_messages
from agent_pulse.models import ToolCallStatus, ToolCallSummary, ToolCallSummaryResult
from agent_pulse.observability import record_path_rejection, start_span
from agent_pulse.storage.paths import PathGuardError, assert_allowed_path
from agent_pulse.storage.record_store import MESSAGE_KIND, PART_KIND, RecordStore
from agent_pulse.storage.records import StoredMessage, StoredPart

logger = logging.getLogger("agent_pulse.ingest")

_KNOWN_STATUSES: frozenset[str] = frozenset({"pending", "running", "completed", "error"})
_FORWARDED_STATE_FIELDS = ("output", "error")


def read_status(state: dict[str, Any]) -> ToolCallStatus:
    status = state.get("status")
    if isinstance(status, str) and status in _KNOWN_STATUSES:
        return status  # type: ignore[return-value]
    return "unknown"


def _guard(store: RecordStore, kind: str, collection_id: str, allowed_roots: list[str]) -> None:
    if not allowed_roots:
        return
    try:
        assert_allowed_path(store.collection_path(kind, collection_id), allowed_roots)
    except PathGuardError:
        record_path_rejection()
        raise


def build_summary(session_id: str, message: StoredMessage, part: StoredPart) -> ToolCallSummary:
    fields: dict[str, Any] = {
        "sessionId": session_id,
        "messageId": message.id,
        "callId": part.call_id or "",
        "tool": part.tool or "",
        "status": read_status(part.state),
        "createdAtMs": message.created,
    }
    for key in _FORWARDED_STATE_FIELDS:
        if key in part.state:
            fields[key] = part.state[key]
    return ToolCallSummary(**fields)


def _summary_sort_key(summary: ToolCallSummary) -> tuple[float, str, str]:
    created = summary.createdAtMs if summary.createdAtMs is not None else float("-inf")
    return (-created, summary.messageId, summary.callId)


def sort_summaries(summaries: Iterable[ToolCallSummary]) -> list[ToolCallSummary]:
    """Newest first with untimed calls last, then messageId and callId ascending."""
    return sorted(summaries, key=_summary_sort_key)


def derive_tool_calls(
    store: RecordStore,
    session_id: str,
    *,
    allowed_roots: Optional[list[str]] = None,
    max_messages: Optional[int] = None,
    max_tool_calls: Optional[int] = None,
) -> ToolCallSummaryResult:
    """Collect, order and cap the tool calls of a session's most recently modified messages.

    Raises ``PathGuardError`` when ``allowed_roots`` is given and a message or
    part directory resolves outside of it; no partial result is returned.
    """
    max_messages = config.MAX_MESSAGES if max_messages is None else max_messages
    max_tool_calls = config.MAX_TOOL_CALLS if max_tool_calls is None else max_tool_calls
    roots = list(allowed_roots or [])

    with start_span("agent_pulse.tool_calls", {"session.id": session_id}):
        _guard(store, MESSAGE_KIND, session_id, roots)
        scan = scan_recent_messages(store, session_id, max_messages)

        summaries: list[ToolCallSummary] = []
        for message in scan.messages:
            _guard(store, PART_KIND, message.id, roots)
            for part in read_tool_call_parts(store, message.id):
                summaries.append(build_summary(session_id, message, part))

        ordered = sort_summaries(summaries)
        truncated = scan.truncated(max_messages) or len(ordered) > max_tool_calls
        if truncated:
            logger.debug(
                "Tool-call feed for %s truncated (messages=%d calls=%d)",
                session_id,
                scan.total,
                len(ordered),
            )
        return ToolCallSummaryResult(toolCalls=ordered[: max(0, max_tool_calls)], truncated=truncated)
