"""Fixed-window tool-call activity series for the live dashboard."""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Iterator, Optional

from agent_pulse import config
from agent_pulse.agent_identity import (
    NAMED_AGENTS,
    SERIES_ORDER,
    CanonicalAgent,
    agent_series_id,
    canonicalize_agent,
)
from agent_pulse.ingest.scanner import count_tool_parts, order_by_created_desc, scan_recent_messages
from agent_pulse.ingest.sessions import resolve_child_sessions
from agent_pulse.models import TimeSeriesPayload, TimeSeriesSeries
from agent_pulse.observability import start_span
from agent_pulse.storage.record_store import RecordStore

logger = logging.getLogger("agent_pulse.ingest")

OVERALL_SERIES_ID = "overall-main"
BACKGROUND_SERIES_ID = "background-total"


@dataclass(frozen=True)
class BucketWindow:
    window_ms: int
    bucket_ms: int
    buckets: int
    anchor_ms: int
    start_ms: int

    @classmethod
    def at(cls, now_ms: float, window_ms: int, bucket_ms: int) -> "BucketWindow":
        if bucket_ms <= 0 or window_ms <= 0:
            raise ValueError("window_ms and bucket_ms must be positive")
        # Snapping to a bucket edge keeps bucket boundaries stable across polls.
        anchor_ms = int(now_ms // bucket_ms) * bucket_ms
        return cls(
            window_ms=window_ms,
            bucket_ms=bucket_ms,
            buckets=window_ms // bucket_ms,
            anchor_ms=anchor_ms,
            start_ms=anchor_ms - window_ms,
        )

    def bucket_index(self, created_ms: float) -> int:
        return int((created_ms - self.start_ms) // self.bucket_ms)


@dataclass
class SeriesBuffers:
    """One zero-initialised buffer per series; each is only ever mutated through ``add``."""

    buckets: int
    values: dict[str, list[int]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        for series_id, _label, _tone in SERIES_ORDER:
            self.values[series_id] = [0] * self.buckets

    def add(self, series_id: str, bucket_index: int, count: int) -> None:
        if count <= 0:
            return
        if bucket_index < 0 or bucket_index >= self.buckets:
            return
        self.values[series_id][bucket_index] += count

    def to_series(self) -> list[TimeSeriesSeries]:
        return [
            TimeSeriesSeries(id=series_id, label=label, tone=tone, values=list(self.values[series_id]))
            for series_id, label, tone in SERIES_ORDER
        ]


def iter_bucketed_tool_counts(
    store: RecordStore,
    session_id: str,
    window: BucketWindow,
    max_messages: Optional[int] = None,
) -> Iterator[tuple[int, int, CanonicalAgent]]:
    """Yield ``(bucket_index, tool_count, agent)`` for in-window messages of a session."""
    scan = scan_recent_messages(store, session_id, max_messages)
    for message in order_by_created_desc(scan.messages):
        created = message.created_sort_key
        # Sorted newest first, so everything after this is older still.
        if created < window.start_ms:
            break
        if created >= window.anchor_ms:
            continue
        tool_count = count_tool_parts(store, message.id)
        if tool_count <= 0:
            continue
        yield window.bucket_index(created), tool_count, canonicalize_agent(message.agent)


def _add_agent(buffers: SeriesBuffers, agent: CanonicalAgent, bucket_index: int, count: int) -> None:
    if agent in NAMED_AGENTS:
        buffers.add(agent_series_id(agent), bucket_index, count)


def derive_time_series_activity(
    store: RecordStore,
    main_session_id: Optional[str],
    *,
    now_ms: Optional[float] = None,
    window_ms: Optional[int] = None,
    bucket_ms: Optional[int] = None,
    max_messages: Optional[int] = None,
    max_child_sessions: Optional[int] = None,
    attribute_child_agents: bool = True,
) -> TimeSeriesPayload:
    """Bucket tool-call volume over the trailing window ending at the snapped ``now``.

    Main-session messages feed ``overall-main`` and their agent's series. Messages
    from child (background) sessions feed ``background-total`` and ``overall-main``,
    plus their own agent's series unless ``attribute_child_agents`` is off.
    """
    window_ms = config.WINDOW_MS if window_ms is None else window_ms
    bucket_ms = config.BUCKET_MS if bucket_ms is None else bucket_ms
    now_ms = int(time.time() * 1000) if now_ms is None else now_ms
    window = BucketWindow.at(now_ms, window_ms, bucket_ms)
    buffers = SeriesBuffers(window.buckets)

    if main_session_id:
        with start_span("agent_pulse.timeseries", {"session.id": main_session_id, "buckets": window.buckets}):
            for bucket_index, count, agent in iter_bucketed_tool_counts(store, main_session_id, window, max_messages):
                buffers.add(OVERALL_SERIES_ID, bucket_index, count)
                _add_agent(buffers, agent, bucket_index, count)

            child_ids = resolve_child_sessions(store, main_session_id, max_child_sessions)
            for child_id in child_ids:
                for bucket_index, count, agent in iter_bucketed_tool_counts(store, child_id, window, max_messages):
                    buffers.add(BACKGROUND_SERIES_ID, bucket_index, count)
                    buffers.add(OVERALL_SERIES_ID, bucket_index, count)
                    if attribute_child_agents:
                        _add_agent(buffers, agent, bucket_index, count)
            logger.debug("Bucketed session %s with %d child sessions", main_session_id, len(child_ids))

    return TimeSeriesPayload(
        windowMs=window.window_ms,
        bucketMs=window.bucket_ms,
        buckets=window.buckets,
        anchorMs=window.anchor_ms,
        serverNowMs=now_ms,
        series=buffers.to_series(),
    )
