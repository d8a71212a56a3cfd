"""API router for live tool-call activity."""
from __future__ import annotations

from fastapi import APIRouter, HTTPException, Query

from agent_pulse import config
from agent_pulse.ingest.timeseries import derive_time_series_activity
from agent_pulse.ingest.tool_calls import derive_tool_calls
from agent_pulse.models import TimeSeriesPayload, ToolCallSummaryResult
from agent_pulse.storage.paths import PathGuardError
from agent_pulse.storage.record_store import FileRecordStore

activity_router = APIRouter(prefix="/api/activity", tags=["activity"])


def get_store() -> FileRecordStore:
    return FileRecordStore(config.STORAGE_ROOT)


@activity_router.get("/timeseries", response_model=TimeSeriesPayload)
def get_timeseries(
    session_id: str | None = Query(None, alias="sessionId", description="Main session id"),
    window_ms: int | None = Query(None, alias="windowMs", description="Window length in ms"),
    bucket_ms: int | None = Query(None, alias="bucketMs", description="Bucket length in ms"),
    now_ms: int | None = Query(None, alias="nowMs", description="Override for the current time in ms"),
):
    """Tool-call volume per bucket for a main session and its background children."""
    if (window_ms is not None and window_ms <= 0) or (bucket_ms is not None and bucket_ms <= 0):
        raise HTTPException(status_code=400, detail="windowMs and bucketMs must be positive")
    return derive_time_series_activity(
        get_store(),
        session_id or None,
        now_ms=now_ms,
        window_ms=window_ms,
        bucket_ms=bucket_ms,
    )


@activity_router.get(
    "/tool-calls",
    response_model=ToolCallSummaryResult,
    response_model_exclude_unset=True,
)
def get_tool_calls(
    session_id: str | None = Query(None, alias="sessionId", description="Session id"),
):
    """Most recent tool calls of a session, newest first."""
    if not session_id:
        raise HTTPException(status_code=400, detail="sessionId is required")
    try:
        return derive_tool_calls(get_store(), session_id, allowed_roots=config.ALLOWED_ROOTS)
    except PathGuardError as e:
        raise HTTPException(status_code=403, detail=str(e))
