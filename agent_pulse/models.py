"""Pydantic models matching the dashboard TypeScript payload types."""
from __future__ import annotations
from pydantic import BaseModel, Field
from typing import Any, Literal, Optional

# ── Time series models ──────────────────────────────────────────────

TimeSeriesTone = Literal["muted", "teal", "red", "green"]


class TimeSeriesSeries(BaseModel):
    id: str
    label: str
    tone: TimeSeriesTone = "muted"
    values: list[int] = Field(default_factory=list)


class TimeSeriesPayload(BaseModel):
    windowMs: int
    bucketMs: int
    buckets: int
    anchorMs: int
    serverNowMs: int | float
    series: list[TimeSeriesSeries] = Field(default_factory=list)

    def get_series(self, series_id: str) -> Optional[TimeSeriesSeries]:
        for series in self.series:
            if series.id == series_id:
                return series
        return None


# ── Tool call feed models ───────────────────────────────────────────

ToolCallStatus = Literal["pending", "running", "completed", "error", "unknown"]


class ToolCallSummary(BaseModel):
    sessionId: str
    messageId: str
    callId: str
    tool: str
    status: ToolCallStatus = "unknown"
    createdAtMs: Optional[int | float] = None
    # Only set when the stored state carries them; serialized with exclude_unset.
    output: Any = None
    error: Any = None


class ToolCallSummaryResult(BaseModel):
    toolCalls: list[ToolCallSummary] = Field(default_factory=list)
    truncated: bool = False
