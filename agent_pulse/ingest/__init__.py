"""Aggregation over the session store: activity series and tool-call feed."""

from .timeseries import derive_time_series_activity
from .tool_calls import derive_tool_calls

__all__ = ["derive_time_series_activity", "derive_tool_calls"]
