"""Observability helpers."""

from agent_pulse.observability.otel import (
    initialize,
    shutdown,
    start_span,
    record_scan,
    record_path_rejection,
)

__all__ = [
    "initialize",
    "shutdown",
    "start_span",
    "record_scan",
    "record_path_rejection",
]
