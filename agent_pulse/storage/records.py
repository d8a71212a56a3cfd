"""Validated shapes for records read from the agent session store.

Every field is type-checked on the way in; a raw document that lacks the
fields a shape needs yields ``None`` instead of a half-populated record.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Iterator, Optional, TypeVar

T = TypeVar("T")


def _is_number(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    return isinstance(value, float) and math.isfinite(value)


def _opt_str(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


def _time_field(raw: dict[str, Any], key: str) -> Optional[float]:
    time_block = raw.get("time")
    if not isinstance(time_block, dict):
        return None
    value = time_block.get(key)
    return value if _is_number(value) else None


@dataclass(frozen=True)
class RecordRead:
    """Outcome of reading one record: a JSON object or an error message."""

    record_id: str
    value: Optional[dict[str, Any]] = None
    error: str = ""

    @property
    def ok(self) -> bool:
        return self.value is not None and not self.error

    @classmethod
    def success(cls, record_id: str, value: dict[str, Any]) -> "RecordRead":
        return cls(record_id=record_id, value=value)

    @classmethod
    def failure(cls, record_id: str, error: str) -> "RecordRead":
        return cls(record_id=record_id, error=error or "unreadable record")


@dataclass(frozen=True)
class StoredSession:
    id: str
    parent_id: Optional[str] = None
    created: Optional[float] = None
    updated: Optional[float] = None

    @classmethod
    def from_raw(cls, raw: dict[str, Any]) -> Optional["StoredSession"]:
        session_id = raw.get("id")
        if not isinstance(session_id, str):
            return None
        return cls(
            id=session_id,
            parent_id=_opt_str(raw.get("parentID")),
            created=_time_field(raw, "created"),
            updated=_time_field(raw, "updated"),
        )


@dataclass(frozen=True)
class StoredMessage:
    id: str
    session_id: Optional[str] = None
    agent: Optional[str] = None
    created: Optional[float] = None

    @classmethod
    def from_raw(cls, raw: dict[str, Any]) -> Optional["StoredMessage"]:
        message_id = raw.get("id")
        if not isinstance(message_id, str):
            return None
        return cls(
            id=message_id,
            session_id=_opt_str(raw.get("sessionID")),
            agent=_opt_str(raw.get("agent")),
            created=_time_field(raw, "created"),
        )

    @property
    def created_sort_key(self) -> float:
        return self.created if self.created is not None else float("-inf")


@dataclass(frozen=True)
class StoredPart:
    id: str
    type: Optional[str] = None
    call_id: Optional[str] = None
    tool: Optional[str] = None
    state: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_raw(cls, raw: dict[str, Any], record_id: str = "") -> Optional["StoredPart"]:
        if not isinstance(raw, dict):
            return None
        state = raw.get("state")
        return cls(
            id=_opt_str(raw.get("id")) or record_id,
            type=_opt_str(raw.get("type")),
            call_id=_opt_str(raw.get("callID")),
            tool=_opt_str(raw.get("tool")),
            state=state if isinstance(state, dict) else {},
        )

    @property
    def is_tool(self) -> bool:
        return self.type == "tool"

    @property
    def is_tool_call(self) -> bool:
        return self.is_tool and self.call_id is not None and self.tool is not None


def iter_valid(
    reads: Iterable[RecordRead],
    parser: Callable[[dict[str, Any]], Optional[T]],
    on_skip: Optional[Callable[[RecordRead], None]] = None,
) -> Iterator[T]:
    """Yield parsed records, skipping failed reads and shapes that don't validate."""
    for read in reads:
        parsed = parser(read.value) if read.ok and read.value is not None else None
        if parsed is None:
            if on_skip is not None:
                on_skip(read)
            continue
        yield parsed
