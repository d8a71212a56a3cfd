"""Read-only access to the file-per-record agent session store.

Layout under the storage root::

    session/<projectID>/<sessionID>.json
    message/<sessionID>/<messageID>.json
    part/<messageID>/<partID>.json
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Protocol

from agent_pulse.storage.records import RecordRead

logger = logging.getLogger("agent_pulse.storage")

SESSION_KIND = "session"
MESSAGE_KIND = "message"
PART_KIND = "part"
RECORD_SUFFIX = ".json"


def _reject_constant(token: str) -> None:
    # NaN and Infinity literals are not JSON; such a record is malformed.
    raise ValueError(f"non-finite constant {token}")


class RecordStore(Protocol):
    def collection_path(self, kind: str, collection_id: str) -> Path: ...

    def has_collection(self, kind: str, collection_id: str) -> bool: ...

    def list_collections(self, kind: str) -> list[str]: ...

    def list_entries(self, kind: str, collection_id: str) -> list[str]: ...

    def read_record(self, kind: str, collection_id: str, record_id: str) -> RecordRead: ...

    def modified_time(self, kind: str, collection_id: str, record_id: str) -> float: ...


class FileRecordStore:
    """Record store backed by one JSON file per record.

    Nothing here raises for a missing collection or an unreadable file:
    absent collections list as empty and bad files come back as failed reads.
    """

    def __init__(self, root: Path | str):
        self.root = Path(root).expanduser()
        # Nested message collections found so far; lives as long as the instance.
        self._nested_collections: dict[str, Path] = {}

    def __repr__(self) -> str:
        return f"FileRecordStore(root={str(self.root)!r})"

    def kind_root(self, kind: str) -> Path:
        return self.root / kind

    def collection_path(self, kind: str, collection_id: str) -> Path:
        """Resolve a collection directory. The path may not exist."""
        base = self.kind_root(kind)
        if not collection_id:
            return base
        direct = base / collection_id
        if direct.is_dir() or kind != MESSAGE_KIND:
            return direct
        cached = self._nested_collections.get(collection_id)
        if cached is not None:
            return cached

        # Some runtimes nest message collections one level deeper.
        try:
            children = sorted(child for child in base.iterdir() if child.is_dir())
        except OSError:
            return direct
        for child in children:
            nested = child / collection_id
            if nested.is_dir():
                self._nested_collections[collection_id] = nested
                return nested
        return direct

    def has_collection(self, kind: str, collection_id: str) -> bool:
        return self.collection_path(kind, collection_id).is_dir()

    def list_collections(self, kind: str) -> list[str]:
        base = self.kind_root(kind)
        try:
            return sorted(child.name for child in base.iterdir() if child.is_dir())
        except OSError:
            return []

    def list_entries(self, kind: str, collection_id: str) -> list[str]:
        directory = self.collection_path(kind, collection_id)
        try:
            names = [
                child.name
                for child in directory.iterdir()
                if child.name.endswith(RECORD_SUFFIX) and child.is_file()
            ]
        except OSError:
            return []
        return sorted(name[: -len(RECORD_SUFFIX)] for name in names)

    def record_path(self, kind: str, collection_id: str, record_id: str) -> Path:
        return self.collection_path(kind, collection_id) / f"{record_id}{RECORD_SUFFIX}"

    def read_record(self, kind: str, collection_id: str, record_id: str) -> RecordRead:
        path = self.record_path(kind, collection_id, record_id)
        try:
            content = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            logger.debug("Unreadable record %s: %s", path, exc)
            return RecordRead.failure(record_id, f"read failed: {exc}")
        try:
            parsed = json.loads(content, parse_constant=_reject_constant)
        except ValueError as exc:
            logger.debug("Malformed record %s: %s", path, exc)
            return RecordRead.failure(record_id, f"invalid json: {exc}")
        if not isinstance(parsed, dict):
            return RecordRead.failure(record_id, "record is not a JSON object")
        return RecordRead.success(record_id, parsed)

    def modified_time(self, kind: str, collection_id: str, record_id: str) -> float:
        """Return the record's mtime in ms, or 0.0 when it cannot be stat'ed."""
        try:
            return self.record_path(kind, collection_id, record_id).stat().st_mtime * 1000.0
        except OSError:
            return 0.0
