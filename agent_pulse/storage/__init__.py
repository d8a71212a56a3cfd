"""Record store access and path containment."""

from .paths import PathGuardError, assert_allowed_path
from .record_store import (
    MESSAGE_KIND,
    PART_KIND,
    SESSION_KIND,
    FileRecordStore,
    RecordStore,
)
from .records import RecordRead, StoredMessage, StoredPart, StoredSession, iter_valid

__all__ = [
    "FileRecordStore",
    "MESSAGE_KIND",
    "PART_KIND",
    "PathGuardError",
    "RecordRead",
    "RecordStore",
    "SESSION_KIND",
    "StoredMessage",
    "StoredPart",
    "StoredSession",
    "assert_allowed_path",
    "iter_valid",
]
