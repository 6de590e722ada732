"""Notification messages and the in-memory message log."""

import threading
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from .models import ChangeRecord, ChangeType, FileEntry

DEFAULT_TIMESTAMP_FORMAT = "%Y/%m/%d %H:%M:%S"

NEW_FILE = "NEW FILE"
MODIFIED = "MODIFIED"
DELETED_FILE = "DELETED FILE"
FILE_COPIED = "FILE COPIED"
FILE_DELETED = "FILE DELETED"
DIRECTORY_COPIED = "DIRECTORY COPIED"
DIRECTORY_DELETED = "DIRECTORY DELETED"


def timestamp(when: Optional[datetime] = None, fmt: str = DEFAULT_TIMESTAMP_FORMAT) -> str:
    return (when or datetime.now()).strftime(fmt)


def format_message(tag: str, details: str, ts: Optional[str] = None) -> str:
    """Render ``"<timestamp> - <TAG>: <details>"``."""
    return f"{ts or timestamp()} - {tag}: {details}"


def format_file_copied(path: str, fingerprint: int, backup_path: Path, ts: Optional[str] = None) -> str:
    return format_message(FILE_COPIED, f"{path} | Hash: {fingerprint} | Backup: {backup_path}", ts)


def format_detailed(record: ChangeRecord, ts: Optional[str] = None) -> str:
    """
    Render a change record with sizes and line counts.

    Files get NEW FILE / MODIFIED / DELETED FILE messages with their
    size and line figures. Directories only carry their path.
    """
    before, after = record.before, record.after

    if record.change_type == ChangeType.NEW_FILE and isinstance(after, FileEntry):
        return format_message(
            NEW_FILE, f"{record.path} ({after.size} chars, {after.line_count} lines)", ts
        )
    if record.change_type == ChangeType.MODIFIED and isinstance(after, FileEntry) and isinstance(before, FileEntry):
        return format_message(
            MODIFIED,
            f"{record.path} (chars: {record.size_delta:+d} [{before.size}→{after.size}], "
            f"lines: {record.lines_delta:+d} [{before.line_count}→{after.line_count}])",
            ts,
        )
    if record.change_type == ChangeType.DELETED_FILE and isinstance(before, FileEntry):
        return format_message(
            DELETED_FILE, f"{record.path} (was {before.size} chars, {before.line_count} lines)", ts
        )
    return format_event(record, ts)


def format_event(record: ChangeRecord, ts: Optional[str] = None) -> str:
    """Render a change record as a plain path notification."""
    tags = {
        ChangeType.NEW_FILE: NEW_FILE,
        ChangeType.NEW_DIRECTORY: DIRECTORY_COPIED,
        ChangeType.MODIFIED: MODIFIED,
        ChangeType.DELETED_FILE: FILE_DELETED,
        ChangeType.DELETED_DIRECTORY: DIRECTORY_DELETED,
    }
    return format_message(tags[record.change_type], record.path, ts)


class MessageLog:
    """
    Append-only list of messages guarded by a lock.

    The lock can be shared with the owner so other state changes are
    serialized with appends and reads.
    """

    def __init__(self, lock: Optional[threading.Lock] = None):
        self.lock = lock or threading.Lock()
        self._messages: List[str] = []

    def append(self, message: str) -> None:
        with self.lock:
            self._messages.append(message)

    def snapshot(self) -> List[str]:
        """Return a copy of the messages recorded so far."""
        with self.lock:
            return list(self._messages)

    def __len__(self) -> int:
        with self.lock:
            return len(self._messages)
