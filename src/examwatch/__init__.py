"""
Exam Watch Package

Poll-based monitor for a workspace folder that reports created, modified
and deleted entries and keeps backup copies of new files.

Features:
- Full-tree snapshots with size, line count and modification time
- Low-noise snapshot diffs (new, modified, deleted, kind changes)
- New files backed up only once their size has settled
- Position-weighted 32-bit fingerprints for backup names
- Thread-safe notification log for the final report
"""

from .models import (
    FINGERPRINT_SEED,
    ChangeRecord,
    ChangeType,
    DirectoryEntry,
    Entry,
    FileEntry,
    ReadResult,
    compute_fingerprint,
    count_lines,
    fingerprint_bytes,
    fingerprint_stream,
)

from .config import WatcherConfig

from .exceptions import (
    WatcherError,
    BackupError,
    StabilizationError,
    StabilizationCancelled,
    StabilizationTimeout,
)

from .snapshotter import Snapshot, TreeSnapshotter
from .diff import DiffEngine, diff_snapshots
from .stabilizer import Stabilizer
from .backup import BackupStore
from .messages import MessageLog, format_detailed, format_event, format_message
from .session import WatchSession, new_session
from .monitor import FolderMonitor
from .report import render_report, write_report


__all__ = [
    # Models
    "FINGERPRINT_SEED",
    "ChangeRecord",
    "ChangeType",
    "DirectoryEntry",
    "Entry",
    "FileEntry",
    "ReadResult",
    "compute_fingerprint",
    "count_lines",
    "fingerprint_bytes",
    "fingerprint_stream",
    # Config
    "WatcherConfig",
    # Exceptions
    "WatcherError",
    "BackupError",
    "StabilizationError",
    "StabilizationCancelled",
    "StabilizationTimeout",
    # Components
    "Snapshot",
    "TreeSnapshotter",
    "DiffEngine",
    "diff_snapshots",
    "Stabilizer",
    "BackupStore",
    "MessageLog",
    "format_detailed",
    "format_event",
    "format_message",
    # Session
    "WatchSession",
    "new_session",
    "FolderMonitor",
    "render_report",
    "write_report",
]

__version__ = "0.1.0"
