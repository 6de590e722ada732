"""Detailed folder monitor reporting sizes and line counts of changed files."""

import dataclasses
from pathlib import Path
from typing import List, Optional

from .config import WatcherConfig
from .diff import DiffEngine
from .messages import format_detailed, timestamp
from .snapshotter import TreeSnapshotter


class FolderMonitor:
    """
    Tracks regular files under a root and describes how they changed.

    Unlike ``WatchSession`` it makes no backups and returns its messages
    directly from each check.
    """

    def __init__(self, root: Path, config: Optional[WatcherConfig] = None):
        self.root = Path(root).absolute()
        self.config = dataclasses.replace(config or WatcherConfig(), include_directories=False)
        self._snapshotter = TreeSnapshotter(self.root, self.config)
        self._engine = DiffEngine(self._snapshotter.take())

    def check_changes_detailed(self) -> List[str]:
        """
        Check for new, modified and deleted files.

        Returns:
            One message per change, sharing one timestamp; empty if
            nothing changed
        """
        ts = timestamp(fmt=self.config.timestamp_format)
        changes = self._engine.compare(self._snapshotter.take())
        return [format_detailed(change, ts) for change in changes]

    def check_change(self) -> bool:
        """Return True if anything changed since the last check."""
        return bool(self.check_changes_detailed())

    def initial_snapshot(self) -> List[str]:
        """List every file currently under the root with its size and lines."""
        lines = [f"=== Initial folder snapshot: {self.root} ==="]
        snapshot = self._snapshotter.take()
        for path, entry in snapshot.files().items():
            if path in snapshot.unreadable:
                lines.append(f"Could not read file: {path}")
            else:
                lines.append(f"File: {path} | Size: {entry.size} bytes | Lines: {entry.line_count}")
        for warning in snapshot.warnings:
            if warning.startswith("unreadable root") or warning.startswith("unlistable"):
                lines.append(f"Error reading folder: {warning}")
        lines.append("=== End of snapshot ===")
        return lines
