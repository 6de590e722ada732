"""Point-in-time snapshots of a directory tree."""

import logging
import os
import stat
from collections.abc import Mapping
from pathlib import Path
from typing import Dict, FrozenSet, Iterable, Iterator, List, Optional, Tuple

from watchdog.utils.dirsnapshot import DirectorySnapshot

from .config import WatcherConfig
from .models import DirectoryEntry, Entry, FileEntry, ReadResult, count_lines

logger = logging.getLogger(__name__)


class Snapshot(Mapping):
    """
    Read-only mapping from absolute path to Entry.

    Attributes:
        root: The directory the snapshot was taken from
        warnings: Problems met during the walk (unlistable directories,
            unreadable file contents)
        unreadable: Paths of files whose contents could not be read
    """

    def __init__(
        self,
        root: Path,
        entries: Optional[Dict[str, Entry]] = None,
        warnings: Tuple[str, ...] = (),
        unreadable: Iterable[str] = (),
    ):
        self.root = root
        self._entries: Dict[str, Entry] = dict(entries or {})
        self.warnings = tuple(warnings)
        self.unreadable: FrozenSet[str] = frozenset(unreadable)

    def __getitem__(self, path: str) -> Entry:
        return self._entries[path]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def paths(self) -> FrozenSet[str]:
        """Return the set of known paths."""
        return frozenset(self._entries)

    def files(self) -> Dict[str, FileEntry]:
        """Return only the regular-file entries."""
        return {p: e for p, e in self._entries.items() if isinstance(e, FileEntry)}

    @classmethod
    def empty(cls, root: Path) -> "Snapshot":
        return cls(root)

    def __repr__(self) -> str:
        return f"Snapshot(root={str(self.root)!r}, entries={len(self._entries)})"


class TreeSnapshotter:
    """
    Walks a root directory and records every entry below it.

    The backup folder, the reserved report filename and any configured
    ignore pattern are left out. Entries that cannot be listed or read
    are logged and skipped, so a snapshot may be partial.
    """

    def __init__(
        self,
        root: Path,
        config: Optional[WatcherConfig] = None,
        with_line_counts: bool = True,
    ):
        """
        Initialize the snapshotter.

        Args:
            root: Directory to walk
            config: Watcher configuration
            with_line_counts: Whether to read each file to count its lines
        """
        self.root = Path(root).absolute()
        self.config = config or WatcherConfig()
        self.with_line_counts = with_line_counts
        self.backup_folder = self.config.backup_folder(self.root)
        self._stat = os.stat if self.config.follow_symlinks else os.lstat

    def is_excluded(self, path: Path) -> bool:
        """Check whether a path is left out of snapshots."""
        path = Path(path)
        if path == self.backup_folder or self.backup_folder in path.parents:
            return True
        return self.config.should_ignore(path)

    def take(self) -> Snapshot:
        """
        Take a snapshot of the tree.

        Returns:
            The snapshot; empty if the root cannot be read
        """
        warnings: List[str] = []
        root = str(self.root)

        def listdir(path):
            try:
                with os.scandir(path) as it:
                    found = list(it)
            except OSError as e:
                logger.warning(f"Could not list directory {path}: {e}")
                warnings.append(f"unlistable: {path}")
                return []
            return [entry for entry in found if not self.is_excluded(Path(entry.path))]

        try:
            dir_snapshot = DirectorySnapshot(
                root, recursive=True, stat=self._stat, listdir=listdir
            )
        except OSError as e:
            logger.warning(f"Error reading folder {root}: {e}")
            return Snapshot(self.root, warnings=(f"unreadable root: {root}: {e}",))

        entries: Dict[str, Entry] = {}
        unreadable: List[str] = []
        for path in sorted(dir_snapshot.paths):
            if path == root:
                continue
            st = dir_snapshot.stat_info(path)
            if stat.S_ISDIR(st.st_mode):
                if self.config.include_directories:
                    entries[path] = DirectoryEntry()
                continue
            if stat.S_ISLNK(st.st_mode):
                # Unfollowed link: tracked by its own lstat, never descended into
                entries[path] = FileEntry(
                    size=st.st_size,
                    line_count=0,
                    mtime=st.st_mtime_ns // 1_000_000,
                )
                continue
            if not stat.S_ISREG(st.st_mode):
                continue

            lines = self._count_lines(path)
            if lines.is_degraded:
                warnings.append(f"unreadable content: {path}: {lines.reason}")
                unreadable.append(path)
            entries[path] = FileEntry(
                size=st.st_size,
                line_count=lines.value,
                mtime=st.st_mtime_ns // 1_000_000,
            )

        logger.debug(f"Snapshot of {root}: {len(entries)} entries")
        return Snapshot(self.root, entries, tuple(warnings), unreadable)

    def _count_lines(self, path: str) -> ReadResult:
        if not self.with_line_counts:
            return ReadResult.ok(0)
        result = count_lines(Path(path))
        if result.is_degraded:
            logger.debug(f"Could not count lines of {path}: {result.reason}")
        return result
