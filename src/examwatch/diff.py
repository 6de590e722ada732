"""Snapshot comparison."""

import logging
from pathlib import Path
from typing import List, Mapping, Optional

from .models import ChangeRecord, ChangeType, Entry
from .snapshotter import Snapshot

logger = logging.getLogger(__name__)


def _new_type(entry: Entry) -> ChangeType:
    return ChangeType.NEW_DIRECTORY if entry.is_directory else ChangeType.NEW_FILE


def _deleted_type(entry: Entry) -> ChangeType:
    return ChangeType.DELETED_DIRECTORY if entry.is_directory else ChangeType.DELETED_FILE


def diff_snapshots(
    previous: Mapping[str, Entry],
    current: Mapping[str, Entry],
    compare_content: bool = True,
) -> List[ChangeRecord]:
    """
    Compare two snapshots.

    New and modified records come first, in the iteration order of
    ``current``, followed by deleted records in the iteration order of
    ``previous``. A path whose kind changed between file and directory is
    reported as a deletion plus a creation, never as a modification.

    Args:
        previous: The older snapshot
        current: The newer snapshot
        compare_content: If False only existence is compared and no
            MODIFIED records are produced

    Returns:
        The change records; an empty list means nothing changed
    """
    created_or_modified: List[ChangeRecord] = []
    deleted: List[ChangeRecord] = []

    for path, entry in current.items():
        before = previous.get(path)

        if before is None:
            created_or_modified.append(ChangeRecord(_new_type(entry), path, after=entry))
        elif before.is_directory != entry.is_directory:
            deleted.append(ChangeRecord(_deleted_type(before), path, before=before))
            created_or_modified.append(ChangeRecord(_new_type(entry), path, after=entry))
        elif compare_content and before != entry:
            created_or_modified.append(
                ChangeRecord(ChangeType.MODIFIED, path, before=before, after=entry)
            )

    for path, entry in previous.items():
        if path not in current:
            deleted.append(ChangeRecord(_deleted_type(entry), path, before=entry))

    return created_or_modified + deleted


class DiffEngine:
    """
    Keeps the retained snapshot and diffs new snapshots against it.

    The retained snapshot is replaced wholesale by each ``compare`` call.
    """

    def __init__(self, baseline: Optional[Snapshot] = None, compare_content: bool = True):
        """
        Initialize the diff engine.

        Args:
            baseline: Snapshot the first comparison is made against
            compare_content: Whether to report modifications
        """
        self._baseline = baseline if baseline is not None else Snapshot.empty(Path("."))
        self.compare_content = compare_content

    @property
    def baseline(self) -> Snapshot:
        return self._baseline

    def diff(self, current: Snapshot) -> List[ChangeRecord]:
        """Diff without committing."""
        return diff_snapshots(self._baseline, current, self.compare_content)

    def commit(self, current: Snapshot) -> None:
        """Make ``current`` the retained snapshot."""
        self._baseline = current

    def compare(self, current: Snapshot) -> List[ChangeRecord]:
        """Diff against the retained snapshot, then retain ``current``."""
        changes = self.diff(current)
        self.commit(current)
        if changes:
            logger.debug(f"{len(changes)} change(s) under {current.root}")
        return changes
