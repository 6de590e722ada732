"""Data models for the examwatch package."""

import logging
from array import array
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import BinaryIO, Optional, Union

logger = logging.getLogger(__name__)

# Same starting value as the exam-finalization hash.
FINGERPRINT_SEED = 29366927

_CHUNK_SIZE = 65536


@dataclass(frozen=True)
class FileEntry:
    """
    Metadata for a regular file in a snapshot.

    Attributes:
        size: Size in bytes
        line_count: Number of text lines (0 for binary or unreadable content)
        mtime: Last modification time in milliseconds since the epoch
    """
    size: int
    line_count: int
    mtime: int

    @property
    def is_directory(self) -> bool:
        return False


@dataclass(frozen=True)
class DirectoryEntry:
    """A directory in a snapshot. Only the kind is tracked."""

    @property
    def is_directory(self) -> bool:
        return True


Entry = Union[FileEntry, DirectoryEntry]


class ChangeType(Enum):
    """Kinds of change between two snapshots."""
    NEW_FILE = "new_file"
    NEW_DIRECTORY = "new_directory"
    MODIFIED = "modified"
    DELETED_FILE = "deleted_file"
    DELETED_DIRECTORY = "deleted_directory"


@dataclass(frozen=True)
class ChangeRecord:
    """
    A single difference between two snapshots.

    Attributes:
        change_type: What happened to the path
        path: Absolute path of the affected entry
        before: Entry in the previous snapshot (None for NEW_*)
        after: Entry in the current snapshot (None for DELETED_*)
    """
    change_type: ChangeType
    path: str
    before: Optional[Entry] = None
    after: Optional[Entry] = None

    @property
    def size_delta(self) -> int:
        return _size(self.after) - _size(self.before)

    @property
    def lines_delta(self) -> int:
        return _lines(self.after) - _lines(self.before)


def _size(entry: Optional[Entry]) -> int:
    return entry.size if isinstance(entry, FileEntry) else 0


def _lines(entry: Optional[Entry]) -> int:
    return entry.line_count if isinstance(entry, FileEntry) else 0


@dataclass(frozen=True)
class ReadResult:
    """
    Outcome of a read that may fall back to a default.

    A degraded result carries the default value and the reason the real
    value could not be read.
    """
    value: int
    reason: Optional[str] = None

    @property
    def is_degraded(self) -> bool:
        return self.reason is not None

    @classmethod
    def ok(cls, value: int) -> "ReadResult":
        return cls(value)

    @classmethod
    def degraded(cls, value: int, reason: str) -> "ReadResult":
        return cls(value, reason)


def to_int32(value: int) -> int:
    """Wrap an integer into the signed 32-bit range."""
    return ((value + 0x80000000) & 0xFFFFFFFF) - 0x80000000


def fingerprint_bytes(data: bytes, seed: int = FINGERPRINT_SEED, offset: int = 0) -> int:
    """
    Fold a block of bytes into a running fingerprint.

    Bytes are read as signed 8-bit values. A byte at an even stream offset
    is added as is, one at an odd offset is multiplied by 100.

    Args:
        data: Bytes to fold in
        seed: Accumulator value before this block
        offset: Stream offset of the first byte of ``data``

    Returns:
        The updated accumulator, wrapped to a signed 32-bit integer
    """
    signed = array("b", data)
    if offset % 2 == 0:
        even, odd = signed[0::2], signed[1::2]
    else:
        odd, even = signed[0::2], signed[1::2]
    return to_int32(seed + sum(even) + 100 * sum(odd))


def fingerprint_stream(stream: BinaryIO, seed: int = FINGERPRINT_SEED) -> int:
    """Compute the fingerprint of everything left in a binary stream."""
    value = seed
    offset = 0
    for chunk in iter(lambda: stream.read(_CHUNK_SIZE), b""):
        value = fingerprint_bytes(chunk, value, offset)
        offset += len(chunk)
    return value


def compute_fingerprint(path: Path) -> ReadResult:
    """
    Compute the fingerprint of a file's contents.

    Args:
        path: Path to the file

    Returns:
        The fingerprint, or a degraded result holding the seed if the
        file cannot be read
    """
    try:
        with open(path, "rb") as f:
            return ReadResult.ok(fingerprint_stream(f))
    except OSError as e:
        logger.warning(f"Error calculating hash for {path}: {e}")
        return ReadResult.degraded(FINGERPRINT_SEED, str(e))


def count_lines(path: Path) -> ReadResult:
    """
    Count the text lines of a file.

    A trailing line without a terminator counts; an empty file has no
    lines. Content that is not valid UTF-8 counts as zero lines.
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            return ReadResult.ok(sum(1 for _ in f))
    except (OSError, UnicodeDecodeError) as e:
        return ReadResult.degraded(0, str(e))
