"""Final plain-text report of a watch session."""

import logging
import os
import tempfile
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Sequence

from .messages import DEFAULT_TIMESTAMP_FORMAT, timestamp

logger = logging.getLogger(__name__)


def render_report(
    root: Path,
    messages: Sequence[str],
    backup_folder: str,
    generated_at: Optional[datetime] = None,
    fmt: str = DEFAULT_TIMESTAMP_FORMAT,
) -> str:
    """
    Render the accumulated messages of a session as a report.

    Args:
        root: The watched folder
        messages: Messages drained from the session, in log order
        backup_folder: Where backup copies were written
        generated_at: Report time (defaults to now)
        fmt: Timestamp format

    Returns:
        The report text, newline terminated
    """
    lines: List[str] = [
        f"=== Activity report for {root} ===",
        f"Generated: {timestamp(generated_at, fmt)}",
        f"Backup folder: {backup_folder}",
        f"Events: {len(messages)}",
        "",
    ]
    if messages:
        lines.extend(messages)
    else:
        lines.append("No file activity detected.")
    lines.append("=== End of report ===")
    return "\n".join(lines) + "\n"


def write_report(path: Path, text: str) -> Path:
    """
    Write report text to ``path``.

    The text is written to a sibling temporary file named
    ``<report name>.<random>.tmp`` first and then moved into place.
    """
    path = Path(path)
    with tempfile.NamedTemporaryFile(
        "w",
        encoding="utf-8",
        dir=path.parent,
        prefix=f"{path.name}.",
        suffix=".tmp",
        delete=False,
    ) as f:
        f.write(text)
        tmp = Path(f.name)

    try:
        os.replace(tmp, path)
    except OSError:
        tmp.unlink(missing_ok=True)
        raise
    logger.info(f"Report written to {path}")
    return path
