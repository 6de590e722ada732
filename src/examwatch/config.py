"""Configuration for the examwatch package."""

import fnmatch
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional


@dataclass
class WatcherConfig:
    """
    Configuration options for a watch session.

    Attributes:
        backup_folder_name: Name of the backup folder created inside the root
        report_filename: Reserved report filename, never tracked at any depth
        include_directories: Whether directories appear in snapshots
        report_modifications: Whether the session also records MODIFIED messages
        stabilize_interval_ms: Milliseconds between size samples of a new file
        stable_checks: Consecutive identical samples needed to call a file stable
        stabilize_timeout_ms: Give up stabilizing after this long (None waits forever)
        shutdown_grace_s: Seconds to wait for backup workers on shutdown
        check_interval_s: Seconds between checks when driven by the CLI
        follow_symlinks: Whether to follow symbolic links while walking
        ignore_patterns: Glob patterns for additional paths to exclude
        timestamp_format: strftime format used in notification messages
    """
    backup_folder_name: str = ".copywatcher_backup"
    report_filename: str = "resume.txt"
    include_directories: bool = True
    report_modifications: bool = False
    stabilize_interval_ms: int = 500
    stable_checks: int = 3
    stabilize_timeout_ms: Optional[int] = None
    shutdown_grace_s: float = 5.0
    check_interval_s: float = 2.0
    follow_symlinks: bool = False
    ignore_patterns: List[str] = field(default_factory=list)
    timestamp_format: str = "%Y/%m/%d %H:%M:%S"

    def __post_init__(self):
        if self.stabilize_interval_ms <= 0:
            raise ValueError(f"stabilize_interval_ms must be positive: {self.stabilize_interval_ms}")
        if self.stable_checks < 1:
            raise ValueError(f"stable_checks must be at least 1: {self.stable_checks}")
        if self.stabilize_timeout_ms is not None and self.stabilize_timeout_ms <= 0:
            raise ValueError(f"stabilize_timeout_ms must be positive or None: {self.stabilize_timeout_ms}")

    def backup_folder(self, root: Path) -> Path:
        """Return the backup folder for a watched root."""
        return Path(root) / self.backup_folder_name

    def should_ignore(self, path: Path) -> bool:
        """
        Check if a path should be ignored based on ignore patterns.

        Args:
            path: Path to check

        Returns:
            True if the path should be ignored
        """
        path_str = str(path)
        name = path.name

        if name == self.report_filename:
            return True
        # Temporary files written while the report is replaced
        if name.startswith(f"{self.report_filename}.") and name.endswith(".tmp"):
            return True

        for pattern in self.ignore_patterns:
            if fnmatch.fnmatch(name, pattern):
                return True
            if fnmatch.fnmatch(path_str, f"*/{pattern}"):
                return True
            if fnmatch.fnmatch(path_str, pattern):
                return True

        return False

    @classmethod
    def from_env(cls, prefix: str = "EXAMWATCH_") -> "WatcherConfig":
        """
        Build a config from environment variables.

        Recognised variables (all optional): ``<prefix>BACKUP_FOLDER``,
        ``<prefix>REPORT_FILENAME``, ``<prefix>INCLUDE_DIRECTORIES``,
        ``<prefix>REPORT_MODIFICATIONS``, ``<prefix>STABILIZE_INTERVAL_MS``,
        ``<prefix>STABLE_CHECKS``, ``<prefix>STABILIZE_TIMEOUT_MS``,
        ``<prefix>SHUTDOWN_GRACE_S``, ``<prefix>CHECK_INTERVAL_S``,
        ``<prefix>FOLLOW_SYMLINKS`` and ``<prefix>IGNORE_PATTERNS``
        (comma-separated).
        """
        env = os.environ
        config = cls()

        if f"{prefix}BACKUP_FOLDER" in env:
            config.backup_folder_name = env[f"{prefix}BACKUP_FOLDER"]
        if f"{prefix}REPORT_FILENAME" in env:
            config.report_filename = env[f"{prefix}REPORT_FILENAME"]
        if f"{prefix}INCLUDE_DIRECTORIES" in env:
            config.include_directories = _parse_bool(env[f"{prefix}INCLUDE_DIRECTORIES"])
        if f"{prefix}REPORT_MODIFICATIONS" in env:
            config.report_modifications = _parse_bool(env[f"{prefix}REPORT_MODIFICATIONS"])
        if f"{prefix}STABILIZE_INTERVAL_MS" in env:
            config.stabilize_interval_ms = int(env[f"{prefix}STABILIZE_INTERVAL_MS"])
        if f"{prefix}STABLE_CHECKS" in env:
            config.stable_checks = int(env[f"{prefix}STABLE_CHECKS"])
        if f"{prefix}STABILIZE_TIMEOUT_MS" in env:
            raw = env[f"{prefix}STABILIZE_TIMEOUT_MS"].strip()
            config.stabilize_timeout_ms = int(raw) if raw else None
        if f"{prefix}SHUTDOWN_GRACE_S" in env:
            config.shutdown_grace_s = float(env[f"{prefix}SHUTDOWN_GRACE_S"])
        if f"{prefix}CHECK_INTERVAL_S" in env:
            config.check_interval_s = float(env[f"{prefix}CHECK_INTERVAL_S"])
        if f"{prefix}FOLLOW_SYMLINKS" in env:
            config.follow_symlinks = _parse_bool(env[f"{prefix}FOLLOW_SYMLINKS"])
        if f"{prefix}IGNORE_PATTERNS" in env:
            config.ignore_patterns = [
                p.strip() for p in env[f"{prefix}IGNORE_PATTERNS"].split(",") if p.strip()
            ]

        config.__post_init__()
        return config


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")
