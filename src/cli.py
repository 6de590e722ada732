#!/usr/bin/env python3
"""
CLI for watching an exam workspace.

Usage:
    python -m src.cli watch /path/to/workspace --interval 2
    python -m src.cli snapshot /path/to/workspace
    python -m src.cli hash /path/to/file1 /path/to/file2
"""

import argparse
import logging
import signal
import sys
import time
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv

# Load .env from project root
_env_file = Path(__file__).parent.parent / ".env"
if _env_file.exists():
    load_dotenv(_env_file)
else:
    load_dotenv()

from src.examwatch import (
    FolderMonitor,
    WatcherConfig,
    compute_fingerprint,
    new_session,
    render_report,
    write_report,
)


logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("cli")


class GracefulShutdown:
    """Handle graceful shutdown on SIGINT/SIGTERM."""

    def __init__(self):
        self.should_exit = False
        signal.signal(signal.SIGINT, self._handler)
        signal.signal(signal.SIGTERM, self._handler)

    def _handler(self, signum, frame):
        logger.info("Received shutdown signal, finalizing...")
        self.should_exit = True


def _resolve_root(raw: str) -> Path:
    root = Path(raw).resolve()
    if not root.exists():
        logger.error(f"Root path does not exist: {root}")
        sys.exit(1)
    if not root.is_dir():
        logger.error(f"Root path is not a directory: {root}")
        sys.exit(1)
    return root


def _build_config(args) -> WatcherConfig:
    config = WatcherConfig.from_env()
    if getattr(args, "interval", None) is not None:
        config.check_interval_s = args.interval
    if getattr(args, "report", None):
        config.report_filename = args.report
    if getattr(args, "report_modifications", False):
        config.report_modifications = True
    if getattr(args, "grace", None) is not None:
        config.shutdown_grace_s = args.grace
    return config


def cmd_watch(args):
    """Watch a folder until interrupted, then write the activity report."""
    root = _resolve_root(args.root)
    config = _build_config(args)

    shutdown = GracefulShutdown()
    session = new_session(root, config)

    logger.info(f"Checking every {config.check_interval_s}s")
    logger.info(f"Backup folder: {session.get_backup_folder()}")
    logger.info("Press Ctrl+C to stop")

    try:
        while not shutdown.should_exit:
            session.check_for_changes()
            deadline = time.monotonic() + config.check_interval_s
            while not shutdown.should_exit and time.monotonic() < deadline:
                time.sleep(0.1)

        session.set_finalizing(True)
        session.wait_for_backups(timeout=config.shutdown_grace_s)
        report = render_report(
            root,
            session.drain_messages(),
            session.get_backup_folder(),
            fmt=config.timestamp_format,
        )
        write_report(root / config.report_filename, report)
    finally:
        session.shutdown()

    logger.info("Watcher stopped")


def cmd_snapshot(args):
    """Print every file under a folder with its size and line count."""
    root = _resolve_root(args.root)
    monitor = FolderMonitor(root, _build_config(args))
    for line in monitor.initial_snapshot():
        print(line)


def cmd_hash(args):
    """Print the fingerprint of each file."""
    failed = False
    for raw in args.files:
        result = compute_fingerprint(Path(raw))
        if result.is_degraded:
            logger.error(f"Could not read {raw}: {result.reason}")
            failed = True
        print(f"{result.value}  {raw}")
    if failed:
        sys.exit(1)


def main():
    parser = argparse.ArgumentParser(
        description="Watch an exam workspace for file activity",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Watch a folder, checking every 2 seconds
  python -m src.cli watch ./workspace --interval 2

  # Also report modified files
  python -m src.cli watch ./workspace --report-modifications

  # List the files currently in a folder
  python -m src.cli snapshot ./workspace

  # Fingerprint files the way backups are named
  python -m src.cli hash ./workspace/a.txt
        """,
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    watch_parser = subparsers.add_parser("watch", help="Watch a folder and write a report on exit")
    watch_parser.add_argument("root", help="Folder to watch")
    watch_parser.add_argument("--interval", type=float, default=None, help="Seconds between checks (default: 2)")
    watch_parser.add_argument("--report", default=None, help="Report filename inside the folder (default: resume.txt)")
    watch_parser.add_argument("--report-modifications", action="store_true", help="Also record modified files")
    watch_parser.add_argument("--grace", type=float, default=None, help="Seconds to wait for pending backups on exit (default: 5)")
    watch_parser.set_defaults(func=cmd_watch)

    snapshot_parser = subparsers.add_parser("snapshot", help="List files with their size and line count")
    snapshot_parser.add_argument("root", help="Folder to list")
    snapshot_parser.set_defaults(func=cmd_snapshot)

    hash_parser = subparsers.add_parser("hash", help="Print file fingerprints")
    hash_parser.add_argument("files", nargs="+", help="Files to fingerprint")
    hash_parser.set_defaults(func=cmd_hash)

    args = parser.parse_args()

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    args.func(args)


if __name__ == "__main__":
    main()
