"""Watch session: periodic change checks with backups of new files."""

import logging
import threading
import time
from pathlib import Path
from typing import Dict, List, Optional

from .backup import BackupStore
from .config import WatcherConfig
from .diff import DiffEngine
from .exceptions import BackupError, StabilizationCancelled, StabilizationTimeout
from .messages import MessageLog, format_detailed, format_event, format_file_copied, timestamp
from .models import ChangeRecord, ChangeType, compute_fingerprint
from .snapshotter import TreeSnapshotter
from .stabilizer import Stabilizer

logger = logging.getLogger(__name__)


class WatchSession:
    """
    Detects new and deleted entries under a root folder.

    Each call to ``check_for_changes`` walks the tree, diffs it against the
    previous walk and records notification messages. New files are handed
    to a background worker that waits for them to stop growing, hashes
    them and copies them into the backup folder.
    """

    def __init__(self, root: Path, config: Optional[WatcherConfig] = None):
        """
        Initialize the session and record the starting state of the tree.

        Args:
            root: Folder to watch
            config: Watcher configuration
        """
        self.root = Path(root).absolute()
        self.config = config or WatcherConfig()

        self._lock = threading.Lock()
        self._messages = MessageLog(self._lock)
        self._finalizing = False
        self._closed = False
        self._stop_event = threading.Event()
        self._workers: List[threading.Thread] = []
        self._cancel_events: Dict[str, threading.Event] = {}

        self._backup_store = BackupStore(self.config.backup_folder(self.root))
        self._stabilizer = Stabilizer(self.config, self._stop_event)
        self._snapshotter = TreeSnapshotter(
            self.root,
            self.config,
            with_line_counts=self.config.report_modifications,
        )

        if self.root.is_dir():
            self._backup_store.ensure_folder()
        else:
            logger.warning(f"Watched folder does not exist: {self.root}")

        self._engine = DiffEngine(
            self._snapshotter.take(),
            compare_content=self.config.report_modifications,
        )
        logger.info(f"Watching {self.root} ({len(self._engine.baseline)} known entries)")

    def set_finalizing(self, finalizing: bool) -> None:
        """Pause (True) or resume (False) change detection."""
        with self._lock:
            self._finalizing = finalizing

    @property
    def is_finalizing(self) -> bool:
        with self._lock:
            return self._finalizing

    def check_for_changes(self) -> None:
        """
        Run one check cycle.

        Does nothing while finalizing or after shutdown. Errors are logged
        and never propagate to the caller.
        """
        with self._lock:
            if self._finalizing or self._closed:
                return

        try:
            current = self._snapshotter.take()
            changes = self._engine.diff(current)

            new_files = [c for c in changes if c.change_type == ChangeType.NEW_FILE]
            if changes:
                logger.debug(
                    f"Current entries: {len(current)}, known entries: {len(self._engine.baseline)}, "
                    f"changes: {len(changes)}"
                )

            for change in changes:
                if change.change_type != ChangeType.NEW_FILE:
                    self._record_change(change)
                if change.change_type == ChangeType.DELETED_FILE:
                    self._cancel_backup(change.path)

            for change in new_files:
                self._dispatch_backup(change.path)

            self._engine.commit(current)
        except Exception as e:
            logger.error(f"Error checking for file changes: {e}", exc_info=True)

    def _record_change(self, change: ChangeRecord) -> None:
        ts = timestamp(fmt=self.config.timestamp_format)
        if change.change_type == ChangeType.MODIFIED:
            message = format_detailed(change, ts)
        else:
            message = format_event(change, ts)
        self._append(message)

    def _append(self, message: str) -> None:
        self._messages.append(message)
        logger.info(f"CopyWatcher: {message}")

    def _dispatch_backup(self, path: str) -> None:
        cancel_event = threading.Event()
        worker = threading.Thread(
            target=self._process_new_file,
            args=(path, cancel_event),
            name=f"Backup-{Path(path).name}",
            daemon=True,
        )
        with self._lock:
            self._workers = [w for w in self._workers if w.is_alive()]
            self._workers.append(worker)
            self._cancel_events[path] = cancel_event
            if self._closed:
                cancel_event.set()
        worker.start()

    def _cancel_backup(self, path: str) -> None:
        """Stop a pending backup whose file was deleted before it settled."""
        with self._lock:
            cancel_event = self._cancel_events.get(path)
        if cancel_event is not None:
            logger.debug(f"Cancelling pending backup of deleted file {path}")
            cancel_event.set()

    def _process_new_file(self, path: str, cancel_event: threading.Event) -> None:
        """Worker: stabilize, hash, back up, then record the notification."""
        try:
            logger.debug(f"Starting to process new file: {path}")
            self._stabilizer.wait_until_stable(Path(path), cancel_event)

            fingerprint = compute_fingerprint(Path(path))
            if fingerprint.is_degraded:
                logger.warning(f"Hashing {path} fell back to the seed: {fingerprint.reason}")

            backup_path = self._backup_store.store(Path(path), fingerprint.value)
            self._append(
                format_file_copied(
                    path,
                    fingerprint.value,
                    backup_path,
                    timestamp(fmt=self.config.timestamp_format),
                )
            )
        except StabilizationCancelled:
            logger.debug(f"Backup of {path} cancelled")
        except StabilizationTimeout as e:
            logger.warning(f"Skipping backup: {e}")
        except BackupError as e:
            logger.warning(str(e))
        except Exception as e:
            logger.error(f"Error processing new file {path}: {e}", exc_info=True)
        finally:
            with self._lock:
                if self._cancel_events.get(path) is cancel_event:
                    del self._cancel_events[path]

    def drain_messages(self) -> List[str]:
        """Return a copy of every message recorded so far."""
        return self._messages.snapshot()

    def get_backup_folder(self) -> str:
        return str(self._backup_store.folder)

    def pending_backups(self) -> int:
        """Number of backup workers still running."""
        with self._lock:
            return sum(1 for w in self._workers if w.is_alive())

    def wait_for_backups(self, timeout: Optional[float] = None) -> bool:
        """
        Block until running backup workers finish.

        Args:
            timeout: Maximum seconds to wait (None waits indefinitely)

        Returns:
            True if no worker is left running
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        with self._lock:
            workers = list(self._workers)

        for worker in workers:
            remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
            worker.join(timeout=remaining)

        return self.pending_backups() == 0

    def shutdown(self, grace_period: Optional[float] = None) -> None:
        """
        Stop the session.

        Outstanding backup workers are told to stop and given
        ``grace_period`` seconds (default ``config.shutdown_grace_s``) to
        finish. Workers still running afterwards are abandoned.
        """
        with self._lock:
            if self._closed:
                return
            self._closed = True
            cancel_events = list(self._cancel_events.values())

        self._stop_event.set()
        for event in cancel_events:
            event.set()
        grace = self.config.shutdown_grace_s if grace_period is None else grace_period

        if not self.wait_for_backups(timeout=grace):
            logger.warning(f"Abandoning {self.pending_backups()} backup worker(s) after {grace}s")

        logger.info(f"Stopped watching {self.root}")

    @property
    def is_closed(self) -> bool:
        with self._lock:
            return self._closed

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.shutdown()
        return False


def new_session(root: Path, config: Optional[WatcherConfig] = None) -> WatchSession:
    """Create a session watching ``root``."""
    return WatchSession(root, config)
