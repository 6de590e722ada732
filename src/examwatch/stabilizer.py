"""Waiting for new files to finish being written."""

import logging
import os
import threading
import time
from pathlib import Path
from typing import Optional

from .config import WatcherConfig
from .exceptions import StabilizationCancelled, StabilizationTimeout

logger = logging.getLogger(__name__)


class Stabilizer:
    """
    Blocks until a file's size stops changing.

    The size is sampled at a fixed interval. The file counts as stable once
    ``stable_checks`` consecutive samples matched the one before them. A
    failed sample (file missing or locked) resets the count.
    """

    def __init__(
        self,
        config: Optional[WatcherConfig] = None,
        stop_event: Optional[threading.Event] = None,
    ):
        """
        Initialize the stabilizer.

        Args:
            config: Watcher configuration (interval, checks, timeout)
            stop_event: Event that cancels any wait in progress when set
        """
        self.config = config or WatcherConfig()
        self.stop_event = stop_event or threading.Event()

    def wait_until_stable(self, path: Path, cancel_event: Optional[threading.Event] = None) -> int:
        """
        Wait until the file at ``path`` stops growing.

        Args:
            path: File to watch
            cancel_event: Event that cancels only this wait when set. The
                owner must also set it when setting the stop event, since
                the wait sleeps on this event while it is given.

        Returns:
            The stable size in bytes

        Raises:
            StabilizationCancelled: If the stop or cancel event was set while waiting
            StabilizationTimeout: If a timeout is configured and exceeded
        """
        waiter = cancel_event if cancel_event is not None else self.stop_event

        def cancelled() -> bool:
            return self.stop_event.is_set() or waiter.is_set()

        interval = self.config.stabilize_interval_ms / 1000.0
        timeout_ms = self.config.stabilize_timeout_ms
        deadline = None if timeout_ms is None else time.monotonic() + timeout_ms / 1000.0

        previous_size = -1
        stable_count = 0

        while True:
            if cancelled():
                raise StabilizationCancelled(f"Stopped waiting for {path}")

            try:
                current_size = os.path.getsize(path)
            except OSError as e:
                logger.debug(f"Size probe failed for {path}: {e}")
                previous_size = -1
                stable_count = 0
            else:
                if current_size == previous_size:
                    stable_count += 1
                    if stable_count >= self.config.stable_checks:
                        return current_size
                else:
                    stable_count = 0
                    previous_size = current_size

            if deadline is not None and time.monotonic() >= deadline:
                raise StabilizationTimeout(
                    f"{path} still changing after {timeout_ms} ms"
                )

            if waiter.wait(interval) or self.stop_event.is_set():
                raise StabilizationCancelled(f"Stopped waiting for {path}")
