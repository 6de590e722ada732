"""Custom exceptions for the examwatch package."""


class WatcherError(Exception):
    """Base exception for all watcher errors."""
    pass


class BackupError(WatcherError):
    """A new file could not be copied into the backup folder."""

    def __init__(self, source, message: str):
        super().__init__(message)
        self.source = source


class StabilizationError(WatcherError):
    """A new file never reached a stable size."""
    pass


class StabilizationCancelled(StabilizationError):
    """The wait was abandoned because the session is shutting down."""
    pass


class StabilizationTimeout(StabilizationError):
    """The file kept changing past the configured timeout."""
    pass
