"""Backup copies of newly created files."""

import logging
import shutil
from pathlib import Path

from .exceptions import BackupError

logger = logging.getLogger(__name__)


class BackupStore:
    """
    Copies files into a dedicated backup folder.

    Each copy is named ``<fingerprint>_<original name>``. An existing copy
    with the same name is replaced.
    """

    def __init__(self, folder: Path):
        self.folder = Path(folder)

    def ensure_folder(self) -> bool:
        """
        Create the backup folder if it does not exist.

        Returns:
            True if the folder exists afterwards
        """
        try:
            self.folder.mkdir(parents=True, exist_ok=True)
            return True
        except OSError as e:
            logger.error(f"Error creating backup folder {self.folder}: {e}")
            return False

    @staticmethod
    def backup_name(path: Path, fingerprint: int) -> str:
        return f"{fingerprint}_{Path(path).name}"

    def store(self, path: Path, fingerprint: int) -> Path:
        """
        Copy a file into the backup folder.

        Args:
            path: File to copy
            fingerprint: Fingerprint of the file's contents

        Returns:
            Full path of the backup copy

        Raises:
            BackupError: If the copy could not be made
        """
        target = self.folder / self.backup_name(path, fingerprint)
        try:
            self.folder.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(path, target)
        except OSError as e:
            raise BackupError(path, f"Could not back up {path} to {target}: {e}") from e
        logger.debug(f"Backup created at: {target}")
        return target
