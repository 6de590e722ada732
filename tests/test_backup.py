"""Tests for backup module."""

import pytest

from src.examwatch.backup import BackupStore
from src.examwatch.exceptions import BackupError, WatcherError


class TestBackupStore:
    """Tests for BackupStore class."""

    def test_ensure_folder_creates(self, tmp_path):
        store = BackupStore(tmp_path / ".copywatcher_backup")

        assert store.ensure_folder() is True
        assert store.folder.is_dir()

    def test_ensure_folder_idempotent(self, tmp_path):
        store = BackupStore(tmp_path / ".copywatcher_backup")
        store.ensure_folder()

        assert store.ensure_folder() is True

    def test_ensure_folder_failure(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        store = BackupStore(blocker / "backup")

        assert store.ensure_folder() is False

    def test_backup_name(self, tmp_path):
        assert BackupStore.backup_name(tmp_path / "a.txt", 29388150) == "29388150_a.txt"
        assert BackupStore.backup_name(tmp_path / "b.bin", -42) == "-42_b.bin"

    def test_store_copies_bytes(self, tmp_path):
        source = tmp_path / "a.txt"
        source.write_text("hello")
        store = BackupStore(tmp_path / ".copywatcher_backup")
        store.ensure_folder()

        target = store.store(source, 29388150)

        assert target == tmp_path / ".copywatcher_backup" / "29388150_a.txt"
        assert target.read_text() == "hello"
        assert source.read_text() == "hello"

    def test_store_creates_missing_folder(self, tmp_path):
        source = tmp_path / "a.txt"
        source.write_text("hello")
        store = BackupStore(tmp_path / "backup")

        target = store.store(source, 1)

        assert target.exists()

    def test_store_overwrites_existing(self, tmp_path):
        source = tmp_path / "a.txt"
        store = BackupStore(tmp_path / "backup")

        source.write_text("first")
        store.store(source, 7)
        source.write_text("second")
        target = store.store(source, 7)

        assert target.read_text() == "second"
        assert len(list(store.folder.iterdir())) == 1

    def test_store_missing_source_raises(self, tmp_path):
        store = BackupStore(tmp_path / "backup")

        with pytest.raises(BackupError) as excinfo:
            store.store(tmp_path / "vanished.txt", 1)

        assert isinstance(excinfo.value, WatcherError)
        assert excinfo.value.source == tmp_path / "vanished.txt"
        assert not (store.folder / "1_vanished.txt").exists()
