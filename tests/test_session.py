"""Tests for watch session module."""

import pytest
import time
import threading

from src.examwatch.config import WatcherConfig
from src.examwatch.models import fingerprint_bytes
from src.examwatch.session import WatchSession, new_session


def fast_config(**kwargs) -> WatcherConfig:
    return WatcherConfig(stabilize_interval_ms=20, shutdown_grace_s=2.0, **kwargs)


def wait_for_messages(session, count, timeout=10.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        messages = session.drain_messages()
        if len(messages) >= count:
            return messages
        time.sleep(0.02)
    return session.drain_messages()


@pytest.fixture
def session_factory():
    sessions = []

    def make(root, config=None):
        session = new_session(root, config or fast_config())
        sessions.append(session)
        return session

    yield make

    for session in sessions:
        session.shutdown(grace_period=1.0)


class TestWatchSessionSetup:
    """Tests for session construction."""

    def test_creates_backup_folder(self, tmp_path, session_factory):
        session = session_factory(tmp_path)

        assert session.get_backup_folder() == str(tmp_path / ".copywatcher_backup")
        assert (tmp_path / ".copywatcher_backup").is_dir()

    def test_new_session_returns_session(self, tmp_path, session_factory):
        assert isinstance(session_factory(tmp_path), WatchSession)

    def test_existing_files_are_baseline(self, tmp_path, session_factory):
        (tmp_path / "old.txt").write_text("already here")
        (tmp_path / "olddir").mkdir()
        session = session_factory(tmp_path)

        session.check_for_changes()

        assert session.drain_messages() == []

    def test_missing_root_does_not_raise(self, tmp_path, session_factory):
        root = tmp_path / "missing"
        session = session_factory(root)

        session.check_for_changes()

        assert session.drain_messages() == []
        assert not root.exists()

    def test_changes_since_construction_are_reported(self, tmp_path, session_factory):
        (tmp_path / "old.txt").write_text("x")
        session = session_factory(tmp_path)
        (tmp_path / "old.txt").unlink()

        session.check_for_changes()

        messages = session.drain_messages()
        assert len(messages) == 1
        assert messages[0].endswith(f"FILE DELETED: {tmp_path / 'old.txt'}")


class TestWatchSessionChecks:
    """Tests for check_for_changes."""

    def test_idempotent_without_changes(self, tmp_path, session_factory):
        session = session_factory(tmp_path)
        (tmp_path / "sub").mkdir()

        session.check_for_changes()
        first = session.drain_messages()
        session.check_for_changes()

        assert session.drain_messages() == first
        assert len(first) == 1

    def test_new_file_is_backed_up(self, tmp_path, session_factory):
        session = session_factory(tmp_path)
        path = tmp_path / "a.txt"
        path.write_text("hello")

        session.check_for_changes()
        assert session.wait_for_backups(timeout=5.0)

        messages = session.drain_messages()
        backup = tmp_path / ".copywatcher_backup" / "29388150_a.txt"
        assert len(messages) == 1
        assert f"FILE COPIED: {path} | Hash: 29388150 | Backup: {backup}" in messages[0]
        assert backup.read_text() == "hello"
        assert list((tmp_path / ".copywatcher_backup").iterdir()) == [backup]

    def test_message_format(self, tmp_path, session_factory):
        session = session_factory(tmp_path)
        (tmp_path / "d").mkdir()

        session.check_for_changes()

        message = session.drain_messages()[0]
        assert len(message.split(" - ")[0]) == len("2024/05/01 10:00:00")
        assert message.split(" - ", 1)[1] == f"DIRECTORY COPIED: {tmp_path / 'd'}"

    def test_new_file_in_subdirectory(self, tmp_path, session_factory):
        session = session_factory(tmp_path)
        (tmp_path / "sub").mkdir()
        (tmp_path / "sub" / "b.txt").write_text("hello")

        session.check_for_changes()
        session.wait_for_backups(timeout=5.0)

        messages = session.drain_messages()
        assert len(messages) == 2
        assert "DIRECTORY COPIED" in messages[0]
        assert "FILE COPIED" in messages[1]
        assert (tmp_path / ".copywatcher_backup" / "29388150_b.txt").exists()

    def test_deleted_file(self, tmp_path, session_factory):
        path = tmp_path / "a.txt"
        path.write_text("hello")
        session = session_factory(tmp_path)

        path.unlink()
        session.check_for_changes()

        messages = session.drain_messages()
        assert len(messages) == 1
        assert messages[0].endswith(f"FILE DELETED: {path}")

    def test_directory_created_and_deleted(self, tmp_path, session_factory):
        session = session_factory(tmp_path)
        directory = tmp_path / "d"

        directory.mkdir()
        session.check_for_changes()
        directory.rmdir()
        session.check_for_changes()

        messages = session.drain_messages()
        assert messages[0].endswith(f"DIRECTORY COPIED: {directory}")
        assert messages[1].endswith(f"DIRECTORY DELETED: {directory}")

    def test_modifications_not_reported_by_default(self, tmp_path, session_factory):
        path = tmp_path / "a.txt"
        path.write_text("hello")
        session = session_factory(tmp_path)

        path.write_text("hello\nab")
        session.check_for_changes()

        assert session.drain_messages() == []

    def test_modifications_reported_when_enabled(self, tmp_path, session_factory):
        path = tmp_path / "a.txt"
        path.write_text("hello")
        session = session_factory(tmp_path, fast_config(report_modifications=True))

        path.write_text("hello\nab")
        session.check_for_changes()

        messages = session.drain_messages()
        assert len(messages) == 1
        assert messages[0].endswith(f"MODIFIED: {path} (chars: +3 [5→8], lines: +1 [1→2])")

    def test_synchronous_messages_before_backups(self, tmp_path, session_factory):
        old = tmp_path / "old.txt"
        old.write_text("x")
        session = session_factory(tmp_path)

        old.unlink()
        (tmp_path / "new.txt").write_text("y")
        session.check_for_changes()
        session.wait_for_backups(timeout=5.0)

        messages = session.drain_messages()
        assert len(messages) == 2
        assert "FILE DELETED" in messages[0]
        assert "FILE COPIED" in messages[1]

    def test_file_replaced_by_directory(self, tmp_path, session_factory):
        path = tmp_path / "x"
        path.write_text("file")
        session = session_factory(tmp_path)

        path.unlink()
        path.mkdir()
        session.check_for_changes()

        messages = session.drain_messages()
        assert any(m.endswith(f"DIRECTORY COPIED: {path}") for m in messages)
        assert any(m.endswith(f"FILE DELETED: {path}") for m in messages)

    def test_backup_folder_and_report_never_reported(self, tmp_path, session_factory):
        session = session_factory(tmp_path)
        (tmp_path / "a.txt").write_text("hello")
        session.check_for_changes()
        session.wait_for_backups(timeout=5.0)

        (tmp_path / "resume.txt").write_text("report")
        (tmp_path / "resume.txt.a1b2c3.tmp").write_text("partial report")
        (tmp_path / ".copywatcher_backup" / "manual.txt").write_text("x")
        session.check_for_changes()
        session.check_for_changes()

        messages = session.drain_messages()
        assert len(messages) == 1
        for message in messages:
            details = message.split(": ", 1)[1]
            assert not details.startswith(str(tmp_path / "resume.txt"))
            assert not details.startswith(session.get_backup_folder())

    def test_vanished_file_produces_no_message(self, tmp_path, session_factory):
        config = WatcherConfig(stabilize_interval_ms=20, stabilize_timeout_ms=200)
        session = session_factory(tmp_path, config)
        path = tmp_path / "short.txt"
        path.write_text("brief")

        session.check_for_changes()
        path.unlink()
        session.wait_for_backups(timeout=5.0)

        assert session.drain_messages() == []

    def test_stabilization_waits_for_last_write(self, tmp_path, session_factory):
        session = session_factory(tmp_path, WatcherConfig())
        path = tmp_path / "burst.txt"

        path.write_bytes(b"first burst ")
        session.check_for_changes()
        time.sleep(0.2)
        with open(path, "ab") as f:
            f.write(b"second burst")
        last_write = time.monotonic()

        messages = wait_for_messages(session, 1, timeout=10.0)
        completed = time.monotonic()

        content = b"first burst second burst"
        backup = tmp_path / ".copywatcher_backup" / f"{fingerprint_bytes(content)}_burst.txt"
        assert len(messages) == 1
        assert completed - last_write >= 1.0
        assert backup.read_bytes() == content

    def test_concurrent_new_files(self, tmp_path, session_factory):
        session = session_factory(tmp_path)
        for i in range(5):
            (tmp_path / f"f{i}.txt").write_text(f"content {i}")

        session.check_for_changes()
        assert session.wait_for_backups(timeout=5.0)

        messages = session.drain_messages()
        assert len(messages) == 5
        assert len(list((tmp_path / ".copywatcher_backup").iterdir())) == 5


class TestWatchSessionDeletedBeforeStable:
    """Tests for new files that disappear before their backup."""

    def test_deleted_file_cancels_pending_backup(self, tmp_path, session_factory):
        session = session_factory(tmp_path, WatcherConfig())
        path = tmp_path / "short.swp"
        path.write_text("temp")

        session.check_for_changes()
        assert session.pending_backups() == 1
        path.unlink()
        session.check_for_changes()

        assert session.wait_for_backups(timeout=2.0)
        assert session.pending_backups() == 0
        messages = session.drain_messages()
        assert len(messages) == 1
        assert messages[0].endswith(f"FILE DELETED: {path}")

    def test_many_short_lived_files_leave_no_workers(self, tmp_path, session_factory):
        session = session_factory(tmp_path, WatcherConfig())
        for i in range(5):
            path = tmp_path / f"tmp{i}.txt"
            path.write_text("x")
            session.check_for_changes()
            path.unlink()
            session.check_for_changes()

        assert session.wait_for_backups(timeout=2.0)
        assert session.pending_backups() == 0
        assert sum("FILE DELETED" in m for m in session.drain_messages()) == 5

    def test_other_backups_keep_running(self, tmp_path, session_factory):
        session = session_factory(tmp_path)
        doomed = tmp_path / "doomed.txt"
        kept = tmp_path / "kept.txt"
        doomed.write_text("bye")
        kept.write_text("hello")

        session.check_for_changes()
        doomed.unlink()
        session.check_for_changes()
        session.wait_for_backups(timeout=5.0)

        messages = session.drain_messages()
        assert any(f"FILE COPIED: {kept}" in m for m in messages)
        assert not any(f"FILE COPIED: {doomed}" in m for m in messages)

    def test_recreated_file_is_backed_up(self, tmp_path, session_factory):
        session = session_factory(tmp_path)
        path = tmp_path / "a.txt"
        path.write_text("first")
        session.check_for_changes()
        path.unlink()
        session.check_for_changes()

        path.write_text("hello")
        session.check_for_changes()
        session.wait_for_backups(timeout=5.0)

        assert (tmp_path / ".copywatcher_backup" / "29388150_a.txt").read_text() == "hello"


class TestWatchSessionSymlinks:
    """Tests for symbolic links inside the watched folder."""

    def test_new_symlink_is_reported(self, tmp_path, session_factory):
        root = tmp_path / "root"
        root.mkdir()
        target = tmp_path / "target.txt"
        target.write_text("hello")
        session = session_factory(root)

        link = root / "link.txt"
        try:
            link.symlink_to(target)
        except (OSError, NotImplementedError):
            pytest.skip("symlinks not permitted")
        session.check_for_changes()
        session.wait_for_backups(timeout=5.0)

        messages = session.drain_messages()
        backup = root / ".copywatcher_backup" / "29388150_link.txt"
        assert len(messages) == 1
        assert f"FILE COPIED: {link} | Hash: 29388150 | Backup: {backup}" in messages[0]
        assert backup.read_text() == "hello"

    def test_removed_symlink_is_reported(self, tmp_path, session_factory):
        target = tmp_path / "target.txt"
        target.write_text("hello")
        root = tmp_path / "root"
        root.mkdir()
        link = root / "link.txt"
        try:
            link.symlink_to(target)
        except (OSError, NotImplementedError):
            pytest.skip("symlinks not permitted")
        session = session_factory(root)

        link.unlink()
        session.check_for_changes()

        assert session.drain_messages()[-1].endswith(f"FILE DELETED: {link}")
        assert target.exists()


class TestWatchSessionFinalizing:
    """Tests for the finalizing window."""

    def test_finalizing_suppresses_detection(self, tmp_path, session_factory):
        session = session_factory(tmp_path)
        session.set_finalizing(True)

        (tmp_path / "a.txt").write_text("hello")
        (tmp_path / "d").mkdir()
        session.check_for_changes()
        session.wait_for_backups(timeout=5.0)

        assert session.is_finalizing is True
        assert session.drain_messages() == []
        assert list((tmp_path / ".copywatcher_backup").iterdir()) == []

    def test_detection_resumes(self, tmp_path, session_factory):
        session = session_factory(tmp_path)
        session.set_finalizing(True)
        session.check_for_changes()
        session.set_finalizing(False)

        (tmp_path / "b.txt").write_text("hello")
        session.check_for_changes()
        session.wait_for_backups(timeout=5.0)

        messages = session.drain_messages()
        assert any(f"FILE COPIED: {tmp_path / 'b.txt'}" in m for m in messages)

    def test_toggle_from_other_thread(self, tmp_path, session_factory):
        session = session_factory(tmp_path)

        thread = threading.Thread(target=session.set_finalizing, args=(True,))
        thread.start()
        thread.join()

        assert session.is_finalizing is True


class TestWatchSessionShutdown:
    """Tests for shutdown."""

    def test_shutdown_cancels_pending_backups(self, tmp_path):
        config = WatcherConfig(stabilize_interval_ms=10000)
        session = new_session(tmp_path, config)
        (tmp_path / "a.txt").write_text("hello")
        session.check_for_changes()
        assert session.pending_backups() == 1

        start = time.monotonic()
        session.shutdown(grace_period=2.0)

        assert time.monotonic() - start < 2.0
        assert session.pending_backups() == 0
        assert session.drain_messages() == []

    def test_check_after_shutdown_is_noop(self, tmp_path):
        session = new_session(tmp_path, fast_config())
        session.shutdown()

        (tmp_path / "d").mkdir()
        session.check_for_changes()

        assert session.is_closed is True
        assert session.drain_messages() == []

    def test_shutdown_idempotent(self, tmp_path):
        session = new_session(tmp_path, fast_config())
        session.shutdown()
        session.shutdown()

        assert session.is_closed is True

    def test_context_manager(self, tmp_path):
        with new_session(tmp_path, fast_config()) as session:
            (tmp_path / "d").mkdir()
            session.check_for_changes()

        assert session.is_closed is True
        assert len(session.drain_messages()) == 1

    def test_messages_survive_shutdown(self, tmp_path):
        session = new_session(tmp_path, fast_config())
        (tmp_path / "a.txt").write_text("hello")
        session.check_for_changes()
        session.wait_for_backups(timeout=5.0)
        session.shutdown()

        assert len(session.drain_messages()) == 1
