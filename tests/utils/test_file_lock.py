"""Tests for the log file lock."""

import pytest

from restore_manager.errors import LockTimeout
from restore_manager.utils.file_lock import acquire_lock, lock_path_for, locked


class TestFileLock:
    """Test acquisition, contention and release."""

    def test_lock_path(self, tmp_path):
        """Test the lock lives beside the protected file."""
        assert lock_path_for(tmp_path / "restore.log") == tmp_path / "restore.log.lock"

    def test_contention_times_out(self, tmp_path):
        """Test a second holder gives up after the timeout."""
        target = tmp_path / "restore.log"
        held = acquire_lock(target)
        try:
            with pytest.raises(LockTimeout):
                acquire_lock(target, timeout=0.2)
        finally:
            held.release()

        acquire_lock(target, timeout=0).release()

    def test_locked_releases_on_exception(self, tmp_path):
        """Test the context manager releases when the block raises."""
        target = tmp_path / "restore.log"

        with pytest.raises(RuntimeError):
            with locked(target) as lock:
                assert lock is not None
                raise RuntimeError("cycle failed")

        acquire_lock(target, timeout=0).release()

    def test_locked_proceeds_without_lock(self, tmp_path, caplog):
        """Test a held lock yields None and the block still runs."""
        target = tmp_path / "restore.log"
        held = acquire_lock(target)
        ran = []
        try:
            with caplog.at_level("WARNING"):
                with locked(target, timeout=0.1) as lock:
                    ran.append(lock)
        finally:
            held.release()

        assert ran == [None]
        assert "Proceeding without log lock" in caplog.text

    def test_pid_written(self, tmp_path):
        """Test the holder's pid is noted in the lock file."""
        lock = acquire_lock(tmp_path / "restore.log")
        try:
            assert lock.path.read_text().startswith("pid=")
        finally:
            lock.release()
