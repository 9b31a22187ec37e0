"""Advisory exclusive lock guarding the append-only log file.

Two overlapping invocations (a misconfigured scheduler, or a manual run while
the scheduled one is active) must not interleave their log lines. The lock is
a sidecar ``<log>.lock`` file held with msvcrt on Windows and fcntl elsewhere.
"""

import logging
import os
import time
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterator, Optional, Union

from ..errors import LockTimeout

logger = logging.getLogger(__name__)

_POLL_INTERVAL_SECONDS = 0.1


def _try_lock(handle) -> bool:
    if os.name == "nt":
        import msvcrt

        try:
            handle.seek(0)
            msvcrt.locking(handle.fileno(), msvcrt.LK_NBLCK, 1)  # type: ignore[attr-defined]
        except OSError:
            return False
        return True
    import fcntl

    try:
        fcntl.flock(handle.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
    except OSError:
        return False
    return True


def _unlock(handle) -> None:
    if os.name == "nt":
        import msvcrt

        try:
            handle.seek(0)
            msvcrt.locking(handle.fileno(), msvcrt.LK_UNLCK, 1)  # type: ignore[attr-defined]
        except OSError:
            return
        return
    import fcntl

    try:
        fcntl.flock(handle.fileno(), fcntl.LOCK_UN)
    except OSError:
        return


@dataclass
class FileLock:
    path: Path
    _handle: Any

    def release(self) -> None:
        _unlock(self._handle)
        self._handle.close()


def lock_path_for(target: Union[str, Path]) -> Path:
    target = Path(target)
    return target.with_name(target.name + ".lock")


def acquire_lock(target: Union[str, Path], timeout: float = 30.0) -> FileLock:
    """
    Acquire the advisory lock for a file.

    Args:
        target: File being protected (the lock lives next to it)
        timeout: Seconds to keep trying before giving up

    Returns:
        Held FileLock

    Raises:
        LockTimeout: If another process holds the lock for longer than timeout
    """
    path = lock_path_for(target)
    path.parent.mkdir(parents=True, exist_ok=True)
    handle = path.open("a+", encoding="utf-8")

    deadline = time.monotonic() + max(0.0, timeout)
    while not _try_lock(handle):
        if time.monotonic() >= deadline:
            handle.close()
            raise LockTimeout(f"Lock {path} still held after {timeout:.1f}s")
        time.sleep(_POLL_INTERVAL_SECONDS)

    try:
        handle.seek(0)
        handle.truncate()
        handle.write(f"pid={os.getpid()}\n")
        handle.flush()
    except OSError:
        # Lock is still held; the pid note is informational.
        pass
    return FileLock(path=path, _handle=handle)


@contextmanager
def locked(target: Union[str, Path], timeout: float = 30.0) -> Iterator[Optional[FileLock]]:
    """
    Hold the lock for the duration of a block, released on every exit path.

    If the lock cannot be obtained the block still runs (yielding None) after
    a warning; the lock only keeps log lines from interleaving.
    """
    lock: Optional[FileLock] = None
    try:
        lock = acquire_lock(target, timeout=timeout)
    except (LockTimeout, OSError) as e:
        logger.warning(f"Proceeding without log lock: {e}")
    try:
        yield lock
    finally:
        if lock is not None:
            lock.release()
