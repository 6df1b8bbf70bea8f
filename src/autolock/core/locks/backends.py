"""Advisory file lock backend built on ``fcntl.flock``.

Design principles:
- Ownership is defined by the OS lock on the open file description.
- The PID stored in the lock file is diagnostic only and is written after
  the lock is held, so it always names the current holder.
- Lock files are opened create-or-open and never truncated before locking.
"""

from __future__ import annotations

import contextlib
import errno
import os
from dataclasses import dataclass
from pathlib import Path

from autolock.core.constants import LOCK_FILE_PERMISSIONS
from autolock.core.locks.modes import LockMode, to_flock_operation

try:
    import fcntl
except ImportError:  # pragma: no cover - exercised on non-POSIX only
    fcntl = None

_CONTENTION_ERRNOS = {errno.EAGAIN, errno.EWOULDBLOCK, errno.EACCES}


def _write_all(fd: int, payload: bytes) -> None:
    """Write complete payload to fd, handling short writes."""
    total_written = 0
    while total_written < len(payload):
        written = os.write(fd, payload[total_written:])
        if written <= 0:
            raise OSError("short write while persisting lock holder PID")
        total_written += written


@dataclass
class LockHandle:
    """One open, held advisory lock on a lock file."""

    lock_path: Path
    fd: int
    mode: LockMode
    pid: int
    closed: bool = False


class FcntlFileLockBackend:
    """POSIX advisory locking backend backed by `fcntl.flock`."""

    name = "fcntl"

    @staticmethod
    def is_supported() -> bool:
        return fcntl is not None

    def open(self, lock_path: Path) -> int:
        return os.open(str(lock_path), os.O_CREAT | os.O_RDWR, LOCK_FILE_PERMISSIONS)

    def lock(self, fd: int, mode: LockMode) -> bool:
        """Apply ``mode`` to ``fd``. Returns False when a non-blocking attempt contends."""
        operation = to_flock_operation(mode)
        try:
            assert fcntl is not None  # For type checkers.
            fcntl.flock(fd, operation)
        except BlockingIOError:
            return False
        except OSError as e:
            if e.errno in _CONTENTION_ERRNOS:
                return False
            raise
        return True

    def unlock(self, fd: int) -> None:
        assert fcntl is not None  # For type checkers.
        fcntl.flock(fd, fcntl.LOCK_UN)

    def write_pid(self, fd: int, pid: int) -> None:
        """Replace the file content with the decimal PID."""
        os.lseek(fd, 0, os.SEEK_SET)
        os.ftruncate(fd, 0)
        _write_all(fd, str(pid).encode("ascii"))
        os.fsync(fd)

    def read_pid(self, lock_path: Path) -> int | None:
        try:
            content = lock_path.read_text(encoding="ascii").strip()
        except (OSError, UnicodeDecodeError):
            return None
        if not content.isdigit():
            return None
        return int(content)

    def is_held(self, lock_path: Path) -> bool | None:
        """Probe whether any process holds the lock, without disturbing it.

        Returns None when the file does not exist.
        """
        try:
            fd = os.open(str(lock_path), os.O_RDONLY)
        except FileNotFoundError:
            return None
        try:
            if not self.lock(fd, LockMode.EXCLUSIVE | LockMode.NON_BLOCKING):
                return True
            with contextlib.suppress(OSError):
                self.unlock(fd)
            return False
        finally:
            with contextlib.suppress(OSError):
                os.close(fd)


def is_process_running(pid: int) -> bool:
    """Check whether a process with ``pid`` exists on this host."""
    if pid <= 0:
        return False
    try:
        os.kill(pid, 0)  # Signal 0 doesn't kill, just checks
        return True
    except ProcessLookupError:
        return False
    except PermissionError:
        # EPERM means the process exists but we do not have permission to signal it.
        return True
    except OSError as e:
        return e.errno == errno.EPERM
