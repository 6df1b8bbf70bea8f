"""Lock guard orchestrating per-action lock acquisition and release."""

from __future__ import annotations

import contextlib
import logging
import os
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from autolock.core.constants import LOCK_DIR_NAME, LOCK_FILE_SUFFIX
from autolock.core.exceptions import (
    AlreadyLockedError,
    LockError,
    LockReleaseError,
    LockWriteError,
)
from autolock.core.locks.backends import FcntlFileLockBackend, LockHandle, is_process_running
from autolock.core.locks.modes import LockMode, parse_lock_mode


def _same_file(lock_path: Path, fd: int) -> bool:
    try:
        on_disk = os.stat(lock_path)
        opened = os.fstat(fd)
    except OSError:
        return False
    return (on_disk.st_dev, on_disk.st_ino) == (opened.st_dev, opened.st_ino)


def lock_dir_for(runtime_dir: Path | str) -> Path:
    return Path(runtime_dir) / LOCK_DIR_NAME


def lock_path_for(command_name: str, action_name: str, runtime_dir: Path | str) -> Path:
    """Return ``{runtime_dir}/lock/{command}-{action}.lock``."""
    return lock_dir_for(runtime_dir) / f"{command_name}-{action_name}{LOCK_FILE_SUFFIX}"


class LockGuard:
    """Acquires and releases one advisory lock file per (command, action).

    The configured mode is only a default; ``acquire`` accepts an explicit
    mode so no process-wide state decides how a lock is taken.

    Usage:
        guard = LockGuard()
        with guard.hold("report", "nightly", runtime_dir):
            ...  # runs while no other process holds report-nightly.lock
    """

    def __init__(
        self,
        mode: LockMode | int | str | None = None,
        *,
        backend: FcntlFileLockBackend | None = None,
        logger: logging.Logger | logging.LoggerAdapter | None = None,
    ):
        self.logger = logger or logging.getLogger(__name__)
        self.backend = backend or FcntlFileLockBackend()
        self._mode = LockMode.default() if mode is None else parse_lock_mode(mode)

    @property
    def mode(self) -> LockMode:
        return self._mode

    def configure(self, mode: LockMode | int | str) -> LockMode:
        """Validate and store the default lock mode.

        Raises:
            InvalidLockModeError: If ``mode`` is outside the four-flag span.
        """
        self._mode = parse_lock_mode(mode)
        self.logger.debug("Lock mode configured: %s", self._mode.describe())
        return self._mode

    def acquire(
        self,
        command_name: str,
        action_name: str,
        runtime_dir: Path | str,
        *,
        mode: LockMode | int | str | None = None,
    ) -> LockHandle:
        """Take the lock for ``command_name``/``action_name`` and record our PID.

        Blocks only when the effective mode lacks ``NON_BLOCKING``.

        Raises:
            AlreadyLockedError: Non-blocking attempt found the lock held.
            LockWriteError: Lock was taken but the PID could not be written.
            LockError: The lock directory or file could not be opened or locked, or
                the mode requests neither EXCLUSIVE nor SHARED.
        """
        effective_mode = self._mode if mode is None else parse_lock_mode(mode)
        lock_dir = lock_dir_for(runtime_dir)
        lock_path = lock_path_for(command_name, action_name, runtime_dir)

        if not effective_mode.requests_lock:
            self.logger.error("Refusing lock %s: mode %s takes no lock", lock_path, effective_mode.describe())
            raise LockError(
                f"Lock mode {effective_mode.describe()} requests neither EXCLUSIVE nor SHARED",
                lock_path=lock_path,
            )

        try:
            lock_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise LockError(
                f"Cannot create lock directory '{lock_dir}'", lock_path=lock_path, details=str(e), original_error=e
            ) from e

        fd = self._open_and_lock(lock_path, effective_mode)

        pid = os.getpid()
        try:
            self.backend.write_pid(fd, pid)
        except OSError as e:
            # Never leave a held lock without its holder PID.
            with contextlib.suppress(OSError):
                self.backend.unlock(fd)
            with contextlib.suppress(OSError):
                os.close(fd)
            self.logger.error("Failed to write PID to %s; lock released (%s)", lock_path, e)
            raise LockWriteError(
                f"Cannot record holder PID in '{lock_path}'", lock_path=lock_path, details=str(e), original_error=e
            ) from e

        self.logger.debug("Acquired lock %s (%s, PID %d)", lock_path, effective_mode.describe(), pid)
        return LockHandle(lock_path=lock_path, fd=fd, mode=effective_mode, pid=pid)

    def release(self, handle: LockHandle) -> None:
        """Unlock, close and delete the lock file behind ``handle``.

        Idempotent: a lock file that is already gone counts as released.

        Raises:
            LockReleaseError: Unlock, close or delete failed. The file is left
                in place when unlock or close fails.
        """
        lock_path = handle.lock_path
        if handle.closed:
            self.logger.debug("Lock %s already released", lock_path)
            return
        if not self._file_matches_handle(handle):
            self._close_quietly(handle)
            self.logger.debug("Lock file %s already removed; nothing to release", lock_path)
            return

        try:
            self.backend.unlock(handle.fd)
            os.close(handle.fd)
        except OSError as e:
            self.logger.error("Failed to release lock %s: %s", lock_path, e)
            raise LockReleaseError(
                f"Cannot release lock '{lock_path}'", lock_path=lock_path, details=str(e), original_error=e
            ) from e
        handle.closed = True

        try:
            lock_path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            self.logger.error("Failed to delete lock file %s: %s", lock_path, e)
            raise LockReleaseError(
                f"Cannot delete lock file '{lock_path}'", lock_path=lock_path, details=str(e), original_error=e
            ) from e
        self.logger.debug("Released lock %s", lock_path)

    @contextlib.contextmanager
    def hold(
        self,
        command_name: str,
        action_name: str,
        runtime_dir: Path | str,
        *,
        mode: LockMode | int | str | None = None,
    ) -> Iterator[LockHandle]:
        """Hold the lock for the duration of a ``with`` block."""
        handle = self.acquire(command_name, action_name, runtime_dir, mode=mode)
        try:
            yield handle
        finally:
            self.release(handle)

    def read_holder_pid(self, lock_path: Path | str) -> int | None:
        return self.backend.read_pid(Path(lock_path))

    def _open_and_lock(self, lock_path: Path, mode: LockMode) -> int:
        """Open and lock ``lock_path``, returning a descriptor locked on the live file."""
        while True:
            try:
                fd = self.backend.open(lock_path)
            except OSError as e:
                raise LockError(
                    f"Cannot open lock file '{lock_path}'", lock_path=lock_path, details=str(e), original_error=e
                ) from e

            if mode.blocking:
                self.logger.debug("Waiting for lock %s (%s)", lock_path, mode.describe())
            try:
                locked = self.backend.lock(fd, mode)
            except OSError as e:
                with contextlib.suppress(OSError):
                    os.close(fd)
                raise LockError(
                    f"Cannot lock '{lock_path}'", lock_path=lock_path, details=str(e), original_error=e
                ) from e

            if not locked:
                with contextlib.suppress(OSError):
                    os.close(fd)
                holder_pid = self.backend.read_pid(lock_path)
                self.logger.warning(
                    "Lock %s is held by another process (PID %s)", lock_path, holder_pid or "unknown"
                )
                raise AlreadyLockedError(lock_path, holder_pid=holder_pid)

            if _same_file(lock_path, fd):
                return fd

            # The previous holder released and deleted the file while we were
            # waiting, so our lock is on an orphaned inode. Lock the new path.
            with contextlib.suppress(OSError):
                self.backend.unlock(fd)
            with contextlib.suppress(OSError):
                os.close(fd)
            self.logger.debug("Lock file %s was replaced during acquisition; retrying", lock_path)

    @staticmethod
    def _file_matches_handle(handle: LockHandle) -> bool:
        """True while the path still names the file our descriptor has open.

        A lock file removed and recreated by another process counts as gone.
        """
        return _same_file(handle.lock_path, handle.fd)

    @staticmethod
    def _close_quietly(handle: LockHandle) -> None:
        if handle.closed:
            return
        with contextlib.suppress(OSError):
            os.close(handle.fd)
        handle.closed = True


@dataclass
class LockStatus:
    """Diagnostic view of one lock file."""

    lock_path: Path
    holder_pid: int | None
    pid_running: bool
    held: bool

    @property
    def stale(self) -> bool:
        return not self.held

    def to_dict(self) -> dict[str, Any]:
        return {
            "lock_path": str(self.lock_path),
            "holder_pid": self.holder_pid,
            "pid_running": self.pid_running,
            "held": self.held,
            "stale": self.stale,
        }


def list_locks(runtime_dir: Path | str, backend: FcntlFileLockBackend | None = None) -> list[LockStatus]:
    """Describe every lock file under ``runtime_dir/lock``."""
    backend = backend or FcntlFileLockBackend()
    lock_dir = lock_dir_for(runtime_dir)
    if not lock_dir.is_dir():
        return []

    statuses = []
    for lock_path in sorted(lock_dir.glob(f"*{LOCK_FILE_SUFFIX}")):
        held = backend.is_held(lock_path)
        if held is None:
            continue  # Released between glob and probe
        pid = backend.read_pid(lock_path)
        statuses.append(
            LockStatus(
                lock_path=lock_path,
                holder_pid=pid,
                pid_running=is_process_running(pid) if pid is not None else False,
                held=held,
            )
        )
    return statuses


def remove_stale_lock(
    lock_path: Path,
    backend: FcntlFileLockBackend | None = None,
    logger: logging.Logger | logging.LoggerAdapter | None = None,
) -> bool:
    """Delete ``lock_path`` if no process holds its advisory lock.

    The file is unlinked while we hold the lock ourselves, so a live holder
    is never removed.
    """
    backend = backend or FcntlFileLockBackend()
    log = logger or logging.getLogger(__name__)
    try:
        fd = backend.open(lock_path)
    except OSError as e:
        log.warning("Cannot open lock file %s: %s", lock_path, e)
        return False
    try:
        if not backend.lock(fd, LockMode.EXCLUSIVE | LockMode.NON_BLOCKING):
            return False
        if not _same_file(lock_path, fd):
            # Path now names a newer file
            return False
        stale_pid = backend.read_pid(lock_path)
        with contextlib.suppress(FileNotFoundError):
            lock_path.unlink()
        log.warning("Removed stale lock file %s (last holder PID %s)", lock_path, stale_pid or "unknown")
        return True
    finally:
        with contextlib.suppress(OSError):
            backend.unlock(fd)
        with contextlib.suppress(OSError):
            os.close(fd)
