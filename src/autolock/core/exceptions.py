"""Custom exceptions for autolock.

All exception classes carry a short message plus optional details so
callers can log them directly or surface them on the command line.
"""

from __future__ import annotations

from pathlib import Path


class AutoLockError(Exception):
    """Base exception for all autolock errors."""

    def __init__(self, message: str, details: str | None = None):
        self.message = message
        self.details = details
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message}: {self.details}"
        return self.message


class ConfigurationError(AutoLockError):
    """Exception raised for configuration-related errors.

    Examples:
        - Unreadable .env file
        - Runtime directory that is not a directory
        - Malformed list values in environment variables
    """

    def __init__(self, message: str, field: str | None = None, details: str | None = None):
        self.field = field
        super().__init__(message, details)


class InvalidLockModeError(ConfigurationError):
    """Raised when a lock mode is not a combination of the supported flags.

    Attributes:
        value: The rejected raw value (int or string)
    """

    def __init__(self, value: object, details: str | None = None):
        self.value = value
        super().__init__(f"Unsupported lock mode {value!r}", field="mode", details=details)


class LockError(AutoLockError):
    """Base exception for lock acquisition and release failures.

    Attributes:
        lock_path: Lock file the operation targeted
    """

    def __init__(
        self,
        message: str,
        lock_path: Path | str | None = None,
        details: str | None = None,
        original_error: Exception | None = None,
    ):
        self.lock_path = Path(lock_path) if lock_path is not None else None
        self.original_error = original_error
        super().__init__(message, details)


class AlreadyLockedError(LockError):
    """Raised when a non-blocking acquisition finds the lock held elsewhere.

    Recoverable: the caller decides whether to skip, log or exit nonzero.

    Attributes:
        holder_pid: PID recorded in the lock file, when readable
    """

    def __init__(self, lock_path: Path | str, holder_pid: int | None = None):
        self.holder_pid = holder_pid
        details = f"held by PID {holder_pid}" if holder_pid else None
        super().__init__(f"Lock '{lock_path}' is already held", lock_path=lock_path, details=details)


class LockWriteError(LockError):
    """Raised when the lock was acquired but the holder PID could not be written.

    The lock is released before this is raised.
    """


class LockReleaseError(LockError):
    """Raised when the unlock/close/delete sequence fails.

    The lock file is left in place for manual inspection.
    """


class ActionRejectedError(LockError):
    """Raised by guarded callables when the lock for an action is unavailable.

    Attributes:
        command_name: Command the action belongs to
        action_name: Action that was not executed
    """

    def __init__(
        self,
        command_name: str,
        action_name: str,
        lock_path: Path | str | None = None,
        reason: LockError | None = None,
    ):
        self.command_name = command_name
        self.action_name = action_name
        self.reason = reason
        super().__init__(
            f"Action '{command_name}/{action_name}' was not executed",
            lock_path=lock_path,
            details=str(reason) if reason is not None else None,
            original_error=reason,
        )
