"""Core module - Foundation components shared by the lock guard and CLI.

This module provides:
- Version information
- Custom exceptions
- Configuration dataclasses
- Constants and defaults
"""

from autolock.core.version import __version__

from autolock.core.exceptions import (
    AutoLockError,
    ConfigurationError,
    InvalidLockModeError,
    LockError,
    AlreadyLockedError,
    LockWriteError,
    LockReleaseError,
    ActionRejectedError,
)

from autolock.core.config import (
    LockConfig,
    LogConfig,
)

from autolock.core.constants import (
    LOCK_DIR_NAME,
    LOCK_FILE_SUFFIX,
    DEFAULT_RUNTIME_DIR,
    EXIT_LOCKED,
)

__all__ = [
    # Version
    '__version__',
    # Exceptions
    'AutoLockError',
    'ConfigurationError',
    'InvalidLockModeError',
    'LockError',
    'AlreadyLockedError',
    'LockWriteError',
    'LockReleaseError',
    'ActionRejectedError',
    # Config dataclasses
    'LockConfig',
    'LogConfig',
    # Constants
    'LOCK_DIR_NAME',
    'LOCK_FILE_SUFFIX',
    'DEFAULT_RUNTIME_DIR',
    'EXIT_LOCKED',
]
