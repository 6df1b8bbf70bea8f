"""Locking subsystem guarding command-line actions.

This package keeps mode parsing, the include/exclude policy and the
acquire/release lifecycle behind a small stable API.
"""

from autolock.core.locks.backends import FcntlFileLockBackend, LockHandle, is_process_running
from autolock.core.locks.filter import ActionFilter, is_lock_required, normalize_action
from autolock.core.locks.manager import (
    LockGuard,
    LockStatus,
    list_locks,
    lock_dir_for,
    lock_path_for,
    remove_stale_lock,
)
from autolock.core.locks.modes import LockMode, parse_lock_mode, to_flock_operation

__all__ = [
    "ActionFilter",
    "FcntlFileLockBackend",
    "LockGuard",
    "LockHandle",
    "LockStatus",
    "LockMode",
    "is_lock_required",
    "is_process_running",
    "list_locks",
    "lock_dir_for",
    "lock_path_for",
    "normalize_action",
    "parse_lock_mode",
    "remove_stale_lock",
    "to_flock_operation",
]
