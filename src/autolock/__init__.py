"""
autolock - advisory per-action locking for command-line jobs

Prevents two invocations of the same (command, action) pair from running
concurrently on one host, e.g. overlapping cron runs.
"""

from __future__ import annotations

import importlib
from typing import TYPE_CHECKING, Any

from autolock.core.version import __version__

_EXPORTS = {
    "ActionFilter": "autolock.core.locks.filter",
    "ActionInterceptor": "autolock.interceptor",
    "GuardState": "autolock.interceptor",
    "LockConfig": "autolock.core.config",
    "LockGuard": "autolock.core.locks.manager",
    "LockHandle": "autolock.core.locks.backends",
    "LockMode": "autolock.core.locks.modes",
    "auto_lock": "autolock.interceptor",
    "is_lock_required": "autolock.core.locks.filter",
    "parse_lock_mode": "autolock.core.locks.modes",
}

__all__ = ["__version__", *_EXPORTS]

if TYPE_CHECKING:
    from autolock.core.config import LockConfig
    from autolock.core.locks.backends import LockHandle
    from autolock.core.locks.filter import ActionFilter, is_lock_required
    from autolock.core.locks.manager import LockGuard
    from autolock.core.locks.modes import LockMode, parse_lock_mode
    from autolock.interceptor import ActionInterceptor, GuardState, auto_lock


def __getattr__(name: str) -> Any:
    if name in _EXPORTS:
        module = importlib.import_module(_EXPORTS[name])
        return getattr(module, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
