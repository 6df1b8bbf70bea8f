"""Before/after hooks that a dispatcher invokes around each action.

The dispatcher owns argument parsing and routing; this module only decides
whether an action may run and makes sure its lock is released afterwards.

Usage:
    interceptor = ActionInterceptor("report", config=LockConfig.from_env())
    if interceptor.before_action("nightly"):
        try:
            result = nightly()
        finally:
            interceptor.after_action("nightly", result)
"""

from __future__ import annotations

import functools
import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, TypeVar

from autolock.core.config import LockConfig
from autolock.core.exceptions import ActionRejectedError, LockError, LockReleaseError
from autolock.core.locks.backends import LockHandle
from autolock.core.locks.filter import ActionFilter, normalize_action
from autolock.core.locks.manager import LockGuard, lock_path_for
from autolock.core.logging import with_log_context

F = TypeVar("F", bound=Callable[..., Any])


class GuardState(Enum):
    """States of one guarded action invocation."""

    IDLE = "idle"
    FILTERING = "filtering"
    UNLOCKED = "unlocked"  # Not lock-eligible; action runs without a lock
    ACQUIRING = "acquiring"
    LOCKED = "locked"
    REJECTED = "rejected"  # Lock unavailable; action must not run
    RELEASING = "releasing"


@dataclass
class ActionOutcome:
    """Result of running one action through the interceptor."""

    action: str
    executed: bool
    locked: bool = False
    result: Any = None
    rejection: LockError | None = None
    release_error: LockReleaseError | None = None


class ActionInterceptor:
    """Guards the actions of one command with per-action lock files.

    Locks are taken in the mode of ``guard``. When no guard is given one is
    built from ``config.mode``. Action names match case-insensitively, so
    ``after_action("nightly")`` releases a lock taken by ``before_action("Nightly")``.
    """

    def __init__(
        self,
        command_name: str,
        *,
        runtime_dir: Path | str | None = None,
        config: LockConfig | None = None,
        guard: LockGuard | None = None,
        logger: logging.Logger | logging.LoggerAdapter | None = None,
    ):
        self.command_name = command_name
        self.config = config or LockConfig()
        self.runtime_dir = Path(runtime_dir) if runtime_dir is not None else self.config.runtime_dir
        self.action_filter: ActionFilter = self.config.action_filter
        self.logger = with_log_context(logger or logging.getLogger(__name__), command=command_name)
        self.guard = guard or LockGuard(self.config.mode, logger=self.logger)

        self._handles: dict[str, LockHandle] = {}
        self._state = GuardState.IDLE
        self.last_rejection: LockError | None = None
        self.last_release_error: LockReleaseError | None = None

    @property
    def state(self) -> GuardState:
        return self._state

    def lock_path(self, action: str) -> Path:
        return lock_path_for(self.command_name, action, self.runtime_dir)

    def is_locked(self, action: str) -> bool:
        return normalize_action(action) in self._handles

    def before_action(self, action: str) -> bool:
        """Return True when ``action`` may run, taking its lock if it needs one."""
        self._state = GuardState.FILTERING
        self.last_rejection = None
        if not self.action_filter.is_lock_required(action):
            self._state = GuardState.UNLOCKED
            self.logger.debug("Action '%s' is not lock-eligible", action)
            return True

        self._state = GuardState.ACQUIRING
        try:
            handle = self.guard.acquire(self.command_name, action, self.runtime_dir)
        except LockError as e:
            self._state = GuardState.REJECTED
            self.last_rejection = e
            self.logger.warning("Skipping action '%s': %s", action, e, extra={"action": action})
            return False

        self._handles[normalize_action(action)] = handle
        self._state = GuardState.LOCKED
        return True

    def after_action(self, action: str, result: Any = None) -> Any:
        """Release the lock taken for ``action``; returns ``result`` unchanged.

        Release failures are logged and kept on ``last_release_error`` so they
        never mask the outcome of an action that already ran.
        """
        self.last_release_error = None
        handle = self._handles.pop(normalize_action(action), None)
        if handle is None:
            self._state = GuardState.IDLE
            return result

        self._state = GuardState.RELEASING
        try:
            self.guard.release(handle)
        except LockReleaseError as e:
            self.last_release_error = e
            self.logger.error(
                "Lock for action '%s' was not released cleanly; remove %s manually if it persists",
                action,
                handle.lock_path,
                extra={"action": action},
            )
        finally:
            self._state = GuardState.IDLE
        return result

    def run(self, action: str, func: Callable[..., Any], *args: Any, **kwargs: Any) -> ActionOutcome:
        """Run ``func`` as ``action`` between the hooks; release happens even if it raises."""
        if not self.before_action(action):
            return ActionOutcome(action=action, executed=False, rejection=self.last_rejection)

        locked = self.is_locked(action)
        try:
            result = func(*args, **kwargs)
        finally:
            self.after_action(action)
        return ActionOutcome(
            action=action,
            executed=True,
            locked=locked,
            result=result,
            release_error=self.last_release_error,
        )


def auto_lock(
    command_name: str,
    action_name: str | None = None,
    *,
    config: LockConfig | None = None,
    runtime_dir: Path | str | None = None,
    guard: LockGuard | None = None,
) -> Callable[[F], F]:
    """Decorate a function so each call runs as a guarded action.

    The action name defaults to the function name. Configuration defaults to
    ``LockConfig.from_env()`` resolved at call time.

    Raises:
        ActionRejectedError: When the lock is unavailable and the function was not called.
    """

    def decorator(func: F) -> F:
        name = action_name or func.__name__

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            interceptor = ActionInterceptor(
                command_name,
                runtime_dir=runtime_dir,
                config=config or LockConfig.from_env(),
                guard=guard,
            )
            outcome = interceptor.run(name, func, *args, **kwargs)
            if not outcome.executed:
                raise ActionRejectedError(
                    command_name, name, lock_path=interceptor.lock_path(name), reason=outcome.rejection
                )
            return outcome.result

        return wrapper  # type: ignore[return-value]

    return decorator
