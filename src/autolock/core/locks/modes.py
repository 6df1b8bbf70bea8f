"""Lock mode flags and their mapping onto ``flock`` operations."""

from __future__ import annotations

import re
from enum import IntFlag

from autolock.core.exceptions import InvalidLockModeError

try:
    import fcntl
except ImportError:  # pragma: no cover - exercised on non-POSIX only
    fcntl = None

_TOKEN_SPLIT = re.compile(r"[|,+\s]+")


class LockMode(IntFlag):
    """Combinable lock flags. Values match the POSIX ``flock`` constants."""

    SHARED = 1
    EXCLUSIVE = 2
    NON_BLOCKING = 4
    UNLOCK = 8

    @classmethod
    def default(cls) -> LockMode:
        return cls.EXCLUSIVE | cls.NON_BLOCKING

    @property
    def blocking(self) -> bool:
        return not self & LockMode.NON_BLOCKING

    @property
    def requests_lock(self) -> bool:
        """True when the mode asks for an EXCLUSIVE or SHARED lock."""
        return bool(self & (LockMode.EXCLUSIVE | LockMode.SHARED))

    def describe(self) -> str:
        names = [flag.name for flag in LockMode if flag in self]
        return "|".join(names) if names else "NONE"


# Every combination of the four flags: 0 through 15.
_ALL_FLAGS = int(LockMode.SHARED | LockMode.EXCLUSIVE | LockMode.NON_BLOCKING | LockMode.UNLOCK)

_SYMBOLS: dict[str, LockMode] = {}
for _flag, _aliases in (
    (LockMode.SHARED, ("SHARED", "SH", "LOCK_SH")),
    (LockMode.EXCLUSIVE, ("EXCLUSIVE", "EX", "LOCK_EX")),
    (LockMode.NON_BLOCKING, ("NON_BLOCKING", "NONBLOCKING", "NON-BLOCKING", "NB", "LOCK_NB")),
    (LockMode.UNLOCK, ("UNLOCK", "UN", "LOCK_UN")),
):
    for _alias in _aliases:
        _SYMBOLS[_alias] = _flag


def _from_int(value: int, raw: object) -> LockMode:
    if value < 0 or value & ~_ALL_FLAGS:
        raise InvalidLockModeError(raw, details=f"expected a combination of flags in range 0..{_ALL_FLAGS}")
    return LockMode(value)


def _from_str(value: str) -> LockMode:
    text = value.strip()
    if not text:
        raise InvalidLockModeError(value, details="empty lock mode")
    try:
        return _from_int(int(text), value)
    except ValueError:
        pass

    mode = LockMode(0)
    for token in _TOKEN_SPLIT.split(text.upper()):
        if not token:
            continue
        flag = _SYMBOLS.get(token)
        if flag is None:
            raise InvalidLockModeError(value, details=f"unknown flag '{token}'")
        mode |= flag
    return mode


def parse_lock_mode(value: LockMode | int | str) -> LockMode:
    """Validate a lock mode given as a flag, an integer, or a symbolic string.

    Accepted strings are decimal numbers ("6") or flag names joined with
    ``|``, ``,`` or ``+`` ("exclusive|nonblocking", "LOCK_EX|LOCK_NB").

    Raises:
        InvalidLockModeError: If the value is not drawn only from the four flags.
    """
    if isinstance(value, bool):
        raise InvalidLockModeError(value, details="booleans are not lock modes")
    if isinstance(value, int):
        return _from_int(int(value), value)
    if isinstance(value, str):
        return _from_str(value)
    raise InvalidLockModeError(value, details=f"unsupported type {type(value).__name__}")


def to_flock_operation(mode: LockMode) -> int:
    """Translate a mode into the operation argument for ``fcntl.flock``.

    ``EXCLUSIVE`` wins when both ``EXCLUSIVE`` and ``SHARED`` are set.

    Raises:
        ValueError: If the mode requests neither lock type.
    """
    if fcntl is None:
        raise OSError("fcntl.flock is not available on this platform")
    if not mode.requests_lock:
        raise ValueError(f"Lock mode {mode.describe()} requests neither EXCLUSIVE nor SHARED")
    operation = fcntl.LOCK_EX if mode & LockMode.EXCLUSIVE else fcntl.LOCK_SH
    if mode & LockMode.NON_BLOCKING:
        operation |= fcntl.LOCK_NB
    return operation
