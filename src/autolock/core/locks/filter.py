"""Include/exclude policy deciding which actions are guarded by a lock."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field


def normalize_action(action: str) -> str:
    return action.lower()


def _normalize_all(actions: Iterable[str] | None) -> frozenset[str]:
    if not actions:
        return frozenset()
    return frozenset(normalize_action(a) for a in actions if a and not a.isspace())


def is_lock_required(action: str, include: Iterable[str] | None, exclude: Iterable[str] | None) -> bool:
    """Decide whether ``action`` must run under a lock.

    Comparisons are case-insensitive. With an empty include list every action
    is guarded unless excluded. With a non-empty include list an action is
    guarded when it is included or simply not excluded, so an explicit include
    overrides an exclude.
    """
    name = normalize_action(action)
    included = _normalize_all(include)
    excluded = _normalize_all(exclude)

    if not included:
        return name not in excluded
    return name not in excluded or name in included


@dataclass(frozen=True)
class ActionFilter:
    """Normalized include/exclude sets bound to one command."""

    include: frozenset[str] = field(default_factory=frozenset)
    exclude: frozenset[str] = field(default_factory=frozenset)

    @classmethod
    def from_lists(cls, include: Iterable[str] | None = None, exclude: Iterable[str] | None = None) -> ActionFilter:
        return cls(include=_normalize_all(include), exclude=_normalize_all(exclude))

    def is_lock_required(self, action: str) -> bool:
        return is_lock_required(action, self.include, self.exclude)
