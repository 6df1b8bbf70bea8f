"""Configuration dataclasses for autolock.

These dataclasses centralize the lock and logging options for type safety
and easy testing. They can be built from command-line arguments, from the
environment (optionally seeded by a ``.env`` file), or used directly.
"""

from __future__ import annotations

import argparse
import os
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from dotenv import dotenv_values, find_dotenv

from autolock.core.constants import (
    DEFAULT_RUNTIME_DIR,
    ENV_EXCLUDE,
    ENV_INCLUDE,
    ENV_LIST_SEPARATOR,
    ENV_LOCK_MODE,
    ENV_LOG_LEVEL,
    ENV_RUNTIME_DIR,
    LOG_FILE_BACKUP_COUNT,
    LOG_FILE_MAX_BYTES,
)
from autolock.core.exceptions import ConfigurationError
from autolock.core.locks.filter import ActionFilter
from autolock.core.locks.modes import LockMode, parse_lock_mode


def split_list(value: str | Iterable[str] | None) -> list[str]:
    """Split a comma separated string (or flatten a list of them) into names."""
    if value is None:
        return []
    items = [value] if isinstance(value, str) else list(value)
    names: list[str] = []
    for item in items:
        names.extend(part.strip() for part in item.split(ENV_LIST_SEPARATOR) if part.strip())
    return names


def _read_environment(
    environ: Mapping[str, str] | None,
    dotenv_path: str | os.PathLike[str] | None,
) -> dict[str, str]:
    """Merge ``.env`` values under the process environment (environment wins)."""
    if dotenv_path is not None:
        path = Path(dotenv_path)
        if not path.is_file():
            raise ConfigurationError(f"Dotenv file not found: {path}", field="dotenv_path")
        resolved = str(path)
    else:
        resolved = find_dotenv(usecwd=True)

    merged: dict[str, str] = {}
    if resolved:
        merged.update({k: v for k, v in dotenv_values(resolved).items() if v is not None})
    merged.update(os.environ if environ is None else environ)
    return merged


@dataclass
class LockConfig:
    """Configuration for guarded actions of one command.

    Attributes:
        mode: Lock mode flags (default: EXCLUSIVE | NON_BLOCKING)
        include: Action names that are always guarded (case-insensitive)
        exclude: Action names that are not guarded unless included
        runtime_dir: Directory whose ``lock/`` subdirectory holds lock files
    """

    mode: LockMode = field(default_factory=LockMode.default)
    include: list[str] = field(default_factory=list)
    exclude: list[str] = field(default_factory=list)
    runtime_dir: Path = field(default_factory=lambda: Path(DEFAULT_RUNTIME_DIR))

    def __post_init__(self) -> None:
        self.mode = parse_lock_mode(self.mode)
        self.include = split_list(self.include)
        self.exclude = split_list(self.exclude)
        self.runtime_dir = Path(self.runtime_dir)
        if self.runtime_dir.exists() and not self.runtime_dir.is_dir():
            raise ConfigurationError(
                f"Runtime path is not a directory: {self.runtime_dir}", field="runtime_dir"
            )

    @property
    def action_filter(self) -> ActionFilter:
        return ActionFilter.from_lists(self.include, self.exclude)

    def to_dict(self) -> dict[str, Any]:
        return {
            "mode": int(self.mode),
            "mode_name": self.mode.describe(),
            "include": list(self.include),
            "exclude": list(self.exclude),
            "runtime_dir": str(self.runtime_dir),
        }

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        dotenv_path: str | os.PathLike[str] | None = None,
    ) -> LockConfig:
        """Build configuration from ``AUTOLOCK_*`` variables.

        A ``.env`` file (explicit path, or the nearest one found from the
        working directory) supplies values missing from the environment.

        Raises:
            InvalidLockModeError: If AUTOLOCK_MODE is not a valid mode.
            ConfigurationError: If an explicit dotenv file does not exist.
        """
        env = _read_environment(environ, dotenv_path)
        raw_mode = env.get(ENV_LOCK_MODE, "").strip()
        return cls(
            mode=parse_lock_mode(raw_mode) if raw_mode else LockMode.default(),
            include=split_list(env.get(ENV_INCLUDE)),
            exclude=split_list(env.get(ENV_EXCLUDE)),
            runtime_dir=Path(env.get(ENV_RUNTIME_DIR) or DEFAULT_RUNTIME_DIR),
        )

    @classmethod
    def from_args(cls, args: argparse.Namespace, base: LockConfig | None = None) -> LockConfig:
        """Overlay parsed command-line arguments on ``base`` (or the environment)."""
        base = base or cls.from_env()
        mode = getattr(args, "mode", None)
        include = getattr(args, "include", None)
        exclude = getattr(args, "exclude", None)
        runtime_dir = getattr(args, "runtime_dir", None)
        return cls(
            mode=base.mode if mode is None else parse_lock_mode(mode),
            include=base.include if include is None else split_list(include),
            exclude=base.exclude if exclude is None else split_list(exclude),
            runtime_dir=base.runtime_dir if runtime_dir is None else Path(runtime_dir),
        )


@dataclass
class LogConfig:
    """Configuration for logging behavior.

    Attributes:
        level: Logging level string (default: LOG_LEVEL env var or "INFO")
        log_format: "text" or "json"
        log_file: Optional log file path (rotated)
        file_max_bytes: Maximum size per log file (default: 10MB)
        file_backup_count: Number of backup log files (default: 5)
    """

    level: str = field(default_factory=lambda: os.environ.get(ENV_LOG_LEVEL, "INFO"))
    log_format: str = "text"
    log_file: Path | None = None
    file_max_bytes: int = LOG_FILE_MAX_BYTES
    file_backup_count: int = LOG_FILE_BACKUP_COUNT

    @classmethod
    def from_args(cls, args: argparse.Namespace) -> LogConfig:
        level = getattr(args, "log_level", None)
        log_file = getattr(args, "log_file", None)
        config = cls(
            log_format=getattr(args, "log_format", None) or "text",
            log_file=Path(log_file) if log_file else None,
        )
        if level:
            config.level = level
        return config
