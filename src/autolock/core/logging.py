"""Logging helpers for autolock.

Log output goes to stderr (and optionally a rotating file) so a guarded
program keeps sole use of stdout. Lock events carry ``command``, ``action``
and ``lock_path`` context that the JSON formatter lifts to top-level keys.
"""

import atexit
import json
import logging
import sys
from datetime import UTC, datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path

from autolock.core.config import LogConfig
from autolock.core.constants import VALID_LOG_LEVELS

_TEXT_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"

# Attributes every LogRecord has; anything else on a record came from `extra`.
_STANDARD_RECORD_ATTRS = frozenset(logging.makeLogRecord({}).__dict__) | {"message", "asctime"}

# Lock context keys come first in JSON output, in this order.
_CONTEXT_KEYS = ("command", "action", "lock_path", "holder_pid", "mode")


def _render_message(record: logging.LogRecord) -> str:
    try:
        return record.getMessage()
    except Exception:
        # A bad placeholder must not lose the log line.
        return f"{record.msg!s} [log-message-format-error]"


def _record_extras(record: logging.LogRecord) -> dict[str, object]:
    extras = {
        key: value
        for key, value in record.__dict__.items()
        if isinstance(key, str) and key not in _STANDARD_RECORD_ATTRS and not key.startswith("_")
    }
    ordered = {key: extras.pop(key) for key in _CONTEXT_KEYS if key in extras}
    ordered.update(sorted(extras.items()))
    return ordered


class JSONFormatter(logging.Formatter):
    """
    One JSON object per line.

    Fields passed through ``extra`` or attached with ``with_log_context``
    are merged into the object; values that are not JSON types are
    rendered with ``str``.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, object] = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": _render_message(record),
            "process": record.process,
            "location": f"{record.module}:{record.funcName}:{record.lineno}",
        }
        for key, value in _record_extras(record).items():
            entry.setdefault(key, value)
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class ContextLoggerAdapter(logging.LoggerAdapter):
    """LoggerAdapter whose bound context is overridden by per-call ``extra``."""

    def process(self, msg, kwargs):
        call_extra = kwargs.get("extra") or {}
        kwargs["extra"] = {**self.extra, **call_extra}
        return msg, kwargs


def with_log_context(
    logger: logging.Logger | logging.LoggerAdapter, **context: object
) -> logging.Logger | logging.LoggerAdapter:
    """Bind ``context`` to ``logger``; ``None`` values are left out.

    Adapters are flattened, so binding twice yields one adapter over the
    underlying Logger with both sets of fields.
    """
    base = logger
    bound: dict[str, object] = {}
    while isinstance(base, logging.LoggerAdapter):
        bound = {**dict(base.extra or {}), **bound}
        base = base.logger
    if not isinstance(base, logging.Logger):
        return logger

    bound.update((key, value) for key, value in context.items() if value is not None)
    return ContextLoggerAdapter(base, bound)


def _resolve_level(level: str) -> int:
    name = (level or "").upper()
    if name not in VALID_LOG_LEVELS:
        print(f"Warning: Invalid log level '{level}', using INFO", file=sys.stderr)
        name = "INFO"
    return logging.getLevelName(name)


def _build_handlers(config: LogConfig) -> list[logging.Handler]:
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if config.log_file is None:
        return handlers

    log_file = Path(config.log_file)
    try:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            RotatingFileHandler(log_file, maxBytes=config.file_max_bytes, backupCount=config.file_backup_count)
        )
    except OSError as e:
        print(f"Warning: Cannot open log file {log_file}: {e}. Logging to console only.", file=sys.stderr)
    return handlers


_shutdown_registered = False


def setup_logging(config: LogConfig | None = None) -> logging.Logger:
    """Configure root logging for the autolock CLI.

    Args:
        config: Logging configuration; defaults to ``LogConfig()`` which reads
            the LOG_LEVEL environment variable.

    Returns:
        The ``autolock`` package logger.
    """
    global _shutdown_registered

    config = config or LogConfig()
    if not _shutdown_registered:
        atexit.register(logging.shutdown)
        _shutdown_registered = True

    level = _resolve_level(config.level)
    if config.log_format.lower() == "json":
        formatter: logging.Formatter = JSONFormatter()
    else:
        formatter = logging.Formatter(_TEXT_FORMAT)

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    for handler in _build_handlers(config):
        handler.setFormatter(formatter)
        handler.setLevel(level)
        root.addHandler(handler)
    root.setLevel(level)

    logger = logging.getLogger("autolock")
    logger.setLevel(logging.NOTSET)
    logger.propagate = True
    return logger
