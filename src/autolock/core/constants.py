"""Constants and default values for autolock.

This module centralizes file-layout names, environment variable names
and defaults used throughout the application.
"""

# ==================== LOCK FILE LAYOUT ====================

# Subdirectory of the runtime directory holding lock files
LOCK_DIR_NAME: str = "lock"
LOCK_FILE_SUFFIX: str = ".lock"
LOCK_FILE_PERMISSIONS: int = 0o644

# Runtime directory used when neither arguments nor environment provide one
DEFAULT_RUNTIME_DIR: str = "runtime"

# ==================== ENVIRONMENT VARIABLES ====================

ENV_LOCK_MODE: str = "AUTOLOCK_MODE"
ENV_INCLUDE: str = "AUTOLOCK_INCLUDE"
ENV_EXCLUDE: str = "AUTOLOCK_EXCLUDE"
ENV_RUNTIME_DIR: str = "AUTOLOCK_RUNTIME_DIR"
ENV_LOG_LEVEL: str = "LOG_LEVEL"

# Separator for list-valued environment variables (include/exclude)
ENV_LIST_SEPARATOR: str = ","

# ==================== LOGGING ====================

LOG_FILE_MAX_BYTES: int = 10 * 1024 * 1024  # 10MB max per log file
LOG_FILE_BACKUP_COUNT: int = 5  # Number of backup log files to keep
VALID_LOG_LEVELS: tuple[str, ...] = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

# ==================== CLI EXIT CODES ====================

EXIT_OK: int = 0
EXIT_FAILURE: int = 1
EXIT_CONFIG_ERROR: int = 2
EXIT_LOCKED: int = 75  # EX_TEMPFAIL: try again later (cron re-invocation)
