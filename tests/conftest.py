"""Pytest configuration and fixtures for autolock tests"""
import logging

import pytest

from autolock.core.constants import ENV_EXCLUDE, ENV_INCLUDE, ENV_LOCK_MODE, ENV_RUNTIME_DIR
from autolock.core.locks.manager import LockGuard


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch, tmp_path):
    """Keep AUTOLOCK_* variables and stray .env files out of every test"""
    for name in (ENV_LOCK_MODE, ENV_INCLUDE, ENV_EXCLUDE, ENV_RUNTIME_DIR):
        monkeypatch.delenv(name, raising=False)
    workdir = tmp_path / "cwd"
    workdir.mkdir()
    monkeypatch.chdir(workdir)


@pytest.fixture
def runtime_dir(tmp_path):
    """Writable runtime directory; lock files land in its lock/ subdirectory"""
    path = tmp_path / "runtime"
    path.mkdir()
    return path


@pytest.fixture
def guard():
    """LockGuard with the default EXCLUSIVE | NON_BLOCKING mode"""
    return LockGuard()


@pytest.fixture
def restore_root_logging():
    """Undo root logger changes made by setup_logging"""
    handlers = logging.root.handlers[:]
    level = logging.root.level
    yield
    for handler in logging.root.handlers[:]:
        if handler not in handlers:
            handler.close()
            logging.root.removeHandler(handler)
    for handler in handlers:
        if handler not in logging.root.handlers:
            logging.root.addHandler(handler)
    logging.root.setLevel(level)
