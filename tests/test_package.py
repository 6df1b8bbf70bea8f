"""Tests for the top-level package exports"""

import pytest

import autolock
from autolock.core.locks.manager import LockGuard
from autolock.interceptor import auto_lock


def test_lazy_exports_resolve_to_defining_modules():
    assert autolock.LockGuard is LockGuard
    assert autolock.auto_lock is auto_lock


@pytest.mark.parametrize("name", sorted(set(autolock.__all__) - {"__version__"}))
def test_every_listed_export_resolves(name):
    assert getattr(autolock, name) is not None


def test_unknown_attribute_raises():
    with pytest.raises(AttributeError, match="no attribute 'LockManager'"):
        autolock.LockManager


def test_version():
    assert autolock.__version__ == "1.0.0"
