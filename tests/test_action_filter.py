"""Tests for the include/exclude lock policy"""

import dataclasses

import pytest

from autolock.core.locks.filter import ActionFilter, is_lock_required, normalize_action


@pytest.mark.parametrize(
    "action, include, exclude, expected",
    [
        # Empty include list: everything is guarded unless excluded
        ("foo", [], [], True),
        ("Foo", [], ["foo"], False),
        ("foo", [], ["FOO"], False),
        ("foo", [], ["bar"], True),
        ("foo", None, None, True),
        # Non-empty include list: include wins over exclude
        ("bar", ["bar"], ["bar"], True),
        ("BAR", ["Bar"], [], True),
        ("baz", ["bar"], ["baz"], False),
        ("BAZ", ["bar"], ["baz"], False),
        # Neither included nor excluded is still guarded
        ("qux", ["bar"], ["baz"], True),
        ("qux", ["bar"], [], True),
        # Only case is folded; whitespace is part of the name
        (" Foo ", [], ["foo"], True),
        (" Foo ", [], [" FOO"], False),
    ],
)
def test_is_lock_required(action, include, exclude, expected):
    assert is_lock_required(action, include, exclude) is expected


def test_blank_names_are_ignored():
    assert is_lock_required("foo", ["", "  "], []) is True
    assert ActionFilter.from_lists(["", " ", "X"], []).include == frozenset({"x"})


def test_normalize_action():
    assert normalize_action("NightLY") == "nightly"
    assert normalize_action(" NightLY") == " nightly"


class TestActionFilter:
    """ActionFilter binds normalized include/exclude sets"""

    def test_from_lists_normalizes(self):
        action_filter = ActionFilter.from_lists(["Import", "EXPORT"], ["Cleanup"])
        assert action_filter.include == frozenset({"import", "export"})
        assert action_filter.exclude == frozenset({"cleanup"})

    def test_is_lock_required_matches_function(self):
        action_filter = ActionFilter.from_lists([], ["cleanup"])
        assert action_filter.is_lock_required("CLEANUP") is False
        assert action_filter.is_lock_required("import") is True

    def test_default_filter_guards_everything(self):
        assert ActionFilter().is_lock_required("anything") is True

    def test_filter_is_immutable(self):
        action_filter = ActionFilter.from_lists(["a"], ["b"])
        with pytest.raises(dataclasses.FrozenInstanceError):
            action_filter.include = frozenset()
