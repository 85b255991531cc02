"""Tests for models module."""

from pathlib import Path

import pytest

from src.watcher.models import EventKind, LoopState, WatchEvent, WatchKey


class TestEventKind:
    """Tests for EventKind enum."""

    def test_event_kind_values(self):
        assert EventKind.CREATE.value == "create"
        assert EventKind.DELETE.value == "delete"
        assert EventKind.MODIFY.value == "modify"
        assert EventKind.OVERFLOW.value == "overflow"

    def test_loop_states(self):
        assert [s.value for s in LoopState] == ["initializing", "watching", "triggered", "stopped"]


class TestWatchEvent:
    """Tests for WatchEvent class."""

    def test_path_event(self):
        event = WatchEvent(EventKind.MODIFY, Path("Foo.txt"))

        assert event.has_path is True
        assert event.count == 1

    def test_overflow_event_has_no_path(self):
        event = WatchEvent(EventKind.OVERFLOW, count=12)

        assert event.has_path is False
        assert event.context is None

    def test_absolute_context_raises(self):
        with pytest.raises(ValueError, match="relative"):
            WatchEvent(EventKind.CREATE, Path("/abs/Foo.txt").absolute())

    def test_overflow_with_context_raises(self):
        with pytest.raises(ValueError):
            WatchEvent(EventKind.OVERFLOW, Path("Foo.txt"))

    def test_event_is_immutable(self):
        event = WatchEvent(EventKind.CREATE, Path("a.py"))

        with pytest.raises(AttributeError):
            event.kind = EventKind.DELETE

    def test_event_equality(self):
        assert WatchEvent(EventKind.CREATE, Path("a.py")) == WatchEvent(EventKind.CREATE, Path("a.py"))
        assert WatchEvent(EventKind.CREATE, Path("a.py")) != WatchEvent(EventKind.CREATE, Path("a.py"), count=2)


class TestWatchKey:
    """Tests for WatchKey class."""

    def test_keys_compare_by_identity(self, tmp_path):
        first = WatchKey(tmp_path)
        second = WatchKey(tmp_path)

        assert first != second
        assert first == first
        assert len({first, second}) == 2

    def test_new_key_is_valid(self, tmp_path):
        key = WatchKey(tmp_path)

        assert key.valid is True
        assert key.directory == tmp_path

    def test_repr(self, tmp_path):
        key = WatchKey(tmp_path)
        key.valid = False

        assert "cancelled" in repr(key)
        assert str(tmp_path) in repr(key)
