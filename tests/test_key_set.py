"""Tests for the watch key set."""

import threading
from pathlib import Path

from src.watcher.key_set import WatchKeySet
from src.watcher.models import WatchKey


class TestWatchKeySet:
    """Tests for WatchKeySet class."""

    def test_create_empty_set(self):
        keys = WatchKeySet()
        assert len(keys) == 0
        assert keys.snapshot() == ()

    def test_add_key(self, tmp_path):
        keys = WatchKeySet()
        key = WatchKey(tmp_path)

        assert keys.add(key) is True
        assert len(keys) == 1
        assert key in keys

    def test_add_duplicate_key(self, tmp_path):
        keys = WatchKeySet()
        key = WatchKey(tmp_path)
        keys.add(key)

        assert keys.add(key) is False
        assert len(keys) == 1

    def test_unknown_key_not_contained(self, tmp_path):
        keys = WatchKeySet()
        keys.add(WatchKey(tmp_path))

        assert WatchKey(tmp_path) not in keys

    def test_preserves_insertion_order(self):
        keys = WatchKeySet()
        added = [WatchKey(Path(f"/proj/src/d{i}")) for i in range(5)]
        for key in reversed(added):
            keys.add(key)

        assert keys.snapshot() == tuple(reversed(added))
        assert list(keys) == list(reversed(added))

    def test_iteration_is_a_snapshot(self, tmp_path):
        keys = WatchKeySet()
        keys.add(WatchKey(tmp_path / "a"))

        for _ in keys:
            keys.add(WatchKey(tmp_path / "b"))

        assert len(keys) == 2

    def test_concurrent_add_and_lookup(self):
        keys = WatchKeySet()
        added = [WatchKey(Path(f"/proj/{i}")) for i in range(400)]
        errors = []

        def writer(chunk):
            for key in chunk:
                keys.add(key)

        def reader():
            try:
                for _ in range(200):
                    for key in keys:
                        assert key in keys
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=writer, args=(added[i::4],)) for i in range(4)]
        threads.append(threading.Thread(target=reader))
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert errors == []
        assert len(keys) == 400
