"""Shared fixtures: an in-memory watch service driven by the tests."""

import queue
import threading
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set

import pytest

from src.watcher.exceptions import RegistrationError, WatchServiceClosedError
from src.watcher.models import EventKind, WatchEvent, WatchKey
from src.watcher.service import DEFAULT_EVENT_KINDS, WatchService


class FakeWatchService(WatchService):
    """WatchService whose keys and events are pushed by the test."""

    def __init__(self, fail_on: Iterable[Path] = ()):
        self.fail_on: Set[Path] = {Path(p) for p in fail_on}
        self.registered: List[Path] = []
        self.kinds: Dict[Path, tuple] = {}
        self.keys: Dict[Path, WatchKey] = {}
        self.resets: List[WatchKey] = []
        self.poll_count = 0
        self.closed = False
        self.poll_errors: List[Exception] = []
        self._pending: Dict[WatchKey, List[WatchEvent]] = {}
        self._ready: queue.Queue = queue.Queue()
        self._lock = threading.Lock()

    def register(self, directory, kinds=DEFAULT_EVENT_KINDS) -> WatchKey:
        path = Path(directory)
        if path in self.fail_on:
            raise RegistrationError(f"Permission denied: {path}")
        if path in self.keys:
            return self.keys[path]
        key = WatchKey(path)
        self.keys[path] = key
        self.kinds[path] = tuple(kinds)
        self.registered.append(path)
        return key

    def poll(self, timeout: float) -> Optional[WatchKey]:
        if self.closed:
            raise WatchServiceClosedError("closed")
        self.poll_count += 1
        if self.poll_errors:
            raise self.poll_errors.pop(0)
        try:
            return self._ready.get(timeout=timeout)
        except queue.Empty:
            return None

    def drain_events(self, key: WatchKey) -> List[WatchEvent]:
        with self._lock:
            return self._pending.pop(key, [])

    def reset(self, key: WatchKey) -> bool:
        self.resets.append(key)
        return key.valid

    def cancel(self, key: WatchKey) -> None:
        key.valid = False

    def close(self) -> None:
        self.closed = True

    def push(self, key: WatchKey, *events: WatchEvent) -> None:
        """Queue events on a key and make the key ready."""
        with self._lock:
            self._pending.setdefault(key, []).extend(events)
        self._ready.put(key)


def modified(name: str) -> WatchEvent:
    return WatchEvent(EventKind.MODIFY, Path(name))


def created(name: str) -> WatchEvent:
    return WatchEvent(EventKind.CREATE, Path(name))


def overflow(count: int = 1) -> WatchEvent:
    return WatchEvent(EventKind.OVERFLOW, count=count)


@pytest.fixture
def fake_service():
    return FakeWatchService()


@pytest.fixture
def project_tree(tmp_path):
    """
    A small source tree:

        src/
          app/
            models/
          .git/
            objects/
          .cache/
    """
    src = tmp_path / "src"
    (src / "app" / "models").mkdir(parents=True)
    (src / ".git" / "objects").mkdir(parents=True)
    (src / ".cache").mkdir()
    (src / "main.py").write_text("print('hi')\n")
    return src
