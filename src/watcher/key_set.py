"""Thread-safe collection of active watch keys."""

import threading
from typing import Dict, Iterator, Tuple

from .models import WatchKey


class WatchKeySet:
    """
    Thread-safe, insertion-ordered set of the watch keys owned by a watcher.

    Registration and polling may run on different threads, so every
    membership check and mutation goes through the same lock.
    """

    def __init__(self):
        """Initialize an empty key set."""
        self._keys: Dict[WatchKey, None] = {}
        self._lock = threading.RLock()

    def add(self, key: WatchKey) -> bool:
        """
        Add a key to the set.

        Args:
            key: Key returned by the watch service

        Returns:
            True if the key was added, False if it was already present
        """
        with self._lock:
            if key in self._keys:
                return False
            self._keys[key] = None
            return True

    def snapshot(self) -> Tuple[WatchKey, ...]:
        """Return the current keys in registration order."""
        with self._lock:
            return tuple(self._keys)

    def __len__(self) -> int:
        with self._lock:
            return len(self._keys)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._keys

    def __iter__(self) -> Iterator[WatchKey]:
        return iter(self.snapshot())
