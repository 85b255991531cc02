"""Directory watch service built on the watchdog library."""

import dataclasses
import logging
import os
import queue
import stat
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Set, Union

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer
from watchdog.observers.api import ObservedWatch

from .exceptions import RegistrationError, WatchServiceClosedError
from .models import EventKind, WatchEvent, WatchKey

logger = logging.getLogger(__name__)

DEFAULT_EVENT_KINDS = (EventKind.CREATE, EventKind.DELETE, EventKind.MODIFY)

# Wakes up pollers once the service is closed.
_CLOSED = object()


class WatchService(ABC):
    """
    Abstract capability for per-directory change notification.

    A directory is registered non-recursively and yields a WatchKey. Events
    accumulate on the key; once signalled, the key is handed out by poll()
    and stays out of the ready queue until it is reset.
    """

    @abstractmethod
    def register(
        self,
        directory: Union[str, Path],
        kinds: Iterable[EventKind] = DEFAULT_EVENT_KINDS,
    ) -> WatchKey:
        """
        Watch a single directory for changes to its direct entries.

        Args:
            directory: Directory to watch
            kinds: Event kinds to report

        Returns:
            The key for this directory

        Raises:
            RegistrationError: If the directory cannot be watched
            WatchServiceClosedError: If the service is closed
        """
        pass

    @abstractmethod
    def poll(self, timeout: float) -> Optional[WatchKey]:
        """
        Wait for the next signalled key.

        Args:
            timeout: Maximum number of seconds to wait

        Returns:
            A signalled key, or None if none became ready in time

        Raises:
            WatchServiceClosedError: If the service is closed
        """
        pass

    @abstractmethod
    def drain_events(self, key: WatchKey) -> List[WatchEvent]:
        """Remove and return all events pending on a key."""
        pass

    @abstractmethod
    def reset(self, key: WatchKey) -> bool:
        """
        Re-arm a key after its events were drained.

        Returns:
            True if the key is still valid
        """
        pass

    @abstractmethod
    def cancel(self, key: WatchKey) -> None:
        """Stop watching the directory behind a key."""
        pass

    @abstractmethod
    def close(self) -> None:
        """Release the service and wake up any blocked poll()."""
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


class DirectoryEventHandler(FileSystemEventHandler):
    """
    Handler shared by every scheduled watch.

    Translates watchdog callbacks into (kind, path) pairs and hands them to
    the service, which routes each one to the key of the entry's directory.
    """

    def __init__(self, route: Callable[[EventKind, str], None]):
        super().__init__()
        self._route = route

    def on_created(self, event):
        self._route(EventKind.CREATE, os.fsdecode(event.src_path))

    def on_deleted(self, event):
        self._route(EventKind.DELETE, os.fsdecode(event.src_path))

    def on_modified(self, event):
        # A directory's mtime changes whenever an entry is added or removed,
        # including entries of directories that are not watched.
        if event.is_directory:
            return
        self._route(EventKind.MODIFY, os.fsdecode(event.src_path))

    def on_moved(self, event):
        self._route(EventKind.DELETE, os.fsdecode(event.src_path))
        self._route(EventKind.CREATE, os.fsdecode(event.dest_path))


class WatchdogWatchService(WatchService):
    """
    WatchService backed by a single watchdog observer.

    Registered directories share recursive scheduled watches: a directory
    already inside a scheduled tree (without crossing a symlink) reuses that
    watch, so the number of native watchers stays at one per root. Events are
    routed to the key of the directory holding the entry; entries of
    directories without a key are dropped.

    Event delivery depends on the native facility watchdog picks for the
    platform; some mounted filesystems never report anything.
    """

    def __init__(self, max_pending_events: int = 512):
        """
        Initialize and start the observer.

        Args:
            max_pending_events: Events kept per key before reporting an overflow
        """
        if max_pending_events <= 0:
            raise ValueError(f"max_pending_events must be positive: {max_pending_events}")
        self.max_pending_events = max_pending_events

        self._observer = Observer()
        self._handler = DirectoryEventHandler(self._route)
        self._keys: Dict[str, WatchKey] = {}
        # Resolved path of each key directory, for platforms reporting real paths.
        self._real_keys: Dict[str, WatchKey] = {}
        self._kinds: Dict[WatchKey, Set[EventKind]] = {}
        self._pending: Dict[WatchKey, List[WatchEvent]] = {}
        self._signalled: Set[WatchKey] = set()
        self._ready: queue.Queue = queue.Queue()
        self._closed = False
        # Never held while calling into the observer; its dispatch thread
        # takes this lock from inside handler callbacks.
        self._lock = threading.Lock()
        # Guards the scheduled watches and serializes register/cancel/close.
        self._register_lock = threading.Lock()
        self._schedules: Dict[str, ObservedWatch] = {}

        self._observer.start()

    @property
    def closed(self) -> bool:
        return self._closed

    def _check_open(self) -> None:
        if self._closed:
            raise WatchServiceClosedError("Watch service is closed")

    @staticmethod
    def _covers(root: str, path: str) -> bool:
        """Return True if a recursive watch on root sees path without crossing a symlink."""
        if path != root and not path.startswith(root.rstrip(os.sep) + os.sep):
            return False
        expected = os.path.normpath(os.path.join(os.path.realpath(root), os.path.relpath(path, root)))
        return os.path.realpath(path) == expected

    def register(
        self,
        directory: Union[str, Path],
        kinds: Iterable[EventKind] = DEFAULT_EVENT_KINDS,
    ) -> WatchKey:
        kinds = tuple(kinds)
        if EventKind.OVERFLOW in kinds:
            raise ValueError("OVERFLOW cannot be requested, it is always reported")
        path = os.path.abspath(os.fspath(directory))

        with self._register_lock:
            self._check_open()

            with self._lock:
                existing = self._keys.get(path)
                if existing is not None:
                    self._kinds[existing].update(kinds)
                    return existing

            try:
                if not stat.S_ISDIR(os.stat(path).st_mode):
                    raise RegistrationError(f"Not a directory: {path}")
                with os.scandir(path):
                    pass
            except OSError as e:
                raise RegistrationError(f"Cannot watch {path}: {e}") from e

            if not any(self._covers(root, path) for root in self._schedules):
                self._schedule(path)

            key = WatchKey(Path(path))
            real = os.path.realpath(path)
            with self._lock:
                self._keys[path] = key
                if real != path:
                    self._real_keys[real] = key
                self._kinds[key] = set(kinds)

        logger.debug(f"Registered watch for {path}")
        return key

    def _schedule(self, path: str) -> None:
        """Watch the tree at path, folding in watches it now covers."""
        try:
            watch = self._observer.schedule(self._handler, path, recursive=True)
        except OSError as e:
            raise RegistrationError(f"Cannot watch {path}: {e}") from e

        nested = [root for root in self._schedules if self._covers(path, root)]
        self._schedules[path] = watch
        logger.debug(f"Scheduled recursive watch on {path}")

        for root in nested:
            self._observer.unschedule(self._schedules.pop(root))
            logger.debug(f"Folded watch on {root} into {path}")

    def _route(self, kind: EventKind, path: str) -> None:
        """Deliver an event to the key of the directory holding the entry."""
        parent, name = os.path.split(path)
        if not name:
            return
        with self._lock:
            key = self._keys.get(parent) or self._real_keys.get(parent)
            if key is None or kind not in self._kinds.get(key, ()):
                return
        self._signal_event(key, WatchEvent(kind, Path(name)))

    def _signal_event(self, key: WatchKey, event: WatchEvent) -> None:
        """Queue an event on a key and signal the key if it is ready."""
        with self._lock:
            if self._closed or not key.valid:
                return

            events = self._pending.setdefault(key, [])
            last = events[-1] if events else None

            if len(events) >= self.max_pending_events:
                event = WatchEvent(EventKind.OVERFLOW)
            if last is not None and last.kind is event.kind and last.context == event.context:
                events[-1] = dataclasses.replace(last, count=last.count + 1)
            else:
                events.append(event)

            if key not in self._signalled:
                self._signalled.add(key)
                self._ready.put(key)

    def poll(self, timeout: float) -> Optional[WatchKey]:
        self._check_open()
        try:
            item = self._ready.get(timeout=timeout)
        except queue.Empty:
            return None

        if item is _CLOSED:
            self._ready.put(_CLOSED)
            raise WatchServiceClosedError("Watch service is closed")
        return item

    def drain_events(self, key: WatchKey) -> List[WatchEvent]:
        with self._lock:
            return self._pending.pop(key, [])

    def reset(self, key: WatchKey) -> bool:
        with self._lock:
            if not key.valid:
                self._signalled.discard(key)
                return False
            if self._pending.get(key):
                # Events arrived while draining; hand the key out again.
                self._signalled.add(key)
                self._ready.put(key)
            else:
                self._signalled.discard(key)
            return True

    def cancel(self, key: WatchKey) -> None:
        with self._register_lock:
            with self._lock:
                if not key.valid:
                    return
                key.valid = False
                path = os.fspath(key.directory)
                self._keys.pop(path, None)
                self._real_keys.pop(os.path.realpath(path), None)
                self._kinds.pop(key, None)
                self._pending.pop(key, None)
                self._signalled.discard(key)
                remaining = list(self._keys)

            if self._closed:
                return
            unused = [
                root for root in self._schedules
                if not any(self._covers(root, directory) for directory in remaining)
            ]
            for root in unused:
                self._observer.unschedule(self._schedules.pop(root))
                logger.debug(f"Unscheduled watch on {root}")

    def close(self) -> None:
        with self._register_lock:
            with self._lock:
                if self._closed:
                    return
                self._closed = True
                for key in self._keys.values():
                    key.valid = False
                self._keys.clear()
                self._real_keys.clear()
                self._kinds.clear()
                self._pending.clear()
                self._signalled.clear()
            self._schedules.clear()

        self._ready.put(_CLOSED)
        self._observer.stop()
        if self._observer.is_alive():
            self._observer.join(timeout=5.0)

    def __len__(self) -> int:
        """Return the number of registered directories."""
        with self._lock:
            return len(self._keys)
