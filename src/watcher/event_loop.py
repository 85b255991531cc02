"""Background thread that turns the first filesystem change into a callback."""

import logging
import threading
from pathlib import Path
from typing import Callable, Iterable, Optional, Tuple, Union

from .config import WatcherConfig
from .exceptions import (
    WatchServiceClosedError,
    WatcherAlreadyRunningError,
    WatcherNotRunningError,
)
from .key_set import WatchKeySet
from .models import LoopState, WatchKey
from .registrar import DirectoryWatchRegistrar
from .service import WatchService, WatchdogWatchService

logger = logging.getLogger(__name__)


class WatchEventLoop(threading.Thread):
    """
    Watches a set of directory trees and calls back once on the first change.

    The thread registers every eligible directory under the configured roots,
    then polls the watch service with a bounded wait. The first event that
    names a filesystem entry on one of its own keys triggers the callback,
    after which the loop stops polling. The callback is expected to shut the
    host down and end the process, so nothing is torn down on that path.

    The thread is a daemon and normally lives as long as the process.
    stop() exists so hosts and tests can end it without exiting.
    """

    def __init__(
        self,
        paths: Iterable[Union[str, Path]],
        on_change: Callable[[], None],
        watch_service: Optional[WatchService] = None,
        config: Optional[WatcherConfig] = None,
    ):
        """
        Initialize the event loop.

        Args:
            paths: Root directories to watch, in order
            on_change: Zero-argument callback fired on the first change
            watch_service: Watch service to use (defaults to watchdog)
            config: Watcher configuration
        """
        self.config = config or WatcherConfig()
        super().__init__(name=self.config.thread_name, daemon=True)

        self.paths: Tuple[Path, ...] = tuple(Path(p) for p in paths)
        self.on_change = on_change
        self.watch_service = watch_service or WatchdogWatchService(
            max_pending_events=self.config.max_pending_events,
        )
        self.registrar = DirectoryWatchRegistrar(self.watch_service, self.config)

        self._keys = WatchKeySet()
        self._state = LoopState.INITIALIZING
        self._triggered = False
        self._lock = threading.Lock()
        self._stop_event = threading.Event()
        self._watching = threading.Event()

    @property
    def state(self) -> LoopState:
        return self._state

    @property
    def triggered(self) -> bool:
        """True once the callback has been fired."""
        return self._triggered

    @property
    def watch_keys(self) -> Tuple[WatchKey, ...]:
        """Snapshot of the active keys in registration order."""
        return self._keys.snapshot()

    def start(self) -> None:
        """
        Start the watcher thread and return immediately.

        Raises:
            WatcherAlreadyRunningError: If the thread was already started
        """
        try:
            super().start()
        except RuntimeError as e:
            raise WatcherAlreadyRunningError("Watcher is already running") from e

    def wait_until_watching(self, timeout: Optional[float] = None) -> bool:
        """
        Block until every root has been registered.

        Args:
            timeout: Maximum number of seconds to wait

        Returns:
            True if the loop reached the polling phase in time
        """
        return self._watching.wait(timeout)

    def stop(self, timeout: Optional[float] = None) -> None:
        """
        Stop polling and close the watch service.

        Args:
            timeout: Maximum number of seconds to wait for the thread

        Raises:
            WatcherNotRunningError: If the thread was never started
        """
        if self.ident is None:
            raise WatcherNotRunningError("Watcher was never started")

        self._stop_event.set()
        if threading.current_thread() is not self:
            self.join(timeout)

    def run(self) -> None:
        try:
            self.registrar.register_all(self.paths, self._keys)

            logger.debug("Start watching...")
            self._state = LoopState.WATCHING
            self._watching.set()

            if self._poll_until_change():
                self._state = LoopState.TRIGGERED
                self._fire()
                return
        except WatchServiceClosedError:
            logger.debug("Watch service closed, leaving watch loop")
        finally:
            self._watching.set()

        self._state = LoopState.STOPPED
        self.watch_service.close()

    def _poll_until_change(self) -> bool:
        """Poll until a change is seen or the loop is stopped."""
        while not self._stop_event.is_set():
            try:
                if self._watch():
                    return True
            except WatchServiceClosedError:
                raise
            except Exception as e:
                logger.error(f"Watch loop error: {e}", exc_info=True)
                self._stop_event.wait(self.config.poll_interval)
        return False

    def _watch(self) -> bool:
        """
        Poll once for a ready key and drain it.

        Returns:
            True if one of the drained events named a filesystem entry
        """
        key = self.watch_service.poll(self.config.poll_interval)
        if key is None:
            return False

        if key not in self._keys:
            self.watch_service.reset(key)
            return False

        changed = False
        for event in self.watch_service.drain_events(key):
            if event.has_path:
                logger.debug(f"{event.kind.value}: {key.directory / event.context}")
                changed = True
            else:
                logger.debug(f"Ignoring {event.kind.value} event on {key.directory}")

        self.watch_service.reset(key)
        return changed

    def _fire(self) -> None:
        """Invoke the callback, at most once over the lifetime of the loop."""
        with self._lock:
            if self._triggered:
                return
            self._triggered = True

        logger.info("File change detected, running change handler")
        self.on_change()
