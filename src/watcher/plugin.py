"""Stop a running development server when its source tree changes."""

import logging
import os
from pathlib import Path
from typing import Callable, Iterable, Optional, Protocol, Union

from .config import WatcherConfig
from .event_loop import WatchEventLoop
from .service import WatchService

logger = logging.getLogger(__name__)


class StoppableHost(Protocol):
    """Anything with an orderly stop(), such as the dev server."""

    def stop(self) -> None:
        ...


class AutoShutdownPlugin:
    """
    Stops the host and exits the process on the first source change.

    Meant for local development only, paired with something that relaunches
    the process when it exits (a continuous build, a shell loop, an IDE run
    configuration). Install it from the host's startup hook behind a dev flag:

        server = DevServer(config, plugins=[AutoShutdownPlugin([Path("src")])])

    The paths should be the ones the relauncher also treats as inputs,
    otherwise the process stops and nothing brings it back.

    Change notification depends on the filesystem. Observed behaviour:

    1. OK: Windows 11, NTFS
    2. OK: Linux (Ubuntu on WSL2), ext4
    3. NG (no events at all): Linux (Ubuntu on WSL2), drvfs under /mnt/c
    """

    def __init__(
        self,
        paths: Iterable[Union[str, Path]],
        config: Optional[WatcherConfig] = None,
        watch_service: Optional[WatchService] = None,
        exit_process: Callable[[int], None] = os._exit,
    ):
        """
        Initialize the plugin.

        Args:
            paths: Root directories to watch
            config: Watcher configuration
            watch_service: Watch service override (defaults to watchdog)
            exit_process: Terminates the process with the given exit code
        """
        self.paths = [Path(p) for p in paths]
        self.config = config or WatcherConfig()
        self.watch_service = watch_service
        self.exit_process = exit_process
        self.event_loop: Optional[WatchEventLoop] = None

    def apply(self, host: StoppableHost) -> WatchEventLoop:
        """
        Start watching and wire the shutdown into the host.

        Args:
            host: The service to stop when a change is detected

        Returns:
            The started event loop
        """
        def shutdown() -> None:
            logger.info("Source change detected, stopping server")
            host.stop()
            for handler in logging.getLogger().handlers:
                handler.flush()
            self.exit_process(self.config.exit_code)

        self.event_loop = WatchEventLoop(
            self.paths,
            shutdown,
            watch_service=self.watch_service,
            config=self.config,
        )
        self.event_loop.start()

        for path in self.paths:
            logger.info(f"Auto shutdown watching: {path}")
        return self.event_loop
