"""
File Watcher Package

Watches source directories during local development and fires a single
callback on the first change, so a dev server can stop itself and be
relaunched with fresh code.

Features:
- Recursive registration of every non-hidden directory under each root
- Hidden and dot-prefixed directories pruned with their whole subtree
- Bounded 300 ms polling on a dedicated daemon thread
- Callback fired at most once per watcher
- Pluggable watch service (watchdog by default)
"""

from .models import (
    EventKind,
    LoopState,
    WatchEvent,
    WatchKey,
)

from .config import WatcherConfig

from .exceptions import (
    WatcherError,
    RegistrationError,
    WatchServiceClosedError,
    WatcherNotRunningError,
    WatcherAlreadyRunningError,
)

from .key_set import WatchKeySet
from .service import WatchService, WatchdogWatchService, DirectoryEventHandler
from .registrar import DirectoryWatchRegistrar, is_hidden
from .event_loop import WatchEventLoop
from .plugin import AutoShutdownPlugin


__all__ = [
    # Models
    "EventKind",
    "LoopState",
    "WatchEvent",
    "WatchKey",
    # Config
    "WatcherConfig",
    # Exceptions
    "WatcherError",
    "RegistrationError",
    "WatchServiceClosedError",
    "WatcherNotRunningError",
    "WatcherAlreadyRunningError",
    # Components
    "WatchKeySet",
    "WatchService",
    "WatchdogWatchService",
    "DirectoryEventHandler",
    "DirectoryWatchRegistrar",
    "is_hidden",
    "WatchEventLoop",
    # Host integration
    "AutoShutdownPlugin",
]

__version__ = "0.1.0"
