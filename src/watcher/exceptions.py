"""Custom exceptions for the file watcher package."""


class WatcherError(Exception):
    """Base exception for all watcher errors."""
    pass


class RegistrationError(WatcherError):
    """A directory could not be registered with the watch service."""
    pass


class WatchServiceClosedError(WatcherError):
    """The watch service has been closed."""
    pass


class WatcherNotRunningError(WatcherError):
    """Watcher thread is not running."""
    pass


class WatcherAlreadyRunningError(WatcherError):
    """Watcher thread is already running."""
    pass
