"""Configuration for the file watcher package."""

from dataclasses import dataclass, field
from typing import Tuple

from .models import EventKind


@dataclass
class WatcherConfig:
    """
    Configuration options for the file watcher.

    Attributes:
        poll_interval_ms: Maximum time a single poll blocks waiting for a ready key
        event_kinds: Event kinds requested for every registered directory
        follow_symlinks: Whether to descend into symlinked directories
        max_pending_events: Events queued per key before an overflow is reported
        thread_name: Name of the watcher worker thread
        exit_code: Process exit code used when a change shuts the host down
    """
    poll_interval_ms: int = 300
    event_kinds: Tuple[EventKind, ...] = field(default_factory=lambda: (
        EventKind.CREATE,
        EventKind.DELETE,
        EventKind.MODIFY,
    ))
    follow_symlinks: bool = False
    max_pending_events: int = 512
    thread_name: str = "filewatcher-thread"
    exit_code: int = 0

    def __post_init__(self):
        if self.poll_interval_ms <= 0:
            raise ValueError(f"poll_interval_ms must be positive: {self.poll_interval_ms}")
        if self.max_pending_events <= 0:
            raise ValueError(f"max_pending_events must be positive: {self.max_pending_events}")
        self.event_kinds = tuple(self.event_kinds)
        if EventKind.OVERFLOW in self.event_kinds:
            raise ValueError("OVERFLOW cannot be requested, it is always reported")

    @property
    def poll_interval(self) -> float:
        """Poll interval in seconds."""
        return self.poll_interval_ms / 1000.0
