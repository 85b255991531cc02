"""Data models for the file watcher package."""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional


class EventKind(Enum):
    """Kinds of change events reported for a watched directory."""
    CREATE = "create"
    DELETE = "delete"
    MODIFY = "modify"
    OVERFLOW = "overflow"


class LoopState(Enum):
    """Lifecycle states of the watch event loop."""
    INITIALIZING = "initializing"
    WATCHING = "watching"
    TRIGGERED = "triggered"
    STOPPED = "stopped"


@dataclass(frozen=True)
class WatchEvent:
    """
    A single change event delivered through a watch key.

    Attributes:
        kind: The kind of event
        context: Entry name relative to the watched directory, None for overflow
        count: Number of identical events coalesced into this one
    """
    kind: EventKind
    context: Optional[Path] = None
    count: int = 1

    def __post_init__(self):
        if self.context is not None and self.context.is_absolute():
            raise ValueError(f"context must be relative: {self.context}")
        if self.kind is EventKind.OVERFLOW and self.context is not None:
            raise ValueError("overflow events carry no context")

    @property
    def has_path(self) -> bool:
        """True if the event identifies a filesystem entry."""
        return self.context is not None


class WatchKey:
    """
    Opaque handle for one registered directory.

    Keys compare by identity; the watch service that issued a key is the
    only place that tracks its pending events and readiness.
    """

    __slots__ = ("directory", "valid")

    def __init__(self, directory: Path):
        self.directory = directory
        self.valid = True

    def __repr__(self) -> str:
        state = "valid" if self.valid else "cancelled"
        return f"WatchKey({str(self.directory)!r}, {state})"
