"""Recursive registration of eligible directories with a watch service."""

import logging
import os
import stat
from pathlib import Path
from typing import Iterable, List, Optional, Set, Union

from .config import WatcherConfig
from .exceptions import RegistrationError
from .key_set import WatchKeySet
from .models import WatchKey
from .service import WatchService

logger = logging.getLogger(__name__)

_FILE_ATTRIBUTE_HIDDEN = getattr(stat, "FILE_ATTRIBUTE_HIDDEN", 0x2)


def is_hidden(path: Path) -> bool:
    """
    Check if a path is hidden.

    A dot-prefixed name is hidden everywhere; on Windows the hidden file
    attribute counts as well.

    Args:
        path: Path to check

    Returns:
        True if the path is hidden
    """
    if path.name.startswith("."):
        return True
    try:
        attributes = getattr(os.stat(path), "st_file_attributes", 0)
    except OSError:
        return False
    return bool(attributes & _FILE_ATTRIBUTE_HIDDEN)


class DirectoryWatchRegistrar:
    """
    Walks directory trees and registers every eligible directory.

    Directories are visited depth-first, each one before its children. An
    ineligible directory prunes its whole subtree: neither it nor anything
    below it is registered or visited.
    """

    def __init__(self, watch_service: WatchService, config: Optional[WatcherConfig] = None):
        """
        Initialize the registrar.

        Args:
            watch_service: Service that directories are registered with
            config: Watcher configuration
        """
        self.watch_service = watch_service
        self.config = config or WatcherConfig()

    def is_valid_directory(self, path: Path) -> bool:
        """
        Check if a directory should be watched and descended into.

        Args:
            path: Path to check

        Returns:
            True if path is a directory that is neither hidden nor dot-prefixed
        """
        if path.is_symlink() and not self.config.follow_symlinks:
            return False
        if not path.is_dir():
            return False
        return not is_hidden(path)

    def register_tree(self, root: Union[str, Path], keys: WatchKeySet) -> List[WatchKey]:
        """
        Register root and all eligible directories below it.

        Directories that cannot be read or registered are logged and skipped;
        the rest of the walk carries on.

        Args:
            root: Root of the tree to walk
            keys: Collection that receives every new key

        Returns:
            Keys added by this walk, in registration order
        """
        root = Path(root)
        if not self.is_valid_directory(root):
            logger.warning(f"Skipping watch root (missing, hidden or not a directory): {root}")
            return []

        added: List[WatchKey] = []
        visited: Set[str] = set()

        def on_error(error: OSError) -> None:
            logger.warning(f"Cannot read directory {error.filename}: {error}")

        for dirpath, dirnames, _ in os.walk(
            root,
            topdown=True,
            onerror=on_error,
            followlinks=self.config.follow_symlinks,
        ):
            directory = Path(dirpath)

            if self.config.follow_symlinks:
                real = os.path.realpath(directory)
                if real in visited:
                    dirnames[:] = []
                    continue
                visited.add(real)

            dirnames[:] = sorted(
                name for name in dirnames
                if self.is_valid_directory(directory / name)
            )

            key = self._register(directory)
            if key is not None and keys.add(key):
                added.append(key)

        return added

    def register_all(self, roots: Iterable[Union[str, Path]], keys: WatchKeySet) -> List[WatchKey]:
        """
        Register every root in order.

        Args:
            roots: Roots to walk
            keys: Collection that receives every new key

        Returns:
            Keys added across all roots
        """
        added: List[WatchKey] = []
        for root in roots:
            added.extend(self.register_tree(root, keys))
        return added

    def _register(self, directory: Path) -> Optional[WatchKey]:
        """Register one directory, returning None if the service refuses it."""
        try:
            key = self.watch_service.register(directory, self.config.event_kinds)
        except RegistrationError as e:
            logger.warning(f"Failed to watch {directory}: {e}")
            return None
        logger.debug(f"Add watch path: {directory}")
        return key
