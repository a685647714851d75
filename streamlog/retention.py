"""Retention ring: tracks archived logs newest-first and evicts past capacity."""

import logging
import os
import re
from collections import deque
from pathlib import Path

from streamlog.errors import ConfigError

logger = logging.getLogger(__name__)


def list_archives(directory, pattern: re.Pattern) -> list[str]:
    """Archive names in *directory* sorted newest-first (descending by name)."""
    names = []
    with os.scandir(directory) as it:
        for entry in it:
            if entry.is_file(follow_symlinks=False) and pattern.match(entry.name):
                names.append(entry.name)
    names.sort(reverse=True)
    return names


class RetentionRing:
    """Newest-first record of at most ``capacity`` archive file names."""

    def __init__(self, directory, capacity: int, entries=()):
        self._dir = Path(directory)
        self._capacity = capacity
        self._entries: deque[str] = deque(entries)

    @classmethod
    def reconcile(cls, directory, capacity: int, pattern: re.Pattern) -> "RetentionRing":
        """Scan *directory* at startup and delete archives beyond *capacity*.

        A failed deletion here points at a permissions problem that would
        recur on every rotation, so it is raised as ConfigError.
        """
        names = list_archives(directory, pattern)
        keep, excess = names[:capacity], names[capacity:]
        for name in reversed(excess):
            try:
                os.unlink(os.path.join(directory, name))
            except FileNotFoundError:
                continue
            except OSError as e:
                raise ConfigError(f"cannot delete old log: {name}: {e.strerror}") from e
            logger.info("Purged old log %s", name)
        logger.info("Tracking %d archived log(s) in %s (keeping %d)", len(keep), directory, capacity)
        return cls(directory, capacity, keep)

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def entries(self) -> list[str]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def record(self, name: str) -> str | None:
        """Track a freshly archived log. Returns the evicted name, if any.

        Deletion failures are logged and the entry is dropped regardless; the
        next startup sweep removes whatever was left behind.
        """
        self._entries.appendleft(name)
        if len(self._entries) <= self._capacity:
            return None
        oldest = self._entries.pop()
        try:
            os.unlink(self._dir / oldest)
        except OSError as e:
            logger.error("cannot unlink: %s: %s", oldest, e.strerror)
        else:
            logger.info("Evicted %s", oldest)
        return oldest
