"""Active log writer: owns the open file, its size and its creation time."""

import logging
import os
import time
from dataclasses import dataclass
from pathlib import Path

from streamlog.errors import ConfigError, FatalIOError

logger = logging.getLogger(__name__)

# Buffered bytes are written out early once a partial line grows past this.
FLUSH_THRESHOLD = 64 * 1024


@dataclass
class ActiveLog:
    path: Path
    fd: int
    created_ns: int
    bytes_written: int = 0


class ActiveLogWriter:
    """Append-only writer for the single active log file.

    ``write_func`` and ``time_func`` default to ``os.write`` and
    ``time.time_ns``; tests swap them to simulate short writes and clocks.
    """

    def __init__(self, path, write_func=None, time_func=None):
        self._path = Path(path)
        self._write_func = write_func or os.write
        self._time_func = time_func or time.time_ns
        self._buffer = bytearray()
        self.log: ActiveLog | None = None

    @property
    def path(self) -> Path:
        return self._path

    @property
    def is_open(self) -> bool:
        return self.log is not None

    @property
    def bytes_written(self) -> int:
        return self.log.bytes_written if self.log else 0

    def open(self) -> ActiveLog:
        """Create the active file. It must not exist yet."""
        flags = os.O_WRONLY | os.O_CREAT | os.O_EXCL | getattr(os, "O_CLOEXEC", 0)
        try:
            fd = os.open(self._path, flags, 0o644)
        except FileExistsError:
            raise ConfigError(f"log directory already in use: {self._path} exists") from None
        except OSError as e:
            raise FatalIOError(f"cannot open {self._path}: {e.strerror}") from e
        self.log = ActiveLog(path=self._path, fd=fd, created_ns=self._time_func())
        logger.debug("Opened active log %s", self._path)
        return self.log

    def append(self, data: bytes):
        """Queue *data* for the active log and count it."""
        if self.log is None:
            raise FatalIOError("append on a closed log")
        self._buffer += data
        self.log.bytes_written += len(data)
        if len(self._buffer) >= FLUSH_THRESHOLD:
            self.flush()

    def flush(self):
        """Write out everything queued, retrying short and interrupted writes."""
        if self.log is None or not self._buffer:
            return
        view = memoryview(bytes(self._buffer))
        written = 0
        try:
            while written < len(view):
                try:
                    n = self._write_func(self.log.fd, view[written:])
                except (InterruptedError, BlockingIOError):
                    continue
                except OSError as e:
                    raise FatalIOError(f"write to {self._path} failed: {e.strerror}") from e
                if not n:
                    raise FatalIOError(f"write to {self._path} made no progress")
                written += n
        finally:
            del self._buffer[:written]

    def close(self) -> ActiveLog:
        """Flush and close the active file. Returns the closed log's record."""
        log = self.log
        if log is None:
            raise FatalIOError("close on a closed log")
        self.flush()
        self.log = None
        try:
            os.close(log.fd)
        except OSError as e:
            raise FatalIOError(f"close of {self._path} failed: {e.strerror}") from e
        return log
