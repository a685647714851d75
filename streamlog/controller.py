"""Rotation controller: the read/format/write loop and the rotation state machine."""

import logging
import os
import time
from enum import Enum
from pathlib import Path

from streamlog.config import Config
from streamlog.errors import (
    ConfigError,
    FatalIOError,
    StreamEndedError,
    StreamlogError,
    TimestampError,
)
from streamlog.intents import PendingIntents
from streamlog.paths import active_name, archive_name, archive_pattern
from streamlog.reader import Chunk, LineReader
from streamlog.retention import RetentionRing
from streamlog.timefmt import TimeFormat, format_timestamp
from streamlog.writer import ActiveLogWriter

logger = logging.getLogger(__name__)

ARCHIVE_MODE = 0o444
_MS = 1_000_000


class ControllerState(Enum):
    STREAMING = "streaming"
    ROTATING = "rotating"
    TERMINATING = "terminating"


class RotationController:
    """Owns the active log and the retention ring for one log directory.

    Rotation and termination only take effect at a line boundary, so no line
    is ever split across two files. A rotation always runs
    close -> rename -> evict -> reopen, in that order.
    """

    def __init__(
        self,
        config: Config,
        log_dir,
        stream,
        intents: PendingIntents | None = None,
        interrupt_fd: int | None = None,
        write_func=None,
        time_func=None,
    ):
        self._config = config
        self._dir = Path(log_dir)
        self._intents = intents or PendingIntents()
        self._time_func = time_func or time.time_ns
        self._reader = LineReader(stream, config.buffer_size, interrupt_fd)
        self._writer = ActiveLogWriter(
            self._dir / active_name(config), write_func=write_func, time_func=self._time_func
        )
        self._pattern = archive_pattern(config)
        self._at_line_start = True
        self.ring: RetentionRing | None = None
        self.state = ControllerState.STREAMING
        self.rotations = 0

    @property
    def active_path(self) -> Path:
        return self._writer.path

    @property
    def writer(self) -> ActiveLogWriter:
        return self._writer

    def start(self):
        """Reconcile old archives and open a fresh active log."""
        if self._writer.path.exists():
            raise ConfigError(f"log directory already in use: {self._writer.path} exists")
        self.ring = RetentionRing.reconcile(self._dir, self._config.log_count, self._pattern)
        try:
            self._writer.open()
        except FatalIOError as e:
            raise ConfigError(f"cannot create active log: {e}") from e
        logger.info("Writing to %s", self._writer.path)

    def run(self):
        """Consume the stream until a termination request is honored.

        Fatal errors trigger one best-effort archive of the active log before
        being re-raised.
        """
        if self.ring is None:
            self.start()
        try:
            self._loop()
        except (FatalIOError, StreamEndedError):
            self._abort()
            raise
        finally:
            self._reader.close()

    def _loop(self):
        while True:
            if self._at_line_start:
                if self._intents.terminate_requested:
                    self._terminate()
                    return
                if self._rotation_due():
                    self._rotate()

            try:
                chunk = self._reader.read_chunk()
            except InterruptedError:
                continue
            except OSError as e:
                raise FatalIOError(f"reading input failed: {e.strerror}") from e

            if chunk is None:
                if self._intents.terminate_requested:
                    self._terminate()
                    return
                raise StreamEndedError("input stream closed without a termination request")

            self._write_chunk(chunk)

    def _rotation_due(self) -> bool:
        requested = self._intents.consume_rotate()
        return requested or self._writer.bytes_written >= self._config.log_size

    def _prefix(self) -> bytes | None:
        if self._config.time_format is TimeFormat.NONE:
            return None
        try:
            return format_timestamp(self._config.time_format, self._time_func())
        except (TimestampError, OSError) as e:
            logger.warning("error: could not get time: %s", e)
            return None

    def _write_chunk(self, chunk: Chunk):
        if self._at_line_start:
            prefix = self._prefix()
            if prefix is not None:
                self._writer.append(prefix + b" ")
        self._writer.append(chunk.data)
        self._at_line_start = chunk.line_complete
        if chunk.line_complete:
            self._writer.flush()

    def _free_archive_name(self, created_ns: int) -> str:
        name = archive_name(self._config, created_ns)
        while (self._dir / name).exists():
            created_ns += _MS
            name = archive_name(self._config, created_ns)
        return name

    def _archive(self) -> str:
        """Close the active log, make it read-only and move it to its archive name."""
        log = self._writer.close()
        name = self._free_archive_name(log.created_ns)
        try:
            os.chmod(log.path, ARCHIVE_MODE)
            os.rename(log.path, self._dir / name)
        except OSError as e:
            raise FatalIOError(f"cannot archive {log.path}: {e.strerror}") from e
        self.rotations += 1
        logger.info("Rotated %s -> %s (%d bytes)", log.path.name, name, log.bytes_written)
        self.ring.record(name)
        return name

    def _rotate(self):
        self.state = ControllerState.ROTATING
        self._archive()
        try:
            self._writer.open()
        except ConfigError as e:
            raise FatalIOError(f"could not open new log: {e}") from e
        self.state = ControllerState.STREAMING

    def _terminate(self):
        self.state = ControllerState.TERMINATING
        # Lines already read are accepted input and belong in the final log.
        for chunk in self._reader.take_buffered():
            self._write_chunk(chunk)
        logger.info("Termination requested, closing %s", self._writer.path.name)
        self._archive()

    def _abort(self):
        if not self._writer.is_open:
            return
        self.state = ControllerState.TERMINATING
        try:
            self._archive()
        except StreamlogError as e:
            logger.error("final rotation failed: %s", e)
