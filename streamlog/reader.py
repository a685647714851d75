"""Line-bounded chunk reader for the input stream."""

import logging
import os
import selectors
from dataclasses import dataclass

logger = logging.getLogger(__name__)

READ_SIZE = 64 * 1024


@dataclass(frozen=True)
class Chunk:
    data: bytes
    line_complete: bool


class LineReader:
    """Reads at most ``buf_size`` bytes per call, never past a newline.

    With ``interrupt_fd`` set, the reader waits on both the stream and the
    wakeup descriptor. A byte on the wakeup descriptor raises InterruptedError
    so the caller can look at pending intents before reading on.
    """

    def __init__(self, stream, buf_size: int, interrupt_fd: int | None = None):
        self._stream = stream
        self._buf_size = buf_size
        self._interrupt_fd = interrupt_fd
        self._pending = bytearray()
        self._eof = False
        self._selector = None
        if interrupt_fd is not None:
            self._fd = stream.fileno()
            # poll rather than epoll: stdin may be a regular file.
            self._selector = selectors.PollSelector()
            self._selector.register(self._fd, selectors.EVENT_READ, "stream")
            self._selector.register(interrupt_fd, selectors.EVENT_READ, "interrupt")

    def _take(self) -> Chunk | None:
        """Cut the next chunk from buffered bytes, if one is ready."""
        limit = min(len(self._pending), self._buf_size)
        newline = self._pending.find(b"\n", 0, limit)
        if newline >= 0:
            end = newline + 1
        elif len(self._pending) >= self._buf_size or (self._eof and self._pending):
            end = limit
        else:
            return None
        data = bytes(self._pending[:end])
        del self._pending[:end]
        return Chunk(data, data.endswith(b"\n"))

    def _drain_interrupts(self):
        while True:
            try:
                if not os.read(self._interrupt_fd, 512):
                    return
            except (BlockingIOError, InterruptedError):
                return

    def _fill(self):
        if self._selector is None:
            read = getattr(self._stream, "read1", None) or self._stream.read
            data = read(READ_SIZE)
        else:
            ready = {key.data for key, _ in self._selector.select()}
            if "interrupt" in ready:
                self._drain_interrupts()
                raise InterruptedError("read interrupted by signal")
            data = os.read(self._fd, READ_SIZE)
        if data:
            self._pending += data
        else:
            logger.debug("Input stream reached end of file")
            self._eof = True

    def read_chunk(self) -> Chunk | None:
        """Return the next chunk, or None once the stream is exhausted."""
        while True:
            chunk = self._take()
            if chunk is not None:
                return chunk
            if self._eof:
                return None
            self._fill()

    def take_buffered(self):
        """Yield chunks for the complete lines already buffered, without reading."""
        while b"\n" in self._pending:
            yield self._take()

    def close(self):
        if self._selector is not None:
            self._selector.close()
            self._selector = None
