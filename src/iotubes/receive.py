"""The receive engine.

A :class:`Receiver` owns the :class:`~iotubes.buffer.Buffer` for one
transport. Each receive runs the same loop: search the buffer, and if the
boundary is not there yet, wait for the transport to become readable
(bounded by the deadline and any cancellation signal), read one chunk,
append it, and search again. Bytes are only consumed once a boundary is
found, so a receive that times out or is cancelled loses nothing.

Only one receive may own the buffer at a time. A second receive attempted
while one is in flight fails immediately with :class:`TubeBusy` instead of
queueing behind it.
"""

from __future__ import annotations

import contextlib
import logging
import threading
from typing import Optional, Tuple

from . import log
from .buffer import Buffer
from .cancel import Cancel
from .matcher import Exact, Matcher
from .poll import READ, Deadline, Waiter
from .transport.base import (
    Transport,
    TubeBusy,
    TubeClosed,
    TubeEOF,
    TubeIOError,
)

logger = logging.getLogger(__name__)


class Receiver:
    """Buffered, boundary-oriented reads from a single transport."""

    def __init__(self, transport: Transport, chunk_size: int = 4096):
        self.transport = transport
        self.chunk_size = chunk_size
        self.buffer = Buffer()
        self.eof = False
        self.failure: Optional[BaseException] = None
        self.closed = False
        self._lock = threading.Lock()

    def __repr__(self) -> str:
        return f"<Receiver {self.transport!r} {self.buffer!r} eof={self.eof}>"

    @contextlib.contextmanager
    def exclusive(self):
        """Hold the buffer for the duration of the block, or raise TubeBusy."""

        if not self._lock.acquire(blocking=False):
            raise TubeBusy("another receive is already in progress on this tube")
        try:
            yield self.buffer
        finally:
            self._lock.release()

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    def check(self) -> None:
        if self.closed:
            raise TubeClosed("tube is closed")
        if self.failure is not None:
            raise TubeIOError(f"tube failed earlier: {self.failure}") from self.failure

    def fail(self, exc: BaseException) -> TubeIOError:
        """Record a transport failure; every later receive will refuse to run."""

        if self.failure is None:
            self.failure = exc
            logger.debug("receive side of %r failed: %s", self.transport, exc)
        return TubeIOError(f"read failed: {exc}")

    def fill(self, waiter: Waiter, deadline: Deadline) -> int:
        """Wait for, then perform, one transport read into the buffer.

        Returns the number of bytes appended; zero means EOF was reached.
        """

        while True:
            waiter.wait(deadline)
            try:
                data = self.transport.read_some(self.chunk_size)
            except OSError as exc:
                raise self.fail(exc) from exc

            if data is None:
                continue

            if not data:
                self.eof = True
                logger.debug("end of stream on %r", self.transport)
                return 0

            log.traffic(log.recv, "received", data)
            self.buffer.append(data)
            return len(data)

    def until(
        self,
        matcher: Matcher,
        timeout: Optional[float] = None,
        cancel: Optional[Cancel] = None,
    ) -> Tuple[bytes, tuple]:
        """Receive through the boundary described by *matcher*.

        Returns the consumed bytes (boundary included) and any regex groups.
        """

        deadline = Deadline(timeout)

        with self.exclusive() as buffer:
            self.check()

            match = matcher.search(buffer)
            if match is not None:
                return buffer.consume(match.end), match.groups

            if self.eof:
                raise TubeEOF(buffer.consume_all())

            with Waiter(self.transport.fileno(), READ, (cancel,)) as waiter:
                while True:
                    if self.fill(waiter, deadline) == 0:
                        raise TubeEOF(buffer.consume_all())

                    match = matcher.search(buffer)
                    if match is not None:
                        return buffer.consume(match.end), match.groups

    def exact(self, count: int, timeout=None, cancel=None) -> bytes:
        data, _ = self.until(Exact(count), timeout, cancel)
        return data

    def some(self, size: int, timeout=None, cancel=None) -> bytes:
        """Return whatever is available, up to *size* bytes.

        Buffered bytes are returned without touching the transport;
        otherwise this blocks for a single read.
        """

        if size < 1:
            raise ValueError(f"receive size must be positive: {size}")

        deadline = Deadline(timeout)

        with self.exclusive() as buffer:
            self.check()

            if not buffer:
                if self.eof:
                    raise TubeEOF(b"")

                with Waiter(self.transport.fileno(), READ, (cancel,)) as waiter:
                    if self.fill(waiter, deadline) == 0:
                        raise TubeEOF(b"")

            return buffer.consume(min(size, len(buffer)))

    def peek(self, count: Optional[int] = None) -> bytes:
        with self.exclusive() as buffer:
            return buffer.peek(count)
