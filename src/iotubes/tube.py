"""The :class:`Tube` façade.

A tube owns one transport and one receive buffer. It sends whole payloads,
receives up to a boundary (a delimiter, a regular expression, a length),
and can hand the stream over to the local terminal with
:meth:`Tube.interactive`::

    with iotubes.process(["/bin/cat"]) as tube:
        tube.send_line("Hello World!")
        assert tube.recv_until("World") == b"Hello World"

Every blocking call takes ``timeout`` (seconds) and ``cancel`` (a
:class:`~iotubes.cancel.Cancel`). A call that passes no timeout uses the
tube's :attr:`Tube.timeout`, which defaults to ``IOTUBES_TIMEOUT`` from the
environment, or waits forever.
"""

from __future__ import annotations

import logging
import re
import socket as pysocket
import threading
from typing import Optional, Tuple, Union

from . import config, log
from .cancel import Cancel
from .interactive import Interactive
from .matcher import BytesLike, Literal, Regex, as_bytes
from .poll import WRITE, Deadline, Waiter
from .receive import Receiver
from .transport.base import Transport, TubeClosed, TubeIOError
from .transport.process import ProcessTransport
from .transport.raw import RawTransport
from .transport.remote import SocketTransport

logger = logging.getLogger(__name__)

NEW_LINE = b"\n"


class _Default:
    def __repr__(self) -> str:
        return "default"


default = _Default()


class Tube:
    """Buffered, pattern-aware wrapper around a single :class:`Transport`.

    :ivar timeout: Seconds a blocking call waits when it is not given an
        explicit timeout; None waits forever.
    :ivar encoding: Codec used to turn text into bytes.
    """

    def __init__(
        self,
        transport: Transport,
        timeout=default,
        encoding: Optional[str] = None,
        chunk_size: Optional[int] = None,
    ):
        self.transport = transport
        self.timeout = config.timeout if timeout is default else timeout
        self.encoding = encoding or config.encoding
        self.chunk_size = chunk_size or config.chunk_size
        self.receiver = Receiver(transport, self.chunk_size)

        self._send_lock = threading.Lock()
        self._send_failure: Optional[BaseException] = None
        self._close_lock = threading.Lock()
        self._closed = False

    # Factories for the transport variants.

    @classmethod
    def process(cls, args, stderr=None, env=None, cwd=None, **kwargs) -> "Tube":
        """Spawn *args* (a sequence, or a shell-like string) and talk to it."""
        return cls(ProcessTransport(args, stderr=stderr, env=env, cwd=cwd), **kwargs)

    @classmethod
    def remote(cls, host: str, port: int, timeout: Optional[float] = None, **kwargs) -> "Tube":
        """Connect to *host*:*port* over TCP; *timeout* bounds the connect."""
        return cls(SocketTransport.connect(host, port, timeout), **kwargs)

    @classmethod
    def raw(cls, reader, writer=None, **kwargs) -> "Tube":
        """Wrap an externally supplied channel: a socket, or descriptors."""

        if writer is None and isinstance(reader, pysocket.socket):
            return cls(SocketTransport(reader), **kwargs)
        return cls(RawTransport(reader, writer), **kwargs)

    def __repr__(self) -> str:
        return f"<Tube {self.transport!r} {len(self.receiver.buffer)} buffered>"

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def _timeout(self, timeout):
        return self.timeout if timeout is default else timeout

    # Sending.

    def send(self, data: BytesLike, timeout=default, cancel: Optional[Cancel] = None) -> None:
        """Write all of *data*, returning only once the transport took it.

        On timeout or cancellation a prefix of *data* may already have been
        written.
        """

        data = as_bytes(data, self.encoding)
        self.write_all(data, Deadline(self._timeout(timeout)), cancel)

    def send_line(self, data: BytesLike, timeout=default, cancel: Optional[Cancel] = None) -> None:
        """Same as :meth:`send`, with a trailing newline."""
        self.send(as_bytes(data, self.encoding) + NEW_LINE, timeout, cancel)

    def send_line_after(
        self,
        pattern: BytesLike,
        data: BytesLike,
        timeout=default,
        cancel: Optional[Cancel] = None,
    ) -> bytes:
        """Receive through *pattern*, then send *data* as a line.

        Returns what was received.
        """

        received = self.recv_until(pattern, timeout, cancel)
        self.send_line(data, timeout, cancel)
        return received

    def write_all(self, data: bytes, deadline: Deadline, cancel: Optional[Cancel] = None) -> None:
        """Loop on partial writes until the transport accepted all of *data*."""

        if self._closed:
            raise TubeClosed("tube is closed")

        # The lock keeps concurrent senders from interleaving their payloads.

        with self._send_lock:
            if self._send_failure is not None:
                raise TubeIOError(f"tube failed earlier: {self._send_failure}") from self._send_failure

            # After close_write() the write descriptor may already belong to
            # something else; it must not be polled.

            if self.transport.write_closed:
                raise TubeIOError("write direction is closed")

            view = memoryview(data)
            sent = 0

            with Waiter(self.transport.write_fileno(), WRITE, (cancel,)) as waiter:
                while sent < len(view):
                    waiter.wait(deadline)
                    try:
                        count = self.transport.write_some(view[sent:])
                    except OSError as exc:
                        self._send_failure = exc
                        raise TubeIOError(f"write failed: {exc}") from exc

                    log.traffic(log.send, "sent", view[sent:sent + count])
                    sent += count

    # Receiving.

    def recv(self, size: Optional[int] = None, timeout=default, cancel: Optional[Cancel] = None) -> bytes:
        """Receive up to *size* bytes, whatever is available first."""

        size = self.chunk_size if size is None else size
        return self.receiver.some(size, self._timeout(timeout), cancel)

    def recv_exact(self, count: int, timeout=default, cancel: Optional[Cancel] = None) -> bytes:
        """Receive exactly *count* bytes."""
        return self.receiver.exact(count, self._timeout(timeout), cancel)

    def recv_until(self, delimiter: BytesLike, timeout=default, cancel: Optional[Cancel] = None) -> bytes:
        """Receive through the first occurrence of *delimiter*, inclusive."""

        matcher = Literal(delimiter, self.encoding)
        data, _ = self.receiver.until(matcher, self._timeout(timeout), cancel)
        return data

    def recv_line(self, timeout=default, cancel: Optional[Cancel] = None) -> bytes:
        """Receive through the next newline, inclusive."""
        return self.recv_until(NEW_LINE, timeout, cancel)

    def recv_regex(
        self,
        pattern: Union[BytesLike, re.Pattern],
        timeout=default,
        cancel: Optional[Cancel] = None,
    ) -> Tuple[bytes, Tuple[Optional[bytes], ...]]:
        """Receive through the end of the first match of *pattern*.

        Returns the received bytes and the match's groups. An invalid
        pattern raises :class:`~iotubes.InvalidPattern` before anything is
        read.
        """

        matcher = Regex(pattern, self.encoding)
        return self.receiver.until(matcher, self._timeout(timeout), cancel)

    def peek(self, count: Optional[int] = None) -> bytes:
        """Return up to *count* already buffered bytes without consuming them."""
        return self.receiver.peek(count)

    # Interactive mode and shutdown.

    def interactive(self, stdin=None, stdout=None, cancel: Optional[Cancel] = None) -> None:
        """Bridge the tube to the local terminal until either side ends.

        Any bytes already buffered are written out first. Remote EOF ends
        the session normally; local input or output errors are raised.
        """

        if self._closed:
            raise TubeClosed("tube is closed")

        session = Interactive(self, stdin, stdout, cancel)
        session.run()

    def close_write(self) -> None:
        """Signal EOF to the peer; receiving keeps working."""
        with self._send_lock:
            self.transport.close_write()

    def close(self) -> None:
        """Release the transport. Redundant calls are a no-op."""

        with self._close_lock:
            if self._closed:
                return
            self._closed = True

        self.receiver.closed = True
        self.transport.close()
        logger.debug("closed %r", self)

    @property
    def closed(self) -> bool:
        return self._closed
