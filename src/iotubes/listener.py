"""A TCP listener that hands out a tube per accepted connection."""

from __future__ import annotations

import logging
import socket as pysocket
from typing import Optional

from .cancel import Cancel
from .poll import READ, Deadline, Waiter
from .transport.remote import SocketTransport
from .tube import Tube

logger = logging.getLogger(__name__)


class Listener:
    """Listen for TCP connections; :meth:`accept` returns a :class:`Tube`."""

    backlog = 16

    def __init__(self, sock: pysocket.socket):
        self.socket = sock
        self.socket.setblocking(False)

    @classmethod
    def bind(cls, host: str = "0.0.0.0", port: int = 0) -> "Listener":
        sock = pysocket.socket(pysocket.AF_INET, pysocket.SOCK_STREAM)
        try:
            sock.setsockopt(pysocket.SOL_SOCKET, pysocket.SO_REUSEADDR, 1)
            sock.bind((host, int(port)))
            sock.listen(cls.backlog)
        except OSError:
            sock.close()
            raise

        listener = cls(sock)
        logger.debug("listening on %s:%d", host, listener.port)
        return listener

    @classmethod
    def listen(cls) -> "Listener":
        """Bind to every address on an automatically assigned port."""
        return cls.bind("0.0.0.0", 0)

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def __repr__(self) -> str:
        return f"<Listener port={self.port}>"

    @property
    def port(self) -> int:
        return self.socket.getsockname()[1]

    def accept(self, timeout: Optional[float] = None, cancel: Optional[Cancel] = None, **kwargs) -> Tube:
        """Wait for a peer to connect.

        Keyword arguments are passed on to the new :class:`Tube`; as with
        :meth:`Tube.remote`, *timeout* bounds the wait for the connection
        itself, not the tube's later calls.

        Raises :class:`~iotubes.TubeTimeout` or :class:`~iotubes.TubeCancelled`
        if nobody shows up in time.
        """

        deadline = Deadline(timeout)

        with Waiter(self.socket.fileno(), READ, (cancel,)) as waiter:
            while True:
                waiter.wait(deadline)
                try:
                    sock, address = self.socket.accept()
                except (BlockingIOError, InterruptedError):
                    continue

                logger.debug("accepted %s:%d on port %d", address[0], address[1], self.port)
                return Tube(SocketTransport(sock), **kwargs)

    def close(self) -> None:
        self.socket.close()
