"""TCP socket transport."""

from __future__ import annotations

import logging
import socket as pysocket
from typing import Optional

from .base import Transport

logger = logging.getLogger(__name__)


class SocketTransport(Transport):
    """Wrap an already connected stream socket."""

    kind = "socket"

    def __init__(self, sock: pysocket.socket):
        self.socket = sock
        self.socket.setblocking(False)
        self._fd = sock.fileno()
        self._write_closed = False
        self._closed = False

    @classmethod
    def connect(cls, host: str, port: int, timeout: Optional[float] = None) -> "SocketTransport":
        sock = pysocket.create_connection((host, int(port)), timeout)
        logger.debug("connected to %s:%d", host, int(port))
        return cls(sock)

    def __repr__(self) -> str:
        state = "open" if self.is_open else "closed"
        try:
            peer = "%s:%d" % self.socket.getpeername()[:2]
        except OSError:
            peer = "?"
        return f"<SocketTransport {peer} {state}>"

    def fileno(self) -> int:
        return self._fd

    def read_some(self, size: int) -> Optional[bytes]:
        try:
            return self.socket.recv(size)
        except (BlockingIOError, InterruptedError):
            return None

    def write_some(self, data: bytes) -> int:
        try:
            return self.socket.send(data)
        except (BlockingIOError, InterruptedError):
            return 0

    def close_write(self) -> None:
        self._write_closed = True
        try:
            self.socket.shutdown(pysocket.SHUT_WR)
        except OSError:
            # Already disconnected; nothing left to half-close.
            pass

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self.socket.close()

    @property
    def is_open(self) -> bool:
        return not self._closed

    @property
    def write_closed(self) -> bool:
        return self._write_closed or self._closed
