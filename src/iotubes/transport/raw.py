"""Transport over externally supplied descriptors.

Anything that can be polled works: a pipe pair, a pty master, a serial
device, or both ends of an :func:`os.pipe` for testing. The transport takes
ownership, and closes what it was given when it is closed.
"""

from __future__ import annotations

import os
from typing import Optional

from .base import Transport, as_descriptor, read_descriptor, write_descriptor


class RawTransport(Transport):
    """Read from *reader*, write to *writer* (the same channel if omitted).

    Both may be integer descriptors or objects with a ``fileno()`` method.
    """

    kind = "raw"

    def __init__(self, reader, writer=None):
        if writer is None:
            writer = reader

        self.reader = reader
        self.writer = writer
        self._read_fd = as_descriptor(reader)
        self._write_fd = as_descriptor(writer)
        self._duplex = self._read_fd == self._write_fd
        self._write_closed = False
        self._closed = False

        os.set_blocking(self._read_fd, False)
        os.set_blocking(self._write_fd, False)

    def fileno(self) -> int:
        return self._read_fd

    def write_fileno(self) -> int:
        return self._write_fd

    def read_some(self, size: int) -> Optional[bytes]:
        return read_descriptor(self._read_fd, size)

    def write_some(self, data: bytes) -> int:
        if self._write_closed:
            raise BrokenPipeError("write direction is closed")
        return write_descriptor(self._write_fd, data)

    def close_write(self) -> None:
        if self._write_closed:
            return
        self._write_closed = True

        # A single duplex descriptor cannot be half-closed generically; the
        # write direction is only refused locally.

        if not self._duplex:
            _release(self.writer)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True

        _release(self.reader)
        if not self._duplex and not self._write_closed:
            _release(self.writer)
        self._write_closed = True

    @property
    def is_open(self) -> bool:
        return not self._closed

    @property
    def write_closed(self) -> bool:
        return self._write_closed


def _release(thing) -> None:
    try:
        if isinstance(thing, int):
            os.close(thing)
        else:
            thing.close()
    except OSError:
        pass
