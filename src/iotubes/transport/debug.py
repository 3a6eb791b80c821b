"""A transport wrapper that copies all traffic to a pair of writers, like tee.

The logs are never closed by the wrapper; whoever created them owns them.
"""

from __future__ import annotations

from typing import Optional

from .base import Transport


class DebugTransport(Transport):
    """Pass everything through to *inner*, copying it to the two logs.

    *read_log* receives every byte read from the peer and *write_log* every
    byte accepted by the peer. Either may be None. A log only needs a
    ``write()`` method; ``flush()`` is called when it exists.
    """

    def __init__(self, inner: Transport, read_log=None, write_log=None):
        self.inner = inner
        self.read_log = read_log
        self.write_log = write_log
        self.kind = inner.kind

    def __repr__(self) -> str:
        return f"<DebugTransport {self.inner!r}>"

    def fileno(self) -> int:
        return self.inner.fileno()

    def write_fileno(self) -> int:
        return self.inner.write_fileno()

    def read_some(self, size: int) -> Optional[bytes]:
        data = self.inner.read_some(size)
        if data:
            _copy(self.read_log, data)
        return data

    def write_some(self, data: bytes) -> int:
        count = self.inner.write_some(data)
        if count:
            _copy(self.write_log, data[:count])
        return count

    def close_write(self) -> None:
        self.inner.close_write()

    def close(self) -> None:
        self.inner.close()

    @property
    def is_open(self) -> bool:
        return self.inner.is_open

    @property
    def write_closed(self) -> bool:
        return self.inner.write_closed


def _copy(log, data: bytes) -> None:
    if log is None:
        return

    log.write(data)
    try:
        flush = log.flush
    except AttributeError:
        return
    flush()
