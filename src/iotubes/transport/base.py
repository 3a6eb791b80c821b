"""Transport interface.

This is the (small) contract that transport implementations should follow.
The receive engine and the interactive bridge only ever talk to a transport
through it, so every variant (process, socket, raw descriptor) behaves the
same way once it is open.
"""

from __future__ import annotations

import os
from abc import ABC, abstractmethod
from typing import Optional


# Transport agnostic exceptions

class TubeError(Exception):
    """Base class for all tube errors."""


class TubeIOError(TubeError):
    """The transport failed while reading or writing; the tube is unusable."""


class TubeClosed(TubeIOError):
    """The operation was attempted on a tube that was already closed."""


class TubeEOF(TubeError):
    """The peer closed before the request could be satisfied.

    Every unconsumed byte received so far is attached as :attr:`data`.
    """

    def __init__(self, data: bytes = b"", message: Optional[str] = None):
        self.data = bytes(data)
        if message is None:
            message = f"end of stream with {len(self.data)} unconsumed bytes"
        super().__init__(message)


class TubeTimeout(TubeError):
    """The deadline elapsed first; buffered bytes remain in the tube."""


class TubeCancelled(TubeError):
    """An external cancellation was observed; buffered bytes remain in the tube."""


class TubeBusy(TubeError):
    """Another receive (or an interactive session) already owns the buffer."""


class InvalidPattern(TubeError, ValueError):
    """A regular expression could not be compiled into a bytes pattern."""


class Transport(ABC):
    """Minimal contract for a duplex byte channel.

    Reads and writes never block: callers wait for readiness on
    :meth:`fileno` / :meth:`write_fileno` first. Errors are raised as plain
    :class:`OSError`; the tube translates them.
    """

    kind = "transport"

    @abstractmethod
    def fileno(self) -> int:
        """Descriptor that becomes readable when data (or EOF) is pending."""

    def write_fileno(self) -> int:
        """Descriptor that becomes writable when the channel accepts data."""
        return self.fileno()

    @abstractmethod
    def read_some(self, size: int) -> Optional[bytes]:
        """Return up to *size* bytes, ``b''`` at EOF, or None if nothing is ready."""

    @abstractmethod
    def write_some(self, data: bytes) -> int:
        """Write a prefix of *data*, returning how many bytes were accepted."""

    @abstractmethod
    def close_write(self) -> None:
        """Half-close: signal EOF to the peer, keep reading."""

    @abstractmethod
    def close(self) -> None:
        """Tear down the underlying resource. Safe to call more than once."""

    @property
    def is_open(self) -> bool:
        """Whether the transport is currently usable."""
        return False

    @property
    def write_closed(self) -> bool:
        """Whether the write direction was closed with :meth:`close_write`.

        Once it is, :meth:`write_fileno` no longer names a descriptor this
        transport owns and must not be polled.
        """
        return False

    def __repr__(self) -> str:
        state = "open" if self.is_open else "closed"
        return f"<{type(self).__name__} {self.kind} {state}>"


# Helpers shared by the descriptor-backed variants.

def read_descriptor(fd: int, size: int) -> Optional[bytes]:
    try:
        return os.read(fd, size)
    except (BlockingIOError, InterruptedError):
        return None


def write_descriptor(fd: int, data: bytes) -> int:
    try:
        return os.write(fd, data)
    except (BlockingIOError, InterruptedError):
        return 0


def as_descriptor(thing) -> int:
    """Accept an integer descriptor or anything with a ``fileno()`` method."""

    if isinstance(thing, int):
        return thing

    try:
        fileno = thing.fileno
    except AttributeError:
        raise TypeError(f"expected a file descriptor or an object with fileno(), not {type(thing).__name__}")

    return fileno()
