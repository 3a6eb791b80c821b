"""Boundary searches over the receive buffer.

A matcher describes where a receive operation stops: after a literal
delimiter, after a regular expression match, or after a fixed number of
bytes. :meth:`Matcher.search` is called each time new bytes arrive and
returns a :class:`Match` once the boundary is in the buffer, None while the
answer is still inconclusive.

Literal searches are incremental. Each call only looks at the bytes
appended since the previous call plus ``len(delimiter) - 1`` bytes of
overlap, so the total work for one receive is linear in the number of
bytes received, no matter how many reads it took to deliver them. The
buffer's scan cursor survives a timeout, so a retried receive for the same
delimiter picks up where the failed one stopped.

Regular expressions are rescanned from the first unconsumed byte whenever
new data arrives: a match may begin anywhere, and may need arbitrarily
much context. That makes a long wait for a regex quadratic in the worst
case. It is a performance caveat, not a correctness one; use a literal
delimiter where one will do.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional, Tuple, Union

from .buffer import Buffer
from .transport.base import InvalidPattern

BytesLike = Union[bytes, bytearray, memoryview, str]


def as_bytes(data: BytesLike, encoding: str = "utf-8") -> bytes:
    """Normalize the accepted input representations to :class:`bytes`."""

    if isinstance(data, bytes):
        return data
    if isinstance(data, (bytearray, memoryview)):
        return bytes(data)
    if isinstance(data, str):
        return data.encode(encoding)

    raise TypeError(f"expected str or a bytes-like object, not {type(data).__name__}")


@dataclass(frozen=True)
class Match:
    """Logical offset one past the end of the boundary, plus regex groups."""

    end: int
    groups: Tuple[Optional[bytes], ...] = ()


class Matcher:
    """Base class; one instance is the pending state of one receive call.

    :ivar examined: Total number of buffer bytes looked at so far.
    """

    def __init__(self):
        self.examined = 0

    def search(self, buffer: Buffer) -> Optional[Match]:
        raise NotImplementedError


class Literal(Matcher):
    """Match an exact byte sequence."""

    def __init__(self, delimiter: BytesLike, encoding: str = "utf-8"):
        super().__init__()
        self.delimiter = as_bytes(delimiter, encoding)
        if not self.delimiter:
            raise ValueError("delimiter cannot be empty")
        self.key = ("literal", self.delimiter)

    def __repr__(self) -> str:
        return f"<Literal {self.delimiter!r}>"

    def search(self, buffer: Buffer) -> Optional[Match]:
        length = len(buffer)
        scanned = buffer.resume(self.key)
        begin = max(0, scanned - (len(self.delimiter) - 1))

        if length - begin < len(self.delimiter):
            return None

        index = buffer.data.find(self.delimiter, buffer.start + begin)
        if index < 0:
            self.examined += length - begin
            buffer.scanned = length
            return None

        index -= buffer.start
        end = index + len(self.delimiter)
        self.examined += end - begin
        return Match(end)


class Regex(Matcher):
    """Match a regular expression compiled from a bytes (or text) pattern."""

    def __init__(self, pattern: Union[BytesLike, re.Pattern], encoding: str = "utf-8"):
        super().__init__()
        self.pattern = compile_pattern(pattern, encoding)
        self.key = ("regex", self.pattern)

    def __repr__(self) -> str:
        return f"<Regex {self.pattern.pattern!r}>"

    def search(self, buffer: Buffer) -> Optional[Match]:
        buffer.resume(self.key)
        buffer.compact()

        found = self.pattern.search(buffer.data)
        self.examined += len(buffer)
        if found is None:
            buffer.scanned = len(buffer)
            return None

        groups = tuple(None if group is None else bytes(group) for group in found.groups())
        return Match(found.end(), groups)


class Exact(Matcher):
    """Match once *count* bytes have accumulated."""

    def __init__(self, count: int):
        super().__init__()
        count = int(count)
        if count < 0:
            raise ValueError(f"byte count cannot be negative: {count}")
        self.count = count

    def __repr__(self) -> str:
        return f"<Exact {self.count}>"

    def search(self, buffer: Buffer) -> Optional[Match]:
        if len(buffer) >= self.count:
            return Match(self.count)
        return None


def compile_pattern(pattern, encoding: str = "utf-8") -> re.Pattern:
    """Return a compiled bytes regular expression.

    Raises :class:`InvalidPattern` for anything that is not, or cannot be
    made into, one.
    """

    if isinstance(pattern, re.Pattern):
        if not isinstance(pattern.pattern, bytes):
            raise InvalidPattern(f"pattern {pattern.pattern!r} must be compiled from bytes, not str")
        return pattern

    try:
        source = as_bytes(pattern, encoding)
    except TypeError as exc:
        raise InvalidPattern(str(exc)) from exc

    try:
        return re.compile(source)
    except re.error as exc:
        raise InvalidPattern(f"invalid regular expression {source!r}: {exc}") from exc
