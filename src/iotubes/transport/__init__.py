"""Transport layer implementations."""

from .base import (
    Transport,
    TubeError,
    TubeIOError,
    TubeClosed,
    TubeEOF,
    TubeTimeout,
    TubeCancelled,
    TubeBusy,
    InvalidPattern,
)

from .process import ProcessTransport
from .remote import SocketTransport
from .raw import RawTransport
from .debug import DebugTransport
