""" Python implementation of tubes: a single scriptable interface for
    talking to a spawned process, a TCP peer, or any other duplex byte
    channel. Receive up to a delimiter, a regular expression, or a fixed
    length, send whole payloads, and hand the stream to the local terminal
    with interactive mode.
"""

# Utility components.

from . import config
from . import log
from . import cancel
from . import poll

# Submodules used by multiple other components.

from . import transport
from .transport import (
    Transport,
    ProcessTransport,
    SocketTransport,
    RawTransport,
    DebugTransport,
    TubeError,
    TubeIOError,
    TubeClosed,
    TubeEOF,
    TubeTimeout,
    TubeCancelled,
    TubeBusy,
    InvalidPattern,
)

from .cancel import Cancel

# Primary public-facing interfaces.

from .tube import Tube
from .listener import Listener
from .interactive import Interactive, State

process = Tube.process
remote = Tube.remote
raw = Tube.raw
listen = Listener.listen

# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
