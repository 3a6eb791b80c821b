""" Deadlines and readiness waits. Every blocking operation in iotubes ends
    up here: a :class:`Waiter` suspends the calling thread in a ZeroMQ poll
    until a descriptor is ready, a deadline elapses, or a cancellation
    signal fires. Nothing in iotubes sleeps in a loop waiting for data.
"""

import time
import zmq

from .transport.base import TubeCancelled, TubeTimeout

READ = zmq.POLLIN
WRITE = zmq.POLLOUT


class Deadline:
    """ A point in (monotonic) time after which a blocking operation gives
        up. A *timeout* of None is a deadline that never arrives.
    """

    def __init__(self, timeout=None):

        if timeout is None:
            self.expires = None
        else:
            timeout = float(timeout)
            if timeout < 0:
                raise ValueError('timeout cannot be negative: ' + repr(timeout))
            self.expires = time.monotonic() + timeout

        self.timeout = timeout


    def __repr__(self):
        if self.expires is None:
            return '<Deadline forever>'
        return '<Deadline in %.3fs>' % (self.remaining())


    def remaining(self):
        """ Seconds left before the deadline, never negative; None if the
            deadline never arrives.
        """

        if self.expires is None:
            return None

        return max(0.0, self.expires - time.monotonic())


    def expired(self):

        if self.expires is None:
            return False

        return time.monotonic() >= self.expires


    def milliseconds(self):
        """ Remaining time in the form expected by :func:`zmq.Poller.poll`.
        """

        remaining = self.remaining()
        if remaining is None:
            return None

        # Round up, otherwise a sub-millisecond remainder spins through
        # zero-length polls until the deadline actually passes.

        return int(remaining * 1000) + 1


# end of class Deadline



class Waiter:
    """ Wait for *fd* to become ready for *events* (:data:`READ` or
        :data:`WRITE`), while also watching any number of
        :class:`iotubes.cancel.Cancel` signals. A *fd* of None waits for
        cancellation alone. The instance must be used, and closed, by a
        single thread; it is a context manager.
    """

    def __init__(self, fd=None, events=READ, cancels=()):

        self.fd = fd
        self.poller = zmq.Poller()
        self.watches = list()

        if fd is not None:
            self.poller.register(fd, events)

        for cancel in cancels:
            if cancel is None:
                continue
            watch = cancel.watch()
            self.watches.append(watch)
            self.poller.register(watch.socket, zmq.POLLIN)


    def __enter__(self):
        return self


    def __exit__(self, *exc_info):
        self.close()


    def cancelled(self):
        for watch in self.watches:
            if watch.cancel.is_set():
                return True
        return False


    def wait(self, deadline):
        """ Block until the descriptor is ready. Raises
            :class:`TubeCancelled` if any watched signal fires first, and
            :class:`TubeTimeout` if the *deadline* elapses first. Error and
            hangup conditions count as ready: the subsequent read or write
            is what reports them.
        """

        while True:
            if self.cancelled():
                raise TubeCancelled('operation cancelled')

            if deadline.expired():
                raise TubeTimeout('timed out after %.3f seconds' % (deadline.timeout))

            ready = dict(self.poller.poll(deadline.milliseconds()))

            for watch in self.watches:
                if watch.socket in ready:
                    raise TubeCancelled('operation cancelled')

            if self.fd is not None and self.fd in ready:
                return ready[self.fd]


    def close(self):

        for watch in self.watches:
            watch.close()

        self.watches = list()


# end of class Waiter


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
