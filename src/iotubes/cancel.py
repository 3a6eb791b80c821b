""" External cancellation for blocking tube operations. A :class:`Cancel`
    instance is handed to any number of blocking calls, potentially running
    in different threads; calling :func:`Cancel.cancel` from anywhere wakes
    all of them.

    Waking a thread that is blocked in a poll is done the same way a ZeroMQ
    polling loop is woken for outbound work: the waiting thread registers
    the receiving half of an inproc PAIR socket alongside the descriptor
    it is waiting on, and the cancelling thread sends an empty message
    on the other half. Each waiter gets its own pair; ZeroMQ sockets are
    not safe to poll from more than one thread at a time.
"""

import itertools
import threading
import zmq

zmq_context = zmq.Context()
_sequence = itertools.count()


class Cancel:
    """ A one-shot cancellation signal. Once set it stays set; create a new
        instance to start over.
    """

    def __init__(self):

        self.event = threading.Event()
        self.lock = threading.Lock()
        self.watches = dict()


    def __repr__(self):
        state = 'set' if self.is_set() else 'clear'
        return "<%s %s, %d waiting>" % (self.__class__.__name__, state, len(self.watches))


    def cancel(self):
        """ Set the signal and wake every thread currently waiting on it.
            Redundant calls are a no-op.
        """

        with self.lock:
            if self.event.is_set():
                return

            self.event.set()
            for watch in self.watches.values():
                watch._signal()


    def is_set(self):
        return self.event.is_set()


    def wait(self, timeout=None):
        """ Block the calling thread until the signal is set, or until
            *timeout* seconds elapse. Returns whether the signal is set.
        """

        return self.event.wait(timeout)


    def watch(self):
        """ Return a :class:`Watch` whose :attr:`Watch.socket` becomes
            readable once this signal is set. The watch must only be polled
            from the thread that created it, and must be closed afterwards;
            it is a context manager for that purpose.
        """

        return Watch(self)


# end of class Cancel



class Watch:
    """ A single waiter's view of a :class:`Cancel` signal.
    """

    def __init__(self, cancel):

        self.cancel = cancel
        self.id = next(_sequence)

        internal = "inproc://iotubes.Cancel:%d" % (self.id)
        self.socket = zmq_context.socket(zmq.PAIR)
        self.socket.setsockopt(zmq.LINGER, 0)
        self.socket.bind(internal)

        self._sender = zmq_context.socket(zmq.PAIR)
        self._sender.setsockopt(zmq.LINGER, 0)
        self._sender.connect(internal)

        with cancel.lock:
            cancel.watches[self.id] = self
            if cancel.event.is_set():
                self._signal()


    def __enter__(self):
        return self


    def __exit__(self, *exc_info):
        self.close()


    def _signal(self):

        # Only ever invoked with the Cancel lock held, which is what makes it
        # acceptable to use the sending socket from a foreign thread.

        try:
            self._sender.send(b'', zmq.NOBLOCK)
        except zmq.Again:
            pass


    def close(self):

        with self.cancel.lock:
            self.cancel.watches.pop(self.id, None)
            self._sender.close()

        self.socket.close()


# end of class Watch


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
