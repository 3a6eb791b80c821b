""" Interactive mode: bridge a tube to the local terminal. Two background
    threads pump bytes, one from local input to the transport and one from
    the transport to local output. Whichever stops first (end of input,
    end of stream, an error, or an external cancellation) trips a shared
    :class:`~iotubes.cancel.Cancel`, which wakes the other one out of its
    poll; the session does not return until both threads are gone.

    Raw terminal mode is the caller's business; this module only moves
    bytes, and never interprets them.
"""

import enum
import logging
import os
import sys
import threading

from . import log
from .cancel import Cancel
from .poll import READ, Deadline, Waiter
from .transport.base import TubeCancelled, TubeError, as_descriptor

logger = logging.getLogger(__name__)


class State(enum.Enum):
    IDLE = 'idle'
    RUNNING = 'running'
    TERMINATING = 'terminating'
    ERRORED = 'errored'
    TERMINATED = 'terminated'



class Interactive:
    """ One interactive session over *tube*. *stdin* must expose a file
        descriptor (default :data:`sys.stdin`); *stdout* only needs a
        ``write()`` method (default :data:`sys.stdout`'s binary buffer).
        The session holds the tube's receive buffer exclusively while it
        runs, so a concurrent receive fails with :class:`TubeBusy`.

        :ivar state: The current :class:`State` of the session.
        :ivar error: The local-side exception that ended the session, if any.
    """

    def __init__(self, tube, stdin=None, stdout=None, cancel=None):

        if stdin is None:
            stdin = sys.stdin
        if stdout is None:
            stdout = sys.stdout.buffer

        self.tube = tube
        self.stdin = stdin
        self.stdout = stdout
        self.stdin_fd = as_descriptor(stdin)
        self.cancel = cancel
        self.chunk_size = tube.chunk_size

        self.state = State.IDLE
        self.error = None
        self.stop = None
        self.threads = list()
        self._state_lock = threading.Lock()


    def __repr__(self):
        return "<%s %s>" % (self.__class__.__name__, self.state.value)


    def _transition(self, state):

        with self._state_lock:
            if self.state is State.ERRORED and state is State.TERMINATING:
                return
            logger.debug("interactive session: %s -> %s", self.state.value, state.value)
            self.state = state


    def _local_failure(self, exc):

        with self._state_lock:
            if self.error is None:
                self.error = exc

        self._transition(State.ERRORED)


    def _display(self, data):

        self.stdout.write(data)

        try:
            flush = self.stdout.flush
        except AttributeError:
            return

        flush()


    def run(self):
        """ Run the session to completion. Raises the local-side error that
            ended it, if there was one; a remote end of stream, a remote
            failure, or an external cancellation return normally.
        """

        if self.state is not State.IDLE:
            raise RuntimeError('an interactive session can only run once')

        receiver = self.tube.receiver

        with receiver.exclusive() as buffer:
            receiver.check()
            self.stop = Cancel()
            self._transition(State.RUNNING)

            try:
                if buffer:
                    pending = buffer.consume_all()
                    try:
                        self._display(pending)
                    except Exception as exc:
                        self._local_failure(exc)

                if self.error is None and not receiver.eof:
                    self._start()
                    self._wait()

            finally:
                self._teardown()

        if self.error is not None:
            raise self.error


    def _start(self):

        for target in (self._local_to_remote, self._remote_to_local):
            thread = threading.Thread(target=target, name='iotubes.' + target.__name__.strip('_'))
            thread.daemon = True
            self.threads.append(thread)
            thread.start()


    def _wait(self):

        # Sleep until either pump trips the stop signal, or the caller
        # cancels the session from outside.

        with Waiter(None, READ, (self.stop, self.cancel)) as waiter:
            try:
                waiter.wait(Deadline(None))
            except TubeCancelled:
                pass

        if self.cancel is not None and self.cancel.is_set():
            logger.debug('interactive session cancelled by caller')


    def _teardown(self):

        self._transition(State.TERMINATING)
        self.stop.cancel()

        for thread in self.threads:
            thread.join()

        self.threads = list()
        self._transition(State.TERMINATED)


    def _local_to_remote(self):

        forever = Deadline(None)

        try:
            with Waiter(self.stdin_fd, READ, (self.stop,)) as waiter:
                while True:
                    waiter.wait(forever)

                    try:
                        data = os.read(self.stdin_fd, self.chunk_size)
                    except (BlockingIOError, InterruptedError):
                        continue
                    except Exception as exc:
                        self._local_failure(exc)
                        return

                    if not data:
                        logger.debug('local input reached end of file')
                        return

                    self.tube.write_all(data, forever, self.stop)

        except TubeCancelled:
            pass
        except TubeError as exc:
            logger.warning("interactive session: sending to %r failed: %s", self.tube.transport, exc)
        finally:
            self.stop.cancel()


    def _remote_to_local(self):

        forever = Deadline(None)
        transport = self.tube.transport
        receiver = self.tube.receiver

        try:
            with Waiter(transport.fileno(), READ, (self.stop,)) as waiter:
                while True:
                    waiter.wait(forever)

                    try:
                        data = transport.read_some(self.chunk_size)
                    except OSError as exc:
                        receiver.fail(exc)
                        logger.warning("interactive session: reading from %r failed: %s", transport, exc)
                        return

                    if data is None:
                        continue

                    if not data:
                        receiver.eof = True
                        logger.debug("end of stream on %r", transport)
                        return

                    log.traffic(log.recv, 'received', data)

                    try:
                        self._display(data)
                    except Exception as exc:
                        self._local_failure(exc)
                        return

        except TubeCancelled:
            pass
        finally:
            self.stop.cancel()


# end of class Interactive


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
