import collections
import os
import threading

import pytest

import iotubes


class ScriptedTransport(iotubes.Transport):
    """ A transport that delivers exactly the chunks it is told to, one
        chunk per read, and records everything written to it. Readiness is
        signalled through a pipe so that it can be polled like any other
        transport: one byte in the pipe per pending chunk, and the write end
        of the pipe is closed at end of stream.
    """

    kind = 'scripted'

    def __init__(self, chunks=(), echo=False):

        self.chunks = collections.deque()
        self.echo = echo
        self.reads = 0
        self.written = bytearray()
        self._write_closed = False
        self.read_error = None
        self.write_error = None

        self.lock = threading.Lock()
        self.ended = False
        self.closed = False

        self._wake_r, self._wake_w = os.pipe()
        self._sink_r, self._sink_w = os.pipe()
        os.set_blocking(self._wake_r, False)

        for chunk in chunks:
            self.deliver(chunk)


    def deliver(self, chunk):
        with self.lock:
            self.chunks.append(bytes(chunk))
            os.write(self._wake_w, b'!')


    def end(self):
        with self.lock:
            if self.ended == False:
                self.ended = True
                os.close(self._wake_w)


    def fileno(self):
        return self._wake_r


    def write_fileno(self):
        return self._sink_w


    def read_some(self, size):

        if self.read_error is not None:
            raise self.read_error

        with self.lock:
            if self.chunks:
                chunk = self.chunks[0]
                if len(chunk) > size:
                    self.chunks[0] = chunk[size:]
                    chunk = chunk[:size]
                else:
                    self.chunks.popleft()
                    os.read(self._wake_r, 1)
                self.reads += 1
                return chunk

            if self.ended:
                self.reads += 1
                return b''

        return None


    def write_some(self, data):

        if self.write_error is not None:
            raise self.write_error

        data = bytes(data)
        self.written += data

        if self.echo:
            self.deliver(data)

        return len(data)


    def close_write(self):
        self._write_closed = True


    def close(self):

        if self.closed:
            return

        self.closed = True
        self.end()
        for fd in (self._wake_r, self._sink_r, self._sink_w):
            os.close(fd)


    @property
    def is_open(self):
        return not self.closed


    @property
    def write_closed(self):
        return self._write_closed



@pytest.fixture
def scripted():
    """ Factory for :class:`ScriptedTransport` instances wrapped in a tube.
        Returns (tube, transport) pairs; everything is closed afterwards. The
        optional *wrap* callable is applied to the transport before the
        tube is built around it.
    """

    created = list()

    def factory(chunks=(), echo=False, wrap=None, **kwargs):
        transport = ScriptedTransport(chunks, echo)
        if wrap is None:
            tube = iotubes.Tube(transport, **kwargs)
        else:
            tube = iotubes.Tube(wrap(transport), **kwargs)
        created.append(tube)
        return tube, transport

    yield factory

    for tube in created:
        tube.close()


@pytest.fixture
def local_input():
    """ A pipe standing in for the local terminal's input. Yields the
        (read, write) descriptors; whichever are still open afterwards are
        closed.
    """

    read, write = os.pipe()
    descriptors = [read, write]

    yield descriptors

    for fd in descriptors:
        try:
            os.close(fd)
        except OSError:
            pass


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
