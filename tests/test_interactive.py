import io
import os
import threading
import time

import iotubes
import pytest


class BrokenOutput:
    """ A local output that fails on every write.
    """

    def write(self, data):
        raise OSError('local terminal went away')



def test_remote_eof(scripted, local_input):

    tube, transport = scripted([b'buffered\nrest'])
    assert tube.recv_line(timeout=5) == b'buffered\n'

    transport.deliver(b'hello')
    transport.end()

    output = io.BytesIO()
    session = iotubes.Interactive(tube, local_input[0], output)

    assert session.state is iotubes.State.IDLE
    assert session.run() is None
    assert session.state is iotubes.State.TERMINATED
    assert session.error is None

    # Whatever was already buffered comes out first.

    assert output.getvalue() == b'resthello'
    assert tube.receiver.eof
    assert len(tube.receiver.buffer) == 0


def test_remote_eof_through_tube(scripted, local_input):

    tube, transport = scripted([b'prompt> '])
    transport.end()

    output = io.BytesIO()
    tube.interactive(local_input[0], output)

    assert output.getvalue() == b'prompt> '

    with pytest.raises(iotubes.TubeEOF):
        tube.recv(timeout=5)


def test_local_eof(scripted, local_input):

    tube, transport = scripted()

    os.write(local_input[1], b'cmd\n')
    os.close(local_input.pop())

    output = io.BytesIO()
    tube.interactive(local_input[0], output)

    assert transport.written == b'cmd\n'
    assert output.getvalue() == b''

    # The tube is still usable afterwards.

    transport.deliver(b'answer\n')
    assert tube.recv_line(timeout=5) == b'answer\n'


def test_both_directions(scripted, local_input):

    tube, transport = scripted(echo=True)

    os.write(local_input[1], b'echo me\n')

    output = io.BytesIO()
    cancel = iotubes.Cancel()
    session = iotubes.Interactive(tube, local_input[0], output, cancel)

    thread = threading.Thread(target=session.run)
    thread.start()

    try:
        deadline = time.monotonic() + 5
        while output.getvalue() != b'echo me\n':
            assert time.monotonic() < deadline
            time.sleep(0.01)
    finally:
        cancel.cancel()
        thread.join()

    assert session.state is iotubes.State.TERMINATED
    assert transport.written == b'echo me\n'


def test_local_output_error(scripted, local_input):

    tube, transport = scripted([b'hello'])

    with pytest.raises(OSError):
        tube.interactive(local_input[0], BrokenOutput())


def test_buffered_output_error(scripted, local_input):

    tube, transport = scripted([b'one\ntwo'])
    assert tube.recv_line(timeout=5) == b'one\n'

    session = iotubes.Interactive(tube, local_input[0], BrokenOutput())

    with pytest.raises(OSError):
        session.run()

    assert session.state is iotubes.State.TERMINATED
    assert isinstance(session.error, OSError)
    assert session.threads == []


def test_remote_error(scripted, local_input):
    """ Failures on the remote side end the session without raising, but
        the tube remembers them.
    """

    tube, transport = scripted([b'data'])
    transport.read_error = ConnectionResetError('reset by peer')

    output = io.BytesIO()
    tube.interactive(local_input[0], output)

    assert output.getvalue() == b''

    with pytest.raises(iotubes.TubeIOError):
        tube.recv(timeout=5)


def test_cancel(scripted, local_input):

    tube, transport = scripted()

    cancel = iotubes.Cancel()
    timer = threading.Timer(0.05, cancel.cancel)
    timer.start()

    session = iotubes.Interactive(tube, local_input[0], io.BytesIO(), cancel)

    try:
        session.run()
    finally:
        timer.cancel()

    assert session.state is iotubes.State.TERMINATED

    # Nothing was lost: the tube picks up where it left off.

    transport.deliver(b'after\n')
    assert tube.recv_line(timeout=5) == b'after\n'


def test_run_once(scripted, local_input):

    tube, transport = scripted()
    transport.end()

    session = iotubes.Interactive(tube, local_input[0], io.BytesIO())
    session.run()

    with pytest.raises(RuntimeError):
        session.run()


def test_busy(scripted, local_input):

    tube, transport = scripted()
    thread = threading.Thread(target=tube.recv_until, args=(b'END', 10))
    thread.start()

    try:
        deadline = time.monotonic() + 5
        while not tube.receiver.busy:
            assert time.monotonic() < deadline
            time.sleep(0.01)

        with pytest.raises(iotubes.TubeBusy):
            tube.interactive(local_input[0], io.BytesIO())

    finally:
        transport.deliver(b'END')
        thread.join()


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
