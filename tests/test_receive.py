import threading
import time

import iotubes
import pytest


@pytest.mark.parametrize('payload', [
    b'',
    b'x',
    b'no delimiter in here at all',
    bytes(range(256)).replace(b'Z', b''),
])
def test_eof_carries_everything(scripted, payload):

    chunks = [payload[i:i + 7] for i in range(0, len(payload), 7)]
    tube, transport = scripted(chunks)
    transport.end()

    with pytest.raises(iotubes.TubeEOF) as caught:
        tube.recv_until(b'Z', timeout=5)

    assert caught.value.data == payload


def test_split_delivery(scripted):

    tube, transport = scripted([b'abc', b'Xdef'])

    assert tube.recv_until(b'X', timeout=5) == b'abcX'
    assert tube.recv_exact(3, timeout=5) == b'def'


def test_recv_exact_partial(scripted):

    tube, transport = scripted([b'12', b'34'])
    transport.end()

    with pytest.raises(iotubes.TubeEOF) as caught:
        tube.recv_exact(10, timeout=5)

    assert caught.value.data == b'1234'


def test_timeout_keeps_data(scripted):

    tube, transport = scripted([b'partial'])

    with pytest.raises(iotubes.TubeTimeout):
        tube.recv_until(b'END', timeout=0.05)

    reads = transport.reads
    assert reads == 1

    # The bytes read before the timeout are still there, and no further
    # read was needed to get them.

    assert tube.recv_exact(7, timeout=5) == b'partial'
    assert transport.reads == reads


def test_retry_after_timeout(scripted):

    tube, transport = scripted([b'first half, '])

    with pytest.raises(iotubes.TubeTimeout):
        tube.recv_until('END', timeout=0.05)

    transport.deliver(b'second half END trailing')

    assert tube.recv_until('END', timeout=5) == b'first half, second half END'
    assert tube.peek() == b' trailing'


def test_cancel(scripted):

    tube, transport = scripted([b'some'])
    cancel = iotubes.Cancel()

    timer = threading.Timer(0.05, cancel.cancel)
    timer.start()

    begin = time.monotonic()
    try:
        with pytest.raises(iotubes.TubeCancelled):
            tube.recv_until(b'END', timeout=10, cancel=cancel)
    finally:
        timer.cancel()

    assert time.monotonic() - begin < 5

    # Cancellation is just as recoverable as a timeout.

    transport.deliver(b' more END')
    assert tube.recv_until(b'END', timeout=5) == b'some more END'


def test_cancel_already_set(scripted):

    tube, transport = scripted([b'a\nb\n'])

    assert tube.recv_line(timeout=5) == b'a\n'

    cancel = iotubes.Cancel()
    cancel.cancel()

    # A boundary that is already buffered is returned regardless.

    assert tube.recv_line(timeout=5, cancel=cancel) == b'b\n'

    with pytest.raises(iotubes.TubeCancelled):
        tube.recv_line(timeout=5, cancel=cancel)


def test_concurrent_receive_is_rejected(scripted):

    tube, transport = scripted()
    results = list()

    def background():
        results.append(tube.recv_until(b'END', timeout=10))

    thread = threading.Thread(target=background)
    thread.start()

    try:
        deadline = time.monotonic() + 5
        while not tube.receiver.busy:
            assert time.monotonic() < deadline
            time.sleep(0.01)

        with pytest.raises(iotubes.TubeBusy):
            tube.recv_line(timeout=1)

        with pytest.raises(iotubes.TubeBusy):
            tube.peek()

        # Sending does not touch the receive buffer.

        tube.send(b'still allowed')

    finally:
        transport.deliver(b'END')
        thread.join()

    assert results == [b'END']
    assert transport.written == b'still allowed'


def test_recv_some(scripted):

    tube, transport = scripted([b'0123456789'])

    assert tube.recv(4, timeout=5) == b'0123'

    # Buffered bytes first, without touching the transport again.

    assert tube.recv(100, timeout=5) == b'456789'
    assert transport.reads == 1

    transport.end()
    with pytest.raises(iotubes.TubeEOF) as caught:
        tube.recv(timeout=5)

    assert caught.value.data == b''

    with pytest.raises(ValueError):
        tube.recv(0)


def test_after_eof(scripted):

    tube, transport = scripted([b'one\ntwo\nthree'])
    transport.end()

    assert tube.recv_line(timeout=5) == b'one\n'

    # Reaching the end of the stream does not lose what was buffered.

    with pytest.raises(iotubes.TubeEOF) as caught:
        tube.recv_until(b'four', timeout=5)

    assert caught.value.data == b'two\nthree'

    with pytest.raises(iotubes.TubeEOF) as caught:
        tube.recv_line(timeout=5)

    assert caught.value.data == b''


def test_eof_is_permanent(scripted):

    tube, transport = scripted([b'x\ny\n'])
    transport.end()

    assert tube.recv_line(timeout=5) == b'x\n'
    assert tube.recv_line(timeout=5) == b'y\n'
    assert not tube.receiver.eof

    for attempt in range(2):
        with pytest.raises(iotubes.TubeEOF) as caught:
            tube.recv_line(timeout=5)
        assert caught.value.data == b''

    assert tube.receiver.eof
    reads = transport.reads

    # Once the end was seen, the transport is not read again.

    with pytest.raises(iotubes.TubeEOF):
        tube.recv(timeout=5)

    assert transport.reads == reads


def test_io_failure_is_permanent(scripted):

    tube, transport = scripted([b'data'])
    transport.read_error = ConnectionResetError('reset by peer')

    with pytest.raises(iotubes.TubeIOError):
        tube.recv_line(timeout=5)

    transport.read_error = None

    with pytest.raises(iotubes.TubeIOError):
        tube.recv_line(timeout=5)

    with pytest.raises(iotubes.TubeIOError):
        tube.recv(timeout=5)

    # The write direction is independent.

    tube.send(b'ok')
    assert transport.written == b'ok'


def test_regex(scripted):

    tube, transport = scripted([b'login: ', b'uid=1000(alice) gid=', b'100\n$ '])

    data, groups = tube.recv_regex(rb'uid=(\d+)\((\w+)\) gid=(\d+)', timeout=5)

    assert data == b'login: uid=1000(alice) gid=100'
    assert groups == (b'1000', b'alice', b'100')
    assert tube.recv_until(b'$ ', timeout=5) == b'\n$ '


def test_invalid_regex(scripted):

    tube, transport = scripted([b'unread'])

    with pytest.raises(iotubes.InvalidPattern):
        tube.recv_regex(b'(oops', timeout=5)

    assert transport.reads == 0
    assert tube.recv(timeout=5) == b'unread'


def test_peek(scripted):

    tube, transport = scripted([b'hello world'])

    assert tube.peek() == b''
    assert tube.recv_until(b' ', timeout=5) == b'hello '
    assert tube.peek() == b'world'
    assert tube.peek(3) == b'wor'
    assert tube.recv_exact(5, timeout=5) == b'world'


def test_recv_line(scripted):

    tube, transport = scripted([b'first line\nsecond', b' line\n'])

    assert tube.recv_line(timeout=5) == b'first line\n'
    assert tube.recv_line(timeout=5) == b'second line\n'


def test_default_timeout(scripted):

    tube, transport = scripted(timeout=0.05)

    assert tube.timeout == 0.05

    with pytest.raises(iotubes.TubeTimeout):
        tube.recv_line()

    # An explicit timeout overrides the tube's.

    transport.deliver(b'late\n')
    assert tube.recv_line(timeout=None) == b'late\n'


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
