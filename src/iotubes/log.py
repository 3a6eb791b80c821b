""" Loggers for the bytes flowing through a tube. Nothing is emitted unless
    the application configures logging at the DEBUG level for the
    ``iotubes.recv`` or ``iotubes.send`` loggers (or their parent,
    ``iotubes``).
"""

import logging

recv = logging.getLogger('iotubes.recv')
send = logging.getLogger('iotubes.send')

_printable = bytes(range(0x20, 0x7f))
_translation = bytes(byte if byte in _printable else 0x2e for byte in range(256))


def hexdump(data, width=16):
    """ Return a multi-line hex dump of *data*: the offset, the hex value of
        each byte, and the printable ASCII rendition, *width* bytes per line.
    """

    data = bytes(data)
    lines = list()

    for offset in range(0, len(data), width):
        chunk = data[offset:offset + width]
        hexed = ' '.join('%02x' % byte for byte in chunk)
        text = chunk.translate(_translation).decode('ascii')
        lines.append('%08x  %-*s  |%s|' % (offset, width * 3 - 1, hexed, text))

    return '\n'.join(lines)



def traffic(logger, verb, data):
    """ Log *data* on *logger* as a hex dump if DEBUG is enabled.
    """

    if data and logger.isEnabledFor(logging.DEBUG):
        logger.debug("%s %d bytes\n%s", verb, len(data), hexdump(data))


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
