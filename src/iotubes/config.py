""" Default settings for :class:`iotubes.Tube` instances. Every value can be
    overridden from the environment; the environment is consulted once, when
    this module is first imported. Individual tubes can further override
    the timeout and encoding as instance attributes.
"""

import codecs
import os


def _float(variable, default):

    raw = os.environ.get(variable)
    if raw is None or raw.strip() == '':
        return default

    try:
        value = float(raw)
    except ValueError:
        raise ValueError("%s must be a number of seconds, not %s" % (variable, repr(raw)))

    if value < 0:
        raise ValueError("%s cannot be negative: %s" % (variable, repr(raw)))

    return value



def _integer(variable, default):

    raw = os.environ.get(variable)
    if raw is None or raw.strip() == '':
        return default

    try:
        value = int(raw)
    except ValueError:
        raise ValueError("%s must be an integer, not %s" % (variable, repr(raw)))

    if value < 1:
        raise ValueError("%s must be positive: %s" % (variable, repr(raw)))

    return value



def _encoding(variable, default):

    raw = os.environ.get(variable)
    if raw is None or raw.strip() == '':
        return default

    try:
        codecs.lookup(raw)
    except LookupError:
        raise ValueError("%s is not a known encoding: %s" % (variable, repr(raw)))

    return raw


# A timeout of None means blocking operations wait forever.

timeout = _float('IOTUBES_TIMEOUT', None)

# Maximum number of bytes requested from a transport in a single read.

chunk_size = _integer('IOTUBES_CHUNK_SIZE', 4096)

# Text handed to send() and friends is encoded with this codec.

encoding = _encoding('IOTUBES_ENCODING', 'utf-8')

# How long a spawned process gets to exit on its own after its pipes are
# closed, before it is terminated, and again before it is killed.

close_timeout = _float('IOTUBES_CLOSE_TIMEOUT', 1.0)


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
