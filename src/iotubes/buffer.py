""" The receive buffer. Bytes read from a transport land here and stay here
    until a receive operation locates a boundary and consumes them; a
    receive that times out, is cancelled, or otherwise fails leaves every
    byte in place for the next call.
"""


class Buffer:
    """ An append-only byte arena with two cursors. Offsets exposed by this
        class are logical: offset zero is the first unconsumed byte.

        :ivar scanned: Logical offset up to which a pattern search has
            already looked without finding a match.
        :ivar scan_key: The pattern :attr:`scanned` refers to; a search for
            a different pattern starts over.
    """

    # Consumed bytes are physically discarded once they make up at least
    # this much of the arena, and at least half of it.

    compact_threshold = 65536

    def __init__(self):

        self.data = bytearray()
        self.start = 0
        self.scanned = 0
        self.scan_key = None


    def __len__(self):
        return len(self.data) - self.start


    def __bool__(self):
        return len(self.data) > self.start


    def __repr__(self):
        return "<%s %d unconsumed, %d scanned>" % (self.__class__.__name__, len(self), self.scanned)


    def append(self, data):
        """ Extend the buffer with *data*.
        """

        self.data += data


    def unconsumed_len(self):
        return len(self)


    def peek(self, n=None):
        """ Return up to *n* unconsumed bytes (all of them if *n* is None)
            without consuming anything.
        """

        if n is None:
            return bytes(self.data[self.start:])

        if n < 0:
            raise ValueError('peek length cannot be negative: ' + repr(n))

        return bytes(self.data[self.start:self.start + n])


    def compact(self):
        """ Physically discard consumed bytes, so that the unconsumed bytes
            start at index zero of :attr:`data`.
        """

        if self.start:
            del self.data[:self.start]
            self.start = 0


    def consume(self, n):
        """ Remove and return the first *n* unconsumed bytes. Asking for more
            bytes than are available is a programming error.
        """

        available = len(self)

        if n < 0 or n > available:
            raise ValueError("cannot consume %d bytes, %d available" % (n, available))

        chunk = bytes(self.data[self.start:self.start + n])
        self.start += n
        self.scanned = max(0, self.scanned - n)

        if self.start >= self.compact_threshold and self.start * 2 >= len(self.data):
            self.compact()

        return chunk


    def consume_all(self):
        return self.consume(len(self))


    def resume(self, key):
        """ Return the logical offset a search for *key* can resume from,
            resetting the scan cursor if the previous search was for some
            other pattern.
        """

        if self.scan_key != key:
            self.scan_key = key
            self.scanned = 0

        return self.scanned


# end of class Buffer


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
