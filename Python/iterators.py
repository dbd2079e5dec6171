"""
Lookahead iterators look at most one item ahead of the caller.

`has_next()` pulls the next item into a cache unless one is waiting there,
`next()` hands out the cached item and marks that another pull is owed.
Besides that they follow the normal iterator protocol, and they have to be
closed: closing releases the source (closes a stream, terminates a
continuation) exactly once, however often close() is called.
"""

from option import Some, NOTHING


class LookaheadIterator:
    def __init__(self, advance=True, current=NOTHING):
        self._advance = advance
        self._current = current
        self._closed = False

    def _fetch(self):
        """Pull one item from the source as an option."""
        raise NotImplementedError()

    def _release(self):
        pass

    def has_next(self):
        self._advance_if_necessary()
        return self._current.exists()

    def next(self):
        self._advance_if_necessary()
        if not self._current:
            raise StopIteration
        result = self._current.get()
        self._advance = True
        return result

    __next__ = next

    def __iter__(self):
        return self

    def remove(self):
        raise TypeError("'{}' object does not support item removal".format(type(self).__name__))

    def close(self):
        if self._closed:
            return
        self._closed = True
        try:
            self._release()
        finally:
            self._current = NOTHING
            self._advance = False

    @property
    def closed(self):
        return self._closed

    def __enter__(self):
        return self

    def __exit__(self, type_=None, value=None, traceback=None):
        self.close()

    def _advance_if_necessary(self):
        if self._advance:
            self._current = self._fetch()
            self._advance = False

    def __repr__(self):
        return '{}(current={!r}, closed={})'.format(type(self).__name__, self._current, self._closed)


class ProducerIterator(LookaheadIterator):
    """Iterates over a stream, which it closes when closed itself or run dry."""

    def __init__(self, stream):
        super().__init__()
        self._stream = stream

    def _fetch(self):
        item = self._stream.producer.produce()
        if not item:
            self.close()
        return item

    def _release(self):
        stream, self._stream = self._stream, None
        stream.close()


class ContinuationIterator(LookaheadIterator):
    """Iterates over the values a continuation suspends with.

    The continuation is resumed with None every time, so nothing flows back
    into it. Its current value is left out unless `use_current_value` is set.
    """

    def __init__(self, handle, use_current_value=False):
        if handle is not None and use_current_value:
            super().__init__(advance=False, current=Some(handle.value))
        else:
            super().__init__(advance=handle is not None)
        self._handle = handle

    def _fetch(self):
        if self._handle is None:
            return NOTHING
        self._handle = self._handle.resume(None)
        if self._handle is None:
            return NOTHING
        return Some(self._handle.value)

    def _release(self):
        handle, self._handle = self._handle, None
        if handle is not None:
            handle.terminate()
