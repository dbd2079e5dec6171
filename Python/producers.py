"""
A producer hands out one option per `produce()` call: `Some(item)` while it
has items, `Nothing` once it is exhausted.

Root producers read from some outside source and own nothing, so closing
them does nothing. Stage producers wrap the stream before them in a pipeline
and own it: closing a stage closes that stream, which closes the stage before
it, and so on down to the root. A stage that opened further streams of its
own (the other side of a zip, the current inner stream of a flat map) closes
those first.

Callbacks handed to the stages here are called as they are. The stream
facade decides whether they may suspend.
"""

import logging

from option import Some, NOTHING

logger = logging.getLogger(__name__)


class Producer:
    _closed = False

    def produce(self):
        raise NotImplementedError()

    def release(self):
        """Free whatever this producer owns. Runs at most once, from close()."""

    def close(self):
        if self._closed:
            return
        self._closed = True
        self.release()

    @property
    def closed(self):
        return self._closed

    def __enter__(self):
        return self

    def __exit__(self, type_=None, value=None, traceback=None):
        self.close()


class RootProducer(Producer):
    pass


class EmptyProducer(RootProducer):
    def produce(self):
        return NOTHING


class IteratorProducer(RootProducer):
    def __init__(self, iterable):
        self._iterator = iter(iterable)

    def produce(self):
        try:
            return Some(next(self._iterator))
        except StopIteration:
            return NOTHING


class RepeatProducer(RootProducer):
    def __init__(self, value):
        self._value = value

    def produce(self):
        return Some(self._value)


class GenerateProducer(RootProducer):
    def __init__(self, supplier):
        self._supplier = supplier

    def produce(self):
        return Some(self._supplier())


class IterateProducer(RootProducer):
    def __init__(self, seed, step):
        self._seed = seed
        self._step = step
        self._current = NOTHING

    def produce(self):
        if self._current:
            self._current = self._current.map_suspendable(self._step)
        else:
            self._current = Some(self._seed)
        return self._current


class LookaheadProducer(Producer):
    """Feeds a stream from a lookahead iterator, which it closes on release."""

    def __init__(self, iterator):
        self._iterator = iterator

    def produce(self):
        if self._iterator.has_next():
            return Some(self._iterator.next())
        return NOTHING

    def release(self):
        self._iterator.close()


class StageProducer(Producer):
    def __init__(self, upstream):
        self.upstream = upstream

    def pull(self):
        return self.upstream.producer.produce()

    def release(self):
        self.upstream.close()


class MapStage(StageProducer):
    def __init__(self, upstream, mapper):
        super().__init__(upstream)
        self._mapper = mapper

    def produce(self):
        return self.pull().map_suspendable(self._mapper)


class FilterStage(StageProducer):
    def __init__(self, upstream, predicate):
        super().__init__(upstream)
        self._predicate = predicate

    def produce(self):
        while True:
            item = self.pull()
            if not item:
                return NOTHING
            item = item.filter_suspendable(self._predicate)
            if item:
                return item


def _pull_stream(stream):
    return stream.producer.produce()


def _close_stream(stream):
    stream.close()


class FlatMapStage(StageProducer):
    def __init__(self, upstream, mapper):
        super().__init__(upstream)
        self._mapper = mapper
        self._current = NOTHING

    def produce(self):
        item = self._current.flat_map_suspendable(_pull_stream)
        if item:
            return item
        while True:
            self._drop_current()
            outer = self.pull()
            if not outer:
                return NOTHING
            logger.debug("flat map opens inner stream for %r", outer.get())
            self._current = outer.map_suspendable(self._mapper)
            item = self._current.flat_map_suspendable(_pull_stream)
            if item:
                return item

    def _drop_current(self):
        current, self._current = self._current, NOTHING
        current.accept_suspendable(_close_stream)

    def release(self):
        try:
            self._drop_current()
        finally:
            super().release()


class ZipStage(StageProducer):
    """Combines one item from each side per pull.

    When only one side has run dry, the missing-value supplier for that side
    stands in for it; without a supplier the zip ends there.
    """

    def __init__(self, upstream, other, zipper, on_left_missing=None, on_right_missing=None):
        super().__init__(upstream)
        self.other = other
        self._zipper = zipper
        self._on_left_missing = _missing(on_left_missing)
        self._on_right_missing = _missing(on_right_missing)

    def produce(self):
        left = self.pull()
        right = self.other.producer.produce()
        if not left and not right:
            return NOTHING
        left = left.or_else_suspendable(self._on_left_missing)
        right = right.or_else_suspendable(self._on_right_missing)
        return left.combine_suspendable(right, self._zipper)

    def release(self):
        try:
            self.other.close()
        finally:
            super().release()


def _missing(supplier):
    if supplier is None:
        return _nothing
    return lambda: Some(supplier())


def _nothing():
    return NOTHING


class TakeStage(StageProducer):
    def __init__(self, upstream, max_size):
        super().__init__(upstream)
        self._max_size = max_size
        self._taken = 0

    def produce(self):
        if self._taken >= self._max_size:
            self._finish()
            return NOTHING
        item = self.pull()
        if not item:
            self._taken = self._max_size
            self._finish()
            return NOTHING
        self._taken += 1
        if self._taken == self._max_size:
            self._finish()
        return item

    def _finish(self):
        if not self.closed:
            logger.debug("take(%d) closes its upstream", self._max_size)
        self.close()


class DropStage(StageProducer):
    def __init__(self, upstream, count):
        super().__init__(upstream)
        self._count = count
        self._dropped = 0

    def produce(self):
        while self._dropped < self._count:
            item = self.pull()
            if not item:
                self._dropped = self._count
                return NOTHING
            self._dropped += 1
        return self.pull()


class PeekStage(StageProducer):
    def __init__(self, upstream, action):
        super().__init__(upstream)
        self._action = action

    def produce(self):
        item = self.pull()
        item.accept_suspendable(self._action)
        return item


class IgnoreErrorsStage(StageProducer):
    def produce(self):
        while True:
            try:
                return self.pull()
            except Exception as exc:
                logger.debug("ignoring %r and pulling again", exc)


class StopOnErrorStage(StageProducer):
    def produce(self):
        try:
            return self.pull()
        except Exception as exc:
            logger.debug("stopping on %r", exc)
            return NOTHING


class RecoverStage(StageProducer):
    def __init__(self, upstream, handler):
        super().__init__(upstream)
        self._handler = handler

    def produce(self):
        try:
            return self.pull()
        except Exception as exc:
            logger.debug("recovering from %r", exc)
            return Some(self._handler(exc))
