"""
A stream is a lazy pipeline of producers, pulled one item at a time.

Building a stream does no work: `Stream.of(1, 2, 3).map(f).filter(p)` only
stacks up stages. Items are pulled through when a terminal operation
(`for_each`, `reduce`, `fold`) or an iterator asks for them, and each pull
travels down the chain to the root and back with at most one item.

Combinators never touch the stream they are called on; they return a new
stream whose stage owns the old one. Closing a stream closes everything
behind it.

Operations ending in `_suspendable` let their callbacks suspend the
continuation the pipeline runs in. The plain ones do not.
"""

from continuation import forbid_suspend
from iterators import ProducerIterator
from option import Some, NOTHING
from producers import (EmptyProducer, IteratorProducer, RepeatProducer, GenerateProducer, IterateProducer,
                       MapStage, FilterStage, FlatMapStage, ZipStage, TakeStage, DropStage, PeekStage,
                       IgnoreErrorsStage, StopOnErrorStage, RecoverStage)


def _identity(x):
    return x


def _guard(func):
    if func is None:
        return None
    return forbid_suspend(func)


class Stream:
    def __init__(self, producer):
        self._producer = producer

    @property
    def producer(self):
        return self._producer

    def close(self):
        self._producer.close()

    def __enter__(self):
        return self

    def __exit__(self, type_=None, value=None, traceback=None):
        self.close()

    def _next_stage(self, producer):
        return type(self)(producer)

    # sources

    @classmethod
    def empty(cls):
        return cls(EmptyProducer())

    @classmethod
    def of(cls, *values):
        return cls(IteratorProducer(values))

    @classmethod
    def of_iterable(cls, iterable):
        return cls(IteratorProducer(iterable))

    @classmethod
    def repeat(cls, value):
        return cls(RepeatProducer(value))

    @classmethod
    def generate(cls, supplier):
        return cls(GenerateProducer(_guard(supplier)))

    @classmethod
    def generate_suspendable(cls, supplier):
        return cls(GenerateProducer(supplier))

    @classmethod
    def iterate(cls, seed, step):
        return cls(IterateProducer(seed, _guard(step)))

    @classmethod
    def iterate_suspendable(cls, seed, step):
        return cls(IterateProducer(seed, step))

    @classmethod
    def union_all(cls, streams):
        return cls.of_iterable(streams).flat_map(_identity)

    # stages

    def map(self, mapper):
        return self._next_stage(MapStage(self, _guard(mapper)))

    def map_suspendable(self, mapper):
        return self._next_stage(MapStage(self, mapper))

    def filter(self, predicate):
        return self._next_stage(FilterStage(self, _guard(predicate)))

    def filter_suspendable(self, predicate):
        return self._next_stage(FilterStage(self, predicate))

    def flat_map(self, mapper):
        """Map every item to a stream and chain those streams together."""
        return self._next_stage(FlatMapStage(self, _guard(mapper)))

    def flat_map_suspendable(self, mapper):
        return self._next_stage(FlatMapStage(self, mapper))

    def union(self, *others):
        return self.union_all((self,) + others)

    def zip(self, other, zipper, on_left_missing=None, on_right_missing=None):
        """Pair this stream with `other` item by item.

        The zip ends as soon as one side runs dry, unless a supplier for the
        missing side is given; then it goes on until both sides are done.
        """
        return self._next_stage(ZipStage(self, other, _guard(zipper),
                                         _guard(on_left_missing), _guard(on_right_missing)))

    def zip_suspendable(self, other, zipper, on_left_missing=None, on_right_missing=None):
        return self._next_stage(ZipStage(self, other, zipper, on_left_missing, on_right_missing))

    def peek(self, action):
        return self._next_stage(PeekStage(self, _guard(action)))

    def peek_suspendable(self, action):
        return self._next_stage(PeekStage(self, action))

    def ignore_errors(self):
        return self._next_stage(IgnoreErrorsStage(self))

    def stop_on_error(self):
        return self._next_stage(StopOnErrorStage(self))

    def recover(self, handler):
        """Replace an item that failed with `handler(exception)`."""
        return self._next_stage(RecoverStage(self, _guard(handler)))

    def recover_suspendable(self, handler):
        return self._next_stage(RecoverStage(self, handler))

    def recover_value(self, value):
        return self.recover(lambda _exc: value)

    def drop(self, count):
        return self._next_stage(DropStage(self, count))

    def take(self, max_size):
        return self._next_stage(TakeStage(self, max_size))

    # terminals

    def for_each(self, action):
        self.for_each_suspendable(_guard(action))

    def for_each_suspendable(self, action):
        with self:
            item = self._producer.produce()
            while item:
                item.accept_suspendable(action)
                item = self._producer.produce()

    def reduce(self, accumulator):
        return self.reduce_suspendable(_guard(accumulator))

    def reduce_suspendable(self, accumulator):
        """Fold without a seed; returns Nothing for an empty stream."""
        result = NOTHING
        with self:
            item = self._producer.produce()
            while item:
                result = result.combine_suspendable(item, accumulator) if result else item
                item = self._producer.produce()
        return result

    def fold(self, identity, accumulator):
        return self.fold_suspendable(identity, _guard(accumulator))

    def fold_suspendable(self, identity, accumulator):
        result = Some(identity)
        with self:
            item = self._producer.produce()
            while item:
                result = result.combine_suspendable(item, accumulator)
                item = self._producer.produce()
        return result.get()

    def transform(self, converter):
        return converter(self)

    def convert(self, converter):
        return converter(self._producer)

    def iterator(self):
        return ProducerIterator(self)

    def __iter__(self):
        return self.iterator()

    def __repr__(self):
        return '{}({})'.format(type(self).__name__, type(self._producer).__name__)
