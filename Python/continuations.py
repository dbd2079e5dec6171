"""Helpers for driving suspending procedures as generators and ring pipes.

A procedure written with `yield_` reads like a generator:

    def letters():
        yield_("A")
        yield_("B")

    for_each(letters, print)

A `source` below is either a procedure (a callable taking no arguments), a
`Continuation` handle, or None (nothing to drive). Procedures are started as
optimized continuations; handles are switched to optimized mode before they
are driven. Whatever happens, a handle that was started here is terminated
before these helpers return.
"""

from functools import wraps

from continuation import Continuation, suspend, forbid_suspend
from iterators import ContinuationIterator
from producers import LookaheadProducer
from stream import Stream


def create(procedure, optimized=False):
    """Create a continuation for `procedure` without running any of it."""
    return Continuation.start_suspended(procedure, optimized)


def start(procedure, context=None, optimized=False):
    """Run `procedure` up to its first suspension.

    Returns the continuation, or None if the procedure never suspended.
    """
    return Continuation.start_with(procedure, context, optimized)


def yield_(value):
    return suspend(value)


def _as_handle(source):
    if source is None:
        return None
    if callable(source) and not isinstance(source, Continuation):
        return create(source, optimized=True)
    return source.optimized()


def iterator_of(source, use_current_value=False):
    return ContinuationIterator(_as_handle(source), use_current_value)


def stream_of(source, use_current_value=False):
    return Stream(LookaheadProducer(iterator_of(source, use_current_value)))


def generator(func):
    """Decorator that turns a suspending function into a stream factory.

    For example:
        @generator
        def count(n):
            for i in range(n):
                yield_(i)

    makes count(3) a stream of 0, 1, 2.
    """

    @wraps(func)
    def wrapper(*args, **kwargs):
        return stream_of(lambda: func(*args, **kwargs))

    return wrapper


def for_each(source, action, use_current_value=False):
    for_each_suspendable(source, forbid_suspend(action), use_current_value)


def for_each_suspendable(source, action, use_current_value=False):
    with iterator_of(source, use_current_value) as values:
        for value in values:
            action(value)


def for_each_reply(source, action, use_current_value=False):
    """Drive `source` as a ring pipe.

    Every value the procedure suspends with goes to `action`, and whatever
    `action` returns is the reply the procedure is resumed with. The first
    resume gets None, unless `use_current_value` is set: then `action` sees
    the handle's current value first and its answer is the first reply.
    """
    for_each_reply_suspendable(source, forbid_suspend(action), use_current_value)


def for_each_reply_suspendable(source, action, use_current_value=False):
    handle = _as_handle(source)
    try:
        reply = None
        if handle is not None and use_current_value:
            reply = action(handle.value)
        while handle is not None:
            handle = handle.resume(reply)
            if handle is not None:
                reply = action(handle.value)
    finally:
        if handle is not None:
            handle.terminate()


def for_each_of(iterable, action):
    """Run a suspendable `action` over any iterable, closing its iterator afterwards."""
    iterator = iter(iterable)
    try:
        for item in iterator:
            action(item)
    finally:
        close = getattr(iterator, 'close', None)
        if close is not None:
            close()
