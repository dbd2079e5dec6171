"""
A continuation is a procedure that can stop half way, hand a value to whoever
is driving it, and later carry on with a reply.

Inside the procedure:
> reply = suspend(value)

Outside, the driver holds a handle:
> handle = Continuation.start_with(procedure)   # runs up to the first suspend
> handle.value                                  # the value handed out
> handle = handle.resume(reply)                 # None once the procedure returns

Each running procedure lives on its own worker thread. The driver and the
worker meet at two single-slot queues, one for values going out and one for
replies coming in, and only one of the two ever runs at a time.
"""

import itertools
import logging
import queue
import threading
from contextlib import contextmanager
from functools import wraps

logger = logging.getLogger(__name__)

WORKER_NAME_PREFIX = 'continuation'

_worker_ids = itertools.count(1)
_local = threading.local()

# messages to the worker
_RESUME = 'resume'
_TERMINATE = 'terminate'

# messages from the worker
_SUSPENDED = 'suspended'
_COMPLETED = 'completed'
_TERMINATED = 'terminated'
_FAILED = 'failed'


class ContinuationTerminated(BaseException):
    """Raised inside a procedure to unwind it when its handle is terminated."""


class IllegalContinuationState(RuntimeError):
    pass


def suspend(value=None):
    """Hand `value` to the driver and wait; returns the reply of the next resume."""
    worker = getattr(_local, 'worker', None)
    if worker is None:
        raise IllegalContinuationState("suspend() called outside of a continuation")
    if getattr(_local, 'forbidden', 0):
        raise IllegalContinuationState("suspend() called from a non-suspendable callback")
    return worker.suspend(value)


def context():
    """The latest reply delivered to the running continuation."""
    worker = getattr(_local, 'worker', None)
    if worker is None:
        raise IllegalContinuationState("context() called outside of a continuation")
    return worker.context


@contextmanager
def non_suspendable():
    """Code inside the block may not call suspend()."""
    _local.forbidden = getattr(_local, 'forbidden', 0) + 1
    try:
        yield
    finally:
        _local.forbidden -= 1


def forbid_suspend(func):
    @wraps(func)
    def wrapper(*args, **kwargs):
        with non_suspendable():
            return func(*args, **kwargs)

    return wrapper


def reset_worker_names():
    global _worker_ids
    _worker_ids = itertools.count(1)


class _Worker:
    """One run of a procedure on a thread of its own."""

    def __init__(self, procedure):
        self.owner = None
        self.context = None
        self.finished = False
        self._terminating = False
        self._inbox = queue.Queue(maxsize=1)
        self._outbox = queue.Queue(maxsize=1)
        self._thread = threading.Thread(target=self._run, args=(procedure,),
                                        name='{}-{}'.format(WORKER_NAME_PREFIX, next(_worker_ids)),
                                        daemon=True)

    @property
    def name(self):
        return self._thread.name

    def send(self, reply):
        """Resume the procedure; returns (True, value) on suspension, (False, None) on completion."""
        if self.finished:
            raise IllegalContinuationState("continuation has already finished")
        if self._thread.ident is None:
            logger.debug("starting %s", self.name)
            self._thread.start()
        self._inbox.put((_RESUME, reply))
        return self._receive()

    def terminate(self):
        if self.finished:
            return
        if self._thread.ident is None:
            self.finished = True
            return
        logger.debug("terminating %s", self.name)
        self._inbox.put((_TERMINATE, None))
        self._receive()

    def _receive(self):
        kind, payload = self._outbox.get()
        if kind == _SUSPENDED:
            return True, payload
        self.finished = True
        self._thread.join()
        if kind == _FAILED:
            logger.debug("%s failed with %r", self.name, payload)
            raise payload
        logger.debug("%s %s", self.name, kind)
        return False, None

    # The methods below run on the worker thread.

    def _run(self, procedure):
        _local.worker = self
        kind, reply = self._inbox.get()
        if kind == _TERMINATE:
            self._outbox.put((_TERMINATED, None))
            return
        self.context = reply
        try:
            procedure()
        except ContinuationTerminated:
            self._outbox.put((_TERMINATED, None))
        except BaseException as exc:
            self._outbox.put((_FAILED, exc))
        else:
            self._outbox.put((_COMPLETED, None))

    def suspend(self, value):
        if self._terminating:
            raise ContinuationTerminated()
        self._outbox.put((_SUSPENDED, value))
        kind, reply = self._inbox.get()
        if kind == _TERMINATE:
            self._terminating = True
            raise ContinuationTerminated()
        self.context = reply
        return reply


class Continuation:
    """Handle on a suspended procedure.

    Every resume returns a fresh handle for the next suspension point. An
    optimized handle may be resumed once and its successors keep no history.
    A restartable handle remembers the replies that led to it and may be
    resumed again later: the procedure is then replayed on a new worker, so
    it has to behave the same way when fed the same replies.
    """

    def __init__(self, procedure, worker, value=None, history=None, optimized=False, started=False):
        self._procedure = procedure
        self._worker = worker
        self._value = value
        self._history = history
        self._optimized = optimized
        self._started = started
        self._resumed = False
        self._terminated = False

    @classmethod
    def start_suspended(cls, procedure, optimized=False):
        handle = cls(procedure, _Worker(procedure), optimized=optimized)
        handle._worker.owner = handle
        return handle

    @classmethod
    def start_with(cls, procedure, context=None, optimized=False):
        return cls.start_suspended(procedure, optimized).resume(context)

    @property
    def value(self):
        return self._value

    @property
    def is_optimized(self):
        return self._optimized

    @property
    def is_terminated(self):
        return self._terminated

    def resume(self, reply=None):
        if self._terminated:
            raise IllegalContinuationState("cannot resume a terminated continuation")
        if self._optimized and self._resumed:
            raise IllegalContinuationState("an optimized continuation may be resumed only once")
        self._resumed = True
        worker = self._worker
        if worker.owner is not self:
            worker = self._replay()
        worker.owner = None

        suspended, value = worker.send(reply)
        if not suspended:
            return None

        history = None if self._optimized else (reply, self._history)
        successor = Continuation(self._procedure, worker, value, history, self._optimized, started=True)
        worker.owner = successor
        return successor

    def terminate(self):
        if self._terminated:
            return
        self._terminated = True
        if self._worker.owner is self:
            self._worker.owner = None
            self._worker.terminate()

    def optimized(self):
        return self._convert(optimized=True)

    def restartable(self):
        return self._convert(optimized=False)

    def _convert(self, optimized):
        if self._optimized == optimized:
            return self
        converted = Continuation(self._procedure, self._worker, self._value, self._history,
                                 optimized, self._started)
        converted._terminated = self._terminated
        if self._worker.owner is self:
            self._worker.owner = converted
        return converted

    def _replay(self):
        if self._started and self._history is None:
            raise IllegalContinuationState("continuation has no recorded history to replay")
        replies = []
        history = self._history
        while history is not None:
            reply, history = history
            replies.append(reply)
        replies.reverse()

        worker = _Worker(self._procedure)
        logger.debug("replaying %d step(s) on %s", len(replies), worker.name)
        for reply in replies:
            suspended, _ = worker.send(reply)
            if not suspended:
                raise IllegalContinuationState("procedure finished early while replaying")
        return worker

    def __repr__(self):
        return '{}(value={!r}, {}{})'.format(type(self).__name__, self._value,
                                            'optimized' if self._optimized else 'restartable',
                                            ', terminated' if self._terminated else '')
