import threading

from pytest import raises

from continuation import (Continuation, ContinuationTerminated, IllegalContinuationState,
                          suspend, context, non_suspendable, forbid_suspend, reset_worker_names)


def count_to(n):
    def procedure():
        for i in range(1, n + 1):
            suspend(i)

    return procedure


def test_start_runs_to_first_suspension():
    handle = Continuation.start_with(count_to(3))
    assert handle.value == 1


def test_resume_walks_through_suspensions():
    handle = Continuation.start_with(count_to(3))
    values = []
    while handle is not None:
        values.append(handle.value)
        handle = handle.resume()
    assert values == [1, 2, 3]


def test_start_returns_none_if_procedure_never_suspends():
    ran = []
    assert Continuation.start_with(lambda: ran.append(True)) is None
    assert ran == [True]


def test_start_suspended_runs_nothing():
    ran = []

    def procedure():
        ran.append(True)
        suspend("x")

    handle = Continuation.start_suspended(procedure)
    assert ran == []
    assert handle.value is None
    handle = handle.resume()
    assert ran == [True]
    assert handle.value == "x"
    handle.terminate()


def test_suspend_returns_reply():
    replies = []

    def procedure():
        replies.append(suspend(1))
        replies.append(suspend(2))

    handle = Continuation.start_with(procedure)
    handle = handle.resume("a")
    assert handle.resume("b") is None
    assert replies == ["a", "b"]


def test_procedure_may_yield_none():
    handle = Continuation.start_with(lambda: suspend(None))
    assert handle is not None
    assert handle.value is None
    assert handle.resume() is None


def test_context_is_start_context_then_latest_reply():
    seen = []

    def procedure():
        seen.append(context())
        suspend()
        seen.append(context())

    handle = Continuation.start_with(procedure, context="ctx")
    handle.resume("reply")
    assert seen == ["ctx", "reply"]


def test_procedure_error_propagates_to_resumer():
    def procedure():
        suspend(1)
        raise ValueError("boom")

    handle = Continuation.start_with(procedure)
    with raises(ValueError):
        handle.resume()


def test_procedure_runs_on_another_thread():
    threads = []

    def procedure():
        threads.append(threading.current_thread())
        suspend()

    handle = Continuation.start_with(procedure)
    assert threads[0] is not threading.current_thread()
    handle.terminate()


def test_terminate_unwinds_procedure():
    events = []

    def procedure():
        try:
            suspend(1)
            events.append("resumed")
        finally:
            events.append("unwound")

    handle = Continuation.start_with(procedure)
    handle.terminate()
    assert events == ["unwound"]


def test_termination_is_not_an_ordinary_exception():
    caught = []

    def procedure():
        try:
            suspend(1)
        except Exception as exc:
            caught.append(exc)

    Continuation.start_with(procedure).terminate()
    assert caught == []


def test_terminate_is_idempotent():
    events = []

    def procedure():
        try:
            suspend(1)
        finally:
            events.append("unwound")

    handle = Continuation.start_with(procedure)
    handle.terminate()
    handle.terminate()
    assert events == ["unwound"]
    assert handle.is_terminated


def test_terminate_unstarted_continuation():
    ran = []
    handle = Continuation.start_suspended(lambda: ran.append(True))
    handle.terminate()
    assert ran == []


def test_terminated_continuation_cannot_be_resumed():
    handle = Continuation.start_with(count_to(3))
    handle.terminate()
    with raises(IllegalContinuationState):
        handle.resume()


def test_suspend_after_termination_keeps_unwinding():
    def procedure():
        try:
            suspend(1)
        except ContinuationTerminated:
            suspend(2)

    handle = Continuation.start_with(procedure)
    handle.terminate()
    assert handle.is_terminated


def test_error_while_unwinding_propagates_from_terminate():
    def procedure():
        try:
            suspend(1)
        finally:
            raise KeyError("cleanup")

    handle = Continuation.start_with(procedure)
    with raises(KeyError):
        handle.terminate()


def test_optimized_continuation_resumes_once():
    handle = Continuation.start_with(count_to(3), optimized=True)
    successor = handle.resume()
    with raises(IllegalContinuationState):
        handle.resume()
    assert successor.value == 2
    successor.terminate()


def test_restartable_continuation_replays():
    first = Continuation.start_with(count_to(3))
    second = first.resume()
    assert second.value == 2

    again = first.resume()
    assert again.value == 2
    assert again.resume().value == 3
    assert second.resume().value == 3


def test_restartable_replay_feeds_recorded_replies():
    def procedure():
        total = 0
        while True:
            total += suspend(total)

    start = Continuation.start_with(procedure)
    handle = start.resume(5).resume(10)
    assert handle.value == 15
    replayed = start.resume(5)
    assert replayed.value == 5
    assert replayed.resume(1).value == 6
    handle.terminate()


def test_unstarted_restartable_continuation_can_be_started_twice():
    handle = Continuation.start_suspended(count_to(2))
    assert handle.resume().value == 1
    assert handle.resume().value == 1


def test_conversion_to_optimized_takes_over():
    restartable = Continuation.start_with(count_to(3))
    optimized = restartable.optimized()
    assert optimized.is_optimized
    assert optimized.resume().value == 2
    assert restartable.optimized() is not restartable
    assert optimized.optimized() is optimized


def test_optimized_handle_without_history_cannot_replay():
    optimized = Continuation.start_with(count_to(3), optimized=True)
    second = optimized.resume()
    restartable = optimized.restartable()
    with raises(IllegalContinuationState):
        restartable.resume()
    second.terminate()


def test_suspend_outside_continuation_raises():
    with raises(IllegalContinuationState):
        suspend(1)


def test_context_outside_continuation_raises():
    with raises(IllegalContinuationState):
        context()


def test_non_suspendable_block_forbids_suspend():
    errors = []

    def procedure():
        with non_suspendable():
            try:
                suspend(1)
            except IllegalContinuationState as exc:
                errors.append(exc)
        suspend(2)

    handle = Continuation.start_with(procedure)
    assert handle.value == 2
    assert len(errors) == 1
    handle.terminate()


def test_forbid_suspend_wraps_callable():
    def procedure():
        forbid_suspend(suspend)(1)

    with raises(IllegalContinuationState):
        Continuation.start_with(procedure)


def test_nested_continuations():
    def inner():
        suspend("inner")

    def outer():
        handle = Continuation.start_with(inner)
        suspend(handle.value)
        assert handle.resume() is None
        suspend("outer")

    handle = Continuation.start_with(outer)
    assert handle.value == "inner"
    handle = handle.resume()
    assert handle.value == "outer"
    assert handle.resume() is None


def test_worker_threads_are_named_after_prefix():
    names = []

    def procedure():
        names.append(threading.current_thread().name)

    reset_worker_names()
    Continuation.start_with(procedure)
    Continuation.start_with(procedure)
    reset_worker_names()
    Continuation.start_with(procedure)
    assert names == ["continuation-1", "continuation-2", "continuation-1"]
