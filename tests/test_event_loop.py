"""Tests for event loop ordering: microtasks, timers and promises."""

import pytest
from jsloop import Evaluator, EventLoop, StepLimitError, parse, simulate
from jsloop.context import Phase
from jsloop.trace import StepKind


def calls(source):
    """Names of the functions invoked, in order."""
    return [step.call_stack[-1] for step in simulate(source).trace if step.kind == StepKind.CALL]


# Programs exercising every scheduling path; the ordering properties below
# must hold for all of them.
PROGRAMS = [
    "function a() {} function b() {} a(); b();",
    "setTimeout(function a() {}, 100); setTimeout(function b() {}, 10);",
    "setTimeout(function t() {}, 0); queueMicrotask(function m() {});",
    "foo(); function a() {} a();",
    """
    console.log('script start');
    setTimeout(function timeout() { console.log('setTimeout'); }, 0);
    Promise.resolve().then(function p1() { console.log('promise1'); })
        .then(function p2() { console.log('promise2'); });
    console.log('script end');
    """,
    """
    function outer() {
        queueMicrotask(function inner() { setTimeout(function late() {}, 5); });
        setTimeout(function soon() { queueMicrotask(function m() {}); }, 1);
    }
    setTimeout(outer, 20);
    queueMicrotask(outer);
    """,
    """
    function fib(n) { if (n < 2) { return n; } return fib(n - 1) + fib(n - 2); }
    setTimeout(() => console.log(fib(5)), 0);
    Promise.resolve(fib(3)).then(v => console.log(v));
    """,
    """
    setTimeout(function a() { setTimeout(function c() {}, 50); }, 100);
    setTimeout(function b() {}, 120);
    """,
]


class TestScenarios:
    """Reference orderings."""

    def test_timers_ordered_by_delay(self):
        """The shorter timer runs first whatever the scheduling order."""
        trace = simulate("setTimeout(function a() {}, 100); setTimeout(function b() {}, 10);").trace
        after_sync = trace[2]
        assert after_sync.kind == StepKind.TIMER_SCHEDULED
        assert [task.delay for task in after_sync.task_queue] == [10, 100]
        assert after_sync.task_names == ("b", "a")
        assert [s.label for s in trace if s.kind == StepKind.CALL] == ["call b", "call a"]

    def test_microtask_before_task(self):
        """A pending microtask runs before a pending task."""
        trace = simulate("setTimeout(function t() {}, 0); queueMicrotask(function m() {});").trace
        assert [step.label for step in trace] == [
            "program start",
            "setTimeout t (0ms)",
            "queueMicrotask m",
            "call m",
            "return from m",
            "microtask m done",
            "call t",
            "return from t",
            "task t done",
        ]

    def test_microtask_before_task_either_order(self):
        """Enqueue order does not matter."""
        assert calls("queueMicrotask(function m() {}); setTimeout(function t() {}, 0);") == ["m", "t"]

    def test_queue_contents_during_microtask(self):
        """While m runs, t is still waiting in the task queue."""
        trace = simulate("setTimeout(function t() {}, 0); queueMicrotask(function m() {});").trace
        call_m = trace[3]
        assert call_m.call_stack == ("m",)
        assert call_m.microtask_queue == ()
        assert call_m.task_names == ("t",)
        assert call_m.phase == Phase.MICROTASK


class TestOrdering:
    """Finer ordering rules."""

    def test_equal_delays_run_in_scheduling_order(self):
        source = "setTimeout(function a() {}, 5); setTimeout(function b() {}, 5); setTimeout(function c() {}, 5);"
        assert calls(source) == ["a", "b", "c"]

    def test_microtasks_queued_by_microtasks_run_first(self):
        """The microtask queue is drained completely, including new arrivals."""
        source = """
            setTimeout(function t() {}, 0);
            queueMicrotask(function m1() { queueMicrotask(function m2() {}); });
        """
        assert calls(source) == ["m1", "m2", "t"]

    def test_microtask_from_task_runs_before_next_task(self):
        source = """
            setTimeout(function t1() { queueMicrotask(function m() {}); }, 0);
            setTimeout(function t2() {}, 0);
        """
        assert calls(source) == ["t1", "m", "t2"]

    def test_nested_timer_ordered_by_delay(self):
        """A timer set inside a task is ordered by its own delay."""
        trace = simulate(PROGRAMS[7]).trace
        assert [s.call_stack[-1] for s in trace if s.kind == StepKind.CALL] == ["a", "c", "b"]
        scheduled = [s for s in trace if s.label == "setTimeout c (50ms)"][0]
        assert scheduled.time == 100
        assert [task.delay for task in scheduled.task_queue] == [50, 120]

    def test_clock_never_moves_back(self):
        """A shorter task after a longer one runs at the current time."""
        trace = simulate(PROGRAMS[7]).trace
        assert [s.time for s in trace if s.kind == StepKind.TASK_DONE] == [100, 100, 120]

    def test_clock_advances_to_delay(self):
        """Each task runs at its delay."""
        trace = simulate("setTimeout(function a() {}, 100); setTimeout(function b() {}, 10);").trace
        assert [s.time for s in trace if s.kind == StepKind.TASK_DONE] == [10, 100]

    def test_timer_arguments(self):
        """Extra setTimeout arguments are passed to the callback."""
        assert simulate("setTimeout(function(a, b) { console.log(a + b); }, 0, 2, 3);").output == ("5",)

    def test_timer_named_after_variable(self):
        assert calls("var cb = () => {}; setTimeout(cb, 0);") == ["cb"]


class TestPromises:
    """Promise reactions are microtasks."""

    def test_classic_ordering(self):
        """Sync, then promise reactions, then timers."""
        result = simulate(PROGRAMS[4])
        assert result.output == ("script start", "script end", "promise1", "promise2", "setTimeout")

    def test_then_receives_value(self):
        assert simulate("Promise.resolve(42).then(function(v) { console.log(v); });").output == ("42",)

    def test_chain_passes_return_values(self):
        """A handler's return value fulfils the next promise."""
        source = """
            Promise.resolve(1)
                .then(function(v) { return v + 1; })
                .then(function(v) { console.log(v); });
        """
        assert simulate(source).output == ("2",)

    def test_then_without_handler_passes_value(self):
        source = "Promise.resolve('x').then().then(function(v) { console.log(v); });"
        assert simulate(source).output == ("x",)

    def test_then_on_pending_promise_waits(self):
        """A reaction on a pending promise is queued only once it settles."""
        source = """
            var p = Promise.resolve().then(function first() {});
            p.then(function second() {});
        """
        evaluator = Evaluator()
        evaluator.run_program(parse(source))
        assert evaluator.trace.last.microtask_names == ("first",)
        EventLoop(evaluator).run()
        assert [s.call_stack[-1] for s in evaluator.trace if s.kind == StepKind.CALL] == ["first", "second"]

    def test_returned_promise_costs_extra_ticks(self):
        """Adopting a returned promise takes two more jobs than a plain value."""
        source = """
            Promise.resolve().then(function a() { console.log('a1'); return Promise.resolve(); })
                .then(function b() { console.log('a2'); });
            Promise.resolve().then(function c() { console.log('b1'); })
                .then(function d() { console.log('b2'); })
                .then(function e() { console.log('b3'); })
                .then(function f() { console.log('b4'); });
        """
        assert simulate(source).output == ("a1", "b1", "b2", "b3", "a2", "b4")

    def test_thenable_job_in_trace(self):
        """The adoption job is visible in the microtask queue."""
        source = "Promise.resolve().then(function a() { return Promise.resolve(); });"
        labels = [s.label for s in simulate(source).trace]
        assert "thenable PromiseResolveThenableJob" in labels
        assert "microtask PromiseResolveThenableJob done" in labels


class TestEventLoopDriver:
    """Direct use of the EventLoop class."""

    def test_run_microtasks_counts(self):
        evaluator = Evaluator()
        evaluator.run_program(parse("queueMicrotask(function a() {}); queueMicrotask(function b() {});"))
        assert EventLoop(evaluator).run_microtasks() == 2

    def test_task_with_pending_microtasks(self):
        """Dequeuing a task while microtasks wait is a scheduler bug."""
        evaluator = Evaluator()
        evaluator.run_program(parse("setTimeout(function t() {}, 0); queueMicrotask(function m() {});"))
        with pytest.raises(RuntimeError):
            EventLoop(evaluator).run_next_task()

    def test_no_task(self):
        evaluator = Evaluator()
        evaluator.run_program(parse(""))
        assert EventLoop(evaluator).run_next_task() is False

    def test_phase_done(self):
        evaluator = Evaluator()
        evaluator.run_program(parse("setTimeout(function t() {}, 0);"))
        EventLoop(evaluator).run()
        assert evaluator.context.phase == Phase.DONE

    @pytest.mark.timeout(30)
    def test_step_limit(self):
        """A timer that keeps rescheduling itself hits the step limit."""
        with pytest.raises(StepLimitError):
            simulate("function tick() { setTimeout(tick, 0); } tick();", max_steps=50)


@pytest.mark.parametrize("source", PROGRAMS)
class TestTraceProperties:
    """Invariants every trace satisfies."""

    def test_indices_are_positions(self, source):
        trace = simulate(source).trace
        assert [step.index for step in trace] == list(range(len(trace)))

    def test_task_queue_always_sorted(self, source):
        for step in simulate(source).trace:
            delays = [task.delay for task in step.task_queue]
            assert delays == sorted(delays)

    def test_microtasks_exhausted_before_each_task(self, source):
        """No task starts while a microtask is pending."""
        trace = simulate(source).trace
        for i, step in enumerate(trace):
            if step.kind == StepKind.CALL and step.phase == Phase.TASK and len(step.call_stack) == 1:
                assert step.microtask_queue == ()
                assert trace[i - 1].microtask_queue == ()

    def test_stack_balanced(self, source):
        """Every push is matched by a pop and the run ends with an empty stack."""
        trace = simulate(source).trace
        previous = ()
        for step in trace:
            if step.kind == StepKind.CALL:
                assert step.call_stack[:-1] == previous
            elif step.kind == StepKind.RETURN:
                assert step.call_stack == previous[:-1]
            else:
                assert step.call_stack == previous
            previous = step.call_stack
        assert trace.last.call_stack == ()
        assert trace.kinds().count(StepKind.CALL) == trace.kinds().count(StepKind.RETURN)

    def test_queues_empty_at_end(self, source):
        last = simulate(source).trace.last
        assert last.task_queue == ()
        assert last.microtask_queue == ()

    def test_deterministic(self, source):
        """Two runs of the same source produce the same trace."""
        first, second = simulate(source), simulate(source)
        assert [s.label for s in first.trace] == [s.label for s in second.trace]
        assert [s.time for s in first.trace] == [s.time for s in second.trace]
        assert first.output == second.output
