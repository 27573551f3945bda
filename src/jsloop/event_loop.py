"""The event loop: drains microtasks and macrotasks after the script runs.

Ordering rules, each iteration:

1. Run microtasks, oldest first, until the microtask queue is empty. Work
   they queue runs in the same drain.
2. Run exactly one macrotask: the one with the smallest requested delay, ties
   in scheduling order. A delay is not added to the time it was scheduled at,
   so a short timer set inside a task runs before a longer one set earlier.
3. Repeat until both queues are empty.

Time is logical and only shown in steps: when a task is dequeued the clock
becomes the larger of its current value and the task's delay. Nothing ever
sleeps.
"""

import logging

from .context import Phase
from .evaluator import Evaluator
from .trace import StepKind

logger = logging.getLogger(__name__)


class EventLoop:
    """Drives an Evaluator's queues to exhaustion."""

    def __init__(self, evaluator: Evaluator):
        self.evaluator = evaluator
        self.context = evaluator.context

    def run_microtasks(self) -> int:
        """Drain the microtask queue completely; return how many ran."""
        context = self.context
        count = 0
        while context.microtasks:
            microtask = context.microtasks.pop()
            context.phase = Phase.MICROTASK
            logger.debug("running microtask %s", microtask.name)
            self.evaluator.invoke_microtask(microtask)
            node = getattr(microtask.callback, "node", None)
            self.evaluator.record(node, StepKind.MICROTASK_DONE, f"microtask {microtask.name} done")
            count += 1
        return count

    def run_next_task(self) -> bool:
        """Run the earliest macrotask, if any. Only call with no microtasks pending."""
        context = self.context
        if context.microtasks:
            raise RuntimeError("macrotask dequeued while microtasks are pending")
        if not context.tasks:
            return False
        task = context.tasks.pop()
        context.phase = Phase.TASK
        context.clock = max(context.clock, task.delay)
        logger.debug("running task %s at t=%s", task, context.clock)
        self.evaluator.invoke_task(task)
        node = getattr(task.callback, "node", None)
        self.evaluator.record(node, StepKind.TASK_DONE, f"task {task.name} done")
        return True

    def run(self) -> None:
        """Loop until both queues are empty."""
        context = self.context
        with self.evaluator.host_stack_guard():
            while context.microtasks or context.tasks:
                self.run_microtasks()
                self.run_next_task()
        context.phase = Phase.DONE


def run_event_loop(evaluator: Evaluator) -> None:
    """Drain ``evaluator``'s queues in event-loop order."""
    EventLoop(evaluator).run()
